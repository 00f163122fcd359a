"""
Typed errors raised by routeflow.

Validation calls never raise these; they report problems through
ValidationResult. The exceptions below abort a single operation
(reconstruction, template application, document loading) and are
returned to the caller, who keeps its previous valid representation.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""
    code: str
    message: str
    details: Dict[str, Any] = {}


class RuleStructureError(Exception):
    """Base exception for structural faults in rules and graphs."""

    code = "RULE_STRUCTURE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=self.message, details=self.details)


class InvalidShape(RuleStructureError):
    """A condition node does not have exactly one well-formed shape."""

    code = "INVALID_SHAPE"

    def __init__(self, message: str, path: str = "conditions", details: Optional[Dict[str, Any]] = None):
        self.path = path
        super().__init__(message, {"path": path, **(details or {})})


class MissingRequiredNode(RuleStructureError):
    """Header or event node absent from a graph."""

    code = "MISSING_REQUIRED_NODE"


class UnresolvableCondition(RuleStructureError):
    """No root condition, or the root resolves to nothing."""

    code = "UNRESOLVABLE_CONDITION"


class CircularDependency(RuleStructureError):
    """Cycle among condition nodes."""

    code = "CIRCULAR_DEPENDENCY"


class InvalidGraphStructure(RuleStructureError):
    """Graph is structurally unusable, e.g. a `not` node with no child."""

    code = "INVALID_GRAPH_STRUCTURE"


class TemplateVariableError(RuleStructureError):
    """Template variables are missing or undeclared."""

    code = "TEMPLATE_VARIABLE_ERROR"


class RuleDocumentError(RuleStructureError):
    """A rule-set document could not be parsed."""

    code = "RULE_DOCUMENT_ERROR"
