"""Rule-set document loading and dumping.

The document is the contract with the storage collaborator, which persists
it verbatim. Field names on the wire are camelCase.
"""
from typing import Any

import orjson
import structlog
from pydantic import ValidationError

from ..errors import RuleDocumentError
from .models import Rule, RuleSet

log = structlog.get_logger()


def _decode(raw: bytes | str | dict) -> Any:
    if isinstance(raw, (bytes, str)):
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise RuleDocumentError("Rule-set document is not valid JSON", {"detail": str(e)}) from e
    return raw


def load_rule_set(raw: bytes | str | dict) -> RuleSet:
    """
    Parse a rule-set document.

    Raises:
        RuleDocumentError: the document is not JSON or does not match the model
    """
    data = _decode(raw)
    try:
        rule_set = RuleSet.model_validate(data)
    except ValidationError as e:
        log.warning("document.invalid", errors=e.error_count())
        raise RuleDocumentError(
            "Rule-set document does not match the expected structure",
            {"errors": e.errors(include_url=False, include_context=False)},
        ) from e

    log.debug("document.loaded", rules=len(rule_set.rules))
    return rule_set


def load_rule(raw: bytes | str | dict) -> Rule:
    """Parse a single rule document."""
    data = _decode(raw)
    try:
        return Rule.model_validate(data)
    except ValidationError as e:
        raise RuleDocumentError(
            "Rule document does not match the expected structure",
            {"errors": e.errors(include_url=False, include_context=False)},
        ) from e


def to_document(model: RuleSet | Rule) -> dict[str, Any]:
    """Wire form as plain data: camelCase keys, nulls omitted."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def dump_rule_set(rule_set: RuleSet) -> bytes:
    return orjson.dumps(to_document(rule_set))
