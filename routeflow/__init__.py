"""routeflow - call-routing rules: evaluation, graph editing view and templates."""

__version__ = "0.1.0"
