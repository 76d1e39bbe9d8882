"""Query parameter models and sanitization."""

from entitydb.params.models import Operation, QueryParams
from entitydb.params.sanitizer import sanitize_params

__all__ = [
    "Operation",
    "QueryParams",
    "sanitize_params",
]
