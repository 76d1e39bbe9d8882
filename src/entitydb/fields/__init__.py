"""Field authorization, projection and dotted-path helpers."""

from entitydb.fields.authorizer import authorize_fields, filter_fields
from entitydb.fields.paths import MISSING, delete_path, get_path, parent_paths, set_path

__all__ = [
    "MISSING",
    "authorize_fields",
    "delete_path",
    "filter_fields",
    "get_path",
    "parent_paths",
    "set_path",
]
