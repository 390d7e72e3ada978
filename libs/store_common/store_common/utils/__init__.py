from .json_model import JsonModel, JsonSnakeCaseModel
from .msgspec import SerializationError, decode_json, encode_json, encode_json_str
from .utils import (
    ContextVarManager,
    add_months,
    blocking_run_async,
    cached_classmethod,
    deep_merge,
    get_logger,
    get_now,
    use_context_var,
)

__all__ = [
    "ContextVarManager",
    "JsonModel",
    "JsonSnakeCaseModel",
    "SerializationError",
    "add_months",
    "blocking_run_async",
    "cached_classmethod",
    "decode_json",
    "deep_merge",
    "encode_json",
    "encode_json_str",
    "get_logger",
    "get_now",
    "use_context_var",
]
