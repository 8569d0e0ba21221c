"""Public entry points re-exported by :mod:`php_serialize`."""

import json
import logging
import re
from typing import Any, Optional, Union

from php_serialize._decoder import decode
from php_serialize._encoder import DEFAULT_CLASS_KEY, DEFAULT_MAX_DEPTH, encode
from php_serialize._errors import (
    CircularReferenceError,
    DepthLimitError,
    UnsupportedTypeError,
)

logger = logging.getLogger(__name__)

_VERSION = "0.1.0"

_SERIALIZED_PREFIX = re.compile(
    rb"N;"
    rb"|b:[01];"
    rb"|i:[+-]?[0-9]+;"
    rb"|d:(?:INF|-INF|NAN|[+-]?[0-9.]+(?:[eE][+-]?[0-9]+)?);"
    rb'|[sE]:[0-9]+:"'
    rb"|a:[0-9]+:\{"
    rb'|O:[0-9]+:"'
    rb"|[rR]:[0-9]+;"
)

Data = Union[bytes, bytearray, memoryview, str]


def version() -> str:
    """Get the version of the library."""
    return _VERSION


def _as_bytes(data: Data) -> bytes:
    if isinstance(data, str):
        try:
            # reverses the surrogate escapes dumps() uses for non-UTF-8 payloads
            return data.encode("utf-8", "surrogateescape")
        except UnicodeEncodeError:
            return data.encode("utf-8", "surrogatepass")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"expected bytes or str, got {type(data).__name__}")


def preprocess(data: Data) -> bytes:
    """Undo database CSV escaping: ``"a:1:{s:3:""key"";...}"`` -> ``a:1:{s:3:"key";...}``.

    Data without surrounding double quotes is returned unchanged.
    """
    raw = _as_bytes(data)
    if len(raw) >= 2 and raw.startswith(b'"') and raw.endswith(b'"'):
        return raw[1:-1].replace(b'""', b'"')
    return raw


def is_serialized(data: Data) -> bool:
    """Check if data looks like PHP serialized format (prefix sniff only)."""
    return _SERIALIZED_PREFIX.match(_as_bytes(data).strip()) is not None


def loads(
    data: Data,
    *,
    errors: str = "replace",
    auto_unescape: bool = True,
    strict: bool = True,
    class_key: str = DEFAULT_CLASS_KEY,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    """Deserialize PHP serialized data to a Python object.

    Args:
        data: PHP serialized data (``str`` input is UTF-8 encoded first)
        errors: Error handling mode for invalid UTF-8:
            - "strict": Raise FormatError
            - "replace": Replace invalid bytes with replacement character (default)
            - "bytes": Return bytes instead of string for binary data
        auto_unescape: Automatically detect and unescape DB-exported strings
        strict: Fail on string length mismatches (default). When False, the
            string is recovered up to the nearest closing quote and a warning
            is logged.
        class_key: Dict key that receives the class name of PHP objects
        max_depth: Maximum array/object nesting

    Returns:
        The deserialized Python object. Arrays with keys ``0..n-1`` in order
        become lists, other arrays and objects become dicts.

    Raises:
        PhpDeserializeError: If the data cannot be parsed
    """
    raw = _as_bytes(data).strip()
    if auto_unescape:
        raw = preprocess(raw)
    value = decode(
        raw.strip(),
        errors=errors,
        strict=strict,
        class_key=class_key,
        max_depth=max_depth,
    )
    logger.debug("Deserialized %d bytes into %s", len(raw), type(value).__name__)
    return value


def dumps(
    value: Any,
    *,
    class_key: str = DEFAULT_CLASS_KEY,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """Serialize a Python object to PHP serialized text.

    Dicts carrying a string under ``class_key`` become PHP objects. A list or
    dict that appears more than once is written as a reference (``r:<n>;``),
    so shared and cyclic structures are supported.

    Raises:
        UnsupportedTypeError: If the value contains something PHP cannot represent
        DepthLimitError: If nesting exceeds ``max_depth``
    """
    raw = encode(value, class_key=class_key, max_depth=max_depth)
    logger.debug("Serialized %s into %d bytes", type(value).__name__, len(raw))
    return raw.decode("utf-8", "surrogateescape")


def render_json(value: Any, *, indent: Optional[int] = None, allow_nan: bool = True) -> str:
    """Render a deserialized value as JSON text.

    Non-finite floats are written as ``Infinity``/``-Infinity``/``NaN`` (the
    tokens :func:`json.loads` reads back) unless ``allow_nan`` is False.
    """
    separators = (",", ":") if indent is None else (",", ": ")
    try:
        return json.dumps(
            value,
            indent=indent,
            separators=separators,
            ensure_ascii=False,
            allow_nan=allow_nan,
            default=_json_default,
        )
    except ValueError as exc:
        if "Circular reference" in str(exc):
            raise CircularReferenceError(
                "Value contains a circular reference, which JSON cannot represent"
            ) from exc
        if "Out of range float" not in str(exc):
            raise UnsupportedTypeError(f"Cannot render value as JSON: {exc}") from exc
        raise UnsupportedTypeError(
            "INF, -INF and NAN cannot be represented in strict JSON", float
        ) from exc
    except RecursionError as exc:
        raise DepthLimitError("Value is nested too deeply to render as JSON") from exc


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).decode("utf-8", "replace")
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def loads_json(
    data: Data,
    *,
    auto_unescape: bool = True,
    strict: bool = True,
    class_key: str = DEFAULT_CLASS_KEY,
) -> str:
    """Deserialize PHP serialized data directly to a compact JSON string."""
    value = loads(data, auto_unescape=auto_unescape, strict=strict, class_key=class_key)
    return render_json(value)
