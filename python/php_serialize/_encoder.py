"""Writer for the PHP ``serialize()`` format.

Values map onto PHP types as follows::

    None            N;
    bool            b:0; / b:1;
    int             i:<n>;
    float           d:<n>;  (d:INF; d:-INF; d:NAN;)
    str / bytes     s:<byte length>:"<bytes>";
    list / tuple    a:<n>:{i:0;<v>i:1;<v>...}
    dict            a:<n>:{<k><v>...}
    dict + class    O:<len>:"<class>":<n>:{<k><v>...}

A ``list``/``dict`` reached a second time in the same call is written as
``r:<n>;``, where ``n`` is its 1-based position among the composites
visited so far (pre-order, the root being 1).
"""

import math
from typing import Any, Dict, Iterable, List, Tuple

from php_serialize._errors import DepthLimitError, UnsupportedTypeError

DEFAULT_CLASS_KEY = "__class"
DEFAULT_MAX_DEPTH = 128


def format_float(value: float) -> str:
    """Format a float the way PHP's ``serialize()`` does (shortest repr)."""
    if math.isnan(value):
        return "NAN"
    if math.isinf(value):
        return "INF" if value > 0 else "-INF"
    text = repr(value)
    if "e" in text:
        mantissa, exponent = text.split("e")
        if "." not in mantissa:
            mantissa += ".0"
        return f"{mantissa}E{int(exponent):+d}"
    if text.endswith(".0"):
        return text[:-2]
    return text


def format_int(value: int) -> str:
    try:
        return str(int(value))
    except ValueError as exc:
        # int -> str conversion is capped by sys.set_int_max_str_digits
        raise UnsupportedTypeError(f"Integer is too large to serialize: {exc}", int) from exc


def _string(raw: bytes) -> bytes:
    return b's:%d:"%s";' % (len(raw), raw)


def _utf8(text: str) -> bytes:
    try:
        return text.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        return text.encode("utf-8", "surrogatepass")


class _Encoder:
    """State for one top-level ``dumps`` call."""

    def __init__(self, class_key: str, max_depth: int):
        self.class_key = class_key
        self.max_depth = max_depth
        # id(container) -> reference number
        self.refs: Dict[int, int] = {}
        self.chunks: List[bytes] = []

    def encode(self, value: Any, depth: int = 0) -> None:
        out = self.chunks.append
        if value is None:
            out(b"N;")
        elif isinstance(value, bool):
            out(b"b:1;" if value else b"b:0;")
        elif isinstance(value, int):
            out(b"i:%s;" % format_int(value).encode("ascii"))
        elif isinstance(value, float):
            out(b"d:%s;" % format_float(value).encode("ascii"))
        elif isinstance(value, str):
            out(_string(_utf8(value)))
        elif isinstance(value, (bytes, bytearray)):
            out(_string(bytes(value)))
        elif isinstance(value, (list, tuple, dict)):
            self._composite(value, depth)
        else:
            raise UnsupportedTypeError(
                f"Unsupported type for PHP serialization: {type(value).__name__}",
                type(value),
            )

    def _composite(self, value: Any, depth: int) -> None:
        out = self.chunks.append
        ref = self.refs.get(id(value))
        if ref is not None:
            out(b"r:%d;" % ref)
            return
        if depth >= self.max_depth:
            raise DepthLimitError(f"Value nesting exceeds max_depth={self.max_depth}")
        self.refs[id(value)] = len(self.refs) + 1

        items: Iterable[Tuple[Any, Any]]
        if isinstance(value, dict):
            class_name = value.get(self.class_key)
            if isinstance(class_name, str):
                items = [(k, v) for k, v in value.items() if k != self.class_key]
                name = _utf8(class_name)
                out(b'O:%d:"%s":%d:{' % (len(name), name, len(items)))
            else:
                items = value.items()
                out(b"a:%d:{" % len(value))
        else:
            items = enumerate(value)
            out(b"a:%d:{" % len(value))

        for key, item in items:
            self._key(key)
            self.encode(item, depth + 1)
        out(b"}")

    def _key(self, key: Any) -> None:
        if isinstance(key, int):
            self.chunks.append(b"i:%s;" % format_int(key).encode("ascii"))
        elif isinstance(key, str):
            self.chunks.append(_string(_utf8(key)))
        elif isinstance(key, bytes):
            self.chunks.append(_string(key))
        else:
            raise UnsupportedTypeError(
                f"Unsupported array key type: {type(key).__name__}", type(key)
            )


def encode(
    value: Any,
    *,
    class_key: str = DEFAULT_CLASS_KEY,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> bytes:
    """Serialize ``value`` to PHP serialized bytes."""
    encoder = _Encoder(class_key, max_depth)
    try:
        encoder.encode(value)
    except RecursionError as exc:
        raise DepthLimitError(
            f"Value nesting exhausted the interpreter stack (max_depth={max_depth})"
        ) from exc
    return b"".join(encoder.chunks)
