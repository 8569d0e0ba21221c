"""Reader for the PHP ``serialize()`` format.

Parsing happens in two passes. The recursive-descent pass walks the input
buffer with a position index and records every array/object as a ``_Node``
in an arena, in the order the composites are first seen. Nested composites
and ``r:``/``R:`` back-references are both stored as ``_Slot`` pointers into
that arena. The second pass creates one ``list`` or ``dict`` per node and then
wires up the slots, so self-references end up pointing at the finished
container.
"""

import logging
import re
from typing import Any, Iterable, List, Optional, Pattern, Tuple, Union

from php_serialize._encoder import DEFAULT_CLASS_KEY, DEFAULT_MAX_DEPTH
from php_serialize._errors import (
    FormatError,
    LengthMismatchError,
    PhpReferenceError,
)

logger = logging.getLogger(__name__)

ERROR_MODES = ("strict", "replace", "bytes")

_INT = re.compile(rb"[+-]?[0-9]+")
_FLOAT = re.compile(rb"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_COUNT = re.compile(rb"[0-9]+")
_SPECIAL_FLOATS = {b"INF": float("inf"), b"-INF": float("-inf"), b"NAN": float("nan")}

Key = Union[int, str, bytes]


def is_sequential(keys: Iterable[Any]) -> bool:
    """True when ``keys`` are exactly ``0..n-1`` in order, with no repeats."""
    for expected, key in enumerate(keys):
        if type(key) is not int or key != expected:
            return False
    return True


def excerpt(buf: bytes, pos: int, size: int = 20) -> str:
    chunk = buf[pos:pos + size]
    text = chunk.decode("utf-8", "replace")
    return repr(text + "..." if pos + size < len(buf) else text)


class _Slot:
    __slots__ = ("index",)

    def __init__(self, index: int):
        self.index = index


class _Node:
    __slots__ = ("class_name", "entries")

    def __init__(self, class_name: Optional[str]):
        self.class_name = class_name
        self.entries: List[Tuple[Key, Any]] = []


class _Parser:
    """State for one top-level ``decode`` call."""

    def __init__(
        self, buf: bytes, errors: str, strict: bool, class_key: str, max_depth: int
    ):
        self.buf = buf
        self.pos = 0
        self.errors = errors
        self.strict = strict
        self.class_key = class_key
        self.max_depth = max_depth
        self.nodes: List[_Node] = []

    # -- primitives -------------------------------------------------------

    def _expect(self, literal: bytes) -> None:
        if not self.buf.startswith(literal, self.pos):
            raise FormatError(
                f"Expected {literal.decode()!r} at offset {self.pos}, "
                f"found {excerpt(self.buf, self.pos)}",
                self.pos,
            )
        self.pos += len(literal)

    def _token(self, terminator: bytes, pattern: Pattern[bytes], what: str) -> bytes:
        start = self.pos
        end = self.buf.find(terminator, start)
        if end == -1:
            raise FormatError(
                f"Unexpected end of input while reading {what} at offset {start}", start
            )
        token = self.buf[start:end]
        if not pattern.fullmatch(token):
            raise FormatError(
                f"Invalid {what} at offset {start}: {excerpt(self.buf, start)}", start
            )
        self.pos = end + len(terminator)
        return token

    def _int(self, terminator: bytes, pattern: Pattern[bytes], what: str) -> int:
        start = self.pos
        token = self._token(terminator, pattern, what)
        try:
            return int(token.decode("ascii"))
        except ValueError as exc:
            # int() refuses overly long digit strings
            raise FormatError(f"Invalid {what} at offset {start}: {exc}", start) from exc

    def _decode(self, raw: bytes, position: int) -> Union[str, bytes]:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            if self.errors == "bytes":
                return raw
            if self.errors == "strict":
                raise FormatError(
                    f"Invalid UTF-8 in string at offset {position}: {exc.reason}",
                    position,
                ) from exc
            return raw.decode("utf-8", "replace")

    def _raw_string(self) -> Tuple[bytes, int]:
        """Read ``<len>:"<bytes>";`` (the tag already consumed)."""
        length = self._int(b":", _COUNT, "string length")
        self._expect(b'"')
        start = self.pos
        end = start + length
        if self.buf.startswith(b'";', end):
            self.pos = end + 2
            return self.buf[start:end], start
        if not self.strict:
            return self._recover_string(start, length), start
        available = len(self.buf) - start
        if available < length:
            message = (
                f"String too short at offset {start}: declared {length} bytes, "
                f"only {available} available"
            )
        else:
            message = (
                f"String length mismatch at offset {start}: declared {length} bytes "
                f'but the payload is not followed by \'";\''
            )
        raise LengthMismatchError(message, start)

    def _recover_string(self, start: int, length: int) -> bytes:
        close = self.buf.find(b'";', start)
        if close == -1:
            raise LengthMismatchError(
                f"String length mismatch at offset {start}: declared {length} bytes "
                f"and no closing '\";' found",
                start,
            )
        logger.warning(
            "Repaired string at offset %d: declared %d bytes, payload has %d",
            start,
            length,
            close - start,
        )
        self.pos = close + 2
        return self.buf[start:close]

    # -- values -----------------------------------------------------------

    def value(self, depth: int) -> Any:
        buf = self.buf
        start = self.pos
        tag = buf[start:start + 2]
        if tag == b"N;":
            self.pos += 2
            return None
        if tag == b"b:":
            flag = buf[start + 2:start + 4]
            if flag not in (b"0;", b"1;"):
                raise FormatError(
                    f"Invalid boolean at offset {start}: expected b:0; or b:1;, "
                    f"found {excerpt(buf, start)}",
                    start,
                )
            self.pos += 4
            return flag == b"1;"
        if tag == b"i:":
            self.pos += 2
            return self._int(b";", _INT, "integer")
        if tag == b"d:":
            self.pos += 2
            return self._float()
        if tag == b"s:":
            self.pos += 2
            raw, offset = self._raw_string()
            return self._decode(raw, offset)
        if tag in (b"r:", b"R:"):
            self.pos += 2
            return self._reference(start)
        if tag == b"a:":
            self.pos += 2
            return self._array(depth)
        if tag == b"O:":
            self.pos += 2
            return self._object(depth)
        if tag == b"E:":
            self.pos += 2
            return self._enum()
        if start >= len(buf):
            raise FormatError(f"Unexpected end of input at offset {start}", start)
        raise FormatError(
            f"Unsupported or invalid serialized format at offset {start}: "
            f"{excerpt(buf, start)}",
            start,
        )

    def _float(self) -> float:
        start = self.pos
        end = self.buf.find(b";", start)
        token = self.buf[start:end] if end != -1 else b""
        if token in _SPECIAL_FLOATS:
            self.pos = end + 1
            return _SPECIAL_FLOATS[token]
        return float(self._token(b";", _FLOAT, "float").decode("ascii"))

    def _reference(self, start: int) -> _Slot:
        index = self._int(b";", _COUNT, "reference index")
        if not 1 <= index <= len(self.nodes):
            raise PhpReferenceError(
                f"Reference {index} at offset {start} does not match any of the "
                f"{len(self.nodes)} arrays/objects parsed so far",
                start,
            )
        return _Slot(index - 1)

    def _enum(self) -> str:
        raw, offset = self._raw_string()
        payload = raw.decode("utf-8", "replace")
        class_name, sep, case = payload.partition(":")
        if not sep:
            raise FormatError(
                f"Invalid enum at offset {offset}: expected 'Class:Case', got {payload!r}",
                offset,
            )
        return f"{class_name}::{case}"

    def _key(self) -> Key:
        start = self.pos
        tag = self.buf[start:start + 2]
        if tag == b"i:":
            self.pos += 2
            return self._int(b";", _INT, "integer key")
        if tag == b"s:":
            self.pos += 2
            raw, offset = self._raw_string()
            return self._decode(raw, offset)
        raise FormatError(
            f"Invalid array key at offset {start}: {excerpt(self.buf, start)}", start
        )

    def _register(self, class_name: Optional[str], depth: int) -> int:
        if depth >= self.max_depth:
            raise FormatError(
                f"Nesting at offset {self.pos} exceeds max_depth={self.max_depth}",
                self.pos,
            )
        self.nodes.append(_Node(class_name))
        return len(self.nodes) - 1

    def _members(self, index: int, depth: int) -> _Slot:
        count = self._int(b":", _COUNT, "element count")
        self._expect(b"{")
        node = self.nodes[index]
        for _ in range(count):
            start = self.pos
            key = self._key()
            if node.class_name is not None and key == self.class_key:
                raise FormatError(
                    f"Property {self.class_key!r} at offset {start} is reserved "
                    f"for the class name",
                    start,
                )
            node.entries.append((key, self.value(depth + 1)))
        self._expect(b"}")
        return _Slot(index)

    def _array(self, depth: int) -> _Slot:
        return self._members(self._register(None, depth), depth)

    def _object(self, depth: int) -> _Slot:
        start = self.pos
        length = self._int(b":", _COUNT, "class name length")
        self._expect(b'"')
        name_start = self.pos
        name_end = name_start + length
        if not self.buf.startswith(b'":', name_end):
            raise LengthMismatchError(
                f"Class name at offset {start} does not match its declared "
                f"length {length}",
                start,
            )
        class_name = self.buf[name_start:name_end].decode("utf-8", "replace")
        self.pos = name_end + 2
        return self._members(self._register(class_name, depth), depth)

    # -- driver -----------------------------------------------------------

    def parse(self) -> Any:
        root = self.value(0)
        if self.pos < len(self.buf):
            raise FormatError(
                f"Unexpected trailing data at offset {self.pos}: "
                f"{excerpt(self.buf, self.pos)}",
                self.pos,
            )
        return self._materialize(root)

    def _materialize(self, root: Any) -> Any:
        containers: List[Any] = [
            [] if node.class_name is None and is_sequential(k for k, _ in node.entries)
            else {}
            for node in self.nodes
        ]

        def resolve(item: Any) -> Any:
            return containers[item.index] if isinstance(item, _Slot) else item

        for node, container in zip(self.nodes, containers):
            if isinstance(container, list):
                container.extend(resolve(item) for _, item in node.entries)
                continue
            if node.class_name is not None:
                container[self.class_key] = node.class_name
            for key, item in node.entries:
                container[key] = resolve(item)
        return resolve(root)


def decode(
    buf: bytes,
    *,
    errors: str = "replace",
    strict: bool = True,
    class_key: str = DEFAULT_CLASS_KEY,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    """Parse PHP serialized ``buf`` (already unescaped and stripped)."""
    if errors not in ERROR_MODES:
        raise ValueError(f"errors must be one of {ERROR_MODES}, got {errors!r}")
    parser = _Parser(buf, errors, strict, class_key, max_depth)
    try:
        return parser.parse()
    except RecursionError as exc:
        raise FormatError(
            f"Input nesting exhausted the interpreter stack (max_depth={max_depth})",
            parser.pos,
        ) from exc
