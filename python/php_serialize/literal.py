"""PHP array literal syntax.

Reads and writes values in the short-array notation PHP developers paste
around, for example::

    [
        'user' => new User([
            'name' => 'John',
            'tags' => ['admin', 'developer'],
        ]),
        'limit' => INF,
    ]

Unlike JSON this notation can carry ``INF``, ``-INF`` and ``NAN``, and PHP
objects are written as ``new Class([...])`` (``(object) [...]`` gives a
``stdClass``). Objects come back as dicts carrying the class name under the
class key, the same shape :func:`php_serialize.loads` produces.
"""

import math
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

from php_serialize._decoder import is_sequential
from php_serialize._encoder import DEFAULT_CLASS_KEY, DEFAULT_MAX_DEPTH, format_int
from php_serialize._errors import (
    CircularReferenceError,
    LiteralSyntaxError,
    UnsupportedTypeError,
)

__all__ = ["parse_literal", "dump_literal"]

_TOKENS = re.compile(
    r"""
      (?P<skip>\s+|//[^\n]*|\#[^\n]*|/\*.*?\*/)
    | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    | (?P<number>(?:[0-9]+\.[0-9]*|\.[0-9]+|[0-9]+)(?:[eE][+-]?[0-9]+)?)
    | (?P<cast>\(\s*(?i:object)\s*\))
    | (?P<name>\\?[A-Za-z_][A-Za-z0-9_]*(?:\\[A-Za-z_][A-Za-z0-9_]*)*)
    | (?P<op>=>|[\[\](),+-])
    """,
    re.VERBOSE | re.DOTALL,
)

_DOUBLE_QUOTE_ESCAPES = re.compile(
    r"\\(?:u\{([0-9A-Fa-f]+)\}|x([0-9A-Fa-f]{1,2})|([0-7]{1,3})|([nrtvef\\$\"]))"
)
_SIMPLE_ESCAPES = {
    "n": "\n", "r": "\r", "t": "\t", "v": "\v", "e": "\x1b", "f": "\f",
    "\\": "\\", "$": "$", '"': '"',
}
_CONSTANTS = {"true": True, "false": False, "null": None}
_INTEGER_KEY = re.compile(r"-?[1-9][0-9]*|0")

Token = Tuple[str, str, int]


def _tokenize(text: str) -> Iterator[Token]:
    pos = 0
    while pos < len(text):
        match = _TOKENS.match(text, pos)
        if match is None:
            raise _syntax_error(text, pos, f"Unexpected character {text[pos]!r}")
        kind = match.lastgroup
        if kind != "skip":
            yield kind, match.group(), pos
        pos = match.end()


def _syntax_error(text: str, offset: int, message: str) -> LiteralSyntaxError:
    lineno = text.count("\n", 0, offset) + 1
    colno = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return LiteralSyntaxError(message, lineno, colno)


def _unquote(token: str) -> str:
    body = token[1:-1]
    if token[0] == "'":
        return re.sub(r"\\([\\'])", r"\1", body)

    def replace(match: "re.Match[str]") -> str:
        codepoint, hex_byte, octal, simple = match.groups()
        if codepoint is not None:
            return chr(int(codepoint, 16))
        if hex_byte is not None:
            return chr(int(hex_byte, 16))
        if octal is not None:
            return chr(int(octal, 8) & 0xFF)
        return _SIMPLE_ESCAPES[simple]

    return _DOUBLE_QUOTE_ESCAPES.sub(replace, body)


def _array_key(key: Any) -> Any:
    """Apply PHP's array key casts."""
    if isinstance(key, bool):
        return int(key)
    if isinstance(key, int):
        return key
    if isinstance(key, float):
        return int(key)
    if key is None:
        return ""
    if isinstance(key, str):
        return int(key) if _INTEGER_KEY.fullmatch(key) else key
    raise TypeError(f"{type(key).__name__} cannot be used as an array key")


class _LiteralParser:
    def __init__(self, text: str, class_key: str, max_depth: int):
        self.text = text
        self.tokens: List[Token] = list(_tokenize(text))
        self.index = 0
        self.class_key = class_key
        self.max_depth = max_depth

    def error(self, message: str, offset: Optional[int] = None) -> LiteralSyntaxError:
        if offset is None:
            offset = self.offset()
        return _syntax_error(self.text, offset, message)

    def offset(self) -> int:
        if self.index < len(self.tokens):
            return self.tokens[self.index][2]
        return len(self.text)

    def next(self) -> Token:
        if self.index >= len(self.tokens):
            raise self.error("Unexpected end of input")
        token = self.tokens[self.index]
        self.index += 1
        return token

    def accept(self, op: str) -> bool:
        if self.index < len(self.tokens) and self.tokens[self.index][:2] == ("op", op):
            self.index += 1
            return True
        return False

    def expect(self, op: str) -> None:
        if not self.accept(op):
            raise self.error(f"Expected {op!r}")

    def parse(self) -> Any:
        value = self.value(0)
        if self.index < len(self.tokens):
            raise self.error(f"Unexpected {self.tokens[self.index][1]!r} after value")
        return value

    def value(self, depth: int) -> Any:
        if depth > self.max_depth:
            raise self.error(f"Nesting exceeds max_depth={self.max_depth}")
        kind, text, offset = self.next()
        if kind == "string":
            try:
                return _unquote(text)
            except (ValueError, OverflowError) as exc:
                raise self.error(f"Invalid escape sequence: {exc}", offset) from exc
        if kind == "number":
            if any(c in text for c in ".eE"):
                return float(text)
            try:
                return int(text)
            except ValueError as exc:
                raise self.error(f"Invalid integer: {exc}", offset) from exc
        if kind == "cast":
            return self.object("stdClass", self.value(depth + 1), offset)
        if kind == "op" and text in "+-":
            operand = self.value(depth + 1)
            if isinstance(operand, bool) or not isinstance(operand, (int, float)):
                raise self.error(f"Unary {text!r} needs a number", offset)
            return -operand if text == "-" else operand
        if kind == "op" and text == "[":
            return self.array("]", depth)
        if kind == "name":
            lowered = text.lower()
            if lowered in _CONSTANTS:
                return _CONSTANTS[lowered]
            if text == "INF":
                return math.inf
            if text == "NAN":
                return math.nan
            if lowered == "array":
                self.expect("(")
                return self.array(")", depth)
            if lowered == "new":
                return self.new_object(depth)
        raise self.error(f"Unexpected {text!r}", offset)

    def array(self, close: str, depth: int) -> Any:
        entries: Dict[Any, Any] = {}
        next_index = 0
        while not self.accept(close):
            start = self.offset()
            first = self.value(depth + 1)
            if self.accept("=>"):
                try:
                    key = _array_key(first)
                except (TypeError, ValueError, OverflowError) as exc:
                    raise self.error(f"Illegal array key: {exc}", start) from exc
                item = self.value(depth + 1)
            else:
                key, item = next_index, first
            if isinstance(key, int) and key >= next_index:
                next_index = key + 1
            entries[key] = item
            if not self.accept(","):
                self.expect(close)
                break
        if is_sequential(entries):
            return list(entries.values())
        return entries

    def new_object(self, depth: int) -> Dict[Any, Any]:
        kind, name, offset = self.next()
        if kind != "name":
            raise self.error("Expected a class name after 'new'", offset)
        self.expect("(")
        if self.accept(")"):
            return self.object(name, [], offset)
        props = self.value(depth + 1)
        self.accept(",")
        self.expect(")")
        return self.object(name, props, offset)

    def object(self, class_name: str, props: Any, offset: int) -> Dict[Any, Any]:
        if isinstance(props, list):
            props = dict(enumerate(props))
        if not isinstance(props, dict):
            raise self.error("Object properties must be an array", offset)
        if self.class_key in props:
            raise self.error(
                f"Property {self.class_key!r} is reserved for the class name", offset
            )
        obj: Dict[Any, Any] = {self.class_key: class_name.lstrip("\\")}
        obj.update(props)
        return obj


def parse_literal(
    text: str,
    *,
    class_key: str = DEFAULT_CLASS_KEY,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    """Parse PHP literal syntax into Python values.

    Raises:
        LiteralSyntaxError: With line and column of the first problem
    """
    return _LiteralParser(text, class_key, max_depth).parse()


def _quote(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", "replace")
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class _LiteralWriter:
    def __init__(self, indent: int, class_key: str):
        self.indent = " " * indent
        self.class_key = class_key
        self.active: set = set()

    def render(self, value: Any, level: int) -> str:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int):
            return format_int(value)
        if isinstance(value, float):
            if math.isnan(value):
                return "NAN"
            if math.isinf(value):
                return "INF" if value > 0 else "-INF"
            return repr(value)
        if isinstance(value, (str, bytes, bytearray)):
            return _quote(value)
        if isinstance(value, (list, tuple, dict)):
            if id(value) in self.active:
                raise CircularReferenceError(
                    "Value contains a circular reference, which PHP literals cannot represent"
                )
            self.active.add(id(value))
            try:
                return self.composite(value, level)
            finally:
                self.active.discard(id(value))
        raise UnsupportedTypeError(
            f"Cannot render {type(value).__name__} as a PHP literal", type(value)
        )

    def composite(self, value: Any, level: int) -> str:
        class_name = value.get(self.class_key) if isinstance(value, dict) else None
        if isinstance(value, dict):
            items = [
                f"{self.key(k)} => {self.render(v, level + 1)}"
                for k, v in value.items()
                if not (isinstance(class_name, str) and k == self.class_key)
            ]
        else:
            items = [self.render(v, level + 1) for v in value]
        if items:
            pad = self.indent * (level + 1)
            body = "".join(f"{pad}{item},\n" for item in items)
            array = f"[\n{body}{self.indent * level}]"
        else:
            array = "[]"
        if isinstance(class_name, str):
            return f"new {class_name}({array})"
        return array

    def key(self, key: Any) -> str:
        if isinstance(key, bool):
            return str(int(key))
        if isinstance(key, int):
            return format_int(key)
        if isinstance(key, (str, bytes, bytearray)):
            return _quote(key)
        return _quote(str(key))


def dump_literal(
    value: Any,
    *,
    indent: int = 4,
    class_key: str = DEFAULT_CLASS_KEY,
) -> str:
    """Render ``value`` as PHP short-array literal syntax.

    Raises:
        CircularReferenceError: If ``value`` contains a cycle
    """
    return _LiteralWriter(indent, class_key).render(value, 0)
