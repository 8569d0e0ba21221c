"""Text-to-text conversions behind a two-pane "JSON <-> PHP serialized" form.

Each function takes the raw text of one pane and returns the text for the
other one, raising a :class:`~php_serialize.PhpSerializeError` subclass on bad
input. :func:`convert` is the boundary a form handler calls on every change:
it never raises for bad input and never returns output together with an error.

JSON cannot spell ``INF``/``-INF``/``NAN``. :func:`json_to_php` accepts the
``Infinity``/``-Infinity``/``NaN`` tokens Python's :mod:`json` understands, and
the PHP literal pane (``['limit' => INF]``) carries them natively.
"""

import json
import logging
from typing import Any, Callable, Dict, NamedTuple, Optional

from php_serialize._core import dumps, loads, render_json
from php_serialize._encoder import DEFAULT_CLASS_KEY
from php_serialize._errors import (
    DepthLimitError,
    JsonParseError,
    LiteralSyntaxError,
    PhpSerializeError,
)
from php_serialize.literal import dump_literal, parse_literal

logger = logging.getLogger(__name__)

__all__ = [
    "Conversion",
    "convert",
    "json_to_php",
    "php_to_json",
    "php_to_literal",
    "source_to_php",
]

_LITERAL_HINTS = ("new ", "array", "(object)")


class Conversion(NamedTuple):
    """Outcome of :func:`convert`: either ``output`` or ``error`` is set."""

    output: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise JsonParseError(f"Invalid JSON: {exc.msg}", exc.lineno, exc.colno) from exc
    except ValueError as exc:
        # integer literals past the int -> str digit limit
        raise JsonParseError(f"Invalid JSON: {exc}", 1, 1) from exc
    except RecursionError as exc:
        raise DepthLimitError("JSON input is nested too deeply") from exc


def json_to_php(text: str, *, class_key: str = DEFAULT_CLASS_KEY) -> str:
    """Serialize JSON text to PHP serialized text.

    Objects with a string ``class_key`` member become PHP objects.
    """
    return dumps(_parse_json(text), class_key=class_key)


def _looks_like_literal(text: str) -> bool:
    stripped = text.lstrip().lower()
    if "=>" in text or stripped.startswith(_LITERAL_HINTS):
        return True
    return stripped.rstrip() in ("inf", "-inf", "nan")


def source_to_php(text: str, *, class_key: str = DEFAULT_CLASS_KEY) -> str:
    """Serialize JSON or PHP literal text to PHP serialized text.

    JSON is tried first. When it fails, the text is read as a PHP literal; if
    that fails too, the error of whichever syntax the text resembles is raised.
    """
    try:
        value = _parse_json(text)
    except JsonParseError as json_error:
        try:
            value = parse_literal(text, class_key=class_key)
        except LiteralSyntaxError as literal_error:
            if _looks_like_literal(text):
                raise literal_error from None
            raise json_error from None
    return dumps(value, class_key=class_key)


def php_to_json(
    text: str,
    *,
    indent: Optional[int] = 2,
    allow_nan: bool = True,
    strict: bool = True,
    class_key: str = DEFAULT_CLASS_KEY,
) -> str:
    """Deserialize PHP serialized text and pretty-print it as JSON.

    PHP objects come out as JSON objects whose ``class_key`` member holds the
    class name. Non-finite floats are written as ``Infinity``/``NaN`` unless
    ``allow_nan`` is False, in which case they raise ``UnsupportedTypeError``.
    """
    value = loads(text, strict=strict, class_key=class_key)
    return render_json(value, indent=indent, allow_nan=allow_nan)


def php_to_literal(
    text: str,
    *,
    indent: int = 4,
    strict: bool = True,
    class_key: str = DEFAULT_CLASS_KEY,
) -> str:
    """Deserialize PHP serialized text and render it as PHP literal syntax."""
    value = loads(text, strict=strict, class_key=class_key)
    return dump_literal(value, indent=indent, class_key=class_key)


_CONVERTERS: Dict[str, Callable[..., str]] = {
    "php": source_to_php,
    "json": php_to_json,
    "literal": php_to_literal,
}


def convert(
    text: str, target: str = "php", *, class_key: str = DEFAULT_CLASS_KEY
) -> Conversion:
    """Convert one pane's text for the other pane.

    ``target`` names the output format: ``"php"`` (input is JSON or a PHP
    literal), ``"json"`` or ``"literal"`` (input is PHP serialized text).
    Blank input clears the output.
    """
    try:
        converter = _CONVERTERS[target]
    except KeyError:
        raise ValueError(
            f"target must be one of {sorted(_CONVERTERS)}, got {target!r}"
        ) from None
    if not text.strip():
        return Conversion("")
    try:
        output = converter(text, class_key=class_key)
    except PhpSerializeError as exc:
        logger.debug("Conversion to %s failed: %s", target, exc)
        return Conversion("", f"Error: {exc}")
    return Conversion(output)
