"""Exception types raised by php_serialize."""

from typing import Optional


class PhpSerializeError(ValueError):
    """Base class for every error raised by this package."""


class UnsupportedTypeError(PhpSerializeError, TypeError):
    """A value (or dict key) has no PHP serialized representation."""

    def __init__(self, message: str, value_type: Optional[type] = None):
        super().__init__(message)
        self.value_type = value_type


class DepthLimitError(PhpSerializeError):
    """Nesting exceeded the configured ``max_depth``."""


class CircularReferenceError(PhpSerializeError):
    """A cyclic value graph was given to a format that cannot express cycles."""


class _LocatedError(PhpSerializeError):
    def __init__(self, message: str, lineno: int, colno: int):
        super().__init__(f"{message} (line {lineno}, column {colno})")
        self.lineno = lineno
        self.colno = colno


class JsonParseError(_LocatedError):
    """The JSON-side input is not valid JSON."""


class LiteralSyntaxError(_LocatedError):
    """The input is not valid PHP array literal syntax."""


class PhpDeserializeError(PhpSerializeError):
    """Exception raised when PHP deserialization fails.

    ``position`` is the byte offset into the (unescaped) input where the
    problem was detected.
    """

    def __init__(self, message: str, position: int = 0):
        super().__init__(message)
        self.position = position


class FormatError(PhpDeserializeError):
    """Unknown token or malformed boolean/integer/float/length syntax."""


class LengthMismatchError(PhpDeserializeError):
    """A string's declared byte length does not match its payload."""


class PhpReferenceError(PhpDeserializeError):
    """An ``r:``/``R:`` token points at no previously parsed composite."""
