"""
PHP serialize/unserialize for Python.

This module converts between Python objects and the text produced by PHP's
``serialize()``, in both directions.

Features:
    - UTF-8 byte-length aware strings
    - PHP objects as dicts tagged with a ``"__class"`` key
    - Shared and circular references (``r:<n>;``) on both sides
    - ``INF``, ``-INF`` and ``NAN`` floats
    - Automatic unescaping of database-exported (CSV-quoted) data

Example:
    >>> from php_serialize import loads, dumps
    >>> loads(b'a:2:{s:4:"name";s:5:"Alice";s:3:"age";i:30;}')
    {'name': 'Alice', 'age': 30}

    >>> dumps({"__class": "User", "id": 123})
    'O:4:"User":1:{s:2:"id";i:123;}'

    >>> from php_serialize import loads_json
    >>> loads_json(b'a:2:{s:4:"name";s:5:"Alice";s:3:"age";i:30;}')
    '{"name":"Alice","age":30}'
"""

import logging

from php_serialize._core import (
    dumps,
    is_serialized,
    loads,
    loads_json,
    preprocess,
    version,
)
from php_serialize._errors import (
    CircularReferenceError,
    DepthLimitError,
    FormatError,
    JsonParseError,
    LengthMismatchError,
    LiteralSyntaxError,
    PhpDeserializeError,
    PhpReferenceError,
    PhpSerializeError,
    UnsupportedTypeError,
)
from php_serialize.convert import Conversion, convert
from php_serialize.literal import dump_literal, parse_literal

logging.getLogger(__name__).addHandler(logging.NullHandler())

serialize = dumps
deserialize = loads

__all__ = [
    "CircularReferenceError",
    "Conversion",
    "DepthLimitError",
    "FormatError",
    "JsonParseError",
    "LengthMismatchError",
    "LiteralSyntaxError",
    "PhpDeserializeError",
    "PhpReferenceError",
    "PhpSerializeError",
    "UnsupportedTypeError",
    "convert",
    "deserialize",
    "dump_literal",
    "dumps",
    "is_serialized",
    "loads",
    "loads_json",
    "parse_literal",
    "preprocess",
    "serialize",
    "version",
    "__version__",
]

__version__ = version()
