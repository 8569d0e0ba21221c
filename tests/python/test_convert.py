"""Tests for the JSON / literal <-> PHP serialized conversion driver."""

import logging

import pytest


class TestJsonToPhp:
    """JSON text to PHP serialized text."""

    def test_map(self):
        from php_serialize.convert import json_to_php

        assert json_to_php('{"name":"John","age":30}') == 'a:2:{s:4:"name";s:4:"John";s:3:"age";i:30;}'

    def test_object(self):
        from php_serialize.convert import json_to_php

        text = '{"__class":"User","id":123,"name":"John"}'
        assert json_to_php(text) == 'O:4:"User":2:{s:2:"id";i:123;s:4:"name";s:4:"John";}'

    def test_floats_stay_floats(self):
        from php_serialize.convert import json_to_php

        assert json_to_php("[1.0, 2.5, 3]") == "a:3:{i:0;d:1;i:1;d:2.5;i:2;i:3;}"

    def test_non_finite_tokens(self):
        from php_serialize.convert import json_to_php

        assert json_to_php("Infinity") == "d:INF;"
        assert json_to_php("-Infinity") == "d:-INF;"
        assert json_to_php('{"x": NaN}') == 'a:1:{s:1:"x";d:NAN;}'

    def test_invalid_json(self):
        from php_serialize import JsonParseError
        from php_serialize.convert import json_to_php

        with pytest.raises(JsonParseError) as info:
            json_to_php('{"a":}')
        assert (info.value.lineno, info.value.colno) == (1, 6)
        assert str(info.value).startswith("Invalid JSON: Expecting value")

    def test_integer_past_digit_limit(self):
        from php_serialize import JsonParseError
        from php_serialize.convert import json_to_php

        with pytest.raises(JsonParseError, match="Invalid JSON"):
            json_to_php("1" * 5000)

    def test_custom_class_key(self):
        from php_serialize.convert import json_to_php

        assert json_to_php('{"@type":"A"}', class_key="@type") == 'O:1:"A":0:{}'


class TestSourceToPhp:
    """JSON or PHP literal text to PHP serialized text."""

    def test_json(self):
        from php_serialize.convert import source_to_php

        assert source_to_php('["a"]') == 'a:1:{i:0;s:1:"a";}'

    def test_literal_infinity(self):
        from php_serialize.convert import source_to_php

        assert source_to_php("['limit' => INF]") == 'a:1:{s:5:"limit";d:INF;}'
        assert source_to_php("INF") == "d:INF;"
        assert source_to_php("-INF") == "d:-INF;"
        assert source_to_php("NAN") == "d:NAN;"

    def test_literal_object(self):
        from php_serialize.convert import source_to_php

        assert source_to_php("new User(['id' => 1])") == 'O:4:"User":1:{s:2:"id";i:1;}'

    def test_json_error_for_json_like_input(self):
        from php_serialize import JsonParseError
        from php_serialize.convert import source_to_php

        with pytest.raises(JsonParseError):
            source_to_php('{"a": }')

    def test_literal_error_for_literal_like_input(self):
        from php_serialize import LiteralSyntaxError
        from php_serialize.convert import source_to_php

        with pytest.raises(LiteralSyntaxError):
            source_to_php("['a' => ]")
        with pytest.raises(LiteralSyntaxError):
            source_to_php("new User(")


class TestPhpToJson:
    """PHP serialized text to pretty JSON."""

    def test_pretty(self):
        from php_serialize.convert import php_to_json

        text = 'a:2:{s:4:"name";s:4:"John";s:3:"age";i:30;}'
        assert php_to_json(text) == '{\n  "name": "John",\n  "age": 30\n}'

    def test_compact(self):
        from php_serialize.convert import php_to_json

        assert php_to_json("a:2:{i:0;i:1;i:1;i:2;}", indent=None) == "[1,2]"

    def test_object(self):
        from php_serialize.convert import php_to_json

        text = 'O:4:"User":1:{s:2:"id";i:1;}'
        assert php_to_json(text, indent=None) == '{"__class":"User","id":1}'

    def test_non_finite(self):
        from php_serialize import UnsupportedTypeError
        from php_serialize.convert import php_to_json

        assert php_to_json("d:INF;") == "Infinity"
        assert php_to_json("a:1:{i:0;d:NAN;}", indent=None) == "[NaN]"
        with pytest.raises(UnsupportedTypeError, match="INF"):
            php_to_json("d:INF;", allow_nan=False)

    def test_cycle(self):
        from php_serialize import CircularReferenceError
        from php_serialize.convert import php_to_json

        with pytest.raises(CircularReferenceError):
            php_to_json("a:1:{i:0;r:1;}")

    def test_non_utf8_bytes_mode_not_needed(self):
        """Invalid UTF-8 is replaced, so JSON output always works."""
        from php_serialize.convert import php_to_json

        assert php_to_json('s:1:"\udcff";') == '"�"'

    def test_lenient(self):
        from php_serialize import LengthMismatchError
        from php_serialize.convert import php_to_json

        with pytest.raises(LengthMismatchError):
            php_to_json('s:9:"short";')
        assert php_to_json('s:9:"short";', strict=False) == '"short"'


class TestPhpToLiteral:
    """PHP serialized text to PHP literal syntax."""

    def test_object(self):
        from php_serialize.convert import php_to_literal

        text = 'O:4:"User":1:{s:2:"id";i:1;}'
        assert php_to_literal(text) == "new User([\n    'id' => 1,\n])"

    def test_non_finite(self):
        from php_serialize.convert import php_to_literal

        assert php_to_literal('a:1:{s:5:"limit";d:INF;}', indent=2) == "[\n  'limit' => INF,\n]"

    def test_literal_roundtrip(self):
        from php_serialize.convert import php_to_literal, source_to_php

        text = 'a:2:{s:1:"a";d:-INF;s:1:"b";O:1:"X":1:{s:1:"c";a:0:{}}}'
        assert source_to_php(php_to_literal(text)) == text


class TestConvert:
    """The form boundary: never raises for bad input."""

    def test_to_php(self):
        from php_serialize import Conversion, convert

        result = convert('{"a":1}')
        assert result == Conversion('a:1:{s:1:"a";i:1;}')
        assert result.ok
        assert result.error is None

    def test_to_json(self):
        from php_serialize import convert

        result = convert('a:1:{s:1:"a";i:1;}', "json")
        assert result.output == '{\n  "a": 1\n}'
        assert result.ok

    def test_to_literal(self):
        from php_serialize import convert

        assert convert("a:1:{i:0;b:1;}", "literal").output == "[\n    true,\n]"

    @pytest.mark.parametrize("target", ["php", "json", "literal"])
    def test_blank_input(self, target):
        from php_serialize import Conversion, convert

        assert convert("", target) == Conversion("")
        assert convert("  \n ", target) == Conversion("")

    def test_length_mismatch(self):
        from php_serialize import convert

        result = convert('s:10:"short";', "json")
        assert result.output == ""
        assert not result.ok
        assert result.error.startswith("Error: String too short")

    def test_format_error(self):
        from php_serialize import convert

        result = convert("garbage", "json")
        assert result.output == ""
        assert result.error == (
            "Error: Unsupported or invalid serialized format at offset 0: 'garbage'"
        )

    def test_reference_error(self):
        from php_serialize import convert

        result = convert("a:1:{i:0;r:9;}", "json")
        assert result.error.startswith("Error: Reference 9")

    def test_invalid_json(self):
        from php_serialize import convert

        result = convert('{"a": tru}', "php")
        assert result.output == ""
        assert result.error.startswith("Error: Invalid JSON")
        assert "(line 1, column 7)" in result.error

    def test_cycle(self):
        from php_serialize import convert

        for target in ("json", "literal"):
            result = convert("a:1:{i:0;r:1;}", target)
            assert result.output == ""
            assert "circular reference" in result.error

    @pytest.mark.parametrize(
        "text", ["1" * 5000, "[" + "1" * 5000 + "]", "['k' => " + "1" * 5000 + "]"]
    )
    def test_integer_past_digit_limit(self, text):
        from php_serialize import convert

        result = convert(text, "php")
        assert result.output == ""
        assert result.error.startswith("Error: Invalid")

    def test_unknown_target(self):
        from php_serialize import convert

        with pytest.raises(ValueError, match="target"):
            convert("N;", "xml")

    def test_failure_is_logged(self, caplog):
        from php_serialize import convert

        with caplog.at_level(logging.DEBUG, logger="php_serialize"):
            convert("garbage", "json")
        assert "Conversion to json failed" in caplog.text

    def test_calls_are_independent(self):
        from php_serialize import convert

        assert not convert("a:1:{i:0;r:5;}", "json").ok
        assert convert("a:2:{i:0;a:0:{}i:1;r:2;}", "json").output == "[\n  [],\n  []\n]"
