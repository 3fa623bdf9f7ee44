"""
Unit tests for model-output JSON decoding.
"""

import pytest

from datalive.core.exceptions import ParseError
from datalive.core.models import AnalysisResult, AuthDetails
from datalive.services.ai.json_decoder import (
    Decoded,
    ParseFailed,
    decode_model_json,
    require_model,
    require_object,
    strip_code_fences,
)


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n[1, 2]\n```') == "[1, 2]"

    def test_unterminated_fence(self):
        assert strip_code_fences('```json\n{"a": 1}') == '{"a": 1}'

    def test_plain_text_untouched(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestDecode:
    def test_decoded(self):
        result = decode_model_json('```json\n{"apis": []}\n```')
        assert isinstance(result, Decoded)
        assert result.ok
        assert result.value == {"apis": []}

    def test_parse_failed_keeps_raw_text(self):
        result = decode_model_json("Sorry, I cannot help with that.")
        assert isinstance(result, ParseFailed)
        assert not result.ok
        assert result.raw_text == "Sorry, I cannot help with that."

    def test_none_is_parse_failure(self):
        assert isinstance(decode_model_json(None), ParseFailed)

    def test_object_surrounded_by_prose(self):
        result = decode_model_json('Here is the analysis:\n{"apis": [{"name": "Pets"}]}\nLet me know if you need more.')
        assert isinstance(result, Decoded)
        assert result.value == {"apis": [{"name": "Pets"}]}

    def test_fence_inside_prose(self):
        result = decode_model_json('Sure!\n```json\n{"limit": 10}\n```')
        assert result.value == {"limit": 10}

    def test_array_surrounded_by_prose(self):
        assert decode_model_json("Values: [1, 2, 3] as requested").value == [1, 2, 3]

    def test_stray_bracket_before_object(self):
        result = decode_model_json('See [the docs] for details: {"a": 1}')
        assert result.value == {"a": 1}

    def test_unbalanced_brackets_fail(self):
        result = decode_model_json('Almost: {"a": [1, 2}')
        assert isinstance(result, ParseFailed)


class TestRequire:
    def test_require_object_rejects_arrays(self):
        with pytest.raises(ParseError):
            require_object("[1, 2, 3]")

    def test_require_object_carries_raw_text(self):
        with pytest.raises(ParseError) as exc_info:
            require_object("not json")
        assert exc_info.value.raw_text == "not json"

    def test_require_model_reads_camel_case(self):
        result = require_model(
            '{"apis": [{"name": "Pets", "baseUrl": "https://pets.example.com", '
            '"endpoints": [{"method": "get", "path": "/pets", '
            '"requiredParams": [{"name": "limit", "type": "query", "dataType": "number"}]}]}]}',
            AnalysisResult,
        )
        api = result.apis[0]
        assert api.base_url == "https://pets.example.com"
        assert api.endpoints[0].method == "GET"
        assert api.endpoints[0].required_params[0].data_type == "number"

    def test_require_model_null_lists_become_empty(self):
        result = require_model('{"apis": null, "dataModels": null}', AnalysisResult)
        assert result.apis == []
        assert result.data_models == []

    def test_header_auth_without_field_name_is_parse_error(self):
        with pytest.raises(ParseError):
            require_model('{"authType": "api_key", "location": "header", "fieldName": ""}', AuthDetails)

    def test_auth_none_needs_no_field_name(self):
        details = require_model('{"authType": "none", "location": "header"}', AuthDetails)
        assert details.auth_type == "none"
