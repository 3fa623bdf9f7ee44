"""
Unit tests for parameter bucketing and inference.
"""

import pytest

from datalive.core.models import EndpointSpec
from datalive.services.execution.parameter_inferencer import ParameterInferencer

pytestmark = pytest.mark.asyncio

ENDPOINT = EndpointSpec.model_validate(
    {
        "method": "GET",
        "path": "/search",
        "description": "Search records",
        "requiredParams": [
            {"name": "a", "type": "query", "dataType": "string", "description": "First"},
            {"name": "b", "type": "query", "dataType": "number", "description": "Second"},
        ],
        "optionalParams": [{"name": "page", "type": "query", "dataType": "number"}],
    }
)


class TestResolve:
    async def test_infers_only_missing_required(self, orchestrator, fake_provider):
        fake_provider.queue('{"b": 42, "a": "ignored", "c": "extra"}')

        resolved = await ParameterInferencer(orchestrator).resolve(ENDPOINT, {"a": "x"}, "o")

        assert resolved.query == {"a": "x", "b": 42}
        assert resolved.inferred == ["b"]
        assert resolved.body == {}
        assert resolved.path == {}
        assert "- b (number): Second" in fake_provider.calls[0]["prompt"]

    async def test_inference_failure_keeps_user_values(self, orchestrator, fake_provider):
        # No scripted replies: primary and fallback both fail
        resolved = await ParameterInferencer(orchestrator).resolve(ENDPOINT, {"a": "x"}, "o")

        assert resolved.query == {"a": "x"}
        assert resolved.inferred == []
        assert len(fake_provider.calls) == 2

    async def test_unparseable_inference_keeps_user_values(self, orchestrator, fake_provider):
        fake_provider.queue("b should probably be 10")
        resolved = await ParameterInferencer(orchestrator).resolve(ENDPOINT, {"a": "x"}, "o")
        assert resolved.query == {"a": "x"}

    async def test_no_model_call_when_nothing_missing(self, orchestrator, fake_provider):
        resolved = await ParameterInferencer(orchestrator).resolve(
            ENDPOINT, {"a": "x", "b": 1, "page": 2}, "o"
        )
        assert resolved.query == {"a": "x", "b": 1, "page": 2}
        assert fake_provider.calls == []

    async def test_none_value_counts_as_missing(self, orchestrator, fake_provider):
        fake_provider.queue('{"a": "from model", "b": 7}')
        resolved = await ParameterInferencer(orchestrator).resolve(ENDPOINT, {"a": None}, "o")
        assert resolved.query == {"a": "from model", "b": 7}
        assert sorted(resolved.inferred) == ["a", "b"]

    async def test_buckets_by_declared_location(self, orchestrator):
        endpoint = EndpointSpec.model_validate(
            {
                "method": "POST",
                "path": "/users/{id}",
                "requiredParams": [
                    {"name": "id", "type": "path"},
                    {"name": "email", "type": "body"},
                ],
                "optionalParams": [
                    {"name": "X-Trace", "type": "header"},
                    {"name": "notify", "type": "query"},
                ],
            }
        )
        resolved = await ParameterInferencer(orchestrator).resolve(
            endpoint,
            {"id": 7, "email": "a@b.c", "X-Trace": "t", "notify": True, "undeclared": 1},
            "o",
        )
        assert resolved.path == {"id": 7}
        assert resolved.body == {"email": "a@b.c"}
        assert resolved.query == {"notify": True}
