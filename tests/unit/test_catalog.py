"""
Unit tests for the model catalog.
"""

import pytest

from datalive.core.exceptions import NotFoundError
from datalive.core.models import Provider
from datalive.services.ai.catalog import (
    DEFAULT_MODEL_ID,
    MODEL_TABLE,
    CatalogEmptyError,
    ModelCatalog,
    ModelDescriptor,
    ModelNotFoundError,
)


class TestResolve:
    def test_every_known_id_resolves_to_its_provider(self):
        catalog = ModelCatalog()
        for descriptor in MODEL_TABLE:
            resolved = catalog.resolve(descriptor.id)
            assert resolved.provider == descriptor.provider
            assert isinstance(resolved.provider, Provider)

    def test_unknown_id_raises_not_found(self):
        catalog = ModelCatalog()
        with pytest.raises(ModelNotFoundError) as exc_info:
            catalog.resolve("gpt-17-ultra")
        assert isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.model_id == "gpt-17-ultra"

    def test_get_returns_none_for_unknown(self):
        assert ModelCatalog().get("nope") is None

    def test_table_covers_all_providers(self):
        catalog = ModelCatalog()
        assert len(catalog) == 12
        assert {m.id for m in catalog.list_by_provider(Provider.ANTHROPIC)} == {
            "claude-3-5-sonnet-20241022",
            "claude-3-5-opus-20250115",
            "claude-3-5-haiku-20241022",
        }
        assert [m.id for m in catalog.list_by_provider("deepseek")] == ["deepseek-chat"]


class TestDefault:
    def test_exactly_one_default(self):
        catalog = ModelCatalog()
        defaults = [m for m in catalog.list_all() if m.is_default]
        assert len(defaults) == 1
        assert catalog.get_default() == defaults[0]
        assert catalog.get_default().id == DEFAULT_MODEL_ID

    def test_register_new_default_demotes_previous(self):
        catalog = ModelCatalog()
        catalog.register(
            "local-model",
            ModelDescriptor(id="local-model", provider=Provider.OPENAI, name="Local", is_default=True),
        )
        defaults = [m.id for m in catalog.list_all() if m.is_default]
        assert defaults == ["local-model"]
        assert catalog.get_default().id == "local-model"
        assert catalog.get(DEFAULT_MODEL_ID).is_default is False

    def test_without_flag_falls_back_to_hardcoded_id(self):
        catalog = ModelCatalog(
            [
                ModelDescriptor(id="gpt-4o", provider=Provider.OPENAI, name="GPT-4o"),
                ModelDescriptor(id=DEFAULT_MODEL_ID, provider=Provider.GOOGLE, name="Gemini"),
            ]
        )
        assert catalog.get_default().id == DEFAULT_MODEL_ID

    def test_without_flag_or_hardcoded_id_uses_first_entry(self):
        catalog = ModelCatalog([ModelDescriptor(id="gpt-4o", provider=Provider.OPENAI, name="GPT-4o")])
        assert catalog.get_default().id == "gpt-4o"

    def test_empty_catalog_is_fatal(self):
        with pytest.raises(CatalogEmptyError):
            ModelCatalog([]).get_default()


class TestAvailability:
    def test_models_without_provider_key_are_disabled(self):
        catalog = ModelCatalog().with_available_providers([Provider.GOOGLE])
        enabled = catalog.list_enabled()
        assert enabled
        assert all(m.provider == Provider.GOOGLE for m in enabled)
        assert catalog.get("gpt-4o").enabled is False

    def test_availability_copy_leaves_original_untouched(self):
        original = ModelCatalog()
        original.with_available_providers([])
        assert original.get("gpt-4o").enabled is True


class TestEstimates:
    def test_estimate_tokens(self):
        assert ModelCatalog.estimate_tokens("a" * 400) == 100

    def test_estimate_cost_unknown_model(self):
        with pytest.raises(ModelNotFoundError):
            ModelCatalog().estimate_cost("unknown", 1000)
