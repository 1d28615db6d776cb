"""
Unit tests for the model catalog and registry.
"""

import pytest

from imagehub.utils.model_registry import (
    ALL_MODELS,
    Model,
    ModelMeta,
    ModelRegistry,
    ParameterDefinition,
    Provider,
    get_model_registry,
    validate_models,
)


def _model(model_id="m-1", **meta):
    return Model(
        id=model_id,
        name=f"Model {model_id}",
        description="",
        category="绘画模型",
        provider=Provider.REST_IMAGE_API,
        input_schema=(
            ParameterDefinition("prompt", "string", required=True),
            ParameterDefinition("size", "string"),
        ),
        meta=ModelMeta(**meta),
    )


class TestCatalog:
    """Built-in catalog invariants."""

    def test_catalog_is_valid(self):
        validate_models(ALL_MODELS)

    def test_ids_are_unique(self):
        ids = [m.id for m in ALL_MODELS]
        assert len(ids) == len(set(ids))

    def test_allow_lists_reference_schema_keys(self):
        for model in ALL_MODELS:
            keys = set(model.input_keys())
            assert set(model.meta.generation_params) <= keys, model.id
            assert set(model.meta.edit_params) <= keys, model.id

    def test_every_provider_has_a_model(self):
        providers = {m.provider for m in ALL_MODELS}
        assert providers == set(Provider)

    def test_upscaler_needs_image_not_prompt(self):
        upscaler = get_model_registry().by_id("image-upscale")
        assert upscaler.meta.requires_image is True
        assert upscaler.meta.requires_prompt is False


class TestValidation:
    """validate_models() rejects inconsistent catalogs."""

    def test_duplicate_id_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            validate_models([_model("dup"), _model("dup")])

    def test_unknown_allow_list_key_rejected(self):
        with pytest.raises(ValueError, match="unknown keys"):
            validate_models([_model(generation_params=("size", "quality"))])

    def test_unknown_parameter_type_rejected(self):
        with pytest.raises(ValueError):
            ParameterDefinition("x", "color")


class TestRegistry:
    """Lookup and grouping."""

    def test_singleton(self):
        assert get_model_registry() is get_model_registry()

    def test_list_keeps_catalog_order(self):
        assert [m.id for m in get_model_registry().list()] == [m.id for m in ALL_MODELS]

    def test_by_id_unknown_returns_none(self):
        assert get_model_registry().by_id("no-such-model") is None

    def test_resolve_model_by_route_id(self):
        model = get_model_registry().resolve_model("google-gemini-2.5-flash-image-preview")
        assert model.id == "google/gemini-2.5-flash-image-preview"

    def test_resolve_model_by_name(self):
        assert get_model_registry().resolve_model("GPT Image 1").id == "gpt-image-1"

    def test_categories_in_first_seen_order(self):
        registry = ModelRegistry.from_models([
            _model("a"),
            Model(id="b", name="B", description="", category="多模态模型", provider=Provider.CHAT_MULTIMODAL),
            _model("c"),
        ])
        categories = registry.categories()
        assert [c.title for c in categories] == ["绘画模型", "多模态模型"]
        assert [m.id for m in categories[0].models] == ["a", "c"]

    def test_from_models_is_not_the_singleton(self):
        registry = ModelRegistry.from_models([_model("solo")])
        assert registry is not get_model_registry()
        assert registry.by_id("gpt-image-1") is None

    def test_by_provider(self):
        managed = get_model_registry().by_provider(Provider.MANAGED_SUBSCRIPTION)
        assert managed and all(m.provider == Provider.MANAGED_SUBSCRIPTION for m in managed)

    def test_schema_defaults(self):
        model = get_model_registry().by_id("doubao-seedream-4-0")
        assert model.schema_defaults()["size_tier"] == "2K"
