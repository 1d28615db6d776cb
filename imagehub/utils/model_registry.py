"""
ImageHub - Model Registry
Hardcoded model catalog for every supported image-generation provider

Each provider serves a different wire protocol, so every model declares its
provider tag, its parameter schema and the metadata that shapes requests
(which keys are forwarded for generate vs. edit, per-operation defaults).
"""

from __future__ import annotations
from enum import Enum
from typing import Optional, Any, List
from dataclasses import dataclass, field


class Provider(str, Enum):
    """Provider families a model can be routed to"""
    REST_IMAGE_API = "rest-image-api"
    UPSCALE_API = "upscale-api"
    CHAT_MULTIMODAL = "chat-multimodal"
    MANAGED_SUBSCRIPTION = "managed-subscription"
    CUSTOM_ENDPOINT = "custom-endpoint"


PARAMETER_TYPES = ("string", "number", "boolean", "array", "object", "enum", "image", "file", "json")


@dataclass(frozen=True)
class ParameterDefinition:
    """Definition of a model parameter"""
    key: str
    type: str  # one of PARAMETER_TYPES
    description: str = ""
    required: bool = False
    default: Any = None
    options: tuple = None
    minimum: float = None
    maximum: float = None

    def __post_init__(self):
        if self.type not in PARAMETER_TYPES:
            raise ValueError(f"Unknown parameter type for '{self.key}': {self.type}")


@dataclass(frozen=True)
class ModelMeta:
    """Operation-shaping metadata"""
    generation_params: tuple = ()
    edit_params: tuple = ()
    generation_defaults: dict = field(default_factory=dict)
    edit_defaults: dict = field(default_factory=dict)
    max_upload_images: int = 0
    requires_prompt: bool = True
    requires_image: bool = False
    hide_parameters: bool = False
    hide_prompt: bool = False
    edit_model_id: str = ""  # wire model id for edit calls, when it differs
    image_argument: str = ""  # managed provider argument receiving image URLs


@dataclass(frozen=True)
class Model:
    """Configuration for a single selectable model"""
    id: str
    name: str
    description: str
    category: str
    provider: Provider
    input_schema: tuple = ()
    output_schema: tuple = ()
    meta: ModelMeta = field(default_factory=ModelMeta)
    api_endpoint: str = ""  # custom-endpoint path or absolute URL
    is_third_party: bool = False
    doc_url: str = ""

    def input_keys(self) -> List[str]:
        return [p.key for p in self.input_schema]

    def schema_defaults(self) -> dict:
        """Form defaults declared in the input schema (key -> default)"""
        return {p.key: p.default for p in self.input_schema if p.default is not None}

    @property
    def route_id(self) -> str:
        """URL-safe id: ``google/gemini`` -> ``google-gemini``"""
        return self.id.replace("/", "-")


@dataclass(frozen=True)
class ModelCategory:
    title: str
    models: tuple


# ===== Shared output schemas =====
IMAGE_OUTPUT_SCHEMA = (
    ParameterDefinition("images", "array", "生成的图片数据"),
    ParameterDefinition("usage", "object", "API 调用计费信息"),
)

SEED_PARAM = ParameterDefinition("seed", "number", "随机种子", minimum=0, maximum=2147483647)

PAINTING_CATEGORY = "绘画模型"
MULTIMODAL_CATEGORY = "多模态模型"


# ===== REST image API models =====
REST_IMAGE_MODELS = (
    # GPT Image - generation (JSON) and edit (multipart)
    Model(
        id="gpt-image-1",
        name="GPT Image 1",
        description="OpenAI gpt-image-1 模型，支持图片生成与编辑",
        category=PAINTING_CATEGORY,
        provider=Provider.REST_IMAGE_API,
        input_schema=(
            ParameterDefinition("prompt", "string", "描述希望生成或编辑的图像内容", required=True),
            ParameterDefinition("n", "number", "一次生成的图片数量 (1-10)", default=1, minimum=1, maximum=10),
            ParameterDefinition("size", "enum", "生成的图片尺寸", default="auto",
                                options=("auto", "1024x1024", "1024x1536", "1536x1024")),
            ParameterDefinition("output_format", "enum", "输出格式 (默认 png)", default="png",
                                options=("png", "jpeg", "webp")),
            ParameterDefinition("background", "enum", "背景透明度 (png/webp 支持)", default="auto",
                                options=("auto", "transparent", "opaque")),
            ParameterDefinition("output_compression", "number", "输出压缩质量 (1-100)", minimum=1, maximum=100),
        ),
        output_schema=IMAGE_OUTPUT_SCHEMA,
        meta=ModelMeta(
            generation_params=("n", "size", "output_format", "background", "output_compression"),
            edit_params=("n", "size", "background"),
            max_upload_images=4,
        ),
    ),
    # Gemini 2.5 Flash Image (nano-banana) - prompt only
    Model(
        id="gemini-2.5-flash-image-preview",
        name="Gemini 2.5 Flash Image Preview",
        description="Google Gemini 2.5 Flash Image Preview (nano-banana) 模型",
        category=PAINTING_CATEGORY,
        provider=Provider.REST_IMAGE_API,
        input_schema=(
            ParameterDefinition("prompt", "string", "描述希望生成或编辑的图像内容", required=True),
        ),
        output_schema=IMAGE_OUTPUT_SCHEMA,
        meta=ModelMeta(max_upload_images=6),
    ),
    # FLUX Kontext Pro - seed / safety controls on both operations
    Model(
        id="flux-kontext-pro",
        name="FLUX.1 Kontext Pro",
        description="FLUX.1 Kontext Pro 图像生成与编辑，支持多图输入",
        category=PAINTING_CATEGORY,
        provider=Provider.REST_IMAGE_API,
        input_schema=(
            ParameterDefinition("prompt", "string", "描述希望生成或编辑的图像内容", required=True),
            ParameterDefinition("size", "enum", "宽高比", default="1:1",
                                options=("21:9", "16:9", "4:3", "3:2", "1:1", "2:3", "3:4", "9:16", "9:21")),
            SEED_PARAM,
            ParameterDefinition("prompt_upsampling", "boolean", "提示词增强", default=False),
            ParameterDefinition("safety_tolerance", "number", "安全容忍度 (0-6)", default=2, minimum=0, maximum=6),
            ParameterDefinition("output_format", "enum", "输出格式", default="png", options=("png", "jpeg")),
            ParameterDefinition("response_format", "enum", "返回格式", default="url", options=("url", "b64_json")),
        ),
        output_schema=IMAGE_OUTPUT_SCHEMA,
        meta=ModelMeta(
            generation_params=("size", "seed", "prompt_upsampling", "safety_tolerance", "output_format"),
            edit_params=("size", "seed", "prompt_upsampling", "safety_tolerance", "output_format",
                         "response_format"),
            generation_defaults={"size": "1:1", "output_format": "png"},
            edit_defaults={"response_format": "url"},
            max_upload_images=4,
        ),
        doc_url="https://docs.bfl.ai/kontext/kontext_image_editing",
    ),
    # Seedream 4.0 - coarse resolution tier or literal size
    Model(
        id="doubao-seedream-4-0",
        name="Seedream 4.0",
        description="Seedream 4.0 图像生成，支持 1K/2K/4K 分辨率与多图编辑",
        category=PAINTING_CATEGORY,
        provider=Provider.REST_IMAGE_API,
        input_schema=(
            ParameterDefinition("prompt", "string", "描述希望生成或编辑的图像内容", required=True),
            ParameterDefinition("size_tier", "enum", "分辨率档位", default="2K", options=("1K", "2K", "4K")),
            ParameterDefinition("size", "string", "自定义尺寸 (宽x高)，优先于分辨率档位"),
            SEED_PARAM,
            ParameterDefinition("watermark", "boolean", "添加水印", default=False),
            ParameterDefinition("response_format", "enum", "返回格式", default="url", options=("url", "b64_json")),
        ),
        output_schema=IMAGE_OUTPUT_SCHEMA,
        meta=ModelMeta(
            generation_params=("size_tier", "size", "seed", "watermark", "response_format"),
            edit_params=("size_tier", "size", "watermark", "response_format"),
            generation_defaults={"size": "2K", "watermark": False, "response_format": "url"},
            max_upload_images=10,
        ),
    ),
)


# ===== Upscale models =====
UPSCALE_MODELS = (
    Model(
        id="image-upscale",
        name="图片高清化",
        description="对已有图片进行无损放大与清晰化处理",
        category=PAINTING_CATEGORY,
        provider=Provider.UPSCALE_API,
        input_schema=(
            ParameterDefinition("type", "enum", "图片类型", default="auto",
                                options=("auto", "face", "clothing", "ecommerce")),
            ParameterDefinition("scale_factor", "enum", "放大倍数", default="auto",
                                options=("auto", "2", "4", "8", "16")),
        ),
        output_schema=(
            ParameterDefinition("images", "array", "高清化后的图片数据"),
        ),
        meta=ModelMeta(
            generation_params=("type", "scale_factor"),
            max_upload_images=1,
            requires_prompt=False,
            requires_image=True,
            hide_parameters=True,
            hide_prompt=True,
        ),
    ),
)


# ===== Chat-multimodal models (OpenRouter) =====
CHAT_MODELS = (
    Model(
        id="google/gemini-2.5-flash-image-preview",
        name="Google Gemini 2.5 Flash Image Preview",
        description="Google最新的生成图片模型nano-banana",
        category=MULTIMODAL_CATEGORY,
        provider=Provider.CHAT_MULTIMODAL,
        input_schema=(
            ParameterDefinition("prompt", "string", "输入的提示词或问题", required=True),
            ParameterDefinition("image_url", "string", "图像URL（可选）"),
            ParameterDefinition("max_tokens", "number", "最大令牌数", default=1000),
            ParameterDefinition("temperature", "number", "温度参数", default=0.7),
        ),
        output_schema=(
            ParameterDefinition("content", "string", "生成的回复内容"),
            ParameterDefinition("usage", "object", "API使用统计"),
        ),
        meta=ModelMeta(
            generation_params=("image_url", "max_tokens", "temperature"),
            edit_params=("image_url", "max_tokens", "temperature"),
            max_upload_images=4,
        ),
        is_third_party=True,
    ),
)


# ===== Managed subscription models (fal) =====
MANAGED_MODELS = (
    Model(
        id="fal-ai/flux/dev",
        name="FLUX.1 [dev]",
        description="FLUX.1 [dev] 文生图，队列执行",
        category=PAINTING_CATEGORY,
        provider=Provider.MANAGED_SUBSCRIPTION,
        input_schema=(
            ParameterDefinition("prompt", "string", "提示词", required=True),
            ParameterDefinition("image_size", "enum", "图片尺寸", default="landscape_4_3",
                                options=("square_hd", "square", "portrait_4_3", "portrait_16_9",
                                         "landscape_4_3", "landscape_16_9")),
            ParameterDefinition("num_inference_steps", "number", "推理步数", default=28, minimum=1, maximum=50),
            ParameterDefinition("guidance_scale", "number", "引导系数", default=3.5, minimum=1, maximum=20),
            ParameterDefinition("num_images", "number", "生成数量", default=1, minimum=1, maximum=4),
            SEED_PARAM,
            ParameterDefinition("enable_safety_checker", "boolean", "启用安全检查", default=True),
        ),
        output_schema=IMAGE_OUTPUT_SCHEMA,
        meta=ModelMeta(
            generation_params=("image_size", "num_inference_steps", "guidance_scale", "num_images", "seed",
                               "enable_safety_checker"),
            generation_defaults={"num_inference_steps": 28, "guidance_scale": 3.5},
        ),
        is_third_party=True,
        doc_url="https://fal.ai/models/fal-ai/flux/dev/api",
    ),
    Model(
        id="fal-ai/flux-pro/kontext",
        name="FLUX.1 Kontext [pro] 编辑",
        description="FLUX.1 Kontext [pro] 基于参考图的图像编辑，队列执行",
        category=PAINTING_CATEGORY,
        provider=Provider.MANAGED_SUBSCRIPTION,
        input_schema=(
            ParameterDefinition("prompt", "string", "编辑指令", required=True),
            ParameterDefinition("image_url", "image", "参考图片", required=True),
            ParameterDefinition("guidance_scale", "number", "引导系数", default=3.5, minimum=1, maximum=20),
            ParameterDefinition("num_images", "number", "生成数量", default=1, minimum=1, maximum=4),
            SEED_PARAM,
            ParameterDefinition("safety_tolerance", "enum", "安全容忍度", default="2",
                                options=("1", "2", "3", "4", "5", "6")),
        ),
        output_schema=IMAGE_OUTPUT_SCHEMA,
        meta=ModelMeta(
            generation_params=("guidance_scale", "num_images", "seed", "safety_tolerance"),
            max_upload_images=1,
            requires_image=True,
            image_argument="image_url",
        ),
        is_third_party=True,
        doc_url="https://fal.ai/models/fal-ai/flux-pro/kontext/api",
    ),
)


# ===== Custom endpoint models =====
CUSTOM_ENDPOINT_MODELS = (
    Model(
        id="seedream-3-0-t2i",
        name="Seedream 文生图 3.0",
        description="Seedream 3.0 文生图模型，专用接口",
        category=PAINTING_CATEGORY,
        provider=Provider.CUSTOM_ENDPOINT,
        input_schema=(
            ParameterDefinition("prompt", "string", "提示词", required=True),
            ParameterDefinition("size", "string", "尺寸(宽x高)", default="1024x1024"),
            SEED_PARAM,
            ParameterDefinition("guidance_scale", "number", "引导系数", default=2.5, minimum=1, maximum=10),
            ParameterDefinition("watermark", "boolean", "添加水印", default=True),
        ),
        output_schema=IMAGE_OUTPUT_SCHEMA,
        meta=ModelMeta(
            generation_params=("size", "seed", "guidance_scale", "watermark"),
            generation_defaults={"size": "1024x1024"},
        ),
        api_endpoint="/v1/images/seedream-3.0",
    ),
)


# Append-only catalog, in display order
ALL_MODELS = (
    REST_IMAGE_MODELS
    + UPSCALE_MODELS
    + CHAT_MODELS
    + MANAGED_MODELS
    + CUSTOM_ENDPOINT_MODELS
)


def validate_models(models) -> None:
    """
    Check catalog invariants

    Raises:
        ValueError: duplicate ids, or allow-lists naming keys missing from the input schema
    """
    seen = set()
    for model in models:
        if model.id in seen:
            raise ValueError(f"Duplicate model id: {model.id}")
        seen.add(model.id)

        keys = set(model.input_keys())
        for list_name in ("generation_params", "edit_params"):
            unknown = set(getattr(model.meta, list_name)) - keys
            if unknown:
                raise ValueError(
                    f"Model {model.id}: meta.{list_name} references unknown keys {sorted(unknown)}"
                )


class ModelRegistry:
    """Registry for all supported models"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load(ALL_MODELS)
        return cls._instance

    @classmethod
    def from_models(cls, models) -> "ModelRegistry":
        """Build a standalone (non-singleton) registry, e.g. for tests"""
        registry = super().__new__(cls)
        registry._load(tuple(models))
        return registry

    def _load(self, models: tuple):
        validate_models(models)
        self._models = models
        self._by_id = {m.id: m for m in models}

    def list(self) -> List[Model]:
        """All models, in catalog order"""
        return list(self._models)

    def by_id(self, model_id: str) -> Optional[Model]:
        """Model by id, or None"""
        return self._by_id.get(model_id)

    def get_model_by_name(self, name: str) -> Optional[Model]:
        for model in self._models:
            if model.name == name:
                return model
        return None

    def resolve_model(self, identifier: str) -> Optional[Model]:
        """
        Resolve model by ID, route id or display name.
        Routes replace ``/`` with ``-``, so both spellings are accepted.
        """
        model = self.by_id(identifier)
        if model:
            return model

        for candidate in self._models:
            if candidate.route_id == identifier:
                return candidate

        return self.get_model_by_name(identifier)

    def categories(self) -> List[ModelCategory]:
        """Models grouped by category, categories in first-seen order"""
        grouped: dict[str, list] = {}
        for model in self._models:
            grouped.setdefault(model.category, []).append(model)
        return [ModelCategory(title=title, models=tuple(models)) for title, models in grouped.items()]

    def by_provider(self, provider: Provider) -> List[Model]:
        return [m for m in self._models if m.provider == provider]


# Singleton accessor
def get_model_registry() -> ModelRegistry:
    """Get the model registry singleton"""
    return ModelRegistry()
