"""
Upscale provider: single image (file or URL) in, one upscaled image out
"""

from __future__ import annotations

from ..utils.model_registry import Model, Provider
from .base_provider import BaseProvider, ProgressObserver
from .parameter_resolver import RequestContext, ResolvedRequest, resolve_parameters
from .response_normalizer import normalize_upscale
from .results import UnifiedResult


class UpscaleProvider(BaseProvider):
    provider = Provider.UPSCALE_API

    def resolve(self, model: Model, context: RequestContext) -> ResolvedRequest:
        request = resolve_parameters(model, context)

        # "auto" means let the service decide
        type_value = request.params.get("type")
        if not isinstance(type_value, str) or not type_value.strip() or type_value.strip() == "auto":
            request.params.pop("type", None)

        if request.params.get("scale_factor") == "auto":
            request.params.pop("scale_factor")
        return request

    def send(self, request: ResolvedRequest, model: Model, observer: ProgressObserver = None) -> dict:
        file_entry = next((image for image in request.images if image.has_file), None)
        url_entry = next((image for image in request.images if image.has_url), None)

        return self.get_api_client().upscale(
            file=file_entry,
            image_url=url_entry.url if file_entry is None and url_entry else None,
            type=request.params.get("type"),
            scale_factor=request.params.get("scale_factor"),
        )

    def normalize(self, model: Model, response: dict) -> UnifiedResult:
        return normalize_upscale(model.id, response.get("data"))
