"""
REST image API provider: JSON generation, multipart edit
"""

from __future__ import annotations

from ..utils.model_registry import Model, Provider
from .base_provider import BaseProvider, ProgressObserver
from .parameter_resolver import OPERATION_EDIT, ResolvedRequest
from .response_normalizer import normalize_image_response
from .results import UnifiedResult


class RestImageProvider(BaseProvider):
    provider = Provider.REST_IMAGE_API

    def send(self, request: ResolvedRequest, model: Model, observer: ProgressObserver = None) -> dict:
        api = self.get_api_client()
        if request.operation == OPERATION_EDIT:
            return api.edit(
                request.model_id,
                request.prompt,
                request.images,
                mask=request.mask,
                **request.params
            )
        return api.generate(request.model_id, request.payload)

    def normalize(self, model: Model, response: dict) -> UnifiedResult:
        return normalize_image_response(model.id, response)
