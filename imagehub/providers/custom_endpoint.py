"""
Custom endpoint provider: JSON POST to the model's own endpoint
"""

from __future__ import annotations

from ..utils.model_registry import Model, Provider
from .base_provider import BaseProvider, ProgressObserver
from .parameter_resolver import ResolvedRequest
from .response_normalizer import normalize_url_list
from .results import UnifiedResult


class CustomEndpointProvider(BaseProvider):
    provider = Provider.CUSTOM_ENDPOINT

    def send(self, request: ResolvedRequest, model: Model, observer: ProgressObserver = None) -> dict:
        payload = {"model": request.model_id, **request.payload}
        if request.images:
            payload["images"] = [image.to_data_uri() for image in request.images]
        return self.get_api_client().post_custom(model.api_endpoint, payload)

    def normalize(self, model: Model, response: dict) -> UnifiedResult:
        return normalize_url_list(model.id, response)
