"""
Provider variants, one per Provider tag.

PROVIDER_CLASSES must cover every Provider member; a missing variant fails at import.
"""

from ..utils.model_registry import Provider
from .base_provider import BaseProvider, ChannelObserver, ProgressObserver, QueueProgress, QueueStatus
from .chat_multimodal import ChatMultimodalProvider
from .custom_endpoint import CustomEndpointProvider
from .managed_subscription import ManagedSubscriptionProvider
from .parameter_resolver import RequestContext, ResolvedRequest, resolve_parameters
from .rest_image import RestImageProvider
from .results import FailureResult, GeneratedImage, SuccessResult, TokenUsage, UnifiedResult
from .upscale import UpscaleProvider

PROVIDER_CLASSES = {
    Provider.REST_IMAGE_API: RestImageProvider,
    Provider.UPSCALE_API: UpscaleProvider,
    Provider.CHAT_MULTIMODAL: ChatMultimodalProvider,
    Provider.MANAGED_SUBSCRIPTION: ManagedSubscriptionProvider,
    Provider.CUSTOM_ENDPOINT: CustomEndpointProvider,
}

_missing = set(Provider) - set(PROVIDER_CLASSES)
if _missing:
    raise ImportError(f"No provider variant for: {sorted(p.value for p in _missing)}")

__all__ = [
    "PROVIDER_CLASSES",
    "BaseProvider",
    "ChannelObserver",
    "ProgressObserver",
    "QueueProgress",
    "QueueStatus",
    "RequestContext",
    "ResolvedRequest",
    "resolve_parameters",
    "FailureResult",
    "GeneratedImage",
    "SuccessResult",
    "TokenUsage",
    "UnifiedResult",
]
