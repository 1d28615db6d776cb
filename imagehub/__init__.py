"""
ImageHub
Model-driven image generation across several provider APIs

One call, generate_image(), routes a request to the provider that serves the
selected model and returns a uniform success/failure result.
"""

import logging

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("[ImageHub]")

__version__ = "0.3.0"

from .dispatcher import generate_image, get_provider
from .hub_config import HubConfig, get_config
from .providers import (
    ChannelObserver,
    FailureResult,
    GeneratedImage,
    ProgressObserver,
    QueueProgress,
    QueueStatus,
    RequestContext,
    SuccessResult,
    TokenUsage,
    UnifiedResult,
)
from .utils.credentials import CredentialRotator
from .utils.errors import ErrorCode, ImageHubError
from .utils.history_store import HistoryRecord, HistoryStore, JsonHistoryStore
from .utils.image_utils import ImageAttachment
from .utils.model_registry import Model, Provider, get_model_registry

__all__ = [
    "generate_image",
    "get_provider",
    "HubConfig",
    "get_config",
    "ChannelObserver",
    "FailureResult",
    "GeneratedImage",
    "ProgressObserver",
    "QueueProgress",
    "QueueStatus",
    "RequestContext",
    "SuccessResult",
    "TokenUsage",
    "UnifiedResult",
    "CredentialRotator",
    "ErrorCode",
    "ImageHubError",
    "HistoryRecord",
    "HistoryStore",
    "JsonHistoryStore",
    "ImageAttachment",
    "Model",
    "Provider",
    "get_model_registry",
]

logger.info(f"[ImageHub] Loaded v{__version__}")
