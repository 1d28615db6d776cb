"""
Base Provider Class for ImageHub

Every provider family implements the same three steps:
- resolve(): model + request context -> ResolvedRequest (no network)
- send(): exactly one network operation, returning the provider-native body
- normalize(): provider-native body -> Unified Result

The base class carries the shared resolver, client access and request logging.
"""

import logging
import queue
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..utils.model_registry import Model, Provider
from .parameter_resolver import RequestContext, ResolvedRequest, resolve_parameters
from .results import UnifiedResult

logger = logging.getLogger("[ImageHub]")


class QueueStatus:
    """Queue states reported by subscription providers"""
    QUEUED = "QUEUED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class QueueProgress:
    """One queue status update"""
    request_id: Optional[str]
    status: str
    position: Optional[int] = None
    logs: tuple = ()


class ProgressObserver:
    """
    Receives queue progress from long-running providers.

    Zero or more notify() calls precede the terminal result of a request.
    """

    def notify(self, progress: QueueProgress) -> None:
        pass


class ChannelObserver(ProgressObserver):
    """Forwards progress into a queue.Queue read by another thread"""

    def __init__(self, channel: queue.Queue = None):
        self.channel = channel if channel is not None else queue.Queue()

    def notify(self, progress: QueueProgress) -> None:
        self.channel.put(progress)

    def drain(self) -> list:
        """Everything received so far, in order"""
        items = []
        while True:
            try:
                items.append(self.channel.get_nowait())
            except queue.Empty:
                return items


class BaseProvider(ABC):
    """
    Abstract base class for all provider variants.

    Subclasses must set ``provider`` and implement send() and normalize().
    """

    provider: Provider = None

    def __init__(self, config=None, client=None, credentials=None):
        """
        Args:
            config: HubConfig (defaults to the singleton)
            client: Transport client override
            credentials: CredentialRotator, for providers with rotating keys
        """
        if config is None:
            from ..hub_config import get_config
            config = get_config()
        self.config = config
        self._client = client
        self.credentials = credentials

    def get_api_client(self):
        """Get initialized REST client"""
        if self._client is None:
            from ..utils.api_client import ImageAPIClient
            self._client = ImageAPIClient(config=self.config)
        return self._client

    def resolve(self, model: Model, context: RequestContext) -> ResolvedRequest:
        return resolve_parameters(model, context)

    @abstractmethod
    def send(self, request: ResolvedRequest, model: Model, observer: ProgressObserver = None) -> Any:
        """Perform the network operation"""

    @abstractmethod
    def normalize(self, model: Model, response: Any) -> UnifiedResult:
        """Map the native response onto the Unified Result"""

    def run(self, model: Model, context: RequestContext, observer: ProgressObserver = None) -> UnifiedResult:
        request = self.resolve(model, context)
        self.log_request(model, request)
        response = self.send(request, model, observer=observer)
        return self.normalize(model, response)

    def log_request(self, model: Model, request: ResolvedRequest) -> None:
        """Log resolved request details (truncate long values)"""
        from ..utils.api_client import truncate_for_log

        logger.info(f"[ImageHub] ===== {self.provider.value} =====")
        logger.info(f"[ImageHub] Model: {model.id} -> {request.model_id}, operation={request.operation}")
        logger.info(f"[ImageHub] Params: {truncate_for_log(request.params)}")
        if request.images:
            logger.info(f"[ImageHub] Attachments: {[image.filename for image in request.images]}")
