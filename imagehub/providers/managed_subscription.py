"""
Managed subscription provider (fal queue API)

One blocking subscribe() call per request: the job is enqueued, queue updates
(Queued -> InProgress -> Completed) are relayed to a ProgressObserver, and the
result envelope is returned once the job completes.

Credentials come from a CredentialRotator. When the service reports an
exhausted balance the rotator retires the active key; the caller may retry.
"""

from __future__ import annotations
import logging
from typing import Any, Optional

import fal_client

from ..utils.credentials import CredentialRotator, mask_key
from ..utils.errors import ErrorCode, ImageHubError, is_balance_exhausted
from ..utils.model_registry import Model, Provider
from .base_provider import BaseProvider, ProgressObserver, QueueProgress, QueueStatus
from .parameter_resolver import ResolvedRequest
from .response_normalizer import normalize_subscription
from .results import UnifiedResult

logger = logging.getLogger("[ImageHub]")


def to_queue_progress(request_id: Optional[str], update: Any) -> Optional[QueueProgress]:
    """Translate a fal queue status object"""
    if isinstance(update, fal_client.Queued):
        return QueueProgress(request_id, QueueStatus.QUEUED, position=update.position)
    if isinstance(update, fal_client.InProgress):
        return QueueProgress(request_id, QueueStatus.IN_PROGRESS, logs=tuple(update.logs or ()))
    if isinstance(update, fal_client.Completed):
        return QueueProgress(request_id, QueueStatus.COMPLETED, logs=tuple(update.logs or ()))
    return None


class _QueueRelay:
    """Captures the request id and forwards queue updates to the observer"""

    def __init__(self, observer: Optional[ProgressObserver]):
        self.observer = observer
        self.request_id: Optional[str] = None

    def on_enqueue(self, request_id: str) -> None:
        self.request_id = request_id
        logger.info(f"[ImageHub] Request enqueued: {request_id}")

    def on_queue_update(self, update: Any) -> None:
        progress = to_queue_progress(self.request_id, update)
        if progress is None:
            return
        logger.debug(f"[ImageHub] Queue update {self.request_id}: {progress.status}")
        if self.observer is not None:
            self.observer.notify(progress)


class ManagedSubscriptionProvider(BaseProvider):
    provider = Provider.MANAGED_SUBSCRIPTION

    def __init__(self, config=None, client=None, credentials: CredentialRotator = None):
        super().__init__(config=config, client=client, credentials=credentials)
        if self.credentials is None:
            self.credentials = CredentialRotator.from_config(self.config)

    def get_subscription_client(self, credential: str):
        if self._client is not None:
            return self._client
        return fal_client.SyncClient(key=credential, default_timeout=self.config.generation_timeout)

    def build_arguments(self, client, request: ResolvedRequest, model: Model) -> dict:
        """Resolved payload plus uploaded image URLs under the model's image argument"""
        arguments = request.payload
        argument_name = model.meta.image_argument
        if not argument_name or not request.images:
            return arguments

        urls = []
        for image in request.images:
            if image.has_url:
                urls.append(image.url)
            elif image.has_file:
                urls.append(client.upload(image.data, image.content_type, file_name=image.filename))
        if argument_name.endswith("s"):
            arguments[argument_name] = urls
        elif urls:
            arguments[argument_name] = urls[0]
        return arguments

    def send(self, request: ResolvedRequest, model: Model, observer: ProgressObserver = None) -> dict:
        credential = self.credentials.active
        if not credential:
            raise ImageHubError(
                message="所有 fal 密钥余额均已耗尽，请充值或配置新的密钥",
                code=ErrorCode.BALANCE_EXHAUSTED
            )

        client = self.get_subscription_client(credential)
        relay = _QueueRelay(observer)
        logger.info(f"[ImageHub] Subscribing to {request.model_id} with key {mask_key(credential)}")

        try:
            arguments = self.build_arguments(client, request, model)
            result = client.subscribe(
                request.model_id,
                arguments=arguments,
                with_logs=True,
                on_enqueue=relay.on_enqueue,
                on_queue_update=relay.on_queue_update,
            )
        except ImageHubError:
            raise
        except Exception as e:
            if not is_balance_exhausted(str(e)):
                raise
            self._raise_balance_exhausted(credential, e)

        return {"result": result, "request_id": relay.request_id}

    def _raise_balance_exhausted(self, credential: str, error: Exception):
        rotated = self.credentials.rotate(credential)
        logger.warning(f"[ImageHub] Balance exhausted for key {mask_key(credential)}: {error}")
        if rotated:
            raise ImageHubError(
                message="当前 fal 密钥余额已耗尽，已自动切换到新的密钥，请重试",
                code=ErrorCode.BALANCE_EXHAUSTED_ROTATED
            ) from error
        raise ImageHubError(
            message="所有 fal 密钥余额均已耗尽，请充值或配置新的密钥",
            code=ErrorCode.BALANCE_EXHAUSTED
        ) from error

    def normalize(self, model: Model, response: dict) -> UnifiedResult:
        return normalize_subscription(model.id, response.get("result"), response.get("request_id"))
