"""
ImageHub - Dispatcher

generate_image() is the single entry point: it picks the provider variant for a
model, runs resolve -> send -> normalize and always returns a Unified Result.
No exception escapes to the caller.
"""

from __future__ import annotations
import logging
from typing import Union

from .providers import PROVIDER_CLASSES
from .providers.base_provider import BaseProvider, ProgressObserver
from .providers.parameter_resolver import RequestContext
from .providers.results import FailureResult, SuccessResult, UnifiedResult
from .utils.credentials import CredentialRotator
from .utils.errors import ErrorCode, ImageHubError, classify_error
from .utils.history_store import HistoryRecord, HistoryStore
from .utils.model_registry import Model, Provider, get_model_registry

logger = logging.getLogger("[ImageHub]")

DEFAULT_ERROR_MESSAGE = "图像生成失败"


def get_provider(
    provider: Union[Provider, str],
    config=None,
    credentials: CredentialRotator = None,
    client=None
) -> BaseProvider:
    """
    Instantiate the variant for a provider tag

    Raises:
        ImageHubError: UNSUPPORTED_PROVIDER for unknown tags
    """
    try:
        tag = Provider(provider)
    except ValueError:
        raise ImageHubError(
            message=f"不支持的模型类型: {provider}",
            code=ErrorCode.UNSUPPORTED_PROVIDER
        )
    provider_class = PROVIDER_CLASSES[tag]
    return provider_class(config=config, client=client, credentials=credentials)


def failure_from_exception(error: BaseException) -> FailureResult:
    """
    Convert any exception into a FailureResult

    Pre-network errors (validation, precondition, configuration) keep their
    message; everything else goes through the vendor-phrase classifier.
    """
    if isinstance(error, ImageHubError):
        if ErrorCode.is_pre_network(error.code):
            return FailureResult(error=error.message, error_code=error.code)
        message, code = classify_error(error.message or DEFAULT_ERROR_MESSAGE, error.code)
        return FailureResult(
            error=message,
            error_code=code,
            task_id=error.details.get("task_id"),
            has_nsfw_concepts=error.details.get("has_nsfw_concepts"),
        )

    message = str(error) or DEFAULT_ERROR_MESSAGE
    message, code = classify_error(message)
    return FailureResult(error=message, error_code=code)


def _save_history(history: HistoryStore, model: Model, context: RequestContext, result: SuccessResult) -> None:
    try:
        record = HistoryRecord.from_result(model.id, context.prompt, result)
        if not history.save(record):
            logger.warning(f"[ImageHub] History record not saved for {model.id}")
    except Exception as e:
        logger.error(f"[ImageHub] Failed to save history: {e}")


def generate_image(
    model: Union[Model, str],
    context: RequestContext,
    *,
    observer: ProgressObserver = None,
    credentials: CredentialRotator = None,
    history: HistoryStore = None,
    config=None,
    client=None
) -> UnifiedResult:
    """
    Generate (or edit / upscale) images with the selected model

    Args:
        model: Model, or a model id / display name resolved through the registry
        context: Prompt, parameter values and uploaded images
        observer: Receives queue progress from subscription providers
        credentials: Rotating credentials for the managed subscription provider
        history: Store that receives a record for every successful generation
        config: HubConfig override
        client: Transport client override (REST client, chat client or subscription client)

    Returns:
        SuccessResult or FailureResult; never raises
    """
    try:
        if not isinstance(model, Model):
            resolved_model = get_model_registry().resolve_model(str(model))
            if resolved_model is None:
                return FailureResult(error=f"未知模型: {model}", error_code=ErrorCode.VALIDATION_ERROR)
            model = resolved_model

        logger.info(f"[ImageHub] ========== Generate Image ==========")
        logger.info(f"[ImageHub] Model: {model.id} ({model.provider}), operation={context.operation}")

        provider = get_provider(model.provider, config=config, credentials=credentials, client=client)
        result = provider.run(model, context, observer=observer)

    except Exception as e:
        result = failure_from_exception(e)
        if ErrorCode.is_pre_network(result.error_code):
            logger.warning(f"[ImageHub] Request rejected: {result.error}")
        else:
            logger.error(f"[ImageHub] Image generation failed: {e}")
        return result

    if isinstance(result, SuccessResult):
        logger.info(f"[ImageHub] Generated {len(result.images)} image(s) with {model.id}")
        if history is not None and result.images:
            _save_history(history, model, context, result)
    else:
        logger.warning(f"[ImageHub] {model.id} returned failure: {result.error}")

    return result
