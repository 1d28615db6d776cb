"""
Response Normalizer

Maps provider-native response shapes onto the Unified Result.
"""

from __future__ import annotations
import logging
from typing import Any, List, Optional

from ..utils.errors import ErrorCode, ImageHubError
from ..utils.image_utils import PNG_CONTENT_TYPE, decode_data_uri, probe_image, to_data_uri
from .results import FailureResult, GeneratedImage, SuccessResult, TokenUsage

logger = logging.getLogger("[ImageHub]")


def _b64_image(b64_json: str) -> GeneratedImage:
    """PNG-tagged data URI, with dimensions when the payload decodes"""
    width = height = None
    try:
        info = probe_image(decode_data_uri(b64_json))
    except Exception as e:
        logger.debug(f"[ImageHub] Could not read base64 image dimensions: {e}")
        info = None
    if info:
        width, height = info.width, info.height
    return GeneratedImage(
        url=to_data_uri(b64_json, PNG_CONTENT_TYPE),
        width=width,
        height=height,
        content_type=PNG_CONTENT_TYPE,
    )


def extract_images(items: Any) -> List[GeneratedImage]:
    """
    Flatten ``data[]`` items into images

    Each item yields its ``url`` when present, else a data URI built from
    ``b64_json``; items with neither are skipped with a warning.
    """
    images = []
    for index, item in enumerate(items or []):
        if not isinstance(item, dict):
            logger.warning(f"[ImageHub] Unrecognized result item (index={index}): {str(item)[:100]}")
            continue
        if item.get("url"):
            images.append(GeneratedImage(url=item["url"]))
        elif item.get("b64_json"):
            images.append(_b64_image(item["b64_json"]))
        else:
            logger.warning(f"[ImageHub] Unrecognized result item (index={index}): {str(item)[:100]}")
    return images


def normalize_usage(usage: Optional[dict]) -> Optional[TokenUsage]:
    """
    Image API usage (input/output tokens) -> prompt/completion tokens
    """
    if not isinstance(usage, dict):
        return None
    input_details = usage.get("input_tokens_details") or {}
    return TokenUsage(
        prompt_tokens=usage.get("input_tokens") or 0,
        completion_tokens=usage.get("output_tokens") or 0,
        total_tokens=usage.get("total_tokens") or 0,
        completion_tokens_details={
            "reasoning_tokens": 0,
            "image_tokens": input_details.get("image_tokens") or 0,
        },
    )


def normalize_chat_usage(usage: Optional[dict]) -> Optional[TokenUsage]:
    """Chat-completion usage is already prompt/completion shaped"""
    if not isinstance(usage, dict):
        return None
    completion_details = usage.get("completion_tokens_details") or {}
    return TokenUsage(
        prompt_tokens=usage.get("prompt_tokens") or 0,
        completion_tokens=usage.get("completion_tokens") or 0,
        total_tokens=usage.get("total_tokens") or 0,
        prompt_tokens_details=usage.get("prompt_tokens_details"),
        completion_tokens_details={
            "reasoning_tokens": completion_details.get("reasoning_tokens") or 0,
            "image_tokens": completion_details.get("image_tokens") or 0,
        },
    )


def normalize_image_response(model_id: str, response: dict) -> SuccessResult:
    """
    REST generate/edit body: {created, data: [...], usage?}

    Raises:
        ImageHubError: UNRECOGNIZED_RESPONSE when ``data`` is not a list
    """
    items = response.get("data")
    if not isinstance(items, list):
        raise ImageHubError(
            message="API 返回的图像数据格式未知",
            code=ErrorCode.UNRECOGNIZED_RESPONSE
        )
    return SuccessResult(
        images=extract_images(items),
        model=model_id,
        usage=normalize_usage(response.get("usage")),
    )


def normalize_url_list(model_id: str, response: dict) -> SuccessResult:
    """
    Model-specific endpoints answer either ``data[]`` like the image API or a
    list of URLs under ``image_urls`` / ``images`` (strings or dicts)
    """
    if isinstance(response.get("data"), list):
        return normalize_image_response(model_id, response)

    urls = response.get("image_urls") or response.get("images")
    if not isinstance(urls, list):
        raise ImageHubError(
            message="API 返回的图像数据格式未知",
            code=ErrorCode.UNRECOGNIZED_RESPONSE
        )

    images = []
    for index, entry in enumerate(urls):
        if isinstance(entry, str) and entry:
            images.append(GeneratedImage(url=entry))
        elif isinstance(entry, dict) and (entry.get("url") or entry.get("image_url")):
            images.append(GeneratedImage(
                url=entry.get("url") or entry.get("image_url"),
                width=entry.get("width"),
                height=entry.get("height"),
                content_type=entry.get("content_type"),
            ))
        else:
            logger.warning(f"[ImageHub] Unrecognized result item (index={index}): {str(entry)[:100]}")
    return SuccessResult(images=images, model=model_id)


def normalize_upscale(model_id: str, data: dict):
    """
    Upscale body ``data``: image -> success; task_id alone -> pending failure
    """
    data = data or {}
    if data.get("image"):
        return SuccessResult(
            images=[GeneratedImage(
                url=data["image"],
                width=data.get("image_width"),
                height=data.get("image_height"),
            )],
            model=model_id,
        )

    if data.get("task_id"):
        task_id = str(data["task_id"])
        logger.info(f"[ImageHub] Upscale queued as task {task_id}, not polled")
        return FailureResult(
            error=f"高清化任务已创建，任务 ID: {task_id}",
            error_code=ErrorCode.TASK_PENDING,
            task_id=task_id,
        )

    return FailureResult(
        error="高清化接口未返回图片结果，请稍后重试",
        error_code=ErrorCode.UNRECOGNIZED_RESPONSE,
    )


def normalize_chat(model_id: str, response: dict) -> SuccessResult:
    """
    Chat-completion body: first choice's text plus any inline images
    """
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ImageHubError(
            message="多模态接口未返回任何结果",
            code=ErrorCode.UNRECOGNIZED_RESPONSE
        )

    message = (choices[0] or {}).get("message") or {}
    images = []
    for index, item in enumerate(message.get("images") or []):
        url = ((item or {}).get("image_url") or {}).get("url") if isinstance(item, dict) else None
        if url:
            images.append(GeneratedImage(url=url))
        else:
            logger.warning(f"[ImageHub] Unrecognized chat image (index={index}): {str(item)[:100]}")

    return SuccessResult(
        images=images,
        model=model_id,
        content=message.get("content") or "",
        usage=normalize_chat_usage(response.get("usage")),
    )


def normalize_subscription(model_id: str, envelope: dict, request_id: str = None):
    """
    Managed-subscription result envelope: {images, seed, timings, has_nsfw_concepts}

    A completed job without images whose NSFW flags are set is a content filter failure.
    """
    if not isinstance(envelope, dict):
        raise ImageHubError(
            message="订阅接口返回的数据格式未知",
            code=ErrorCode.UNRECOGNIZED_RESPONSE
        )

    nsfw_flags = envelope.get("has_nsfw_concepts")
    images = []
    for index, item in enumerate(envelope.get("images") or []):
        if isinstance(item, dict) and item.get("url"):
            images.append(GeneratedImage(
                url=item["url"],
                width=item.get("width"),
                height=item.get("height"),
                content_type=item.get("content_type"),
            ))
        else:
            logger.warning(f"[ImageHub] Unrecognized subscription image (index={index}): {str(item)[:100]}")

    if not images and isinstance(nsfw_flags, list) and any(nsfw_flags):
        return FailureResult(
            error="生成的图片未通过内容安全检查，请修改提示词后重试",
            error_code=ErrorCode.CONTENT_FILTERED,
            has_nsfw_concepts=list(nsfw_flags),
        )

    return SuccessResult(
        images=images,
        model=model_id,
        seed=envelope.get("seed"),
        request_id=request_id,
        timings=envelope.get("timings"),
        has_nsfw_concepts=list(nsfw_flags) if isinstance(nsfw_flags, list) else None,
    )
