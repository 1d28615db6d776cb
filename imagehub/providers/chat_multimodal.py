"""
Chat-multimodal provider (OpenRouter, OpenAI-compatible chat completions)

Image-capable chat models answer with text content plus inline generated
images under ``choices[].message.images[].image_url.url``.
"""

from __future__ import annotations
import logging
from typing import Any

import openai
from openai import OpenAI

from ..utils.errors import ErrorCode, ImageHubError, error_for_status
from ..utils.model_registry import Model, Provider
from .base_provider import BaseProvider, ProgressObserver
from .parameter_resolver import ResolvedRequest
from .response_normalizer import normalize_chat
from .results import UnifiedResult

logger = logging.getLogger("[ImageHub]")

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TEMPERATURE = 0.7


def _param(request: ResolvedRequest, key: str, default: Any) -> Any:
    value = request.params.get(key)
    return default if value is None else value


def build_messages(request: ResolvedRequest) -> list:
    """
    Explicit messages win; otherwise one user message with the prompt, plus
    image_url parts for a supplied image URL or uploaded attachments
    """
    if request.messages:
        return list(request.messages)

    image_urls = []
    if request.params.get("image_url"):
        image_urls.append(request.params["image_url"])
    image_urls.extend(image.to_data_uri() for image in request.images if image.has_file or image.has_url)

    if not image_urls:
        return [{"role": "user", "content": request.prompt}]

    content = [{"type": "text", "text": request.prompt}]
    for url in image_urls:
        content.append({"type": "image_url", "image_url": {"url": url}})
    return [{"role": "user", "content": content}]


class ChatMultimodalProvider(BaseProvider):
    provider = Provider.CHAT_MULTIMODAL

    def get_chat_client(self) -> OpenAI:
        if self._client is None:
            api_key = self.config.openrouter_api_key
            if not api_key:
                raise ImageHubError(
                    message="未配置 OpenRouter API 密钥",
                    code=ErrorCode.NOT_CONFIGURED
                )
            self._client = OpenAI(
                api_key=api_key,
                base_url=OPENROUTER_BASE_URL,
                default_headers=self._site_headers(),
                timeout=self.config.generation_timeout,
            )
        return self._client

    def _site_headers(self) -> dict:
        return {
            "HTTP-Referer": self.config.site_url,
            "X-Title": self.config.site_name,
        }

    def send(self, request: ResolvedRequest, model: Model, observer: ProgressObserver = None) -> dict:
        client = self.get_chat_client()
        messages = build_messages(request)

        logger.info(f"[ImageHub] Calling chat completions: model={request.model_id}, messages={len(messages)}")
        try:
            completion = client.chat.completions.create(
                model=request.model_id,
                messages=messages,
                max_tokens=_param(request, "max_tokens", DEFAULT_MAX_TOKENS),
                temperature=_param(request, "temperature", DEFAULT_TEMPERATURE),
                extra_headers=self._site_headers(),
            )
        except openai.APIStatusError as e:
            raise error_for_status(e.status_code, str(e.message))
        except openai.APITimeoutError:
            raise ImageHubError(message="请求超时，请重试。", code=ErrorCode.TIMEOUT)
        except openai.APIConnectionError:
            raise ImageHubError(message="网络连接失败，请检查网络。", code=ErrorCode.NETWORK_ERROR)

        # model_dump keeps provider extras such as message.images
        return completion.model_dump()

    def normalize(self, model: Model, response: Any) -> UnifiedResult:
        return normalize_chat(model.id, response)
