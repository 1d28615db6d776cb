"""
ImageHub - REST API Client
HTTP request wrapper with authentication and error handling

Endpoints:
- Generate: POST {base}/v1/images/generations (JSON)
- Edit:     POST {base}/v1/images/edits (multipart)
- Upscale:  POST {upscale_base}/task/pic/scale (multipart, sync=1)
- Custom:   POST {base}{model.api_endpoint} (JSON)
- Auth:     Authorization: Bearer {API Key}
"""

from __future__ import annotations
import requests
import logging
import math
import threading
from typing import Any, Optional, List

from .errors import ErrorCode, ImageHubError, error_for_status
from .image_utils import ImageAttachment

logger = logging.getLogger("[ImageHub]")

# ===== Concurrency limiter to avoid provider rate limiting =====
_REQUEST_SEMAPHORE = None
_SEMAPHORE_LOCK = threading.Lock()


def _get_semaphore(size: int) -> threading.Semaphore:
    global _REQUEST_SEMAPHORE
    with _SEMAPHORE_LOCK:
        if _REQUEST_SEMAPHORE is None:
            _REQUEST_SEMAPHORE = threading.Semaphore(size)
        return _REQUEST_SEMAPHORE


def _get_config():
    from ..hub_config import get_config
    return get_config()


def clean_payload(payload: dict) -> dict:
    """Drop None values before a payload goes on the wire"""
    return {k: v for k, v in payload.items() if v is not None}


def truncate_for_log(value: Any, limit: int = 200) -> Any:
    """Shorten long strings (base64, data URIs) inside a loggable structure"""
    if isinstance(value, str) and len(value) > limit:
        return value[:50] + f"... ({len(value)} chars)"
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, list):
        return [truncate_for_log(v, limit) for v in value]
    if isinstance(value, tuple):
        return tuple(truncate_for_log(v, limit) for v in value)
    if isinstance(value, dict):
        return {k: truncate_for_log(v, limit) for k, v in value.items()}
    return value


def _extract_error(data: Any) -> tuple[Optional[str], Optional[str]]:
    """Pull (message, code) out of the common error body shapes"""
    if not isinstance(data, dict):
        return None, None
    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message"), error.get("code") or error.get("type")
    if isinstance(error, str) and error:
        return error, data.get("code")
    return data.get("message"), data.get("code")


def _format_int(value: Any) -> Optional[str]:
    """Floor finite numbers and numeric strings for form fields; anything else is omitted"""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return str(math.floor(value))


def _format_bool(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    return None


def _format_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text else None


# Optional edit form fields and their encoders, in wire order
EDIT_FORM_FIELDS = (
    ("n", _format_int),
    ("size", _format_str),
    ("output_format", _format_str),
    ("seed", _format_int),
    ("prompt_upsampling", _format_bool),
    ("safety_tolerance", _format_int),
    ("background", _format_str),
    ("response_format", _format_str),
    ("watermark", _format_bool),
)


def format_scale_factor(value: Any) -> Optional[str]:
    """
    Scale factor form value; ``auto``, blank and non-finite values are omitted
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text or text.lower() in ("auto", "nan"):
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return text
    if isinstance(value, (int, float)) and math.isfinite(value):
        return str(value)
    return None


class ImageAPIClient:
    """REST image API client (generation, edit, upscale, custom endpoints)"""

    ENDPOINT_GENERATE = "/v1/images/generations"
    ENDPOINT_EDIT = "/v1/images/edits"
    ENDPOINT_UPSCALE = "/task/pic/scale"

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        upscale_api_key: str = None,
        upscale_base_url: str = None,
        config=None
    ):
        """
        Initialize API client

        Args:
            api_key: Optional API key override. If not provided, uses config.
            base_url: Optional base URL override.
            upscale_api_key: Optional upscaler key override.
            upscale_base_url: Optional upscaler base URL override.
            config: HubConfig to read from (defaults to the singleton)
        """
        self._config = config
        self._api_key_override = api_key
        self._base_url_override = base_url
        self._upscale_key_override = upscale_api_key
        self._upscale_url_override = upscale_base_url

    @property
    def config(self):
        if self._config is None:
            self._config = _get_config()
        return self._config

    @property
    def api_key(self) -> str | None:
        return self._api_key_override or self.config.image_api_key

    @property
    def base_url(self) -> str:
        return (self._base_url_override or self.config.image_api_url).rstrip("/")

    @property
    def upscale_api_key(self) -> Optional[str]:
        return self._upscale_key_override or self.config.get("UPSCALE_API_KEY") or self.api_key

    @property
    def upscale_base_url(self) -> str:
        return (self._upscale_url_override or self.config.get("UPSCALE_API_URL") or self.base_url).rstrip("/")

    def _get_headers(self, api_key: str, content_type: str = None) -> dict:
        """
        Build request headers with authentication

        Multipart requests leave Content-Type to requests (boundary).
        """
        if not api_key:
            raise ImageHubError(
                message="未配置图像 API 密钥",
                code=ErrorCode.NOT_CONFIGURED
            )
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _handle_response(self, response: requests.Response) -> dict:
        """
        Handle API response and raise appropriate errors

        Raises:
            ImageHubError: non-2xx status, non-JSON body, or an error envelope
        """
        if response.status_code >= 400:
            try:
                data = response.json()
            except ValueError:
                data = None
            message, provider_code = _extract_error(data)
            if not message:
                message = f"API 错误: {response.status_code} - {response.text[:500]}"
            raise error_for_status(response.status_code, message, provider_code)

        try:
            data = response.json()
        except ValueError:
            raise ImageHubError(
                message=f"API 返回了无法解析的响应: {response.text[:200]}",
                code=ErrorCode.UNRECOGNIZED_RESPONSE,
                status_code=response.status_code
            )

        if not isinstance(data, dict):
            raise ImageHubError(
                message="API 返回的数据格式未知",
                code=ErrorCode.UNRECOGNIZED_RESPONSE,
                status_code=response.status_code
            )

        if data.get("error"):
            message, provider_code = _extract_error(data)
            raise ImageHubError(
                message=message or "API 返回错误",
                code=ErrorCode.PROVIDER_ERROR,
                status_code=response.status_code,
                details={"provider_code": provider_code} if provider_code else None
            )

        return data

    def _post(
        self,
        url: str,
        api_key: str,
        json: dict = None,
        files: list = None,
        timeout: tuple = None
    ) -> dict:
        """
        POST to the API (JSON body or multipart form)

        Connecting is bounded by request_timeout, waiting for the
        response by generation_timeout.

        Returns:
            Parsed JSON response body
        """
        timeout = timeout or (self.config.request_timeout, self.config.generation_timeout)
        headers = self._get_headers(api_key, "application/json" if json is not None else None)

        logger.info(f"[ImageHub] ===== API Request =====")
        logger.info(f"[ImageHub] POST {url}")
        if json is not None:
            logger.info(f"[ImageHub] Request body: {truncate_for_log(json)}")
        if files:
            logger.info(f"[ImageHub] Form fields: {truncate_for_log(files)}")

        with _get_semaphore(self.config.max_concurrency):
            try:
                response = requests.post(
                    url,
                    headers=headers,
                    json=json,
                    files=files,
                    timeout=timeout
                )
            except requests.exceptions.Timeout:
                raise ImageHubError(
                    message="请求超时，请重试。",
                    code=ErrorCode.TIMEOUT
                )
            except requests.exceptions.ConnectionError:
                raise ImageHubError(
                    message="网络连接失败，请检查网络。",
                    code=ErrorCode.NETWORK_ERROR
                )
            except requests.exceptions.RequestException as e:
                logger.error(f"[ImageHub] Request Error: {e}")
                raise ImageHubError(
                    message=f"请求失败: {e}",
                    code=ErrorCode.NETWORK_ERROR
                )

        result = self._handle_response(response)
        logger.info(f"[ImageHub] ===== API Response =====")
        logger.info(f"[ImageHub] Status: {response.status_code}")
        logger.debug(f"[ImageHub] Response body: {truncate_for_log(result)}")
        return result

    # ===== Image Generation =====
    def generate(self, model_id: str, payload: dict) -> dict:
        """
        Generate images (JSON POST)

        Args:
            model_id: Wire model id
            payload: Resolved parameters, including prompt

        Returns:
            {created, data: [{url?|b64_json?}], usage?}
        """
        body = {"model": model_id, **clean_payload(payload)}
        return self._post(f"{self.base_url}{self.ENDPOINT_GENERATE}", self.api_key, json=body)

    # ===== Image Edit =====
    def edit(
        self,
        model_id: str,
        prompt: str,
        images: List[ImageAttachment],
        mask: ImageAttachment = None,
        **options
    ) -> dict:
        """
        Edit images (multipart form)

        Args:
            model_id: Wire model id
            prompt: Edit instruction
            images: At least one uploaded image, sent under repeated ``image`` fields
            mask: Optional mask image
            **options: Resolved scalar fields (n, size, seed, ...)

        Returns:
            Same shape as generate()
        """
        file_images = [image for image in images or [] if image.has_file]
        if not file_images:
            raise ImageHubError(
                message="请提供至少一张待编辑的图片",
                code=ErrorCode.PRECONDITION_FAILED
            )

        form = [
            ("prompt", (None, prompt or "")),
            ("model", (None, model_id)),
        ]
        for image in file_images:
            form.append(("image", image.as_upload()))

        if mask is not None and mask.has_file:
            form.append(("mask", mask.as_upload()))

        for name, encode in EDIT_FORM_FIELDS:
            value = encode(options.get(name))
            if value is not None:
                form.append((name, (None, value)))

        return self._post(f"{self.base_url}{self.ENDPOINT_EDIT}", self.api_key, files=form)

    # ===== Image Upscale =====
    def upscale(
        self,
        file: ImageAttachment = None,
        image_url: str = None,
        type: str = None,
        scale_factor: Any = None
    ) -> dict:
        """
        Upscale a single image synchronously (multipart form)

        Args:
            file: Uploaded image, preferred over image_url
            image_url: Remote image URL
            type: Optional image type hint (``auto`` is not sent)
            scale_factor: Optional factor (``auto``/non-finite is not sent)

        Returns:
            {"data": {image?, image_width?, image_height?, task_id?}, "raw": <body>}
        """
        if file is not None and file.has_file:
            form = [("image_file", file.as_upload())]
        elif image_url and image_url.strip():
            form = [("image_url", (None, image_url.strip()))]
        else:
            raise ImageHubError(
                message="未找到可用的图片文件或链接",
                code=ErrorCode.PRECONDITION_FAILED
            )

        form.append(("sync", (None, "1")))

        type_value = type.strip() if isinstance(type, str) else ""
        if type_value and type_value != "auto":
            form.append(("type", (None, type_value)))

        scale_value = format_scale_factor(scale_factor)
        if scale_value is not None:
            form.append(("scale_factor", (None, scale_value)))

        raw = self._post(
            f"{self.upscale_base_url}{self.ENDPOINT_UPSCALE}",
            self.upscale_api_key,
            files=form
        )
        data = raw.get("data")
        return {"data": data if isinstance(data, dict) else {}, "raw": raw}

    # ===== Model-specific endpoints =====
    def post_custom(self, endpoint: str, payload: dict) -> dict:
        """
        JSON POST to a model-specific endpoint

        Args:
            endpoint: Path joined to the base URL, or an absolute URL
            payload: Request body (None values stripped)
        """
        if not endpoint:
            raise ImageHubError(
                message="模型未配置接口地址",
                code=ErrorCode.NOT_CONFIGURED
            )
        if endpoint.startswith(("http://", "https://")):
            url = endpoint
        else:
            url = f"{self.base_url}/{endpoint.lstrip('/')}"
        return self._post(url, self.api_key, json=clean_payload(payload))
