"""
Unit tests for mapping provider responses onto the unified result.
"""

import base64
from io import BytesIO

import pytest
from PIL import Image

from imagehub.providers import response_normalizer
from imagehub.providers.response_normalizer import (
    extract_images,
    normalize_chat,
    normalize_image_response,
    normalize_subscription,
    normalize_upscale,
    normalize_url_list,
)
from imagehub.providers.results import FailureResult, SuccessResult
from imagehub.utils.errors import ErrorCode, ImageHubError


def _png_b64(width=3, height=2):
    buffer = BytesIO()
    Image.new("RGB", (width, height)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class TestImageResponse:
    """REST generate / edit bodies."""

    def test_b64_becomes_png_data_uri(self):
        result = normalize_image_response("gpt-image-1", {"data": [{"b64_json": "AAAA"}]})
        assert isinstance(result, SuccessResult)
        assert result.images[0].url == "data:image/png;base64,AAAA"
        assert result.images[0].width is None

    def test_b64_dimensions_read(self):
        image = normalize_image_response("gpt-image-1", {"data": [{"b64_json": _png_b64(3, 2)}]}).images[0]
        assert (image.width, image.height) == (3, 2)

    def test_unreadable_image_kept(self, monkeypatch):
        def fail(data):
            raise Image.DecompressionBombError("image too large")

        monkeypatch.setattr(response_normalizer, "probe_image", fail)
        result = normalize_image_response("gpt-image-1", {"data": [{"b64_json": _png_b64()}]})
        assert result.images[0].url.startswith("data:image/png;base64,")
        assert result.images[0].width is None

    def test_url_preferred_over_b64(self):
        images = extract_images([{"url": "https://img.test/1.png", "b64_json": "AAAA"}])
        assert [i.url for i in images] == ["https://img.test/1.png"]

    def test_unrecognized_items_skipped(self):
        images = extract_images([{"revised_prompt": "x"}, "junk", {"url": "https://img.test/2.png"}])
        assert [i.url for i in images] == ["https://img.test/2.png"]

    def test_usage_mapping(self):
        result = normalize_image_response("gpt-image-1", {
            "data": [],
            "usage": {
                "input_tokens": 10,
                "output_tokens": 5,
                "total_tokens": 15,
                "input_tokens_details": {"image_tokens": 4, "text_tokens": 6},
            },
        })
        assert result.usage.prompt_tokens == 10
        assert result.usage.completion_tokens == 5
        assert result.usage.total_tokens == 15
        assert result.usage.completion_tokens_details == {"reasoning_tokens": 0, "image_tokens": 4}

    def test_missing_usage(self):
        assert normalize_image_response("gpt-image-1", {"data": []}).usage is None

    def test_data_must_be_a_list(self):
        with pytest.raises(ImageHubError) as exc_info:
            normalize_image_response("gpt-image-1", {"data": {"url": "x"}})
        assert exc_info.value.code == ErrorCode.UNRECOGNIZED_RESPONSE


class TestUrlList:
    def test_image_urls(self):
        result = normalize_url_list("seedream-3-0-t2i", {"image_urls": ["https://img.test/a.png", ""]})
        assert [i.url for i in result.images] == ["https://img.test/a.png"]

    def test_dict_entries(self):
        result = normalize_url_list("m", {"images": [{"url": "https://img.test/a.png", "width": 8, "height": 9}]})
        assert (result.images[0].width, result.images[0].height) == (8, 9)

    def test_data_list_delegates(self):
        result = normalize_url_list("m", {"data": [{"url": "https://img.test/a.png"}]})
        assert result.images[0].url == "https://img.test/a.png"

    def test_unknown_shape(self):
        with pytest.raises(ImageHubError):
            normalize_url_list("m", {"status": "ok"})


class TestUpscale:
    def test_image(self):
        result = normalize_upscale("image-upscale", {
            "image": "https://img.test/big.png", "image_width": 4096, "image_height": 2048,
        })
        assert isinstance(result, SuccessResult)
        assert (result.images[0].width, result.images[0].height) == (4096, 2048)

    def test_task_only(self):
        result = normalize_upscale("image-upscale", {"task_id": "T1"})
        assert isinstance(result, FailureResult)
        assert result.error_code == ErrorCode.TASK_PENDING
        assert "T1" in result.error
        assert result.task_id == "T1"

    def test_empty(self):
        result = normalize_upscale("image-upscale", {})
        assert result.error_code == ErrorCode.UNRECOGNIZED_RESPONSE


class TestChat:
    def test_content_images_usage(self):
        result = normalize_chat("google/gemini-2.5-flash-image-preview", {
            "choices": [{"message": {
                "content": "Here you go",
                "images": [{"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}}],
            }}],
            "usage": {
                "prompt_tokens": 12,
                "completion_tokens": 1290,
                "total_tokens": 1302,
                "completion_tokens_details": {"reasoning_tokens": 0, "image_tokens": 1290},
            },
        })
        assert result.content == "Here you go"
        assert result.images[0].url == "data:image/png;base64,AAAA"
        assert result.usage.completion_tokens_details["image_tokens"] == 1290

    def test_text_only(self):
        result = normalize_chat("m", {"choices": [{"message": {"content": "no image today"}}]})
        assert result.images == []
        assert result.content == "no image today"

    def test_no_choices(self):
        with pytest.raises(ImageHubError):
            normalize_chat("m", {"choices": []})


class TestSubscription:
    def test_envelope(self):
        result = normalize_subscription("fal-ai/flux/dev", {
            "images": [{"url": "https://fal.test/1.jpg", "width": 1024, "height": 768,
                        "content_type": "image/jpeg"}],
            "seed": 99,
            "timings": {"inference": 1.2},
            "has_nsfw_concepts": [False],
        }, request_id="req-1")
        assert result.seed == 99
        assert result.request_id == "req-1"
        assert result.images[0].content_type == "image/jpeg"
        assert result.has_nsfw_concepts == [False]

    def test_filtered(self):
        result = normalize_subscription("fal-ai/flux/dev", {"images": [], "has_nsfw_concepts": [True]})
        assert isinstance(result, FailureResult)
        assert result.error_code == ErrorCode.CONTENT_FILTERED
        assert result.has_nsfw_concepts == [True]


class TestResultShapes:
    def test_success_to_dict(self):
        data = normalize_upscale("image-upscale", {"image": "https://img.test/a.png"}).to_dict()
        assert data["success"] is True
        assert data["images"] == [{"url": "https://img.test/a.png", "width": None, "height": None,
                                   "content_type": None}]
        assert "usage" not in data

    def test_failure_to_dict(self):
        data = FailureResult(error="boom", error_code=ErrorCode.TIMEOUT).to_dict()
        assert data == {"success": False, "error": "boom", "error_code": "TIMEOUT"}
