"""
Unit tests for the REST client: wire format, form encoding and HTTP error mapping.
"""

import pytest
import requests

from imagehub.utils.api_client import ImageAPIClient, format_scale_factor, truncate_for_log
from imagehub.utils.errors import AUTH_MESSAGE, ErrorCode, ImageHubError
from imagehub.utils.image_utils import ImageAttachment

IMAGE = ImageAttachment(data=b"first", filename="a.png", content_type="image/png")
SECOND = ImageAttachment(data=b"second", filename="b.jpg", content_type="image/jpeg")


class TestGenerate:
    """JSON generation requests."""

    def test_body_and_headers(self, rest_client, fake_post):
        fake_post.respond({"created": 1, "data": []})
        rest_client.generate("gpt-image-1", {"prompt": "a cat", "n": 1, "background": None})

        call = fake_post.last
        assert call["url"] == "https://api.test/v1/images/generations"
        assert call["json"] == {"model": "gpt-image-1", "prompt": "a cat", "n": 1}
        assert call["headers"]["Authorization"] == "Bearer test-key"
        assert call["files"] is None

    def test_missing_key_is_not_configured(self, hub_config, fake_post):
        client = ImageAPIClient(base_url="https://api.test", config=hub_config)
        with pytest.raises(ImageHubError) as exc_info:
            client.generate("gpt-image-1", {"prompt": "x"})
        assert exc_info.value.code == ErrorCode.NOT_CONFIGURED
        assert fake_post.calls == []

    def test_key_from_environment(self, hub_config, fake_post, monkeypatch):
        monkeypatch.setenv("IMAGE_API_KEY", "env-key")
        ImageAPIClient(config=hub_config).generate("gpt-image-1", {"prompt": "x"})
        assert fake_post.last["headers"]["Authorization"] == "Bearer env-key"
        assert fake_post.last["url"].startswith("https://api.gpt.ge/")

    def test_connect_and_read_timeouts(self, rest_client, fake_post, monkeypatch):
        monkeypatch.setenv("IMAGEHUB_REQUEST_TIMEOUT", "5")
        rest_client.generate("gpt-image-1", {"prompt": "x"})
        assert fake_post.last["timeout"] == (5, 1200)


class TestEdit:
    """Multipart edit requests."""

    def test_form_fields(self, rest_client, fake_post):
        rest_client.edit("gpt-image-1", "make it blue", [IMAGE, SECOND],
                         n=2.7, size="1024x1024", watermark=False, seed=None)

        form = fake_post.form()
        assert form[0] == ("prompt", (None, "make it blue"))
        assert form[1] == ("model", (None, "gpt-image-1"))
        assert [value for name, value in form if name == "image"] == [
            ("a.png", b"first", "image/png"),
            ("b.jpg", b"second", "image/jpeg"),
        ]
        assert ("n", (None, "2")) in form
        assert ("size", (None, "1024x1024")) in form
        assert ("watermark", (None, "false")) in form
        assert "seed" not in [name for name, _ in form]
        assert fake_post.last["url"] == "https://api.test/v1/images/edits"
        assert "Content-Type" not in fake_post.last["headers"]

    def test_mask_attached(self, rest_client, fake_post):
        mask = ImageAttachment(data=b"mask", filename="mask.png")
        rest_client.edit("gpt-image-1", "x", [IMAGE], mask=mask)
        assert ("mask", ("mask.png", b"mask", "image/png")) in fake_post.form()

    def test_url_only_images_rejected(self, rest_client, fake_post):
        with pytest.raises(ImageHubError) as exc_info:
            rest_client.edit("gpt-image-1", "x", [ImageAttachment.from_url("https://img.test/a.png")])
        assert exc_info.value.code == ErrorCode.PRECONDITION_FAILED
        assert fake_post.calls == []

    def test_non_numeric_count_omitted(self, rest_client, fake_post):
        rest_client.edit("gpt-image-1", "x", [IMAGE], n="three", prompt_upsampling=True)
        form = fake_post.form()
        assert "n" not in [name for name, _ in form]
        assert ("prompt_upsampling", (None, "true")) in form

    def test_numeric_string_count_sent(self, rest_client, fake_post):
        rest_client.edit("gpt-image-1", "x", [IMAGE], n="2", safety_tolerance=" 3.7 ")
        form = fake_post.form()
        assert ("n", (None, "2")) in form
        assert ("safety_tolerance", (None, "3")) in form


class TestUpscale:
    """Upscale requests."""

    def test_file_upload(self, rest_client, fake_post):
        fake_post.respond({"data": {"image": "https://img.test/big.png", "image_width": 2048}})
        result = rest_client.upscale(file=IMAGE, type="face", scale_factor="4")

        form = fake_post.form()
        assert form[0] == ("image_file", ("a.png", b"first", "image/png"))
        assert ("sync", (None, "1")) in form
        assert ("type", (None, "face")) in form
        assert ("scale_factor", (None, "4")) in form
        assert result["data"]["image"] == "https://img.test/big.png"
        assert fake_post.last["url"] == "https://api.test/task/pic/scale"

    def test_url_and_auto_values(self, rest_client, fake_post):
        fake_post.respond({"data": {"task_id": "T1"}})
        rest_client.upscale(image_url=" https://img.test/a.png ", type="auto", scale_factor="auto")
        assert fake_post.form() == [
            ("image_url", (None, "https://img.test/a.png")),
            ("sync", (None, "1")),
        ]

    def test_nothing_to_upscale(self, rest_client, fake_post):
        with pytest.raises(ImageHubError) as exc_info:
            rest_client.upscale()
        assert exc_info.value.code == ErrorCode.PRECONDITION_FAILED

    def test_client_overrides_reach_upscale(self, hub_config, fake_post):
        client = ImageAPIClient(api_key="test-key", base_url="https://api.test/", config=hub_config)
        client.upscale(file=IMAGE)
        assert fake_post.last["url"] == "https://api.test/task/pic/scale"
        assert fake_post.last["headers"]["Authorization"] == "Bearer test-key"

    def test_separate_upscale_endpoint(self, hub_config, fake_post, monkeypatch):
        monkeypatch.setenv("UPSCALE_API_URL", "https://upscale.test/")
        monkeypatch.setenv("UPSCALE_API_KEY", "upscale-key")
        ImageAPIClient(api_key="test-key", config=hub_config).upscale(file=IMAGE)
        assert fake_post.last["url"] == "https://upscale.test/task/pic/scale"
        assert fake_post.last["headers"]["Authorization"] == "Bearer upscale-key"

    @pytest.mark.parametrize("value, expected", [
        ("2", "2"),
        (4, "4"),
        ("auto", None),
        ("NaN", None),
        ("", None),
        (float("inf"), None),
        (True, None),
    ])
    def test_scale_factor_encoding(self, value, expected):
        assert format_scale_factor(value) == expected


class TestErrors:
    """HTTP and transport failures map to error codes."""

    @pytest.mark.parametrize("status, code", [
        (401, ErrorCode.AUTH_INVALID),
        (402, ErrorCode.QUOTA_EXHAUSTED),
        (429, ErrorCode.RATE_LIMITED),
        (500, ErrorCode.PROVIDER_HTTP_ERROR),
    ])
    def test_status_codes(self, rest_client, fake_post, status, code):
        fake_post.respond({"error": {"message": "nope", "code": "bad"}}, status_code=status)
        with pytest.raises(ImageHubError) as exc_info:
            rest_client.generate("gpt-image-1", {"prompt": "x"})
        assert exc_info.value.code == code
        assert exc_info.value.status_code == status

    def test_auth_message(self, rest_client, fake_post):
        fake_post.respond(status_code=401, text="Unauthorized")
        with pytest.raises(ImageHubError) as exc_info:
            rest_client.generate("gpt-image-1", {"prompt": "x"})
        assert exc_info.value.message == AUTH_MESSAGE

    def test_provider_message_kept(self, rest_client, fake_post):
        fake_post.respond({"error": {"message": "model overloaded", "code": "busy"}}, status_code=503)
        with pytest.raises(ImageHubError) as exc_info:
            rest_client.generate("gpt-image-1", {"prompt": "x"})
        assert exc_info.value.message == "model overloaded"
        assert exc_info.value.details == {"provider_code": "busy"}

    def test_error_envelope_on_200(self, rest_client, fake_post):
        fake_post.respond({"error": "content rejected"})
        with pytest.raises(ImageHubError) as exc_info:
            rest_client.generate("gpt-image-1", {"prompt": "x"})
        assert exc_info.value.code == ErrorCode.PROVIDER_ERROR
        assert exc_info.value.message == "content rejected"

    def test_non_json_body(self, rest_client, fake_post):
        fake_post.respond(text="<html>")
        with pytest.raises(ImageHubError) as exc_info:
            rest_client.generate("gpt-image-1", {"prompt": "x"})
        assert exc_info.value.code == ErrorCode.UNRECOGNIZED_RESPONSE

    @pytest.mark.parametrize("error, code", [
        (requests.exceptions.Timeout("slow"), ErrorCode.TIMEOUT),
        (requests.exceptions.ConnectionError("down"), ErrorCode.NETWORK_ERROR),
        (requests.exceptions.TooManyRedirects("loop"), ErrorCode.NETWORK_ERROR),
    ])
    def test_transport_errors(self, rest_client, fake_post, error, code):
        fake_post.raise_error(error)
        with pytest.raises(ImageHubError) as exc_info:
            rest_client.generate("gpt-image-1", {"prompt": "x"})
        assert exc_info.value.code == code


class TestCustomEndpoint:
    def test_relative_and_absolute(self, rest_client, fake_post):
        rest_client.post_custom("/v1/images/seedream-3.0", {"model": "m", "seed": None})
        assert fake_post.last["url"] == "https://api.test/v1/images/seedream-3.0"
        assert fake_post.last["json"] == {"model": "m"}

        rest_client.post_custom("https://other.test/run", {"model": "m"})
        assert fake_post.last["url"] == "https://other.test/run"


def test_truncate_for_log():
    logged = truncate_for_log({"image": "A" * 500, "files": [("image", ("a.png", b"12345", "image/png"))]})
    assert logged["image"].endswith("(500 chars)")
    assert logged["files"][0][1][1] == "<5 bytes>"
