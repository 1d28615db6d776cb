"""
Shared fixtures: isolated configuration and a recording stand-in for requests.post
"""

import pytest

from imagehub.hub_config import SETTINGS, HubConfig
from imagehub.utils import api_client
from imagehub.utils.api_client import ImageAPIClient

API_BASE = "https://api.test"


@pytest.fixture
def hub_config(tmp_path, monkeypatch):
    """Fresh HubConfig reading an empty config file under tmp_path"""
    for env_name, _, _ in SETTINGS.values():
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.delenv("FAL_KEY", raising=False)
    monkeypatch.setenv("IMAGEHUB_CONFIG", str(tmp_path / "config.ini"))
    monkeypatch.setenv("IMAGEHUB_HISTORY_FILE", str(tmp_path / "history.json"))
    monkeypatch.setattr(HubConfig, "_instance", None)
    return HubConfig()


@pytest.fixture
def rest_client(hub_config):
    return ImageAPIClient(api_key="test-key", base_url=API_BASE, config=hub_config)


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json = json_data
        self.text = text

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


class RecordingPost:
    """Replaces requests.post; returns queued responses and records every call"""

    def __init__(self):
        self.calls = []
        self.responses = []

    def respond(self, json_data=None, status_code=200, text=""):
        self.responses.append(FakeResponse(status_code, json_data, text))

    def raise_error(self, error):
        self.responses.append(error)

    def __call__(self, url, headers=None, json=None, files=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "files": files, "timeout": timeout})
        response = self.responses.pop(0) if self.responses else FakeResponse(200, {"data": []})
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def last(self):
        return self.calls[-1]

    def form(self, index=-1):
        """Multipart fields of a call as (name, value) pairs"""
        return [(name, value) for name, value in self.calls[index]["files"]]


@pytest.fixture
def fake_post(monkeypatch):
    recorder = RecordingPost()
    monkeypatch.setattr(api_client.requests, "post", recorder)
    return recorder
