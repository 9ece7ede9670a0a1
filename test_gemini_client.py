# test_gemini_client.py
import base64
from unittest.mock import MagicMock, patch

import pytest
import requests

from config import Settings
from errors import AuthError, MissingKey, NoTextFound, QuotaExceeded, Unexpected
from gemini_client import analyze_image, redact

SETTINGS = Settings(gemini_api_key="test-key", ocr_timeout=5)


def fake_response(status_code=200, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body
    resp.text = str(body)
    return resp


@patch("gemini_client.requests.post")
def test_returns_joined_text_parts(post):
    post.return_value = fake_response(body={
        "candidates": [{"content": {"parts": [{"text": "John: 8"}, {}, {"text": "Maria: 4"}]}}]
    })

    assert analyze_image(b"jpeg-bytes", SETTINGS) == "John: 8\nMaria: 4"

    args, kwargs = post.call_args
    assert args[0].endswith("/gemini-1.5-pro:generateContent")
    assert kwargs["params"] == {"key": "test-key"}
    assert kwargs["timeout"] == 5
    inline = kwargs["json"]["contents"][0]["parts"][1]["inline_data"]
    assert inline["mime_type"] == "image/jpeg"
    assert base64.b64decode(inline["data"]) == b"jpeg-bytes"


@patch("gemini_client.requests.post")
def test_missing_key(post):
    with pytest.raises(MissingKey):
        analyze_image(b"x", Settings(gemini_api_key=""))
    post.assert_not_called()


@pytest.mark.parametrize("status, error", [
    (401, AuthError),
    (403, AuthError),
    (429, QuotaExceeded),
    (400, Unexpected),
    (503, Unexpected),
])
@patch("gemini_client.requests.post")
def test_http_errors(post, status, error):
    post.return_value = fake_response(status, {"error": {"message": "nope"}})
    with pytest.raises(error):
        analyze_image(b"x", SETTINGS)


@patch("gemini_client.requests.post")
def test_error_message_hides_api_key(post):
    post.return_value = fake_response(500, {"error": {"message": "bad api_key:AIzaSecret-123"}})
    with pytest.raises(Unexpected) as info:
        analyze_image(b"x", SETTINGS)
    assert "AIzaSecret" not in info.value.message
    assert "API Error (500)" in info.value.message


@patch("gemini_client.requests.post")
def test_no_candidates(post):
    post.return_value = fake_response(body={"candidates": []})
    with pytest.raises(NoTextFound):
        analyze_image(b"x", SETTINGS)


@patch("gemini_client.requests.post")
def test_empty_parts(post):
    post.return_value = fake_response(body={"candidates": [{"content": {"parts": [{"text": ""}]}}]})
    with pytest.raises(NoTextFound):
        analyze_image(b"x", SETTINGS)


@patch("gemini_client.requests.post")
def test_network_failure(post):
    post.side_effect = requests.ConnectionError("connection refused")
    with pytest.raises(Unexpected):
        analyze_image(b"x", SETTINGS)


def test_redact():
    assert redact("url?key=AIza123&x=1") == "url?key=[REDACTED]&x=1"
    assert redact("api_key:abc_DEF") == "api_key:[REDACTED]"
