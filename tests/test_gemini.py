import io
import json
import urllib.error
from unittest import mock

import pytest

from wasmtojs.gemini import GeminiUnreachable, ask_gemini, ask_gemini_retry


def _response(status, payload):
    resp = mock.MagicMock()
    resp.status = status
    resp.read.return_value = payload
    opener = mock.MagicMock()
    opener.__enter__.return_value = resp
    opener.__exit__.return_value = False
    return opener


def _ok(text):
    body = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return _response(200, json.dumps(body).encode())


def test_ask_gemini_returns_text_and_sends_prompt():
    with mock.patch("urllib.request.urlopen", return_value=_ok("hello")) as urlopen:
        assert ask_gemini("placeholder", "my prompt") == "hello"
    request = urlopen.call_args.args[0]
    sent = json.loads(request.data)
    assert sent["contents"][0]["parts"][0]["text"] == "my prompt"
    assert request.get_method() == "POST"


def test_ask_gemini_missing_text():
    resp = _response(200, json.dumps({"candidates": []}).encode())
    with mock.patch("urllib.request.urlopen", return_value=resp):
        assert ask_gemini("placeholder", "p") == "[AI_ERROR: Could not find text in valid response.]"


def test_ask_gemini_bad_json():
    with mock.patch("urllib.request.urlopen", return_value=_response(200, b"{nope")):
        assert ask_gemini("placeholder", "p") == "[AI_ERROR: Failed to parse JSON response.]"


def test_ask_gemini_http_error():
    err = urllib.error.HTTPError("http://localhost/", 500, "boom", {}, io.BytesIO(b""))
    with mock.patch("urllib.request.urlopen", side_effect=err):
        assert ask_gemini("placeholder", "p") == "[AI_ERROR: HTTP Status 500]"


def test_ask_gemini_connection_error():
    with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")):
        assert ask_gemini("placeholder", "p").startswith("[AI_ERROR: Request failed.")


def test_retry_returns_first_success():
    responses = [urllib.error.URLError("down"), _ok("fine")]
    with mock.patch("urllib.request.urlopen", side_effect=responses), mock.patch("time.sleep") as sleep:
        assert ask_gemini_retry("placeholder", "p", 3, 1) == "fine"
    assert sleep.call_count == 1


def test_retry_gives_up_with_exponential_delays():
    with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")), mock.patch(
        "time.sleep"
    ) as sleep:
        with pytest.raises(GeminiUnreachable):
            ask_gemini_retry("placeholder", "p", 3, 1)
    delays = [c.args[0] for c in sleep.call_args_list]
    assert len(delays) == 3
    assert delays[0] == 1
    assert all(b == 2 * a for a, b in zip(delays, delays[1:]))