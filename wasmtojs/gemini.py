"""Minimal client for the Gemini text generation endpoint."""

from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request

log = logging.getLogger(__name__)

GEMINI_HOST = "generativelanguage.googleapis.com"
MODEL_PATH = "/v1beta/models/gemini-1.5-pro-latest:generateContent"
READ_TIMEOUT = 30
ERROR_PREFIX = "[AI_ERROR"


class GeminiUnreachable(RuntimeError):
    """Raised when every retry of a Gemini request failed."""


def _extract_text(data: object) -> str | None:
    if not isinstance(data, dict):
        return None
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    if not isinstance(first, dict):
        return None
    content = first.get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) else None


def ask_gemini(api_key: str, prompt: str) -> str:
    """Send ``prompt`` and return the reply text, or an ``[AI_ERROR: ...]`` marker."""
    body = json.dumps({"contents": [{"parts": [{"text": prompt}]}]}).encode("utf-8")
    url = f"https://{GEMINI_HOST}{MODEL_PATH}?key={urllib.parse.quote(api_key, safe='')}"
    request = urllib.request.Request(
        url, data=body, headers={"Content-Type": "application/json"}, method="POST"
    )
    log.info("[AI] Sending request to Gemini API...")
    try:
        with urllib.request.urlopen(request, timeout=READ_TIMEOUT) as response:
            status = response.status
            payload = response.read()
    except urllib.error.HTTPError as exc:
        log.error("HTTP Error: %s", exc.code)
        return f"[AI_ERROR: HTTP Status {exc.code}]"
    except (urllib.error.URLError, OSError) as exc:
        reason = getattr(exc, "reason", exc)
        log.error("HTTP Request Error: %s", reason)
        return f"[AI_ERROR: Request failed. {reason}]"

    if status != 200:
        log.error("HTTP Error: %s", status)
        return f"[AI_ERROR: HTTP Status {status}]"

    try:
        data = json.loads(payload)
    except ValueError as exc:
        log.error("JSON Parse Error: %s", exc)
        return "[AI_ERROR: Failed to parse JSON response.]"

    text = _extract_text(data)
    if text is None:
        return "[AI_ERROR: Could not find text in valid response.]"
    log.info("[AI] Received successful response.")
    return text


def ask_gemini_retry(api_key: str, prompt: str, max_attempts: int = 4, base_delay: int = 2) -> str:
    """Ask Gemini, backing off exponentially after each failed attempt."""
    for attempt in range(max_attempts):
        result = ask_gemini(api_key, prompt)
        if not result.startswith(ERROR_PREFIX):
            return result
        delay = base_delay * (1 << attempt)
        log.warning("[AI] retrying in %s s", delay)
        time.sleep(delay)
    raise GeminiUnreachable("Gemini unreachable after multiple retries")