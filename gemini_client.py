# gemini_client.py
import base64
import logging
import re

import requests

from config import Settings
from errors import AuthError, MissingKey, NoTextFound, QuotaExceeded, Unexpected

logger = logging.getLogger(__name__)

PROMPT_TEXT = """
Extract ALL TEXT from this image first. Then identify and extract ALL partner names and their tippable hours from the text.

Look for patterns indicating partner names followed by hours, such as:
- "Name: X hours" or "Name: Xh"
- "Name - X hours"
- "Name (X hours)"
- Any text that includes names with numeric values that could represent hours

Return EACH partner's full name followed by their hours, with one partner per line.
Format the output exactly like this:
John Smith: 32
Maria Garcia: 24.5
Alex Johnson: 18.75

Make sure to include ALL partners mentioned in the image, not just the first one.
If hours are not explicitly labeled, look for numeric values near names that could represent hours.
"""

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
)

API_KEY_RE = re.compile(r'(api_key:|key=)[a-zA-Z0-9\-_]+')


def build_payload(image_bytes: bytes, mime_type: str = "image/jpeg") -> dict:
    return {
        "contents": [
            {
                "parts": [
                    {"text": PROMPT_TEXT},
                    {
                        "inline_data": {
                            "mime_type": mime_type,
                            "data": base64.b64encode(image_bytes).decode("ascii"),
                        }
                    },
                ]
            }
        ],
        "generationConfig": {
            "temperature": 0.1,
            "topP": 0.95,
            "topK": 32,
            "maxOutputTokens": 4096,
            "stopSequences": [],
        },
        "safetySettings": [
            {"category": c, "threshold": "BLOCK_NONE"} for c in SAFETY_CATEGORIES
        ],
    }


def redact(message: str) -> str:
    return API_KEY_RE.sub(lambda m: m.group(1) + "[REDACTED]", message)


def _error_message(resp) -> str:
    try:
        data = resp.json()
    except ValueError:
        logger.error("Failed to parse Gemini error body: %s", resp.text[:500])
        return "Failed to call Gemini API"
    message = (data.get("error") or {}).get("message") if isinstance(data, dict) else None
    return redact(message) if message else "Failed to call Gemini API"


def analyze_image(image_bytes: bytes, settings: Settings) -> str:
    """Send an image to Gemini and return the text it reads back."""
    if not settings.gemini_api_key:
        logger.error("No Gemini API key provided")
        raise MissingKey()

    payload = build_payload(image_bytes)
    try:
        resp = requests.post(
            settings.gemini_endpoint,
            params={"key": settings.gemini_api_key},
            headers={"Content-Type": "application/json"},
            json=payload,
            timeout=settings.ocr_timeout,
        )
    except requests.RequestException as exc:
        logger.error("Error calling Gemini API: %s", redact(str(exc)))
        raise Unexpected() from exc

    if resp.status_code != 200:
        message = _error_message(resp)
        logger.error("Gemini API error %s: %s", resp.status_code, message)
        if resp.status_code == 400:
            raise Unexpected("Bad request to Gemini API. Check your API key permissions and image format.")
        if resp.status_code in (401, 403):
            raise AuthError()
        if resp.status_code == 429:
            raise QuotaExceeded()
        raise Unexpected(f"API Error ({resp.status_code}): {message}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise Unexpected("Gemini API returned a response that is not JSON.") from exc

    candidates = data.get("candidates") or []
    if not candidates:
        logger.error("No candidates in Gemini response")
        raise NoTextFound()

    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "\n".join(p["text"] for p in parts if p.get("text"))
    if not text:
        raise NoTextFound()
    return text
