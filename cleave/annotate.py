"""Optional AI annotation of source images."""
import base64
import json
import logging
import os
from typing import Optional, Protocol

import requests

from cleave.types import Annotation, AnnotationError

logger = logging.getLogger(__name__)

GEMINI_MODEL = "gemini-2.5-flash"
GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

PROMPT = (
    "Analyze this image. Provide a short, professional description (max 20 words) "
    "suitable for file metadata, and a list of 5 relevant keyword tags."
)

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "description": {"type": "STRING"},
        "tags": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["description", "tags"],
}

MISSING_KEY_DESCRIPTION = "AI Analysis unavailable (Missing Key)"


class Annotator(Protocol):
    """Describes an image with a short text and keyword tags."""

    def analyze(self, data: bytes, mime_type: str) -> Annotation:
        ...


class NullAnnotator:
    """Annotator that never calls out; returns an empty annotation."""

    def analyze(self, data: bytes, mime_type: str) -> Annotation:
        return Annotation()


class GeminiAnnotator:
    """Gemini vision client over the public REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GEMINI_MODEL,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            api_key: API key; falls back to GEMINI_API_KEY, then API_KEY
            model: Model name
            timeout: Request timeout in seconds
            session: Optional requests session (shared connections, tests)
        """
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request_body(self, data: bytes, mime_type: str) -> dict:
        return {
            "contents": [{
                "parts": [
                    {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(data).decode("ascii")}},
                    {"text": PROMPT},
                ]
            }],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    def analyze(self, data: bytes, mime_type: str) -> Annotation:
        """
        Describe an image.

        Args:
            data: Encoded image bytes
            mime_type: Media type of data

        Returns:
            Annotation with description and tags

        Raises:
            AnnotationError: If the request fails or the reply is unusable
        """
        if not self.api_key:
            logger.warning("API key missing, skipping AI analysis")
            return Annotation(description=MISSING_KEY_DESCRIPTION, tags=[])

        url = GEMINI_ENDPOINT.format(model=self.model)
        try:
            response = self.session.post(
                url,
                headers={"x-goog-api-key": self.api_key},
                json=self._request_body(data, mime_type),
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise AnnotationError(f"Gemini request failed: {e}") from e

        try:
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
            parsed = json.loads(text)
            description = str(parsed["description"])
            tags = [str(tag) for tag in parsed["tags"]]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise AnnotationError(f"Unexpected Gemini response: {e}") from e

        return Annotation(description=description, tags=tags)
