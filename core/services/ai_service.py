# core/services/ai_service.py
"""Book analysis through Gemini or a local Ollama model.

Both providers are asked for the same JSON object and the answer is turned
into a BookDraft. Any failure along the way raises EnrichmentError; callers
never receive a partial result.
"""
import json
import logging
import re
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from core.config import get_settings
from core.exceptions import EnrichmentError
from core.models.state import AiProvider, AiSettings, BookDraft
from core.utils.http import JsonClient
from core.utils.image import read_image, to_base64

logger = logging.getLogger(__name__)

GEMINI_URL = 'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'

RESPONSE_SHAPE = (
    'Respond with a single JSON object using these keys: '
    'title, author, isbn, genres (list of strings), summary (two sentences), '
    'minAge (integer), estimatedValue (number, Indian rupees), totalPages (integer), '
    'parentalAdvice, understandingGuide, mediaAdaptations (list of strings), '
    'culturalReference. Use null for anything you do not know.'
)

COVER_PROMPT = (
    'You are a librarian cataloguing a home library. Identify the book on this '
    'cover. ' + RESPONSE_SHAPE
)

TEXT_PROMPT = (
    'You are a librarian cataloguing a home library for an Indian family. '
    'Describe the book "{title}" by {author}. ' + RESPONSE_SHAPE
)

_FENCE = re.compile(r'^```(?:json)?\s*|\s*```$')

ImageSource = Union[str, Path, bytes]


def parse_model_output(text: str) -> BookDraft:
    """Turn a model's JSON answer into a BookDraft.

    Raises:
        EnrichmentError: If the answer is not a JSON object of book fields
    """
    cleaned = _FENCE.sub('', (text or '').strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"Model returned invalid JSON: {e}")
        raise EnrichmentError() from e
    if isinstance(data, list) and data:
        data = data[0]
    if not isinstance(data, dict):
        raise EnrichmentError()
    # Models sometimes answer with a comma separated string for list fields
    for key in ('genres', 'tags', 'mediaAdaptations'):
        if isinstance(data.get(key), str):
            data[key] = [v.strip() for v in data[key].split(',') if v.strip()]
    try:
        return BookDraft.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Model answer did not match the book fields: {e}")
        raise EnrichmentError() from e


class EnrichmentService:
    def __init__(self, ai_settings: AiSettings, client: Optional[JsonClient] = None,
                 gemini_model: Optional[str] = None):
        settings = get_settings()
        self.ai_settings = ai_settings
        self.client = client or JsonClient(timeout=settings.ai_timeout)
        self.gemini_model = gemini_model or settings.gemini_model
        self.gemini_key = ai_settings.gemini_api_key or settings.gemini_api_key or ''

    @property
    def provider(self) -> AiProvider:
        return self.ai_settings.provider

    def analyze_cover(self, image: ImageSource) -> BookDraft:
        """Identify a book from a photo of its cover.

        Raises:
            EnrichmentError: If the image is unreadable or the provider fails
        """
        try:
            encoded = to_base64(read_image(image))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read cover image: {e}")
            raise EnrichmentError() from e
        return self._generate(COVER_PROMPT, encoded)

    def enrich_text(self, title: str, author: str) -> BookDraft:
        """Fill in summary, age guidance and value for a known title.

        Raises:
            EnrichmentError: If the provider fails
        """
        return self._generate(TEXT_PROMPT.format(title=title, author=author or 'an unknown author'))

    def check_connection(self) -> bool:
        """Whether the configured provider looks usable"""
        if self.provider == AiProvider.OLLAMA:
            success, _ = self.client.get_json(f"{self.ai_settings.ollama_url.rstrip('/')}/api/tags")
            return success
        return bool(self.gemini_key)

    def _generate(self, prompt: str, image_b64: Optional[str] = None) -> BookDraft:
        if self.provider == AiProvider.OLLAMA:
            text = self._ollama(prompt, image_b64)
        else:
            text = self._gemini(prompt, image_b64)
        return parse_model_output(text)

    def _gemini(self, prompt: str, image_b64: Optional[str]) -> str:
        if not self.gemini_key:
            logger.warning("Gemini selected but no API key is configured")
            raise EnrichmentError()
        parts = [{'text': prompt}]
        if image_b64:
            parts.append({'inline_data': {'mime_type': 'image/jpeg', 'data': image_b64}})
        payload = {
            'contents': [{'parts': parts}],
            'generationConfig': {'responseMimeType': 'application/json'},
        }
        success, data = self.client.post_json(
            GEMINI_URL.format(model=self.gemini_model),
            payload,
            params={'key': self.gemini_key},
        )
        if not success:
            raise EnrichmentError()
        try:
            return data['candidates'][0]['content']['parts'][0]['text']
        except (KeyError, IndexError, TypeError) as e:
            logger.warning(f"Unexpected Gemini response: {e}")
            raise EnrichmentError() from e

    def _ollama(self, prompt: str, image_b64: Optional[str]) -> str:
        payload = {
            'model': self.ai_settings.ollama_model,
            'prompt': prompt,
            'stream': False,
            'format': 'json',
        }
        if image_b64:
            payload['images'] = [image_b64]
        success, data = self.client.post_json(
            f"{self.ai_settings.ollama_url.rstrip('/')}/api/generate", payload
        )
        if not success or not isinstance(data, dict) or 'response' not in data:
            raise EnrichmentError()
        return data['response']
