# core/services/metadata_service.py
"""ISBN lookups against Open Library, falling back to Google Books."""
import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from core.models.state import BookDraft
from core.utils.http import JsonClient

logger = logging.getLogger(__name__)

OPEN_LIBRARY_URL = 'https://openlibrary.org/api/books'
GOOGLE_BOOKS_URL = 'https://www.googleapis.com/books/v1/volumes'
MAX_GENRES = 5


def normalize_isbn(value: str) -> str:
    """Strip spaces and hyphens, keeping a trailing X check digit"""
    return re.sub(r'[^0-9Xx]', '', value or '').upper()


def html_to_text(value: Optional[str]) -> Optional[str]:
    """Flatten an HTML description to plain text"""
    if not value:
        return None
    text = BeautifulSoup(value, 'html.parser').get_text(' ', strip=True)
    return re.sub(r'\s+', ' ', text) or None


class MetadataService:
    def __init__(self, client: Optional[JsonClient] = None, google_key: str = ''):
        self.client = client or JsonClient()
        self.google_key = google_key

    def lookup_isbn(self, isbn: str) -> Optional[BookDraft]:
        """Find book details for an ISBN.

        Args:
            isbn: ISBN-10 or ISBN-13, hyphens allowed

        Returns:
            A BookDraft, or None if neither service knows the book or both
            could not be reached
        """
        isbn = normalize_isbn(isbn)
        if not isbn:
            return None
        draft = self._from_open_library(isbn) or self._from_google_books(isbn)
        if draft is None:
            logger.info(f"No metadata found for ISBN {isbn}")
        return draft

    def _from_open_library(self, isbn: str) -> Optional[BookDraft]:
        success, data = self.client.get_json(OPEN_LIBRARY_URL, params={
            'bibkeys': f'ISBN:{isbn}',
            'format': 'json',
            'jscmd': 'data',
        })
        if not success or not isinstance(data, dict):
            return None
        book = data.get(f'ISBN:{isbn}')
        if not book or not book.get('title'):
            return None

        authors = [a.get('name') for a in book.get('authors', []) if a.get('name')]
        subjects = [s.get('name') for s in book.get('subjects', []) if s.get('name')]
        cover = book.get('cover') or {}
        excerpts = book.get('excerpts') or []
        summary = book.get('notes') or (excerpts[0].get('text') if excerpts else None)
        if isinstance(summary, dict):
            summary = summary.get('value')

        return BookDraft(
            isbn=isbn,
            title=book['title'],
            author=', '.join(authors) or None,
            genres=subjects[:MAX_GENRES],
            cover_url=cover.get('large') or cover.get('medium'),
            summary=html_to_text(summary),
            total_pages=book.get('number_of_pages'),
        )

    def _from_google_books(self, isbn: str) -> Optional[BookDraft]:
        params = {'q': f'isbn:{isbn}'}
        if self.google_key:
            params['key'] = self.google_key
        success, data = self.client.get_json(GOOGLE_BOOKS_URL, params=params)
        if not success or not isinstance(data, dict):
            return None
        items = data.get('items') or []
        if not items:
            return None

        info = items[0].get('volumeInfo', {})
        if not info.get('title'):
            return None
        images = info.get('imageLinks') or {}
        cover = images.get('thumbnail') or images.get('smallThumbnail')
        if cover and cover.startswith('http://'):
            cover = 'https://' + cover[7:]
        categories: List[str] = info.get('categories') or []

        return BookDraft(
            isbn=isbn,
            title=info['title'],
            author=', '.join(info.get('authors') or []) or None,
            genres=categories[:MAX_GENRES],
            cover_url=cover,
            summary=html_to_text(info.get('description')),
            total_pages=info.get('pageCount'),
        )
