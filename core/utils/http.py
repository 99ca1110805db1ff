# core/utils/http.py
import logging
from typing import Any, Optional, Tuple

import requests

from core.config import get_settings
from core.utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

class JsonClient:
    """Small wrapper around requests for JSON APIs.

    Failures of any kind (network, HTTP status, bad JSON) are logged and
    reported as (False, None) rather than raised.
    """

    def __init__(self, timeout: Optional[float] = None, rate_limiter: Optional[RateLimiter] = None,
                 session: Optional[requests.Session] = None):
        self.timeout = timeout if timeout is not None else get_settings().http_timeout
        self.rate_limiter = rate_limiter
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', 'BiblioPi/0.1 (home library)')

    def get_json(self, url: str, params: Optional[dict] = None) -> Tuple[bool, Any]:
        """
        GET a URL and decode the JSON body.

        Args:
            url: The URL to fetch
            params: Optional query parameters

        Returns:
            Tuple of (success: bool, data)
            If success is False, data will be None
        """
        return self._request('GET', url, params=params)

    def post_json(self, url: str, payload: Any, params: Optional[dict] = None,
                  timeout: Optional[float] = None) -> Tuple[bool, Any]:
        """POST a JSON payload and decode the JSON response"""
        return self._request('POST', url, params=params, json=payload, timeout=timeout)

    def _request(self, method: str, url: str, timeout: Optional[float] = None, **kwargs) -> Tuple[bool, Any]:
        if self.rate_limiter:
            self.rate_limiter.delay()
        try:
            response = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
            response.raise_for_status()
            return True, response.json()
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            return False, None
        except ValueError as e:
            logger.warning(f"{method} {url} returned invalid JSON: {e}")
            return False, None
