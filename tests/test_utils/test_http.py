# tests/test_utils/test_http.py
import pytest
import requests
from unittest.mock import Mock

from core.utils.http import JsonClient


def make_session(response=None, error=None):
    session = Mock()
    session.headers = {}
    if error is not None:
        session.request.side_effect = error
    else:
        session.request.return_value = response
    return session


def make_response(data=None, status_error=None, json_error=None):
    response = Mock()
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = data
    return response


def test_get_json_success():
    """Test a successful GET returns the decoded body."""
    session = make_session(make_response({'ok': 1}))
    client = JsonClient(timeout=5, session=session)
    assert client.get_json('https://example.org/api', params={'q': 'x'}) == (True, {'ok': 1})
    session.request.assert_called_once_with('GET', 'https://example.org/api', timeout=5, params={'q': 'x'})
    assert 'BiblioPi' in session.headers['User-Agent']


def test_post_json_uses_own_timeout():
    session = make_session(make_response({'ok': 1}))
    client = JsonClient(timeout=5, session=session)
    client.post_json('https://example.org/api', {'a': 1}, timeout=60)
    session.request.assert_called_once_with(
        'POST', 'https://example.org/api', timeout=60, params=None, json={'a': 1}
    )


@pytest.mark.parametrize('session', [
    make_session(error=requests.ConnectionError('offline')),
    make_session(make_response(status_error=requests.HTTPError('503'))),
    make_session(make_response(json_error=ValueError('Expecting value'))),
])
def test_failures_are_reported_not_raised(session):
    """Test that network, status and decoding failures return (False, None)."""
    assert JsonClient(timeout=5, session=session).get_json('https://example.org') == (False, None)


def test_rate_limiter_is_used():
    limiter = Mock()
    client = JsonClient(timeout=5, rate_limiter=limiter, session=make_session(make_response({})))
    client.get_json('https://example.org')
    limiter.delay.assert_called_once()
