# tests/test_services/test_ai_service.py
import json
import pytest
from io import BytesIO
from unittest.mock import Mock

from PIL import Image

from core.exceptions import EnrichmentError
from core.models.state import AiProvider, AiSettings
from core.services.ai_service import GEMINI_URL, EnrichmentService, parse_model_output

ANSWER = {
    'title': 'Dune', 'author': 'Frank Herbert', 'genres': 'Sci-Fi, Classic',
    'minAge': 14, 'estimatedValue': 499, 'summary': 'Spice.', 'mediaAdaptations': ['Dune (2021)'],
}


def gemini_response(text):
    return {'candidates': [{'content': {'parts': [{'text': text}]}}]}


@pytest.fixture
def cover_bytes():
    output = BytesIO()
    Image.new('RGB', (40, 60), 'navy').save(output, format='PNG')
    return output.getvalue()


def test_parse_model_output():
    """Test that fenced JSON with comma separated lists becomes a draft."""
    draft = parse_model_output('```json\n' + json.dumps(ANSWER) + '\n```')
    assert draft.title == 'Dune'
    assert draft.genres == ['Sci-Fi', 'Classic']
    assert draft.min_age == 14
    assert draft.media_adaptations == ['Dune (2021)']


def test_parse_model_output_takes_first_of_list():
    assert parse_model_output(json.dumps([ANSWER])).author == 'Frank Herbert'


@pytest.mark.parametrize('text', ['', 'I could not identify this book', '[]', '"Dune"', '{"minAge": "teen"}'])
def test_parse_model_output_rejects(text):
    """Test that unusable answers raise EnrichmentError."""
    with pytest.raises(EnrichmentError) as exc_info:
        parse_model_output(text)
    assert str(exc_info.value) == 'Analysis failed'


def test_gemini_enrich_text():
    """Test the Gemini request and response handling."""
    client = Mock()
    client.post_json.return_value = (True, gemini_response(json.dumps(ANSWER)))
    service = EnrichmentService(AiSettings(gemini_api_key='key-123'), client=client, gemini_model='gemini-test')

    draft = service.enrich_text('Dune', 'Frank Herbert')

    assert draft.summary == 'Spice.'
    url, payload = client.post_json.call_args.args
    assert url == GEMINI_URL.format(model='gemini-test')
    assert client.post_json.call_args.kwargs['params'] == {'key': 'key-123'}
    assert '"Dune" by Frank Herbert' in payload['contents'][0]['parts'][0]['text']
    assert len(payload['contents'][0]['parts']) == 1


def test_gemini_analyze_cover_sends_image(cover_bytes):
    """Test that a cover photo is sent inline as JPEG."""
    client = Mock()
    client.post_json.return_value = (True, gemini_response(json.dumps(ANSWER)))
    service = EnrichmentService(AiSettings(gemini_api_key='key-123'), client=client)

    assert service.analyze_cover(cover_bytes).title == 'Dune'
    parts = client.post_json.call_args.args[1]['contents'][0]['parts']
    assert parts[1]['inline_data']['mime_type'] == 'image/jpeg'


def test_gemini_without_key(monkeypatch):
    """Test that Gemini without any key fails before making a request."""
    monkeypatch.delenv('GEMINI_API_KEY', raising=False)
    client = Mock()
    service = EnrichmentService(AiSettings(), client=client)
    with pytest.raises(EnrichmentError):
        service.enrich_text('Dune', 'Frank Herbert')
    client.post_json.assert_not_called()
    assert service.check_connection() is False


@pytest.mark.parametrize('response', [(False, None), (True, {'candidates': []}), (True, {})])
def test_gemini_failures(response):
    client = Mock()
    client.post_json.return_value = response
    service = EnrichmentService(AiSettings(gemini_api_key='k'), client=client)
    with pytest.raises(EnrichmentError):
        service.enrich_text('Dune', 'Frank Herbert')


def test_ollama_analyze_cover(cover_bytes):
    """Test the Ollama request body for a cover photo."""
    settings = AiSettings(provider=AiProvider.OLLAMA, ollama_url='http://pi.local:11434/', ollama_model='llava')
    client = Mock()
    client.post_json.return_value = (True, {'response': json.dumps(ANSWER)})
    service = EnrichmentService(settings, client=client)

    assert service.analyze_cover(cover_bytes).author == 'Frank Herbert'
    url, payload = client.post_json.call_args.args
    assert url == 'http://pi.local:11434/api/generate'
    assert payload['model'] == 'llava'
    assert payload['stream'] is False
    assert payload['format'] == 'json'
    assert len(payload['images']) == 1


def test_ollama_failure():
    client = Mock()
    client.post_json.return_value = (True, {'error': 'model not found'})
    service = EnrichmentService(AiSettings(provider=AiProvider.OLLAMA), client=client)
    with pytest.raises(EnrichmentError):
        service.enrich_text('Dune', 'Frank Herbert')


def test_ollama_check_connection():
    """Test that the Ollama check asks the server for its models."""
    client = Mock()
    client.get_json.return_value = (True, {'models': []})
    service = EnrichmentService(AiSettings(provider=AiProvider.OLLAMA), client=client)
    assert service.check_connection() is True
    client.get_json.assert_called_once_with('http://localhost:11434/api/tags')


def test_unreadable_cover():
    """Test that bytes which are not an image fail as an analysis error."""
    service = EnrichmentService(AiSettings(gemini_api_key='k'), client=Mock())
    with pytest.raises(EnrichmentError):
        service.analyze_cover(b'not an image')


def test_missing_cover_file(tmp_path):
    service = EnrichmentService(AiSettings(gemini_api_key='k'), client=Mock())
    with pytest.raises(EnrichmentError):
        service.analyze_cover(tmp_path / 'missing.jpg')
