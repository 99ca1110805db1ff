# tests/test_utils/test_image.py
import pytest
import requests
from io import BytesIO
from unittest.mock import Mock, patch

from PIL import Image

from core.utils.image import download_image, looks_like_image, process_image, read_image, to_data_url


def png_bytes(size=(2000, 1000), mode='RGBA'):
    output = BytesIO()
    Image.new(mode, size).save(output, format='PNG')
    return output.getvalue()


def test_process_image_shrinks_and_converts():
    """Test that large images are scaled down and re-encoded as RGB JPEG."""
    result = process_image(png_bytes(), max_size=500)
    image = Image.open(BytesIO(result))
    assert image.format == 'JPEG'
    assert image.mode == 'RGB'
    assert image.size == (500, 250)


def test_process_image_keeps_small_images():
    image = Image.open(BytesIO(process_image(png_bytes((100, 80), 'RGB'))))
    assert image.size == (100, 80)


def test_process_image_rejects_garbage():
    with pytest.raises(ValueError):
        process_image(b'definitely not an image')


def test_read_image_from_path(tmp_path):
    path = tmp_path / 'room.png'
    path.write_bytes(png_bytes((10, 10)))
    assert looks_like_image(read_image(path))


def test_to_data_url():
    assert to_data_url(b'abc') == 'data:image/jpeg;base64,YWJj'


def test_looks_like_image():
    assert looks_like_image(png_bytes((2, 2)))
    assert not looks_like_image(b'<html>')


def test_download_image_upgrades_to_https():
    """Test that cover downloads use https and return the image bytes."""
    response = Mock(content=png_bytes((2, 2)), headers={'content-type': 'image/png'})
    with patch('core.utils.image.requests.get', return_value=response) as get:
        assert download_image('http://covers.example.org/1.png') == response.content
    assert get.call_args.args[0] == 'https://covers.example.org/1.png'


def test_download_image_failures():
    """Test that errors and non-image responses give None."""
    assert download_image('') is None
    with patch('core.utils.image.requests.get', side_effect=requests.Timeout('slow')):
        assert download_image('https://covers.example.org/1.png') is None
    page = Mock(content=b'<html></html>', headers={'content-type': 'text/html'})
    with patch('core.utils.image.requests.get', return_value=page):
        assert download_image('https://covers.example.org/1.png') is None
