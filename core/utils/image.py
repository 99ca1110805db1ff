# core/utils/image.py
import base64
import logging
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

import requests
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Common image headers
IMAGE_HEADERS = (
    b'\xff\xd8\xff',  # JPEG
    b'\x89PNG\r\n',   # PNG
    b'GIF87a',        # GIF
    b'GIF89a',        # GIF
    b'RIFF',          # WEBP
)


def looks_like_image(content: bytes) -> bool:
    return any(content.startswith(header) for header in IMAGE_HEADERS)


def process_image(image_data: bytes, max_size: int = 1024, quality: int = 85) -> bytes:
    """Re-encode an image as JPEG, shrinking it so neither side exceeds max_size.

    Args:
        image_data: Raw image bytes in any format Pillow can read
        max_size: Maximum width or height in pixels
        quality: JPEG quality

    Returns:
        Processed image as bytes

    Raises:
        ValueError: If the bytes are not a readable image
    """
    try:
        img = Image.open(BytesIO(image_data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Not a readable image: {e}") from e

    # Convert to RGB if necessary (e.g., if PNG with transparency)
    if img.mode != 'RGB':
        img = img.convert('RGB')

    if max(img.size) > max_size:
        img.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)

    output = BytesIO()
    img.save(output, format='JPEG', quality=quality, optimize=True)
    return output.getvalue()


def read_image(source: Union[str, Path, bytes], max_size: int = 1024) -> bytes:
    """Load an image from a path or raw bytes and normalize it to JPEG"""
    if isinstance(source, (str, Path)):
        source = Path(source).read_bytes()
    return process_image(source, max_size=max_size)


def to_base64(image_data: bytes) -> str:
    return base64.b64encode(image_data).decode('ascii')


def to_data_url(image_data: bytes) -> str:
    """Embed JPEG bytes as a data URL, the way room photos are stored"""
    return f"data:image/jpeg;base64,{to_base64(image_data)}"


def download_image(url: str, timeout: float = 10) -> Optional[bytes]:
    """Fetch an image, returning None if it could not be downloaded"""
    if not url:
        return None
    if url.startswith('http://'):
        url = 'https://' + url[7:]
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Could not download image {url}: {e}")
        return None
    content_type = response.headers.get('content-type', 'image/jpeg')
    if not content_type.startswith('image/') or not looks_like_image(response.content):
        logger.warning(f"{url} did not return an image")
        return None
    return response.content
