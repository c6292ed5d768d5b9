"""Save opaque image references to local files."""

import base64
import binascii
import hashlib
import logging
import time
from pathlib import Path
from typing import Optional, Union

import httpx

logger = logging.getLogger(__name__)

FILENAME_PREFIX = "ai-image"

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


def export_filename(extension: str = "png", timestamp_ms: Optional[int] = None) -> str:
    """Build a download filename containing the capture time.

    Args:
        extension: File extension without the dot
        timestamp_ms: Epoch milliseconds (defaults to now)

    Returns:
        Filename such as ``ai-image-1700000000000.png``
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{FILENAME_PREFIX}-{timestamp_ms}.{extension}"


def decode_data_url(image: str) -> tuple[bytes, str]:
    """Split a base64 ``data:`` URL into bytes and a file extension.

    Raises:
        ValueError: If the URL is not a base64 data URL
    """
    header, sep, data = image.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("Only base64 data URLs are supported")

    mime_type = header[len("data:"):-len(";base64")]
    try:
        content = base64.b64decode(data, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e

    return content, _EXTENSIONS.get(mime_type, "png")


def fetch_image(image: str, timeout: float = 60.0) -> tuple[bytes, str]:
    """Download an http(s) image reference.

    Raises:
        httpx.HTTPError: If the download fails
    """
    response = httpx.get(image, timeout=timeout, follow_redirects=True)
    response.raise_for_status()
    mime_type = response.headers.get("content-type", "").split(";")[0].strip()
    return response.content, _EXTENSIONS.get(mime_type, "png")


def export_image(
    image: str,
    directory: Union[str, Path],
    timestamp_ms: Optional[int] = None
) -> Path:
    """Write an image reference to ``directory`` under a timestamped name.

    Args:
        image: Data URL or http(s) URL returned by the service
        directory: Target directory (created if missing)
        timestamp_ms: Epoch milliseconds used in the filename

    Returns:
        Path of the written file

    Raises:
        ValueError: If the reference is neither a data URL nor an http(s) URL
        httpx.HTTPError: If downloading a remote image fails
    """
    if image.startswith("data:"):
        content, extension = decode_data_url(image)
    elif image.startswith(("http://", "https://")):
        content, extension = fetch_image(image)
    else:
        raise ValueError("Unsupported image reference")

    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / export_filename(extension, timestamp_ms)
    path.write_bytes(content)

    logger.info(f"Exported image: {path} ({len(content)} bytes)")
    return path


def cache_for_display(image: str, cache_dir: Union[str, Path]) -> str:
    """Return something a browser can show for ``image``.

    Remote URLs are returned unchanged; base64 data URLs are written to
    ``cache_dir`` and the local path is returned. Any other reference is
    returned as-is.
    """
    if not image.startswith("data:"):
        return image

    try:
        content, extension = decode_data_url(image)
    except ValueError as e:
        logger.warning(f"Showing image reference without caching: {e}")
        return image

    target_dir = Path(cache_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    # Content-addressed: one file per distinct image.
    digest = hashlib.sha256(content).hexdigest()[:16]
    path = target_dir / f"{FILENAME_PREFIX}-{digest}.{extension}"
    if not path.exists():
        path.write_bytes(content)
    return str(path)
