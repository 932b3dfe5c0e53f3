from __future__ import annotations

import io
from pathlib import Path
from typing import Tuple
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from PIL import Image


EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "GIF": "gif",
    "WEBP": "webp",
    "HEIF": "heic",
}


def read_local_image(uri: str) -> bytes:
    """Read the bytes behind a device-local URI (``file://`` URL or plain path)."""
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        path = Path(url2pathname(unquote(parsed.path)))
    elif parsed.scheme in ("", None) or len(parsed.scheme) == 1:
        # plain paths, including Windows drive letters
        path = Path(uri)
    else:
        raise ValueError(f"Unsupported image URI: {uri}")
    return path.read_bytes()


def identify_image(data: bytes) -> Tuple[str, str]:
    """Return ``(extension, content_type)`` for image ``data``.

    Raises ``PIL.UnidentifiedImageError`` if ``data`` is not an image.
    """
    with Image.open(io.BytesIO(data)) as img:
        fmt = img.format or ""
    ext = EXTENSIONS.get(fmt, fmt.lower())
    content_type = Image.MIME.get(fmt, f"image/{ext}")
    return ext, content_type


def upload_path(user_id: str, timestamp_ms: int, ext: str) -> str:
    return f"{user_id}/{timestamp_ms}.{ext}"
