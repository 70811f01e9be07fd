"""Resolution of image sources into base64 data URLs."""

from __future__ import annotations

import base64
import os

import httpx

MAX_DOWNLOAD_BYTES = 20 * 1024 * 1024

SUPPORTED_MIMES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})

EXTENSION_MIMES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}

_SNIFF_LENGTH = 512

_SIGNATURES = (
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"%PDF-", "application/pdf"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
)

_BINARY_BYTES = frozenset([*range(0x00, 0x09), 0x0B, *range(0x0E, 0x1B), *range(0x1C, 0x20)])


class ImageLoadError(Exception):
    """Raised when an image source cannot be read or is not a supported image."""


def load(source: str) -> str:
    """Resolve a data URL, HTTP(S) URL or local path into a base64 data URL."""
    if source.startswith("data:"):
        return _load_data_url(source)
    if source.startswith(("http://", "https://")):
        return _load_http(source)
    return _load_file(source)


def _load_data_url(source: str) -> str:
    rest = source[len("data:"):]
    mime, semicolon, encoded = rest.partition(";")
    if not semicolon:
        raise ImageLoadError("invalid data URL: missing semicolon")
    if mime not in SUPPORTED_MIMES:
        raise ImageLoadError(f"unsupported image type in data URL: {mime}")
    if not encoded.startswith("base64,"):
        raise ImageLoadError("invalid data URL: expected base64 encoding")
    return source


def _load_http(url: str) -> str:
    try:
        with httpx.stream("GET", url, follow_redirects=True, timeout=None) as response:
            if response.status_code != 200:
                raise ImageLoadError(
                    f"fetching image: HTTP {response.status_code} from {url}"
                )
            data = bytearray()
            try:
                for chunk in response.iter_bytes():
                    data += chunk
                    if len(data) > MAX_DOWNLOAD_BYTES:
                        break
            except httpx.HTTPError as exc:
                raise ImageLoadError(f"reading image from {url}: {exc}") from exc
            content_type = response.headers.get("Content-Type", "")
    except httpx.InvalidURL as exc:
        raise ImageLoadError(f"creating request for {url}: {exc}") from exc
    except httpx.HTTPError as exc:
        raise ImageLoadError(f"fetching {url}: {exc}") from exc

    if len(data) > MAX_DOWNLOAD_BYTES:
        raise ImageLoadError(f"image from {url} exceeds 20 MB limit")

    payload = bytes(data)
    mime = detect_mime(payload, content_type)
    if mime not in SUPPORTED_MIMES:
        raise ImageLoadError(f"unsupported image type from {url}: {mime}")
    return to_data_url(mime, payload)


def _extension(path: str) -> str:
    name = os.path.basename(path)
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def _load_file(source: str) -> str:
    path = os.path.normpath(source)
    try:
        with open(path, "rb") as handle:
            data = handle.read()
    except OSError as exc:
        raise ImageLoadError(f"reading file {source}: {exc}") from exc

    mime = EXTENSION_MIMES.get(_extension(path).lower()) or detect_mime(data, "")
    if mime not in SUPPORTED_MIMES:
        raise ImageLoadError(f"unsupported image type for {source}: {mime}")
    return to_data_url(mime, data)


def _sniff(data: bytes) -> str:
    head = data[:_SNIFF_LENGTH]
    for signature, mime in _SIGNATURES:
        if head.startswith(signature):
            return mime
    if head[:4] == b"RIFF" and head[8:14] == b"WEBPVP":
        return "image/webp"
    if any(byte in _BINARY_BYTES for byte in head):
        return "application/octet-stream"
    return "text/plain"


def detect_mime(data: bytes, content_type: str) -> str:
    """Return the MIME type, trusting the header only when it names a supported image."""
    declared = content_type.split(";", 1)[0].strip().lower()
    if declared in SUPPORTED_MIMES:
        return declared
    return _sniff(data)


def to_data_url(mime: str, data: bytes) -> str:
    """Encode ``data`` as a base64 data URL of type ``mime``."""
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"