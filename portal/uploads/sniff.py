"""Content-type detection for stored uploads.

Files written by the first version of the portal have no extension, so the
type is read from the leading bytes instead.
"""
from __future__ import annotations

from pathlib import Path

OCTET_STREAM = "application/octet-stream"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Longest signatures first; "PK" alone is any zip, taken to be a .docx here.
SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png", ".png"),
    (b"\xd0\xcf\x11\xe0", "application/msword", ".doc"),
    (b"%PDF", "application/pdf", ".pdf"),
    (b"GIF8", "image/gif", ".gif"),
    (b"\xff\xd8", "image/jpeg", ".jpg"),
    (b"PK", DOCX, ".docx"),
)

EXTENSION_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": DOCX,
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}

HEAD_BYTES = 8


def sniff_content_type(head: bytes) -> tuple[str, str]:
    """Classify a file from its first bytes; returns ``(mime_type, extension)``."""
    for magic, mime, ext in SIGNATURES:
        if head.startswith(magic):
            return mime, ext
    return OCTET_STREAM, ""


def content_type_for(path: Path) -> tuple[str, str]:
    ext = path.suffix.lower()
    if ext in EXTENSION_TYPES:
        return EXTENSION_TYPES[ext], ext
    with path.open("rb") as fh:
        return sniff_content_type(fh.read(HEAD_BYTES))
