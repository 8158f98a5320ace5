"""Storage of uploaded files (resumes, job images, student photos).

New files are always written as ``<subdir>/<uuid><ext>`` relative to
``MEDIA_ROOT``; that string is the reference kept on the owning record.
Records written by earlier versions of the portal hold other shapes (a bare
generated filename in the flat ``uploads/`` root, a full path under an old
project root, or ``uploads/<subdir>/<name>``); ``resolve`` finds the file for
any of them.
"""
from __future__ import annotations

import enum
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from django.conf import settings
from django.core.files.storage import default_storage

from portal.errors import FileNotFound, FileTooLarge, InvalidFileType

from .sniff import content_type_for

logger = logging.getLogger(__name__)


class Purpose(str, enum.Enum):
    RESUME = "resume"
    JOB_IMAGE = "job_image"
    STUDENT_PHOTO = "student_photo"


@dataclass(frozen=True)
class PurposeRule:
    subdir: str
    extensions: frozenset
    max_bytes_setting: str
    label: str

    @property
    def max_bytes(self) -> int:
        return int(getattr(settings, self.max_bytes_setting))


RULES = {
    Purpose.RESUME: PurposeRule(
        subdir="resumes",
        extensions=frozenset({".pdf", ".doc", ".docx", ".jpeg"}),
        max_bytes_setting="RESUME_MAX_BYTES",
        label="Resume",
    ),
    Purpose.JOB_IMAGE: PurposeRule(
        subdir="job-images",
        extensions=frozenset({".jpg", ".jpeg", ".png", ".gif"}),
        max_bytes_setting="IMAGE_MAX_BYTES",
        label="Job image",
    ),
    Purpose.STUDENT_PHOTO: PurposeRule(
        subdir="student-photos",
        extensions=frozenset({".jpg", ".jpeg", ".png"}),
        max_bytes_setting="IMAGE_MAX_BYTES",
        label="Photo",
    ),
}

# Purposes served on the unauthenticated /uploads/ surface.
PUBLIC_PURPOSES = frozenset({Purpose.JOB_IMAGE, Purpose.STUDENT_PHOTO})

_UPLOADS_SEGMENT = re.compile(r"(?:^|/)uploads/")


def upload_root() -> Path:
    return Path(settings.MEDIA_ROOT)


def ensure_upload_dirs() -> None:
    """Create the uploads root and every purpose subdirectory; safe to call repeatedly."""
    root = upload_root()
    for rule in RULES.values():
        (root / rule.subdir).mkdir(parents=True, exist_ok=True)


def get_file_extension(filename: str) -> str:
    return PurePosixPath((filename or "").replace("\\", "/")).suffix.lower()


def _format_size(num_bytes: int) -> str:
    mb = num_bytes / (1024 * 1024)
    return f"{mb:g}MB" if mb >= 1 else f"{num_bytes // 1024}KB"


def validate_upload(purpose: Purpose, uploaded_file) -> str:
    """Check extension then size; return the normalised extension."""
    rule = RULES[Purpose(purpose)]
    ext = get_file_extension(getattr(uploaded_file, "name", ""))
    if ext not in rule.extensions:
        allowed = ", ".join(sorted(e.lstrip(".") for e in rule.extensions))
        raise InvalidFileType(
            f"Invalid file type '{ext or '(none)'}'. Allowed: {allowed}",
            errors={"file": [f"{rule.label} must be one of: {allowed}"]},
        )
    if uploaded_file.size > rule.max_bytes:
        raise FileTooLarge(
            f"File too large. Maximum size: {_format_size(rule.max_bytes)}",
            errors={"file": [f"{rule.label} exceeds {_format_size(rule.max_bytes)}"]},
        )
    return ext


def accept(purpose: Purpose, uploaded_file) -> str:
    """Validate and store ``uploaded_file``; return its canonical reference.

    Nothing is written when validation fails. Each file gets a fresh random
    name, so concurrent uploads never collide or overwrite.
    """
    purpose = Purpose(purpose)
    ext = validate_upload(purpose, uploaded_file)
    rule = RULES[purpose]
    (upload_root() / rule.subdir).mkdir(parents=True, exist_ok=True)
    reference = default_storage.save(f"{rule.subdir}/{uuid.uuid4().hex}{ext}", uploaded_file)
    logger.info(
        "Upload stored: purpose=%s reference=%s size=%s original=%s",
        purpose.value,
        reference,
        uploaded_file.size,
        getattr(uploaded_file, "name", ""),
    )
    return reference


def _relative_part(reference: str) -> str:
    """Strip any leading path up to and including the last ``uploads/`` segment."""
    matches = list(_UPLOADS_SEGMENT.finditer(reference))
    if matches:
        return reference[matches[-1].end():]
    return reference.lstrip("/")


def _ordered_rules(purpose: Purpose | None, allowed: frozenset | None) -> list[PurposeRule]:
    rules = [rule for p, rule in RULES.items() if allowed is None or p in allowed]
    if purpose is not None:
        hinted = RULES[Purpose(purpose)]
        if hinted in rules:
            rules.remove(hinted)
            rules.insert(0, hinted)
    return rules


def candidate_paths(reference: str, purpose: Purpose | None = None, allowed=None) -> list[Path]:
    """Locations a stored reference may point at, most specific first.

    ``allowed`` limits the purpose subdirectories searched; the flat root
    and the reference's own relative path are always listed and are
    filtered by ``resolve``.
    """
    ref = (reference or "").strip().replace("\\", "/")
    name = PurePosixPath(ref).name
    if not name:
        return []

    root = upload_root()
    allowed = frozenset(Purpose(p) for p in allowed) if allowed is not None else None
    candidates = [root / _relative_part(ref), root / name]
    candidates.extend(root / rule.subdir / name for rule in _ordered_rules(purpose, allowed))

    unique = []
    for path in candidates:
        if path not in unique:
            unique.append(path)
    return unique


def _purpose_of(relative: PurePosixPath) -> Purpose | None:
    """Purpose owning a root-relative path; None for files in the flat root."""
    if len(relative.parts) == 1:
        return None
    for purpose, rule in RULES.items():
        if relative.parts[0] == rule.subdir:
            return purpose
    raise LookupError(relative)


def _permitted(path: Path, root: Path, allowed: frozenset | None) -> bool:
    if allowed is None:
        return True
    try:
        purpose = _purpose_of(PurePosixPath(path.relative_to(root).as_posix()))
    except LookupError:
        return False
    if purpose is not None:
        return purpose in allowed
    if Purpose.RESUME in allowed:
        return True
    # Legacy flat files carry no purpose; without resume access only images are served.
    return content_type_for(path)[0].startswith("image/")


def resolve(reference: str, purpose: Purpose | None = None, allowed=None) -> Path:
    """Return the existing file ``reference`` points at or raise ``FileNotFound``.

    With ``allowed`` set, files belonging to any other purpose are treated
    as missing.
    """
    root = upload_root().resolve()
    allowed = frozenset(Purpose(p) for p in allowed) if allowed is not None else None
    for candidate in candidate_paths(reference, purpose, allowed):
        path = candidate.resolve()
        if not path.is_relative_to(root):
            continue
        if path.is_file() and _permitted(path, root, allowed):
            return path
    logger.info("Upload not found: reference=%s purpose=%s", reference, getattr(purpose, "value", None))
    raise FileNotFound()


def canonical_reference(path: Path) -> str:
    """Reference string for a file already inside the uploads root."""
    return path.resolve().relative_to(upload_root().resolve()).as_posix()
