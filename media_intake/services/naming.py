from __future__ import annotations
import mimetypes
import re
import secrets
import string
from typing import Optional


MAX_NAME_LENGTH = 100
SHORT_ID_LENGTH = 21
SHORT_ID_ALPHABET = string.ascii_letters + string.digits + "_-"

_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")
_EXTENSION = re.compile(r"\.[^.]+$")


def sanitize_filename(name: str) -> str:
    """Reduce a client-supplied name to a safe storage-key fragment.

    Only the final path segment survives, whitespace runs become a single
    underscore, anything outside ``[A-Za-z0-9_.-]`` is dropped and the result
    is capped at 100 characters. May return an empty string.
    """
    base = re.split(r"[\\/]", name)[-1]
    base = _WHITESPACE.sub("_", base)
    base = _UNSAFE.sub("", base)
    return base[:MAX_NAME_LENGTH]


def short_id(length: int = SHORT_ID_LENGTH) -> str:
    return "".join(secrets.choice(SHORT_ID_ALPHABET) for _ in range(length))


def extension_for_type(content_type: Optional[str]) -> str:
    if not content_type:
        return ""
    mime = content_type.split(";", 1)[0].strip()
    return mimetypes.guess_extension(mime) or ""


def generate_unique_filename(original_filename: str, content_type: Optional[str] = None) -> str:
    sanitized = sanitize_filename(original_filename)
    match = _EXTENSION.search(sanitized)
    extension = match.group(0) if match else ""
    basename = sanitized[: match.start()] if match else sanitized

    if not extension:
        extension = extension_for_type(content_type)

    if basename.endswith(".") and not extension:
        basename = basename[:-1]

    return f"{basename}_{short_id()}{extension}"
