"""URL slug and public path generation for published web content."""

import re
import unicodedata
from uuid import UUID

MAX_SLUG_LENGTH = 80
FALLBACK_SLUG = "haber"

_TURKISH = str.maketrans(
    {
        "ç": "c",
        "Ç": "c",
        "ğ": "g",
        "Ğ": "g",
        "ı": "i",
        "İ": "i",
        "ö": "o",
        "Ö": "o",
        "ş": "s",
        "Ş": "s",
        "ü": "u",
        "Ü": "u",
    }
)


def slugify(title: str | None, max_length: int = MAX_SLUG_LENGTH) -> str:
    """
    Build a URL-safe slug from a headline.

    Turkish letters are transliterated, other diacritics are stripped, and
    anything outside [a-z0-9-] is dropped. Empty results fall back to "haber".
    """
    if not title or not title.strip():
        return FALLBACK_SLUG

    text = title.translate(_TURKISH).lower()
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))

    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"[^a-z0-9-]", "", text)
    text = re.sub(r"-{2,}", "-", text).strip("-")

    if len(text) > max_length:
        text = text[:max_length].rstrip("-")

    return text or FALLBACK_SLUG


def build_path(content_id: UUID, slug: str) -> str:
    return f"/news/{content_id.hex}-{slug}"
