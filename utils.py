import re

_TURKISH_MAP = str.maketrans({
    "ç": "c", "ğ": "g", "ı": "i", "ö": "o", "ş": "s", "ü": "u",
    "Ç": "C", "Ğ": "G", "İ": "I", "Ö": "O", "Ş": "S", "Ü": "U",
})


def to_ascii(text: str) -> str:
    """Replace Turkish letters with their closest ASCII counterparts."""
    return (text or "").translate(_TURKISH_MAP)


def slugify(text: str) -> str:
    slug = to_ascii(text).lower()
    slug = re.sub(r"[^a-z0-9 -]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def format_try(amount: float) -> str:
    return f"₺{amount:.2f}"
