"""Label -> URL-safe slug segment."""

import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(label: str) -> str:
    """
    "Roof Panels & Sheets" -> "roof-panels-and-sheets"

    Accents are folded to ASCII; anything else non-alphanumeric becomes a
    single hyphen. Returns "" for labels with no usable characters.
    """
    text = unicodedata.normalize("NFKD", label or "")
    text = text.encode("ascii", "ignore").decode("ascii").lower()
    text = text.replace("&", " and ").replace("+", " plus ")
    return _NON_ALNUM.sub("-", text).strip("-")
