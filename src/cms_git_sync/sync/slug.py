"""Title to slug conversion used for repository directory and file names."""

import re
import unicodedata

_TAG_PATTERN = re.compile(r"<[^>]*>")
_ENTITY_PATTERN = re.compile(r"&[^;\s]+;")
_INVALID_PATTERN = re.compile(r"[^a-z0-9 _-]")
_DASH_PATTERN = re.compile(r"[\s-]+")


def sanitize_title(title: str) -> str:
    """Return a lowercase, dash-separated slug for *title*.

    Markup and HTML entities are dropped, accents are folded to ASCII,
    anything outside ``[a-z0-9 _-]`` is removed and runs of whitespace or
    dashes collapse to a single dash.

    Examples:
        >>> sanitize_title("Heapless C++ (Advanced) ")
        'heapless-c-advanced'
        >>> sanitize_title("Café <b>Menu</b>")
        'cafe-menu'
    """
    text = _TAG_PATTERN.sub("", title)
    text = _ENTITY_PATTERN.sub("", text)
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = text.replace(".", "-").replace("/", "-")
    text = _INVALID_PATTERN.sub("", text)
    text = _DASH_PATTERN.sub("-", text)
    return text.strip("-")
