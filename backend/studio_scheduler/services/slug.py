"""URL-safe slug generation for public booking links."""

import re
import unicodedata


def slugify(text: str) -> str:
    """Generate URL-safe slug from a provider name."""
    s = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode()
    s = re.sub(r"[^a-z0-9]+", "-", s.lower()).strip("-")
    return s or "provider"


def unique_slug(base: str, taken) -> str:
    """First of base, base-2, base-3, ... for which taken(slug) is False."""
    slug = base
    n = 2
    while taken(slug):
        slug = f"{base}-{n}"
        n += 1
    return slug
