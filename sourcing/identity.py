"""Identity key used to recognise the same perfume across providers."""

from __future__ import annotations

import re
from typing import Optional

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def build_key(brand: Optional[str], name: Optional[str], concentration: Optional[str] = None) -> str:
    """Slugify ``brand-name-concentration``.

    Empty parts are skipped, everything is lowercased and every run of
    characters outside ``[a-z0-9]`` becomes one hyphen. Accented and
    non-Latin characters are not transliterated, so "Hermès" and "Hermes"
    produce different keys.
    """
    parts = [str(part) for part in (brand, name, concentration) if part]
    slug = _NON_ALNUM.sub("-", "-".join(parts).lower())
    return slug.strip("-")
