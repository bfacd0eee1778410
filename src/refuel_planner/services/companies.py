from __future__ import annotations

import unicodedata
from collections.abc import Callable, Iterable

CompanyMatcher = Callable[[str, str], bool]


def _normalize(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text or "")
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return " ".join(stripped.casefold().split())


def belongs_to_company(brand: str, company: str) -> bool:
    """Plain brand membership test: accent and case insensitive containment."""
    normalized_company = _normalize(company)
    if not normalized_company:
        return False
    return normalized_company in _normalize(brand)


def available_companies(brands: Iterable[str]) -> list[str]:
    return sorted({brand.strip() for brand in brands if brand and brand.strip()})
