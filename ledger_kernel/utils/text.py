"""Account-name normalization for keyword and binding matches."""

import unicodedata


def normalize_name(name: str | None) -> str:
    """Case-folded, accent-free, whitespace-collapsed form of a name.

    "Banco Itaú", "BANCO  ITAU" and "banco itau" all normalize to
    "banco itau".
    """
    decomposed = unicodedata.normalize("NFKD", name or "")
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(stripped.casefold().split())
