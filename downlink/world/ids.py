from __future__ import annotations

import hashlib
import re
from typing import Iterable


_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    slug = _SLUG_RE.sub("_", value.lower()).strip("_")
    return slug or "item"


def _hash_for(parts: Iterable[str]) -> str:
    joined = "::".join(part.strip().lower() for part in parts if part)
    digest = hashlib.sha1(joined.encode("utf-8")).hexdigest()
    return digest[:10]


def computer_identity(name: str, address: str) -> str:
    """Stable hop identity; survives save/load because it only uses name and address."""
    return f"computer:{slugify(name)}:{_hash_for([name, address])}"


__all__ = ["slugify", "computer_identity"]
