"""Helpers shared by the Django repository implementations."""

from __future__ import annotations

from typing import Iterable, List
from uuid import UUID


def parse_uuids(ids: Iterable[object]) -> List[UUID]:
    """Return the well-formed UUIDs in *ids*, dropping anything else.

    Batch look-ups skip unknown ids instead of failing, and a malformed
    id can never match a row.
    """
    parsed: List[UUID] = []
    for raw in ids:
        if isinstance(raw, UUID):
            parsed.append(raw)
            continue
        try:
            parsed.append(UUID(str(raw)))
        except ValueError:
            continue
    return parsed
