"""Live name suggestions for the doctor search box."""
from __future__ import annotations

from itertools import islice
from typing import Iterable, List

from directory import Doctor

MIN_QUERY_LENGTH = 2
MAX_SUGGESTIONS = 3


def suggest(doctors: Iterable[Doctor], query: str, limit: int = MAX_SUGGESTIONS) -> List[Doctor]:
    """Return up to ``limit`` doctors whose name contains ``query``.

    Matching is case-insensitive and keeps the directory order. Queries
    shorter than ``MIN_QUERY_LENGTH`` produce no suggestions at all.
    """
    query = query or ""
    if len(query) < MIN_QUERY_LENGTH or limit <= 0:
        return []
    needle = query.casefold()
    return list(islice((doctor for doctor in doctors if needle in doctor.name.casefold()), limit))


__all__ = ["MAX_SUGGESTIONS", "MIN_QUERY_LENGTH", "suggest"]
