"""Filter state, its query-string codec, and the listing filter/sort pipeline."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Any, FrozenSet, Iterable, List, Mapping, NamedTuple, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode

from directory import ConsultationType, Doctor

logger = logging.getLogger(__name__)

SEARCH_PARAM = "search"
SPECIALTIES_PARAM = "specialties"
CONSULTATION_PARAM = "consultationType"
SORT_PARAM = "sortBy"


class SortKey(str, enum.Enum):
    FEES = "fees"
    EXPERIENCE = "experience"


@dataclass(frozen=True)
class FilterState:
    search: str = ""
    specialties: FrozenSet[str] = field(default_factory=frozenset)
    consultation_type: Optional[ConsultationType] = None
    sort_by: Optional[SortKey] = None

    @property
    def is_default(self) -> bool:
        return self == FilterState()

    def to_dict(self) -> dict:
        return {
            SEARCH_PARAM: self.search,
            SPECIALTIES_PARAM: sorted(self.specialties),
            CONSULTATION_PARAM: self.consultation_type.value if self.consultation_type else "",
            SORT_PARAM: self.sort_by.value if self.sort_by else "",
        }


class FilterTransition(NamedTuple):
    state: FilterState
    query: str


def _coerce_consultation(value: Optional[str]) -> Optional[ConsultationType]:
    if not value:
        return None
    try:
        return ConsultationType(value)
    except ValueError:
        logger.debug("Ignoring unknown consultation type %r", value)
        return None


def _coerce_sort(value: Optional[str]) -> Optional[SortKey]:
    if not value:
        return None
    try:
        return SortKey(value)
    except ValueError:
        logger.debug("Ignoring unknown sort key %r", value)
        return None


def filterable_specialties(names: Iterable[str]) -> Tuple[str, ...]:
    """Drop specialty names that cannot survive the comma-joined query parameter."""
    kept = []
    for name in names:
        if "," in name:
            logger.warning("Specialty %r contains a comma and is not offered as a filter", name)
            continue
        kept.append(name)
    return tuple(kept)


def _split_specialties(value: Optional[str]) -> FrozenSet[str]:
    if not value:
        return frozenset()
    return frozenset(part for part in value.split(",") if part)


def encode_query(state: FilterState) -> str:
    """Serialise ``state`` as a query string, omitting every default field."""
    pairs = []
    if state.search:
        pairs.append((SEARCH_PARAM, state.search))
    if state.specialties:
        pairs.append((SPECIALTIES_PARAM, ",".join(sorted(state.specialties))))
    if state.consultation_type:
        pairs.append((CONSULTATION_PARAM, state.consultation_type.value))
    if state.sort_by:
        pairs.append((SORT_PARAM, state.sort_by.value))
    return urlencode(pairs, safe=",")


def decode_query(source: Union[str, Mapping[str, Any], None]) -> FilterState:
    """Build a ``FilterState`` from a query string or a mapping of parameters.

    Missing parameters take their defaults and unrecognised consultation or
    sort values are dropped, so decoding never fails.
    """
    if source is None:
        params: Mapping[str, Any] = {}
    elif isinstance(source, str):
        params = dict(parse_qsl(source.lstrip("?"), keep_blank_values=True))
    else:
        params = source

    return FilterState(
        search=params.get(SEARCH_PARAM) or "",
        specialties=_split_specialties(params.get(SPECIALTIES_PARAM)),
        consultation_type=_coerce_consultation(params.get(CONSULTATION_PARAM)),
        sort_by=_coerce_sort(params.get(SORT_PARAM)),
    )


def _matches_search(doctor: Doctor, needle: str) -> bool:
    return not needle or needle in doctor.name.casefold()


def visible(doctors: Iterable[Doctor], state: FilterState) -> List[Doctor]:
    """Return the doctors selected by ``state`` in display order."""
    needle = state.search.casefold()
    selected = [
        doctor
        for doctor in doctors
        if _matches_search(doctor, needle)
        and (state.consultation_type is None or state.consultation_type in doctor.consultation_types)
        and (not state.specialties or not state.specialties.isdisjoint(doctor.specialty))
    ]

    if state.sort_by is SortKey.FEES:
        return sorted(selected, key=lambda doctor: doctor.fee_amount)
    if state.sort_by is SortKey.EXPERIENCE:
        return sorted(selected, key=lambda doctor: -doctor.experience_years)
    return selected


FILTER_ACTIONS = ("search", "toggle_specialty", "consultation", "sort", "clear", "reset")


def reduce_filters(state: FilterState, action: str, value: str = "") -> FilterTransition:
    """Apply one user action and return the next state with its query string."""
    if action not in FILTER_ACTIONS:
        raise ValueError(f"Unknown filter action: {action}")

    value = value or ""
    if action == "search":
        next_state = replace(state, search=value.strip())
    elif action == "toggle_specialty":
        if not value or "," in value:
            next_state = state
        elif value in state.specialties:
            next_state = replace(state, specialties=state.specialties - {value})
        else:
            next_state = replace(state, specialties=state.specialties | {value})
    elif action == "consultation":
        next_state = replace(state, consultation_type=_coerce_consultation(value))
    elif action == "sort":
        next_state = replace(state, sort_by=_coerce_sort(value))
    elif action == "clear":
        next_state = FilterState(search=state.search)
    else:
        next_state = FilterState()

    return FilterTransition(next_state, encode_query(next_state))


__all__ = [
    "FILTER_ACTIONS",
    "FilterState",
    "FilterTransition",
    "SortKey",
    "decode_query",
    "encode_query",
    "filterable_specialties",
    "reduce_filters",
    "visible",
]
