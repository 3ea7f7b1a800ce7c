"""Upstream doctor feed access and the short-lived directory memo."""
from __future__ import annotations

import enum
import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests
from dotenv import load_dotenv

from directory import Doctor, normalize_doctors, specialty_universe
from filters import filterable_specialties

load_dotenv()
logger = logging.getLogger(__name__)

DEFAULT_DOCTORS_API_URL = "https://srijandubey.github.io/campus-api-mock/SRM-C1-25.json"
DOCTORS_API_URL = os.getenv("DOCTORS_API_URL", DEFAULT_DOCTORS_API_URL)
DOCTORS_API_TIMEOUT_SECONDS = float(os.getenv("DOCTORS_API_TIMEOUT_SECONDS", "10") or "10")
DIRECTORY_CACHE_TTL_SECONDS = max(0, int(os.getenv("DIRECTORY_CACHE_TTL_SECONDS", "60") or "60"))

_DIRECTORY_CACHE_LOCK = threading.Lock()
_DIRECTORY_CACHE: Dict[str, Tuple[float, "DirectoryLoad"]] = {}


class DirectoryFetchError(RuntimeError):
    """Raised when the upstream doctor feed cannot be fetched or decoded."""


class DirectoryStatus(str, enum.Enum):
    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class DirectoryLoad:
    status: DirectoryStatus
    doctors: Tuple[Doctor, ...] = ()
    specialties: Tuple[str, ...] = ()
    error: str = ""

    @classmethod
    def pending(cls) -> "DirectoryLoad":
        return cls(DirectoryStatus.PENDING)

    @classmethod
    def loaded(cls, doctors: Tuple[Doctor, ...]) -> "DirectoryLoad":
        specialties = filterable_specialties(specialty_universe(doctors))
        return cls(DirectoryStatus.LOADED, doctors=doctors, specialties=specialties)

    @classmethod
    def failed(cls, error: str) -> "DirectoryLoad":
        return cls(DirectoryStatus.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.status is DirectoryStatus.LOADED


def fetch_raw_doctors(url: Optional[str] = None, timeout: Optional[float] = None) -> Any:
    """Fetch the upstream feed and return its decoded JSON body."""
    target = url or DOCTORS_API_URL
    try:
        response = requests.get(target, timeout=timeout or DOCTORS_API_TIMEOUT_SECONDS)
    except requests.exceptions.RequestException as exc:
        logger.warning("Doctor feed request to %s failed: %s", target, exc)
        raise DirectoryFetchError(str(exc)) from exc

    if not response.ok:
        logger.warning("Doctor feed at %s answered with status %s", target, response.status_code)
        raise DirectoryFetchError(f"API request failed with status {response.status_code}")

    try:
        return response.json()
    except ValueError as exc:
        logger.warning("Doctor feed at %s returned invalid JSON: %s", target, exc)
        raise DirectoryFetchError("API response was not valid JSON") from exc


def load_directory(
    url: Optional[str] = None,
    timeout: Optional[float] = None,
    cache_ttl: Optional[int] = None,
) -> DirectoryLoad:
    """Fetch and normalise the directory, reusing a fresh memo when present.

    Failures come back as a ``FAILED`` load rather than an exception and are
    never memoised.
    """
    target = url or DOCTORS_API_URL
    ttl = DIRECTORY_CACHE_TTL_SECONDS if cache_ttl is None else cache_ttl

    if ttl > 0:
        with _DIRECTORY_CACHE_LOCK:
            cached = _DIRECTORY_CACHE.get(target)
            if cached and (time.time() - cached[0] <= ttl):
                return cached[1]

    try:
        payload = fetch_raw_doctors(target, timeout)
    except DirectoryFetchError as exc:
        return DirectoryLoad.failed(str(exc))

    result = DirectoryLoad.loaded(normalize_doctors(payload))
    logger.info("Loaded %d doctors from %s", len(result.doctors), target)

    if ttl > 0:
        with _DIRECTORY_CACHE_LOCK:
            _DIRECTORY_CACHE[target] = (time.time(), result)

    return result


def peek_directory(url: Optional[str] = None, cache_ttl: Optional[int] = None) -> DirectoryLoad:
    """Return the memoised directory without fetching; ``PENDING`` if there is none."""
    target = url or DOCTORS_API_URL
    ttl = DIRECTORY_CACHE_TTL_SECONDS if cache_ttl is None else cache_ttl
    with _DIRECTORY_CACHE_LOCK:
        cached = _DIRECTORY_CACHE.get(target)
    if ttl > 0 and cached and (time.time() - cached[0] <= ttl):
        return cached[1]
    return DirectoryLoad.pending()


def clear_directory_cache() -> None:
    with _DIRECTORY_CACHE_LOCK:
        _DIRECTORY_CACHE.clear()


__all__ = [
    "DirectoryFetchError",
    "DirectoryLoad",
    "DirectoryStatus",
    "clear_directory_cache",
    "fetch_raw_doctors",
    "load_directory",
    "peek_directory",
]
