import pytest
import requests

from directory_source import (
    DirectoryFetchError,
    DirectoryStatus,
    fetch_raw_doctors,
    load_directory,
    peek_directory,
)

from conftest import SAMPLE_DOCTORS

FEED_URL = "https://feed.example/doctors.json"


def test_fetch_returns_decoded_payload(feed):
    assert fetch_raw_doctors(FEED_URL, 3) == SAMPLE_DOCTORS
    assert feed.calls == [(FEED_URL, 3)]


def test_fetch_raises_on_error_status(feed):
    feed.status_code = 503

    with pytest.raises(DirectoryFetchError, match="status 503"):
        fetch_raw_doctors(FEED_URL)


def test_fetch_wraps_network_errors(feed):
    feed.error = requests.exceptions.ConnectionError("connection refused")

    with pytest.raises(DirectoryFetchError, match="connection refused"):
        fetch_raw_doctors(FEED_URL)


def test_fetch_rejects_invalid_json(feed):
    feed.invalid_json = True

    with pytest.raises(DirectoryFetchError, match="not valid JSON"):
        fetch_raw_doctors(FEED_URL)


def test_load_directory_normalises_and_collects_specialties(feed):
    result = load_directory(FEED_URL, cache_ttl=0)

    assert result.status is DirectoryStatus.LOADED
    assert result.ok
    assert [doctor.name for doctor in result.doctors][:2] == ["Dr. Asha Menon", "Dr. Brij Malhotra"]
    assert result.specialties == ("Dentist", "Dermatologist", "General Physician")


def test_load_directory_reports_failure_without_raising(feed):
    feed.status_code = 500

    result = load_directory(FEED_URL, cache_ttl=60)

    assert result.status is DirectoryStatus.FAILED
    assert not result.ok
    assert "status 500" in result.error
    assert result.doctors == ()


def test_failures_are_not_memoised(feed):
    feed.status_code = 500
    load_directory(FEED_URL, cache_ttl=60)
    feed.status_code = 200

    result = load_directory(FEED_URL, cache_ttl=60)

    assert result.ok
    assert len(feed.calls) == 2


def test_fresh_memo_skips_the_fetch(feed):
    first = load_directory(FEED_URL, cache_ttl=60)
    second = load_directory(FEED_URL, cache_ttl=60)

    assert first is second
    assert len(feed.calls) == 1


def test_zero_ttl_always_fetches(feed):
    load_directory(FEED_URL, cache_ttl=0)
    load_directory(FEED_URL, cache_ttl=0)

    assert len(feed.calls) == 2


def test_peek_is_pending_until_loaded(feed):
    assert peek_directory(FEED_URL, cache_ttl=60).status is DirectoryStatus.PENDING

    load_directory(FEED_URL, cache_ttl=60)

    assert peek_directory(FEED_URL, cache_ttl=60).status is DirectoryStatus.LOADED
    assert len(feed.calls) == 1
