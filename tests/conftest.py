import importlib
import sys
from copy import deepcopy
from typing import Any, List, Optional, Tuple

import pytest

import directory_source

SAMPLE_DOCTORS = [
    {
        "id": "111",
        "name": "Dr. Asha Menon",
        "photo": "https://example.org/photos/asha.jpg",
        "doctor_introduction": "Family dentist with a gentle touch.",
        "specialities": [{"name": "Dentist"}, {"name": "General Physician"}],
        "fees": "₹ 500",
        "experience": "13 Years of experience",
        "clinic": {"name": "Smile Care", "address": {"locality": "Koramangala", "city": "Bangalore"}},
        "video_consult": True,
        "in_clinic": True,
    },
    {
        "id": "112",
        "name": "Dr. Brij Malhotra",
        "photo": "",
        "specialities": [{"name": "Dermatologist"}],
        "fees": "₹ 300",
        "experience": "5 Years of experience",
        "clinic": {"name": "Skin First", "address": {"city": "Delhi"}},
        "video_consult": True,
        "in_clinic": False,
    },
    {
        "id": "113",
        "name": "Dr. Chitra Rao",
        "specialities": [{"name": "Dentist"}],
        "fees": "₹ 800",
        "experience": "20 Years of experience",
        "video_consult": False,
        "in_clinic": True,
    },
    {
        "name": "Dr. Dev Anand",
        "specialities": None,
        "experience": "Fresher",
    },
]


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200, invalid_json: bool = False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return deepcopy(self.payload)


class FakeFeed:
    """Stand-in for ``requests.get`` serving a canned doctor feed."""

    def __init__(self) -> None:
        self.payload: Any = deepcopy(SAMPLE_DOCTORS)
        self.status_code = 200
        self.invalid_json = False
        self.error: Optional[Exception] = None
        self.calls: List[Tuple[str, Any]] = []

    def __call__(self, url, timeout=None, **kwargs):
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return FakeResponse(self.payload, self.status_code, self.invalid_json)


@pytest.fixture()
def feed(monkeypatch):
    fake = FakeFeed()
    monkeypatch.setattr(directory_source.requests, "get", fake)
    directory_source.clear_directory_cache()
    yield fake
    directory_source.clear_directory_cache()


@pytest.fixture()
def app_client(feed):
    if "app" in sys.modules:
        del sys.modules["app"]
    app_module = importlib.import_module("app")
    app_module.app.config["TESTING"] = True
    app_module.app.config["URL_SYNC_ENABLED"] = True
    app_module.app.config["DIRECTORY_CACHE_TTL_SECONDS"] = 0

    with app_module.app.test_client() as client:
        yield app_module, client
