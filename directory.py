"""Doctor record normalisation for the doctor directory."""
from __future__ import annotations

import enum
import hashlib
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Sequence, Tuple, Union

_DIGIT_RUN = re.compile(r"[0-9]+")
# longer runs are clamped to their leading digits
_MAX_DIGITS = 18
_TITLE_TOKENS = {"dr", "dr."}


class ConsultationType(str, enum.Enum):
    VIDEO = "Video Consult"
    IN_CLINIC = "In Clinic"


DoctorId = Union[str, int]


@dataclass(frozen=True)
class Doctor:
    id: DoctorId
    name: str = ""
    specialty: Tuple[str, ...] = ()
    image: str = ""
    experience_years: int = 0
    fee_amount: int = 0
    consultation_types: FrozenSet[ConsultationType] = field(
        default_factory=lambda: frozenset(ConsultationType)
    )
    clinic_name: str = ""
    location_city: str = ""
    qualifications: str = ""
    introduction: str = ""

    @property
    def initials(self) -> str:
        words = [word for word in self.name.split() if word.lower() not in _TITLE_TOKENS]
        letters = [word[0] for word in words if word[0].isalpha()][:2]
        return "".join(letters).upper() or "?"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "specialty": list(self.specialty),
            "image": self.image,
            "initials": self.initials,
            "experience_years": self.experience_years,
            "fee_amount": self.fee_amount,
            "consultation_types": [mode.value for mode in ConsultationType if mode in self.consultation_types],
            "clinic_name": self.clinic_name,
            "location_city": self.location_city,
            "qualifications": self.qualifications,
            "introduction": self.introduction,
        }


def extract_int(value: Any) -> int:
    """Return the first run of decimal digits in ``value`` as an int, or 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value >= 0 else 0
    try:
        match = _DIGIT_RUN.search(str(value))
        return int(match.group(0)[:_MAX_DIGITS]) if match else 0
    except ValueError:
        return 0


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return ""
    return str(value).strip()


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _specialty_names(raw: Dict[str, Any]) -> Tuple[str, ...]:
    source = raw.get("specialities")
    if source is None:
        source = raw.get("specialties", raw.get("specialty"))
    if isinstance(source, (str, dict)):
        source = [source]
    if not isinstance(source, (list, tuple)):
        return ()

    names: List[str] = []
    for item in source:
        name = _text(item.get("name")) if isinstance(item, dict) else _text(item)
        if name and name not in names:
            names.append(name)
    return tuple(names)


def _consultation_types(raw: Dict[str, Any]) -> FrozenSet[ConsultationType]:
    if "video_consult" not in raw and "in_clinic" not in raw:
        return frozenset(ConsultationType)
    modes = set()
    if raw.get("video_consult") is True:
        modes.add(ConsultationType.VIDEO)
    if raw.get("in_clinic") is True:
        modes.add(ConsultationType.IN_CLINIC)
    return frozenset(modes)


def _qualifications(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(part for part in (_text(item) for item in value) if part)
    return _text(value)


def fallback_id(name: str, index: int) -> str:
    digest = hashlib.sha1(f"{index}:{name}".encode("utf-8")).hexdigest()
    return f"doc-{digest[:12]}"


def _doctor_id(value: Any, name: str, index: int) -> DoctorId:
    if isinstance(value, bool) or value is None:
        return fallback_id(name, index)
    if isinstance(value, int):
        return value
    text = _text(value)
    return text or fallback_id(name, index)


def normalize_doctor(raw: Any, index: int = 0) -> Doctor:
    """Build a ``Doctor`` from one upstream record.

    Never raises: missing or malformed fields fall back to empty strings,
    zeros, or (for consultation modes) both modes.
    """
    record = _mapping(raw)
    name = _text(record.get("name"))
    clinic = _mapping(record.get("clinic"))
    address = _mapping(clinic.get("address"))

    return Doctor(
        id=_doctor_id(record.get("id"), name, index),
        name=name,
        specialty=_specialty_names(record),
        image=_text(record.get("photo")) or _text(record.get("image")),
        experience_years=extract_int(record.get("experience")),
        fee_amount=extract_int(record.get("fees")),
        consultation_types=_consultation_types(record),
        clinic_name=_text(clinic.get("name")),
        location_city=_text(address.get("city")) or _text(address.get("locality")),
        qualifications=_qualifications(record.get("qualifications")),
        introduction=_text(record.get("doctor_introduction")),
    )


def _records(payload: Any) -> Sequence[Any]:
    if isinstance(payload, dict):
        for key in ("doctors", "data"):
            if isinstance(payload.get(key), list):
                return payload[key]
        return []
    if isinstance(payload, list):
        return payload
    return []


def normalize_doctors(payload: Any) -> Tuple[Doctor, ...]:
    doctors: List[Doctor] = []
    seen = set()
    for index, raw in enumerate(_records(payload)):
        doctor = normalize_doctor(raw, index)
        candidate = doctor.id
        while candidate in seen:
            candidate = f"{candidate}-{index}"
        if candidate != doctor.id:
            doctor = replace(doctor, id=candidate)
        seen.add(doctor.id)
        doctors.append(doctor)
    return tuple(doctors)


def specialty_universe(doctors: Iterable[Doctor]) -> Tuple[str, ...]:
    return tuple(sorted({name for doctor in doctors for name in doctor.specialty if name}))


__all__ = [
    "ConsultationType",
    "Doctor",
    "extract_int",
    "fallback_id",
    "normalize_doctor",
    "normalize_doctors",
    "specialty_universe",
]
