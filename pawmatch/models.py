from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

GENDER_CHOICES = ("male", "female", "other")
ADOPTER_CHOICES = ("adopter", "pet")

DEFAULT_AGE_MIN = 0
DEFAULT_AGE_MAX = 99
DEFAULT_DISTANCE = 25
DEFAULT_ADOPTER_PREFERENCE = "pet"
DEFAULT_BREED = "N/A"


def _int_or(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _strict_str(record: dict, key: str, default: str = "") -> str:
    value = record.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string.")
    return value


def _strict_int(record: dict, key: str, default: int) -> int:
    value = record.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"{key} must be a whole number.")
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{key} must be a whole number.") from None


@dataclass(frozen=True)
class AgeRange:
    min: int = DEFAULT_AGE_MIN
    max: int = DEFAULT_AGE_MAX

    @classmethod
    def from_record(cls, record: Optional[dict]) -> "AgeRange":
        """Build an age range, defaulting missing bounds."""
        if not isinstance(record, dict):
            return cls()
        return cls(
            min=_int_or(record.get("min"), DEFAULT_AGE_MIN),
            max=_int_or(record.get("max"), DEFAULT_AGE_MAX),
        )


@dataclass(frozen=True)
class Preferences:
    age_range: AgeRange = field(default_factory=AgeRange)
    distance: int = DEFAULT_DISTANCE
    gender_preference: tuple[str, ...] = ()
    adopter_preference: str = DEFAULT_ADOPTER_PREFERENCE
    breed_preference: str = ""

    @classmethod
    def from_record(cls, record: Optional[dict]) -> "Preferences":
        """Build preferences from a stored record.

        A missing or empty record yields the defaults. Keys absent from a
        partial record are defaulted individually.
        """
        if not record or not isinstance(record, dict):
            return cls()
        genders = record.get("gender_preference") or ()
        if isinstance(genders, str):
            genders = (genders,)
        return cls(
            age_range=AgeRange.from_record(record.get("age_range")),
            distance=_int_or(record.get("distance"), DEFAULT_DISTANCE),
            gender_preference=tuple(str(g) for g in genders),
            adopter_preference=str(
                record.get("adopter_preference") or DEFAULT_ADOPTER_PREFERENCE
            ),
            breed_preference=str(record.get("breed_preference") or ""),
        )


@dataclass(frozen=True)
class Profile:
    full_name: str = ""
    username: str = ""
    bio: str = ""
    adopter: str = "adopter"
    breed: str = ""
    preferences: Preferences = field(default_factory=Preferences)
    gender: str = "male"
    birthdate: str = ""
    avatar_url: str = ""

    @classmethod
    def from_record(cls, record: dict) -> "Profile":
        """Build an editable profile from a loaded record.

        Absent or falsy values fall back to their defaults; ``breed`` falls
        back to ``"N/A"``.
        """
        return cls(
            full_name=str(record.get("full_name") or ""),
            username=str(record.get("username") or ""),
            bio=str(record.get("bio") or ""),
            breed=str(record.get("breed") or DEFAULT_BREED),
            preferences=Preferences.from_record(record.get("preferences")),
            adopter=str(record.get("adopter") or "adopter"),
            gender=str(record.get("gender") or "male"),
            birthdate=str(record.get("birthdate") or ""),
            avatar_url=str(record.get("avatar_url") or ""),
        )

    @classmethod
    def from_payload(cls, payload: dict) -> "Profile":
        """Build a profile from submitted data without load defaults.

        Missing fields stay empty so validation reports them as required.
        Preference keys that are absent take their defaults.

        Raises:
            ValueError: A value has the wrong type.
        """
        prefs = payload.get("preferences")
        if prefs is None:
            prefs = {}
        if not isinstance(prefs, dict):
            raise ValueError("preferences must be an object.")
        age_range = prefs.get("age_range")
        if age_range is None:
            age_range = {}
        if not isinstance(age_range, dict):
            raise ValueError("age_range must be an object.")
        genders = prefs.get("gender_preference")
        if genders is None:
            genders = []
        if not isinstance(genders, list):
            raise ValueError("gender_preference must be a list.")

        return cls(
            full_name=_strict_str(payload, "full_name"),
            username=_strict_str(payload, "username"),
            bio=_strict_str(payload, "bio"),
            adopter=_strict_str(payload, "adopter"),
            breed=_strict_str(payload, "breed"),
            gender=_strict_str(payload, "gender"),
            birthdate=_strict_str(payload, "birthdate"),
            avatar_url=_strict_str(payload, "avatar_url"),
            preferences=Preferences(
                age_range=AgeRange(
                    min=_strict_int(age_range, "min", DEFAULT_AGE_MIN),
                    max=_strict_int(age_range, "max", DEFAULT_AGE_MAX),
                ),
                distance=_strict_int(prefs, "distance", DEFAULT_DISTANCE),
                gender_preference=tuple(str(g) for g in genders),
                adopter_preference=_strict_str(
                    prefs, "adopter_preference", DEFAULT_ADOPTER_PREFERENCE
                ),
                breed_preference=_strict_str(prefs, "breed_preference"),
            ),
        )

    def to_record(self) -> dict:
        """Return a JSON-ready dict of the profile."""
        record = asdict(self)
        record["preferences"]["gender_preference"] = list(
            self.preferences.gender_preference
        )
        return record

    def __str__(self) -> str:
        def fmt(v):
            return v if v not in (None, "") else "--"

        prefs = self.preferences
        genders = ", ".join(prefs.gender_preference) or "--"
        return (
            f"Profile @{fmt(self.username)} ({self.adopter})\n"
            f"{'-' * 60}\n"
            f"Name       : {fmt(self.full_name)}\n"
            f"Gender     : {fmt(self.gender)}\n"
            f"Birthdate  : {fmt(self.birthdate)}\n"
            f"Breed      : {fmt(self.breed)}\n\n"
            f"Ages       : {prefs.age_range.min}-{prefs.age_range.max}\n"
            f"Distance   : {prefs.distance}\n"
            f"Genders    : {genders}\n"
            f"Looking for: {fmt(prefs.adopter_preference)}\n"
            f"Breed pref : {fmt(prefs.breed_preference)}\n"
        )
