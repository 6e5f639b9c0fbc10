"""Profile edit form state machine.

The form keeps an editable copy of the signed-in user's profile. Input
events become typed commands applied by a pure reducer; load and submit
talk to injected collaborators and report failures through a single
``error`` slot. Each load/submit is tagged with a generation number so a
result that completes after the form was disposed (or superseded) is
dropped instead of overwriting newer state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Protocol, Union

from pawmatch.models import ADOPTER_CHOICES, GENDER_CHOICES, AgeRange, Profile
from pawmatch.profile_edit.config import (
    BIO_MAX_LENGTH,
    LOAD_FAILED_MESSAGE,
    PROFILE_PATH,
    UPDATE_FAILED_MESSAGE,
)

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("full_name", "username", "bio", "birthdate", "breed")
CHOICE_FIELDS = {"adopter": ADOPTER_CHOICES, "gender": GENDER_CHOICES}


class UnknownFieldError(ValueError):
    """Raised for an input name the form has no field for."""


class InvalidFieldValue(ValueError):
    """Raised for a value outside a field's allowed choices or type."""


@dataclass(frozen=True)
class SetField:
    name: str
    value: str

    def __post_init__(self) -> None:
        if self.name in CHOICE_FIELDS:
            if self.value not in CHOICE_FIELDS[self.name]:
                raise InvalidFieldValue(f"Invalid {self.name}: {self.value!r}")
        elif self.name not in TEXT_FIELDS:
            raise UnknownFieldError(f"Unknown field: {self.name!r}")


@dataclass(frozen=True)
class SetBreedPreference:
    value: str


@dataclass(frozen=True)
class SetDistance:
    value: int


@dataclass(frozen=True)
class SetAgeRange:
    min: Optional[int] = None
    max: Optional[int] = None


@dataclass(frozen=True)
class SetAdopterPreference:
    value: str

    def __post_init__(self) -> None:
        if self.value not in ADOPTER_CHOICES:
            raise InvalidFieldValue(f"Invalid adopter_preference: {self.value!r}")


@dataclass(frozen=True)
class ToggleGenderPreference:
    value: str
    checked: bool

    def __post_init__(self) -> None:
        if self.value not in GENDER_CHOICES:
            raise InvalidFieldValue(f"Invalid gender_preference: {self.value!r}")


@dataclass(frozen=True)
class SetAvatarUrl:
    url: str


Command = Union[
    SetField,
    SetBreedPreference,
    SetDistance,
    SetAgeRange,
    SetAdopterPreference,
    ToggleGenderPreference,
    SetAvatarUrl,
]


def _parse_int(name: str, value) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidFieldValue(f"{name} must be a whole number.") from None


def field_command(name: str, value) -> Command:
    """Map a generic input name/value pair to a typed command."""
    if name == "breed_preference":
        return SetBreedPreference(str(value))
    if name == "distance":
        return SetDistance(_parse_int("distance", value))
    if name == "age_min":
        return SetAgeRange(min=_parse_int("age_min", value))
    if name == "age_max":
        return SetAgeRange(max=_parse_int("age_max", value))
    if name == "adopter_preference":
        return SetAdopterPreference(str(value))
    if name == "avatar_url":
        return SetAvatarUrl(str(value))
    if name == "bio":
        # Browsers post textarea line breaks as CRLF but count them as one.
        return SetField(name, str(value).replace("\r\n", "\n"))
    return SetField(name, str(value))


def apply_command(profile: Profile, command: Command) -> Profile:
    """Return the profile with one command applied."""
    prefs = profile.preferences
    if isinstance(command, SetField):
        value = command.value
        if command.name == "bio":
            value = value[:BIO_MAX_LENGTH]
        return replace(profile, **{command.name: value})
    if isinstance(command, SetBreedPreference):
        return replace(profile, preferences=replace(prefs, breed_preference=command.value))
    if isinstance(command, SetDistance):
        return replace(profile, preferences=replace(prefs, distance=command.value))
    if isinstance(command, SetAgeRange):
        age_range = AgeRange(
            min=prefs.age_range.min if command.min is None else command.min,
            max=prefs.age_range.max if command.max is None else command.max,
        )
        return replace(profile, preferences=replace(prefs, age_range=age_range))
    if isinstance(command, SetAdopterPreference):
        return replace(
            profile, preferences=replace(prefs, adopter_preference=command.value)
        )
    if isinstance(command, ToggleGenderPreference):
        current = prefs.gender_preference
        if command.checked:
            updated = current if command.value in current else (*current, command.value)
        else:
            updated = tuple(g for g in current if g != command.value)
        return replace(profile, preferences=replace(prefs, gender_preference=updated))
    if isinstance(command, SetAvatarUrl):
        return replace(profile, avatar_url=command.url)
    raise TypeError(f"Unsupported command: {command!r}")


class Navigator(Protocol):
    def back(self) -> None: ...

    def push(self, path: str) -> None: ...


class ProfileActionsLike(Protocol):
    def get_current_user_profile(self) -> dict | None: ...

    def update_user_profile(self, profile: Profile): ...


class ProfileEditForm:
    """Editable profile with loading/saving/error state."""

    def __init__(self, actions: ProfileActionsLike, navigator: Navigator):
        self.actions = actions
        self.navigator = navigator
        self.profile = Profile()
        self.loading = True
        self.saving = False
        self.error: str | None = None
        self.disposed = False
        self._generation = 0

    @property
    def bio_counter(self) -> str:
        return f"{len(self.profile.bio)}/{BIO_MAX_LENGTH} characters"

    @property
    def can_submit(self) -> bool:
        return not (self.loading or self.saving or self.disposed)

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return not self.disposed and generation == self._generation

    def load(self) -> None:
        """Fetch the current profile and replace the local copy with it."""
        generation = self._next_generation()
        self.loading = True
        try:
            record = self.actions.get_current_user_profile()
            if record and self._is_current(generation):
                self.profile = Profile.from_record(record)
        except Exception:
            logger.exception("Failed to load profile.")
            if self._is_current(generation):
                self.error = LOAD_FAILED_MESSAGE
        finally:
            if self._is_current(generation):
                self.loading = False

    def dispatch(self, command: Command) -> None:
        self.profile = apply_command(self.profile, command)

    def handle_field_change(self, name: str, value) -> None:
        self.dispatch(field_command(name, value))

    def handle_gender_preference_toggle(self, value: str, checked: bool) -> None:
        self.dispatch(ToggleGenderPreference(value, checked))

    def handle_photo_uploaded(self, url: str) -> None:
        self.dispatch(SetAvatarUrl(url))

    def submit(self) -> bool:
        """Send the local profile to the update action.

        Returns ``False`` when a submit is already in flight or the form is
        not ready, ``True`` once the attempt has completed.
        """
        if not self.can_submit:
            return False
        generation = self._next_generation()
        self.saving = True
        self.error = None
        try:
            result = self.actions.update_user_profile(self.profile)
            if not self._is_current(generation):
                return True
            if result.success:
                self.navigator.push(PROFILE_PATH)
            else:
                self.error = result.error or UPDATE_FAILED_MESSAGE
        except Exception:
            logger.exception("Failed to update profile.")
            if self._is_current(generation):
                self.error = UPDATE_FAILED_MESSAGE
        finally:
            if self._is_current(generation):
                self.saving = False
        return True

    def cancel(self) -> None:
        self.navigator.back()

    def dispose(self) -> None:
        """Drop any in-flight load or submit result."""
        self.disposed = True
        self._next_generation()
