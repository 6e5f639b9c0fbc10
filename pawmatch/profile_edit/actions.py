"""Profile load/update actions bound to the signed-in user."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from pawmatch.models import ADOPTER_CHOICES, GENDER_CHOICES, Profile
from pawmatch.profile_edit.config import (
    BIO_MAX_LENGTH,
    MAX_DISTANCE,
    MAX_TEXT_LENGTH,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)
from pawmatch.profile_edit.repository import fetch_profile, save_profile

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.]+$")


@dataclass(frozen=True)
class UpdateResult:
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        payload: dict = {"success": self.success}
        if self.error:
            payload["error"] = self.error
        return payload


def _birthdate_error(value: str) -> str | None:
    try:
        born = date.fromisoformat(value)
    except ValueError:
        return "Birthday must be a valid date."
    if born > date.today():
        return "Birthday cannot be in the future."
    return None


def profile_error(profile: Profile) -> str | None:
    """Return the first validation error for a profile, if any."""
    required = (
        ("full_name", "Full name"),
        ("username", "Username"),
        ("adopter", "Adopter"),
        ("birthdate", "Birthday"),
        ("gender", "Gender"),
        ("breed", "Breed"),
        ("bio", "About me"),
    )
    for name, label in required:
        if not str(getattr(profile, name) or "").strip():
            return f"{label} is required."

    if len(profile.full_name) > MAX_TEXT_LENGTH or len(profile.breed) > MAX_TEXT_LENGTH:
        return f"Name and breed must be at most {MAX_TEXT_LENGTH} characters."
    if not (USERNAME_MIN_LENGTH <= len(profile.username) <= USERNAME_MAX_LENGTH):
        return (
            f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters."
        )
    if not USERNAME_PATTERN.fullmatch(profile.username):
        return "Username may only contain letters, numbers, dots and underscores."
    if len(profile.bio) > BIO_MAX_LENGTH:
        return f"About me must be at most {BIO_MAX_LENGTH} characters."
    if profile.adopter not in ADOPTER_CHOICES:
        return "Adopter must be adopter or pet."
    if profile.gender not in GENDER_CHOICES:
        return "Gender must be male, female or other."
    birthdate_error = _birthdate_error(profile.birthdate)
    if birthdate_error:
        return birthdate_error
    if profile.avatar_url and not profile.avatar_url.startswith(("http://", "https://", "/")):
        return "Profile picture must be a web URL."

    prefs = profile.preferences
    if not (0 <= prefs.age_range.min <= prefs.age_range.max <= 99):
        return "Age range must satisfy 0 <= min <= max <= 99."
    if not (0 <= prefs.distance <= MAX_DISTANCE):
        return f"Distance must be between 0 and {MAX_DISTANCE}."
    if any(g not in GENDER_CHOICES for g in prefs.gender_preference):
        return "Gender preference must be male, female or other."
    if prefs.adopter_preference not in ADOPTER_CHOICES:
        return "Adopter preference must be adopter or pet."
    if len(prefs.breed_preference) > MAX_TEXT_LENGTH:
        return f"Breed preference must be at most {MAX_TEXT_LENGTH} characters."
    return None


class ProfileActions:
    """Fetch and persist the profile of one signed-in user."""

    def __init__(
        self,
        user_id: int,
        *,
        fetch_fn: Callable = fetch_profile,
        save_fn: Callable = save_profile,
    ):
        self.user_id = user_id
        self._fetch = fetch_fn
        self._save = save_fn

    def get_current_user_profile(self) -> dict | None:
        """Return the stored profile record, or ``None`` when there is none."""
        return self._fetch(self.user_id)

    def update_user_profile(self, profile: Profile) -> UpdateResult:
        """Validate and save a profile.

        Validation and store rejections come back as an unsuccessful
        result. Database failures propagate.
        """
        validation_error = profile_error(profile)
        if validation_error:
            return UpdateResult(success=False, error=validation_error)
        logger.debug(f"Saving profile for user {self.user_id}:\n{profile}")
        try:
            self._save(self.user_id, profile.to_record())
        except ValueError as exc:
            logger.info(f"Profile update rejected for user {self.user_id}: {exc}")
            return UpdateResult(success=False, error=str(exc))
        return UpdateResult(success=True)
