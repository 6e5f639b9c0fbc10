"""HTML rendering helpers for the profile editor."""

from __future__ import annotations

from html import escape

from pawmatch.models import ADOPTER_CHOICES, GENDER_CHOICES, Profile
from pawmatch.profile_edit.auth import normalize_next_path
from pawmatch.profile_edit.config import (
    BIO_MAX_LENGTH,
    DEFAULT_AVATAR_URL,
    EDIT_PROFILE_PATH,
    MAX_DISTANCE,
    PROFILE_PATH,
)
from pawmatch.profile_edit.form import ProfileEditForm


def _document(title: str, body: str) -> bytes:
    page_html = f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{escape(title)} | PawMatch</title>
    <link rel="stylesheet" href="/styles.css" />
  </head>
  <body>
    <div class="app">
{body}
    </div>
    <script src="/profile_edit.js"></script>
  </body>
</html>"""
    return page_html.encode("utf-8")


def _header(title: str, subtitle: str, signed_in_email: str | None = None) -> str:
    account_html = ""
    if signed_in_email:
        account_html = f"""
        <div class="account-actions">
          <span class="account-email">{escape(signed_in_email)}</span>
          <form class="inline-form" method="post" action="/signout">
            <input type="hidden" name="next" value="/signin" />
            <button class="btn subtle" type="submit">Sign out</button>
          </form>
        </div>"""
    return f"""
      <header class="topbar">
        <div class="brand">
          <div class="brand-mark">PM</div>
          <div>
            <h1>{escape(title)}</h1>
            <p>{escape(subtitle)}</p>
          </div>
        </div>{account_html}
      </header>"""


def _flash(message: str | None, css_class: str = "flash") -> str:
    if not message:
        return ""
    return f'<div class="{css_class}" role="status">{escape(message)}</div>'


def _options(choices: tuple[str, ...], selected: str) -> str:
    options: list[str] = []
    for choice in choices:
        selected_attr = " selected" if choice == selected else ""
        options.append(
            f'<option value="{escape(choice)}"{selected_attr}>{escape(choice.title())}</option>'
        )
    return "".join(options)


def _gender_checkboxes(selected: tuple[str, ...]) -> str:
    boxes: list[str] = []
    for choice in GENDER_CHOICES:
        checked_attr = " checked" if choice in selected else ""
        boxes.append(
            f'<label class="check"><input type="checkbox" id="pref-{choice}" '
            f'name="gender_preference" value="{choice}"{checked_attr} /> '
            f"{escape(choice.title())}</label>"
        )
    return "\n              ".join(boxes)


def _render_loading() -> bytes:
    """Markup for a form whose load has not finished (``form.loading``)."""
    body = """
      <main>
        <section class="state state-loading">
          <div class="spinner"></div>
          <p>Loading profile...</p>
        </section>
      </main>"""
    return _document("Edit Profile", body)


def render_edit_page(form: ProfileEditForm, signed_in_email: str | None = None) -> bytes:
    """Render the profile edit form from the form's current state."""
    if form.loading:
        return _render_loading()

    profile = form.profile
    prefs = profile.preferences
    avatar = profile.avatar_url or DEFAULT_AVATAR_URL
    submit_label = "Saving..." if form.saving else "Save Changes"
    disabled_attr = " disabled" if form.saving else ""

    body = f"""{_header("Edit Profile", "Update your profile information", signed_in_email)}
      <main>
        <form class="profile-form" method="post" action="{EDIT_PROFILE_PATH}">
          <section class="form-section">
            <label>Profile Picture</label>
            <div class="avatar-row">
              <img class="avatar" src="{escape(avatar)}" alt="Profile" />
              <div>
                <label for="avatar_url">Picture URL</label>
                <input type="url" id="avatar_url" name="avatar_url"
                  value="{escape(profile.avatar_url)}" placeholder="https://..." />
                <p class="hint">JPG, PNG or GIF. Max 5MB.</p>
              </div>
            </div>
          </section>

          <section class="form-grid">
            <div>
              <label for="full_name">Full Name *</label>
              <input type="text" id="full_name" name="full_name" required
                value="{escape(profile.full_name)}" placeholder="Enter your full name" />
            </div>
            <div>
              <label for="username">Username *</label>
              <input type="text" id="username" name="username" required
                value="{escape(profile.username)}" placeholder="Choose a username" />
            </div>
            <div>
              <label for="adopter">Adopter *</label>
              <select id="adopter" name="adopter" required>{_options(ADOPTER_CHOICES, profile.adopter)}</select>
            </div>
            <div>
              <label for="birthdate">Birthday *</label>
              <input type="date" id="birthdate" name="birthdate" required
                value="{escape(profile.birthdate)}" />
            </div>
            <div>
              <label for="gender">Gender *</label>
              <select id="gender" name="gender" required>{_options(GENDER_CHOICES, profile.gender)}</select>
            </div>
            <div>
              <span class="label">Gender Preference</span>
              {_gender_checkboxes(prefs.gender_preference)}
            </div>
            <div>
              <label for="breed">Breed *</label>
              <input type="text" id="breed" name="breed" required
                value="{escape(profile.breed)}" placeholder="N/A" />
            </div>
            <div>
              <label for="breed_preference">Breed Preference</label>
              <input type="text" id="breed_preference" name="breed_preference"
                value="{escape(prefs.breed_preference)}" placeholder="N/A" />
            </div>
          </section>

          <section class="form-grid">
            <div>
              <label for="adopter_preference">Looking For</label>
              <select id="adopter_preference" name="adopter_preference">{_options(ADOPTER_CHOICES, prefs.adopter_preference)}</select>
            </div>
            <div>
              <label for="distance">Distance (miles)</label>
              <input type="number" id="distance" name="distance" min="0" max="{MAX_DISTANCE}"
                value="{prefs.distance}" />
            </div>
            <div>
              <label for="age_min">Age From</label>
              <input type="number" id="age_min" name="age_min" min="0" max="99"
                value="{prefs.age_range.min}" />
            </div>
            <div>
              <label for="age_max">Age To</label>
              <input type="number" id="age_max" name="age_max" min="0" max="99"
                value="{prefs.age_range.max}" />
            </div>
          </section>

          <section class="form-section">
            <label for="bio">About Me *</label>
            <textarea id="bio" name="bio" rows="4" required maxlength="{BIO_MAX_LENGTH}"
              placeholder="Tell others about yourself...">{escape(profile.bio)}</textarea>
            <p class="hint" id="bio-counter" data-max="{BIO_MAX_LENGTH}">{escape(form.bio_counter)}</p>
          </section>

          {_flash(form.error, "flash flash-error")}

          <div class="form-actions">
            <button class="btn subtle" type="submit" name="action" value="cancel" formnovalidate>Cancel</button>
            <button class="btn primary" type="submit" name="action" value="save"{disabled_attr}>{submit_label}</button>
          </div>
        </form>
      </main>"""
    return _document("Edit Profile", body)


def render_profile_page(
    profile: Profile | None,
    signed_in_email: str | None = None,
    message: str | None = None,
) -> bytes:
    """Render the read-only profile view."""
    if profile is None:
        content = f"""
        <section class="state state-empty">
          You have not set up a profile yet.
          <a class="profile-link" href="{EDIT_PROFILE_PATH}">Create your profile</a>
        </section>"""
    else:
        prefs = profile.preferences
        genders = ", ".join(g.title() for g in prefs.gender_preference) or "Any"
        avatar = profile.avatar_url or DEFAULT_AVATAR_URL
        content = f"""
        <article class="profile-card">
          <img class="avatar" src="{escape(avatar)}" alt="Profile" />
          <h2>{escape(profile.full_name or "Unnamed")}</h2>
          <p class="meta">@{escape(profile.username)} · {escape(profile.adopter.title())} · {escape(profile.gender.title())}</p>
          <p class="meta">Breed: {escape(profile.breed)} · Born {escape(profile.birthdate or "unknown")}</p>
          <p class="bio">{escape(profile.bio)}</p>
          <h3>Preferences</h3>
          <ul class="prefs">
            <li>Looking for: {escape(prefs.adopter_preference.title())}</li>
            <li>Ages {prefs.age_range.min}-{prefs.age_range.max}</li>
            <li>Within {prefs.distance} miles</li>
            <li>Gender: {escape(genders)}</li>
            <li>Breed: {escape(prefs.breed_preference or "Any")}</li>
          </ul>
          <a class="profile-link" href="{EDIT_PROFILE_PATH}">Edit profile</a>
        </article>"""

    body = f"""{_header("My Profile", "PawMatch", signed_in_email)}
      {_flash(message)}
      <main>{content}
      </main>"""
    return _document("My Profile", body)


def render_signin_page(
    message: str | None = None,
    next_path: str = PROFILE_PATH,
    email_value: str = "",
) -> bytes:
    """Render email/password sign-in page."""
    safe_next = normalize_next_path(next_path)
    body = f"""{_header("PawMatch", "Sign in to edit your profile")}
      {_flash(message)}
      <main>
        <article class="auth-card">
          <h2>Sign in</h2>
          <p class="auth-copy">New here? Signing in with a new email creates your account.</p>
          <form class="auth-form" method="post" action="/signin">
            <input type="hidden" name="next" value="{escape(safe_next)}" />
            <label for="signin-email">Email address</label>
            <input id="signin-email" name="email" type="email" autocomplete="email"
              value="{escape(email_value)}" required />
            <label for="signin-password">Password</label>
            <input id="signin-password" name="password" type="password"
              autocomplete="current-password" required />
            <button class="btn primary" type="submit">Continue</button>
          </form>
        </article>
      </main>"""
    return _document("Sign In", body)
