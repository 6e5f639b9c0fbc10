"""Server-rendered PawMatch profile editor.

This module provides a minimal HTTP server for signing in, viewing the
signed-in user's profile, editing it through a server-rendered form, and
reading/updating it through a small JSON API backed by Postgres.
"""

from __future__ import annotations

import argparse
import json
import logging
from http.cookies import CookieError, SimpleCookie
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlencode, urlparse

from dotenv import load_dotenv

from pawmatch.db import get_connection
from pawmatch.models import GENDER_CHOICES, Profile
from pawmatch.profile_edit.actions import ProfileActions
from pawmatch.profile_edit.auth import (
    decode_session_value,
    encode_session_value,
    normalize_email,
    normalize_next_path,
    signin_error,
)
from pawmatch.profile_edit.config import (
    APP_DIR,
    EDIT_PROFILE_PATH,
    PROFILE_PATH,
    SESSION_COOKIE_MAX_AGE_SECONDS,
    SESSION_COOKIE_NAME,
    SIGNIN_PATH,
    UPDATE_FAILED_MESSAGE,
    log_level,
)
from pawmatch.profile_edit.form import ProfileEditForm
from pawmatch.profile_edit.pages import (
    render_edit_page,
    render_profile_page,
    render_signin_page,
)
from pawmatch.profile_edit.repository import (
    ensure_app_schema,
    get_user_by_id,
    upsert_user,
)

logger = logging.getLogger(__name__)

STATIC_DIR = APP_DIR / "static"
NON_FIELD_INPUTS = ("action", "gender_preference")


class RedirectNavigator:
    """Navigator that records where the browser should be redirected."""

    def __init__(self, back_path: str = PROFILE_PATH):
        self.back_path = back_path
        self.location: str | None = None

    def back(self) -> None:
        self.location = self.back_path

    def push(self, path: str) -> None:
        self.location = path


def apply_submitted_fields(form: ProfileEditForm, fields: dict[str, list[str]]) -> None:
    """Replay posted form inputs onto the form as change events.

    Checkbox groups only post checked values, so every gender choice is
    toggled explicitly.

    Raises:
        ValueError: An input name or value the form does not accept.
    """
    for name, values in fields.items():
        if name in NON_FIELD_INPUTS or not values:
            continue
        form.handle_field_change(name, values[0])
    selected = set(fields.get("gender_preference", []))
    for choice in GENDER_CHOICES:
        form.handle_gender_preference_toggle(choice, choice in selected)


class AppHandler(SimpleHTTPRequestHandler):
    """HTTP handler for PawMatch pages, API and static assets."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, directory=str(STATIC_DIR), **kwargs)

    def _send_json(self, status: int, payload: dict) -> None:
        data = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Cache-Control", "no-store, no-cache, must-revalidate, max-age=0")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_html(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Cache-Control", "no-store, no-cache, must-revalidate, max-age=0")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _redirect(self, location: str, cookie: str | None = None) -> None:
        self.send_response(303)
        if cookie:
            self.send_header("Set-Cookie", cookie)
        self.send_header("Location", location)
        self.end_headers()

    def _redirect_to_signin(self, next_path: str, message: str) -> None:
        query = urlencode({"next": next_path, "msg": message})
        self._redirect(f"{SIGNIN_PATH}?{query}")

    def _session_cookie_header(self, user_id: int) -> str:
        parts = [
            f"{SESSION_COOKIE_NAME}={encode_session_value(user_id)}",
            "Path=/",
            "HttpOnly",
            "SameSite=Lax",
            f"Max-Age={SESSION_COOKIE_MAX_AGE_SECONDS}",
        ]
        if (self.headers.get("X-Forwarded-Proto") or "").strip().lower() == "https":
            parts.append("Secure")
        return "; ".join(parts)

    @staticmethod
    def _clear_session_cookie_header() -> str:
        return (
            f"{SESSION_COOKIE_NAME}=; Path=/; HttpOnly; SameSite=Lax; Max-Age=0; "
            "Expires=Thu, 01 Jan 1970 00:00:00 GMT"
        )

    def _cookie_value(self, key: str) -> str | None:
        raw = self.headers.get("Cookie")
        if not raw:
            return None
        jar = SimpleCookie()
        try:
            jar.load(raw)
        except CookieError:
            return None
        morsel = jar.get(key)
        return morsel.value if morsel else None

    def _signed_in_user(self) -> dict | None:
        """Resolve signed-in user from session cookie."""
        user_id = decode_session_value(self._cookie_value(SESSION_COOKIE_NAME))
        if user_id is None:
            return None
        try:
            return get_user_by_id(user_id)
        except Exception:
            logger.exception(f"Failed to load session user {user_id}.")
            return None

    def _back_path(self) -> str:
        referer = urlparse(self.headers.get("Referer") or "")
        candidate = normalize_next_path(referer.path, PROFILE_PATH)
        if candidate == EDIT_PROFILE_PATH:
            return PROFILE_PATH
        return candidate

    def _read_body(self) -> str:
        """Read the request body as text.

        Raises:
            ValueError: Bad ``Content-Length`` or a body that is not UTF-8.
        """
        length = int(self.headers.get("Content-Length", 0) or 0)
        if length < 0:
            raise ValueError(f"invalid Content-Length: {length}")
        return self.rfile.read(length).decode("utf-8") if length else ""

    @staticmethod
    def _parse_form(body: str) -> dict[str, list[str]]:
        return parse_qs(body, keep_blank_values=True)

    def do_GET(self):
        parsed = urlparse(self.path)
        query = parse_qs(parsed.query)

        if parsed.path == "/api/health":
            try:
                with get_connection() as conn:
                    ensure_app_schema(conn)
                return self._send_json(200, {"ok": True})
            except Exception as exc:
                return self._send_json(500, {"ok": False, "detail": str(exc)})

        if parsed.path == "/api/profile":
            user = self._signed_in_user()
            if not user:
                return self._send_json(401, {"error": "sign in required"})
            try:
                record = ProfileActions(int(user["id"])).get_current_user_profile()
            except Exception as exc:
                logger.exception("Failed to load profile for API.")
                return self._send_json(
                    500, {"error": "failed to load profile", "detail": str(exc)}
                )
            profile = Profile.from_record(record).to_record() if record else None
            return self._send_json(200, {"profile": profile})

        if parsed.path == SIGNIN_PATH:
            body = render_signin_page(
                message=query.get("msg", [None])[0],
                next_path=normalize_next_path(query.get("next", [PROFILE_PATH])[0]),
                email_value=" ".join(query.get("email", [""])[0].split()),
            )
            return self._send_html(200, body)

        if parsed.path == "/":
            return self._redirect(PROFILE_PATH)

        if parsed.path == PROFILE_PATH:
            user = self._signed_in_user()
            if not user:
                return self._redirect_to_signin(PROFILE_PATH, "Sign in to view your profile.")
            message = query.get("msg", [None])[0]
            try:
                record = ProfileActions(int(user["id"])).get_current_user_profile()
            except Exception as exc:
                logger.exception("Failed to load profile page.")
                record = None
                message = f"Failed to load profile: {exc}"
            profile = Profile.from_record(record) if record else None
            body = render_profile_page(profile, str(user.get("email") or ""), message)
            return self._send_html(200, body)

        if parsed.path == EDIT_PROFILE_PATH:
            user = self._signed_in_user()
            if not user:
                return self._redirect_to_signin(EDIT_PROFILE_PATH, "Sign in to edit your profile.")
            form = ProfileEditForm(
                ProfileActions(int(user["id"])), RedirectNavigator(self._back_path())
            )
            try:
                form.load()
                body = render_edit_page(form, str(user.get("email") or ""))
            finally:
                form.dispose()
            return self._send_html(200, body)

        return super().do_GET()

    def do_POST(self):
        parsed = urlparse(self.path)
        try:
            body = self._read_body()
        except ValueError as exc:
            logger.info(f"Rejected unreadable request body: {exc}")
            return self.send_error(400, "Bad Request")

        if parsed.path == SIGNIN_PATH:
            form = self._parse_form(body)
            email = normalize_email(form.get("email", [""])[0])
            password = form.get("password", [""])[0]
            next_path = normalize_next_path(form.get("next", [PROFILE_PATH])[0])
            validation_error = signin_error(email, password)
            if validation_error:
                query = urlencode({"msg": validation_error, "next": next_path, "email": email})
                return self._redirect(f"{SIGNIN_PATH}?{query}")
            try:
                user = upsert_user(email, password)
                user_id = int(user.get("id") or 0)
                if user_id <= 0:
                    raise ValueError("failed to create session user")
            except Exception as exc:
                query = urlencode(
                    {"msg": f"Sign-in failed: {exc}", "next": next_path, "email": email}
                )
                return self._redirect(f"{SIGNIN_PATH}?{query}")
            logger.info(f"User {user_id} signed in.")
            return self._redirect(next_path, cookie=self._session_cookie_header(user_id))

        if parsed.path == "/signout":
            form = self._parse_form(body)
            next_path = normalize_next_path(form.get("next", [SIGNIN_PATH])[0], SIGNIN_PATH)
            return self._redirect(next_path, cookie=self._clear_session_cookie_header())

        if parsed.path == EDIT_PROFILE_PATH:
            return self._post_edit_profile(self._parse_form(body))

        if parsed.path == "/api/profile":
            return self._post_api_profile(body)

        self.send_error(404, "Not Found")

    def _post_edit_profile(self, fields: dict[str, list[str]]) -> None:
        user = self._signed_in_user()
        if not user:
            return self._redirect_to_signin(EDIT_PROFILE_PATH, "Sign in to edit your profile.")

        navigator = RedirectNavigator(self._back_path())
        form = ProfileEditForm(ProfileActions(int(user["id"])), navigator)
        try:
            if fields.get("action", [""])[0] == "cancel":
                form.cancel()
                return self._redirect(navigator.location or PROFILE_PATH)

            form.load()
            try:
                apply_submitted_fields(form, fields)
            except ValueError as exc:
                form.error = str(exc)
            else:
                form.submit()

            if navigator.location:
                return self._redirect(navigator.location)
            return self._send_html(200, render_edit_page(form, str(user.get("email") or "")))
        finally:
            form.dispose()

    def _post_api_profile(self, body: str) -> None:
        user = self._signed_in_user()
        if not user:
            return self._send_json(401, {"success": False, "error": "sign in required"})
        try:
            payload = json.loads(body or "{}")
        except json.JSONDecodeError:
            return self._send_json(400, {"success": False, "error": "invalid json"})
        if not isinstance(payload, dict):
            return self._send_json(400, {"success": False, "error": "profile must be an object"})
        try:
            profile = Profile.from_payload(payload)
        except ValueError as exc:
            return self._send_json(400, {"success": False, "error": str(exc)})

        try:
            result = ProfileActions(int(user["id"])).update_user_profile(profile)
        except Exception as exc:
            logger.exception("Failed to update profile through API.")
            return self._send_json(
                500, {"success": False, "error": UPDATE_FAILED_MESSAGE, "detail": str(exc)}
            )
        return self._send_json(200 if result.success else 400, result.to_dict())

    def log_message(self, fmt, *args):
        logger.debug("%s - %s", self.address_string(), fmt % args)


def main() -> None:
    """Run the PawMatch HTTP server from CLI arguments."""
    load_dotenv()
    logging.basicConfig(
        level=log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    parser = argparse.ArgumentParser(description="Serve the PawMatch profile editor")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    server = ThreadingHTTPServer((args.host, args.port), AppHandler)
    logger.info(f"PawMatch running at http://{args.host}:{args.port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
