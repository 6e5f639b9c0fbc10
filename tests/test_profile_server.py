import io
import json
from urllib.parse import urlencode

import pytest

import pawmatch.profile_edit.server as server
from pawmatch.models import Profile
from pawmatch.profile_edit.actions import UpdateResult
from pawmatch.profile_edit.auth import (
    decode_session_value,
    encode_session_value,
    normalize_next_path,
    signin_error,
)
from pawmatch.profile_edit.form import ProfileEditForm, UnknownFieldError
from pawmatch.profile_edit.pages import (
    render_edit_page,
    render_profile_page,
    render_signin_page,
)


class StubActions:
    def __init__(self, record=None, result=None):
        self.record = record
        self.result = result or UpdateResult(success=True)
        self.submitted = []

    def get_current_user_profile(self):
        return self.record

    def update_user_profile(self, profile):
        self.submitted.append(profile)
        return self.result


RECORD = {
    "full_name": "Nova <Park>",
    "username": "nova",
    "bio": "Hello there",
    "adopter": "pet",
    "breed": "Beagle",
    "gender": "female",
    "birthdate": "2023-04-01",
    "preferences": {"gender_preference": ["female"], "breed_preference": "Poodle"},
}


def _loaded_form(record=RECORD, result=None):
    navigator = server.RedirectNavigator()
    form = ProfileEditForm(StubActions(record, result), navigator)
    form.load()
    return form, navigator


def test_render_edit_page_reflects_loaded_values():
    form, _ = _loaded_form()
    html = render_edit_page(form, "nova@example.com").decode("utf-8")
    assert 'value="Nova &lt;Park&gt;"' in html
    assert '<option value="pet" selected>' in html
    assert '<option value="female" selected>' in html
    assert 'name="gender_preference" value="female" checked' in html
    assert 'name="gender_preference" value="male" />' in html
    assert 'value="Poodle"' in html
    assert 'maxlength="500"' in html
    assert "11/500 characters" in html
    assert "Save Changes" in html
    assert "/default-avatar.svg" in html


def test_render_edit_page_shows_loading_and_saving_states():
    form = ProfileEditForm(StubActions(), server.RedirectNavigator())
    assert "Loading profile..." in render_edit_page(form).decode("utf-8")

    form, _ = _loaded_form()
    form.saving = True
    html = render_edit_page(form).decode("utf-8")
    assert "Saving..." in html
    assert 'value="save" disabled' in html


def test_render_edit_page_shows_inline_error():
    form, _ = _loaded_form(result=UpdateResult(success=False, error="taken"))
    form.submit()
    html = render_edit_page(form).decode("utf-8")
    assert 'class="flash flash-error"' in html
    assert ">taken</div>" in html


def test_render_profile_page_with_and_without_profile():
    html = render_profile_page(Profile.from_record(RECORD), "nova@example.com").decode("utf-8")
    assert "Nova &lt;Park&gt;" in html
    assert "Gender: Female" in html
    assert "/profile/edit" in html

    empty_html = render_profile_page(None).decode("utf-8")
    assert "Create your profile" in empty_html


def test_render_signin_page_keeps_only_local_next_path():
    html = render_signin_page(next_path="https://evil.example").decode("utf-8")
    assert 'name="next" value="/profile"' in html


def test_apply_submitted_fields_replays_inputs():
    form, _ = _loaded_form()
    server.apply_submitted_fields(
        form,
        {
            "action": ["save"],
            "full_name": ["Nova Park"],
            "breed_preference": ["Corgi"],
            "distance": ["15"],
            "gender_preference": ["male", "other"],
        },
    )
    prefs = form.profile.preferences
    assert form.profile.full_name == "Nova Park"
    assert prefs.breed_preference == "Corgi"
    assert prefs.distance == 15
    assert prefs.gender_preference == ("male", "other")


def test_apply_submitted_fields_rejects_unknown_inputs():
    form, _ = _loaded_form()
    with pytest.raises(UnknownFieldError):
        server.apply_submitted_fields(form, {"role": ["admin"]})


def test_redirect_navigator_records_targets():
    form, navigator = _loaded_form()
    form.submit()
    assert navigator.location == "/profile"

    navigator = server.RedirectNavigator(back_path="/")
    navigator.back()
    assert navigator.location == "/"


def test_normalize_next_path_allows_only_local_paths():
    assert normalize_next_path("/profile/edit") == "/profile/edit"
    assert normalize_next_path("profile") == "/profile"
    assert normalize_next_path("https://evil.example", "/") == "/"
    assert normalize_next_path("//evil.example", "/") == "/"


def test_session_cookie_value_round_trip_and_tamper(monkeypatch):
    monkeypatch.setenv("PAWMATCH_SESSION_SECRET", "unit-test-secret")
    encoded = encode_session_value(42)
    assert decode_session_value(encoded) == 42
    assert decode_session_value(f"42.{encoded.split('.', 1)[1]}x") is None
    assert decode_session_value("not-a-cookie") is None
    assert decode_session_value("0.abc") is None


def test_signin_error_messages():
    assert signin_error("bad", "password123") == "Enter a valid email address."
    assert "at least 8" in signin_error("a@example.com", "short")
    assert signin_error("a@example.com", "password123") is None


class RecordingHandler(server.AppHandler):
    """AppHandler with the socket plumbing replaced by recorded responses."""

    def __init__(self, path, body=b"", headers=None, user=None):
        self.path = path
        self.rfile = io.BytesIO(body)
        self.headers = {"Content-Length": str(len(body)), **(headers or {})}
        self.user = {"id": 7, "email": "nova@example.com"} if user is None else user
        self.responses = []

    def _signed_in_user(self):
        return self.user or None

    def _redirect(self, location, cookie=None):
        self.responses.append((303, location))

    def _send_html(self, status, body):
        self.responses.append((status, body.decode("utf-8")))

    def _send_json(self, status, payload):
        self.responses.append((status, payload))

    def send_error(self, code, message=None, explain=None):
        self.responses.append((code, message))


def _form_body(**fields):
    return urlencode(fields, doseq=True).encode("utf-8")


def _use_actions(monkeypatch, actions):
    monkeypatch.setattr(server, "ProfileActions", lambda user_id: actions)


def test_post_edit_profile_redirects_to_profile_on_success(monkeypatch):
    actions = StubActions(RECORD)
    _use_actions(monkeypatch, actions)
    handler = RecordingHandler(
        "/profile/edit",
        _form_body(action="save", username="nova2", gender_preference=["male"]),
    )
    handler.do_POST()
    assert handler.responses == [(303, "/profile")]
    submitted = actions.submitted[0]
    assert submitted.username == "nova2"
    assert submitted.full_name == "Nova <Park>"
    assert submitted.preferences.gender_preference == ("male",)


def test_post_edit_profile_rerenders_with_inline_error(monkeypatch):
    _use_actions(monkeypatch, StubActions(RECORD, UpdateResult(success=False, error="taken")))
    handler = RecordingHandler("/profile/edit", _form_body(action="save", username="nova"))
    handler.do_POST()
    status, html = handler.responses[0]
    assert status == 200
    assert ">taken</div>" in html
    assert 'value="save" disabled' not in html


def test_post_edit_profile_shows_rejected_input_without_submitting(monkeypatch):
    actions = StubActions(RECORD)
    _use_actions(monkeypatch, actions)
    handler = RecordingHandler("/profile/edit", _form_body(action="save", distance="far"))
    handler.do_POST()
    status, html = handler.responses[0]
    assert status == 200
    assert "distance must be a whole number." in html
    assert actions.submitted == []


def test_post_edit_profile_cancel_goes_back_without_loading(monkeypatch):
    actions = StubActions(RECORD)
    _use_actions(monkeypatch, actions)
    handler = RecordingHandler(
        "/profile/edit",
        _form_body(action="cancel"),
        headers={"Referer": "http://localhost/"},
    )
    handler.do_POST()
    assert handler.responses == [(303, "/")]
    assert actions.submitted == []


def test_post_edit_profile_keeps_crlf_bio_intact(monkeypatch):
    typed = "\n".join(["x" * 9] * 50) + "\n"
    actions = StubActions(RECORD)
    _use_actions(monkeypatch, actions)
    handler = RecordingHandler(
        "/profile/edit", _form_body(action="save", bio=typed.replace("\n", "\r\n"))
    )
    handler.do_POST()
    assert handler.responses == [(303, "/profile")]
    assert actions.submitted[0].bio == typed


def test_post_edit_profile_requires_sign_in(monkeypatch):
    _use_actions(monkeypatch, StubActions(RECORD))
    handler = RecordingHandler("/profile/edit", _form_body(action="save"), user={})
    handler.do_POST()
    status, location = handler.responses[0]
    assert status == 303
    assert location.startswith("/signin?")


def test_post_api_profile_does_not_fill_required_fields(monkeypatch):
    actions = server.ProfileActions(7, save_fn=lambda user_id, record: None)
    _use_actions(monkeypatch, actions)
    payload = {"full_name": "A", "username": "abc", "bio": "x", "birthdate": "2000-01-01"}
    handler = RecordingHandler("/api/profile", json.dumps(payload).encode("utf-8"))
    handler.do_POST()
    assert handler.responses == [(400, {"success": False, "error": "Adopter is required."})]


def test_post_api_profile_rejects_non_numeric_distance(monkeypatch):
    saved = []
    actions = server.ProfileActions(7, save_fn=lambda user_id, record: saved.append(record))
    _use_actions(monkeypatch, actions)
    payload = dict(RECORD, full_name="Nova Park", preferences={"distance": "far"})
    handler = RecordingHandler("/api/profile", json.dumps(payload).encode("utf-8"))
    handler.do_POST()
    assert handler.responses == [
        (400, {"success": False, "error": "distance must be a whole number."})
    ]
    assert saved == []


def test_post_api_profile_saves_valid_payload(monkeypatch):
    saved = []
    actions = server.ProfileActions(7, save_fn=lambda user_id, record: saved.append(record))
    _use_actions(monkeypatch, actions)
    payload = dict(RECORD, full_name="Nova Park")
    handler = RecordingHandler("/api/profile", json.dumps(payload).encode("utf-8"))
    handler.do_POST()
    assert handler.responses == [(200, {"success": True})]
    assert saved[0]["preferences"]["breed_preference"] == "Poodle"


@pytest.mark.parametrize(
    "body, headers",
    [
        (b"username=nova", {"Content-Length": "lots"}),
        (b"username=nova", {"Content-Length": "-1"}),
        (b"username=\xff\xfe", {}),
    ],
)
def test_post_with_unreadable_body_is_bad_request(monkeypatch, body, headers):
    actions = StubActions(RECORD)
    _use_actions(monkeypatch, actions)
    handler = RecordingHandler("/profile/edit", body, headers=headers)
    handler.do_POST()
    assert handler.responses == [(400, "Bad Request")]
    assert actions.submitted == []
