from concurrent.futures import Future

import pytest

from referral_api.models import COOKIE_LENGTH_OPTIONS, Folder, Program
from referral_api.services.programs.form import LinkSettingsForm
from referral_api.services.programs.update import ActionResult, bind_update_action


class Recorder:
    def __init__(self):
        self.toasts = []
        self.invalidated = []

    def notify(self, level, message):
        self.toasts.append((level, message))

    def invalidate(self, key):
        self.invalidated.append(key)


@pytest.fixture
def recorder():
    return Recorder()


def _form(program, workspace, recorder, action):
    return LinkSettingsForm(
        program,
        workspace_id=workspace.id,
        action=action,
        notify=recorder.notify,
        invalidate=recorder.invalidate,
    )


def _ok_action(payload):
    return ActionResult(data=dict(payload))


def test_draft_is_seeded_from_program(program, workspace, recorder):
    form = _form(program, workspace, recorder, _ok_action)

    assert form.values == {
        "domain": "refer.acme.com",
        "url": "https://acme.com/",
        "cookie_length": 90,
        "default_folder_id": program.default_folder_id,
        "link_structure": "short",
    }
    assert not form.is_dirty
    assert not form.can_submit
    assert form.cookie_length_options == COOKIE_LENGTH_OPTIONS


def test_blur_validates_single_field(program, workspace, recorder):
    form = _form(program, workspace, recorder, _ok_action)

    form.set_value("url", "ftp://acme.com")
    assert "url" not in form.errors
    assert form.blur("url") == "Enter a valid URL."
    assert "domain" not in form.errors

    form.set_value("url", "https://acme.com/pricing")
    assert "url" not in form.errors


@pytest.mark.parametrize("value", [0, 45, 365, None, ""])
def test_cookie_length_outside_options_is_invalid(program, workspace, recorder, value):
    form = _form(program, workspace, recorder, _ok_action)

    form.set_value("cookie_length", value)

    assert form.blur("cookie_length") is not None
    assert not form.can_submit


def test_coming_soon_structure_is_ignored(program, workspace, recorder):
    form = _form(program, workspace, recorder, _ok_action)

    assert form.set_value("link_structure", "query") is False
    assert form.values["link_structure"] == "short"
    assert not form.is_dirty


def test_structure_examples_follow_saved_program(program, workspace, recorder):
    form = _form(program, workspace, recorder, _ok_action)

    form.set_value("domain", "go.acme.com")
    form.set_value("url", "https://www.acme.io")
    examples = {opt.id.value: opt.example for opt in form.link_structure_options}
    assert examples == {
        "short": "refer.acme.com/steven",
        "query": "acme.com?via=steven",
        "path": "acme.com/refer/steven",
    }

    form.submit()

    assert form.link_structure_options[0].example == "go.acme.com/steven"


def test_folder_control_disabled_while_lookup_in_flight(program, workspace, recorder):
    form = _form(program, workspace, recorder, _ok_action)
    lookup = Future()

    form.track_folder_lookup(lookup)

    assert form.folder_control_disabled
    assert form.set_value("default_folder_id", "fold_other") is False

    lookup.set_result([{"id": program.default_folder_id, "name": "Partner Links"}, {"id": "fold_2", "name": "VIP"}])

    assert not form.folder_control_disabled
    assert form.set_value("default_folder_id", "fold_2") is True
    assert form.blur("default_folder_id") is None
    form.set_value("default_folder_id", "fold_unknown")
    assert form.blur("default_folder_id") == "Select a valid folder."


def test_failed_folder_lookup_reenables_control(program, workspace, recorder):
    form = _form(program, workspace, recorder, _ok_action)
    lookup = Future()
    form.track_folder_lookup(lookup)

    lookup.set_exception(RuntimeError("offline"))

    assert not form.folder_control_disabled
    assert form.folders == []


def test_successful_submit_resets_dirty_and_keeps_values(program, workspace, recorder):
    sent = []

    def _action(payload):
        sent.append(payload)
        return ActionResult(data=payload)

    form = _form(program, workspace, recorder, _action)
    form.set_value("cookie_length", "30")
    form.set_value("default_folder_id", "")
    assert form.can_submit

    result = form.submit()

    assert result.ok
    assert sent == [
        {
            "workspaceId": workspace.id,
            "domain": "refer.acme.com",
            "url": "https://acme.com/",
            "cookieLength": 30,
            "defaultFolderId": None,
            "linkStructure": "short",
        }
    ]
    assert recorder.toasts == [("success", "Program updated successfully.")]
    assert recorder.invalidated == [f"/api/programs/{program.id}?workspaceId={workspace.id}"]
    assert not form.is_dirty
    assert form.values["cookie_length"] == 30
    assert form.values["default_folder_id"] == ""


def test_failed_submit_surfaces_server_message_and_stays_dirty(program, workspace, recorder):
    form = _form(program, workspace, recorder, lambda payload: ActionResult(server_error="Domain is not verified"))
    form.set_value("cookie_length", 14)

    result = form.submit()

    assert not result.ok
    assert recorder.toasts == [("error", "Domain is not verified")]
    assert recorder.invalidated == []
    assert form.is_dirty
    assert form.can_submit


def test_failed_submit_without_message_uses_generic_text(program, workspace, recorder):
    form = _form(program, workspace, recorder, lambda payload: ActionResult())
    form.set_value("cookie_length", 14)

    form.submit()

    assert recorder.toasts == [("error", "Failed to update program.")]


def test_action_exception_is_reported_as_generic_failure(program, workspace, recorder):
    def _raises(payload):
        raise ConnectionError("network down")

    form = _form(program, workspace, recorder, _raises)
    form.set_value("cookie_length", 14)

    result = form.submit()

    assert not result.ok
    assert recorder.toasts == [("error", "Failed to update program.")]
    assert not form.is_submitting


def test_only_one_submission_in_flight(program, workspace, recorder):
    nested = []
    form = None

    def _action(payload):
        assert form.is_submitting
        assert not form.can_submit
        nested.append(form.submit())
        return ActionResult(data=payload)

    form = _form(program, workspace, recorder, _action)
    form.set_value("cookie_length", 7)

    assert form.submit().ok
    assert nested == [None]


def test_clean_or_invalid_draft_is_not_submitted(program, workspace, recorder):
    calls = []
    form = _form(program, workspace, recorder, lambda payload: calls.append(payload) or ActionResult(data=payload))

    assert form.submit() is None

    form.set_value("domain", "not a domain")
    assert form.submit() is None
    assert form.errors["domain"] == "Enter a valid domain."
    assert calls == []


def test_saved_values_are_visible_on_next_fetch(client, session, program, workspace, auth_headers, recorder, fake_redis):
    url = f"/api/programs/{program.id}?workspaceId={workspace.id}"
    assert client.get(url, headers=auth_headers).json()["cookie_length"] == 90
    assert url in fake_redis

    session.add(Folder(id="fold_vip", name="VIP", workspace_id=workspace.id))
    session.commit()

    form = _form(program, workspace, recorder, bind_update_action(workspace.id, program.id))
    form.set_value("cookie_length", 180)
    form.set_value("default_folder_id", "fold_vip")
    assert form.submit().ok
    assert not form.is_dirty

    body = client.get(url, headers=auth_headers).json()
    assert body["cookie_length"] == 180
    assert body["default_folder_id"] == "fold_vip"
    session.expire_all()
    assert session.get(Program, program.id).cookie_length in COOKIE_LENGTH_OPTIONS
