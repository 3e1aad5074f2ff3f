import pytest
from sqlmodel import select

from referral_api.core.errors import PartnerAlreadyEnrolled
from referral_api.models import EnrollmentStatus, Link, Partner, ProgramEnrollment
from referral_api.schemas.links import PartnerInput
from referral_api.services import partners
from referral_api.services.links import create_link, process_link


@pytest.fixture
def make_link(session, workspace, program):
    def _make(key):
        link, error = process_link(
            session,
            {"domain": program.domain, "key": key, "url": program.url, "program_id": program.id},
            workspace,
        )
        assert error is None
        return create_link(session, link)

    return _make


def test_enrolls_new_partner_and_claims_link(session, workspace, program, make_link):
    link = make_link("jane")

    partner = partners.create_and_enroll_partner(
        session,
        program=program,
        link=link,
        workspace=workspace,
        partner=PartnerInput(name="Jane", email="Jane@Example.com"),
        status=EnrollmentStatus.invited,
    )

    assert partner.email == "jane@example.com"
    enrollment = session.exec(select(ProgramEnrollment)).one()
    assert enrollment.partner_id == partner.id
    assert enrollment.link_id == link.id
    assert enrollment.status == EnrollmentStatus.invited
    assert session.get(Link, link.id).partner_id == partner.id


def test_existing_partner_is_reused(session, workspace, program, make_link):
    session.add(Partner(name="Jane", email="jane@example.com"))
    session.commit()

    partners.create_and_enroll_partner(
        session,
        program=program,
        link=make_link("jane"),
        workspace=workspace,
        partner=PartnerInput(name="Jane D", email="jane@example.com"),
    )

    assert len(session.exec(select(Partner)).all()) == 1


def test_second_enrollment_is_rejected(session, workspace, program, make_link):
    kwargs = dict(
        program=program,
        workspace=workspace,
        partner=PartnerInput(name="Jane", email="jane@example.com"),
    )
    partners.create_and_enroll_partner(session, link=make_link("jane"), **kwargs)

    with pytest.raises(PartnerAlreadyEnrolled):
        partners.create_and_enroll_partner(session, link=make_link("jane2"), **kwargs)


def test_webhook_is_queued_when_enabled(session, workspace, program, make_link, monkeypatch):
    calls = []
    monkeypatch.setattr(partners, "enqueue_http_task", lambda path, body: calls.append((path, body)))
    workspace.webhook_enabled = True
    session.add(workspace)
    session.commit()

    partner = partners.create_and_enroll_partner(
        session,
        program=program,
        link=make_link("jane"),
        workspace=workspace,
        partner=PartnerInput(name="Jane", email="jane@example.com"),
    )

    assert len(calls) == 1
    path, body = calls[0]
    assert path == "/api/tasks/webhooks"
    assert body["trigger"] == "partner.enrolled"
    assert body["workspace_id"] == workspace.id
    assert body["data"]["id"] == partner.id
    assert body["data"]["link"]["short_link"] == "https://refer.acme.com/jane"


def test_no_webhook_when_disabled(session, workspace, program, make_link, monkeypatch):
    calls = []
    monkeypatch.setattr(partners, "enqueue_http_task", lambda path, body: calls.append(path))

    partners.create_and_enroll_partner(
        session,
        program=program,
        link=make_link("jane"),
        workspace=workspace,
        partner=PartnerInput(name="Jane", email="jane@example.com"),
    )

    assert calls == []
