from referral_api.services import partner_invite_email
from referral_api.services.partner_invite_email import (
    InviteProgram,
    render_partner_invite,
    send_partner_invite,
)


def test_invite_subject_and_link():
    program = InviteProgram(name="Acme Partners", slug="acme")

    subject, text, body = render_partner_invite(program, "jane@example.com")

    assert subject == "Acme Partners invited you to join PartnerLinks Partners"
    assert "https://app.partnerlinks.io/partners/acme/invite" in text
    assert 'href="https://app.partnerlinks.io/partners/acme/invite"' in body
    assert "<img" not in body


def test_invite_html_is_escaped():
    program = InviteProgram(name="<b>Acme</b>", slug="acme", logo='https://cdn.acme.com/logo.png?a=1&b="2"')

    _, _, body = render_partner_invite(program, "jane@example.com")

    assert "<b>Acme</b>" not in body
    assert "&lt;b&gt;Acme&lt;/b&gt;" in body
    assert "&amp;b=&quot;2&quot;" in body


def test_send_partner_invite_goes_through_mailer(monkeypatch):
    sent = []

    def _send(to, subject, text, html=None):
        sent.append((to, subject, html))
        return True

    monkeypatch.setattr(partner_invite_email.mailer, "send", _send)

    assert send_partner_invite("jane@example.com", InviteProgram(name="Acme Partners", slug="acme")) is True
    assert sent[0][0] == "jane@example.com"
    assert sent[0][1] == "Acme Partners invited you to join PartnerLinks Partners"
    assert sent[0][2]


def test_dev_mailer_logs_instead_of_sending(caplog):
    from referral_api.services.mailer import Mailer

    caplog.set_level("INFO")
    assert Mailer().send("jane@example.com", "Hi", "Body") is True
    assert "[DEV-MAIL]" in caplog.text
