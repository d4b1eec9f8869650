from __future__ import annotations

import pytest

from portal_service.infrastructure.mail import smtp_mailer
from portal_service.infrastructure.mail.smtp_mailer import SmtpMailer
from portal_service.services import mail_templates


class _FakeSMTP:
    instances: list[_FakeSMTP] = []

    def __init__(self, host: str, port: int, timeout: float) -> None:
        self.host, self.port = host, port
        self.tls = False
        self.login_as: str | None = None
        self.messages = []
        _FakeSMTP.instances.append(self)

    def __enter__(self) -> _FakeSMTP:
        return self

    def __exit__(self, *exc) -> None:
        pass

    def starttls(self) -> None:
        self.tls = True

    def login(self, user: str, password: str) -> None:
        self.login_as = user

    def send_message(self, msg) -> None:
        self.messages.append(msg)


@pytest.fixture(autouse=True)
def fake_smtp(monkeypatch):
    _FakeSMTP.instances.clear()
    monkeypatch.setattr(smtp_mailer.smtplib, "SMTP", _FakeSMTP)
    return _FakeSMTP


@pytest.mark.asyncio
async def test_send_skipped_without_host(fake_smtp):
    await SmtpMailer(None).send("a@b.test", "subject", "<p>x</p>")

    assert fake_smtp.instances == []


@pytest.mark.asyncio
async def test_send_uses_starttls_and_login(fake_smtp):
    mailer = SmtpMailer(
        "smtp.test", 587, username="bot", password="pw", sender="Portal <bot@portal.test>",
    )

    await mailer.send("hr@acme.test", "Hello", "<p>Hi</p>")

    server = fake_smtp.instances[0]
    assert server.tls is True
    assert server.login_as == "bot"
    msg = server.messages[0]
    assert msg["To"] == "hr@acme.test"
    assert msg["Subject"] == "Hello"
    assert msg.get_body(("html",)).get_content().strip() == "<p>Hi</p>"


def test_templates_escape_user_content():
    subject, html = mail_templates.employer_reply(
        "<Acme>", "hr@acme.test", "<script>alert(1)</script>", "cv<1>.pdf",
    )

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "cv&lt;1&gt;.pdf" in html
    assert "<Acme>" in subject
