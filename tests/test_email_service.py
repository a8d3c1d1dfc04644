"""Unit tests for EmailService group introductions."""

import json

import httpx
import pytest

from dadcircles.services.email import email_service as email_module
from dadcircles.services.email.email_service import EmailService


MEMBERS = [
    {"userId": "a", "email": "a@example.com", "name": "a", "childInfo": "0y 9mo old"},
    {"userId": "b", "email": "b@example.com", "name": "b", "childInfo": "Expecting 6/2025"},
]


@pytest.fixture(autouse=True)
def clean_email_env(monkeypatch):
    for name in ("EMAIL_MODE", "RESEND_API_KEY", "SMTP_HOST"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def resend_requests(monkeypatch):
    """Route Resend calls through an httpx mock transport and record them."""
    requests = []
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        requests.append(payload)
        if payload["to"] == ["b@example.com"]:
            return httpx.Response(422, json={"message": "Invalid recipient"})
        return httpx.Response(200, json={"id": f"msg-{len(requests)}"})

    monkeypatch.setattr(
        email_module.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler)),
    )
    return requests


class TestEmailServiceModes:
    def test_resend_without_key_falls_back_to_console(self):
        assert EmailService(mode="resend").mode == "console"

    def test_smtp_without_host_falls_back_to_console(self):
        assert EmailService(mode="smtp").mode == "console"

    def test_mode_from_environment(self, monkeypatch):
        monkeypatch.setenv("EMAIL_MODE", "resend")
        monkeypatch.setenv("RESEND_API_KEY", "re_test")
        assert EmailService().mode == "resend"


class TestGroupIntroductionEmail:
    @pytest.mark.asyncio
    async def test_console_mode_reports_every_member(self):
        service = EmailService(mode="console")

        emailed = await service.send_group_introduction_email("Austin Infant Dads - Group 1", MEMBERS)

        assert emailed == ["a", "b"]

    @pytest.mark.asyncio
    async def test_resend_returns_only_accepted_members(self, resend_requests):
        service = EmailService(mode="resend", resend_api_key="re_test", send_delay=0)

        emailed = await service.send_group_introduction_email("Austin Infant Dads - Group 1", MEMBERS)

        assert emailed == ["a"]
        assert len(resend_requests) == 2
        assert resend_requests[0]["subject"] == "Meet Your DadCircles Group: Austin Infant Dads - Group 1"
        assert "0y 9mo old" in resend_requests[0]["text"]

    @pytest.mark.asyncio
    async def test_test_mode_marks_subject_and_body(self, resend_requests):
        service = EmailService(mode="resend", resend_api_key="re_test", send_delay=0)

        await service.send_group_introduction_email("Austin Infant Dads - Group 1", MEMBERS[:1], test_mode=True)

        sent = resend_requests[0]
        assert sent["subject"].endswith("(TEST)")
        assert "THIS IS A TEST EMAIL" in sent["html"]
        assert sent["text"].startswith("THIS IS A TEST EMAIL")

    def test_member_names_are_escaped(self):
        service = EmailService(mode="console")
        members = [{"userId": "x", "email": "x@example.com", "name": "<b>x</b>", "childInfo": "Dad"}]

        html = service._render_group_introduction_html("Group & Co", members, test_mode=False)

        assert "&lt;b&gt;x&lt;/b&gt;" in html
        assert "Group &amp; Co" in html
