import smtplib

import pytest

from rfpflow.config import Settings
from rfpflow.emailer import OutboxMailer, SmtpMailer, build_mailer, render_rfp
from rfpflow.errors import EmailDispatchError
from rfpflow.models import RFPCreate, VendorCreate

from conftest import FakeMailer


@pytest.fixture
def vendors(storage):
    return [
        storage.create_vendor(VendorCreate(name="Acme Corp", email="sales@acme.com")),
        storage.create_vendor(VendorCreate(name="Beta Ltd", email="bids@beta.com")),
    ]


def test_subject_carries_correlation_reference(fake_mailer, vendors, rfp):
    assert fake_mailer.send_rfp(vendors, rfp) == 2
    assert [to for to, _, _ in fake_mailer.sent] == ["sales@acme.com", "bids@beta.com"]
    assert all(subject == f"RFP #{rfp.id}: Laptop refresh" for _, subject, _ in fake_mailer.sent)


def test_first_failure_aborts_batch(vendors, rfp):
    mailer = FakeMailer(fail_for="sales@acme.com")
    with pytest.raises(EmailDispatchError):
        mailer.send_rfp(vendors, rfp)
    assert mailer.sent == []


def test_outbox_mailer_records_messages(storage, vendors, rfp):
    OutboxMailer(storage, "procurement@example.com").send_rfp(vendors, rfp)
    outbox = storage.list_outbox()
    assert [m["to"] for m in outbox] == ["sales@acme.com", "bids@beta.com"]
    assert outbox[0]["from"] == "procurement@example.com"


def test_render_parsed_requirements(storage):
    rfp = storage.create_rfp(RFPCreate(title="Laptops", raw_requirements="raw", structured_requirements={
        "summary": "New laptops for staff", "deliverables": ["20 laptops"],
        "budget": "$50k", "successCriteria": ["Delivered by March"],
    }))
    body = render_rfp(rfp)
    assert "New laptops for staff" in body
    assert "  - 20 laptops" in body
    assert "  - Delivered by March" in body
    assert "Budget: $50k" in body


def test_render_without_structure_uses_raw_text(storage):
    rfp = storage.create_rfp(RFPCreate(title="Chairs", raw_requirements="50 office chairs"))
    assert "50 office chairs" in render_rfp(rfp)


def test_smtp_requires_open():
    with pytest.raises(EmailDispatchError):
        SmtpMailer("smtp.example.com").send("a@example.com", "s", "b")


def test_smtp_lifecycle(monkeypatch):
    events = []

    class FakeSMTP:
        def __init__(self, host, port):
            events.append(("connect", host, port))

        def starttls(self):
            events.append(("starttls",))

        def login(self, user, password):
            events.append(("login", user))

        def send_message(self, msg):
            events.append(("send", msg["To"], msg["Subject"]))

        def quit(self):
            events.append(("quit",))

    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    mailer = SmtpMailer("smtp.example.com", 2525, "user", "pw")
    mailer.open()
    mailer.send("a@example.com", "RFP #1: X", "body")
    mailer.close()
    assert events == [
        ("connect", "smtp.example.com", 2525),
        ("starttls",),
        ("login", "user"),
        ("send", "a@example.com", "RFP #1: X"),
        ("quit",),
    ]


def test_build_mailer(storage, tmp_path):
    assert isinstance(build_mailer(Settings(data_dir=tmp_path), storage), OutboxMailer)
    assert isinstance(build_mailer(Settings(data_dir=tmp_path, smtp_host="smtp.example.com"), storage), SmtpMailer)
