"""Shared fixtures for the rfpflow test suite."""

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Keep the module-level app in rfpflow.main off the real data dir and model API.
os.environ["RFPFLOW_DATA_DIR"] = tempfile.mkdtemp(prefix="rfpflow-import-")
for key in ("OPENAI_API_KEY", "OPENROUTER_API_KEY", "SMTP_HOST", "DUPLICATE_POLICY"):
    os.environ.pop(key, None)

BASE_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BASE_DIR / "backend"))

from fastapi.testclient import TestClient  # noqa: E402

from rfpflow.config import Settings  # noqa: E402
from rfpflow.emailer import Mailer  # noqa: E402
from rfpflow.errors import AIServiceError  # noqa: E402
from rfpflow.main import create_app  # noqa: E402
from rfpflow.models import ProposalAnalysis, Recommendation, RFPCreate, VendorCreate  # noqa: E402
from rfpflow.storage import Storage  # noqa: E402


class FakeAI:
    """Scripted stand-in for AIService that records every call."""

    def __init__(self):
        self.analysis = ProposalAnalysis(score=82, analysis="Good fit",
                                         structured_response={"matches": ["budget"]})
        self.recommendation = Recommendation(recommendation="Acme Corp", reasoning="Best price")
        self.fail_with = None
        self.analyze_calls = []
        self.recommend_calls = []

    def analyze_proposal(self, requirements, proposal_text):
        self.analyze_calls.append((requirements, proposal_text))
        if self.fail_with:
            raise self.fail_with
        return self.analysis

    def recommend(self, title, requirements, proposal_summaries):
        self.recommend_calls.append((title, requirements, list(proposal_summaries)))
        if self.fail_with:
            raise self.fail_with
        return self.recommendation

    def structure_requirements(self, raw_requirements):
        from rfpflow.ai_helpers import parse_rfp_from_text_mock
        from rfpflow.models import GeneratedRfp
        structured = parse_rfp_from_text_mock(raw_requirements)
        return GeneratedRfp(title=structured["title"], structured_requirements=structured)


class FakeMailer(Mailer):
    def __init__(self, fail_for=None):
        super().__init__()
        self.sent = []
        self.fail_for = fail_for
        self.opened = False
        self.closed = False

    def open(self):
        self.opened = True

    def close(self):
        self.closed = True

    def send(self, to, subject, body):
        if to == self.fail_for:
            raise ConnectionError("mail server refused")
        self.sent.append((to, subject, body))


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def storage(data_dir):
    return Storage(data_dir)


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def fake_mailer():
    return FakeMailer()


@pytest.fixture
def settings(data_dir):
    return Settings(data_dir=data_dir)


@pytest.fixture
def app(settings, fake_ai, fake_mailer):
    return create_app(settings, ai=fake_ai, mailer=fake_mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def app_storage(app):
    return app.state.storage


@pytest.fixture
def acme(storage):
    return storage.create_vendor(VendorCreate(name="Acme Corp", email="sales@acme.com"))


@pytest.fixture
def rfp(storage):
    return storage.create_rfp(RFPCreate(
        title="Laptop refresh",
        raw_requirements="20 laptops, budget $50k",
        structured_requirements={"budget": "$50k"},
        status="sent",
    ))


@pytest.fixture
def ai_failure():
    return AIServiceError("Failed to analyze proposal: connection reset")
