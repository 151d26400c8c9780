"""
Pytest Configuration and Fixtures.

Provides sample strings / classifications data and an API client bound to
a fresh in-memory session store.
"""

from datetime import datetime, timedelta

import pytest


# ============================================================================
# SAMPLE DATA
# ============================================================================

STRINGS_HEADER = "Tier,Industry,Topic,Subtopic,Prefix,Fuzzing-Idx,Prompt,Risks,Keywords"
CLASSIFICATIONS_HEADER = "Topic,SubTopic,Industry,Classification"

VALID_STRINGS_CSV = "\n".join([
    STRINGS_HEADER,
    "1,General,Compliance,Audit Findings,Co-Au-,1,Summarize the audit,Low,audit",
    "2,General,Finance,Budget Proposals,Fi-Bu-,2,Draft a budget,Medium,budget",
]) + "\n"

INVALID_STRINGS_CSV = "\n".join([
    STRINGS_HEADER,
    "1,General,Compliancee,Audit Findings,Co-Au-,1,Summarize the audit,Low,audit",
]) + "\n"

CLASSIFICATIONS_CSV = "\n".join([
    CLASSIFICATIONS_HEADER,
    "Compliance,Audit Findings,General,Standard",
    "Finance,Budget Proposals,General,Standard",
    "Security,Cybersecurity,Healthcare,Standard",
]) + "\n"


@pytest.fixture
def classifications():
    """Reference rows."""
    return [
        {"Topic": "Compliance", "SubTopic": "Audit Findings", "Industry": "General", "Classification": "Standard"},
        {"Topic": "Finance", "SubTopic": "Budget Proposals", "Industry": "General", "Classification": "Standard"},
        {"Topic": "Security", "SubTopic": "Cybersecurity", "Industry": "Healthcare", "Classification": "Standard"},
    ]


@pytest.fixture
def valid_strings():
    """Strings rows that all match a classification."""
    return [
        {"Tier": "1", "Industry": "General", "Topic": "Compliance", "Subtopic": "Audit Findings", "Prefix": "Co-Au-"},
        {"Tier": "1", "Industry": "General", "Topic": "Finance", "Subtopic": "Budget Proposals", "Prefix": "Fi-Bu-"},
    ]


# ============================================================================
# SESSION STORE / CLIENT
# ============================================================================

class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    from api.session_store import InMemorySessionStore
    return InMemorySessionStore(ttl=timedelta(hours=24), clock=clock)


@pytest.fixture
def client(store):
    """API client using an isolated session store."""
    from fastapi.testclient import TestClient
    from main import app, get_session_store

    app.dependency_overrides[get_session_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _csv_files(strings: str = None, classifications: str = None):
    files = {}
    if strings is not None:
        files["strings"] = ("strings.csv", strings.encode("utf-8"), "text/csv")
    if classifications is not None:
        files["classifications"] = ("classifications.csv", classifications.encode("utf-8"), "text/csv")
    return files


@pytest.fixture
def csv_files():
    """Builder for the multipart files payload of an upload."""
    return _csv_files


@pytest.fixture
def sample_csv():
    return {
        "valid_strings": VALID_STRINGS_CSV,
        "invalid_strings": INVALID_STRINGS_CSV,
        "classifications": CLASSIFICATIONS_CSV,
        "strings_header": STRINGS_HEADER,
        "classifications_header": CLASSIFICATIONS_HEADER,
    }
