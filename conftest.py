"""
Shared fixtures for the Policy Query Engine tests
"""
import pytest

from policy_query.config import config
from policy_query.query_system import QuerySystem

POLICY_TEXT = """SECTION 4 - HOSPITALIZATION COVERAGE

4.1 Coverage available for individuals aged 18-65 years at policy inception.
4.2 Orthopedic surgeries including knee, hip, and joint procedures are covered under surgical benefits.
4.3 A 30-day waiting period applies to non-emergency surgical procedures from policy commencement date.
4.4 Coverage valid across all major cities and towns in India including Mumbai, Delhi and Pune.
4.5 Dental treatments are excluded unless due to accident.
"""


@pytest.fixture
def policy_text():
    return POLICY_TEXT


@pytest.fixture
def system(tmp_path, monkeypatch):
    """Query system on the rule-based path with an isolated upload directory"""
    monkeypatch.setattr(config, "openai_api_key", "")
    return QuerySystem(upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def user(system):
    return system.ensure_user("demo-user")


@pytest.fixture
def processed_policy(system, user, policy_text):
    document = system.upload_document(user.id, "policy.txt", policy_text.encode("utf-8"), "text/plain")
    return system.process_document(document.id)
