"""
Tests for the language-model path against a scripted client
"""
import json
from types import SimpleNamespace

import pytest

from policy_query.llm_processor import LLMProcessor, LLMError, TokenCounter
from policy_query.models import StructuredQuery, Decision, Gender, DurationUnit

USAGE = {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}

APPROVAL = {
    "decision": "approved",
    "amount": 200000,
    "deductible": 10000,
    "coverageDetails": {"procedure": "knee surgery", "location": "Pune", "patientAge": 46,
                        "policyDurationMonths": None},
    "justification": [
        {"criterion": "age_eligibility", "status": "met", "sourceClause": "4.1", "description": "in range"},
        {"criterion": "procedure_coverage", "status": "met", "sourceClause": "4.2", "description": "covered"},
    ],
    "confidenceScore": 0.92,
}


class ScriptedCompletions:
    """Returns queued replies in order; exceptions in the queue are raised"""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        content = reply if isinstance(reply, str) else json.dumps(reply)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
            usage=SimpleNamespace(model_dump=lambda: dict(USAGE))
        )


def make_client(replies=(), embedding=None, models_error=None):
    def create_embedding(**kwargs):
        if embedding is None:
            raise RuntimeError("embedding service unavailable")
        return SimpleNamespace(data=[SimpleNamespace(embedding=embedding)], usage=None)

    def list_models():
        if models_error:
            raise models_error
        return []

    return SimpleNamespace(
        chat=SimpleNamespace(completions=ScriptedCompletions(replies)),
        embeddings=SimpleNamespace(create=create_embedding),
        models=SimpleNamespace(list=list_models)
    )


def test_requires_api_key(monkeypatch):
    from policy_query.config import config
    monkeypatch.setattr(config, "openai_api_key", "")

    with pytest.raises(LLMError):
        LLMProcessor()


def test_parse_query():
    client = make_client([{
        "age": 46, "gender": "M", "procedure": "knee surgery", "location": "Pune",
        "policyDuration": 3, "policyDurationUnit": "months", "preExistingConditions": None,
        "additionalInfo": None
    }])
    processor = LLMProcessor(client=client)

    query = processor.parse_query("46M, knee surgery, Pune, 3-month policy")

    assert query.gender == Gender.MALE
    assert query.policy_duration_unit == DurationUnit.MONTHS
    assert query.pre_existing_conditions == []
    assert client.chat.completions.calls[0]["response_format"] == {"type": "json_object"}


@pytest.mark.parametrize("reply", ["not json", "[1, 2]", {"gender": "robot"}])
def test_malformed_query_reply_raises(reply):
    processor = LLMProcessor(client=make_client([reply]))
    with pytest.raises(LLMError):
        processor.parse_query("46M")


def test_transport_failure_raises():
    processor = LLMProcessor(client=make_client([ConnectionError("network down")]))
    with pytest.raises(LLMError):
        processor.parse_query("46M")


def test_find_relevant_clauses_maps_indices():
    clauses = ["clause a", "clause b", "clause c"]
    processor = LLMProcessor(client=make_client([{"relevantClauseIndices": [2, 0, 2]}]))

    assert processor.find_relevant_clauses("q", StructuredQuery(), clauses) == ["clause c", "clause a"]


@pytest.mark.parametrize("reply", [{"relevantClauseIndices": [5]}, {"relevantClauseIndices": "0"}, {}])
def test_invalid_clause_selection_raises(reply):
    processor = LLMProcessor(client=make_client([reply]))
    with pytest.raises(LLMError):
        processor.find_relevant_clauses("q", StructuredQuery(), ["only clause"])


def test_no_clauses_skips_the_model():
    client = make_client([])
    processor = LLMProcessor(client=client)

    assert processor.find_relevant_clauses("q", StructuredQuery(), []) == []
    assert client.chat.completions.calls == []


def test_make_decision():
    processor = LLMProcessor(client=make_client([APPROVAL]))

    result = processor.make_decision("46M, knee surgery", StructuredQuery(age=46), ["4.1", "4.2"])

    assert result.decision == Decision.APPROVED
    assert result.confidence_score == 0.92
    assert result.coverage_details.policy_duration_months is None
    assert result.processing_time_ms >= 0


def test_decision_violating_invariants_raises():
    reply = dict(APPROVAL, justification=[
        {"criterion": "age_eligibility", "status": "not_met", "sourceClause": "4.1", "description": "too old"}
    ])
    processor = LLMProcessor(client=make_client([reply]))

    with pytest.raises(LLMError):
        processor.make_decision("80M, knee surgery", StructuredQuery(age=80), [])


def test_embeddings():
    assert LLMProcessor(client=make_client(embedding=[0.1, 0.2])).generate_embedding("text") == [0.1, 0.2]

    with pytest.raises(LLMError):
        LLMProcessor(client=make_client()).generate_embedding("text")


def test_token_usage_is_aggregated_and_reset():
    processor = LLMProcessor(client=make_client([{"age": 30}, {"relevantClauseIndices": [0]}]))
    processor.parse_query("30 year old")
    processor.find_relevant_clauses("30 year old", StructuredQuery(age=30), ["clause"])

    assert processor.get_total_token_usage() == {
        "prompt_tokens": 20, "completion_tokens": 10, "total_tokens": 30
    }

    processor.reset_token_counters()
    assert processor.get_total_token_usage()["total_tokens"] == 0


def test_token_counter_ignores_missing_values():
    counter = TokenCounter()
    counter.add_usage({"prompt_tokens": 3, "completion_tokens": None})
    assert counter.get_usage() == {"prompt_tokens": 3, "completion_tokens": 0, "total_tokens": 0}


def test_validate_api_connection():
    assert LLMProcessor(client=make_client()).validate_api_connection()
    assert not LLMProcessor(client=make_client(models_error=RuntimeError("401"))).validate_api_connection()
