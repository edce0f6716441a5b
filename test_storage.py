"""
Tests for the in-memory storage backend
"""
from datetime import datetime, timedelta

import pytest

from policy_query.models import (
    PolicyDocument, DocumentClause, QueryRecord, QueryResultRecord,
    ProcessingResult, Decision
)
from policy_query.storage import MemStorage, StorageError


@pytest.fixture
def storage():
    return MemStorage()


@pytest.fixture
def document(storage):
    user = storage.create_user("alice")
    return storage.create_document(PolicyDocument(
        user_id=user.id, filename="1-abc.pdf", original_name="policy.pdf", file_size=100
    ))


def test_users(storage):
    user = storage.create_user("alice")

    assert storage.get_user(user.id) == user
    assert storage.get_user_by_username("alice") == user
    assert storage.get_user_by_username("bob") is None

    with pytest.raises(StorageError):
        storage.create_user("alice")


def test_document_updates(storage, document):
    assert not document.is_processed

    storage.update_document_text(document.id, "policy text")
    processed = storage.mark_document_processed(document.id)

    assert processed.extracted_text == "policy text"
    assert processed.is_processed
    assert processed.processed_at is not None
    assert storage.get_user_documents(document.user_id) == [processed]

    with pytest.raises(StorageError):
        storage.mark_document_processed("missing")


def test_clauses_of_unprocessed_documents_are_hidden(storage, document):
    clause = storage.create_document_clause(DocumentClause(
        document_id=document.id, clause_text="Orthopedic surgeries are covered"
    ))

    assert storage.get_document_clauses(document.id) == [clause]
    assert storage.get_all_clauses() == []

    storage.mark_document_processed(document.id)
    assert storage.get_all_clauses() == [clause]


def test_clause_requires_document(storage):
    with pytest.raises(StorageError):
        storage.create_document_clause(DocumentClause(document_id="missing", clause_text="text"))


def test_delete_document_drops_clauses(storage, document):
    storage.create_document_clause(DocumentClause(document_id=document.id, clause_text="a clause"))

    assert storage.delete_document(document.id)
    assert storage.get_document(document.id) is None
    assert storage.get_document_clauses(document.id) == []
    assert not storage.delete_document(document.id)


def test_user_queries_newest_first_and_capped(storage):
    start = datetime(2024, 1, 1)
    for i in range(12):
        storage.create_query(QueryRecord(
            user_id="u1", query_text=f"query {i}", created_at=start + timedelta(minutes=i)
        ))
    storage.create_query(QueryRecord(user_id="u2", query_text="other user"))

    queries = storage.get_user_queries("u1")

    assert len(queries) == 10
    assert [q.query_text for q in queries[:2]] == ["query 11", "query 10"]


def test_query_results(storage):
    query = storage.create_query(QueryRecord(user_id="u1", query_text="46M, knee surgery"))
    record = storage.create_query_result(QueryResultRecord(
        query_id=query.id,
        result=ProcessingResult(decision=Decision.PENDING, confidence_score=0.7)
    ))

    assert storage.get_query(query.id) == query
    assert storage.get_query_result(query.id) == record
    assert storage.get_query_result("missing") is None

    with pytest.raises(StorageError):
        storage.create_query_result(QueryResultRecord(
            query_id="missing",
            result=ProcessingResult(decision=Decision.PENDING, confidence_score=0.7)
        ))
