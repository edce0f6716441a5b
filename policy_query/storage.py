"""
Storage layer for users, documents, clauses, queries and results
"""
import threading
from datetime import datetime
from typing import Dict, List, Optional
import logging

from .models import (
    User, PolicyDocument, DocumentClause, QueryRecord, QueryResultRecord
)
from .config import config

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Custom exception for storage errors"""
    pass


class BaseStorage:
    """Interface every storage backend implements"""

    # Users
    def create_user(self, username: str) -> User:
        raise NotImplementedError

    def get_user(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    def get_user_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    # Documents
    def create_document(self, document: PolicyDocument) -> PolicyDocument:
        raise NotImplementedError

    def get_document(self, document_id: str) -> Optional[PolicyDocument]:
        raise NotImplementedError

    def get_user_documents(self, user_id: str) -> List[PolicyDocument]:
        raise NotImplementedError

    def update_document_text(self, document_id: str, text: str) -> PolicyDocument:
        raise NotImplementedError

    def mark_document_processed(self, document_id: str) -> PolicyDocument:
        raise NotImplementedError

    def delete_document(self, document_id: str) -> bool:
        raise NotImplementedError

    # Clauses
    def create_document_clause(self, clause: DocumentClause) -> DocumentClause:
        raise NotImplementedError

    def get_document_clauses(self, document_id: str) -> List[DocumentClause]:
        raise NotImplementedError

    def get_all_clauses(self) -> List[DocumentClause]:
        raise NotImplementedError

    # Queries
    def create_query(self, query: QueryRecord) -> QueryRecord:
        raise NotImplementedError

    def get_query(self, query_id: str) -> Optional[QueryRecord]:
        raise NotImplementedError

    def get_user_queries(self, user_id: str) -> List[QueryRecord]:
        raise NotImplementedError

    def create_query_result(self, result: QueryResultRecord) -> QueryResultRecord:
        raise NotImplementedError

    def get_query_result(self, query_id: str) -> Optional[QueryResultRecord]:
        raise NotImplementedError


class MemStorage(BaseStorage):
    """In-process storage; safe to share between threads"""

    def __init__(self, history_limit: int = None):
        self.history_limit = history_limit or config.history_limit
        self._lock = threading.RLock()
        self.users: Dict[str, User] = {}
        self.documents: Dict[str, PolicyDocument] = {}
        self.clauses: Dict[str, DocumentClause] = {}
        self.queries: Dict[str, QueryRecord] = {}
        self.results: Dict[str, QueryResultRecord] = {}

    def create_user(self, username: str) -> User:
        with self._lock:
            if self.get_user_by_username(username):
                raise StorageError(f"Username already exists: {username}")
            user = User(username=username)
            self.users[user.id] = user
            return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for user in self.users.values():
                if user.username == username:
                    return user
            return None

    def create_document(self, document: PolicyDocument) -> PolicyDocument:
        with self._lock:
            self.documents[document.id] = document
            return document

    def get_document(self, document_id: str) -> Optional[PolicyDocument]:
        with self._lock:
            return self.documents.get(document_id)

    def get_user_documents(self, user_id: str) -> List[PolicyDocument]:
        with self._lock:
            return [d for d in self.documents.values() if d.user_id == user_id]

    def update_document_text(self, document_id: str, text: str) -> PolicyDocument:
        return self._update_document(document_id, extracted_text=text)

    def mark_document_processed(self, document_id: str) -> PolicyDocument:
        return self._update_document(document_id, is_processed=True, processed_at=datetime.now())

    def _update_document(self, document_id: str, **changes) -> PolicyDocument:
        with self._lock:
            document = self.documents.get(document_id)
            if document is None:
                raise StorageError(f"Document not found: {document_id}")
            updated = document.model_copy(update=changes)
            self.documents[document_id] = updated
            return updated

    def delete_document(self, document_id: str) -> bool:
        with self._lock:
            if self.documents.pop(document_id, None) is None:
                return False
            orphaned = [cid for cid, c in self.clauses.items() if c.document_id == document_id]
            for clause_id in orphaned:
                del self.clauses[clause_id]
            logger.info(f"Deleted document {document_id} and {len(orphaned)} clauses")
            return True

    def create_document_clause(self, clause: DocumentClause) -> DocumentClause:
        with self._lock:
            if clause.document_id not in self.documents:
                raise StorageError(f"Document not found: {clause.document_id}")
            self.clauses[clause.id] = clause
            return clause

    def get_document_clauses(self, document_id: str) -> List[DocumentClause]:
        with self._lock:
            return [c for c in self.clauses.values() if c.document_id == document_id]

    def get_all_clauses(self) -> List[DocumentClause]:
        """Clauses of processed documents, in insertion order"""
        with self._lock:
            return [
                c for c in self.clauses.values()
                if c.document_id in self.documents and self.documents[c.document_id].is_processed
            ]

    def create_query(self, query: QueryRecord) -> QueryRecord:
        with self._lock:
            self.queries[query.id] = query
            return query

    def get_query(self, query_id: str) -> Optional[QueryRecord]:
        with self._lock:
            return self.queries.get(query_id)

    def get_user_queries(self, user_id: str) -> List[QueryRecord]:
        """Most recent queries first, capped at the history limit"""
        with self._lock:
            queries = [q for q in self.queries.values() if q.user_id == user_id]
        # Stable sort keeps later insertions first on equal timestamps
        queries.reverse()
        queries.sort(key=lambda q: q.created_at, reverse=True)
        return queries[:self.history_limit]

    def create_query_result(self, result: QueryResultRecord) -> QueryResultRecord:
        with self._lock:
            if result.query_id not in self.queries:
                raise StorageError(f"Query not found: {result.query_id}")
            self.results[result.query_id] = result
            return result

    def get_query_result(self, query_id: str) -> Optional[QueryResultRecord]:
        with self._lock:
            return self.results.get(query_id)
