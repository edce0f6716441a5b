"""
Main Query System Orchestrator - policy document intake and coverage question answering
"""
import os
import time
import uuid
from datetime import datetime
from typing import List, Dict, Any, Optional, Tuple
import logging
from pathlib import Path

from .models import (
    User, PolicyDocument, DocumentClause, ClauseCandidate, StructuredQuery,
    ProcessingResult, QueryRecord, QueryResultRecord, HistoryEntry, SystemMetrics
)
from .config import config
from .document_parsers import DocumentParserFactory, DocumentParsingError
from .llm_processor import LLMProcessor, LLMError
from .query_extractor import StructuredQueryExtractor
from .clause_matcher import ClauseMatcher, ClauseMatchingError
from .decision_engine import DecisionEngine, DecisionEngineError
from .response_formatter import ResponseFormatter
from .sample_policy import SAMPLE_POLICY_TEXT
from .storage import BaseStorage, MemStorage, StorageError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class QuerySystemError(Exception):
    """Custom exception for query system errors"""
    pass


class QuerySystem:
    """
    Main orchestrator for policy coverage questions

    Documents are uploaded, their text extracted and split into clauses. A question
    such as "46M, knee surgery, Pune, 3-month policy" is answered by the language
    model path when it is available and succeeds, and by the deterministic
    extractor, clause scorer and rule engine otherwise.
    """

    def __init__(self, openai_api_key: str = None, storage: BaseStorage = None,
                 llm_processor: LLMProcessor = None, upload_dir: str = None):
        """Initialize the query system with all components"""

        self.storage = storage or MemStorage()

        if llm_processor is not None:
            self.llm_processor = llm_processor
        else:
            api_key = openai_api_key or config.openai_api_key
            if api_key:
                self.llm_processor = LLMProcessor(api_key=api_key)
            else:
                logger.warning("No OpenAI API key provided. Queries will use the rule-based path.")
                self.llm_processor = None

        # Initialize core components
        self.document_parser = DocumentParserFactory()
        self.query_extractor = StructuredQueryExtractor()
        self.clause_matcher = ClauseMatcher()
        self.decision_engine = DecisionEngine()
        self.response_formatter = ResponseFormatter()

        self.metrics = SystemMetrics()

        self.upload_dir = Path(upload_dir or config.upload_dir)
        os.makedirs(self.upload_dir, exist_ok=True)

        logger.info("Query System initialized successfully")

    # Users

    def ensure_user(self, username: str) -> User:
        """Return the user with this name, creating it on first use"""
        user = self.storage.get_user_by_username(username)
        if user is None:
            user = self.storage.create_user(username)
            logger.info(f"Created user {username}: {user.id}")
        return user

    def _require_user(self, user_id: str) -> User:
        user = self.storage.get_user(user_id)
        if user is None:
            raise QuerySystemError(f"User not found: {user_id}")
        return user

    def _require_document(self, document_id: str) -> PolicyDocument:
        document = self.storage.get_document(document_id)
        if document is None:
            raise QuerySystemError(f"Document not found: {document_id}")
        return document

    # Documents

    def upload_document(self, user_id: str, original_name: str, content: bytes,
                        mime_type: str = None) -> PolicyDocument:
        """
        Validate and store an uploaded policy file

        Args:
            user_id: Owner of the document
            original_name: File name as supplied by the uploader
            content: Raw file bytes
            mime_type: Reported MIME type, if any

        Returns:
            PolicyDocument: Stored, not yet processed, document record
        """
        self._require_user(user_id)
        self.document_parser.validate_upload(original_name, len(content), mime_type)

        # Unique stored name keeps re-uploads of the same file apart
        extension = Path(original_name).suffix.lower()
        filename = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{extension}"
        file_path = self.upload_dir / filename

        try:
            file_path.write_bytes(content)
        except OSError as e:
            logger.error(f"Error saving upload {original_name}: {e}")
            raise QuerySystemError(f"Failed to save uploaded document: {str(e)}") from e

        document = self.storage.create_document(PolicyDocument(
            user_id=user_id,
            filename=filename,
            original_name=original_name,
            file_size=len(content),
            mime_type=mime_type or 'application/octet-stream'
        ))
        logger.info(f"Uploaded document {original_name} as {document.id}")
        return document

    def process_document(self, document_id: str) -> PolicyDocument:
        """
        Extract text and clauses from an uploaded document

        Unreadable or unsupported files are replaced by the bundled sample policy
        text. A clause whose embedding cannot be generated is stored without one.
        """
        start_time = time.perf_counter()
        document = self._require_document(document_id)

        # A document's clause set is created once
        if document.is_processed:
            logger.info(f"Document {document_id} already processed")
            return document

        try:
            text = self.document_parser.parse_file(self.upload_dir / document.filename)
        except DocumentParsingError as e:
            logger.warning(f"Could not extract text from {document.original_name}, using sample policy text: {e}")
            text = SAMPLE_POLICY_TEXT

        try:
            candidates = self.clause_matcher.process_text(text)

            for candidate in candidates:
                self.storage.create_document_clause(DocumentClause(
                    document_id=document_id,
                    clause_text=candidate.text,
                    section=candidate.section,
                    clause_number=candidate.clause_number,
                    embedding=self._embed(candidate.text)
                ))

            self.storage.update_document_text(document_id, text)
            document = self.storage.mark_document_processed(document_id)

        except (ClauseMatchingError, StorageError) as e:
            logger.error(f"Error processing document {document_id}: {e}")
            raise QuerySystemError(f"Failed to process document: {str(e)}") from e

        self.metrics.total_documents += 1
        self.metrics.total_clauses += len(candidates)

        processing_time = time.perf_counter() - start_time
        logger.info(f"Document {document_id} processed with {len(candidates)} clauses in {processing_time:.2f} seconds")
        return document

    def _embed(self, text: str) -> Optional[List[float]]:
        if self.llm_processor is None:
            return None
        try:
            return self.llm_processor.generate_embedding(text)
        except LLMError as e:
            logger.warning(f"Storing clause without embedding: {e}")
            return None

    def process_document_text(self, text: str) -> List[ClauseCandidate]:
        """Clause candidates for raw document text, without storing anything"""
        try:
            return self.clause_matcher.process_text(text)
        except ClauseMatchingError as e:
            raise QuerySystemError(f"Failed to process document text: {str(e)}") from e

    def list_documents(self, user_id: str) -> List[PolicyDocument]:
        """Documents uploaded by a user"""
        self._require_user(user_id)
        return self.storage.get_user_documents(user_id)

    def delete_document(self, document_id: str) -> bool:
        """Delete a document, its stored file and its clauses"""
        document = self._require_document(document_id)

        file_path = self.upload_dir / document.filename
        try:
            if file_path.exists():
                file_path.unlink()
                logger.info(f"Deleted file: {file_path}")
        except OSError as e:
            # The record is removed even when the file cannot be
            logger.error(f"Error deleting file {file_path}: {e}")

        return self.storage.delete_document(document_id)

    # Queries

    def analyze_query(self, query_text: str, user_id: str) -> ProcessingResult:
        """
        Answer a coverage question and record it in the user's history

        Args:
            query_text: Natural language question
            user_id: User submitting the question

        Returns:
            ProcessingResult: Decision with itemized justification
        """
        start_time = time.perf_counter()
        self._require_user(user_id)

        try:
            clause_texts = [clause.clause_text for clause in self.storage.get_all_clauses()]

            structured, result = None, None
            if self.llm_processor is not None:
                try:
                    structured, result = self._analyze_with_llm(query_text, clause_texts)
                except Exception as e:
                    # Any failure here discards the attempt; the rule path answers instead
                    logger.warning(f"Language model path failed, using rule-based path: {e}")
                    structured, result = None, None

            if result is None:
                structured, result = self._analyze_with_rules(query_text, clause_texts)
                self.metrics.fallback_queries += 1

            query = self.storage.create_query(QueryRecord(
                user_id=user_id,
                query_text=query_text,
                structured_data=structured
            ))
            self.storage.create_query_result(QueryResultRecord(query_id=query.id, result=result))

        except (ClauseMatchingError, DecisionEngineError, StorageError) as e:
            logger.error(f"Error analyzing query: {e}")
            raise QuerySystemError(f"Failed to analyze query: {str(e)}") from e

        self._update_query_metrics(time.perf_counter() - start_time)
        logger.info(f"Query {query.id} answered: {result.decision.value}")
        return result

    def _analyze_with_llm(self, query_text: str,
                          clause_texts: List[str]) -> Tuple[StructuredQuery, ProcessingResult]:
        structured = self.llm_processor.parse_query(query_text)
        relevant = self.llm_processor.find_relevant_clauses(query_text, structured, clause_texts)
        result = self.llm_processor.make_decision(query_text, structured, relevant)
        return structured, result

    def _analyze_with_rules(self, query_text: str,
                            clause_texts: List[str]) -> Tuple[StructuredQuery, ProcessingResult]:
        structured = self.query_extractor.extract(query_text)
        relevant = self.clause_matcher.match_clauses_for_query(structured, clause_texts)
        result = self.decision_engine.decide(structured, relevant)
        return structured, result

    def _update_query_metrics(self, processing_time: float):
        self.metrics.total_queries += 1
        self.metrics.average_response_time = (
            (self.metrics.average_response_time * (self.metrics.total_queries - 1) + processing_time) /
            self.metrics.total_queries
        )
        if self.llm_processor is not None:
            self.metrics.total_tokens_used = self.llm_processor.get_total_token_usage().get('total_tokens', 0)
        self.metrics.last_updated = datetime.now()

    def get_query_history(self, user_id: str) -> List[HistoryEntry]:
        """Most recent queries of a user paired with their results"""
        self._require_user(user_id)
        return [
            HistoryEntry(query=query, result=self.storage.get_query_result(query.id))
            for query in self.storage.get_user_queries(user_id)
        ]

    # Status

    def get_system_status(self) -> Dict[str, Any]:
        """Get current system status and metrics"""
        status = self.response_formatter.format_system_status(self.metrics)
        status['components'] = {
            'document_parser': 'operational',
            'llm_processor': 'operational' if self.llm_processor else 'disabled',
            'clause_matcher': 'operational',
            'decision_engine': 'operational'
        }
        return status

    def validate_api_connection(self) -> bool:
        """Validate API connections"""
        if self.llm_processor:
            return self.llm_processor.validate_api_connection()
        return True  # No API to validate

    def health_check(self) -> Dict[str, Any]:
        """Perform system health check"""
        health = {
            'status': 'healthy',
            'components': {},
            'issues': [],
            'recommendations': []
        }

        try:
            health['components']['document_parser'] = 'healthy'

            if self.storage.get_all_clauses():
                health['components']['clause_store'] = 'healthy'
            else:
                health['components']['clause_store'] = 'empty'
                health['issues'].append('No processed policy clauses')
                health['recommendations'].append('Upload and process a policy document')

            if self.llm_processor:
                if self.validate_api_connection():
                    health['components']['llm_processor'] = 'healthy'
                else:
                    health['components']['llm_processor'] = 'unhealthy'
                    health['issues'].append('OpenAI API connection failed')
                    health['recommendations'].append('Check API key and internet connection')
            else:
                health['components']['llm_processor'] = 'disabled'
                health['issues'].append('LLM processor not available, using rule-based path')
                health['recommendations'].append('Provide OpenAI API key for full functionality')

            health['components']['decision_engine'] = 'healthy'

            # Overall status
            if health['issues']:
                if any(status == 'unhealthy' for status in health['components'].values()):
                    health['status'] = 'unhealthy'
                else:
                    health['status'] = 'degraded'

        except StorageError as e:
            health['status'] = 'error'
            health['error'] = str(e)

        return health
