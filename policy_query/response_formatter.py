"""
JSON response formatter with explainability features
"""
from typing import Dict, Any, List, Optional, Sequence
from datetime import datetime
import logging

from .models import (
    ProcessingResult, DecisionJustification, CriterionStatus,
    HistoryEntry, PolicyDocument, SystemMetrics
)

logger = logging.getLogger(__name__)


class ResponseFormatterError(Exception):
    """Custom exception for response formatting errors"""
    pass


class ExplainabilityFormatter:
    """Formats explainability information for responses"""

    def format_decision_explanation(self, result: ProcessingResult) -> Dict[str, Any]:
        """Summarize how the criteria led to the decision"""
        met = result.count_status(CriterionStatus.MET)
        not_met = result.count_status(CriterionStatus.NOT_MET)
        unclear = result.count_status(CriterionStatus.UNCLEAR)

        return {
            "decision": result.decision.value,
            "confidenceScore": round(result.confidence_score, 3),
            "confidenceLevel": self._get_confidence_level(result.confidence_score),
            "criteriaSummary": {
                "met": met,
                "notMet": not_met,
                "unclear": unclear,
                "total": len(result.justification)
            },
            "decidingFactors": self._deciding_factors(result.justification),
            "criteria": [self._format_criterion(entry) for entry in result.justification]
        }

    def _format_criterion(self, entry: DecisionJustification) -> Dict[str, Any]:
        clause = entry.source_clause
        return {
            "criterion": entry.criterion,
            "status": entry.status.value,
            "description": entry.description,
            "sourceExcerpt": clause[:150] + "..." if len(clause) > 150 else clause
        }

    def _deciding_factors(self, justification: Sequence[DecisionJustification]) -> List[str]:
        """Criteria that determined the outcome: unmet ones when present, otherwise met ones"""
        not_met = [j.criterion for j in justification if j.status == CriterionStatus.NOT_MET]
        if not_met:
            return not_met
        return [j.criterion for j in justification if j.status == CriterionStatus.MET]

    def _get_confidence_level(self, confidence: float) -> str:
        """Convert numeric confidence to categorical level"""
        if confidence >= 0.8:
            return "high"
        elif confidence >= 0.6:
            return "medium"
        elif confidence >= 0.4:
            return "moderate"
        else:
            return "low"


class PerformanceFormatter:
    """Formats performance and metrics information"""

    def format_performance_metrics(self, processing_time_ms: int,
                                   token_usage: Dict[str, int] = None) -> Dict[str, Any]:
        token_usage = token_usage or {}
        return {
            "processingTimeMs": processing_time_ms,
            "processingSpeed": self._categorize_speed(processing_time_ms),
            "tokenUsage": {
                "promptTokens": token_usage.get("prompt_tokens", 0),
                "completionTokens": token_usage.get("completion_tokens", 0),
                "totalTokens": token_usage.get("total_tokens", 0)
            }
        }

    def _categorize_speed(self, processing_time_ms: int) -> str:
        if processing_time_ms < 2000:
            return "fast"
        elif processing_time_ms < 5000:
            return "moderate"
        elif processing_time_ms < 10000:
            return "slow"
        else:
            return "very_slow"


class ResponseFormatter:
    """Main response formatter that creates structured JSON responses"""

    def __init__(self):
        self.explainability_formatter = ExplainabilityFormatter()
        self.performance_formatter = PerformanceFormatter()

    def format_result(self, result: ProcessingResult, query_text: str = None,
                      include_explainability: bool = True,
                      token_usage: Dict[str, int] = None) -> Dict[str, Any]:
        """Format a decision as a camelCase JSON-ready dict"""
        try:
            json_response = {
                "success": True,
                "result": result.model_dump(mode="json", by_alias=True)
            }
            if query_text is not None:
                json_response["queryText"] = query_text

            if include_explainability:
                json_response["explainability"] = self.explainability_formatter.format_decision_explanation(result)
                json_response["performance"] = self.performance_formatter.format_performance_metrics(
                    result.processing_time_ms, token_usage
                )

            return json_response

        except Exception as e:
            logger.error(f"Error formatting result: {e}")
            raise ResponseFormatterError(f"Failed to format result: {str(e)}") from e

    def format_history(self, entries: Sequence[HistoryEntry]) -> List[Dict[str, Any]]:
        """Format query history, most recent first as supplied"""
        history = []
        for entry in entries:
            result = entry.result.result if entry.result else None
            history.append({
                "queryId": entry.query.id,
                "queryText": entry.query.query_text,
                "structuredData": entry.query.structured_data.model_dump(
                    mode="json", by_alias=True, exclude_none=True
                ),
                "createdAt": entry.query.created_at.isoformat(),
                "decision": result.decision.value if result else None,
                "amount": result.amount if result else None,
                "confidenceScore": result.confidence_score if result else None
            })
        return history

    def format_document(self, document: PolicyDocument) -> Dict[str, Any]:
        """Format document metadata for listings"""
        return {
            "id": document.id,
            "originalName": document.original_name,
            "fileSize": document.file_size,
            "mimeType": document.mime_type,
            "uploadedAt": document.uploaded_at.isoformat(),
            "isProcessed": document.is_processed,
            "processedAt": document.processed_at.isoformat() if document.processed_at else None
        }

    def format_error_response(self, error: Exception, query_text: Optional[str] = None) -> Dict[str, Any]:
        """Format error response"""
        return {
            "success": False,
            "error": True,
            "errorType": type(error).__name__,
            "errorMessage": str(error),
            "queryText": query_text,
            "timestamp": datetime.now().isoformat(),
            "suggestions": self._get_error_suggestions(error)
        }

    def format_system_status(self, metrics: SystemMetrics) -> Dict[str, Any]:
        """Format system status and metrics"""
        return {
            "systemStatus": "operational",
            "metrics": {
                "totalDocumentsProcessed": metrics.total_documents,
                "totalClausesStored": metrics.total_clauses,
                "totalQueriesProcessed": metrics.total_queries,
                "fallbackQueries": metrics.fallback_queries,
                "averageResponseTime": round(metrics.average_response_time, 3),
                "totalTokensUsed": metrics.total_tokens_used
            },
            "lastUpdated": metrics.last_updated.isoformat()
        }

    def _get_error_suggestions(self, error: Exception) -> List[str]:
        """Get suggestions based on error type"""
        message = str(error).lower()

        if "too large" in message:
            return ["Upload a file no larger than 10MB"]
        if "file type" in message or "parse" in message:
            return [
                "Check if the document format is supported (PDF, DOC, DOCX, TXT)",
                "Ensure the document is not corrupted or password-protected"
            ]
        if "not found" in message:
            return ["Check the user or document identifier"]
        return [
            "Try rephrasing your query",
            "Check if relevant documents have been uploaded"
        ]
