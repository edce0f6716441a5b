"""
Clause extraction and relevance selection for policy documents
"""
import re
from typing import List, Optional, Sequence, Tuple
import logging

from .models import ClauseCandidate, StructuredQuery
from .config import config, CLAUSE_KEYWORDS

logger = logging.getLogger(__name__)


class ClauseMatchingError(Exception):
    """Custom exception for clause matching errors"""
    pass


def word_overlap_similarity(text1: str, text2: str) -> float:
    """Jaccard similarity between the lower-cased word sets of two texts"""
    words1 = set(text1.lower().split())
    words2 = set(text2.lower().split())

    if words1 == words2:
        return 1.0

    union = words1 | words2
    return len(words1 & words2) / len(union)


class ClauseExtractor:
    """Splits raw policy text into clause candidates tagged with section and number"""

    def __init__(self, min_length: int = None, substantial_length: int = None):
        self.min_length = min_length if min_length is not None else config.min_clause_length
        self.substantial_length = (
            substantial_length if substantial_length is not None else config.substantial_clause_length
        )
        self.domain_keywords = CLAUSE_KEYWORDS["domain_keywords"]

        # Segment boundaries: terminal punctuation before whitespace, blank lines, bullets
        self.boundary_pattern = re.compile(r'(?<=[.!?])\s+|\n\s*\n|\n\s*[-•*]\s+')
        self.number_only_pattern = re.compile(r'^\d+(?:\.\d+)*\.?$')

        self.section_pattern = re.compile(
            r'^(section|clause|article|chapter)\s+([a-z0-9]+(?:\.[a-z0-9]+)*)', re.IGNORECASE
        )
        self.numbered_pattern = re.compile(r'^(\d+(?:\.\d+)*)\.?\s*[a-z]', re.IGNORECASE)
        self.definition_pattern = re.compile(r'\b\w+\s+means\b', re.IGNORECASE)

    def extract_clauses(self, text: str) -> List[ClauseCandidate]:
        """Extract clause candidates in document order"""
        segments = [s for s in self._split_segments(text or "") if len(s) >= self.min_length]

        clauses = []
        current_section = None

        for index, segment in enumerate(segments, start=1):
            section_header = self._match_section(segment)
            if section_header:
                current_section = section_header

            numbered = self.numbered_pattern.match(segment)

            if not self._should_retain(segment, section_header, numbered):
                continue

            clauses.append(ClauseCandidate(
                text=segment,
                section=current_section,
                clause_number=numbered.group(1) if numbered else str(index)
            ))

        logger.debug(f"Retained {len(clauses)} of {len(segments)} segments as clauses")
        return clauses

    def _split_segments(self, text: str) -> List[str]:
        """Split text into whitespace-normalized segments, keeping clause numbers attached"""
        raw_segments = [
            re.sub(r'\s+', ' ', part).strip().lstrip('-•* ')
            for part in self.boundary_pattern.split(text)
        ]

        segments = []
        pending_number = None
        for segment in raw_segments:
            if not segment:
                continue
            if self.number_only_pattern.match(segment):
                pending_number = f"{pending_number} {segment}" if pending_number else segment
                continue
            if pending_number:
                segment = f"{pending_number} {segment}"
                pending_number = None
            segments.append(segment.rstrip('.!? ').strip())

        if pending_number:
            segments.append(pending_number.rstrip('.!? '))

        return segments

    def _match_section(self, segment: str) -> Optional[str]:
        match = self.section_pattern.match(segment)
        if not match:
            return None
        return f"{match.group(1).capitalize()} {match.group(2)}"

    def _should_retain(self, segment: str, section_header: Optional[str], numbered) -> bool:
        if len(segment) >= self.substantial_length:
            return True
        if section_header or numbered:
            return True
        if self.definition_pattern.search(segment):
            return True
        segment_lower = segment.lower()
        return any(keyword in segment_lower for keyword in self.domain_keywords)


class ClauseRelevanceScorer:
    """Selects clauses likely to bear on a decision for a structured query"""

    def __init__(self, max_results: int = None):
        self.max_results = max_results if max_results is not None else config.max_relevant_clauses
        self.always_relevant = CLAUSE_KEYWORDS["always_relevant"]

    def build_search_terms(self, query: StructuredQuery) -> List[str]:
        """Search terms derived from the fields present in the query"""
        terms = []

        if query.procedure:
            procedure = query.procedure.lower()
            terms.append(procedure)
            if any(trigger in procedure for trigger in CLAUSE_KEYWORDS["orthopedic_triggers"]):
                terms.extend(CLAUSE_KEYWORDS["orthopedic_terms"])

        if query.age is not None:
            terms.extend(CLAUSE_KEYWORDS["age_terms"])

        if query.location:
            terms.extend(CLAUSE_KEYWORDS["location_terms"])

        if query.policy_duration is not None:
            terms.extend(CLAUSE_KEYWORDS["duration_terms"])

        return terms

    def select_relevant(self, query: StructuredQuery, clauses: Sequence[str]) -> List[str]:
        """Relevant clauses in corpus order, without duplicates, capped at max_results"""
        search_terms = self.build_search_terms(query)
        keywords = search_terms + [k for k in self.always_relevant if k not in search_terms]

        selected = []
        seen = set()
        for clause in clauses:
            if len(selected) >= self.max_results:
                break
            if clause in seen:
                continue

            clause_lower = clause.lower()
            if any(term in clause_lower for term in keywords):
                selected.append(clause)
                seen.add(clause)

        logger.info(f"Selected {len(selected)} relevant clauses from {len(clauses)} candidates")
        return selected

    def rank_by_similarity(self, text: str, clauses: Sequence[str],
                           top_k: int = None) -> List[Tuple[str, float]]:
        """Clauses ordered by word-overlap similarity to the text, highest first"""
        scored = [(clause, word_overlap_similarity(text, clause)) for clause in clauses]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:top_k] if top_k is not None else scored


class ClauseMatcher:
    """Coordinates clause extraction and relevance selection"""

    def __init__(self, extractor: ClauseExtractor = None, scorer: ClauseRelevanceScorer = None):
        self.extractor = extractor or ClauseExtractor()
        self.scorer = scorer or ClauseRelevanceScorer()

    def process_text(self, text: str) -> List[ClauseCandidate]:
        """Extract clause candidates from document text"""
        try:
            clauses = self.extractor.extract_clauses(text)
            logger.info(f"Extracted {len(clauses)} clauses from document text")
            return clauses
        except Exception as e:
            logger.error(f"Error extracting clauses: {e}")
            raise ClauseMatchingError(f"Failed to extract clauses: {str(e)}") from e

    def match_clauses_for_query(self, query: StructuredQuery, clauses: Sequence[str]) -> List[str]:
        """Find clauses relevant to a structured query"""
        try:
            return self.scorer.select_relevant(query, clauses)
        except Exception as e:
            logger.error(f"Error matching clauses for query: {e}")
            raise ClauseMatchingError(f"Failed to match clauses: {str(e)}") from e
