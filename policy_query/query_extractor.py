"""
Rule-based extraction of structured fields from coverage questions
"""
import re
from typing import Any, Dict, List, Optional, Tuple
import logging

from .models import StructuredQuery, Gender, DurationUnit
from .config import QUERY_VOCABULARY

logger = logging.getLogger(__name__)


class StructuredQueryExtractor:
    """Turns free text such as '46M, knee surgery, Pune, 3-month policy' into a StructuredQuery"""

    def __init__(self, procedures: List[str] = None, locations: List[str] = None):
        self.procedures = [p.lower() for p in (procedures or QUERY_VOCABULARY["procedures"])]
        self.locations = [l.lower() for l in (locations or QUERY_VOCABULARY["locations"])]

        self.age_pattern = re.compile(r'(\d+)[-\s]*(?:years?|yrs?|y)?[-\s]*(?:old|aged)?')
        self.duration_pattern = re.compile(
            r'(\d+)[-\s]*(months?|years?|yrs?|days?)[-\s]*(?:old|aged)?[-\s]*policy'
        )

        # Male is checked first; tokens are whole words so 'female' never reads as 'male'
        self.gender_patterns: List[Tuple[Gender, re.Pattern]] = [
            (Gender.MALE, re.compile(r'\bmale\b|\bm,|\d+\s*m\b')),
            (Gender.FEMALE, re.compile(r'\bfemale\b|\bf,|\bwoman\b|\d+\s*f\b')),
        ]

    def extract(self, text: str) -> StructuredQuery:
        """Extract structured fields; fields with no match stay unset"""
        query = (text or "").lower()
        fields: Dict[str, Any] = {}

        age = self._extract_age(query)
        if age is not None:
            fields['age'] = age

        gender = self._extract_gender(query)
        if gender is not None:
            fields['gender'] = gender

        procedure = self._first_term(query, self.procedures)
        if procedure:
            fields['procedure'] = procedure

        location = self._first_term(query, self.locations)
        if location:
            fields['location'] = location.capitalize()

        duration = self._extract_policy_duration(query)
        if duration:
            fields['policy_duration'], fields['policy_duration_unit'] = duration

        structured = StructuredQuery(**fields)
        logger.debug(f"Extracted fields {sorted(fields)} from query")
        return structured

    def _extract_age(self, query: str) -> Optional[int]:
        match = self.age_pattern.search(query)
        return int(match.group(1)) if match else None

    def _extract_gender(self, query: str) -> Optional[Gender]:
        for gender, pattern in self.gender_patterns:
            if pattern.search(query):
                return gender
        return None

    def _extract_policy_duration(self, query: str) -> Optional[Tuple[int, DurationUnit]]:
        match = self.duration_pattern.search(query)
        if not match:
            return None

        unit = match.group(2)
        if unit.startswith('month'):
            normalized = DurationUnit.MONTHS
        elif unit.startswith('year') or unit.startswith('yr'):
            normalized = DurationUnit.YEARS
        else:
            normalized = DurationUnit.DAYS

        return int(match.group(1)), normalized

    @staticmethod
    def _first_term(query: str, vocabulary: List[str]) -> Optional[str]:
        for term in vocabulary:
            if term in query:
                return term
        return None
