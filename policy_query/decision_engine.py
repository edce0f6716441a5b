"""
Rule-based decision engine for coverage questions
"""
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import logging

from .models import (
    StructuredQuery, ProcessingResult, DecisionJustification, CoverageDetails,
    CriterionStatus, Decision, DurationUnit
)
from .config import POLICY_RULES

logger = logging.getLogger(__name__)


class DecisionEngineError(Exception):
    """Custom exception for decision engine errors"""
    pass


def duration_in_days(duration: int, unit: DurationUnit, rules: Dict[str, Any] = None) -> int:
    """Policy age in days: months count as 30 days, years as 365"""
    days_per_unit = (rules or POLICY_RULES)["waiting_period"]["days_per_unit"]
    return duration * days_per_unit[DurationUnit(unit).value]


def duration_in_months(duration: Optional[int], unit: Optional[DurationUnit]) -> Optional[int]:
    """Policy age in whole months; days are floored to 30-day months"""
    if duration is None or unit is None:
        return None
    unit = DurationUnit(unit)
    if unit == DurationUnit.MONTHS:
        return duration
    if unit == DurationUnit.YEARS:
        return duration * 12
    return duration // 30


def resolve_decision(justification: Sequence[DecisionJustification],
                     rules: Dict[str, Any] = None) -> Tuple[Decision, float]:
    """Derive the final decision and confidence from the evaluated criteria"""
    rules = rules or POLICY_RULES
    met = sum(1 for j in justification if j.status == CriterionStatus.MET)
    not_met = sum(1 for j in justification if j.status == CriterionStatus.NOT_MET)

    if not_met > 0:
        return Decision.REJECTED, rules["confidence"]["rejected"]
    if met >= rules["settlement"]["min_met_for_approval"]:
        return Decision.APPROVED, rules["confidence"]["approved"]
    return Decision.PENDING, rules["confidence"]["pending"]


class CriteriaEvaluator:
    """Evaluates query fields against the coverage criteria of the illustrative policy"""

    def __init__(self, rules: Dict[str, Any] = None):
        self.rules = rules or POLICY_RULES
        self.checks: List[Callable[[StructuredQuery, Sequence[str]], Optional[DecisionJustification]]] = [
            self._check_age,
            self._check_procedure,
            self._check_waiting_period,
            self._check_geography,
        ]

    def evaluate(self, query: StructuredQuery,
                 relevant_clauses: Sequence[str] = ()) -> Tuple[DecisionJustification, ...]:
        """Evaluate every criterion whose query field is present, in a fixed order"""
        results = (check(query, relevant_clauses) for check in self.checks)
        return tuple(entry for entry in results if entry is not None)

    def _check_age(self, query: StructuredQuery,
                   clauses: Sequence[str]) -> Optional[DecisionJustification]:
        if query.age is None:
            return None

        rule = self.rules["age_eligibility"]
        low, high = rule["min_age"], rule["max_age"]
        source = self._cite(rule["source_clause"], rule["key_phrase"], clauses)

        if low <= query.age <= high:
            return DecisionJustification(
                criterion="age_eligibility",
                status=CriterionStatus.MET,
                source_clause=source,
                description=f"Patient age {query.age} falls within eligible age range of {low}-{high} years"
            )
        return DecisionJustification(
            criterion="age_eligibility",
            status=CriterionStatus.NOT_MET,
            source_clause=source,
            description=f"Patient age {query.age} is outside eligible age range of {low}-{high} years"
        )

    def _check_procedure(self, query: StructuredQuery,
                         clauses: Sequence[str]) -> Optional[DecisionJustification]:
        if not query.procedure:
            return None

        rule = self.rules["procedure_coverage"]
        procedure = query.procedure.lower()

        if any(keyword in procedure for keyword in rule["covered_keywords"]):
            return DecisionJustification(
                criterion="procedure_coverage",
                status=CriterionStatus.MET,
                source_clause=self._cite(rule["covered_clause"], rule["covered_phrase"], clauses),
                description=f"{query.procedure} is covered under the policy's surgical benefits"
            )
        if any(keyword in procedure for keyword in rule["excluded_keywords"]):
            return DecisionJustification(
                criterion="procedure_coverage",
                status=CriterionStatus.NOT_MET,
                source_clause=self._cite(rule["excluded_clause"], rule["excluded_phrase"], clauses),
                description="Dental procedures are generally excluded from coverage unless accident-related"
            )
        return DecisionJustification(
            criterion="procedure_coverage",
            status=CriterionStatus.UNCLEAR,
            source_clause=rule["unclear_clause"],
            description="Procedure coverage requires detailed policy review"
        )

    def _check_waiting_period(self, query: StructuredQuery,
                              clauses: Sequence[str]) -> Optional[DecisionJustification]:
        if query.policy_duration is None or query.policy_duration_unit is None:
            return None

        rule = self.rules["waiting_period"]
        min_days = rule["min_days"]
        policy_days = duration_in_days(query.policy_duration, query.policy_duration_unit, self.rules)
        active_for = f"{query.policy_duration} {query.policy_duration_unit.value}"
        source = self._cite(rule["source_clause"], rule["key_phrase"], clauses)

        if policy_days >= min_days:
            return DecisionJustification(
                criterion="waiting_period",
                status=CriterionStatus.MET,
                source_clause=source,
                description=f"Policy active for {active_for}, meeting {min_days}-day waiting period"
            )
        return DecisionJustification(
            criterion="waiting_period",
            status=CriterionStatus.NOT_MET,
            source_clause=source,
            description=f"Policy only {active_for} old, does not meet {min_days}-day waiting period"
        )

    def _check_geography(self, query: StructuredQuery,
                         clauses: Sequence[str]) -> Optional[DecisionJustification]:
        if not query.location:
            return None

        rule = self.rules["geographic_coverage"]

        if query.location.lower() in rule["major_cities"]:
            return DecisionJustification(
                criterion="geographic_coverage",
                status=CriterionStatus.MET,
                source_clause=self._cite(rule["covered_clause"], rule["key_phrase"], clauses),
                description=f"Treatment location {query.location} is covered under policy geography"
            )
        # An unlisted city is ambiguous, never disqualifying
        return DecisionJustification(
            criterion="geographic_coverage",
            status=CriterionStatus.UNCLEAR,
            source_clause=rule["unclear_clause"],
            description=f"Coverage in {query.location} subject to network hospital availability"
        )

    @staticmethod
    def _cite(default_clause: str, key_phrase: str, clauses: Sequence[str]) -> str:
        """Prefer a retrieved clause quoting the rule over the built-in rule text"""
        phrase = key_phrase.lower()
        for clause in clauses:
            if phrase in clause.lower():
                return clause
        return default_clause


class DecisionEngine:
    """Produces a coverage decision with an itemized justification trail"""

    def __init__(self, rules: Dict[str, Any] = None):
        self.rules = rules or POLICY_RULES
        self.evaluator = CriteriaEvaluator(self.rules)

    def decide(self, query: StructuredQuery, relevant_clauses: Sequence[str] = ()) -> ProcessingResult:
        """Evaluate the criteria, then derive decision, amounts and confidence from them"""
        start_time = time.perf_counter()

        try:
            justification = self.evaluator.evaluate(query, relevant_clauses)
            decision, confidence = resolve_decision(justification, self.rules)
            amount, deductible = self._settlement(decision, justification)

            coverage_details = CoverageDetails(
                procedure=query.procedure or "Not specified",
                location=query.location or "Not specified",
                patient_age=query.age,
                policy_duration_months=duration_in_months(query.policy_duration, query.policy_duration_unit)
            )

            result = ProcessingResult(
                decision=decision,
                amount=amount,
                deductible=deductible,
                coverage_details=coverage_details,
                justification=list(justification),
                confidence_score=confidence,
                processing_time_ms=int((time.perf_counter() - start_time) * 1000)
            )

        except Exception as e:
            logger.error(f"Error in decision processing: {e}")
            raise DecisionEngineError(f"Failed to process decision: {str(e)}") from e

        logger.info(
            f"Decision {result.decision.value} from {len(justification)} criteria "
            f"in {result.processing_time_ms} ms"
        )
        return result

    def _settlement(self, decision: Decision,
                    justification: Sequence[DecisionJustification]) -> Tuple[float, float]:
        """Amount and deductible payable; both are zero unless approved"""
        if decision != Decision.APPROVED:
            return 0.0, 0.0

        settlement = self.rules["settlement"]
        procedure_covered = any(
            j.criterion == "procedure_coverage" and j.status == CriterionStatus.MET
            for j in justification
        )
        amount = settlement["coverage_amount"] if procedure_covered else 0.0
        return amount, settlement["deductible"]
