"""
Tests for clause extraction and relevance selection
"""
import pytest

from policy_query.clause_matcher import (
    ClauseExtractor, ClauseRelevanceScorer, ClauseMatcher, word_overlap_similarity
)
from policy_query.models import StructuredQuery


@pytest.fixture
def extractor():
    return ClauseExtractor()


@pytest.fixture
def scorer():
    return ClauseRelevanceScorer()


def test_numbered_clauses_carry_section(extractor, policy_text):
    clauses = extractor.extract_clauses(policy_text)

    assert clauses[0].text == "SECTION 4 - HOSPITALIZATION COVERAGE"
    assert clauses[0].section == "Section 4"

    numbered = {c.clause_number: c for c in clauses[1:]}
    assert sorted(numbered) == ["4.1", "4.2", "4.3", "4.4", "4.5"]
    assert numbered["4.1"].text == "4.1 Coverage available for individuals aged 18-65 years at policy inception"
    assert all(c.section == "Section 4" for c in clauses)


def test_section_reference_inside_sentence_is_not_a_header(extractor):
    clauses = extractor.extract_clauses(
        "Exclusions listed under Section 4 apply to every insured member of the family."
    )

    assert len(clauses) == 1
    assert clauses[0].section is None


def test_detached_clause_number_stays_with_clause(extractor):
    clauses = extractor.extract_clauses("3.13. Dental treatment is excluded unless caused by an accident.")

    assert len(clauses) == 1
    assert clauses[0].clause_number == "3.13"
    assert clauses[0].text == "3.13. Dental treatment is excluded unless caused by an accident"


def test_short_segments_are_discarded(extractor):
    clauses = extractor.extract_clauses("Short one. The sky is blue and wide. A premium is due yearly!")

    assert [c.text for c in clauses] == ["A premium is due yearly"]


def test_definition_is_retained(extractor):
    clauses = extractor.extract_clauses("Day Care means treatment under 24h")
    assert [c.text for c in clauses] == ["Day Care means treatment under 24h"]


def test_bullets_split_into_clauses(extractor):
    text = "Benefits:\n- Ambulance charges are covered up to the limit\n- Organ donor expenses are covered"
    clauses = extractor.extract_clauses(text)

    assert [c.text for c in clauses] == [
        "Ambulance charges are covered up to the limit",
        "Organ donor expenses are covered",
    ]
    # Positions count only segments that passed the length filter
    assert [c.clause_number for c in clauses] == ["1", "2"]


def test_substantial_segment_kept_without_keywords(extractor):
    text = "The quick brown fox jumps over the lazy dog near the riverbank at dawn"
    assert len(extractor.extract_clauses(text)) == 1


@pytest.mark.parametrize("text", ["", "   \n\n  ", "Tiny. Bits. Only."])
def test_no_clauses_from_empty_text(extractor, text):
    assert extractor.extract_clauses(text) == []


def test_extraction_is_pure(extractor, policy_text):
    assert extractor.extract_clauses(policy_text) == extractor.extract_clauses(policy_text)


def test_search_terms_for_orthopedic_query(scorer):
    query = StructuredQuery(age=46, procedure="knee surgery", location="Pune", policy_duration=3)
    terms = scorer.build_search_terms(query)

    assert terms[:4] == ["knee surgery", "orthopedic", "surgical", "joint"]
    assert "aged" in terms
    assert "cities" in terms
    assert "waiting" in terms


def test_relevance_cap_keeps_corpus_order_without_duplicates(scorer):
    clauses = [f"Coverage clause number {i}" for i in range(15)]
    clauses.insert(1, clauses[0])

    selected = scorer.select_relevant(StructuredQuery(), clauses)

    assert selected == [f"Coverage clause number {i}" for i in range(10)]


def test_irrelevant_clauses_are_skipped(scorer):
    clauses = [
        "Cataract procedures are listed in annexure two",
        "Joint replacement is payable once per policy year",
        "The deductible applies per claim",
    ]
    selected = scorer.select_relevant(StructuredQuery(procedure="knee surgery"), clauses)

    assert selected == clauses[1:]


def test_rank_by_similarity(scorer):
    ranked = scorer.rank_by_similarity(
        "knee surgery covered",
        ["dental treatment excluded", "knee surgery excluded", "knee surgery covered"],
        top_k=2
    )
    assert [clause for clause, _ in ranked] == ["knee surgery covered", "knee surgery excluded"]
    assert ranked[0][1] == 1.0


@pytest.mark.parametrize("a,b,expected", [
    ("knee surgery", "Knee Surgery", 1.0),
    ("", "", 1.0),
    ("knee surgery", "dental care", 0.0),
    ("knee surgery covered", "knee surgery excluded", 0.5),
])
def test_word_overlap_similarity(a, b, expected):
    assert word_overlap_similarity(a, b) == pytest.approx(expected)


def test_clause_matcher_end_to_end(policy_text):
    matcher = ClauseMatcher()
    clauses = [c.text for c in matcher.process_text(policy_text)]
    query = StructuredQuery(procedure="dental")

    relevant = matcher.match_clauses_for_query(query, clauses)

    assert "4.5 Dental treatments are excluded unless due to accident" in relevant
