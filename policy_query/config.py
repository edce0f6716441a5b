"""
Configuration settings for the Policy Query Engine
"""
from typing import Dict, Any
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """System configuration settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # OpenAI Configuration
    openai_api_key: str = Field(default="", description="API key for the language model service")
    openai_model: str = Field(default="gpt-4o")
    embedding_model: str = Field(default="text-embedding-3-small")
    max_tokens: int = Field(default=1500)
    temperature: float = Field(default=0.1)

    # Document intake
    upload_dir: str = Field(default="uploads")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024)

    # Clause extraction and retrieval
    min_clause_length: int = Field(default=20, description="Segments shorter than this are discarded")
    substantial_clause_length: int = Field(default=50, description="Segments at least this long are always kept")
    max_relevant_clauses: int = Field(default=10)

    # Query history
    history_limit: int = Field(default=10)


# Global configuration instance
config = Config()

# Vocabularies used by the rule-based query extractor. Order matters: first hit wins.
QUERY_VOCABULARY: Dict[str, Any] = {
    "procedures": [
        "knee surgery", "hip surgery", "heart surgery", "cancer treatment",
        "maternity", "dental", "eye surgery", "spine surgery", "joint replacement",
        "orthopedic", "cardiac", "neurological", "emergency"
    ],
    "locations": [
        "pune", "mumbai", "delhi", "bangalore", "chennai", "kolkata",
        "hyderabad", "ahmedabad", "jaipur", "lucknow", "kanpur", "nagpur"
    ],
}

# Terms used by the clause extractor and the relevance scorer
CLAUSE_KEYWORDS: Dict[str, Any] = {
    "domain_keywords": [
        "covered", "insurance", "policy", "claim", "benefit", "exclusion", "premium"
    ],
    "always_relevant": [
        "coverage", "eligible", "surgical", "deductible", "sum insured"
    ],
    "orthopedic_triggers": ["knee", "hip", "joint", "spine", "orthopedic"],
    "orthopedic_terms": ["orthopedic", "surgical", "joint"],
    "age_terms": ["age", "aged", "years"],
    "location_terms": ["geographic", "coverage", "cities", "india"],
    "duration_terms": ["waiting", "period", "months", "continuous"],
}

# The illustrative policy encoded by the rule-based decision engine
POLICY_RULES: Dict[str, Any] = {
    "age_eligibility": {
        "min_age": 18,
        "max_age": 65,
        "source_clause": "Coverage available for individuals aged 18-65 years at policy inception",
        "key_phrase": "aged 18-65",
    },
    "procedure_coverage": {
        "covered_keywords": ["knee", "orthopedic", "joint"],
        "excluded_keywords": ["dental"],
        "covered_clause": "Orthopedic surgeries including knee, hip, and joint procedures are covered under surgical benefits",
        "excluded_clause": "Dental treatments are excluded unless due to accident",
        "unclear_clause": "Coverage depends on specific procedure classification and policy terms",
        "covered_phrase": "orthopedic surgeries",
        "excluded_phrase": "dental treatments are excluded",
    },
    "waiting_period": {
        "min_days": 30,
        "days_per_unit": {"days": 1, "months": 30, "years": 365},
        "source_clause": "30-day waiting period applies to non-emergency surgical procedures from policy commencement date",
        "key_phrase": "30-day waiting period",
    },
    "geographic_coverage": {
        "major_cities": ["pune", "mumbai", "delhi", "bangalore", "chennai", "kolkata"],
        "covered_clause": "Coverage valid across all major cities and towns in India including Mumbai, Delhi, Pune, Bangalore, Chennai, Kolkata",
        "unclear_clause": "Coverage extends throughout India with network hospital availability",
        "key_phrase": "major cities",
    },
    "settlement": {
        "coverage_amount": 200000.0,
        "deductible": 10000.0,
        "min_met_for_approval": 2,
    },
    "confidence": {
        "approved": 0.85,
        "rejected": 0.9,
        "pending": 0.7,
    },
}
