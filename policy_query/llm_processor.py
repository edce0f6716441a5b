"""
Language-model processing path: query parsing, clause selection and decision synthesis
"""
import json
import time
from typing import List, Dict, Any, Sequence
import logging

from openai import OpenAI
from pydantic import ValidationError

from .models import StructuredQuery, ProcessingResult
from .config import config

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Custom exception for LLM-related errors"""
    pass


class TokenCounter:
    """Token usage tracking"""

    def __init__(self):
        self.reset()

    def reset(self):
        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.total_tokens = 0

    def add_usage(self, usage_dict: Dict[str, int]):
        """Add token usage from OpenAI response"""
        if usage_dict:
            self.prompt_tokens += usage_dict.get('prompt_tokens', 0) or 0
            self.completion_tokens += usage_dict.get('completion_tokens', 0) or 0
            self.total_tokens += usage_dict.get('total_tokens', 0) or 0

    def get_usage(self) -> Dict[str, int]:
        """Get current token usage"""
        return {
            'prompt_tokens': self.prompt_tokens,
            'completion_tokens': self.completion_tokens,
            'total_tokens': self.total_tokens
        }


class JSONCompletion:
    """Base for components that exchange JSON objects with the chat model"""

    def __init__(self, client: OpenAI):
        self.client = client
        self.token_counter = TokenCounter()

    def _complete_json(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        response = self.client.chat.completions.create(
            model=config.openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            response_format={"type": "json_object"}
        )

        # Track token usage
        if getattr(response, 'usage', None):
            self.token_counter.add_usage(response.usage.model_dump())

        content = response.choices[0].message.content or "{}"
        parsed = json.loads(content)
        if not isinstance(parsed, dict):
            raise LLMError("Model response is not a JSON object")
        return parsed


class QueryParser(JSONCompletion):
    """Extracts structured fields from a coverage question"""

    SYSTEM_PROMPT = """You are an expert at parsing insurance and healthcare queries. Extract structured information from natural language queries.

    Parse the following information if present:
    - age: numerical age
    - gender: Male/Female
    - procedure: medical procedure or condition
    - location: city or geographic location
    - policyDuration: numerical duration
    - policyDurationUnit: days/months/years
    - preExistingConditions: array of conditions
    - additionalInfo: any other relevant information

    Use null for anything not mentioned. Respond with JSON in this exact format:
    {
      "age": number,
      "gender": "string",
      "procedure": "string",
      "location": "string",
      "policyDuration": number,
      "policyDurationUnit": "string",
      "preExistingConditions": ["string"],
      "additionalInfo": "string"
    }"""

    def parse(self, query_text: str) -> StructuredQuery:
        data = self._complete_json(self.SYSTEM_PROMPT, query_text)
        return StructuredQuery.model_validate(data)


class ClauseSelector(JSONCompletion):
    """Picks the policy clauses that bear on a decision"""

    SYSTEM_PROMPT = """You are an expert at finding relevant insurance policy clauses. Given a query and available clauses, identify the most relevant ones.

    Query: {query_text}
    Structured Data: {structured}

    From the provided clauses, select the most relevant ones for making an insurance decision. Return the clause indices.

    Respond with JSON in this format:
    {{
      "relevantClauseIndices": [0, 1, 2],
      "reasoning": "Brief explanation of why these clauses are relevant"
    }}"""

    def select(self, query_text: str, structured: StructuredQuery,
               clauses: Sequence[str]) -> List[str]:
        if not clauses:
            return []

        system_prompt = self.SYSTEM_PROMPT.format(
            query_text=query_text,
            structured=structured.model_dump_json(by_alias=True, exclude_none=True)
        )
        user_prompt = "Available clauses:\n" + "\n\n".join(
            f"{index}: {clause}" for index, clause in enumerate(clauses)
        )

        data = self._complete_json(system_prompt, user_prompt)
        indices = data.get('relevantClauseIndices')
        if not isinstance(indices, list):
            raise LLMError("Model response is missing relevantClauseIndices")

        selected = []
        for index in indices:
            if not isinstance(index, int) or not 0 <= index < len(clauses):
                raise LLMError(f"Model returned invalid clause index: {index!r}")
            if clauses[index] not in selected:
                selected.append(clauses[index])
        return selected


class DecisionSynthesizer(JSONCompletion):
    """Asks the model for a coverage decision grounded in the selected clauses"""

    SYSTEM_PROMPT = """You are an expert insurance claims processor. Based on the query and relevant policy clauses, make a decision.

    Rules:
    1. Analyze each criterion: age eligibility, procedure coverage, waiting periods, geographic coverage, pre-existing conditions
    2. Make a decision: approved, rejected, or pending
    3. Any criterion with status not_met means the decision is rejected
    4. Approve only when at least two criteria are met and none is not_met
    5. Report amount and deductible only for approved decisions, otherwise 0
    6. Provide detailed justification referencing specific clauses
    7. Assign confidence score (0-1)

    Respond with JSON in this exact format:
    {
      "decision": "approved|rejected|pending",
      "amount": number,
      "deductible": number,
      "coverageDetails": {
        "procedure": "string",
        "location": "string",
        "patientAge": number,
        "policyDurationMonths": number
      },
      "justification": [
        {
          "criterion": "string",
          "status": "met|not_met|unclear",
          "sourceClause": "string",
          "description": "string"
        }
      ],
      "confidenceScore": number
    }"""

    def decide(self, query_text: str, structured: StructuredQuery,
               clauses: Sequence[str]) -> ProcessingResult:
        start_time = time.perf_counter()

        user_prompt = f"""Query: {query_text}

        Structured Query: {structured.model_dump_json(by_alias=True, exclude_none=True)}

        Relevant Policy Clauses:
        {chr(10).join(clauses)}"""

        data = self._complete_json(self.SYSTEM_PROMPT, user_prompt)
        coverage = data.get('coverageDetails') or {}
        data['coverageDetails'] = {key: value for key, value in coverage.items() if value is not None}
        data['processingTimeMs'] = int((time.perf_counter() - start_time) * 1000)
        return ProcessingResult.model_validate(data)


class LLMProcessor:
    """Main LLM processor that coordinates all LLM-based operations"""

    def __init__(self, api_key: str = None, client: OpenAI = None):
        self.api_key = api_key or config.openai_api_key
        if client is None and not self.api_key:
            raise LLMError("OpenAI API key not provided")

        # Initialize OpenAI client
        self.client = client or OpenAI(api_key=self.api_key)

        # Initialize components
        self.query_parser = QueryParser(self.client)
        self.clause_selector = ClauseSelector(self.client)
        self.decision_synthesizer = DecisionSynthesizer(self.client)

        # Embedding usage is tracked separately from chat completions
        self.token_counter = TokenCounter()

    def parse_query(self, query_text: str) -> StructuredQuery:
        """Parse a natural language query into structured fields"""
        try:
            structured = self.query_parser.parse(query_text)
            logger.info("Parsed query with language model")
            return structured
        except (json.JSONDecodeError, ValidationError) as e:
            raise LLMError(f"Malformed query parsing response: {str(e)}") from e
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(f"Failed to parse query: {str(e)}") from e

    def find_relevant_clauses(self, query_text: str, structured: StructuredQuery,
                              all_clauses: Sequence[str]) -> List[str]:
        """Select the clauses relevant to the query"""
        try:
            return self.clause_selector.select(query_text, structured, all_clauses)
        except json.JSONDecodeError as e:
            raise LLMError(f"Malformed clause selection response: {str(e)}") from e
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(f"Failed to select clauses: {str(e)}") from e

    def make_decision(self, query_text: str, structured: StructuredQuery,
                      relevant_clauses: Sequence[str]) -> ProcessingResult:
        """Produce a coverage decision for the query"""
        try:
            result = self.decision_synthesizer.decide(query_text, structured, relevant_clauses)
            logger.info(f"Language model decision: {result.decision.value}")
            return result
        except (json.JSONDecodeError, ValidationError) as e:
            raise LLMError(f"Malformed decision response: {str(e)}") from e
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(f"Failed to make decision: {str(e)}") from e

    def generate_embedding(self, text: str) -> List[float]:
        """Embedding vector for a clause text"""
        try:
            response = self.client.embeddings.create(
                model=config.embedding_model,
                input=text
            )
            if getattr(response, 'usage', None):
                self.token_counter.add_usage(response.usage.model_dump())
            return list(response.data[0].embedding)
        except Exception as e:
            raise LLMError(f"Failed to generate embedding: {str(e)}") from e

    def get_total_token_usage(self) -> Dict[str, int]:
        """Get total token usage across all components"""
        total_usage = {
            'prompt_tokens': 0,
            'completion_tokens': 0,
            'total_tokens': 0
        }

        # Aggregate from all components
        for counter in self._counters():
            usage = counter.get_usage()
            for key in total_usage:
                total_usage[key] += usage.get(key, 0)

        return total_usage

    def reset_token_counters(self):
        """Reset all token counters"""
        for counter in self._counters():
            counter.reset()

    def _counters(self) -> List[TokenCounter]:
        return [
            self.query_parser.token_counter,
            self.clause_selector.token_counter,
            self.decision_synthesizer.token_counter,
            self.token_counter
        ]

    def validate_api_connection(self) -> bool:
        """Validate OpenAI API connection"""
        try:
            self.client.models.list()
            return True
        except Exception as e:
            logger.error(f"API validation failed: {e}")
            return False
