"""Shared utilities for decoding structured LLM responses."""

from __future__ import annotations

from typing import List

from pydantic import ValidationError as PydanticValidationError

from .errors import ContractViolationError
from .schemas.chat import AnswerPayload, FOLLOWUP_LIST


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```), if any."""
    text = raw.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines)
    return text


def parse_answer_json(raw: str | None) -> AnswerPayload:
    """Decode the answer-synthesis response.

    The text must be a JSON object with exactly two string fields,
    ``answer`` and ``thoughts``. Anything else raises ContractViolationError.
    """
    if not raw:
        raise ContractViolationError("Answer response is empty", raw=raw)
    try:
        return AnswerPayload.model_validate_json(strip_code_fences(raw))
    except PydanticValidationError as e:
        raise ContractViolationError(f"Answer response is not a valid answer object: {e}", raw=raw) from e


def parse_followups_json(raw: str | None) -> List[str]:
    """Decode the follow-up response: a JSON array of strings, any length."""
    if not raw:
        raise ContractViolationError("Follow-up response is empty", raw=raw)
    try:
        return FOLLOWUP_LIST.validate_json(strip_code_fences(raw))
    except PydanticValidationError as e:
        raise ContractViolationError(f"Follow-up response is not a JSON string list: {e}", raw=raw) from e
