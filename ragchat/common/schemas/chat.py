"""
Chat Pipeline Schemas

Request-scoped entities exchanged between the caller and the
Read-Retrieve-Read pipeline, plus the structured-output contracts the
language model must satisfy.
"""

from enum import Enum
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveInt,
    StrictStr,
    TypeAdapter,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel, to_pascal


# ============================================================================
# Enums
# ============================================================================

class RetrievalMode(str, Enum):
    """Which retrieval strategy the search call uses"""
    TEXT = "Text"  # lexical only
    VECTOR = "Vector"  # embedding only
    HYBRID = "Hybrid"  # lexical + vector


# ============================================================================
# Request
# ============================================================================

class ConversationTurn(BaseModel):
    """One user question and the assistant reply that followed it (if any)"""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_pascal)

    user: Optional[str] = None
    bot: Optional[str] = None


class RequestOverrides(BaseModel):
    """Per-request retrieval and generation options"""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_pascal)

    top: PositiveInt = 3
    semantic_captions: bool = False
    semantic_ranker: bool = False
    exclude_category: Optional[str] = None
    retrieval_mode: RetrievalMode = RetrievalMode.HYBRID
    suggest_followup_questions: bool = False

    @field_validator("top", "semantic_captions", "semantic_ranker", "suggest_followup_questions", mode="before")
    @classmethod
    def _null_is_default(cls, value, info: ValidationInfo):
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("retrieval_mode", mode="before")
    @classmethod
    def _unknown_mode_is_hybrid(cls, value):
        # Anything other than Text or Vector searches both ways
        if isinstance(value, RetrievalMode):
            return value
        if isinstance(value, str) and value in (RetrievalMode.TEXT.value, RetrievalMode.VECTOR.value):
            return value
        return RetrievalMode.HYBRID


# ============================================================================
# Response
# ============================================================================

class SupportingContentRecord(BaseModel):
    """A retrieved document passage used to ground the answer"""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    title: str = Field(..., description="Source page identifier, e.g. benefits-24.pdf")
    content: str = Field(..., description="Passage text, single line")

    @field_validator("content")
    @classmethod
    def _single_line(cls, value: str) -> str:
        return value.replace("\r", " ").replace("\n", " ")


class ApproachResponse(BaseModel):
    """Final reply returned to the caller"""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    data_points: List[SupportingContentRecord] = Field(default_factory=list)
    answer: str
    thoughts: str
    citation_base_url: str = ""
    followup_questions: List[str] = Field(default_factory=list)


# ============================================================================
# Model output contracts
# ============================================================================

class AnswerPayload(BaseModel):
    """JSON object the answer-synthesis call must return"""
    model_config = ConfigDict(extra="forbid", strict=True)

    answer: str
    thoughts: str


FOLLOWUP_LIST = TypeAdapter(List[StrictStr])
