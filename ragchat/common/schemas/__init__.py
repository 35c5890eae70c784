"""
ragchat Schemas

Request/response models and versioned prompt templates.
"""

from .chat import (
    AnswerPayload,
    ApproachResponse,
    ConversationTurn,
    RequestOverrides,
    RetrievalMode,
    SupportingContentRecord,
    FOLLOWUP_LIST,
)
from .templates import (
    PROMPT_VERSION,
    NO_SOURCE_SENTINEL,
    render_sources,
    render_answer_prompt,
    render_followup_prompt,
)

__all__ = [
    "AnswerPayload",
    "ApproachResponse",
    "ConversationTurn",
    "RequestOverrides",
    "RetrievalMode",
    "SupportingContentRecord",
    "FOLLOWUP_LIST",
    "PROMPT_VERSION",
    "NO_SOURCE_SENTINEL",
    "render_sources",
    "render_answer_prompt",
    "render_followup_prompt",
]
