"""
Follow-up Generator

Asks the model for follow-up questions about a synthesized answer.
"""

import logging
from typing import List

from ..common.errors import ContractViolationError
from ..common.llm_client import ChatClient, user_message
from ..common.llm_utils import parse_followups_json
from ..common.schemas.templates import FOLLOWUP_SYSTEM, render_followup_prompt

logger = logging.getLogger("ragchat.retriever.followups")


def append_followups(answer: str, questions: List[str]) -> str:
    """Inline each question into the answer as " <<question>> ", in order"""
    for question in questions:
        answer += f" <<{question}>> "
    return answer


class FollowupGenerator:
    """Generates follow-up questions with one language-model call."""

    def __init__(self, chat_client: ChatClient):
        self._chat = chat_client

    async def generate(self, answer: str) -> List[str]:
        """
        The prompt asks for three questions; whatever strings come back
        are returned as-is, in order.

        Raises:
            ContractViolationError: no choice, or not a JSON list of strings
        """
        choices = await self._chat.complete(
            FOLLOWUP_SYSTEM,
            [user_message(render_followup_prompt(answer))],
        )
        if not choices:
            raise ContractViolationError("Follow-up call returned no choices")

        questions = parse_followups_json(choices[0].content)
        if len(questions) != 3:
            logger.warning("Expected 3 follow-up questions, got %d", len(questions))
        return questions
