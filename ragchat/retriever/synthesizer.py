"""
Answer Synthesizer

Builds a grounded, history-aware prompt and decodes the model's strict
JSON answer/thoughts reply.

Unlike query refinement, the whole conversation is replayed here so the
answer can refer back to earlier turns. Citation markers are written by the
model and are not checked against the retrieved records.
"""

import logging
from typing import Dict, List

from ..common.errors import ContractViolationError
from ..common.llm_client import ChatClient, assistant_message, user_message
from ..common.llm_utils import parse_answer_json
from ..common.schemas.chat import AnswerPayload, ConversationTurn, SupportingContentRecord
from ..common.schemas.templates import ANSWER_SYSTEM, PROMPT_VERSION, render_answer_prompt

logger = logging.getLogger("ragchat.retriever.synthesizer")


def build_answer_messages(
    history: List[ConversationTurn],
    records: List[SupportingContentRecord],
) -> List[Dict[str, str]]:
    """Conversation replay followed by the grounding/format instruction"""
    messages = []
    for turn in history:
        messages.append(user_message(turn.user or ""))
        if turn.bot is not None:
            messages.append(assistant_message(turn.bot))
    messages.append(user_message(render_answer_prompt(records)))
    return messages


class AnswerSynthesizer:
    """Synthesizes a grounded answer with one language-model call."""

    def __init__(self, chat_client: ChatClient):
        self._chat = chat_client

    async def synthesize(
        self,
        history: List[ConversationTurn],
        records: List[SupportingContentRecord],
    ) -> AnswerPayload:
        """
        Args:
            history: Entire conversation, last turn holds the active question
            records: Retrieved supporting content (may be empty)

        Returns:
            AnswerPayload with the answer and the model's thoughts

        Raises:
            ContractViolationError: no choice, malformed JSON or wrong fields
        """
        messages = build_answer_messages(history, records)
        logger.debug("Answer prompt (%s):\n%s", PROMPT_VERSION, messages[-1]["content"])

        choices = await self._chat.complete(ANSWER_SYSTEM, messages)
        if not choices:
            raise ContractViolationError("Answer call returned no choices")

        try:
            return parse_answer_json(choices[0].content)
        except ContractViolationError:
            logger.error("Answer response violates the JSON contract")
            raise
