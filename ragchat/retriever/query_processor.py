"""
Query Refiner

Turns the latest user question into a terse keyword/boolean search query
with one language-model call. The refined query is only used for lexical
retrieval and is never shown to the user.
"""

import logging
from typing import List, Optional

from ..common.errors import ContractViolationError
from ..common.llm_client import ChatClient, assistant_message, user_message
from ..common.schemas.chat import ConversationTurn
from ..common.schemas.templates import QUERY_REFINEMENT_SYSTEM

logger = logging.getLogger("ragchat.retriever.query_processor")


class QueryRefiner:
    """
    Generates a search query for the active question.

    By default only the active question is sent, which keeps the search
    query focused on the latest turn. With include_history=True the prior
    turns are replayed first so follow-up questions like "what about
    dental?" can be resolved against earlier context.
    """

    def __init__(self, chat_client: ChatClient, include_history: bool = False):
        self._chat = chat_client
        self._include_history = include_history

    async def refine(
        self,
        question: str,
        history: Optional[List[ConversationTurn]] = None,
    ) -> str:
        """
        Args:
            question: Active user question (non-empty)
            history: Full conversation; only read when include_history is set

        Returns:
            The refined search query

        Raises:
            ContractViolationError: the call did not return exactly one choice
        """
        messages = []
        if self._include_history and history:
            for turn in history[:-1]:
                if turn.user:
                    messages.append(user_message(turn.user))
                if turn.bot:
                    messages.append(assistant_message(turn.bot))
        messages.append(user_message(question))

        choices = await self._chat.complete(QUERY_REFINEMENT_SYSTEM, messages)

        if len(choices) != 1:
            logger.error("Query refinement returned %d choices", len(choices))
            raise ContractViolationError(
                f"Failed to get search query: expected 1 choice, got {len(choices)}"
            )

        query = choices[0].content
        logger.info("Refined search query: %s", query)
        return query
