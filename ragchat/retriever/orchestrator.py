"""
Chat Orchestrator

Read-Retrieve-Read: sequences query refinement, retrieval, answer
synthesis and optional follow-up generation for one chat request.

Pipeline:
1. Validate the conversation (before any upstream call)
2. Embed the raw question (unless retrieval mode is Text)
3. Refine the question into a search query (unless retrieval mode is Vector)
4. Retrieve supporting content
5. Synthesize the grounded answer
6. Generate follow-up questions if requested
"""

import logging
from typing import List, Optional, Sequence

from ..common.config import RagConfig
from ..common.embedding_service import EmbeddingService
from ..common.errors import ConfigurationMissingError, ValidationError
from ..common.llm_client import ChatClient
from ..common.schemas.chat import (
    ApproachResponse,
    ConversationTurn,
    RequestOverrides,
    RetrievalMode,
)
from ..common.search_client import SearchClient
from .followups import FollowupGenerator, append_followups
from .query_processor import QueryRefiner
from .searcher import DocumentRetriever
from .synthesizer import AnswerSynthesizer

logger = logging.getLogger("ragchat.retriever.orchestrator")


def get_active_question(history: Sequence[ConversationTurn]) -> str:
    """The last turn's user text; ValidationError when missing"""
    if not history:
        raise ValidationError("Conversation history is empty")
    question = history[-1].user
    if question is None or not question.strip():
        raise ValidationError("User question is null")
    return question


class ChatOrchestrator:
    """
    Answers the last question of a conversation.

    Holds only shared, stateless collaborators, so one instance serves
    concurrent requests. Every stage error propagates to the caller as-is.
    """

    def __init__(
        self,
        query_refiner: QueryRefiner,
        retriever: DocumentRetriever,
        synthesizer: AnswerSynthesizer,
        followup_generator: FollowupGenerator,
        embedding_service: Optional[EmbeddingService] = None,
        citation_base_url: str = "",
    ):
        """
        Args:
            query_refiner: Question -> search query
            retriever: Search -> supporting content
            synthesizer: History + content -> answer/thoughts
            followup_generator: Answer -> follow-up questions
            embedding_service: Optional; None disables vector retrieval
            citation_base_url: Passed through to every response
        """
        self._refiner = query_refiner
        self._retriever = retriever
        self._synthesizer = synthesizer
        self._followups = followup_generator
        self._embedding = embedding_service
        self._citation_base_url = citation_base_url

    @property
    def has_embedding(self) -> bool:
        return self._embedding is not None and self._embedding.is_available

    async def reply(
        self,
        history: List[ConversationTurn],
        overrides: Optional[RequestOverrides] = None,
    ) -> ApproachResponse:
        """
        Run the full pipeline for one request.

        Args:
            history: Ordered turns; the last one holds the active question
            overrides: Request options (defaults when None)

        Returns:
            ApproachResponse with data points, answer, thoughts, citation
            base URL and follow-up questions
        """
        overrides = overrides or RequestOverrides()
        question = get_active_question(history)

        embedding = await self._embed_question(question, overrides)

        query = None
        if overrides.retrieval_mode != RetrievalMode.VECTOR:
            query = await self._refiner.refine(question, history)

        records = await self._retriever.retrieve(query, embedding, overrides)

        result = await self._synthesizer.synthesize(history, records)
        answer = result.answer

        followups = []
        if overrides.suggest_followup_questions:
            followups = await self._followups.generate(result.answer)
            answer = append_followups(answer, followups)

        return ApproachResponse(
            data_points=records,
            answer=answer,
            thoughts=result.thoughts,
            citation_base_url=self._citation_base_url,
            followup_questions=followups,
        )

    async def _embed_question(
        self,
        question: str,
        overrides: RequestOverrides,
    ) -> Optional[List[float]]:
        """Embed the raw question, not the refined query"""
        if overrides.retrieval_mode == RetrievalMode.TEXT or not self.has_embedding:
            return None
        return await self._embedding.embed_single(question)


def create_chat_service(
    config: RagConfig,
    chat_client: Optional[ChatClient] = None,
    embedding_service: Optional[EmbeddingService] = None,
    search_client: Optional[SearchClient] = None,
) -> ChatOrchestrator:
    """
    Build a ChatOrchestrator from configuration.

    Clients passed in are used as-is; missing ones are created from config.
    Fails fast with ConfigurationMissingError before any request is served.
    """
    oc = config.openai

    if chat_client is None:
        if not oc.chat_deployment:
            raise ConfigurationMissingError("openai.chat_deployment")
        chat_client = ChatClient(
            provider=oc.provider,
            model=oc.chat_deployment,
            api_key=oc.api_key,
            endpoint=oc.endpoint,
            api_version=oc.api_version,
            anthropic_api_key=oc.anthropic_api_key,
        )
    if not chat_client.is_available:
        raise ConfigurationMissingError(f"{chat_client.provider} chat credentials")

    if embedding_service is None and oc.embedding_deployment:
        use_azure = oc.provider == "azure"
        if use_azure and not oc.endpoint:
            raise ConfigurationMissingError("openai.endpoint")
        embedding_service = EmbeddingService(
            model=oc.embedding_deployment,
            api_key=oc.api_key,
            endpoint=oc.endpoint if use_azure else None,
            api_version=oc.api_version,
        )

    if search_client is None:
        if not config.search.endpoint:
            raise ConfigurationMissingError("search.endpoint")
        if not config.search.api_key:
            raise ConfigurationMissingError("search.api_key")
        search_client = SearchClient(
            endpoint=config.search.endpoint,
            index_name=config.search.index,
            api_key=config.search.api_key,
        )

    logger.info(
        "Chat service ready (provider=%s, model=%s, vectors=%s)",
        chat_client.provider,
        chat_client.model,
        embedding_service is not None and embedding_service.is_available,
    )

    return ChatOrchestrator(
        query_refiner=QueryRefiner(chat_client, include_history=config.retriever.refine_with_history),
        retriever=DocumentRetriever(
            search_client,
            search_config=config.search,
            semantic_candidate_k=config.retriever.semantic_candidate_k,
        ),
        synthesizer=AnswerSynthesizer(chat_client),
        followup_generator=FollowupGenerator(chat_client),
        embedding_service=embedding_service,
        citation_base_url=config.storage.get_citation_base_url(),
    )
