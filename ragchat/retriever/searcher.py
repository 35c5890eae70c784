"""
Document Retriever

Builds search options from the request overrides, runs one combined
lexical/vector/semantic search call and turns the ranked hits into
SupportingContentRecords for answer synthesis.
"""

import logging
from typing import List, Optional

from ..common.config import SearchConfig
from ..common.errors import UpstreamCallError
from ..common.schemas.chat import RequestOverrides, RetrievalMode, SupportingContentRecord
from ..common.search_client import SearchClient, SearchHit, SearchOptions, VectorQuery

logger = logging.getLogger("ragchat.retriever.searcher")

# Candidate pool for the vector sub-query when the semantic ranker reranks
SEMANTIC_CANDIDATE_K = 50

CAPTION_SEPARATOR = " . "


def build_filter(exclude_category: Optional[str], category_field: str = "category") -> Optional[str]:
    """OData filter excluding one category, or None"""
    if exclude_category is None:
        return None
    escaped = exclude_category.replace("'", "''")
    return f"{category_field} ne '{escaped}'"


def build_search_options(
    overrides: RequestOverrides,
    search_config: Optional[SearchConfig] = None,
) -> SearchOptions:
    """
    Translate request overrides into search options.

    Semantic settings and captions are only set when the semantic ranker
    is on; semantic_captions alone has no effect.
    """
    cfg = search_config or SearchConfig()
    options = SearchOptions(
        size=overrides.top,
        filter=build_filter(overrides.exclude_category, cfg.category_field),
    )
    if overrides.semantic_ranker:
        options.query_type = "semantic"
        options.query_language = cfg.query_language
        options.query_speller = cfg.query_speller
        options.semantic_configuration_name = cfg.semantic_configuration
        options.query_caption = "extractive" if overrides.semantic_captions else "none"
    return options


def build_vector_query(
    overrides: RequestOverrides,
    embedding: Optional[List[float]],
    field: str = "embedding",
    semantic_candidate_k: int = SEMANTIC_CANDIDATE_K,
) -> Optional[VectorQuery]:
    """Vector sub-query, or None in Text mode or without an embedding"""
    if embedding is None or overrides.retrieval_mode == RetrievalMode.TEXT:
        return None
    # Reranking needs a wider pool before it trims to top
    k = semantic_candidate_k if overrides.semantic_ranker else overrides.top
    return VectorQuery(vector=embedding, k=k, field=field)


class DocumentRetriever:
    """
    Retrieves grounding documents for a question.

    Hybrid when both a query and an embedding are given, lexical-only
    without an embedding, vector-only without a query.
    """

    def __init__(
        self,
        search_client: SearchClient,
        search_config: Optional[SearchConfig] = None,
        semantic_candidate_k: int = SEMANTIC_CANDIDATE_K,
    ):
        """
        Args:
            search_client: Shared search capability
            search_config: Field names and semantic settings
            semantic_candidate_k: Vector k used when the semantic ranker is on
        """
        self._client = search_client
        self._config = search_config or SearchConfig()
        self._semantic_candidate_k = semantic_candidate_k

    async def retrieve(
        self,
        query: Optional[str],
        embedding: Optional[List[float]],
        overrides: RequestOverrides,
    ) -> List[SupportingContentRecord]:
        """
        Search and extract supporting content.

        Args:
            query: Refined search text (None in vector-only mode)
            embedding: Question embedding (None disables the vector sub-query)
            overrides: Request options

        Returns:
            Records in the ranking order of the search service; may be empty
        """
        options = build_search_options(overrides, self._config)
        vector_query = build_vector_query(
            overrides,
            embedding,
            field=self._config.embedding_field,
            semantic_candidate_k=self._semantic_candidate_k,
        )

        hits = await self._client.search(query, vector_query, options)
        if hits is None:
            raise UpstreamCallError("search", "fail to get search result")

        use_captions = overrides.semantic_captions
        records = []
        for hit in hits:
            record = self._to_record(hit, use_captions)
            if record is not None:
                records.append(record)

        logger.info(
            "Retrieved %d of %d hits (vector=%s, semantic=%s)",
            len(records), len(hits), vector_query is not None, options.is_semantic,
        )
        return records

    def _to_record(self, hit: SearchHit, use_captions: bool) -> Optional[SupportingContentRecord]:
        """Convert one hit; None when the source or content is missing"""
        source = hit.document.get(self._config.source_field)

        if use_captions:
            content = CAPTION_SEPARATOR.join(hit.captions) if hit.captions is not None else None
        else:
            content = hit.document.get(self._config.content_field)

        if not isinstance(source, str) or not isinstance(content, str):
            return None

        # Grounding lines are CR separated, so content must stay on one line
        content = content.replace("\r", " ").replace("\n", " ")
        return SupportingContentRecord(title=source, content=content)
