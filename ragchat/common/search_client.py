"""
Search Client

Wraps the Azure AI Search async SDK behind a single combined search call
that takes optional query text, an optional vector sub-query and the
structured search options.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import ConfigurationMissingError, UpstreamCallError

logger = logging.getLogger("ragchat.common.search_client")


@dataclass
class VectorQuery:
    """Nearest-neighbour sub-query over an embedding field"""
    vector: List[float]
    k: int
    field: str = "embedding"


@dataclass
class SearchOptions:
    """Structured options for one search call"""
    size: int
    filter: Optional[str] = None
    query_type: Optional[str] = None  # "semantic" when the ranker is on
    query_language: Optional[str] = None
    query_speller: Optional[str] = None
    semantic_configuration_name: Optional[str] = None
    query_caption: str = "none"  # "extractive" or "none"

    @property
    def is_semantic(self) -> bool:
        return self.query_type == "semantic"


@dataclass
class SearchHit:
    """One ranked search result"""
    document: Dict[str, Any]
    captions: Optional[List[str]] = None  # None when the service sent no captions
    score: float = 0.0


class SearchClient:
    """
    Async client for an Azure AI Search index.

    The SDK client is created lazily on first use and shared by all
    requests afterwards.
    """

    def __init__(
        self,
        endpoint: str,
        index_name: str,
        api_key: Optional[str] = None,
        client: Any = None,
    ):
        """
        Args:
            endpoint: Search service URL (https://<name>.search.windows.net)
            index_name: Index holding the document chunks
            api_key: Query key for the service
            client: Pre-built azure.search.documents.aio.SearchClient
        """
        self._endpoint = endpoint
        self._index_name = index_name
        self._api_key = api_key
        self._client = client

    def _ensure_initialized(self) -> None:
        """Lazily create the SDK client"""
        if self._client is not None:
            return
        if not self._endpoint:
            raise ConfigurationMissingError("search endpoint")
        if not self._api_key:
            raise ConfigurationMissingError("search API key")

        from azure.core.credentials import AzureKeyCredential
        from azure.search.documents.aio import SearchClient as AzureSearchClient

        self._client = AzureSearchClient(
            endpoint=self._endpoint,
            index_name=self._index_name,
            credential=AzureKeyCredential(self._api_key),
        )
        logger.info("Connected to search index %s at %s", self._index_name, self._endpoint)

    async def search(
        self,
        search_text: Optional[str],
        vector_query: Optional[VectorQuery],
        options: SearchOptions,
    ) -> Optional[List[SearchHit]]:
        """
        Run one search call.

        Pure lexical when no vector query is given, pure vector when
        search_text is None, hybrid when both are present.

        Returns:
            Hits in the ranking order produced by the service
        """
        self._ensure_initialized()

        kwargs: Dict[str, Any] = {
            "search_text": search_text,
            "filter": options.filter,
            "top": options.size,
        }
        if options.is_semantic:
            kwargs["query_type"] = "semantic"
            kwargs["semantic_configuration_name"] = options.semantic_configuration_name
            kwargs["query_caption"] = options.query_caption
        if vector_query is not None:
            from azure.search.documents.models import VectorizedQuery

            kwargs["vector_queries"] = [
                VectorizedQuery(
                    vector=vector_query.vector,
                    k_nearest_neighbors=vector_query.k,
                    fields=vector_query.field,
                )
            ]

        try:
            results = await self._client.search(**kwargs)
            hits = []
            async for doc in results:
                hits.append(self._to_search_hit(doc))
        except Exception as e:
            logger.error("Search call failed: %s", e)
            raise UpstreamCallError("search", str(e)) from e

        return hits

    def _to_search_hit(self, raw: Dict[str, Any]) -> SearchHit:
        """Split SDK metadata (@search.*) from document fields"""
        raw_captions = raw.get("@search.captions")
        captions = None
        if raw_captions is not None:
            captions = [c.text or "" for c in raw_captions]
        document = {k: v for k, v in raw.items() if not k.startswith("@search.")}
        return SearchHit(
            document=document,
            captions=captions,
            score=raw.get("@search.score") or 0.0,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session"""
        if self._client is not None:
            await self._client.close()
