"""
ragchat Common Module

Configuration, errors and the chat, embedding and search clients shared by
the retriever pipeline.
"""

from .config import RagConfig, load_config
from .embedding_service import EmbeddingService
from .errors import (
    RagError,
    ValidationError,
    UpstreamCallError,
    ContractViolationError,
    ConfigurationMissingError,
)
from .llm_client import ChatClient, ChatChoice
from .search_client import SearchClient, SearchHit, SearchOptions, VectorQuery

__all__ = [
    "RagConfig",
    "load_config",
    "EmbeddingService",
    "RagError",
    "ValidationError",
    "UpstreamCallError",
    "ContractViolationError",
    "ConfigurationMissingError",
    "ChatClient",
    "ChatChoice",
    "SearchClient",
    "SearchHit",
    "SearchOptions",
    "VectorQuery",
]
