"""
Configuration Management for ragchat

Loads configuration from ~/.ragchat/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger("ragchat.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".ragchat"
CONFIG_PATH = CONFIG_DIR / "config.json"


@dataclass
class OpenAIConfig:
    """Chat and embedding model configuration"""
    provider: str = "azure"  # "azure", "openai" or "anthropic"
    endpoint: str = ""
    api_key: str = ""
    api_version: str = "2024-06-01"
    chat_deployment: str = ""  # e.g. gpt-35-turbo
    embedding_deployment: str = ""  # e.g. text-embedding-ada-002; empty disables vectors
    anthropic_api_key: str = ""


@dataclass
class SearchConfig:
    """Search service configuration"""
    endpoint: str = ""
    index: str = "gptkbindex"
    api_key: str = ""
    semantic_configuration: str = "default"
    query_language: str = "en-us"
    query_speller: str = "lexicon"
    source_field: str = "sourcepage"
    content_field: str = "content"
    embedding_field: str = "embedding"
    category_field: str = "category"


@dataclass
class StorageConfig:
    """Blob storage hosting the cited documents"""
    account: str = ""
    container: str = "content"
    citation_base_url: str = ""  # explicit override

    def get_citation_base_url(self) -> str:
        """Base URL the client prefixes to a citation's source identifier"""
        if self.citation_base_url:
            return self.citation_base_url
        if not self.account:
            return ""
        return f"https://{self.account}.blob.core.windows.net/{self.container}"


@dataclass
class RetrieverConfig:
    """Retriever pipeline configuration"""
    refine_with_history: bool = False
    semantic_candidate_k: int = 50


@dataclass
class RagConfig:
    """Main ragchat configuration"""
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    retriever: RetrieverConfig = field(default_factory=RetrieverConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_openai_config(data: dict) -> OpenAIConfig:
    """Parse openai section from config dict"""
    openai_data = data.get("openai", {})
    return OpenAIConfig(
        provider=openai_data.get("provider", "azure"),
        endpoint=openai_data.get("endpoint", ""),
        api_key=openai_data.get("api_key", ""),
        api_version=openai_data.get("api_version", "2024-06-01"),
        chat_deployment=openai_data.get("chat_deployment", ""),
        embedding_deployment=openai_data.get("embedding_deployment", ""),
        anthropic_api_key=openai_data.get("anthropic_api_key", ""),
    )


def _parse_search_config(data: dict) -> SearchConfig:
    """Parse search section from config dict"""
    search_data = data.get("search", {})
    defaults = SearchConfig()
    return SearchConfig(
        endpoint=search_data.get("endpoint", ""),
        index=search_data.get("index", defaults.index),
        api_key=search_data.get("api_key", ""),
        semantic_configuration=search_data.get("semantic_configuration", defaults.semantic_configuration),
        query_language=search_data.get("query_language", defaults.query_language),
        query_speller=search_data.get("query_speller", defaults.query_speller),
        source_field=search_data.get("source_field", defaults.source_field),
        content_field=search_data.get("content_field", defaults.content_field),
        embedding_field=search_data.get("embedding_field", defaults.embedding_field),
        category_field=search_data.get("category_field", defaults.category_field),
    )


def _parse_storage_config(data: dict) -> StorageConfig:
    """Parse storage section from config dict"""
    storage_data = data.get("storage", {})
    return StorageConfig(
        account=storage_data.get("account", ""),
        container=storage_data.get("container", "content"),
        citation_base_url=storage_data.get("citation_base_url", ""),
    )


def _parse_retriever_config(data: dict) -> RetrieverConfig:
    """Parse retriever section from config dict"""
    retriever_data = data.get("retriever", {})
    return RetrieverConfig(
        refine_with_history=bool(retriever_data.get("refine_with_history", False)),
        semantic_candidate_k=retriever_data.get("semantic_candidate_k", 50),
    )


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> RagConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (including a local .env file)
    2. Config file (~/.ragchat/config.json)
    3. Default values
    """
    load_dotenv()
    config = RagConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.openai = _parse_openai_config(data)
            config.search = _parse_search_config(data)
            config.storage = _parse_storage_config(data)
            config.retriever = _parse_retriever_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # Environment variable overrides (names follow the Azure deployment outputs)
    _env_map = {
        "AZURE_OPENAI_ENDPOINT": ("openai", "endpoint"),
        "AZURE_OPENAI_API_KEY": ("openai", "api_key"),
        "AZURE_OPENAI_CHATGPT_DEPLOYMENT": ("openai", "chat_deployment"),
        "AZURE_OPENAI_EMBEDDING_DEPLOYMENT": ("openai", "embedding_deployment"),
        "ANTHROPIC_API_KEY": ("openai", "anthropic_api_key"),
        "RAGCHAT_LLM_PROVIDER": ("openai", "provider"),
        "AZURE_SEARCH_SERVICE_ENDPOINT": ("search", "endpoint"),
        "AZURE_SEARCH_INDEX": ("search", "index"),
        "AZURE_SEARCH_API_KEY": ("search", "api_key"),
        "AZURE_STORAGE_ACCOUNT": ("storage", "account"),
        "AZURE_STORAGE_CONTAINER": ("storage", "container"),
    }
    for env_var, (section, attr) in _env_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(getattr(config, section), attr, val)
            config._env_sourced_keys.add(f"{section}.{attr}")

    # OPENAI_API_KEY only applies to the plain OpenAI provider; Azure uses AZURE_OPENAI_API_KEY
    if config.openai.provider == "openai" and os.getenv("OPENAI_API_KEY"):
        config.openai.api_key = os.getenv("OPENAI_API_KEY")
        config._env_sourced_keys.add("openai.api_key")

    if os.getenv("RAGCHAT_REFINE_WITH_HISTORY"):
        config.retriever.refine_with_history = _env_flag(os.getenv("RAGCHAT_REFINE_WITH_HISTORY"))

    return config


def save_config(config: RagConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    openai_section = {
        "provider": config.openai.provider,
        "endpoint": config.openai.endpoint,
        "api_key": config.openai.api_key,
        "api_version": config.openai.api_version,
        "chat_deployment": config.openai.chat_deployment,
        "embedding_deployment": config.openai.embedding_deployment,
        "anthropic_api_key": config.openai.anthropic_api_key,
    }
    search_section = {
        "endpoint": config.search.endpoint,
        "index": config.search.index,
        "api_key": config.search.api_key,
        "semantic_configuration": config.search.semantic_configuration,
        "query_language": config.search.query_language,
        "query_speller": config.search.query_speller,
        "source_field": config.search.source_field,
        "content_field": config.search.content_field,
        "embedding_field": config.search.embedding_field,
        "category_field": config.search.category_field,
    }
    for key in ("api_key", "anthropic_api_key"):
        if f"openai.{key}" in env_sourced:
            openai_section[key] = ""
    if "search.api_key" in env_sourced:
        search_section["api_key"] = ""

    data = {
        "openai": openai_section,
        "search": search_section,
        "storage": {
            "account": config.storage.account,
            "container": config.storage.container,
            "citation_base_url": config.storage.citation_base_url,
        },
        "retriever": {
            "refine_with_history": config.retriever.refine_with_history,
            "semantic_candidate_k": config.retriever.semantic_candidate_k,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)
