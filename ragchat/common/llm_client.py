"""
Provider-agnostic async chat-completion client for ragchat.

Supports Azure OpenAI, OpenAI and Anthropic behind one interface: a system
instruction plus an ordered list of user/assistant messages in, a list of
ranked completion choices out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import ConfigurationMissingError, UpstreamCallError

logger = logging.getLogger("ragchat.common.llm_client")

SUPPORTED_PROVIDERS = ("azure", "openai", "anthropic")


@dataclass
class ChatChoice:
    """One ranked completion returned by the model"""
    content: str
    finish_reason: Optional[str] = None


def user_message(content: str) -> Dict[str, str]:
    return {"role": "user", "content": content}


def assistant_message(content: str) -> Dict[str, str]:
    return {"role": "assistant", "content": content}


class ChatClient:
    """Unified async chat completion across LLM providers."""

    def __init__(
        self,
        provider: str = "azure",
        model: str = "",
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        api_version: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        max_tokens: int = 1024,
        client: Any = None,
    ) -> None:
        """
        Args:
            provider: "azure", "openai" or "anthropic"
            model: Model name, or deployment name for Azure OpenAI
            api_key: OpenAI / Azure OpenAI key
            endpoint: Azure OpenAI resource endpoint
            api_version: Azure OpenAI API version
            anthropic_api_key: Anthropic key
            max_tokens: Completion token limit per call
            client: Pre-built SDK client to share (skips construction)
        """
        self.provider = (provider or "azure").lower()
        self.model = model
        self._max_tokens = max_tokens
        self._client = client

        if self.provider not in SUPPORTED_PROVIDERS:
            logger.warning("Unsupported LLM provider: %s", self.provider)
            self._client = None
            return
        if self._client is not None:
            return

        if self.provider == "azure":
            if not api_key or not endpoint:
                logger.info("%s endpoint or API key not provided, chat client unavailable", self.provider)
                return
            try:
                from openai import AsyncAzureOpenAI

                # SDK retries disabled: a failed call fails the reply
                self._client = AsyncAzureOpenAI(
                    azure_endpoint=endpoint,
                    api_key=api_key,
                    api_version=api_version,
                    max_retries=0,
                )
            except ImportError:
                logger.warning("openai package not installed")
            return

        if self.provider == "openai":
            if not api_key:
                logger.info("%s API key not provided, chat client unavailable", self.provider)
                return
            try:
                from openai import AsyncOpenAI

                self._client = AsyncOpenAI(api_key=api_key, max_retries=0)
            except ImportError:
                logger.warning("openai package not installed")
            return

        if not anthropic_api_key:
            logger.info("%s API key not provided, chat client unavailable", self.provider)
            return
        try:
            import anthropic

            self._client = anthropic.AsyncAnthropic(api_key=anthropic_api_key, max_retries=0)
        except ImportError:
            logger.warning("anthropic package not installed")

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def complete(
        self,
        system: str,
        messages: List[Dict[str, str]],
    ) -> List[ChatChoice]:
        """Run one chat completion call.

        Returns every choice the service produced, in rank order. SDK errors
        are raised as UpstreamCallError; cancellation is not intercepted.
        """
        if not self.is_available:
            raise ConfigurationMissingError(f"{self.provider} chat client credentials")

        try:
            if self.provider == "anthropic":
                response = await self._client.messages.create(
                    model=self.model,
                    max_tokens=self._max_tokens,
                    system=system,
                    messages=messages,
                )
                text = "".join(
                    block.text for block in response.content if getattr(block, "type", "text") == "text"
                )
                return [ChatChoice(content=text, finish_reason=response.stop_reason)]

            response = await self._client.chat.completions.create(
                model=self.model,
                max_tokens=self._max_tokens,
                messages=[{"role": "system", "content": system}] + list(messages),
            )
        except Exception as e:
            logger.error("%s chat completion failed: %s", self.provider, e)
            raise UpstreamCallError("chat", str(e)) from e

        return [
            ChatChoice(content=choice.message.content or "", finish_reason=choice.finish_reason)
            for choice in response.choices
        ]
