"""
Error taxonomy for the chat pipeline.

Every failure aborts the whole reply. Callers tell the kinds apart by class:
- ValidationError: bad request input, raised before any upstream call
- UpstreamCallError: chat, embedding or search service call failed
- ContractViolationError: model output does not have the required shape
- ConfigurationMissingError: required setting absent at construction time
"""

from typing import Optional


class RagError(Exception):
    """Base class for all ragchat errors."""
    pass


class ValidationError(RagError):
    """Request input is invalid (e.g. the last turn has no question)."""
    pass


class UpstreamCallError(RagError):
    """A chat, embedding or search call failed."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class ContractViolationError(RagError):
    """Model response violates the structured-output contract."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class ConfigurationMissingError(RagError):
    """A required configuration value is missing."""

    def __init__(self, setting: str):
        super().__init__(f"Missing required configuration: {setting}")
        self.setting = setting
