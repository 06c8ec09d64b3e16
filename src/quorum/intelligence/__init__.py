"""Model-backed collaborators for Quorum governance sessions.

This module wraps the Anthropic Messages API and implements the vagueness
classifier and the Setup, Quarterly and Quick generators on top of it.
"""

from quorum.intelligence.claude_client import (
    ClaudeAPIError,
    ClaudeClient,
    ClaudeClientError,
    ClaudeConnectionError,
    ClaudeResponse,
    ClaudeTimeoutError,
    GenerationError,
)
from quorum.intelligence.quarterly_ai import QuarterlyAIService
from quorum.intelligence.quick_ai import QuickAIService
from quorum.intelligence.setup_ai import DEFAULT_PERSONAS, SetupAIService
from quorum.intelligence.vagueness import (
    ClaudeVaguenessClassifier,
    HeuristicVaguenessClassifier,
)

__all__ = [
    # Claude client
    "ClaudeClient",
    "ClaudeResponse",
    "ClaudeClientError",
    "ClaudeTimeoutError",
    "ClaudeConnectionError",
    "ClaudeAPIError",
    "GenerationError",
    # Vagueness
    "ClaudeVaguenessClassifier",
    "HeuristicVaguenessClassifier",
    # Generators
    "SetupAIService",
    "QuarterlyAIService",
    "QuickAIService",
    "DEFAULT_PERSONAS",
]
