"""
Utility modules for the well-being survey analytics system.
"""

from .llm import (
    LLMClient,
    LLMError,
    RateLimitError,
    ValidationError,
    APIError,
    create_llm_client,
)

__all__ = [
    'LLMClient',
    'LLMError',
    'RateLimitError',
    'ValidationError',
    'APIError',
    'create_llm_client',
]
