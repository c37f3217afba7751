"""
Prompt templates for the remote product matchers.
"""

from .matcher_prompt import (
    MATCHER_SYSTEM_PROMPT,
    create_matcher_system_prompt,
    create_matcher_user_prompt
)

__all__ = [
    "MATCHER_SYSTEM_PROMPT",
    "create_matcher_system_prompt",
    "create_matcher_user_prompt"
]
