"""Prompt templates for the scoring oracle.

Modules:
    verification_prompts: System prompt and per-kind scoring prompts
"""

from verification_system.config.prompts.verification_prompts import (
    VERIFICATION_SYSTEM_PROMPT,
    SCHOOL_VERIFICATION_PROMPT,
    STUDENT_VERIFICATION_PROMPT,
    REQUEST_VERIFICATION_PROMPT,
    COLLEGE_VERIFICATION_PROMPT,
    VERIFICATION_PROMPTS,
)

__all__ = [
    "VERIFICATION_SYSTEM_PROMPT",
    "SCHOOL_VERIFICATION_PROMPT",
    "STUDENT_VERIFICATION_PROMPT",
    "REQUEST_VERIFICATION_PROMPT",
    "COLLEGE_VERIFICATION_PROMPT",
    "VERIFICATION_PROMPTS",
]
