"""Gemini API client with exponential backoff."""

import time
import random
import functools
from typing import Callable, Any, Optional

import google.generativeai as genai
from google.generativeai.types.generation_types import BlockedPromptException
from loguru import logger


BACKOFF_BASE_SECONDS = 1.0
BACKOFF_JITTER_RATIO = 0.1


def _backoff_delay(attempt: int) -> float:
    """Delay before the next attempt: 1s, 2s, 4s ... plus up to 10% jitter."""
    delay = BACKOFF_BASE_SECONDS * (2 ** (attempt - 1))
    return delay + random.uniform(0, delay * BACKOFF_JITTER_RATIO)


def _exponential_backoff(func: Callable) -> Callable:
    """
    Retry a scoring call up to the client's max_retries attempts.

    Safety blocks are final for a given entity snapshot, so
    BlockedPromptException is re-raised on the first attempt. The oracle
    adapter bounds the whole loop with its own timeout.
    """
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs) -> Any:
        attempts = self.max_retries

        for attempt in range(1, attempts + 1):
            try:
                return func(self, *args, **kwargs)
            except BlockedPromptException:
                raise
            except Exception as e:
                if attempt == attempts:
                    logger.bind(component="llm.gemini").error(
                        f"Gemini scoring call failed after {attempts} attempts: {e}"
                    )
                    raise

                wait = _backoff_delay(attempt)
                logger.bind(component="llm.gemini").warning(
                    f"Gemini scoring call failed (attempt {attempt}/{attempts}), "
                    f"retrying in {wait:.2f}s: {e}"
                )
                time.sleep(wait)

        raise RuntimeError(f"{func.__name__} made no attempts (max_retries={attempts})")

    return wrapper


class GeminiClient:
    """
    Google Gemini API client with retry and error handling.

    Built once at process start and injected wherever model calls are
    needed; there is no module-level instance.

    Attributes:
        model: Configured Gemini generative model instance
        model_name: Gemini model identifier
        max_retries: Attempts per call for transient failures
        request_timeout: Per-request timeout passed to the API, in seconds
    """

    def __init__(
        self,
        api_key: str,
        model_name: str,
        system_instruction: Optional[str] = None,
        max_retries: int = 2,
        request_timeout: Optional[float] = None,
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Google Gemini API key
            model_name: Gemini model identifier
            system_instruction: Optional system prompt for every call
            max_retries: Attempts per call (1 disables retrying)
            request_timeout: Optional per-request timeout in seconds

        Raises:
            ValueError: If api_key is empty
        """
        if not api_key:
            raise ValueError("GEMINI_API_KEY not configured in environment")

        genai.configure(api_key=api_key)

        self.model_name = model_name
        self.max_retries = max(1, max_retries)
        self.request_timeout = request_timeout
        self.model = genai.GenerativeModel(
            model_name,
            system_instruction=system_instruction,
        )

        logger.bind(component="llm.gemini").info(
            f"Gemini client initialized with model {model_name}"
        )

    @_exponential_backoff
    def generate_content(self, prompt: str, temperature: float = 0.2) -> str:
        """
        Generate content from Gemini API with exponential backoff.

        Args:
            prompt: Input prompt for content generation
            temperature: Sampling temperature (0.0-1.0). Lower = more deterministic

        Returns:
            Generated text content

        Raises:
            BlockedPromptException: If prompt violates safety policies
            Exception: For other API errors after retries exhausted
        """
        request_options = {}
        if self.request_timeout:
            request_options["timeout"] = self.request_timeout

        try:
            response = self.model.generate_content(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    temperature=temperature,
                ),
                request_options=request_options or None,
            )
            return response.text
        except BlockedPromptException as e:
            logger.error(f"Prompt blocked by safety filters: {e}")
            raise
