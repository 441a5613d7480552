"""LLM client utilities with async support, retry logic, and structured output parsing."""

import asyncio
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, TypeVar, Union

import aiohttp
import google.genai as genai
from google.genai import types as genai_types
from pydantic import BaseModel, ValidationError as PydanticValidationError


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

JSON_BLOCK_PATTERN = re.compile(r'```(?:json)?\s*(\{.*?\})\s*```', re.DOTALL)
JSON_OBJECT_PATTERN = re.compile(r'\{.*\}', re.DOTALL)


class LLMError(Exception):
    """Base exception for LLM-related errors."""
    pass


class RateLimitError(LLMError):
    """Exception raised when rate limit is exceeded."""
    pass


class ValidationError(LLMError):
    """Exception raised when LLM response doesn't match expected schema."""
    pass


class APIError(LLMError):
    """Exception raised for API-specific errors."""
    pass


@dataclass
class LLMRequest:
    """Represents a single LLM request."""
    prompt: str
    response_format: Optional[Type[BaseModel]] = None
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class LLMResponse:
    """Represents a single LLM response."""
    content: str
    parsed_data: Optional[BaseModel] = None
    metadata: Optional[Dict[str, Any]] = None
    latency_ms: Optional[float] = None
    token_usage: Optional[Dict[str, int]] = None


def extract_json(content: str) -> Optional[str]:
    """Extract a JSON object from LLM response content.

    Fenced ```json blocks win; otherwise the span from the first '{' to the
    last '}' is returned.
    """
    match = JSON_BLOCK_PATTERN.search(content)
    if match:
        return match.group(1)

    match = JSON_OBJECT_PATTERN.search(content)
    if match:
        return match.group(0)

    return None


def parse_structured(content: str, response_format: Type[T]) -> Optional[T]:
    """Parse response content into the requested Pydantic model."""
    try:
        json_str = extract_json(content)
        if json_str:
            return response_format.model_validate(json.loads(json_str))
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise ValidationError(f"Failed to parse LLM response: {e}")
    return None


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def call_single(self, request: LLMRequest) -> LLMResponse:
        """Make a single LLM call."""
        pass


class ClaudeLLMProvider(LLMProvider):
    """Claude API provider implementation."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-sonnet-20241022",
        base_url: str = "https://api.anthropic.com/v1/messages",
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 60.0
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

    async def call_single(self, request: LLMRequest) -> LLMResponse:
        """Make a single Claude API call with retry logic."""
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01"
        }

        payload = {
            "model": self.model,
            "max_tokens": request.max_tokens or 1024,
            "temperature": request.temperature,
            "messages": [
                {"role": "user", "content": request.prompt}
            ]
        }

        start_time = time.time()

        for attempt in range(self.max_retries + 1):
            try:
                async with aiohttp.ClientSession() as session:
                    async with session.post(
                        self.base_url,
                        headers=headers,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout)
                    ) as response:

                        if response.status == 429:
                            raise RateLimitError("Rate limit exceeded")
                        elif response.status >= 400:
                            error_text = await response.text()
                            raise APIError(f"Claude API error ({response.status}): {error_text}")

                        response_data = await response.json()
                        content = response_data.get("content", [{}])[0].get("text", "")

                        parsed_data = None
                        if request.response_format and content:
                            parsed_data = parse_structured(content, request.response_format)

                        return LLMResponse(
                            content=content,
                            parsed_data=parsed_data,
                            latency_ms=(time.time() - start_time) * 1000,
                            token_usage=response_data.get("usage", {})
                        )

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt == self.max_retries:
                    raise APIError(f"API call failed after {self.max_retries} retries: {e}")
                await asyncio.sleep(self.retry_delay * (2 ** attempt))


class GeminiLLMProvider(LLMProvider):
    """Google Gemini API provider implementation."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 60.0
    ):
        self.api_key = api_key
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.client = genai.Client(api_key=api_key)

    async def call_single(self, request: LLMRequest) -> LLMResponse:
        """Make a single Gemini API call with retry logic."""
        start_time = time.time()

        generation_config = {
            "temperature": request.temperature,
        }
        if request.max_tokens:
            generation_config["max_output_tokens"] = request.max_tokens

        prompt = request.prompt
        if request.response_format:
            schema = request.response_format.model_json_schema()
            prompt += f"\n\nPlease respond with valid JSON that matches this schema:\n```json\n{json.dumps(schema, indent=2)}\n```"

        for attempt in range(self.max_retries + 1):
            try:
                response = await asyncio.wait_for(
                    asyncio.to_thread(
                        self.client.models.generate_content,
                        model=self.model,
                        contents=prompt,
                        config=genai_types.GenerateContentConfig(**generation_config)
                    ),
                    timeout=self.timeout
                )
            except Exception as e:
                error_str = str(e).lower()

                if "rate limit" in error_str or "quota" in error_str or "429" in error_str:
                    if attempt < self.max_retries:
                        wait_time = self.retry_delay * (2 ** attempt)
                        logger.warning(f"Gemini rate limit hit, waiting {wait_time}s before retry")
                        await asyncio.sleep(wait_time)
                        continue
                    raise RateLimitError("Gemini rate limit exceeded")

                if "api key" in error_str or "invalid" in error_str:
                    raise APIError(f"Gemini API error: {e}")

                if attempt == self.max_retries:
                    raise APIError(f"Gemini API call failed after {self.max_retries} retries: {e}")

                await asyncio.sleep(self.retry_delay * (2 ** attempt))
                continue

            content = response.text or ""

            parsed_data = None
            if request.response_format and content:
                parsed_data = parse_structured(content, request.response_format)

            token_usage = {}
            usage = getattr(response, 'usage_metadata', None)
            if usage is not None:
                token_usage = {
                    "input_tokens": getattr(usage, 'prompt_token_count', 0) or 0,
                    "output_tokens": getattr(usage, 'candidates_token_count', 0) or 0,
                    "total_tokens": getattr(usage, 'total_token_count', 0) or 0
                }

            return LLMResponse(
                content=content,
                parsed_data=parsed_data,
                latency_ms=(time.time() - start_time) * 1000,
                token_usage=token_usage
            )


class LLMClient:
    """High-level client for LLM operations with built-in retry and error handling."""

    def __init__(
        self,
        provider: LLMProvider,
        default_retry_count: int = 3,
        default_retry_delay: float = 1.0,
        rate_limit_delay: float = 2.0
    ):
        self.provider = provider
        self.default_retry_count = default_retry_count
        self.default_retry_delay = default_retry_delay
        self.rate_limit_delay = rate_limit_delay

    async def call(
        self,
        prompt: str,
        response_format: Optional[Type[T]] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        retry_count: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Union[LLMResponse, T]:
        """Make a single LLM call with retry logic.

        Returns the parsed model when a response_format was requested and the
        content matched it, otherwise the raw LLMResponse.
        """
        request = LLMRequest(
            prompt=prompt,
            response_format=response_format,
            temperature=temperature,
            max_tokens=max_tokens,
            metadata=metadata or {}
        )

        retry_count = self.default_retry_count if retry_count is None else retry_count

        for attempt in range(retry_count + 1):
            try:
                response = await self.provider.call_single(request)

                logger.info(
                    "LLM call completed",
                    extra={
                        "prompt_length": len(prompt),
                        "response_length": len(response.content),
                        "latency_ms": response.latency_ms,
                        "attempt": attempt + 1,
                        "tokens": response.token_usage,
                        "has_structured_output": response.parsed_data is not None
                    }
                )

                return response.parsed_data if response.parsed_data else response

            except RateLimitError:
                if attempt == retry_count:
                    raise
                logger.warning(f"Rate limit hit, waiting {self.rate_limit_delay}s before retry")
                await asyncio.sleep(self.rate_limit_delay)
            except ValidationError as e:
                if attempt == retry_count:
                    logger.error(f"Validation failed after {retry_count} retries: {e}")
                    raise
                logger.warning(f"Validation error on attempt {attempt + 1}, retrying: {e}")
                await asyncio.sleep(self.default_retry_delay * (attempt + 1))
            except LLMError as e:
                if attempt == retry_count:
                    logger.error(f"LLM call failed after {retry_count} retries: {e}")
                    raise
                logger.warning(f"Error on attempt {attempt + 1}, retrying: {e}")
                await asyncio.sleep(self.default_retry_delay * (attempt + 1))


def create_llm_client(
    provider_type: Optional[str] = None,
    api_key: Optional[str] = None,
    config=None,
    **kwargs
) -> LLMClient:
    """Create an LLM client with the specified provider.

    If provider_type is None, the configured provider is used, or one is
    auto-selected from whichever API key is set (Gemini first, then Claude).
    Requires a valid API key - no mock fallback.
    """
    if config is None:
        from wellbeing_survey.config import LLMConfig
        config = LLMConfig()

    provider_type = provider_type or config.llm_provider
    if provider_type is None:
        if config.gemini_api_key:
            provider_type = "gemini"
        elif config.anthropic_api_key:
            provider_type = "claude"
        else:
            raise ValueError(
                "No LLM API key found in environment. Please set one of:\n"
                "- GEMINI_API_KEY (recommended)\n"
                "- ANTHROPIC_API_KEY\n"
                "\nGet a Gemini API key at: https://aistudio.google.com/apikey"
            )

    provider_kwargs = {
        "max_retries": config.max_retries,
        "retry_delay": config.retry_delay,
        "timeout": config.request_timeout,
        **kwargs
    }

    if provider_type == "gemini":
        api_key = api_key or config.gemini_api_key
        if not api_key:
            raise ValueError("API key required for Gemini provider")
        provider_kwargs.setdefault("model", config.gemini_model)
        provider = GeminiLLMProvider(api_key=api_key, **provider_kwargs)
    elif provider_type == "claude":
        api_key = api_key or config.anthropic_api_key
        if not api_key:
            raise ValueError("API key required for Claude provider")
        provider = ClaudeLLMProvider(api_key=api_key, **provider_kwargs)
    else:
        raise ValueError(f"Unknown provider type: {provider_type}. Supported: gemini, claude")

    return LLMClient(
        provider=provider,
        default_retry_count=config.max_retries,
        default_retry_delay=config.retry_delay
    )
