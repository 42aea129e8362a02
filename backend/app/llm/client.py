"""Completion API client with retries, error mapping and stream reassembly.

Security: Reads API key from environment only, never hardcoded.
Callers receive ``None`` from the dependency when no key is configured and
answer with their own fallback.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from functools import lru_cache
from typing import Any, Protocol

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from backend.app.config import get_settings
from backend.app.models.common import ChatMessage
from backend.app.utils.logging import StructuredCompletionLogger
from backend.app.utils.metrics import PrometheusCompletionMetrics

logger = logging.getLogger(__name__)

# Upstream statuses that never succeed on a second attempt
NON_RETRYABLE_STATUSES = frozenset({400, 401, 403, 404})


# Exception types
class CompletionError(Exception):
    """Completion request failed."""

    def __init__(
        self, message: str, *, retryable: bool = False, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class CompletionTimeoutError(CompletionError):
    """Completion request or stream exceeded its deadline.

    ``partial`` holds whatever text a stream produced before it went idle.
    """

    def __init__(self, message: str, *, partial: str = "") -> None:
        super().__init__(message, retryable=True)
        self.partial = partial


class StreamingNotSupportedError(CompletionError):
    """Caller received a stream where it needs a complete response."""


class RetryOptions(BaseModel):
    """Retry budget for one completion request (delays in seconds)."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0


DEFAULT_RETRY_OPTIONS = RetryOptions()


class CompletionRequest(BaseModel):
    """Chat completion request sent to the completion API."""

    model: str
    messages: list[ChatMessage]
    temperature: float = 0.7
    max_tokens: int = 1000
    response_format: dict[str, Any] | None = None
    stream: bool = False


class CompletionChoice(BaseModel):
    """One choice of a completion response."""

    index: int = 0
    message: ChatMessage
    finish_reason: str | None = None


class CompletionResponse(BaseModel):
    """Non-streaming completion response."""

    id: str = ""
    choices: list[CompletionChoice] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """Content of the first choice, or empty string."""
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""


class CompletionStream:
    """Incremental completion output.

    Wraps an async iterator of text deltas. ``iter_deltas()`` yields them as
    they arrive and ``collect()`` drains them into the full text. Both fail
    when no delta arrives within the idle timeout.
    """

    def __init__(self, deltas: AsyncIterator[str], idle_timeout_seconds: float = 30.0) -> None:
        self._deltas = deltas
        self._idle_timeout = idle_timeout_seconds

    def __aiter__(self) -> AsyncIterator[str]:
        return self._deltas

    async def iter_deltas(self) -> AsyncIterator[str]:
        """Yield non-empty deltas as they arrive.

        Raises:
            CompletionTimeoutError: No data received for the idle timeout
        """
        while True:
            try:
                delta = await asyncio.wait_for(self._deltas.__anext__(), timeout=self._idle_timeout)
            except StopAsyncIteration:
                return
            except TimeoutError as e:
                raise CompletionTimeoutError(
                    f"Stream timeout: No data received for {self._idle_timeout:g} seconds"
                ) from e
            if delta:
                yield delta

    async def collect(self) -> str:
        """Reassemble the stream into a single string.

        Raises:
            CompletionTimeoutError: No data received for the idle timeout;
                ``partial`` carries the text assembled so far.
        """
        parts: list[str] = []
        try:
            async for delta in self.iter_deltas():
                parts.append(delta)
        except CompletionTimeoutError as e:
            raise CompletionTimeoutError(str(e), partial="".join(parts)) from e
        return "".join(parts)


# Metrics interface (no-op default, Prometheus in utils.metrics)
class CompletionMetrics:
    """Interface for completion metrics."""

    def record_latency(self, purpose: str, outcome: str, latency_ms: float) -> None:
        """Record completion attempt latency."""
        pass

    def inc_error(self, purpose: str, reason: str) -> None:
        """Increment error counter."""
        pass


# Logging interface (no-op default, structured logger in utils.logging)
class CompletionLogger:
    """Interface for structured completion logging."""

    def log_attempt(
        self,
        purpose: str,
        model: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log completion attempt."""
        pass


class CompletionClient(Protocol):
    """Protocol for completion API clients."""

    async def complete(
        self,
        request: CompletionRequest,
        *,
        purpose: str = "chat",
        retry: RetryOptions | None = None,
    ) -> CompletionResponse | CompletionStream:
        """Send one completion request.

        Args:
            request: Model, messages and generation parameters
            purpose: Label for logs and metrics (chat, chunk_summary, ...)
            retry: Retry budget (default: 3 retries, 1s..10s, x2)

        Returns:
            CompletionResponse, or CompletionStream when ``request.stream`` is set

        Raises:
            CompletionError: After the retry budget is exhausted or on a
                non-retryable upstream error
        """
        ...


def map_upstream_error(error: Exception, model: str) -> CompletionError:
    """Translate an SDK exception into a CompletionError with a readable message."""
    if isinstance(error, CompletionError):
        return error
    if isinstance(error, openai.APITimeoutError):
        return CompletionTimeoutError("Network timeout while contacting the completion API")
    if isinstance(error, openai.APIConnectionError):
        return CompletionError(
            "Network error: could not reach the completion API", retryable=True
        )
    if isinstance(error, openai.RateLimitError):
        return CompletionError("Rate limited by the completion API", retryable=True, status_code=429)
    if isinstance(error, openai.APIStatusError):
        status = error.status_code
        if status == 400:
            text = str(error).lower()
            if "token limit" in text or "maximum context length" in text:
                message = (
                    "Your message exceeds the token limit. "
                    "Please try with a shorter message or fewer documents."
                )
            else:
                message = "Bad request: The API could not process your request."
        elif status == 401:
            message = "Authentication error: Invalid or missing API key"
        elif status == 403:
            message = "Permission denied: Your API key does not have access to the requested model"
        elif status == 404:
            message = f"Model not found: The requested model '{model}' is not available"
        elif status >= 500:
            message = "Server error: the completion API is experiencing issues. Please try again later."
        else:
            message = f"Completion API request failed with status {status}"
        return CompletionError(
            message, retryable=status not in NON_RETRYABLE_STATUSES, status_code=status
        )
    return CompletionError(f"{type(error).__name__}: {error}", retryable=True)


def _retry_after_seconds(error: Exception) -> float | None:
    """Read a Retry-After header (seconds) from a rate-limit error."""
    if not isinstance(error, openai.RateLimitError):
        return None
    value = error.response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def fallback_message(error: BaseException) -> str:
    """User-facing apology for a failed completion."""
    text = str(error).lower()
    message = "I'm sorry, I encountered an error while processing your request."
    status = error.status_code if isinstance(error, CompletionError) else None
    if "api key" in text or status == 401:
        return message + " The API connection is not configured correctly."
    if status == 429 or "rate limit" in text:
        return (
            message
            + " The service is currently experiencing high demand. Please try again in a few moments."
        )
    if isinstance(error, TimeoutError | CompletionTimeoutError) or "timeout" in text or "network" in text:
        return (
            message
            + " There seems to be a network connectivity issue. "
            "Please check your connection and try again."
        )
    if status is not None and status >= 500:
        return (
            message
            + " The AI service is currently experiencing technical difficulties. Please try again later."
        )
    return message + " Please try again later."


class OpenAICompletionClient:
    """Completion client backed by the OpenAI SDK (any compatible endpoint)."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        *,
        stream_idle_timeout_seconds: float = 30.0,
        metrics: CompletionMetrics | None = None,
        logger: CompletionLogger | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
        sdk_client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize client.

        Args:
            api_key: Bearer key (read from environment)
            base_url: Endpoint override, e.g. https://openrouter.ai/api/v1
            stream_idle_timeout_seconds: Inactivity limit for streamed responses
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
            sdk_client: Preconfigured AsyncOpenAI instance (tests)
        """
        # The SDK's own retries are disabled; the loop below owns the budget.
        self._client = sdk_client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            max_retries=0,
            default_headers={"X-Title": "AI-Dev Education Platform"},
        )
        self._stream_idle_timeout = stream_idle_timeout_seconds
        self._metrics = metrics or CompletionMetrics()
        self._logger = logger or CompletionLogger()
        self._sleep = sleep_fn or asyncio.sleep

    async def complete(
        self,
        request: CompletionRequest,
        *,
        purpose: str = "chat",
        retry: RetryOptions | None = None,
    ) -> CompletionResponse | CompletionStream:
        """Send request with exponential backoff on retryable failures."""
        options = retry or DEFAULT_RETRY_OPTIONS
        delay = options.initial_delay

        for attempt in range(options.max_retries + 1):
            attempt_start = time.monotonic()
            try:
                raw = await self._send(request)
            except Exception as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                error = map_upstream_error(e, request.model)
                reason = type(e).__name__
                self._metrics.inc_error(purpose, reason)
                self._metrics.record_latency(purpose, "error", elapsed_ms)
                self._logger.log_attempt(
                    purpose, request.model, attempt + 1, "error", elapsed_ms, error_reason=reason
                )

                if not error.retryable or attempt >= options.max_retries:
                    logger.error(
                        f"[completion] purpose={purpose} model={request.model} "
                        f"failed after {attempt + 1} attempt(s): {error}"
                    )
                    raise error from e

                wait = _retry_after_seconds(e)
                if wait is None:
                    wait = delay
                logger.warning(
                    f"[completion] purpose={purpose} attempt {attempt + 1}/"
                    f"{options.max_retries + 1} failed ({error}); retrying in {wait:.2f}s"
                )
                await self._sleep(wait)
                delay = min(delay * options.backoff_factor, options.max_delay)
                continue

            elapsed_ms = (time.monotonic() - attempt_start) * 1000
            self._metrics.record_latency(purpose, "success", elapsed_ms)
            self._logger.log_attempt(purpose, request.model, attempt + 1, "success", elapsed_ms)
            if request.stream:
                return CompletionStream(_iter_deltas(raw), self._stream_idle_timeout)
            return _to_response(raw)

        # Loop always returns or raises
        raise CompletionError("Completion retry loop exhausted")

    async def _send(self, request: CompletionRequest) -> Any:
        """Single SDK call."""
        kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": [m.model_dump() for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "stream": request.stream,
        }
        if request.response_format is not None:
            kwargs["response_format"] = request.response_format
        return await self._client.chat.completions.create(**kwargs)


def _to_response(raw: Any) -> CompletionResponse:
    """Convert an SDK ChatCompletion into a CompletionResponse."""
    choices = [
        CompletionChoice(
            index=choice.index,
            message=ChatMessage(role="assistant", content=choice.message.content or ""),
            finish_reason=choice.finish_reason,
        )
        for choice in raw.choices or []
    ]
    return CompletionResponse(id=raw.id or "", choices=choices)


async def _iter_deltas(raw: Any) -> AsyncIterator[str]:
    """Yield content deltas from an SDK chunk stream."""
    async for chunk in raw:
        if not chunk.choices:
            continue
        content = chunk.choices[0].delta.content
        if content:
            yield content


async def complete_text(
    client: CompletionClient,
    request: CompletionRequest,
    *,
    purpose: str,
    retry: RetryOptions | None = None,
) -> str:
    """Run a completion and return its text, reassembling a stream if one comes back."""
    result = await client.complete(request, purpose=purpose, retry=retry)
    if isinstance(result, CompletionStream):
        return await result.collect()
    return result.text


@lru_cache
def _build_client(api_key: str, base_url: str | None, idle_timeout: float) -> OpenAICompletionClient:
    return OpenAICompletionClient(
        api_key=api_key,
        base_url=base_url,
        stream_idle_timeout_seconds=idle_timeout,
        metrics=PrometheusCompletionMetrics(),
        logger=StructuredCompletionLogger(),
    )


def get_completion_client() -> CompletionClient | None:
    """Dependency returning the configured completion client.

    Returns:
        OpenAICompletionClient if an API key is configured, None otherwise
    """
    settings = get_settings()
    api_key = settings.openai_api_key

    if api_key is None or not api_key.get_secret_value():
        logger.warning("No completion API key configured")
        return None
    return _build_client(
        api_key.get_secret_value(), settings.openai_base_url, settings.stream_idle_timeout_seconds
    )
