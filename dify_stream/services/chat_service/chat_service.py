"""
Chat Service Module

This module provides the ChatService class that coordinates one logical chat
call against the Dify backend, in streaming or blocking mode.

The ChatService is the central orchestrator of the client. For every call it:
- Validates configuration and the request
- Applies rate limiting and request deduplication
- Sends the request under either the caller's cancel event or an internal timeout
- Drives the stream processor (streaming) or parses the JSON body (blocking)
- Classifies failures, records metrics and returns or streams a ChatResult

Error propagation differs by mode: streaming calls report every failure
through `on_error` and never raise, blocking calls raise ChatClientError.
A cancellation requested through the cancel event is neither a success nor
an error: the streaming call simply stops.
"""

import asyncio
import json
import time
from typing import Any, AsyncIterator, Callable, Dict, Optional, Union

import httpx

from ...core.config_manager import ConfigManager, EVENT_STREAM
from ...core.error_handling import ErrorHandler, ErrorContext
from ...core.exceptions import ChatClientError, RequestCancelledError
from ...core.logging import logger
from ...utils.cancellation import race_cancellation
from ...utils.generate_key import generate_request_id
from ..chat.identity import IdentityProvider, SessionIdentityProvider
from ..chat.models import ChatRequest, ChatResult, ResponseMode, StreamingCallbacks
from ..chat.request_builder import build_request_payload
from ..performance import RateLimiter, ResponseCache, RequestDeduplicator, PerformanceTracker
from .stream_channel import StreamUpdate, stream_updates
from .stream_processor import StreamProcessor


class ChatService:
    """
    Main service for coordinating chat calls.

    The rate limiter, response cache, performance tracker and deduplicator
    are owned by the service and shared by every call made through it. They
    are built from configuration unless passed in explicitly, and are only
    reset through reset_performance_state() (the rate window through
    rate_limiter.reset()).
    """

    def __init__(self,
                 config_manager: ConfigManager,
                 httpx_client: httpx.AsyncClient,
                 rate_limiter: Optional[RateLimiter] = None,
                 response_cache: Optional[ResponseCache] = None,
                 performance_tracker: Optional[PerformanceTracker] = None,
                 deduplicator: Optional[RequestDeduplicator] = None,
                 identity_provider: Optional[IdentityProvider] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize ChatService.

        Args:
            config_manager: Source of backend URL, credential, timeout and limits
            httpx_client: Async HTTP client used for every backend call
            rate_limiter: Admission control, defaults to the configured limit
            response_cache: Cache for blocking results, defaults to configured size/TTL
            performance_tracker: Metrics aggregate
            deduplicator: Registry of in-flight calls
            identity_provider: Supplies `user` when a request has none
            clock: Monotonic time source in seconds, used for latency
        """
        self.config_manager = config_manager
        self.httpx_client = httpx_client
        self.rate_limiter = rate_limiter or RateLimiter(
            config_manager.rate_limit_per_minute, config_manager.rate_limit_window
        )
        self.response_cache = response_cache or ResponseCache(
            max_size=config_manager.cache_max_size,
            ttl=config_manager.cache_ttl,
            enabled=config_manager.cache_enabled
        )
        self.performance_tracker = performance_tracker or PerformanceTracker()
        self.deduplicator = deduplicator or RequestDeduplicator()
        self.identity_provider = identity_provider or SessionIdentityProvider()
        self.clock = clock
        self.stream_processor = StreamProcessor(
            flush_interval=config_manager.flush_interval,
            progress_divisor=config_manager.progress_divisor
        )

    # ==================== STREAMING ====================

    async def send_streaming_chat(self,
                                  request: ChatRequest,
                                  callbacks: StreamingCallbacks,
                                  cancel_event: Optional[asyncio.Event] = None) -> None:
        """
        Stream one chat answer through `callbacks`.

        Never raises for chat failures: they are delivered to `callbacks.on_error`.
        When `cancel_event` is given it governs the whole call and the internal
        timeout is not installed.

        Args:
            request: The chat request
            callbacks: on_start, on_message, on_progress, on_complete, on_error
            cancel_event: Caller-controlled cancellation
        """
        # The timestamp keeps sequential identical queries apart; only truly
        # concurrent duplicates collapse.
        request_key = f"stream_{request.query}_{int(time.time() * 1000)}"
        await self.deduplicator.deduplicate(
            request_key,
            lambda: self._run_streaming_chat(request, callbacks, cancel_event)
        )

    def stream_chat(self,
                    request: ChatRequest,
                    cancel_event: Optional[asyncio.Event] = None) -> AsyncIterator[StreamUpdate]:
        """
        Async iterator form of send_streaming_chat.

        Yields StreamUpdate items in callback order. Ends after COMPLETE or
        ERROR, or without either when the call was cancelled. Closing the
        iterator early cancels the call and waits for its cleanup.
        """
        return stream_updates(
            lambda callbacks: self.send_streaming_chat(request, callbacks, cancel_event)
        )

    async def _run_streaming_chat(self,
                                  request: ChatRequest,
                                  callbacks: StreamingCallbacks,
                                  cancel_event: Optional[asyncio.Event]) -> None:
        start_time = self.clock()
        request_id = generate_request_id()
        context = ErrorContext(
            request_id=request_id,
            response_mode=ResponseMode.STREAMING.value,
            conversation_id=request.conversation_id
        )

        try:
            payload = self._admit(request, ResponseMode.STREAMING, context)
        except ChatClientError as e:
            callbacks.on_error(e)
            return

        url = self.config_manager.get_chat_url()
        headers = self.config_manager.get_headers({"Accept": EVENT_STREAM})

        logger.request(
            operation="Streaming chat",
            request_id=request_id,
            url=url,
            response_mode=ResponseMode.STREAMING.value,
            query_length=len(payload["query"]),
            has_conversation_id="conversation_id" in payload
        )
        logger.debug_data(
            title="Streaming chat request body",
            data=payload,
            request_id=request_id,
            component="chat_service",
            data_flow="to_backend"
        )

        self.rate_limiter.record_request()
        callbacks.emit_start()

        try:
            result = await self._stream_response(url, headers, payload, callbacks, cancel_event, context, start_time)
        except RequestCancelledError:
            logger.info(
                "Streaming chat cancelled by caller",
                request_id=request_id,
                latency_ms=self._elapsed_ms(start_time)
            )
            return
        except ChatClientError as e:
            self.performance_tracker.record_request(False, self._elapsed_ms(start_time))
            callbacks.on_error(e)
            return

        self.performance_tracker.record_request(True, result.latency_ms)
        logger.response(
            operation="Streaming chat completed",
            request_id=request_id,
            latency_ms=result.latency_ms,
            token_estimate=result.token_estimate
        )
        callbacks.on_complete(result)

    async def _stream_response(self,
                               url: str,
                               headers: Dict[str, str],
                               payload: Dict[str, Any],
                               callbacks: StreamingCallbacks,
                               cancel_event: Optional[asyncio.Event],
                               context: ErrorContext,
                               start_time: float) -> ChatResult:
        """Send the request and consume the event stream. Raises ChatClientError or RequestCancelledError."""
        timeout_seconds = self.config_manager.timeout
        http_request = self.httpx_client.build_request(
            "POST", url,
            headers=headers,
            json=payload,
            timeout=None if cancel_event is not None else self._stream_timeout(timeout_seconds)
        )

        try:
            if cancel_event is not None:
                response = await race_cancellation(self.httpx_client.send(http_request, stream=True), cancel_event)
            else:
                response = await asyncio.wait_for(
                    self.httpx_client.send(http_request, stream=True),
                    timeout=timeout_seconds
                )
        except RequestCancelledError:
            raise
        except Exception as e:
            raise ErrorHandler.classify_exception(e, context, timeout_seconds)

        try:
            logger.response(
                operation="Streaming response received",
                request_id=context.request_id,
                status_code=response.status_code,
                latency_ms=self._elapsed_ms(start_time)
            )

            if not response.is_success:
                response_text = await self._read_error_body(response)
                raise ErrorHandler.handle_api_error(response.status_code, context, response_text)

            try:
                outcome = await self.stream_processor.process_stream(
                    response.aiter_bytes(), callbacks, context.request_id, cancel_event
                )
            except (RequestCancelledError, ChatClientError):
                raise
            except Exception as e:
                raise ErrorHandler.classify_exception(e, context, timeout_seconds, during_stream=True)
        finally:
            await response.aclose()

        return ChatResult.build(
            outcome.full_message,
            outcome.conversation_id,
            outcome.message_id,
            self._elapsed_ms(start_time)
        )

    # ==================== BLOCKING ====================

    async def send_blocking_chat(self, request: ChatRequest) -> ChatResult:
        """
        Send one chat request and return the complete answer.

        Identical (query, conversation) calls are served from the response
        cache while fresh and collapse into one backend call while in flight.

        Raises:
            ChatClientError: On any failure
        """
        cache_key = self.blocking_cache_key(request)
        return await self.deduplicator.deduplicate(
            cache_key,
            lambda: self._run_blocking_chat(request, cache_key)
        )

    @staticmethod
    def blocking_cache_key(request: ChatRequest) -> str:
        return f"blocking_{(request.query or '').strip()}_{request.conversation_id or 'new'}"

    async def _run_blocking_chat(self, request: ChatRequest, cache_key: str) -> ChatResult:
        start_time = self.clock()
        request_id = generate_request_id()
        context = ErrorContext(
            request_id=request_id,
            response_mode=ResponseMode.BLOCKING.value,
            conversation_id=request.conversation_id
        )

        cached = self.response_cache.get(cache_key)
        if cached is not None:
            logger.info("Cache hit for blocking request", request_id=request_id, cache_key=cache_key)
            self.performance_tracker.record_request(True, 0, cache_hit=True)
            return cached

        payload = self._admit(request, ResponseMode.BLOCKING, context)
        url = self.config_manager.get_chat_url()
        headers = self.config_manager.get_headers()
        timeout_seconds = self.config_manager.timeout

        self.rate_limiter.record_request()

        try:
            with logger.request_context(
                operation="Blocking chat",
                request_id=request_id,
                url=url,
                response_mode=ResponseMode.BLOCKING.value,
                query_length=len(payload["query"])
            ):
                response = await asyncio.wait_for(
                    self.httpx_client.post(url, headers=headers, json=payload, timeout=timeout_seconds),
                    timeout=timeout_seconds
                )
                latency_ms = self._elapsed_ms(start_time)
                logger.response(
                    operation="Blocking response received",
                    request_id=request_id,
                    status_code=response.status_code,
                    latency_ms=latency_ms
                )

                if not response.is_success:
                    raise ErrorHandler.handle_api_error(response.status_code, context, response.text)

                result = self._parse_blocking_body(response.text, latency_ms, context)
        except ChatClientError:
            self.performance_tracker.record_request(False, self._elapsed_ms(start_time))
            raise
        except Exception as e:
            self.performance_tracker.record_request(False, self._elapsed_ms(start_time))
            raise ErrorHandler.classify_exception(e, context, timeout_seconds)

        self.response_cache.set(cache_key, result)
        self.performance_tracker.record_request(True, result.latency_ms)
        return result

    def _parse_blocking_body(self, response_text: str, latency_ms: int, context: ErrorContext) -> ChatResult:
        try:
            data = json.loads(response_text)
        except json.JSONDecodeError as e:
            raise ErrorHandler.handle_parse_error("Invalid JSON response from API", context, e)

        if not isinstance(data, dict):
            raise ErrorHandler.handle_parse_error("Invalid JSON response from API", context)

        logger.debug_data(
            title="Blocking response body",
            data=data,
            request_id=context.request_id,
            component="chat_service",
            data_flow="from_backend"
        )

        answer = data.get("answer") or ""
        return ChatResult.build(
            answer if isinstance(answer, str) else str(answer),
            data.get("conversation_id"),
            data.get("message_id") or data.get("id"),
            latency_ms
        )

    # ==================== SHARED ====================

    def _admit(self, request: ChatRequest, response_mode: ResponseMode, context: ErrorContext) -> Dict[str, Any]:
        """
        Pre-flight checks shared by both modes: configuration, rate limit, request.

        Nothing here awaits, so the admission check and the caller's
        record_request() cannot interleave with another call.
        """
        validation = self.config_manager.validate()
        if not validation.is_valid:
            raise ErrorHandler.handle_config_error(validation.issues, context)
        for warning in validation.warnings:
            logger.warning(f"Configuration warning: {warning}", request_id=context.request_id)

        if not self.rate_limiter.can_make_request():
            self.performance_tracker.record_rate_limit_hit()
            raise ErrorHandler.handle_rate_limit_error(context)

        payload = build_request_payload(request, response_mode, self.identity_provider, context)
        context.user_id = payload["user"]
        return payload

    async def call_chat(self,
                        mode: Union[ResponseMode, str],
                        request: ChatRequest,
                        callbacks: Optional[StreamingCallbacks] = None,
                        cancel_event: Optional[asyncio.Event] = None) -> Optional[ChatResult]:
        """Dispatch to the streaming or blocking call by mode."""
        if ResponseMode(mode) is ResponseMode.STREAMING:
            if callbacks is None:
                raise ErrorHandler.handle_config_error(
                    ["Callbacks are required for streaming mode"], ErrorContext(response_mode="streaming")
                )
            await self.send_streaming_chat(request, callbacks, cancel_event)
            return None
        return await self.send_blocking_chat(request)

    def get_performance_snapshot(self) -> Dict[str, Any]:
        """Metrics plus the remaining rate budget and the current cache size."""
        snapshot = self.performance_tracker.get_metrics().to_dict()
        snapshot["rate_limit_remaining"] = self.rate_limiter.get_remaining_requests()
        snapshot["cache_size"] = len(self.response_cache)
        snapshot["pending_requests"] = self.deduplicator.pending_count()
        return snapshot

    def reset_performance_state(self):
        """Clear the cache, the metrics and the pending-request registry."""
        self.response_cache.clear()
        self.performance_tracker.reset()
        self.deduplicator.clear()
        logger.info("Performance data reset")

    @staticmethod
    def _stream_timeout(timeout_seconds: float) -> httpx.Timeout:
        # read bounds the gap between chunks, not the whole stream
        return httpx.Timeout(connect=10.0, read=timeout_seconds, write=10.0, pool=10.0)

    @staticmethod
    async def _read_error_body(response: httpx.Response) -> Optional[str]:
        try:
            await response.aread()
            return response.text
        except httpx.HTTPError:
            return None

    def _elapsed_ms(self, start_time: float) -> int:
        return max(0, int((self.clock() - start_time) * 1000))
