"""
Gemini Cloud Provider.
Streams chat turns from the Generative Language REST API
(``models/{model}:streamGenerateContent?alt=sse``). Fragments arrive as
deltas and are passed through unmodified.
"""

import httpx
import json
import logging
import time
from typing import Optional, List, Dict, Any, AsyncGenerator

from .base import GenerationProvider
from ..core.errors import ConfigurationError, NetworkError
from ..models.session import Backend, Message, Role

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a helpful, clever, and knowledgeable AI assistant. "
    "Responses should be formatted in Markdown."
)


class GeminiCloudProvider(GenerationProvider):
    """
    Provider for the network-hosted Gemini model.
    ``is_configured`` is decided once, at construction.
    """

    backend = Backend.CLOUD

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 120.0,
        log_calls: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: Credential; None or empty leaves the provider unconfigured
            model: Model name used in the request path
            base_url: API root
            timeout: httpx timeout for the whole request
            log_calls: Log stream start/completion with timings
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._api_key = api_key or ""
        self.is_configured = bool(self._api_key)
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.log_calls = log_calls
        self._transport = transport

    async def probe(self) -> bool:
        return self.is_configured

    def _get_headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }

    def _stream_url(self) -> str:
        return f"{self.base_url}/models/{self.model}:streamGenerateContent?alt=sse"

    @staticmethod
    def _format_history(history: List[Message]) -> List[Dict[str, Any]]:
        """Convert session history to Gemini ``contents``. System and error messages are dropped."""
        return [
            {
                "role": "user" if m.role == Role.USER else "model",
                "parts": [{"text": m.content}],
            }
            for m in history
            if m.role != Role.SYSTEM and not m.is_error
        ]

    def _build_payload(self, history: List[Message], new_message: str) -> Dict[str, Any]:
        contents = self._format_history(history)
        contents.append({"role": "user", "parts": [{"text": new_message}]})
        return {
            "contents": contents,
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
        }

    @staticmethod
    def _extract_text(chunk: Dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = chunk.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    @staticmethod
    def _upstream_error(status_code: int, body: bytes) -> str:
        """Best-effort human message from an error response body."""
        text = body.decode("utf-8", errors="ignore")
        try:
            payload = json.loads(text)
            error = payload[0]["error"] if isinstance(payload, list) else payload["error"]
            return f"{error.get('message', text)} (HTTP {status_code})"
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            return f"{text.strip() or 'Request failed'} (HTTP {status_code})"

    async def stream_response(
        self,
        history: List[Message],
        new_message: str,
    ) -> AsyncGenerator[str, None]:
        """Stream a chat turn. Raises ConfigurationError or NetworkError."""
        if not self.is_configured:
            raise ConfigurationError("API Key is missing. Cannot use Cloud mode.")

        start_time = time.time()
        payload = self._build_payload(history, new_message)

        if self.log_calls:
            logger.debug(
                f"LLM API stream starting: provider=gemini, model={self.model}, "
                f"{len(payload['contents'])} contents"
            )

        accumulated_length = 0
        usage_data: Dict[str, Any] = {}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                async with client.stream(
                    "POST", self._stream_url(), json=payload, headers=self._get_headers()
                ) as response:
                    if response.is_error:
                        body = await response.aread()
                        raise NetworkError(self._upstream_error(response.status_code, body))

                    async for line in response.aiter_lines():
                        # SSE format: "data: {json}"; blank lines separate events
                        if not line.startswith("data:"):
                            continue
                        data_str = line[5:].strip()
                        if not data_str:
                            continue

                        try:
                            chunk = json.loads(data_str)
                        except json.JSONDecodeError as e:
                            raise NetworkError(f"Malformed stream chunk from Gemini: {e}") from e
                        if not isinstance(chunk, dict):
                            raise NetworkError("Malformed stream chunk from Gemini")

                        if "error" in chunk:
                            error = chunk["error"]
                            if isinstance(error, dict):
                                raise NetworkError(error.get("message") or "Gemini stream error")
                            raise NetworkError(str(error) if error else "Gemini stream error")

                        if chunk.get("usageMetadata"):
                            usage_data = chunk["usageMetadata"]

                        text = self._extract_text(chunk)
                        if text:
                            accumulated_length += len(text)
                            yield text

        except NetworkError as e:
            self._log_failure(start_time, e)
            raise
        except httpx.HTTPError as e:
            self._log_failure(start_time, e)
            raise NetworkError(str(e) or f"{type(e).__name__} talking to Gemini") from e

        if self.log_calls:
            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                "LLM API stream completed",
                extra={"extra_fields": {
                    "provider": "gemini",
                    "model": self.model,
                    "prompt_tokens": usage_data.get("promptTokenCount", 0),
                    "completion_tokens": usage_data.get("candidatesTokenCount", 0),
                    "total_tokens": usage_data.get("totalTokenCount", 0),
                    "duration_ms": round(duration_ms, 2),
                    "content_length": accumulated_length,
                }}
            )

    def _log_failure(self, start_time: float, error: Exception) -> None:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"LLM API stream failed: {error}",
            exc_info=True,
            extra={"extra_fields": {
                "provider": "gemini",
                "model": self.model,
                "duration_ms": round(duration_ms, 2),
                "error": str(error),
            }}
        )
