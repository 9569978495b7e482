"""Async client for the Ollama API.

Wraps the Ollama HTTP API (``/api/generate`` and ``/api/tags``) with proper
timeout handling and structured responses. ``stream_generate`` exposes the raw
NDJSON body of a streaming generation chunk by chunk; decoding it into records
is left to :mod:`codestream.streaming.decoder`.

Typical usage::

    client = OllamaClient()
    async for chunk in client.stream_generate("Write a Python hello world"):
        ...
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx
from pydantic import BaseModel, Field

from codestream.config import OllamaConfig

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """Raised when the model server cannot produce (or finish) a generation."""


class GenerationResult(BaseModel):
    """Structured response from a non-streaming Ollama generation call."""

    text: str = Field(default="", description="Generated text")
    model: str = Field(default="", description="Model that produced the response")
    duration_ms: float = Field(default=0.0, description="Server-side generation time in ms")
    success: bool = Field(default=True, description="Whether the request succeeded")
    error: str | None = Field(default=None, description="Error message on failure")


class OllamaClient:
    """Async client for the Ollama REST API.

    The client uses ``httpx.AsyncClient`` for non-blocking HTTP. A fresh
    ``AsyncClient`` is opened per call so concurrent generations never share
    connection state.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen2.5-coder",
        timeout: int = 300,
        connect_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self._transport = transport

    @classmethod
    def from_config(
        cls, config: OllamaConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> "OllamaClient":
        """Build a client from an :class:`OllamaConfig` section."""
        return cls(
            base_url=config.url,
            model=config.model,
            timeout=config.timeout,
            connect_timeout=config.connect_timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
            transport=self._transport,
        )

    def _payload(self, prompt: str, model: str | None, system: str, stream: bool) -> dict:
        payload: dict = {
            "model": model or self.model,
            "prompt": prompt,
            "stream": stream,
        }
        if system:
            payload["system"] = system
        return payload

    @staticmethod
    def _extract_text(data: dict) -> str:
        """Pull the generated text out of a /api/generate JSON response."""
        return data.get("response") or ""

    @staticmethod
    def _extract_duration_ms(data: dict) -> float:
        """Extract the total generation duration in milliseconds.

        The API returns ``total_duration`` in **nanoseconds**.
        """
        ns = data.get("total_duration") or 0
        return ns / 1_000_000.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def stream_generate(
        self,
        prompt: str,
        model: str | None = None,
        system: str = "",
    ) -> AsyncIterator[bytes]:
        """Stream a generation, yielding raw body chunks as they arrive.

        Chunks carry newline-delimited JSON with arbitrary framing: a single
        chunk may hold several records or only part of one.

        Raises:
            UpstreamError: On connection failures, timeouts, or a non-2xx
                status from the server.
        """
        payload = self._payload(prompt, model, system, stream=True)
        logger.info("Streaming generation from %s with model %s", self.base_url, payload["model"])

        try:
            async with self._client() as client:
                async with client.stream("POST", "/api/generate", json=payload) as response:
                    if response.is_error:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        raise UpstreamError(
                            f"Ollama returned HTTP {response.status_code}: {body[:500]}"
                        )
                    async for chunk in response.aiter_bytes():
                        if chunk:
                            yield chunk
        except httpx.ConnectError as exc:
            raise UpstreamError(
                f"Cannot connect to Ollama at {self.base_url}. Is the server running?"
            ) from exc
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"Request to Ollama timed out after {self.timeout}s.") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Streaming from Ollama failed: {exc}") from exc

    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        system: str = "",
    ) -> GenerationResult:
        """Generate text from a prompt in a single request.

        Returns:
            A ``GenerationResult`` with the generated text or an error.
        """
        payload = self._payload(prompt, model, system, stream=False)
        model_name = payload["model"]

        try:
            async with self._client() as client:
                response = await client.post("/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
                return GenerationResult(
                    text=self._extract_text(data),
                    model=data.get("model", model_name),
                    duration_ms=self._extract_duration_ms(data),
                    success=True,
                )
        except httpx.ConnectError:
            return GenerationResult(
                model=model_name,
                success=False,
                error=f"Cannot connect to Ollama at {self.base_url}. Is the server running?",
            )
        except httpx.TimeoutException:
            return GenerationResult(
                model=model_name,
                success=False,
                error=f"Request to Ollama timed out after {self.timeout}s.",
            )
        except httpx.HTTPStatusError as exc:
            return GenerationResult(
                model=model_name,
                success=False,
                error=f"Ollama returned HTTP {exc.response.status_code}: {exc.response.text[:500]}",
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error during Ollama generate")
            return GenerationResult(
                model=model_name,
                success=False,
                error=f"Unexpected error during Ollama generate: {exc}",
            )

    async def is_available(self) -> bool:
        """Return ``True`` if the Ollama server responds to ``/api/tags``."""
        try:
            async with self._client() as client:
                response = await client.get("/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def list_models(self) -> list[str]:
        """Return the names of all locally-available models, sorted.

        Returns an empty list if the server is unreachable.
        """
        try:
            async with self._client() as client:
                response = await client.get("/api/tags")
                response.raise_for_status()
                data = response.json()
                models = data.get("models", [])
                return sorted(m.get("name", "") for m in models if m.get("name"))
        except (httpx.HTTPError, ValueError):
            return []
