"""Clients for hosted inference: HuggingFace Inference API and Ollama.

Both wrap an ``httpx.AsyncClient`` that the service container creates
once at startup (with the configured timeout) and closes on shutdown.
Nothing here retries: a call either returns a usable payload or raises
``UpstreamUnavailable``, and the estimators fall back to heuristics.

Failure modes mapped to UpstreamUnavailable:

  - timeout or connection error
  - 401/403 (missing or revoked token)
  - 429 (free-tier rate limit)
  - 503 (model is loading on the hosted side)
  - any other non-2xx, or a body that is not the expected shape
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from gradeflow.core.errors import UpstreamUnavailable
from gradeflow.core.metrics import INFERENCE_DURATION, INFERENCE_REQUESTS

logger = logging.getLogger(__name__)

_GENERATION_TEMPERATURE = 0.3
_MAX_NEW_TOKENS = 700


@dataclass(frozen=True, slots=True)
class LabelScore:
    label: str
    score: float


class TextGenerator(Protocol):
    """Anything that can turn a prompt into raw model text."""

    provider: str
    model: str

    async def generate(self, prompt: str) -> str: ...


def _describe_status(status_code: int) -> str:
    if status_code in (401, 403):
        return "authentication failed"
    if status_code == 429:
        return "rate limited"
    if status_code == 503:
        return "model loading"
    return f"HTTP {status_code}"


async def _send(
    client: httpx.AsyncClient,
    task: str,
    method: str,
    url: str,
    **kwargs: Any,
) -> Any:
    """Issue one request and return its decoded JSON body."""
    start = time.monotonic()
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        INFERENCE_REQUESTS.labels(task=task, outcome="error").inc()
        raise UpstreamUnavailable(task, "timeout") from exc
    except httpx.HTTPError as exc:
        INFERENCE_REQUESTS.labels(task=task, outcome="error").inc()
        raise UpstreamUnavailable(task, f"transport error: {exc}") from exc
    finally:
        INFERENCE_DURATION.labels(task=task).observe(time.monotonic() - start)

    if response.status_code >= 400:
        INFERENCE_REQUESTS.labels(task=task, outcome="error").inc()
        raise UpstreamUnavailable(task, _describe_status(response.status_code))

    try:
        body = response.json()
    except ValueError as exc:
        INFERENCE_REQUESTS.labels(task=task, outcome="error").inc()
        raise UpstreamUnavailable(task, "response is not JSON") from exc

    INFERENCE_REQUESTS.labels(task=task, outcome="ok").inc()
    return body


class HuggingFaceInference:
    """Embedding, AI-text detection and text generation on hosted models."""

    provider = "huggingface"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str,
        token: str,
        embedding_model: str,
        detector_model: str,
        content_model: str,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"}
        self.embedding_model = embedding_model
        self.detector_model = detector_model
        self.model = content_model

    async def _post(self, task: str, model: str, payload: dict[str, Any]) -> Any:
        return await _send(
            self._client,
            task,
            "POST",
            f"{self._base_url}/{model}",
            json=payload,
            headers=self._headers,
        )

    async def embed(self, text: str) -> list[float]:
        body = await self._post("embedding", self.embedding_model, {"inputs": text})
        # sentence-transformers returns either a flat vector or [vector]
        if isinstance(body, list) and body and isinstance(body[0], list):
            body = body[0]
        if not (
            isinstance(body, list)
            and body
            and all(isinstance(v, (int, float)) for v in body)
        ):
            raise UpstreamUnavailable("embedding", "unexpected embedding shape")
        return [float(v) for v in body]

    async def classify(self, text: str) -> list[LabelScore]:
        body = await self._post(
            "ai_detection", self.detector_model, {"inputs": text}
        )
        if isinstance(body, list) and body and isinstance(body[0], list):
            body = body[0]
        try:
            labels = [LabelScore(str(item["label"]), float(item["score"])) for item in body]
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamUnavailable("ai_detection", "unexpected label payload") from exc
        if not labels:
            raise UpstreamUnavailable("ai_detection", "empty label payload")
        return labels

    async def generate(self, prompt: str) -> str:
        body = await self._post(
            "generation",
            self.model,
            {
                "inputs": prompt,
                "parameters": {
                    "max_new_tokens": _MAX_NEW_TOKENS,
                    "temperature": _GENERATION_TEMPERATURE,
                    "return_full_text": False,
                    "stop": ["</s>"],
                },
            },
        )
        if isinstance(body, list) and body:
            body = body[0]
        if not isinstance(body, dict) or not isinstance(body.get("generated_text"), str):
            raise UpstreamUnavailable("generation", "no generated_text in response")
        return body["generated_text"]

    async def status(self) -> dict[str, Any]:
        """Check the embedding model with a one-word input."""
        models = {
            "embedding_model": self.embedding_model,
            "ai_detector_model": self.detector_model,
            "content_model": self.model,
        }
        try:
            await self.embed("test")
        except UpstreamUnavailable as exc:
            logger.warning("HuggingFace status check failed: %s", exc.reason)
            return {"running": False, "error": exc.reason, **models}
        return {"running": True, "error": None, **models}


class OllamaClient:
    """Text generation on a local Ollama server."""

    provider = "ollama"

    def __init__(self, client: httpx.AsyncClient, *, base_url: str, model: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self.model = model

    async def generate(self, prompt: str) -> str:
        options = {"temperature": _GENERATION_TEMPERATURE}
        try:
            body = await _send(
                self._client,
                "generation",
                "POST",
                f"{self._base_url}/api/chat",
                json={
                    "model": self.model,
                    "messages": [{"role": "user", "content": prompt}],
                    "stream": False,
                    "options": options,
                },
            )
            message = body.get("message") if isinstance(body, dict) else None
            content = message.get("content") if isinstance(message, dict) else None
        except UpstreamUnavailable as exc:
            # servers older than 0.1.17 have no /api/chat
            logger.info("Ollama /api/chat failed (%s), trying /api/generate", exc.reason)
            body = await _send(
                self._client,
                "generation",
                "POST",
                f"{self._base_url}/api/generate",
                json={
                    "model": self.model,
                    "prompt": prompt,
                    "stream": False,
                    "options": options,
                },
            )
            content = body.get("response") if isinstance(body, dict) else None

        if not isinstance(content, str):
            raise UpstreamUnavailable("generation", "no text in Ollama response")
        return content

    async def status(self) -> dict[str, Any]:
        try:
            body = await _send(
                self._client, "status", "GET", f"{self._base_url}/api/tags"
            )
        except UpstreamUnavailable as exc:
            logger.warning("Ollama status check failed: %s", exc.reason)
            return {"running": False, "error": exc.reason, "model": self.model}
        models = body.get("models", []) if isinstance(body, dict) else []
        available = [m.get("name") for m in models if isinstance(m, dict)]
        return {
            "running": True,
            "error": None,
            "model": self.model,
            "model_available": any(
                name == self.model or str(name).startswith(f"{self.model}:")
                for name in available
            ),
            "available_models": available,
        }
