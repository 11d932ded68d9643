#!/usr/bin/env python3
"""
Client for the local model backend.
Talks to an Ollama server over HTTP; every transport-level failure is
reported as BackendUnavailable so callers can tell it apart from bad output.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

import httpx

from .config import get_setting
from .errors import BackendUnavailable

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from the model backend"""
    content: str
    model: str
    provider: str
    usage: Optional[Dict[str, int]] = None


class BaseLLMClient(ABC):
    """Abstract base class for model backends"""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        timeout: Optional[float] = None,
        json_format: bool = True,
    ) -> LLMResponse:
        """Send one prompt and wait for the full completion"""
        pass


class OllamaClient(BaseLLMClient):
    """Ollama client using the /api/generate endpoint"""

    DEFAULT_MODEL = "qwen2.5-coder:7b"
    DEFAULT_URL = "http://localhost:11434"

    # Low temperature keeps the JSON shape steadier; num_predict leaves room
    # for a complete lesson object
    GENERATION_OPTIONS = {
        "num_predict": 7000,
        "temperature": 0.5,
    }

    def __init__(
        self,
        base_url: str = None,
        model: str = None,
        timeout: float = 120.0,
        transport: httpx.BaseTransport = None,
    ):
        self.base_url = (base_url or self.DEFAULT_URL).rstrip('/')
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout
        self.provider = "ollama"
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    def generate(
        self,
        prompt: str,
        timeout: Optional[float] = None,
        json_format: bool = True,
    ) -> LLMResponse:
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": dict(self.GENERATION_OPTIONS),
        }
        if json_format:
            payload["format"] = "json"

        logger.debug("POST %s/api/generate model=%s", self.base_url, self.model)
        try:
            response = self.client.post(
                "/api/generate",
                json=payload,
                timeout=timeout if timeout is not None else self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise BackendUnavailable(
                f"Request to {self.base_url} timed out. The model may be too slow; "
                f"try a smaller model or a longer timeout."
            ) from e
        except httpx.ConnectError as e:
            raise BackendUnavailable(
                f"Cannot connect to Ollama at {self.base_url}. "
                f"Make sure Ollama is running: 'ollama serve'"
            ) from e
        except httpx.HTTPStatusError as e:
            raise BackendUnavailable(
                f"Ollama API error: {e.response.status_code} {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"Failed to reach Ollama: {e}") from e
        except ValueError as e:
            raise BackendUnavailable(f"Ollama returned a non-JSON envelope: {e}") from e

        if not isinstance(body, dict) or "response" not in body:
            raise BackendUnavailable("Ollama response envelope has no 'response' field")

        usage = None
        if "prompt_eval_count" in body or "eval_count" in body:
            usage = {
                "input_tokens": body.get("prompt_eval_count", 0),
                "output_tokens": body.get("eval_count", 0),
            }

        return LLMResponse(
            content=body.get("response") or "",
            model=body.get("model", self.model),
            provider=self.provider,
            usage=usage,
        )

    def ping(self) -> bool:
        """Check if the server answers on /api/tags"""
        try:
            response = self.client.get("/api/tags", timeout=5.0)
        except httpx.HTTPError as e:
            logger.debug("Ping %s failed: %s", self.base_url, e)
            return False
        return response.status_code == 200

    def list_models(self) -> List[str]:
        """Names of the models installed on the server"""
        try:
            response = self.client.get("/api/tags", timeout=5.0)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise BackendUnavailable(f"Cannot list models at {self.base_url}: {e}") from e
        return [m.get("name", "") for m in body.get("models", []) if m.get("name")]

    def close(self):
        """Clean up resources"""
        self.client.close()


def model_installed(names: List[str], model: str) -> bool:
    """Check if a model is installed ("qwen2.5-coder" matches "qwen2.5-coder:latest")"""
    return any(n == model or n.split(':')[0] == model for n in names)


def create_llm_client(
    base_url: str = None,
    model: str = None,
    timeout: float = None,
) -> OllamaClient:
    """
    Create a backend client from explicit arguments or configured settings.

    Args:
        base_url: Server URL override. If None, uses OLLAMA_URL / config.
        model: Model name override. If None, uses OLLAMA_MODEL / config.
        timeout: Per-request timeout in seconds. If None, uses config.
    """
    return OllamaClient(
        base_url=base_url or get_setting('ollama_url'),
        model=model or get_setting('ollama_model'),
        timeout=timeout if timeout is not None else get_setting('request_timeout'),
    )
