"""
Client for interacting with an Ollama LLM server.

This client wraps HTTP requests to the Ollama REST API's
``/api/generate`` endpoint. On error conditions (HTTP errors,
timeouts, unexpected payloads) a :class:`LLMError` is raised.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests


logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when communication with the LLM server fails."""

    pass


_THINKING_PATTERNS = [
    r"<think>.*?</think>",
    r"<thinking>.*?</thinking>",
    r"<thought>.*?</thought>",
    r"<reasoning>.*?</reasoning>",
]


def strip_thinking_tags(text: str) -> str:
    """Remove thinking process tags from LLM responses.

    Reasoning models often wrap their chain of thought in tags such as
    ``<think>``. Those blocks are dropped so only the answer remains.

    Examples
    --------
    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    'Answer'
    """
    result = text
    for pattern in _THINKING_PATTERNS:
        result = re.sub(pattern, "", result, flags=re.DOTALL | re.IGNORECASE)
    return result.strip()


@dataclass
class OllamaClient:
    """Client for interacting with an Ollama server.

    Parameters
    ----------
    base_url : str
        Base URL of the Ollama server, e.g. ``"http://localhost"``.
    port : int
        Port number of the Ollama server, e.g. ``11434``.
    model : str
        Name of the model to use for generation, e.g. ``"llama3"``.
    request_timeout : float, optional
        Timeout in seconds for HTTP requests. Defaults to 60 seconds.
    max_tokens : int, optional
        Maximum number of tokens to generate.
    temperature : float, optional
        Sampling temperature.
    top_p : float, optional
        Nucleus sampling threshold.
    """

    base_url: str
    port: int
    model: str
    request_timeout: float = 60.0
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "OllamaClient":
        """Build a client from the dictionary returned by ``load_llm_config``."""
        return cls(
            base_url=config["base_url"],
            port=config["port"],
            model=config["model"],
            request_timeout=float(config.get("request_timeout", 60)),
            max_tokens=config.get("max_tokens"),
            temperature=config.get("temperature"),
            top_p=config.get("top_p"),
        )

    def _endpoint(self) -> str:
        return f"{self.base_url}:{self.port}/api/generate"

    def _options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        if self.temperature is not None:
            options["temperature"] = self.temperature
        if self.top_p is not None:
            options["top_p"] = self.top_p
        return options

    def generate(self, prompt: str, system: Optional[str] = None, json_format: bool = False) -> str:
        """Generate a completion from the model.

        Parameters
        ----------
        prompt : str
            The user prompt.
        system : str, optional
            System prompt overriding the model's default.
        json_format : bool, optional
            Ask the server to constrain the output to a JSON value.

        Returns
        -------
        str
            The generated response text with thinking blocks removed.

        Raises
        ------
        LLMError
            If the request fails or the server returns an error.
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        if system:
            payload["system"] = system
        if json_format:
            payload["format"] = "json"
        options = self._options()
        if options:
            payload["options"] = options

        url = self._endpoint()
        logger.debug("Sending request to LLM at %s with payload: %s", url, payload)
        try:
            response = requests.post(url, json=payload, timeout=self.request_timeout)
        except requests.RequestException as exc:
            logger.error("Failed to connect to LLM: %s", exc)
            raise LLMError(str(exc)) from exc
        if response.status_code != 200:
            logger.error("LLM returned non-200 status %s: %s", response.status_code, response.text)
            raise LLMError(f"LLM returned status {response.status_code}: {response.text}")
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Failed to parse LLM response: %s", exc)
            raise LLMError("Failed to parse LLM response") from exc

        if "response" in data:
            return strip_thinking_tags(data.get("response") or "")
        if "message" in data and isinstance(data["message"], dict):
            return strip_thinking_tags(data["message"].get("content") or "")
        raise LLMError("Unexpected response structure from LLM")
