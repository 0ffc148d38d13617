"""Client base class shared by all language-model integrations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

__all__ = [
    "LLMClient",
    "LLMClientError",
    "LLMRequest",
    "LLMResponseFormatError",
    "LLMTransportError",
    "OfflineLLMClient",
]


class LLMClientError(RuntimeError):
    """Base error raised for language-model client failures."""


class LLMTransportError(LLMClientError):
    """Raised when the underlying transport fails to return a response."""


class LLMResponseFormatError(LLMClientError):
    """Raised when the model returns a payload without usable text."""


@dataclass(slots=True)
class LLMRequest:
    """Text request payload sent to an LLM."""

    prompt: str
    model: Optional[str] = None
    system_prompt: Optional[str] = None
    max_output_tokens: Optional[int] = 1000

    def to_payload(self, default_model: str) -> Dict[str, Any]:
        """Render a transport-ready payload for the Responses API."""
        def _message(role: str, text: str) -> Dict[str, Any]:
            return {
                "role": role,
                "content": [
                    {
                        "type": "input_text",
                        "text": text,
                    }
                ],
            }

        messages: list[Dict[str, Any]] = []
        if self.system_prompt:
            messages.append(_message("system", self.system_prompt))
        messages.append(_message("user", self.prompt))

        payload: Dict[str, Any] = {
            "model": self.model or default_model,
            "input": messages,
        }
        if self.max_output_tokens:
            payload["max_output_tokens"] = self.max_output_tokens
        return payload


class LLMClient:
    """Single-shot text client; callers decide what to do with failures."""

    def __init__(self, model: str) -> None:
        self._model = model

    @property
    def model(self) -> str:
        """Return the default model name configured for this client."""
        return self._model

    def propose(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Send ``prompt`` once and return the model's text."""
        return self.complete(LLMRequest(prompt=prompt, system_prompt=system_prompt), timeout=timeout)

    def complete(self, request: LLMRequest, *, timeout: Optional[float] = None) -> str:
        payload = request.to_payload(self._model)
        text = self._raw_invoke(payload, timeout)
        if not text or not text.strip():
            raise LLMResponseFormatError("Model returned an empty response.")
        return text

    def _raw_invoke(self, payload: Dict[str, Any], timeout: Optional[float]) -> str:
        """Perform the transport call. Subclasses must implement."""
        raise NotImplementedError("Subclasses must implement _raw_invoke().")


class OfflineLLMClient(LLMClient):
    """Stand-in used when no remote model is configured; always unavailable."""

    def __init__(self) -> None:
        super().__init__("offline")

    def _raw_invoke(self, payload: Dict[str, Any], timeout: Optional[float]) -> str:
        raise LLMTransportError("Offline client has no model to call.")
