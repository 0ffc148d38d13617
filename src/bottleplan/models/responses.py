"""Production client that speaks the OpenAI Responses API."""

from __future__ import annotations

import json
import os
from typing import Any, Callable, Dict, Optional

from .llm_client import LLMClient, LLMResponseFormatError, LLMTransportError

__all__ = ["ResponsesClient"]


Transport = Callable[[Dict[str, Any], float], str]


class ResponsesClient(LLMClient):
    """Thin adapter around the Responses API returning plain output text."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1/responses",
        model: str = "gpt-4o",
        transport: Optional[Transport] = None,
        timeout: float = 20.0,
    ) -> None:
        super().__init__(model=model)
        self._api_key = api_key or os.getenv("BOTTLEPLAN_API_KEY") or os.getenv("OPENAI_API_KEY")
        self._base_url = base_url
        timeout_override = os.getenv("BOTTLEPLAN_MODEL_TIMEOUT")
        if timeout_override:
            try:
                parsed = float(timeout_override)
                if parsed > 0:
                    timeout = parsed
            except ValueError:
                pass
        self._timeout = timeout
        self._transport = transport or self._http_transport

        if transport is None and not self._api_key:
            raise ValueError("An API key is required when using the default transport.")

    @property
    def timeout(self) -> float:
        return self._timeout

    def _raw_invoke(self, payload: Dict[str, Any], timeout: Optional[float]) -> str:
        """Send the request over the configured transport."""
        effective_timeout = timeout if timeout and timeout > 0 else self._timeout
        try:
            raw_response = self._transport(payload, effective_timeout)
        except LLMTransportError:
            raise
        except TimeoutError as error:
            raise LLMTransportError(f"Model response timed out after {effective_timeout}s.") from error
        except Exception as error:  # pragma: no cover
            raise LLMTransportError(f"Transport rejected the request: {error}") from error

        text = self._extract_output_text(raw_response)
        if text is None:
            raise LLMResponseFormatError("Response did not contain output text.")
        return text

    def _http_transport(self, payload: Dict[str, Any], timeout: float) -> str:
        """Default HTTP transport that targets the Responses API."""
        import urllib.error
        import urllib.request

        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(
            self._base_url,
            data=data,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                raw = response.read()
                status = getattr(response, "status", 200)
        except TimeoutError as error:  # pragma: no cover - network-dependent
            raise LLMTransportError("Model response timed out.") from error
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            message = error.read().decode("utf-8", errors="ignore")
            raise LLMTransportError(f"HTTP {error.code}: {message}") from error
        except urllib.error.URLError as error:  # pragma: no cover - network-dependent
            raise LLMTransportError(f"Failed to reach model endpoint: {error.reason}") from error

        if status >= 400:
            raise LLMTransportError(f"Unexpected HTTP status {status}")

        return raw.decode("utf-8")

    def _extract_output_text(self, raw_response: str) -> Optional[str]:
        """Pull the assistant text out of a Responses API envelope."""
        if not raw_response:
            return None

        try:
            data = json.loads(raw_response)
        except json.JSONDecodeError:
            return raw_response

        if isinstance(data, dict):
            direct = data.get("output_text")
            if isinstance(direct, str) and direct.strip():
                return direct

            text_payload = self._first_text_content(data.get("output"))
            if text_payload:
                return text_payload

        # Not an envelope we recognise; hand the body to the parser as-is.
        return raw_response

    @staticmethod
    def _first_text_content(output: Any) -> Optional[str]:
        """Return the first non-blank ``output[].content[].text`` value."""
        if not isinstance(output, list):
            return None

        for item in output:
            if not isinstance(item, dict) or not isinstance(item.get("content"), list):
                continue
            for content_item in item["content"]:
                if isinstance(content_item, dict):
                    text = content_item.get("text")
                    if isinstance(text, str) and text.strip():
                        return text

        return None
