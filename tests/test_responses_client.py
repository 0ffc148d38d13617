from __future__ import annotations

import json

import pytest

from bottleplan.models.llm_client import LLMRequest, LLMResponseFormatError, LLMTransportError, OfflineLLMClient
from bottleplan.models.responses import ResponsesClient

PLAN_TEXT = '[{"time": "09:00", "amount": 2, "isLocked": false}]'


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("OPENAI_API_KEY", "BOTTLEPLAN_API_KEY", "BOTTLEPLAN_MODEL_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def _envelope(text: str) -> str:
    return json.dumps(
        {
            "id": "resp_mock",
            "object": "response",
            "status": "completed",
            "output": [
                {
                    "id": "msg_mock",
                    "type": "message",
                    "role": "assistant",
                    "content": [{"type": "output_text", "text": text}],
                }
            ],
        }
    )


def test_client_extracts_text_from_responses_envelope() -> None:
    seen: dict = {}

    def transport(payload: dict, timeout: float) -> str:
        seen["payload"] = payload
        seen["timeout"] = timeout
        return _envelope(PLAN_TEXT)

    client = ResponsesClient(model="gpt-4o-mini", transport=transport, timeout=12)
    text = client.propose("plan please", system_prompt="be helpful", timeout=3)

    assert text == PLAN_TEXT
    assert seen["timeout"] == 3
    assert seen["payload"]["model"] == "gpt-4o-mini"
    assert seen["payload"]["input"][0]["content"][0]["text"] == "be helpful"
    assert seen["payload"]["input"][1]["content"][0]["type"] == "input_text"


def test_client_uses_default_timeout_and_output_text_shortcut() -> None:
    seen: list[float] = []

    def transport(_: dict, timeout: float) -> str:
        seen.append(timeout)
        return json.dumps({"output_text": PLAN_TEXT})

    client = ResponsesClient(transport=transport, timeout=9)
    assert client.propose("plan") == PLAN_TEXT
    assert seen == [9]


def test_unrecognised_body_is_returned_verbatim() -> None:
    client = ResponsesClient(transport=lambda payload, timeout: "Sure! " + PLAN_TEXT)
    assert client.propose("plan") == "Sure! " + PLAN_TEXT


def test_transport_failures_become_transport_errors() -> None:
    def slow(payload: dict, timeout: float) -> str:
        raise TimeoutError("read timed out")

    def broken(payload: dict, timeout: float) -> str:
        raise ConnectionResetError("reset by peer")

    with pytest.raises(LLMTransportError, match="timed out"):
        ResponsesClient(transport=slow).propose("plan")
    with pytest.raises(LLMTransportError, match="reset by peer"):
        ResponsesClient(transport=broken).propose("plan")


def test_empty_text_is_a_format_error() -> None:
    client = ResponsesClient(transport=lambda payload, timeout: "   ")
    with pytest.raises(LLMResponseFormatError):
        client.propose("plan")


def test_api_key_is_required_for_http_transport(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(ValueError, match="API key"):
        ResponsesClient()

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert ResponsesClient().model == "gpt-4o"


def test_timeout_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOTTLEPLAN_MODEL_TIMEOUT", "45")
    assert ResponsesClient(transport=lambda payload, timeout: PLAN_TEXT, timeout=5).timeout == 45

    monkeypatch.setenv("BOTTLEPLAN_MODEL_TIMEOUT", "soon")
    assert ResponsesClient(transport=lambda payload, timeout: PLAN_TEXT, timeout=5).timeout == 5


def test_request_payload_carries_only_model_input_and_token_limit() -> None:
    payload = LLMRequest(prompt="p", system_prompt="s").to_payload("gpt-4o")

    assert set(payload) == {"model", "input", "max_output_tokens"}
    assert payload["model"] == "gpt-4o"
    assert [message["role"] for message in payload["input"]] == ["system", "user"]
    assert payload["max_output_tokens"] == 1000


def test_chat_completion_body_is_not_unwrapped() -> None:
    body = json.dumps({"choices": [{"message": {"role": "assistant", "content": PLAN_TEXT}}]})
    client = ResponsesClient(transport=lambda payload, timeout: body)
    assert client.propose("plan") == body


def test_offline_client_is_always_unavailable() -> None:
    with pytest.raises(LLMTransportError):
        OfflineLLMClient().propose("plan")
