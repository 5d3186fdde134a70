# bulkgpt/llm_wrapper.py
"""
Completion client for OpenAI-compatible endpoints.

Sends one built payload per call and normalizes the answer into an Outcome:
  Success(prompt=..., response="<assistant text>")
  Failure(prompt=..., error="<service or transport message>")

Nothing is raised past complete(); every failure becomes a Failure outcome.
Exactly one network attempt is made per call (the SDK's own retries are
disabled) and no timeout is applied.

Configuration (env vars):
  OPENAI_BASE_URL=...   (optional, any OpenAI-compatible endpoint)

Usage:
  from bulkgpt.llm_wrapper import CompletionClient
  client = CompletionClient(api_key="sk-...")
  outcome = await client.complete("Say hi", build_payload(config, "Say hi"))
"""

import os
import time
from typing import Any, Callable, Dict, Optional

import httpx
import openai
from openai import AsyncOpenAI

from bulkgpt import monitoring
from bulkgpt.schemas import (
    BuiltPayload,
    ChatPayload,
    Failure,
    Outcome,
    PromptType,
    Success,
)

OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "").strip() or None

E_NO_CHOICES = "response contained no choices"
E_NO_MESSAGE = "response contained no message"


# ---------------------------------------------------------------------------
# Response extraction, one function per response shape
# ---------------------------------------------------------------------------
def extract_chat_text(resp: Any) -> str:
    """choices[0].message.content of a chat completion."""
    choices = getattr(resp, "choices", None) or []
    if not choices:
        raise LookupError(E_NO_CHOICES)
    message = getattr(choices[0], "message", None)
    if message is None:
        raise LookupError(E_NO_MESSAGE)
    return message.content or ""


def extract_completion_text(resp: Any) -> str:
    """choices[0].text of a legacy text completion."""
    choices = getattr(resp, "choices", None) or []
    if not choices:
        raise LookupError(E_NO_CHOICES)
    return choices[0].text or ""


_EXTRACTORS: Dict[PromptType, Callable[[Any], str]] = {
    PromptType.CHAT: extract_chat_text,
    PromptType.COMPLETION: extract_completion_text,
}


def _service_error_message(err: Any) -> Optional[str]:
    if isinstance(err, dict):
        return err.get("message") or None
    return getattr(err, "message", None)


def _status_error_message(e: openai.APIStatusError) -> str:
    return _service_error_message(e.body) or e.message


def _connection_error_message(e: openai.APIConnectionError) -> str:
    cause = e.__cause__
    return (str(cause) if cause is not None else "") or e.message


class CompletionClient:
    """Handles payload submission and response normalization for one remote endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or OPENAI_BASE_URL,
            max_retries=0,
            timeout=None,
            http_client=http_client,
        )

    async def _send(self, payload: BuiltPayload):
        kwargs = payload.request_kwargs()
        if isinstance(payload, ChatPayload):
            return await self._client.chat.completions.create(**kwargs)
        return await self._client.completions.create(**kwargs)

    async def complete(self, prompt: str, payload: BuiltPayload) -> Outcome:
        mode = payload.mode.value
        start = time.time()
        try:
            resp = await self._send(payload)
            # some compatible servers answer 200 with an error object
            service_error = _service_error_message(getattr(resp, "error", None))
            if service_error:
                return self._failure(start, mode, prompt, service_error)
            text = _EXTRACTORS[payload.mode](resp)
        except openai.APIStatusError as e:
            return self._failure(start, mode, prompt, _status_error_message(e))
        except openai.APIConnectionError as e:
            return self._failure(start, mode, prompt, _connection_error_message(e))
        except LookupError as e:
            return self._failure(start, mode, prompt, str(e))
        except Exception as e:
            monitoring.logger.exception("Unexpected error in completion request", extra={"mode": mode})
            return self._failure(start, mode, prompt, str(e) or e.__class__.__name__)

        monitoring.observe_completion(start, mode, "success")
        return Success(prompt=prompt, response=text)

    def _failure(self, start: float, mode: str, prompt: str, error: str) -> Failure:
        monitoring.observe_completion(start, mode, "error")
        monitoring.logger.warning(
            "Completion request failed",
            extra={"mode": mode, "prompt_preview": prompt[:200], "error": error},
        )
        return Failure(prompt=prompt, error=error)

    async def close(self) -> None:
        await self._client.close()
