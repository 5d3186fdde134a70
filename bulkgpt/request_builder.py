# bulkgpt/request_builder.py
"""
Turns a RequestConfig plus one prompt string into the request body the
completion service expects.

- chat mode (default): `messages` is the caller's list, or a single user
  message wrapping the prompt; model defaults to CHAT_LLM_MODEL.
- completion mode: raw `prompt`; model defaults to COMPLETION_LLM_MODEL.

Sampling fields are copied through as given. Only max_tokens and temperature
always carry a value (256 and 0 unless overridden).
"""

import os
from typing import Optional

from bulkgpt.schemas import (
    BuiltPayload,
    ChatMessage,
    ChatPayload,
    CompletionPayload,
    PromptType,
    RequestConfig,
)

DEFAULT_CHAT_MODEL = os.getenv("CHAT_LLM_MODEL", "gpt-3.5-turbo")
DEFAULT_COMPLETION_MODEL = os.getenv("COMPLETION_LLM_MODEL", "gpt-3.5-turbo-instruct")
DEFAULT_MAX_TOKENS = 256
DEFAULT_TEMPERATURE = 0

_SAMPLING_FIELDS = (
    "top_p",
    "n",
    "stream",
    "stop",
    "presence_penalty",
    "frequency_penalty",
    "logit_bias",
    "user",
)


def build_payload(config: Optional[RequestConfig], prompt: str) -> BuiltPayload:
    config = config or RequestConfig()

    common = {name: getattr(config, name) for name in _SAMPLING_FIELDS}
    common["max_tokens"] = DEFAULT_MAX_TOKENS if config.max_tokens is None else config.max_tokens
    common["temperature"] = DEFAULT_TEMPERATURE if config.temperature is None else config.temperature

    if config.prompt_type == PromptType.COMPLETION:
        return CompletionPayload(
            model=config.model or DEFAULT_COMPLETION_MODEL,
            prompt=prompt,
            echo=config.echo,
            **common,
        )

    messages = list(config.messages) if config.messages else [ChatMessage(role="user", content=prompt)]
    return ChatPayload(
        model=config.model or DEFAULT_CHAT_MODEL,
        messages=messages,
        **common,
    )
