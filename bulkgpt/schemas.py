# bulkgpt/schemas.py
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class PromptType(str, Enum):
    CHAT = "chat"
    COMPLETION = "completion"


class ChatMessage(BaseModel):
    role: str
    content: str


class RequestConfig(BaseModel):
    """
    Options shared by every prompt of one batch.

    Attribute names are snake_case; camelCase aliases (maxTokens, promptType, ...)
    are accepted on input and used when the config is serialized into the store.
    Range checks (temperature bounds etc.) are left to the remote service.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    model: Optional[str] = None
    prompt_type: PromptType = PromptType.CHAT
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    n: Optional[int] = None
    stream: Optional[bool] = None
    stop: Optional[Union[str, List[str]]] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    logit_bias: Optional[Dict[str, float]] = None
    user: Optional[str] = None
    # completion mode only
    echo: Optional[bool] = None
    # chat mode only
    messages: Optional[List[ChatMessage]] = None

    @field_validator("stream")
    @classmethod
    def stream_must_be_off(cls, v):
        if v:
            raise ValueError("streaming responses are not supported for batch requests")
        return v

    def snapshot(self) -> str:
        """JSON copy of the options, as persisted next to each response."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Wire payloads (one variant per endpoint)
# ---------------------------------------------------------------------------
class _PayloadBase(BaseModel):
    model: str
    max_tokens: int
    temperature: float
    top_p: Optional[float] = None
    n: Optional[int] = None
    stream: Optional[bool] = None
    stop: Optional[Union[str, List[str]]] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    logit_bias: Optional[Dict[str, float]] = None
    user: Optional[str] = None

    def request_kwargs(self) -> Dict[str, Any]:
        """Request body as sent over the wire; unset optional fields are omitted."""
        return self.model_dump(mode="json", exclude_none=True, exclude={"mode"})


class ChatPayload(_PayloadBase):
    mode: Literal[PromptType.CHAT] = PromptType.CHAT
    messages: List[ChatMessage]


class CompletionPayload(_PayloadBase):
    mode: Literal[PromptType.COMPLETION] = PromptType.COMPLETION
    prompt: str
    echo: Optional[bool] = None


BuiltPayload = Annotated[Union[ChatPayload, CompletionPayload], Field(discriminator="mode")]


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------
class Success(BaseModel):
    status: Literal["success"] = "success"
    prompt: str
    response: str


class Failure(BaseModel):
    status: Literal["error"] = "error"
    prompt: str
    error: str


Outcome = Annotated[Union[Success, Failure], Field(discriminator="status")]


class PersistedRecord(BaseModel):
    id: int
    gptPrompt: str
    response: str
    options: Optional[str] = None
