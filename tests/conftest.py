# tests/conftest.py
"""
Shared fakes. The remote completion service is replaced by an httpx
MockTransport handed to AsyncOpenAI, so the real SDK request/response code
runs and every network call is counted.
"""
import asyncio
import json
import sqlite3

import httpx
import pytest
import pytest_asyncio

from bulkgpt.orchestrator import BulkCompletionApi


def chat_body(text, model="gpt-3.5-turbo"):
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "choices": [{
            "index": 0,
            "finish_reason": "stop",
            "message": {"role": "assistant", "content": text},
        }],
    }


def completion_body(text, model="gpt-3.5-turbo-instruct"):
    return {
        "id": "cmpl-test",
        "object": "text_completion",
        "created": 1700000000,
        "model": model,
        "choices": [{"index": 0, "text": text, "finish_reason": "stop", "logprobs": None}],
    }


def drop_responses_table(path):
    """Break the store from outside, through a separate sqlite3 connection."""
    conn = sqlite3.connect(path)
    try:
        conn.execute("DROP TABLE responses")
        conn.commit()
    finally:
        conn.close()


class FakeCompletionService:
    """
    Answers "echo: <prompt>" for every request.
    - failures[prompt]: an httpx.Response to return, or an exception to raise
    - delays[prompt]: seconds to wait before answering
    """

    def __init__(self):
        self.calls = []
        self.failures = {}
        self.delays = {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.calls.append({"path": request.url.path, "body": body, "headers": dict(request.headers)})
        if "messages" in body:
            prompt = body["messages"][-1]["content"]
        else:
            prompt = body["prompt"]

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(prompt, 0))
        finally:
            self.in_flight -= 1

        failure = self.failures.get(prompt)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return failure

        text = f"echo: {prompt}"
        if "messages" in body:
            return httpx.Response(200, json=chat_body(text, body["model"]))
        return httpx.Response(200, json=completion_body(text, body["model"]))


@pytest.fixture
def service():
    return FakeCompletionService()


@pytest.fixture
def http_client(service):
    return httpx.AsyncClient(transport=httpx.MockTransport(service))


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "responses.db")


@pytest_asyncio.fixture
async def api(http_client, db_path):
    bulk = BulkCompletionApi("sk-test", db_path=db_path, http_client=http_client)
    await bulk.open()
    yield bulk
    await bulk.close()
