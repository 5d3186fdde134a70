# bulkgpt/orchestrator.py
import asyncio
from typing import List, Optional, Sequence

import httpx

from bulkgpt import exporter as _exporter
from bulkgpt import monitoring
from bulkgpt.db import DEFAULT_DB_PATH, ResultStore
from bulkgpt.errors import EmptyBatchError, PersistenceError, StoreNotInitializedError
from bulkgpt.llm_wrapper import CompletionClient
from bulkgpt.request_builder import build_payload
from bulkgpt.schemas import Outcome, RequestConfig, Success


class BulkCompletionApi:
    """
    Sends prompts to the completion service and keeps every successful answer
    in a local SQLite store.

        api = BulkCompletionApi(api_key, db_path="responses.db")
        async with api:
            outcomes = await api.make_batch_request(["a", "b"], RequestConfig())
            await api.export_to_csv("responses.csv")

    db_path=None disables persistence: batches still return their outcomes
    and every attempted write is logged as a configuration error.
    """

    def __init__(
        self,
        api_key: str,
        db_path: Optional[str] = DEFAULT_DB_PATH,
        recreate_db: bool = False,
        *,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        client: Optional[CompletionClient] = None,
        store: Optional[ResultStore] = None,
    ):
        if not api_key:
            raise ValueError("api_key is required")
        self.db_path = db_path
        self.recreate_db = recreate_db
        self.client = client or CompletionClient(api_key, base_url=base_url, http_client=http_client)
        self.store = store or ResultStore(db_path)

    async def open(self) -> "BulkCompletionApi":
        if self.db_path:
            await self.store.initialize(self.db_path, recreate=self.recreate_db)
        return self

    async def close(self) -> None:
        await self.store.close()
        await self.client.close()

    async def __aenter__(self) -> "BulkCompletionApi":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def make_request(self, prompt: str, config: Optional[RequestConfig] = None) -> Outcome:
        """One completion, not persisted."""
        return await self.client.complete(prompt, build_payload(config, prompt))

    async def make_batch_request(
        self, prompts: Sequence[str], config: Optional[RequestConfig] = None
    ) -> List[Outcome]:
        """
        Send every prompt at once and wait for all of them. outcomes[i] belongs
        to prompts[i]. Successes are written to the store as they arrive; a
        failed write is logged and does not change the returned outcome.
        """
        if not prompts:
            raise EmptyBatchError("make_batch_request needs at least one prompt")
        config = config or RequestConfig()
        monitoring.observe_batch_size(len(prompts))
        return list(await asyncio.gather(*(self._run_one(p, config) for p in prompts)))

    async def _run_one(self, prompt: str, config: RequestConfig) -> Outcome:
        outcome = await self.make_request(prompt, config)
        if isinstance(outcome, Success):
            await self._persist(outcome, config)
        return outcome

    async def _persist(self, outcome: Success, config: RequestConfig) -> Optional[int]:
        """Write one success to the store (best-effort)."""
        try:
            return await self.store.append({
                "gptPrompt": outcome.prompt,
                "response": outcome.response,
                "options": config.snapshot(),
            })
        except (StoreNotInitializedError, PersistenceError) as e:
            monitoring.inc_persist_failure(e.code)
            monitoring.logger.error(
                "Error writing response to database",
                extra={"error_code": e.code, "error": str(e), "prompt_preview": outcome.prompt[:200]},
            )
            return None

    async def export_to_csv(self, path: str) -> int:
        return await _exporter.export_to_csv(self.store, path)
