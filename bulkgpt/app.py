# bulkgpt/app.py
import os
import time
import tempfile
from contextlib import asynccontextmanager
from typing import List, Optional

# Load .env BEFORE any bulkgpt imports (they read env vars at import time)
from dotenv import load_dotenv
load_dotenv(override=True)

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel
from starlette.background import BackgroundTask

from bulkgpt.orchestrator import BulkCompletionApi
from bulkgpt.errors import BulkGptError, EmptyBatchError, StoreNotInitializedError
from bulkgpt.schemas import RequestConfig
from bulkgpt import monitoring
from bulkgpt import auth as authmod

API_KEY_HEADER = "x-api-key"

# set in lifespan; tests swap in their own instance
api: Optional[BulkCompletionApi] = None


def build_api() -> BulkCompletionApi:
    """Construct the API object from OPENAI_API_KEY / BULKGPT_DB_PATH / BULKGPT_RECREATE_DB."""
    return BulkCompletionApi(
        api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        db_path=os.getenv("BULKGPT_DB_PATH", "responses.db") or None,
        recreate_db=os.getenv("BULKGPT_RECREATE_DB", "false").lower() in ("1", "true", "yes"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    global api
    if api is None:
        api = build_api()
    await api.open()
    try:
        yield
    finally:
        await api.close()


app = FastAPI(title="Bulk Completion API", lifespan=lifespan)


def _error(status_code: int, error_code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "error_code": error_code, "message": message},
    )


# ---------------------------------------------------------------------------
# Auth middleware on /api/* paths (runs inside the metrics middleware)
# ---------------------------------------------------------------------------
@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    if not request.url.path.startswith("/api/"):
        return await call_next(request)
    if not authmod.is_key_allowed(request.headers.get(API_KEY_HEADER)):
        return JSONResponse(status_code=401, content={"detail": "Missing or invalid API key"})
    return await call_next(request)


# ---------------------------------------------------------------------------
# Metrics middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    endpoint = request.url.path
    method = request.method
    status = "500"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    except Exception:
        monitoring.logger.exception("Unhandled exception in request", extra={"path": endpoint})
        raise
    finally:
        monitoring.observe_request(start, endpoint, method, status)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
class CompletionRequest(BaseModel):
    prompt: str
    config: Optional[RequestConfig] = None


class BatchRequest(BaseModel):
    prompts: List[str]
    config: Optional[RequestConfig] = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@app.post("/api/completions")
async def create_completion(req: CompletionRequest):
    """
    POST /api/completions
    Body: { "prompt": "...", "config": {"maxTokens": 64, ...} }
    Returns the outcome; single completions are not persisted.
    """
    outcome = await api.make_request(req.prompt, req.config)
    return JSONResponse(status_code=200, content=outcome.model_dump())


@app.post("/api/batches")
async def create_batch(req: BatchRequest):
    """
    POST /api/batches
    Body: { "prompts": ["...", "..."], "config": {...} }
    outcomes[i] answers prompts[i]; successes are persisted.
    """
    monitoring.logger.info("Received /api/batches request", extra={"batch_size": len(req.prompts)})
    try:
        outcomes = await api.make_batch_request(req.prompts, req.config)
    except EmptyBatchError as e:
        return _error(400, e.code, str(e))
    return JSONResponse(
        status_code=200,
        content={"status": "success", "outcomes": [o.model_dump() for o in outcomes]},
    )


@app.get("/api/responses")
async def list_responses():
    try:
        records = await api.store.read_all()
    except StoreNotInitializedError as e:
        return _error(503, e.code, str(e))
    except BulkGptError as e:
        return _error(500, e.code, str(e))
    return JSONResponse(
        status_code=200,
        content={"status": "success", "records": [r.model_dump() for r in records]},
    )


@app.get("/api/responses/export")
async def export_responses():
    """GET /api/responses/export — every stored row as a CSV download."""
    fd, path = tempfile.mkstemp(suffix=".csv")
    os.close(fd)
    try:
        await api.export_to_csv(path)
    except BulkGptError as e:
        os.remove(path)
        status_code = 503 if isinstance(e, StoreNotInitializedError) else 500
        return _error(status_code, e.code, str(e))
    return FileResponse(
        path,
        media_type="text/csv",
        filename="responses.csv",
        background=BackgroundTask(os.remove, path),
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    if not monitoring.PROMETHEUS_ENABLED:
        return PlainTextResponse("Prometheus disabled", status_code=404)
    payload, content_type = monitoring.prometheus_metrics_response()
    return Response(content=payload, media_type=content_type)
