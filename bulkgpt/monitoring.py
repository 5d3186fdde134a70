# bulkgpt/monitoring.py
"""
Centralized monitoring: Prometheus metrics, structured JSON logging, optional Sentry.

Env vars:
- PROMETHEUS_ENABLED (default: true)
- SENTRY_DSN (optional)
- LOG_AS_JSON (default: true)
- LOG_LEVEL (default: INFO)
- ENVIRONMENT (default: development)
"""

import os
import logging
import time
from typing import Tuple

import sentry_sdk
from prometheus_client import (
    Counter, Histogram,
    generate_latest, CONTENT_TYPE_LATEST, REGISTRY,
)
from pythonjsonlogger.json import JsonFormatter

# --- ENV flags
PROMETHEUS_ENABLED = os.getenv("PROMETHEUS_ENABLED", "true").lower() in ("1", "true", "yes")
SENTRY_DSN = os.getenv("SENTRY_DSN", None)
LOG_AS_JSON = os.getenv("LOG_AS_JSON", "true").lower() in ("1", "true", "yes")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# --- Logger setup
def setup_logger(name: str = "bulkgpt", level: int = None) -> logging.Logger:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO")) if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if LOG_AS_JSON:
            fmt = JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s"
            )
            handler.setFormatter(fmt)
        logger.addHandler(handler)
    return logger


logger = setup_logger()

# --- Sentry (optional)
if SENTRY_DSN:
    sentry_sdk.init(dsn=SENTRY_DSN, environment=ENVIRONMENT)
    logger.info("Sentry initialized")


# --- Prometheus metrics
REQUEST_COUNT = Counter(
    "bulkgpt_http_requests_total",
    "Total HTTP API requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "bulkgpt_http_request_latency_seconds",
    "HTTP request latency in seconds",
    ["endpoint"],
)

COMPLETION_COUNTER = Counter(
    "bulkgpt_completions_total",
    "Completion requests sent to the remote service",
    ["mode", "outcome"],
)

COMPLETION_LATENCY = Histogram(
    "bulkgpt_completion_latency_seconds",
    "Latency of a single completion request",
    ["mode"],
)

BATCH_SIZE = Histogram(
    "bulkgpt_batch_size",
    "Prompts per batch request",
    buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000),
)

PERSIST_FAILURES = Counter(
    "bulkgpt_persist_failures_total",
    "Successful completions that could not be written to the store",
    ["error_code"],
)

EXPORT_COUNTER = Counter(
    "bulkgpt_exports_total",
    "CSV exports",
    ["outcome"],
)


# --- Helper wrappers
def observe_request(start_ts: float, endpoint: str, method: str, status: str):
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.time() - start_ts)
    REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()


def observe_completion(start_ts: float, mode: str, outcome: str):
    COMPLETION_LATENCY.labels(mode=mode).observe(time.time() - start_ts)
    COMPLETION_COUNTER.labels(mode=mode, outcome=outcome).inc()


def observe_batch_size(n: int):
    BATCH_SIZE.observe(n)


def inc_persist_failure(code: str):
    PERSIST_FAILURES.labels(error_code=code).inc()


def inc_export(outcome: str):
    EXPORT_COUNTER.labels(outcome=outcome).inc()


def prometheus_metrics_response() -> Tuple[bytes, str]:
    """Return (body_bytes, content_type) for Prometheus scrape."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
