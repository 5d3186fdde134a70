# bulkgpt/auth.py
"""
API key auth for the HTTP surface.

Env vars:
- MOCK_AUTH (default: true) — bypass auth in dev
- API_KEYS — comma-separated allowed keys
- API_KEYS_FILE — optional path to file with one key per line
"""

import os
from typing import Optional, Set

# Configuration
MOCK_AUTH = os.getenv("MOCK_AUTH", "true").lower() in ("1", "true", "yes")
API_KEYS_ENV = os.getenv("API_KEYS", "")
API_KEYS_FILE = os.getenv("API_KEYS_FILE", "")


def _load_api_keys() -> Set[str]:
    keys: Set[str] = set()
    for k in API_KEYS_ENV.split(","):
        k = k.strip()
        if k:
            keys.add(k)
    if API_KEYS_FILE and os.path.exists(API_KEYS_FILE):
        with open(API_KEYS_FILE, "r", encoding="utf-8") as f:
            for line in f:
                k = line.strip()
                if k:
                    keys.add(k)
    return keys


API_KEYS = _load_api_keys()


def is_key_allowed(api_key: Optional[str]) -> bool:
    """Check if API key is valid. If MOCK_AUTH=true, always returns True."""
    if MOCK_AUTH:
        return True
    if not api_key or not API_KEYS:
        return False
    return api_key in API_KEYS
