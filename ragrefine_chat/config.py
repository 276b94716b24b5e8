"""
RAGRefine Chat - Configuration
Loads environment variables for the inference endpoint and the RAGRefine analytics service.
JSON-typed variables (MODEL_PARAMETERS, OPENAI_EXTRA_BODY, OPENAI_DEFAULT_HEADERS) must parse at import.
"""

import os
import json
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_json(name: str, default: dict) -> dict:
    raw = os.getenv(name)
    if not raw:
        return dict(default)
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{name} is not valid JSON: {e}") from e
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a JSON object")
    return value


def _env_float(name: str):
    raw = os.getenv(name)
    if not raw:
        return None
    return float(raw)


# RAGRefine analytics service
RAGREFINE_API_URL = os.getenv("RAGREFINE_API_URL", "http://localhost:8080").rstrip("/")
# No timeout unless set; requests waits on the transport
RAGREFINE_TIMEOUT = _env_float("RAGREFINE_TIMEOUT")

# Inference endpoint (OpenAI-compatible)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY") or os.getenv("HF_TOKEN") or "sk-"
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4.1")

MODEL_PARAMETERS = _env_json("MODEL_PARAMETERS", {})
OPENAI_EXTRA_BODY = _env_json("OPENAI_EXTRA_BODY", {})
OPENAI_DEFAULT_HEADERS = _env_json("OPENAI_DEFAULT_HEADERS", {})

PUBLIC_APP_NAME = os.getenv("PUBLIC_APP_NAME", "RAGRefine Chat")

# Send max_completion_tokens instead of max_tokens (newer OpenAI models)
USE_COMPLETION_TOKENS = _env_bool("USE_COMPLETION_TOKENS", False)
STREAMING_SUPPORTED = _env_bool("STREAMING_SUPPORTED", True)

# Tool loop
MAX_TOOL_ITERATIONS = int(os.getenv("MAX_TOOL_ITERATIONS", "10"))
TOOL_MAX_CONCURRENCY = int(os.getenv("TOOL_MAX_CONCURRENCY", "4"))

UNKNOWN_TOOL_POLICIES = ("error", "drop")
UNKNOWN_TOOL_POLICY = os.getenv("UNKNOWN_TOOL_POLICY", "error").strip().lower()
if UNKNOWN_TOOL_POLICY not in UNKNOWN_TOOL_POLICIES:
    raise ValueError(
        f"UNKNOWN_TOOL_POLICY must be one of {UNKNOWN_TOOL_POLICIES}, got {UNKNOWN_TOOL_POLICY!r}"
    )

APP_VERSION = "1.0.0"


def get_default_headers() -> dict:
    """
    Client-level default headers for the inference endpoint.

    Returns:
        OPENAI_DEFAULT_HEADERS plus the HuggingChat user agent when PUBLIC_APP_NAME asks for it.
    """
    headers = {}
    if PUBLIC_APP_NAME == "HuggingChat":
        headers["User-Agent"] = "huggingchat"
    headers.update(OPENAI_DEFAULT_HEADERS)
    return headers
