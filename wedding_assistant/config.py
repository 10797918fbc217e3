"""Centralized configuration for the Wedding Assistant.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/wedding-assistant/<VARIABLE_NAME>``.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 (lazy import to avoid boto3 dep in tests)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/wedding-assistant/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store /wedding-assistant/{name} (AWS)."
    )


# ── Azure OpenAI (response generation) ──────────────────────────────
AZURE_OPENAI_ENDPOINT: str = _require_env("AZURE_OPENAI_ENDPOINT")
AZURE_OPENAI_API_KEY: str = _require_env("AZURE_OPENAI_API_KEY")
AZURE_OPENAI_DEPLOYMENT_NAME: str = _require_env("AZURE_OPENAI_DEPLOYMENT_NAME")
AZURE_OPENAI_API_VERSION: str = os.getenv("AZURE_OPENAI_API_VERSION", "2024-06-01")
LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

# ── Azure AI Search (knowledge index) ───────────────────────────────
AZURE_SEARCH_ENDPOINT: str = _require_env("AZURE_SEARCH_ENDPOINT")
AZURE_SEARCH_API_KEY: str = _require_env("AZURE_SEARCH_API_KEY")
AZURE_SEARCH_INDEX_NAME: str = _require_env("AZURE_SEARCH_INDEX_NAME")
AZURE_SEARCH_API_VERSION: str = os.getenv("AZURE_SEARCH_API_VERSION", "2024-07-01")
SEARCH_SEMANTIC_CONFIGURATION: str = os.getenv(
    "SEARCH_SEMANTIC_CONFIGURATION",
    "vector-1745864508214-semantic-configuration",
)
SEARCH_VECTORIZER: str = os.getenv(
    "SEARCH_VECTORIZER",
    "vector-1745864508214-azureOpenAi-text-vectorizer",
)
SEARCH_VECTOR_FIELD: str = os.getenv("SEARCH_VECTOR_FIELD", "text_vector")

# ── Azure Communication Services (WhatsApp channel) ─────────────────
ACS_CONNECTION_STRING: str = _require_env("ACS_CONNECTION_STRING")
ACS_CHANNEL_REGISTRATION_ID: str = _require_env("ACS_CHANNEL_REGISTRATION_ID")
ACS_MESSAGES_API_VERSION: str = os.getenv("ACS_MESSAGES_API_VERSION", "2024-02-01")

# ── HTTP clients ────────────────────────────────────────────────────
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "15"))

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
