"""Centralized configuration for the Helpdesk Agent services.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/helpdesk-agent/<VARIABLE_NAME>``.
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
    unavailable, so that local-dev fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 (only needed on AWS)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/helpdesk-agent/{name}", WithDecryption=True)
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
        f"Set it in .env (local) or SSM Parameter Store /helpdesk-agent/{name} (AWS)."
    )


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


# ── Deployed services ───────────────────────────────────────────────
# One process per service; backend settings are only required when an
# enabled service talks to that backend.
SERVICES: list[str] = _split_csv(os.getenv("SERVICES", "query,summary,letter"))
NEEDS_INDEX: bool = "query" in SERVICES
NEEDS_TICKETS: bool = bool({"summary", "letter"} & set(SERVICES))


def _service_env(name: str, required: bool) -> str:
    """Like ``_require_env`` when *required*, otherwise the raw value or ``""``."""
    if required:
        return _require_env(name)
    return os.getenv(name, "")


# ── OpenAI (embeddings + completions) ───────────────────────────────
OPENAI_API_KEY: str = _require_env("OPENAI_API_KEY")
EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-large")
COMPLETION_MODEL: str = os.getenv("COMPLETION_MODEL", "gpt-4")
COMPLETION_TEMPERATURE: float = float(os.getenv("COMPLETION_TEMPERATURE", "0.7"))

# Model used for the THINKING steps of the ticket agents
AGENT_MODEL: str = os.getenv("AGENT_MODEL", "gpt-4o")
AGENT_TEMPERATURE: float = float(os.getenv("AGENT_TEMPERATURE", "0"))
AGENT_MAX_ITERATIONS: int = int(os.getenv("AGENT_MAX_ITERATIONS", "3"))

# ── Pinecone (vector index, query service only) ─────────────────────
PINECONE_API_KEY: str = _service_env("PINECONE_API_KEY", NEEDS_INDEX)
PINECONE_INDEX: str = _service_env("PINECONE_INDEX", NEEDS_INDEX)
PINECONE_NAMESPACE: str = os.getenv("PINECONE_NAMESPACE", "")
PINECONE_CONTROL_URL: str = os.getenv("PINECONE_CONTROL_URL", "https://api.pinecone.io")
RETRIEVAL_TOP_K: int = int(os.getenv("RETRIEVAL_TOP_K", "4"))

# ── PocketBase (tickets + messages, summary and letter services) ────
POCKETBASE_URL: str = _service_env("POCKETBASE_URL", NEEDS_TICKETS).rstrip("/")
POCKETBASE_ADMIN_EMAIL: str = _service_env("POCKETBASE_ADMIN_EMAIL", NEEDS_TICKETS)
POCKETBASE_ADMIN_PASSWORD: str = _service_env("POCKETBASE_ADMIN_PASSWORD", NEEDS_TICKETS)
POCKETBASE_AUTH_PATH: str = os.getenv(
    "POCKETBASE_AUTH_PATH", "/api/admins/auth-with-password",
)
TICKETS_COLLECTION: str = os.getenv("TICKETS_COLLECTION", "tickets")
MESSAGES_COLLECTION: str = os.getenv("MESSAGES_COLLECTION", "messages")

# Per-call transport timeout for every outbound HTTP client
HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("PORT", "3000" if SERVICES == ["query"] else "8080"))
CORS_ORIGINS: list[str] = _split_csv(
    os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,"
        "http://localhost:5173,"
        "http://localhost:4200,"
        "https://chatgenius-prompt-server-project2.fly.dev,"
        "https://chatgenius-project2-final.netlify.app",
    )
)
CORS_METHODS: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS: list[str] = ["Content-Type", "Authorization"]
