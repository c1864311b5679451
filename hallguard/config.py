"""Centralized configuration for Hallucination Guard."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")

DATA_DIR = Path(os.getenv("HALLGUARD_DATA_DIR", str(PROJECT_ROOT / "data")))
OUTPUTS_DIR = Path(os.getenv("HALLGUARD_OUTPUTS_DIR", str(PROJECT_ROOT / "outputs")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def bootstrap_runtime_dirs() -> None:
    for path in (DATA_DIR, OUTPUTS_DIR):
        path.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None) -> None:
    if logging.getLogger().handlers:
        return
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )


def env_flag(name: str, default: bool = False) -> bool:
    return os.getenv(name, "1" if default else "0").strip().lower() in {"1", "true", "yes"}


# Draft rewriter (optional LLM path)
OFFLINE_MODE = env_flag("OFFLINE_MODE")
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

AZURE_ENDPOINT = os.getenv("AZURE_ENDPOINT", "")
AZURE_API_KEY = os.getenv("AZURE_API_KEY", "")
AZURE_API_VERSION = os.getenv("AZURE_API_VERSION", "2024-12-01-preview")
AZURE_MODEL = os.getenv("AZURE_MODEL", "o4-mini")

GENERATION_TEMPERATURE = float(os.getenv("GENERATION_TEMPERATURE", "0.2"))
DRAFT_MAX_TOKENS = int(os.getenv("DRAFT_MAX_TOKENS", "800"))
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "2"))
LLM_BACKOFF_BASE_S = float(os.getenv("LLM_BACKOFF_BASE_S", "1.0"))
LLM_BACKOFF_MAX_S = float(os.getenv("LLM_BACKOFF_MAX_S", "15.0"))

# Embeddings
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "sentence_transformer")
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-MiniLM-L6-v2")
HASH_EMBED_DIM = int(os.getenv("HASH_EMBED_DIM", "384"))
EMBED_YIELD_EVERY = int(os.getenv("EMBED_YIELD_EVERY", "5"))
MAX_EMBED_CHUNKS = int(os.getenv("MAX_EMBED_CHUNKS", "120"))

# Chunking
CHUNK_WINDOW_CHARS = int(os.getenv("CHUNK_WINDOW_CHARS", "1000"))
CHUNK_OVERLAP_CHARS = int(os.getenv("CHUNK_OVERLAP_CHARS", "150"))

# Claims and retrieval
MAX_CLAIMS = int(os.getenv("MAX_CLAIMS", "50"))
TOP_K_PER_CLAIM = int(os.getenv("TOP_K_PER_CLAIM", os.getenv("TOP_K", "5")))

# Evidence scoring thresholds
SUPPORT_OVERLAP = float(os.getenv("SUPPORT_OVERLAP", "0.6"))
PARTIAL_OVERLAP = float(os.getenv("PARTIAL_OVERLAP", "0.4"))
CONTRADICTION_OVERLAP = float(os.getenv("CONTRADICTION_OVERLAP", "0.25"))
MIN_SHARED_CONTEXT = int(os.getenv("MIN_SHARED_CONTEXT", "2"))

# Upload and storage policy
MAX_UPLOAD_FILE_MB = int(os.getenv("MAX_UPLOAD_FILE_MB", "25"))
STORAGE_QUOTA_MB = int(os.getenv("STORAGE_QUOTA_MB", "50"))
