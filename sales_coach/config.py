"""
Application settings
Settings are read once from the environment (and a local .env file).
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime configuration for the API and the CLI."""

    openai_api_key: Optional[str] = None
    chat_model: str = "gpt-4o"
    fast_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-ada-002"
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    documents_bucket: str = "documents"

    request_timeout_seconds: float = 5.0
    llm_timeout_seconds: float = 60.0
    ingest_concurrency: int = 1

    max_chunk_length: int = 1500
    chunk_overlap: int = 200

    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            chat_model=os.getenv("OPENAI_CHAT_MODEL", "gpt-4o"),
            fast_model=os.getenv("OPENAI_FAST_MODEL", "gpt-4o-mini"),
            embedding_model=os.getenv("EMBEDDING_MODEL", "text-embedding-ada-002"),
            tts_model=os.getenv("TTS_MODEL", "tts-1"),
            tts_voice=os.getenv("TTS_VOICE", "alloy"),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            documents_bucket=os.getenv("DOCUMENTS_BUCKET", "documents"),
            request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "5")),
            llm_timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", "60")),
            ingest_concurrency=int(os.getenv("INGEST_CONCURRENCY", "1")),
            max_chunk_length=int(os.getenv("MAX_CHUNK_LENGTH", "1500")),
            chunk_overlap=int(os.getenv("CHUNK_OVERLAP", "200")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=_env_list("CORS_ORIGINS", "*"),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
