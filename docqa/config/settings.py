"""Application settings loaded from environment variables via pydantic-settings.

Values come from two sources, in priority order:

1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``.
2. A ``.env`` file in the working directory (local development).

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults apply
when neither source sets a value.  ``.env.example`` lists every variable.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docqa application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === LLM / Embedding Providers ===
    # Empty string = "not configured"; provider selection in main.py skips
    # providers with empty keys and falls through to the next one.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint (TogetherAI, etc.)
    openai_chat_model: str = ""  # defaults to gpt-4o
    openai_embedding_model: str = ""  # defaults to text-embedding-3-small
    anthropic_api_key: str = ""
    anthropic_model: str = ""  # defaults to claude-sonnet-4-20250514
    ollama_base_url: str = "http://localhost:11434"
    ollama_chat_model: str = ""  # defaults to llama3.1

    # === Record Store ===
    database_path: str = "data/docqa.db"
    upload_dir: str = "data/uploads"  # original PDFs; empty disables storing them

    # === Ingestion ===
    chunk_size: int = 1000
    chunk_overlap: int = 200
    embed_batch_size: int = 10
    max_upload_bytes: int = 10 * 1024 * 1024

    # === Retrieval & Generation ===
    match_threshold: float = 0.5
    match_count: int = 5
    history_turns: int = 10
    chat_temperature: float = 0.3
    chat_max_tokens: int = 2048

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return LLM provider names that are configured, in selection priority."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
