from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Used by background workers (image generation)

    # AI providers
    google_ai_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-pro"
    openai_chat_model: str = "gpt-4o"
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    ai_request_timeout: float = 60.0

    # RAG
    embedding_model: str = "text-embedding-ada-002"
    rag_default_model: str = "gpt-3.5-turbo"
    rag_query_expansion: bool = False
    max_upload_size_mb: int = 50

    # Image generation (upstream HTTP API; placeholders when unset)
    image_api_url: Optional[str] = None
    image_api_key: Optional[str] = None
    max_concurrent_generations: int = 3

    # Document storage
    storage_bucket: str = "documents"

    # AWS S3 (will read from uppercase env vars automatically)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_bucket_name: Optional[str] = None

    # Code execution
    code_execution_enabled: bool = True

    # App
    app_name: str = "planforge-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def s3_configured(self) -> bool:
        return all([self.aws_access_key_id, self.aws_secret_access_key, self.s3_bucket_name])

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
