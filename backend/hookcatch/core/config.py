from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "hookcatch"
    version: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    APP_DOMAIN: str = "example.com"
    APP_BASE_URL: str = "http://localhost:8000"
    APP_DATA_PATH: str = "/tmp"
    APP_DATABASE_DSN: str = "sqlite:////tmp/hookcatch.db"
    DATABASE_AUTO_CREATE: bool = True  # create missing tables at startup
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Object storage: "local" or "s3"
    STORAGE_BACKEND: str = "local"
    STORAGE_LOCAL_ROOT: str = ""  # defaults to APP_DATA_PATH/objects
    S3_BUCKET: str = "hookcatch-files"
    S3_ENDPOINT_URL: str = ""
    S3_REGION: str = "us-east-1"
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    S3_CONNECT_TIMEOUT_SECONDS: float = 5.0
    S3_READ_TIMEOUT_SECONDS: float = 30.0
    PRESIGN_EXPIRES_SECONDS: int = 3600
    PRESIGN_SECRET: str = "presign_default_secret"

    # Uploads
    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024
    UPLOAD_ALLOWED_CONTENT_TYPES: str = "text/plain,text/markdown,image/png,image/jpeg,image/gif"
    INDEXABLE_CONTENT_TYPES: str = "text/plain,text/markdown"

    # Embeddings: "hashing" (local) or "http" (OpenAI-compatible API)
    EMBEDDING_BACKEND: str = "hashing"
    EMBEDDING_API_URL: str = "https://api.openai.com/v1"
    EMBEDDING_API_KEY: str = ""
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0
    EMBEDDING_DIMENSIONS: int = 384

    # Vector search
    VECTOR_SEARCH_TOP_K: int = 10

    # Background indexing: "local" (in-process) or "arq" (Redis worker)
    INDEXING_QUEUE: str = "local"
    SHUTDOWN_DRAIN_TIMEOUT_SECONDS: float = 30.0

    @property
    def storage_local_root(self) -> str:
        return self.STORAGE_LOCAL_ROOT or f"{self.APP_DATA_PATH.rstrip('/')}/objects"

    @property
    def upload_allowed_content_types(self) -> set[str]:
        return _split_csv(self.UPLOAD_ALLOWED_CONTENT_TYPES)

    @property
    def indexable_content_types(self) -> set[str]:
        return _split_csv(self.INDEXABLE_CONTENT_TYPES)


def _split_csv(value: str) -> set[str]:
    return {item.strip().lower() for item in value.split(",") if item.strip()}


settings = Settings()
