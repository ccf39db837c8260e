from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List, Optional

class Settings(BaseSettings):
    app_title: str = Field("Coloring Book Creator API", env="APP_TITLE")
    app_version: str = Field("1.0.0", env="APP_VERSION")
    log_level: str = Field("INFO", env="LOG_LEVEL")
    cors_origins: List[str] = Field(["http://localhost:5173", "http://localhost:3000"], env="CORS_ORIGINS")

    # OpenAI
    openai_api_key: Optional[str] = Field(None, env="OPENAI_API_KEY")
    openai_chat_model: str = Field("gpt-4o-mini", env="OPENAI_CHAT_MODEL")
    openai_primary_image_model: str = Field("gpt-image-1", env="OPENAI_PRIMARY_IMAGE_MODEL")
    openai_fallback_image_model: str = Field("dall-e-3", env="OPENAI_FALLBACK_IMAGE_MODEL")
    image_size: str = Field("1024x1024", env="IMAGE_SIZE")
    openai_timeout_seconds: float = Field(60.0, env="OPENAI_TIMEOUT_SECONDS")
    # the fallback tier is the only retry; SDK retries stay off
    openai_max_retries: int = Field(0, env="OPENAI_MAX_RETRIES")
    default_retry_after_seconds: int = Field(60, env="DEFAULT_RETRY_AFTER_SECONDS")

    # AWS
    aws_region: str = Field("us-east-1", env="AWS_REGION")
    aws_endpoint_url: Optional[str] = Field(None, env="AWS_ENDPOINT_URL")
    external_endpoint: Optional[str] = Field(None, env="EXTERNAL_ENDPOINT")
    aws_access_key_id: str = Field("test", env="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str = Field("test", env="AWS_SECRET_ACCESS_KEY")
    s3_bucket: str = Field("coloring-book-images", env="S3_BUCKET")
    dynamodb_table: str = Field("GalleryImages", env="DYNAMODB_TABLE")
    presign_expire_seconds: int = Field(900, env="PRESIGN_EXPIRE_SECONDS")
    # DynamoDB items are capped at 400KB, bigger data URIs go to S3
    inline_image_max_bytes: int = Field(300_000, env="INLINE_IMAGE_MAX_BYTES")

    # Auth
    auth_jwt_secret: Optional[str] = Field(None, env="AUTH_JWT_SECRET")
    auth_jwt_algorithm: str = Field("HS256", env="AUTH_JWT_ALGORITHM")
    auth_certs_url: Optional[str] = Field(None, env="AUTH_CERTS_URL")
    auth_audience: Optional[str] = Field(None, env="AUTH_AUDIENCE")
    auth_issuer: Optional[str] = Field(None, env="AUTH_ISSUER")
    auth_certs_cache_seconds: int = Field(3600, env="AUTH_CERTS_CACHE_SECONDS")

    # Rate limiting (fixed window per client address)
    generation_rate_limit: int = Field(10, env="GENERATION_RATE_LIMIT")
    generation_rate_window_seconds: int = Field(600, env="GENERATION_RATE_WINDOW_SECONDS")

    pdf_fetch_timeout_seconds: float = Field(30.0, env="PDF_FETCH_TIMEOUT_SECONDS")

    class Config:
        env_file = ".env"
        extra = "allow"  # tolerate unknown vars if needed

settings = Settings()
