from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASS: str = "postgres"
    DB_NAME: str = "drive"
    DATABASE_URL: str | None = None

    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    JWT_AUDIENCE: str | None = None

    S3_BUCKET: str = "drive"
    S3_REGION: str = "us-east-1"
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_ENDPOINT_URL: str | None = None

    UPLOAD_URL_TTL_SECONDS: int = 900
    OWNER_DOWNLOAD_TTL_SECONDS: int = 60
    PUBLIC_DOWNLOAD_TTL_SECONDS: int = 3600
    VERIFY_UPLOADS: bool = False

    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    PENDING_UPLOAD_TTL_HOURS: int = 24
    SWEEP_INTERVAL_SECONDS: int = 3600

    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self):
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
