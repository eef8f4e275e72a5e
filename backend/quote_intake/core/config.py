from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Quote Intake"

    database_url: str = "sqlite:///./data/quotes.sqlite"

    # JWT
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 7

    # Single administrator; empty values mean admin login is refused
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""

    # Uploads
    UPLOAD_DIR: str = "./data/uploads"
    MAX_UPLOAD_FILES: int = 10
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    # Allowance for the text fields and multipart framing of one submission
    MAX_FORM_FIELDS_BYTES: int = 64 * 1024

    # Public submission throttle (per client address)
    QUOTE_RATE_LIMIT: int = 20
    QUOTE_RATE_WINDOW_SECONDS: int = 60 * 60

    CORS_ORIGINS: str = (
        "http://127.0.0.1:5500,http://localhost:5500,"
        "http://127.0.0.1:3000,http://localhost:3000"
    )

    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
