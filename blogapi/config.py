from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

INSECURE_SECRET_KEY = "change-me-insecure-secret"
DEVELOPMENT_ENVIRONMENTS = ("development", "test")


class Settings(BaseSettings):
    APP_NAME: str = "Blog API"
    ENVIRONMENT: str = "development"

    SECRET_KEY: str = INSECURE_SECRET_KEY
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 10

    DATABASE_URL: str = "sqlite:///./database.sqlite"

    ALLOWED_ORIGINS: List[str] = ["*"]
    HOST: str = "127.0.0.1"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def check_secret_key(self):
        # The placeholder key is only tolerated outside of deployed environments
        if self.ENVIRONMENT.lower() not in DEVELOPMENT_ENVIRONMENTS:
            if not self.SECRET_KEY or self.SECRET_KEY == INSECURE_SECRET_KEY:
                raise ValueError(
                    f"SECRET_KEY must be set when ENVIRONMENT={self.ENVIRONMENT!r}"
                )
        return self


def get_settings() -> Settings:
    return Settings()
