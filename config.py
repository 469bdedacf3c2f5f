from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "bizmate"

    jwt_secret: str = "supersecret"
    jwt_algorithm: str = "HS256"
    jwt_expires_in: int = 60 * 60 * 24

    bcrypt_rounds: int = 10

    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    port: int = 3001

    model_config = SettingsConfigDict(env_file=".env", env_prefix="", case_sensitive=False)
