from typing import List, Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    env: str = "local"
    log_level: str = "INFO"

    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "ebookstore"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"
    # Full URL wins over the postgres_* parts (sqlite in tests, managed DBs)
    database_url_override: Optional[str] = None

    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    download_token_expire_hours: int = 24 * 7

    mercadopago_access_token: str = ""
    coinbase_commerce_api_key: str = ""
    coinbase_commerce_webhook_secret: str = ""

    brevo_api_key: str = ""
    mail_from: str = "noreply@fudekotoba.com.br"
    store_name: str = "Fude kotoba"

    app_url: str = "http://localhost:3000"
    storage_base_url: str = "http://localhost:9000/ebooks"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def database_url(self):
        if self.database_url_override:
            return self.database_url_override
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"

settings = Settings()
