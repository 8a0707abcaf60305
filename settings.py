"""
Environment-backed configuration for the blog backend.
"""

import tempfile
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Session tokens
    secret: Optional[str] = None  # HS256 signing secret
    token_expire_days: int = 15

    # Database
    mongo_uri: str = "mongodb://localhost:27017/blog"
    mongo_database: str = "blog"  # used when the URI names no database

    # Storage methods: s3, backblaze or memory
    storage: str = "s3"
    aws_region: str = "us-east-1"
    aws_s3_bucket_name: str = ""
    b2_key_id: str = ""
    b2_application_key: str = ""
    b2_bucket_name: str = ""
    upload_folder: str = Field(default_factory=tempfile.gettempdir)
    cleanup_orphan_uploads: bool = False

    # HTTP
    api_prefix: str = ""
    frontend_url: Optional[str] = None
    extra_origins: list[str] = ["http://localhost:3000"]
    cookie_name: str = "token"
    cookie_secure: bool = False
    post_list_limit: int = 20

    log_level: str = "INFO"

    @property
    def allowed_origins(self) -> list[str]:
        origins = list(self.extra_origins)
        if self.frontend_url and self.frontend_url not in origins:
            origins.insert(0, self.frontend_url)
        return origins


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
