from __future__ import annotations

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION_ENV_NAMES = frozenset({"prod", "production"})


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    HOST: str = "0.0.0.0"
    PORT: int = 5000
    NODE_ENV: str = "development"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    METRICS_ENABLED: bool = False

    MAX_REQUEST_BODY_BYTES: int = 10 * 1024 * 1024
    TRUSTED_PROXIES: str = "*"
    CORS_ALLOW_ORIGINS: str = "*"
    CORS_ALLOW_METHODS: str = "GET,POST,PUT,DELETE,OPTIONS"
    CORS_ALLOW_HEADERS: str = "Content-Type,Authorization"
    CORS_ALLOW_CREDENTIALS: bool = True

    @staticmethod
    def _parse_csv(value: str) -> List[str]:
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def app_env(self) -> str:
        value = (self.NODE_ENV or "").strip().lower()
        return value or "development"

    @property
    def is_production(self) -> bool:
        return self.app_env in PRODUCTION_ENV_NAMES

    @property
    def cors_allow_origins_list(self) -> List[str]:
        values = self._parse_csv(self.CORS_ALLOW_ORIGINS)
        return values or ["*"]

    @property
    def cors_reflects_any_origin(self) -> bool:
        return "*" in self.cors_allow_origins_list

    @property
    def cors_allow_methods_list(self) -> List[str]:
        values = [item.upper() for item in self._parse_csv(self.CORS_ALLOW_METHODS)]
        return values or ["GET", "POST", "PUT", "DELETE", "OPTIONS"]

    @property
    def cors_allow_headers_list(self) -> List[str]:
        values = self._parse_csv(self.CORS_ALLOW_HEADERS)
        return values or ["Content-Type", "Authorization"]

    @property
    def trusted_proxies_list(self) -> List[str]:
        return self._parse_csv(self.TRUSTED_PROXIES)
