"""
Configuración centralizada de la aplicación.
Lee todas las variables de entorno usando pydantic-settings.
NUNCA hardcodear valores sensibles aquí (el token de Pipedrive solo por env).
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class PipedriveConfig:
    """Credenciales y URL base con las que se construye cada PipedriveClient."""

    base_url: str
    api_token: str
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_token)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Aplicación ----------------------------------------------------------
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"

    # Orígenes CORS permitidos (cadena separada por comas)
    CORS_ORIGINS: str = "http://localhost:3000"

    # --- Pipedrive -----------------------------------------------------------
    # Ambas son obligatorias para hablar con Pipedrive, pero su ausencia NO
    # tumba el proceso: el cliente devuelve un ConfigurationError por petición.
    PIPEDRIVE_BASE_URL: str = ""
    PIPEDRIVE_API_TOKEN: str = ""
    PIPEDRIVE_TIMEOUT_SECONDS: float = 30.0

    # --- Backend CRM ---------------------------------------------------------
    # Paginación completa de deals (Pipedrive acepta como máximo limit=500)
    CRM_DRAIN_PAGE_SIZE: int = 500
    CRM_DRAIN_MAX_PAGES: int = 200

    # Estados contados por analyzePipeline (cadena separada por comas)
    CRM_ANALYZE_STATUSES: str = "open,won,lost"

    # Las modificaciones exigen confirmado=true salvo que se desactive aquí
    CRM_REQUIRE_CONFIRMATION: bool = True

    # --- Propiedades calculadas ----------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def analyze_statuses_list(self) -> list[str]:
        return [s.strip() for s in self.CRM_ANALYZE_STATUSES.split(",") if s.strip()]

    @property
    def pipedrive(self) -> PipedriveConfig:
        return PipedriveConfig(
            base_url=self.PIPEDRIVE_BASE_URL.rstrip("/"),
            api_token=self.PIPEDRIVE_API_TOKEN,
            timeout=self.PIPEDRIVE_TIMEOUT_SECONDS,
        )

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        allowed = {"development", "production", "test"}
        if v not in allowed:
            raise ValueError(f"APP_ENV debe ser uno de: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL debe ser uno de: {allowed}")
        return v.upper()

    @field_validator("CRM_DRAIN_PAGE_SIZE")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if not 1 <= v <= 500:
            raise ValueError("CRM_DRAIN_PAGE_SIZE debe estar entre 1 y 500 (límite de Pipedrive)")
        return v

    @field_validator("CRM_DRAIN_MAX_PAGES")
    @classmethod
    def validate_max_pages(cls, v: int) -> int:
        if v < 1:
            raise ValueError("CRM_DRAIN_MAX_PAGES debe ser >= 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """Instancia singleton de Settings, cacheada para evitar re-lecturas del .env."""
    return Settings()


# Exportación conveniente para importar directamente en otros módulos
settings: Settings = get_settings()
