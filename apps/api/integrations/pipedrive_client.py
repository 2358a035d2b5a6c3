"""
Cliente HTTP para la API REST v1 de Pipedrive.

Reglas:
- Autenticación por api_token como query param en TODAS las llamadas
- Una sola llamada de red por petición: sin reintentos, sin caché, sin rate limit
- NUNCA lanza por errores de Pipedrive o de red: devuelve un PipedriveResponse
  con status="error" y el error tipado; el caller decide con unwrap()
"""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from core.config import PipedriveConfig
from core.errors import (
    ConfigurationError,
    CRMError,
    TransportError,
    ValidationError,
    VendorError,
    VendorTimeoutError,
)

logger = structlog.get_logger(__name__)

ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})

# Campos de error de Pipedrive, en orden de prioridad
_ERROR_FIELDS = ("error", "error_info", "message")


# ---------------------------------------------------------------------------
# Respuesta normalizada
# ---------------------------------------------------------------------------


@dataclass
class PipedriveResponse:
    status: str                    # "success" | "error"
    message: str
    data: Any = None
    additional_data: dict | None = None   # paginación de Pipedrive (solo en success)
    error: CRMError | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def pagination(self) -> dict | None:
        if not self.additional_data:
            return None
        return self.additional_data.get("pagination")

    def unwrap(self) -> Any:
        """Devuelve `data` o lanza el error tipado que trae la respuesta."""
        if self.ok:
            return self.data
        raise self.error or VendorError(self.message)

    @classmethod
    def failure(cls, error: CRMError, data: Any = None) -> "PipedriveResponse":
        return cls(status="error", message=error.message, data=data, error=error)


# ---------------------------------------------------------------------------
# Cliente principal
# ---------------------------------------------------------------------------


class PipedriveClient:
    """
    Cliente asíncrono para Pipedrive.

    Uso:
        async with PipedriveClient(settings.pipedrive) as client:
            resp = await client.request("GET", "/deals", query={"status": "open"})

    El http_client es inyectable para facilitar tests unitarios.
    NUNCA loguear api_token.
    """

    def __init__(
        self,
        config: PipedriveConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = http_client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout),
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "PipedriveClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # -----------------------------------------------------------------------
    # Request base
    # -----------------------------------------------------------------------

    def _build_params(self, query: dict[str, Any] | None) -> dict[str, str]:
        """Descarta valores None y añade el api_token."""
        params: dict[str, str] = {}
        for key, value in (query or {}).items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = int(value)
            params[key] = str(value)
        params["api_token"] = self._config.api_token
        return params

    async def request(
        self,
        method: str,
        path: str,
        *,
        query: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> PipedriveResponse:
        """
        Ejecuta UNA petición contra Pipedrive y normaliza la respuesta.
        Es error si falla la red, si el HTTP no es 2xx o si el body trae success=false.
        """
        method = method.upper()
        if method not in ALLOWED_METHODS:
            return PipedriveResponse.failure(ValidationError(f"Método HTTP no soportado: {method}"))

        if not self._config.is_configured:
            return PipedriveResponse.failure(
                ConfigurationError(
                    "Pipedrive no está configurado (PIPEDRIVE_BASE_URL / PIPEDRIVE_API_TOKEN)"
                )
            )

        kwargs: dict[str, Any] = {"params": self._build_params(query)}
        if body is not None and method != "GET":
            kwargs["json"] = body
            kwargs["headers"] = {"Content-Type": "application/json"}

        logger.debug("pipedrive.request", method=method, path=path, query=query)

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("pipedrive.timeout", method=method, path=path, error=str(exc))
            return PipedriveResponse.failure(
                VendorTimeoutError(f"Timeout en llamada a Pipedrive: {str(exc) or type(exc).__name__}")
            )
        except httpx.HTTPError as exc:
            logger.warning("pipedrive.network_error", method=method, path=path, error=str(exc))
            return PipedriveResponse.failure(
                TransportError(str(exc) or "Error en llamada a Pipedrive")
            )

        try:
            payload = response.json()
        except ValueError:
            payload = None

        vendor_failed = isinstance(payload, dict) and payload.get("success") is False
        if not 200 <= response.status_code < 300 or vendor_failed:
            message = _vendor_error_message(payload) or f"HTTP {response.status_code}"
            logger.warning(
                "pipedrive.error",
                method=method,
                path=path,
                status=response.status_code,
                error=message,
            )
            return PipedriveResponse.failure(
                VendorError(message, status_code=response.status_code),
                data=payload,
            )

        if isinstance(payload, dict) and "data" in payload:
            return PipedriveResponse(
                status="success",
                message="OK",
                data=payload["data"],
                additional_data=payload.get("additional_data"),
            )
        return PipedriveResponse(status="success", message="OK", data=payload)


def _vendor_error_message(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    for field in _ERROR_FIELDS:
        value = payload.get(field)
        if value:
            return str(value)
    return None
