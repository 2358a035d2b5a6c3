"""
Taxonomía de errores del backend CRM.

Cada error lleva un `codigo` estable (lo que ve el asistente aguas arriba)
y el `http_status` con el que lo serializan los routers.
"""

from fastapi import status


class CRMError(Exception):
    codigo: str = "ERROR_BACKEND_CRM"
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(CRMError):
    codigo = "ERR_CRM_CONFIG"


class ValidationError(CRMError):
    codigo = "ERR_CRM_PARAMETRO_FALTANTE"
    http_status = status.HTTP_400_BAD_REQUEST


class MissingParameterError(ValidationError):
    def __init__(self, action: str, missing: list[str]) -> None:
        self.action = action
        self.missing = missing
        verb = "es obligatorio" if len(missing) == 1 else "son obligatorios"
        super().__init__(f"{' y '.join(missing)} {verb} para {action}")


class UnsupportedActionError(CRMError):
    codigo = "ERR_CRM_ACCION_NO_SOPORTADA"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Acción no soportada: {action}")


class UnsupportedIntentError(CRMError):
    codigo = "ERR_CRM_INTENT_NO_SOPORTADO"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, intent: str) -> None:
        self.intent = intent
        super().__init__(f"Intent no soportado en backend CRM: {intent}")


class ConfirmationRequiredError(CRMError):
    codigo = "ERR_CRM_CONFIRMACION_REQUERIDA"
    http_status = status.HTTP_400_BAD_REQUEST


class VendorError(CRMError):
    """Pipedrive respondió fuera de 2xx o con success=false."""

    codigo = "ERR_CRM_PIPEDRIVE"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransportError(CRMError):
    """Fallo de red: la petición no llegó a tener respuesta."""


class VendorTimeoutError(TransportError):
    codigo = "ERR_CRM_TIMEOUT"


class PaginationLimitError(CRMError):
    codigo = "ERR_CRM_PAGINACION"


# ---------------------------------------------------------------------------
# Clasificación para excepciones no tipadas
# ---------------------------------------------------------------------------


def classify_error(exc: Exception) -> tuple[str, int]:
    """
    Devuelve (codigo, http_status) para cualquier excepción.
    Los CRMError traen su propio código; el resto se clasifica por el texto.
    """
    if isinstance(exc, CRMError):
        return exc.codigo, exc.http_status

    msg = str(exc).lower()
    if "timeout" in msg:
        codigo = "ERR_CRM_TIMEOUT"
    elif "no está configurado" in msg or "no esta configurado" in msg or "not configured" in msg:
        codigo = "ERR_CRM_CONFIG"
    elif "no permitido" in msg or "not allowed" in msg:
        codigo = "ERR_CRM_METHOD_NOT_ALLOWED"
    else:
        codigo = "ERROR_BACKEND_CRM"
    return codigo, status.HTTP_500_INTERNAL_SERVER_ERROR
