"""
Bodies de entrada de los dos endpoints.

El body se lee a mano (no como parámetro pydantic de FastAPI) para que un body
vacío o con JSON inválido se trate como {} y acabe en un 400 con nuestro
envelope, no en el 422 genérico de FastAPI.
"""

from typing import Any, TypeVar

import pydantic
from fastapi import Request
from pydantic import BaseModel, Field

from core.errors import ValidationError

T = TypeVar("T", bound=BaseModel)


class ActionRequest(BaseModel):
    action: str | None = None
    params: dict[str, Any] | None = None


class IntentRequest(BaseModel):
    intent: str | None = None
    contexto_usuario: dict[str, Any] = Field(default_factory=dict)
    parametros: dict[str, Any] = Field(default_factory=dict)


async def read_body(request: Request, model: type[T]) -> T:
    try:
        raw = await request.json()
    except ValueError:
        raw = None
    if not isinstance(raw, dict):
        raw = {}
    # null explícito en los objetos opcionales equivale a no enviarlos
    raw = {k: v for k, v in raw.items() if v is not None}
    try:
        return model.model_validate(raw)
    except pydantic.ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in exc.errors())
        raise ValidationError(f"Body inválido en: {fields}") from exc
