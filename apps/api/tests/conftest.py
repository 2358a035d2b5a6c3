"""
Fixtures compartidas.
El httpx.AsyncClient se inyecta como mock para aislar la red:
ningún test necesita Pipedrive real ni variables de entorno.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from core.config import Settings
from integrations.pipedrive_client import PipedriveClient
from services.crm_actions import ActionDispatcher

API_TOKEN = "test_pd_token_abc123"
BASE_URL = "https://acme.pipedrive.com/api/v1"


def _mock_response(json_body: object = None, status_code: int = 200, invalid_json: bool = False) -> MagicMock:
    """Crea un MagicMock de httpx.Response."""
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    if invalid_json:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = json_body
    return resp


def _pd_body(data: Any, more: bool | None = None, next_start: int | None = None, **extra: Any) -> dict:
    """Envelope típico de Pipedrive v1: { success, data, additional_data }."""
    body: dict[str, Any] = {"success": True, "data": data, **extra}
    if more is not None:
        pagination: dict[str, Any] = {"more_items_in_collection": more}
        if next_start is not None:
            pagination["next_start"] = next_start
        body["additional_data"] = {"pagination": pagination}
    return body


@pytest.fixture
def mock_response() -> Callable[..., MagicMock]:
    return _mock_response


@pytest.fixture
def pd_body() -> Callable[..., dict]:
    return _pd_body


@pytest.fixture
def settings() -> Settings:
    return Settings(
        APP_ENV="test",
        PIPEDRIVE_BASE_URL=BASE_URL,
        PIPEDRIVE_API_TOKEN=API_TOKEN,
        CRM_DRAIN_PAGE_SIZE=500,
        CRM_DRAIN_MAX_PAGES=50,
        CRM_ANALYZE_STATUSES="open,won,lost",
        CRM_REQUIRE_CONFIRMATION=True,
    )


@pytest.fixture
def make_client(settings: Settings) -> Callable[..., tuple[PipedriveClient, AsyncMock]]:
    """
    Crea un PipedriveClient con http_client mockeado.
    responses: lista de respuestas en orden, o callable(method, path, **kwargs).
    """

    def factory(responses: list | Callable, config=None) -> tuple[PipedriveClient, AsyncMock]:
        mock_http = AsyncMock(spec=httpx.AsyncClient)
        mock_http.request = AsyncMock(side_effect=responses)
        mock_http.aclose = AsyncMock()
        client = PipedriveClient(config or settings.pipedrive, http_client=mock_http)
        return client, mock_http

    return factory


@pytest.fixture
def make_dispatcher(make_client, settings: Settings) -> Callable[..., tuple[ActionDispatcher, AsyncMock]]:
    def factory(responses: list | Callable) -> tuple[ActionDispatcher, AsyncMock]:
        client, mock_http = make_client(responses)
        return ActionDispatcher(client, settings), mock_http

    return factory
