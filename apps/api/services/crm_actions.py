"""
Acciones de dominio sobre Pipedrive: el dispatcher que traduce
`{action, params}` en llamadas al cliente y simplifica la respuesta.

Reglas:
- Validar los parámetros obligatorios ANTES de cualquier llamada de red
- Las claves internas (account_id, confirmado, tipo) nunca se envían a Pipedrive
- analyzePipeline cuenta en servidor (/deals/summary), nunca enumerando deals
"""

from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from core.config import Settings
from core.errors import MissingParameterError, UnsupportedActionError, ValidationError
from integrations.pipedrive_client import PipedriveClient

logger = structlog.get_logger(__name__)

INTERNAL_KEYS = frozenset({"account_id", "confirmado", "tipo"})

PIPELINE_FIELDS = ("id", "name", "url_title", "active", "order_nr")
STAGE_FIELDS = ("id", "name", "pipeline_id", "pipeline_name", "order_nr", "deal_probability")
SEARCH_HIT_FIELDS = ("id", "title", "value", "currency", "status", "pipeline_id", "stage_id")

Handler = Callable[[dict[str, Any]], Awaitable[Any]]


# ---------------------------------------------------------------------------
# Helpers puros
# ---------------------------------------------------------------------------


def _require(action: str, params: dict[str, Any], *fields: str) -> None:
    missing = [f for f in fields if params.get(f) is None or params.get(f) == ""]
    if missing:
        raise MissingParameterError(action, missing)


def _vendor_body(params: dict[str, Any], *exclude: str) -> dict[str, Any]:
    """Copia de params sin claves internas ni las indicadas en `exclude`."""
    skip = INTERNAL_KEYS.union(exclude)
    return {k: v for k, v in params.items() if k not in skip}


def _as_list(name: str, value: Any) -> list[str]:
    """Acepta "a,b" o ["a", "b"]."""
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ValidationError(f"{name} debe ser una lista o cadena separada por comas")


def project(record: dict[str, Any], fields: tuple[str, ...] | list[str]) -> dict[str, Any]:
    """Reduce un registro a las claves pedidas que existan."""
    return {k: record[k] for k in fields if k in record}


def project_search_hit(item: dict[str, Any]) -> dict[str, Any]:
    hit = project(item, SEARCH_HIT_FIELDS)
    # /deals/search anida la etapa como {"stage": {"id", "name"}}
    stage = item.get("stage")
    if "stage_id" not in hit and isinstance(stage, dict) and stage.get("id") is not None:
        hit["stage_id"] = stage["id"]
    return hit


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class ActionDispatcher:
    """
    Uso:
        dispatcher = ActionDispatcher(client, settings)
        page = await dispatcher.dispatch("listDeals", {"status": "won"})
    """

    def __init__(self, client: PipedriveClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings
        self._handlers: dict[str, Handler] = {
            "listDeals": self.list_deals,
            "getDeal": self.get_deal,
            "createDeal": self.create_deal,
            "updateDeal": self.update_deal,
            "moveDeal": self.move_deal,
            "addNote": self.add_note,
            "listActivities": self.list_activities,
            "listPipelines": self.list_pipelines,
            "listStages": self.list_stages,
            "searchDeals": self.search_deals,
            "analyzePipeline": self.analyze_pipeline,
        }

    @property
    def actions(self) -> list[str]:
        return list(self._handlers)

    @property
    def settings(self) -> Settings:
        return self._settings

    async def dispatch(self, action: str, params: dict[str, Any] | None = None) -> Any:
        handler = self._handlers.get(action)
        if handler is None:
            raise UnsupportedActionError(action)
        if params is not None and not isinstance(params, dict):
            raise ValidationError(f"params debe ser un objeto JSON para {action}")
        logger.info("crm.action", action=action)
        return await handler(dict(params or {}))

    # -----------------------------------------------------------------------
    # Deals
    # -----------------------------------------------------------------------

    async def list_deals(self, params: dict[str, Any]) -> dict:
        """
        GET /deals: una página de deals con su paginación.
        `fields` proyecta cada deal; si conserva stage_id se añaden
        stage_name y pipeline_name resueltos contra /stages.
        """
        fields = params.get("fields")
        keys = _as_list("fields", fields) if fields else None

        query = {
            "status": params.get("status") or "open",
            "limit": params.get("limit") or 50,
            "start": params.get("start") or 0,
            "filter_id": params.get("filter_id"),
            "user_id": params.get("user_id"),
            "stage_id": params.get("stage_id"),
            "pipeline_id": params.get("pipeline_id"),
            "sort": params.get("sort"),
        }
        resp = await self._client.request("GET", "/deals", query=query)
        items = resp.unwrap() or []

        if keys:
            items = [project(deal, keys) for deal in items]
            if "stage_id" in keys:
                stages = await self._stage_map()
                for deal in items:
                    info = stages.get(deal.get("stage_id"), {})
                    deal["stage_name"] = info.get("name")
                    deal["pipeline_name"] = info.get("pipeline_name")

        return {"items": items, "pagination": resp.pagination}

    async def _stage_map(self) -> dict[Any, dict]:
        resp = await self._client.request("GET", "/stages")
        return {
            stage["id"]: {"name": stage.get("name"), "pipeline_name": stage.get("pipeline_name")}
            for stage in resp.unwrap() or []
        }

    async def get_deal(self, params: dict[str, Any]) -> Any:
        _require("getDeal", params, "id")
        resp = await self._client.request("GET", f"/deals/{params['id']}")
        return resp.unwrap()

    async def create_deal(self, params: dict[str, Any]) -> Any:
        _require("createDeal", params, "title")
        resp = await self._client.request("POST", "/deals", body=_vendor_body(params))
        return resp.unwrap()

    async def update_deal(self, params: dict[str, Any]) -> Any:
        _require("updateDeal", params, "id")
        resp = await self._client.request(
            "PUT", f"/deals/{params['id']}", body=_vendor_body(params, "id")
        )
        return resp.unwrap()

    async def move_deal(self, params: dict[str, Any]) -> Any:
        _require("moveDeal", params, "id", "stage_id")
        body = {"stage_id": params["stage_id"], **_vendor_body(params, "id", "stage_id")}
        resp = await self._client.request("PUT", f"/deals/{params['id']}", body=body)
        return resp.unwrap()

    async def search_deals(self, params: dict[str, Any]) -> dict:
        """GET /deals/search: cada resultado reducido a los campos básicos del deal."""
        _require("searchDeals", params, "term")
        query = {
            "term": params["term"],
            "fields": params.get("fields"),
            "exact_match": params.get("exact_match"),
            "status": params.get("status"),
            "person_id": params.get("person_id"),
            "organization_id": params.get("organization_id"),
            "limit": params.get("limit"),
            "start": params.get("start"),
        }
        resp = await self._client.request("GET", "/deals/search", query=query)
        data = resp.unwrap() or {}
        hits = data.get("items", []) if isinstance(data, dict) else []
        items = [project_search_hit(hit.get("item") or {}) for hit in hits]
        return {"items": items, "pagination": resp.pagination}

    # -----------------------------------------------------------------------
    # Notas y actividades
    # -----------------------------------------------------------------------

    async def add_note(self, params: dict[str, Any]) -> Any:
        _require("addNote", params, "deal_id", "content")
        body = {
            "deal_id": params["deal_id"],
            "content": params["content"],
            **_vendor_body(params, "deal_id", "content"),
        }
        resp = await self._client.request("POST", "/notes", body=body)
        return resp.unwrap()

    async def list_activities(self, params: dict[str, Any]) -> dict:
        query = {
            "deal_id": params.get("deal_id"),
            "user_id": params.get("user_id"),
            "done": params.get("done"),
            "type": params.get("type"),
            "limit": params.get("limit") or 100,
            "start": params.get("start") or 0,
        }
        resp = await self._client.request("GET", "/activities", query=query)
        return {"items": resp.unwrap() or [], "pagination": resp.pagination}

    # -----------------------------------------------------------------------
    # Pipelines y etapas
    # -----------------------------------------------------------------------

    async def list_pipelines(self, params: dict[str, Any]) -> list[dict]:
        resp = await self._client.request("GET", "/pipelines")
        return [project(p, PIPELINE_FIELDS) for p in resp.unwrap() or []]

    async def list_stages(self, params: dict[str, Any]) -> list[dict]:
        resp = await self._client.request(
            "GET", "/stages", query={"pipeline_id": params.get("pipeline_id")}
        )
        return [project(s, STAGE_FIELDS) for s in resp.unwrap() or []]

    async def analyze_pipeline(self, params: dict[str, Any]) -> dict:
        """
        Conteo determinista de deals por estado.
        Una llamada a /deals/summary por estado; `all` es la suma de los estados contados.
        """
        requested = params.get("statuses") or self._settings.analyze_statuses_list
        statuses = _as_list("statuses", requested)
        # "all" es el agregado, no un estado de Pipedrive
        statuses = [s for s in statuses if s != "all"]
        totals: dict[str, int] = {}
        for status in statuses:
            resp = await self._client.request("GET", "/deals/summary", query={"status": status})
            summary = resp.unwrap() or {}
            totals[status] = int(summary.get("total_count") or 0)
        totals["all"] = sum(totals.values())

        return {
            "totals": totals,
            "meta": {
                "source": "pipedrive.deals.summary (total_count)",
                "deterministic": True,
                "statuses": statuses,
            },
        }
