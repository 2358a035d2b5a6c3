"""
Descarga completa de deals recorriendo la paginación start/limit de Pipedrive.

El bucle sigue `more_items_in_collection`; `start` avanza a `next_start`
(o a start + page_size si Pipedrive no lo envía o no avanza).
Tope de páginas para no quedarse colgado si Pipedrive nunca corta.
"""

from typing import Any

import structlog

from core.errors import PaginationLimitError
from services.crm_actions import ActionDispatcher

logger = structlog.get_logger(__name__)


async def drain_all_deals(
    dispatcher: ActionDispatcher,
    status: str = "all_not_deleted",
    page_size: int | None = None,
    max_pages: int | None = None,
    **filters: Any,
) -> list[dict]:
    """
    Devuelve todos los deals con `status` en el orden en que los entrega Pipedrive.
    Lanza PaginationLimitError si se superan `max_pages` páginas.
    Sin `page_size` ni `max_pages` se usan los del Settings del dispatcher.
    """
    page_size = page_size or dispatcher.settings.CRM_DRAIN_PAGE_SIZE
    max_pages = max_pages or dispatcher.settings.CRM_DRAIN_MAX_PAGES

    start = 0
    items: list[dict] = []
    pages = 0

    while True:
        if pages >= max_pages:
            raise PaginationLimitError(
                f"Paginación de deals abortada tras {max_pages} páginas "
                f"({len(items)} deals descargados, status={status})"
            )

        page = await dispatcher.dispatch(
            "listDeals", {**filters, "status": status, "limit": page_size, "start": start}
        )
        pages += 1
        page_items = page.get("items") or []
        items.extend(page_items)

        pagination = page.get("pagination") or {}
        logger.debug("crm.drain.page", status=status, start=start, received=len(page_items))

        if not pagination.get("more_items_in_collection"):
            break

        next_start = pagination.get("next_start")
        start = next_start if isinstance(next_start, int) and next_start > start else start + page_size

    logger.info("crm.drain.done", status=status, pages=pages, total=len(items))
    return items
