"""
Tests del backend de intents.
"""

import pytest

from core.errors import (
    ConfirmationRequiredError,
    MissingParameterError,
    UnsupportedActionError,
    UnsupportedIntentError,
)
from services.intent_backend import IntentBackend, resolve_account_id


@pytest.fixture
def make_backend(make_dispatcher, settings):
    def factory(responses, **overrides):
        dispatcher, mock_http = make_dispatcher(responses)
        return IntentBackend(dispatcher, settings.model_copy(update=overrides)), mock_http

    return factory


def test_resolve_account_id_priority():
    assert resolve_account_id({"account_id": "a", "tenant_id": "t", "user_id": "u"}) == "a"
    assert resolve_account_id({"tenant_id": "t", "user_id": "u"}) == "t"
    assert resolve_account_id({"user_id": "u"}) == "u"
    assert resolve_account_id({}) is None


async def test_unknown_intent_raises_without_calls(make_backend):
    backend, mock_http = make_backend([])

    with pytest.raises(UnsupportedIntentError, match="pronostico"):
        await backend.handle("pronostico", {}, {})

    mock_http.request.assert_not_called()


@pytest.mark.parametrize("intent", ["conteo_simple", "dashboard"])
async def test_count_intents_return_pipeline_totals(make_backend, mock_response, pd_body, intent):
    backend, mock_http = make_backend([
        mock_response(pd_body({"total_count": 3})),
        mock_response(pd_body({"total_count": 5})),
        mock_response(pd_body({"total_count": 2})),
    ])

    datos = await backend.handle(intent, {"account_id": "acc-1"}, {})

    assert datos["totals"] == {"open": 3, "won": 5, "lost": 2, "all": 10}
    assert datos["account_id"] == "acc-1"
    assert mock_http.request.call_count == 3


async def test_lista_datos_returns_one_page(make_backend, mock_response, pd_body):
    deals = [{"id": 1}]
    backend, mock_http = make_backend([mock_response(pd_body(deals, more=True, next_start=25))])

    datos = await backend.handle("lista_datos", {}, {"status": "won", "limit": 25})

    params = mock_http.request.call_args[1]["params"]
    assert params["status"] == "won"
    assert params["limit"] == "25"
    assert datos["deals"] == deals
    assert datos["pagination"]["next_start"] == 25
    assert datos["account_id"] is None


@pytest.mark.parametrize(
    "intent, expected_status",
    [("analisis", "all_not_deleted"), ("auditoria_crm_pwc", "all_not_deleted"), ("riesgo", "open")],
)
async def test_dataset_intents_drain_all_pages(make_backend, mock_response, pd_body, intent, expected_status):
    backend, mock_http = make_backend([
        mock_response(pd_body([{"id": 1}, {"id": 2}], more=True, next_start=500)),
        mock_response(pd_body([{"id": 3}], more=False)),
    ])
    contexto = {"tenant_id": "t-9", "rol": "director"}

    datos = await backend.handle(intent, contexto, {})

    assert [d["id"] for d in datos["deals"]] == [1, 2, 3]
    assert datos["total"] == 3
    assert datos["contexto_usuario"] == contexto
    assert datos["account_id"] == "t-9"
    statuses = {call[1]["params"]["status"] for call in mock_http.request.call_args_list}
    assert statuses == {expected_status}


async def test_productividad_defaults_user_to_account(make_backend, mock_response, pd_body):
    backend, mock_http = make_backend([mock_response(pd_body([{"id": 10}], more=False))])

    datos = await backend.handle("productividad", {"user_id": 77}, {})

    params = mock_http.request.call_args[1]["params"]
    assert params["user_id"] == "77"
    assert params["limit"] == "100"
    assert datos["activities"] == [{"id": 10}]
    assert datos["user_id"] == 77


# ---------------------------------------------------------------------------
# modificacion
# ---------------------------------------------------------------------------


async def test_modificacion_requires_tipo(make_backend):
    backend, mock_http = make_backend([])

    with pytest.raises(MissingParameterError, match="tipo"):
        await backend.handle("modificacion", {}, {"confirmado": True})

    mock_http.request.assert_not_called()


async def test_modificacion_rejects_unknown_tipo(make_backend):
    backend, mock_http = make_backend([])

    with pytest.raises(UnsupportedActionError, match="delete_deal"):
        await backend.handle("modificacion", {}, {"tipo": "delete_deal", "confirmado": True})

    mock_http.request.assert_not_called()


@pytest.mark.parametrize("confirmado", [None, False, "true", 1])
async def test_modificacion_without_confirmation_is_rejected(make_backend, confirmado):
    backend, mock_http = make_backend([])
    parametros = {"tipo": "move_deal", "id": 7, "stage_id": 4}
    if confirmado is not None:
        parametros["confirmado"] = confirmado

    with pytest.raises(ConfirmationRequiredError):
        await backend.handle("modificacion", {}, parametros)

    mock_http.request.assert_not_called()


async def test_modificacion_checks_confirmation_before_tipo(make_backend):
    backend, mock_http = make_backend([])

    with pytest.raises(ConfirmationRequiredError):
        await backend.handle("modificacion", {}, {"tipo": "delete_deal"})

    mock_http.request.assert_not_called()


async def test_modificacion_confirmed_runs_mapped_action(make_backend, mock_response, pd_body):
    backend, mock_http = make_backend([mock_response(pd_body({"id": 7, "stage_id": 4}))])

    datos = await backend.handle(
        "modificacion",
        {"account_id": "acc-1"},
        {"tipo": "move_deal", "id": 7, "stage_id": 4, "confirmado": True},
    )

    assert mock_http.request.call_args[0] == ("PUT", "/deals/7")
    assert mock_http.request.call_args[1]["json"] == {"stage_id": 4}
    assert datos == {"resultado": {"id": 7, "stage_id": 4}, "account_id": "acc-1"}


async def test_modificacion_confirmation_can_be_disabled(make_backend, mock_response, pd_body):
    backend, mock_http = make_backend(
        [mock_response(pd_body({"id": 1, "deal_id": 7}))],
        CRM_REQUIRE_CONFIRMATION=False,
    )

    datos = await backend.handle("modificacion", {}, {"tipo": "add_note", "deal_id": 7, "content": "ok"})

    assert mock_http.request.call_args[0] == ("POST", "/notes")
    assert datos["resultado"]["id"] == 1


async def test_modificacion_still_validates_action_params(make_backend):
    backend, mock_http = make_backend([])

    with pytest.raises(MissingParameterError, match="title"):
        await backend.handle("modificacion", {}, {"tipo": "create_deal", "confirmado": True})

    mock_http.request.assert_not_called()
