from __future__ import annotations

import asyncio
from typing import Callable, List

import httpx
import pytest
from fastapi.testclient import TestClient

from fundboard.normalizer import from_upstream, to_store_row
from fundboard.proxy_app import LIVE_CACHE_CONTROL, create_app

FORM = "calismatipi=2&fontip=YAT&sfontip=HYF&bastar=2024-03-01&bittar=2024-03-31&kurucukod="
FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


def _client(test_settings, store, handler: Callable[[httpx.Request], httpx.Response]) -> TestClient:
    app = create_app(test_settings, store=store, transport=httpx.MockTransport(handler))
    return TestClient(app)


def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def test_live_answer_is_forwarded_and_persisted(test_settings, make_store, make_item) -> None:
    store = make_store()
    seen: List[httpx.Request] = []

    def upstream(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": [make_item("AAA"), make_item("BBB")]})

    response = _client(test_settings, store, upstream).post(
        "/api/funds", content=FORM, headers=FORM_HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "tefas-live"
    assert [item["FONKODU"] for item in body["data"]] == ["AAA", "BBB"]
    assert response.headers["cache-control"] == LIVE_CACHE_CONTROL
    assert response.headers["access-control-allow-origin"] == "*"
    assert sorted(store.rows) == ["AAA", "BBB"]

    forwarded = seen[0]
    assert str(forwarded.url) == test_settings.upstream_url
    assert forwarded.headers["x-requested-with"] == "XMLHttpRequest"
    assert "sfontip=HYF" in forwarded.content.decode()
    assert "kurucukod=" in forwarded.content.decode()


def test_empty_live_answer_is_not_an_error(test_settings, make_store) -> None:
    store = make_store()

    response = _client(
        test_settings, store, lambda request: httpx.Response(200, json={"data": []})
    ).post("/api/funds", content=FORM, headers=FORM_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"data": [], "source": "tefas-live"}
    assert store.upsert_calls == []


@pytest.mark.parametrize(
    "handler",
    [
        _refuse,
        lambda request: httpx.Response(500, text="Internal error"),
        lambda request: httpx.Response(200, text="<html>Request Rejected</html>"),
    ],
)
def test_upstream_failure_answers_from_database(test_settings, make_store, make_item, handler) -> None:
    store = make_store([to_store_row(from_upstream(make_item("AAA")))])

    response = _client(test_settings, store, handler).post(
        "/api/funds", content=FORM, headers=FORM_HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "database-fallback"
    assert body["data"][0]["FONKODU"] == "AAA"
    assert body["data"][0]["YILLIKGETIRI"] == 42.0
    assert response.headers["cache-control"] == "no-store"


def test_empty_database_yields_structured_502(test_settings, make_store) -> None:
    response = _client(test_settings, make_store(), _refuse).post(
        "/api/funds", content=FORM, headers=FORM_HEADERS
    )

    assert response.status_code == 502
    body = response.json()
    assert body["stage"] == "database"
    assert "connection refused" in body["error"]
    assert body["debug"]["database"] == "no stored funds"
    assert body["debug"]["upstream"].startswith("[transport]")


def test_unreachable_database_yields_structured_502(test_settings, make_store) -> None:
    response = _client(test_settings, make_store(fail_reads=True), _refuse).post(
        "/api/funds", content=FORM, headers=FORM_HEADERS
    )

    assert response.status_code == 502
    assert response.json()["debug"]["database"].startswith("[storage]")


def test_write_failure_does_not_block_live_answer(test_settings, make_store, make_item) -> None:
    store = make_store(fail_writes=True)

    response = _client(
        test_settings, store, lambda request: httpx.Response(200, json={"data": [make_item("AAA")]})
    ).post("/api/funds", content=FORM, headers=FORM_HEADERS)

    assert response.status_code == 200
    assert response.json()["source"] == "tefas-live"


def test_preflight_is_permissive(test_settings, make_store) -> None:
    response = _client(test_settings, make_store(), _refuse).options("/api/funds")

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_other_methods_are_rejected(test_settings, make_store) -> None:
    response = _client(test_settings, make_store(), _refuse).get("/api/funds")

    assert response.status_code == 405
    assert "error" in response.json()


def test_hung_upstream_is_cut_off_before_the_tier_timeout(test_settings, make_store, make_item) -> None:
    test_settings.tier_timeout_seconds = 10.0
    test_settings.proxy_upstream_timeout_seconds = 0.2
    store = make_store([to_store_row(from_upstream(make_item("AAA")))])

    async def upstream(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json={"data": []})

    response = _client(test_settings, store, upstream).post(
        "/api/funds", content=FORM, headers=FORM_HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "database-fallback"
    assert [item["FONKODU"] for item in body["data"]] == ["AAA"]


def test_non_finite_upstream_number_answers_from_database(test_settings, make_store, make_item) -> None:
    store = make_store([to_store_row(from_upstream(make_item("AAA")))])
    payload = '{"data": [{"FONKODU": "BBB", "FIYAT": 1.0, "KISISAYISI": Infinity}]}'

    response = _client(
        test_settings, store, lambda request: httpx.Response(200, text=payload)
    ).post("/api/funds", content=FORM, headers=FORM_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "database-fallback"
    assert [item["FONKODU"] for item in body["data"]] == ["AAA"]
    assert store.upsert_calls == []


def test_live_batch_shares_one_update_stamp(test_settings, make_store, make_item) -> None:
    store = make_store()

    response = _client(
        test_settings,
        store,
        lambda request: httpx.Response(200, json={"data": [make_item(c) for c in ("AAA", "BBB", "CCC")]}),
    ).post("/api/funds", content=FORM, headers=FORM_HEADERS)

    assert response.status_code == 200
    assert len(store.upsert_calls) == 1
    assert len({row["last_updated"] for row in store.upsert_calls[0]}) == 1
