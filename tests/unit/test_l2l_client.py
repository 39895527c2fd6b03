"""
Tests unitarios del cliente L2L.

Usan httpx.MockTransport: no hay red.
"""
from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest

from kiosk_sync.core.config import Settings
from kiosk_sync.infrastructure.external.l2l.l2l_client import (
    L2LClient,
    L2LCredentials,
    build_client_from_settings,
)
from kiosk_sync.shared.exceptions.domain import L2LApiError, SyncConfigError


BASE_URL = "https://acme.leading2lean.com/api/1.0"


def _make_client(handler, **kwargs) -> tuple[L2LClient, list[float]]:
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = L2LClient(
        L2LCredentials(base_url=BASE_URL + "/", api_key="secret"),
        http_client=http,
        sleep=fake_sleep,
        **kwargs,
    )
    return client, sleeps


class TestBuildUrl:
    def test_auth_goes_first_and_none_is_dropped(self) -> None:
        client = L2LClient(L2LCredentials(BASE_URL, "secret"))
        url = client.build_url("/lines/", {"limit": 1000, "site": None, "line": 7})

        parts = urlsplit(url)
        assert parts.path == "/api/1.0/lines/"
        assert parse_qsl(parts.query) == [("auth", "secret"), ("limit", "1000"), ("line", "7")]


class TestFetch:
    @pytest.mark.asyncio
    async def test_returns_data_from_envelope(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": [{"id": 10, "name": "Plant X"}]})

        client, _ = _make_client(handler)
        data = await client.get_sites()

        assert data == [{"id": 10, "name": "Plant X"}]
        assert seen[0].method == "GET"
        assert seen[0].url.params["auth"] == "secret"
        assert seen[0].headers["accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_missing_data_becomes_empty_list(self) -> None:
        client, _ = _make_client(lambda request: httpx.Response(200, json={"success": True, "data": None}))

        assert await client.get_lines("902") == []

    @pytest.mark.asyncio
    async def test_machines_are_filtered_by_line(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": []})

        client, _ = _make_client(handler, list_limit=500)
        await client.get_machines("55")

        assert seen[0].url.path.endswith("/machines/")
        assert seen[0].url.params["line"] == "55"
        assert seen[0].url.params["limit"] == "500"

    @pytest.mark.asyncio
    async def test_documents_by_category_params(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": []})

        client, _ = _make_client(handler)
        await client.get_documents_by_category("902", "776")

        params = seen[0].url.params
        assert params["site"] == "902"
        assert params["category"] == "776"
        assert params["params_use_codes"] == "0"
        assert "externalid" not in params

    @pytest.mark.asyncio
    async def test_success_false_raises_normalized_error(self) -> None:
        client, _ = _make_client(
            lambda request: httpx.Response(200, json={"success": False, "error": "Invalid auth"})
        )

        with pytest.raises(L2LApiError) as exc_info:
            await client.get_sites()

        assert exc_info.value.to_dict() == {
            "message": "Invalid auth",
            "endpoint": "/sites/",
            "status": 200,
        }

    @pytest.mark.asyncio
    async def test_success_false_without_message(self) -> None:
        client, _ = _make_client(lambda request: httpx.Response(200, json={"success": False}))

        with pytest.raises(L2LApiError, match="Error desconocido de la API L2L"):
            await client.get_sites()

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(401, json={"success": False, "error": "Unauthorized"})

        client, sleeps = _make_client(handler)
        with pytest.raises(L2LApiError) as exc_info:
            await client.get_sites()

        assert exc_info.value.status == 401
        assert exc_info.value.message == "Unauthorized"
        assert len(calls) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_server_error_is_retried_then_succeeds(self) -> None:
        responses = [
            httpx.Response(503),
            httpx.Response(429, headers={"Retry-After": "3"}),
            httpx.Response(200, json={"success": True, "data": [{"id": 1}]}),
        ]

        client, sleeps = _make_client(lambda request: responses.pop(0), max_retries=2)

        assert await client.get_sites() == [{"id": 1}]
        assert len(sleeps) == 2
        assert sleeps[1] == 3.0

    @pytest.mark.asyncio
    async def test_server_error_after_budget_raises(self) -> None:
        client, sleeps = _make_client(lambda request: httpx.Response(500), max_retries=1)

        with pytest.raises(L2LApiError) as exc_info:
            await client.get_sites()

        assert exc_info.value.status == 500
        assert len(sleeps) == 1

    @pytest.mark.asyncio
    async def test_timeout_has_no_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client, _ = _make_client(handler)
        with pytest.raises(L2LApiError) as exc_info:
            await client.get_sites()

        assert exc_info.value.status is None
        assert exc_info.value.endpoint == "/sites/"

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self) -> None:
        client, _ = _make_client(lambda request: httpx.Response(200, text="<html>down</html>"))

        with pytest.raises(L2LApiError, match="no JSON"):
            await client.get_sites()


class TestTestConnection:
    @pytest.mark.asyncio
    async def test_true_when_sites_respond(self) -> None:
        client, _ = _make_client(lambda request: httpx.Response(200, json={"success": True, "data": []}))
        assert await client.test_connection() is True

    @pytest.mark.asyncio
    async def test_false_on_api_error(self) -> None:
        client, _ = _make_client(lambda request: httpx.Response(403, json={"error": "Forbidden"}))
        assert await client.test_connection() is False


class TestDownload:
    @pytest.mark.asyncio
    async def test_streams_file_without_auth(self, tmp_path) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b'{"id": 1}\n{"id": 2}\n')

        client, _ = _make_client(handler)
        target = await client.download("https://files.example.com/export_9.jsonl", tmp_path / "out" / "e.jsonl")

        assert target.read_bytes() == b'{"id": 1}\n{"id": 2}\n'
        assert "auth" not in seen[0].url.params

    @pytest.mark.asyncio
    async def test_failed_download_removes_partial_file(self, tmp_path) -> None:
        client, _ = _make_client(lambda request: httpx.Response(404))
        destination = tmp_path / "e.jsonl"

        with pytest.raises(L2LApiError) as exc_info:
            await client.download("https://files.example.com/missing", destination)

        assert exc_info.value.status == 404
        assert not destination.exists()

    @pytest.mark.asyncio
    async def test_any_2xx_is_accepted(self, tmp_path) -> None:
        client, _ = _make_client(lambda request: httpx.Response(203, content=b'{"id": 1}\n'))

        target = await client.download("https://files.example.com/e", tmp_path / "e.jsonl")

        assert target.read_bytes() == b'{"id": 1}\n'

    @pytest.mark.asyncio
    async def test_write_error_removes_partial_file(self, tmp_path) -> None:
        async def broken_body():
            yield b'{"id": 1}\n'
            raise OSError("disco lleno")

        client, _ = _make_client(lambda request: httpx.Response(200, content=broken_body()))
        destination = tmp_path / "e.jsonl"

        with pytest.raises(OSError, match="disco lleno"):
            await client.download("https://files.example.com/e", destination)

        assert not destination.exists()


class TestBuildFromSettings:
    def test_missing_api_key_raises(self) -> None:
        settings = Settings(L2L_API_BASE_URL=BASE_URL, L2L_API_KEY="")

        with pytest.raises(SyncConfigError, match="L2L_API_KEY"):
            build_client_from_settings(settings)

    def test_missing_base_url_raises(self) -> None:
        settings = Settings(L2L_API_BASE_URL="", L2L_API_KEY="secret")

        with pytest.raises(SyncConfigError, match="L2L_API_BASE_URL"):
            build_client_from_settings(settings)


class TestDispatchEndpoints:
    @pytest.mark.asyncio
    async def test_export_and_job_status_paths(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path.endswith("/dispatches/data_export/"):
                return httpx.Response(200, json={"success": True, "data": {"jobid": "J-1"}})
            return httpx.Response(200, json={"success": True, "data": {"status": "running"}})

        client, _ = _make_client(handler)
        started = await client.start_dispatch_export(site="902", lastupdated_since="2026-01-01 00:00:00")
        status = await client.get_async_job_status("J-1")

        assert started == {"jobid": "J-1"}
        assert status == {"status": "running"}
        assert seen[0].url.params["lastupdated_since"] == "2026-01-01 00:00:00"
        assert seen[1].url.path.endswith("/sites/asyncjob_status/")
        assert seen[1].url.params["jobid"] == "J-1"

    @pytest.mark.asyncio
    async def test_view_info_and_event_data(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": [{"url": "https://l2l/x.pdf"}]})

        client, _ = _make_client(handler)
        await client.get_document_view_info("5001", "902")
        await client.get_event_data(site="902", dispatch_number=82195)

        assert seen[0].url.path.endswith("/documents/viewinfo/5001/")
        assert seen[0].url.params["site"] == "902"
        assert seen[1].url.path.endswith("/dispatches/get_event_data/")
        assert seen[1].url.params["dispatch_number"] == "82195"
