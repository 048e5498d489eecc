from __future__ import annotations

import asyncio
import hashlib

import httpx
import pytest

from adapters.auth import AUTH_HEADER, AUTH_HEADER_HASH, AUTH_SIGNATURE
from adapters.transport_http import TransportHTTP
from core.domain.errors import AdminKeyMissingError, ServerResponseError, SigningKeyError
from core.domain.models import (
    AccessKey,
    AdminStats,
    BlockHeader,
    Destination,
    PaymailAddress,
    QueryParams,
    SortDirection,
    Transaction,
    Utxo,
    Xpub,
)
from core.key_loader import XPubOnlyKey
from fake_keys import ADMIN_XPUB

SEARCH_OPERATIONS = [
    ("admin_get_access_keys", "/admin/access-keys/search", AccessKey),
    ("admin_get_block_headers", "/admin/block-headers/search", BlockHeader),
    ("admin_get_destinations", "/admin/destinations/search", Destination),
    ("admin_get_paymails", "/admin/paymails/search", PaymailAddress),
    ("admin_get_transactions", "/admin/transactions/search", Transaction),
    ("admin_get_utxos", "/admin/utxos/search", Utxo),
    ("admin_get_xpubs", "/admin/xpubs/search", Xpub),
]

COUNT_OPERATIONS = [
    ("admin_get_access_keys_count", "/admin/access-keys/count"),
    ("admin_get_block_headers_count", "/admin/block-headers/count"),
    ("admin_get_destinations_count", "/admin/destinations/count"),
    ("admin_get_paymails_count", "/admin/paymails/count"),
    ("admin_get_transactions_count", "/admin/transactions/count"),
    ("admin_get_utxos_count", "/admin/utxos/count"),
    ("admin_get_xpubs_count", "/admin/xpubs/count"),
]

ADMIN_CALLS = [
    ("new_xpub", ("xpub-raw",)),
    ("register_xpub", ("xpub-raw",)),
    ("admin_get_status", ()),
    ("admin_get_stats", ()),
    ("admin_get_paymail", ("alice@example.com",)),
    ("admin_create_paymail", ("xpub-id", "alice@example.com")),
    ("admin_delete_paymail", ("alice@example.com",)),
    ("admin_record_transaction", ("0100",)),
    *[(name, ()) for name, _, _ in SEARCH_OPERATIONS],
    *[(name, ()) for name, _ in COUNT_OPERATIONS],
]


@pytest.mark.asyncio
@pytest.mark.parametrize("method_name,path,model", SEARCH_OPERATIONS)
async def test_search_operations_use_documented_path_and_parse_models(make_transport, server, method_name, path, model):
    server.routes[("GET", "/v1" + path)] = [{"id": "rec-1"}, {"id": "rec-2", "unknown_field": 1}]
    transport = make_transport()

    records = await getattr(transport, method_name)({"xpub_id": "abc"}, {"tag": "x"})

    assert [r.id for r in records] == ["rec-1", "rec-2"]
    assert all(isinstance(r, model) for r in records)
    assert server.last.method == "GET"
    assert server.last_json() == {"conditions": {"xpub_id": "abc"}, "metadata": {"tag": "x"}, "params": None}


@pytest.mark.asyncio
@pytest.mark.parametrize("method_name,path", COUNT_OPERATIONS)
async def test_count_operations_return_integer_body(make_transport, server, method_name, path):
    server.routes[("GET", "/v1" + path)] = 42
    transport = make_transport()

    total = await getattr(transport, method_name)()

    assert total == 42
    assert isinstance(total, int)
    assert server.last.method == "GET"
    assert server.last_json() == {"conditions": None, "metadata": {}}


@pytest.mark.asyncio
@pytest.mark.parametrize("method_name,args", ADMIN_CALLS)
async def test_admin_operations_fail_before_network_without_admin_key(make_transport, server, method_name, args):
    transport = make_transport(admin_xpriv=None)

    with pytest.raises(AdminKeyMissingError):
        await getattr(transport, method_name)(*args)

    assert server.requests == []


@pytest.mark.asyncio
async def test_search_sends_only_set_query_params(make_transport, server):
    server.routes[("GET", "/v1/admin/xpubs/search")] = []
    transport = make_transport()

    records = await transport.admin_get_xpubs(
        query_params=QueryParams(page=2, page_size=10, sort_direction=SortDirection.DESC)
    )

    assert records == []
    assert server.last_json()["params"] == {"page": 2, "page_size": 10, "sort_direction": "desc"}


@pytest.mark.asyncio
async def test_search_with_null_body_returns_empty_list(make_transport, server):
    server.routes[("GET", "/v1/admin/utxos/search")] = None
    transport = make_transport()

    assert await transport.admin_get_utxos() == []


@pytest.mark.asyncio
async def test_new_xpub_posts_key_and_metadata_signed_with_admin_key(make_transport, server, admin_key):
    server.routes[("POST", "/v1/xpub")] = {"id": "xpub-id-1", "current_balance": 0}
    transport = make_transport()

    xpub = await transport.new_xpub("xpub6Raw", {"name": "alice"})

    assert xpub is not None and xpub.id == "xpub-id-1"
    assert server.last.method == "POST"
    assert server.last_json() == {"metadata": {"name": "alice"}, "key": "xpub6Raw"}
    assert server.last.headers[AUTH_HEADER] == ADMIN_XPUB
    assert server.last.headers[AUTH_HEADER_HASH] == hashlib.sha256(server.last.content).hexdigest()
    assert server.last.headers[AUTH_SIGNATURE].startswith("sig:")
    assert len(admin_key.signed) == 1


@pytest.mark.asyncio
async def test_register_xpub_is_an_alias(make_transport, server):
    server.routes[("POST", "/v1/xpub")] = {"id": "xpub-id-2"}
    transport = make_transport()

    xpub = await transport.register_xpub("xpub6Raw")

    assert xpub is not None and xpub.id == "xpub-id-2"
    assert server.last_json() == {"metadata": {}, "key": "xpub6Raw"}


@pytest.mark.asyncio
@pytest.mark.parametrize("reply,expected", [(True, True), (False, False)])
async def test_admin_get_status(make_transport, server, reply, expected):
    server.routes[("GET", "/v1/admin/status")] = reply
    transport = make_transport()

    assert await transport.admin_get_status() is expected
    assert server.last.content == b""
    assert "content-type" in server.last.headers


@pytest.mark.asyncio
async def test_admin_get_stats(make_transport, server):
    server.routes[("GET", "/v1/admin/stats")] = {
        "balance": 1500,
        "xpubs": 3,
        "utxos_per_type": {"pubkeyhash": 4},
    }
    transport = make_transport()

    stats = await transport.admin_get_stats()

    assert isinstance(stats, AdminStats)
    assert stats.balance == 1500
    assert stats.xpubs == 3
    assert stats.utxos_per_type == {"pubkeyhash": 4}


@pytest.mark.asyncio
async def test_paymail_get_create_delete_bodies(make_transport, server):
    paymail = {"id": "pm-1", "alias": "alice", "domain": "example.com", "xpub_id": "xpub-id"}
    server.routes[("GET", "/v1/admin/paymail/get")] = paymail
    server.routes[("POST", "/v1/admin/paymail/create")] = paymail
    server.routes[("POST", "/v1/admin/paymail/delete")] = paymail
    transport = make_transport()

    fetched = await transport.admin_get_paymail("alice@example.com")
    assert fetched is not None and fetched.address == "alice@example.com"
    assert server.last.method == "GET"
    assert server.last_json() == {"address": "alice@example.com"}

    created = await transport.admin_create_paymail("xpub-id", "alice@example.com", "Alice", "https://img/a.png")
    assert created is not None and created.id == "pm-1"
    assert server.last.method == "POST"
    assert server.last_json() == {
        "xpub_id": "xpub-id",
        "address": "alice@example.com",
        "public_name": "Alice",
        "avatar": "https://img/a.png",
    }

    await transport.admin_delete_paymail("alice@example.com")
    assert server.last.url.path == "/v1/admin/paymail/delete"
    assert server.last_json() == {"address": "alice@example.com"}


@pytest.mark.asyncio
async def test_paymail_get_null_reply_returns_none(make_transport, server):
    server.routes[("GET", "/v1/admin/paymail/get")] = None
    transport = make_transport()

    assert await transport.admin_get_paymail("nobody@example.com") is None


@pytest.mark.asyncio
async def test_record_transaction_signed_by_default(make_transport, server):
    server.routes[("POST", "/v1/admin/transactions/record")] = {"id": "tx-1", "hex": "0100", "fee": 5}
    transport = make_transport()

    tx = await transport.admin_record_transaction("0100")

    assert tx.id == "tx-1" and tx.fee == 5
    assert server.last_json() == {"hex": "0100"}
    assert AUTH_SIGNATURE in server.last.headers


@pytest.mark.asyncio
async def test_record_transaction_honours_sign_request_flag(make_transport, server, admin_key):
    server.routes[("POST", "/v1/admin/transactions/record")] = {"id": "tx-1"}
    transport = make_transport(sign_request=False)

    await transport.admin_record_transaction("0100")

    assert server.last.headers[AUTH_HEADER] == ADMIN_XPUB
    assert AUTH_SIGNATURE not in server.last.headers
    assert admin_key.signed == []


@pytest.mark.asyncio
async def test_xpub_only_admin_key_cannot_sign(make_transport, server):
    transport = make_transport(admin_xpriv=XPubOnlyKey(xpub=ADMIN_XPUB))

    with pytest.raises(SigningKeyError):
        await transport.admin_get_xpubs_count()
    assert server.requests == []


@pytest.mark.asyncio
async def test_server_error_raises_with_message(make_transport, server):
    server.routes[("GET", "/v1/admin/xpubs/count")] = httpx.Response(401, json={"message": "unauthorized"})
    transport = make_transport()

    with pytest.raises(ServerResponseError) as excinfo:
        await transport.admin_get_xpubs_count()

    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "unauthorized"


@pytest.mark.asyncio
async def test_server_error_with_plain_text_body(make_transport, server):
    server.routes[("GET", "/v1/admin/stats")] = httpx.Response(500, text="boom")
    transport = make_transport()

    with pytest.raises(ServerResponseError) as excinfo:
        await transport.admin_get_stats()

    assert excinfo.value.message == "boom"


@pytest.mark.asyncio
async def test_transport_errors_propagate_unchanged(make_transport, server):
    def fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    server.routes[("GET", "/v1/admin/status")] = fail
    transport = make_transport()

    with pytest.raises(httpx.ConnectError):
        await transport.admin_get_status()


@pytest.mark.asyncio
async def test_unserializable_conditions_fail_before_network(make_transport, server):
    transport = make_transport()

    with pytest.raises(TypeError):
        await transport.admin_get_utxos({"bad": object()})
    assert server.requests == []


@pytest.mark.asyncio
async def test_context_manager_closes_owned_client(settings, admin_key):
    async with TransportHTTP("http://bux.test/v1", admin_xpriv=admin_key, settings=settings) as transport:
        client = transport._client
    assert client.is_closed


@pytest.mark.asyncio
async def test_context_manager_keeps_injected_client_open(make_transport):
    transport = make_transport()
    async with transport:
        pass
    assert not transport._client.is_closed


@pytest.mark.asyncio
async def test_injected_client_without_base_url_uses_server_url(settings, server, admin_key):
    server.routes[("GET", "/v1/admin/xpubs/count")] = 3
    client = httpx.AsyncClient(transport=httpx.MockTransport(server.handler))
    transport = TransportHTTP("http://bux.test/v1", admin_xpriv=admin_key, settings=settings, client=client)

    assert await transport.admin_get_xpubs_count() == 3
    assert str(server.last.url) == "http://bux.test/v1/admin/xpubs/count"
    await client.aclose()


@pytest.mark.asyncio
async def test_timeout_bounds_the_whole_call(settings, admin_key):
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.5)
        return httpx.Response(200, json=1)

    client = httpx.AsyncClient(transport=httpx.MockTransport(slow))
    transport = TransportHTTP("http://bux.test/v1", admin_xpriv=admin_key, settings=settings, client=client)

    with pytest.raises(httpx.TimeoutException):
        await transport.admin_get_xpubs_count(timeout=0.05)
    await client.aclose()


@pytest.mark.asyncio
async def test_timeout_within_deadline_returns_reply(make_transport, server):
    server.routes[("GET", "/v1/admin/utxos/count")] = 4
    transport = make_transport()

    assert await transport.admin_get_utxos_count(timeout=5) == 4


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["true", "false", 1, {"ok": True}])
async def test_admin_get_status_only_accepts_json_true(make_transport, server, reply):
    server.routes[("GET", "/v1/admin/status")] = reply
    transport = make_transport()

    assert await transport.admin_get_status() is False
