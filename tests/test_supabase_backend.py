from datetime import date
from pathlib import Path
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from hikma_export.core.models import EnterpriseSetting
from hikma_export.errors import PersistenceFailure, StorageFailure, Unauthorized
from hikma_export.supabase_backend import (
    SupabaseAuthResolver,
    SupabaseObjectStore,
    SupabaseRecordStore,
)


@pytest.fixture
def client():
    client = MagicMock()
    table = MagicMock()
    for name in ("select", "eq", "upsert"):
        getattr(table, name).return_value = table
    table.execute.return_value = MagicMock(data=[])
    client.table.return_value = table
    return client


def test_auth_resolves_user_id(client):
    client.auth.get_user.return_value = SimpleNamespace(user=SimpleNamespace(id="uuid-1"))
    assert SupabaseAuthResolver(client).resolve("jwt") == "uuid-1"
    client.auth.get_user.assert_called_once_with("jwt")


def test_auth_failures_are_unauthorized(client):
    resolver = SupabaseAuthResolver(client)
    with pytest.raises(Unauthorized):
        resolver.resolve(None)

    client.auth.get_user.return_value = SimpleNamespace(user=None)
    with pytest.raises(Unauthorized):
        resolver.resolve("jwt")

    client.auth.get_user.side_effect = RuntimeError("invalid JWT")
    with pytest.raises(Unauthorized):
        resolver.resolve("jwt")


def test_list_transactions_maps_rows(client):
    client.table.return_value.execute.return_value = MagicMock(data=[{
        "id": "t1",
        "user_id": "uuid-1",
        "date": "2024-05-20",
        "type": "income",
        "category": "Sales",
        "client": None,
        "description": None,
        "amount": 1500.5,
    }])

    txs = SupabaseRecordStore(client).list_transactions("uuid-1")

    client.table.assert_called_with("transactions")
    client.table.return_value.eq.assert_called_with("user_id", "uuid-1")
    assert txs[0].date == date(2024, 5, 20)
    assert txs[0].amount == Decimal("1500.5")
    assert txs[0].description == ""


def test_enterprise_setting_lookup(client):
    store = SupabaseRecordStore(client)
    assert store.get_enterprise_setting("uuid-1") is None

    client.table.return_value.execute.return_value = MagicMock(data=[{"user_id": "uuid-1", "name": "Acme"}])
    assert store.get_enterprise_setting("uuid-1") == EnterpriseSetting("uuid-1", "Acme")


def test_replace_goes_through_single_rpc(client, transactions, categories):
    store = SupabaseRecordStore(client)

    store.replace_transactions("uuid-1", transactions)
    store.replace_categories("uuid-1", categories)

    first, second = client.rpc.call_args_list
    assert first.args[0] == "replace_user_records"
    params = first.args[1]
    assert params["p_table"] == "transactions"
    assert params["p_user_id"] == "uuid-1"
    assert params["p_rows"][0]["amount"] == "1500.00"
    assert "userId" not in params["p_rows"][0]
    assert second.args[1]["p_table"] == "categories"
    assert second.args[1]["p_rows"] == [{"id": "c1", "name": "Food", "type": "expense", "color": "#ff0000"}]
    client.table.assert_not_called()


def test_replace_errors_become_persistence_failures(client, transactions):
    client.rpc.return_value.execute.side_effect = RuntimeError("deadlock detected")
    with pytest.raises(PersistenceFailure):
        SupabaseRecordStore(client).replace_transactions("uuid-1", transactions)


def test_upsert_enterprise_setting(client):
    SupabaseRecordStore(client).upsert_enterprise_setting(EnterpriseSetting("uuid-1", "Acme"))
    client.table.assert_called_with("enterprise_settings")
    client.table.return_value.upsert.assert_called_once_with(
        {"user_id": "uuid-1", "name": "Acme"}, on_conflict="user_id"
    )


def test_object_store_upload_and_sign(client):
    bucket = client.storage.from_.return_value
    bucket.create_signed_url.return_value = {"signedURL": "https://x.supabase.co/sign/abc"}
    store = SupabaseObjectStore(client, bucket="exports")

    store.put("uuid-1/a.json", b"{}", "application/json")
    url = store.signed_url("uuid-1/a.json", 300)

    client.storage.from_.assert_called_with("exports")
    bucket.upload.assert_called_once_with(
        "uuid-1/a.json", b"{}", {"content-type": "application/json", "upsert": "true"}
    )
    bucket.create_signed_url.assert_called_once_with("uuid-1/a.json", 300)
    assert url == "https://x.supabase.co/sign/abc"


def test_object_store_errors(client):
    bucket = client.storage.from_.return_value
    store = SupabaseObjectStore(client)

    bucket.upload.side_effect = RuntimeError("bucket not found")
    with pytest.raises(StorageFailure):
        store.put("k", b"", "application/json")

    bucket.create_signed_url.return_value = {}
    with pytest.raises(StorageFailure):
        store.signed_url("k", 300)


def test_replace_function_is_restricted_to_service_role():
    sql = (Path(__file__).parent.parent / "sql" / "replace_user_records.sql").read_text()
    normalized = " ".join(sql.lower().split())

    assert "security definer set search_path = public" in normalized
    assert (
        "revoke execute on function public.replace_user_records(text, uuid, jsonb) "
        "from public, anon, authenticated;"
    ) in normalized
    assert (
        "grant execute on function public.replace_user_records(text, uuid, jsonb) "
        "to service_role;"
    ) in normalized
