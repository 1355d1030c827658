# hikma_export/supabase_backend.py
"""Adapters for the managed Supabase backend.

Identity, relational rows and export objects all go through one
``supabase.Client``. Client errors are re-raised as the pipeline's own
error types with the original exception chained.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from supabase import Client, create_client

from hikma_export.auth import AuthResolver
from hikma_export.core.models import Category, EnterpriseSetting, Transaction
from hikma_export.database import RecordStore
from hikma_export.errors import PersistenceFailure, StorageFailure, Unauthorized
from hikma_export.storage import ObjectStore

logger = logging.getLogger(__name__)

REPLACE_FUNCTION = "replace_user_records"


def get_supabase_client(url: str, key: str) -> Client:
    """Return a Supabase client authenticated with the service role key."""
    if not url or not key:
        raise ValueError("Supabase URL and service role key are required")
    return create_client(url, key)


class SupabaseAuthResolver(AuthResolver):
    def __init__(self, client: Client):
        self.client = client

    def resolve(self, credential: Optional[str]) -> str:
        if not credential:
            raise Unauthorized("No authorization header")
        try:
            response = self.client.auth.get_user(credential)
        except Exception as exc:
            raise Unauthorized("Unauthorized") from exc
        user = getattr(response, "user", None) if response else None
        if user is None:
            raise Unauthorized("Unauthorized")
        return str(user.id)


class SupabaseRecordStore(RecordStore):
    """RecordStore over Supabase tables.

    Replacements call the ``replace_user_records`` database function (see
    ``sql/replace_user_records.sql``), which deletes and inserts inside a
    single Postgres transaction.
    """

    def __init__(self, client: Client):
        self.client = client

    def _rows(self, table: str, columns: str, user_id: str) -> list:
        try:
            response = self.client.table(table).select(columns).eq("user_id", user_id).execute()
        except Exception as exc:
            raise PersistenceFailure(f"Loading {table} failed: {exc}") from exc
        return response.data or []

    def list_transactions(self, user_id: str) -> List[Transaction]:
        rows = self._rows(
            "transactions",
            "id,user_id,date,type,category,client,description,amount",
            user_id,
        )
        return [
            Transaction(
                id=str(r["id"]),
                user_id=r["user_id"],
                date=date.fromisoformat(str(r["date"])[:10]),
                type=r["type"],
                category=r["category"],
                client=r.get("client"),
                description=r.get("description") or "",
                amount=Decimal(str(r["amount"])),
            )
            for r in rows
        ]

    def list_categories(self, user_id: str) -> List[Category]:
        rows = self._rows("categories", "id,user_id,name,type,color", user_id)
        return [
            Category(
                id=str(r["id"]),
                user_id=r["user_id"],
                name=r["name"],
                type=r["type"],
                color=r.get("color"),
            )
            for r in rows
        ]

    def get_enterprise_setting(self, user_id: str) -> Optional[EnterpriseSetting]:
        rows = self._rows("enterprise_settings", "user_id,name", user_id)
        if not rows:
            return None
        return EnterpriseSetting(user_id=rows[0]["user_id"], name=rows[0]["name"])

    def replace_transactions(self, user_id: str, records: Iterable[Transaction]) -> None:
        rows = []
        for tx in records:
            row = tx.to_dict()
            row.pop("userId")
            row["amount"] = str(tx.amount)
            rows.append(row)
        self._replace_all("transactions", user_id, rows)

    def replace_categories(self, user_id: str, records: Iterable[Category]) -> None:
        rows = []
        for cat in records:
            row = cat.to_dict()
            row.pop("userId")
            rows.append(row)
        self._replace_all("categories", user_id, rows)

    def _replace_all(self, table: str, user_id: str, rows: list) -> None:
        params = {"p_table": table, "p_user_id": user_id, "p_rows": rows}
        try:
            self.client.rpc(REPLACE_FUNCTION, params).execute()
        except Exception as exc:
            raise PersistenceFailure(f"Replacing {table} failed: {exc}") from exc

    def upsert_enterprise_setting(self, setting: EnterpriseSetting) -> None:
        try:
            self.client.table("enterprise_settings").upsert(
                {"user_id": setting.user_id, "name": setting.name},
                on_conflict="user_id",
            ).execute()
        except Exception as exc:
            raise PersistenceFailure(f"Saving enterprise settings failed: {exc}") from exc


class SupabaseObjectStore(ObjectStore):
    def __init__(self, client: Client, bucket: str = "exports"):
        self.client = client
        self.bucket = bucket

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self.client.storage.from_(self.bucket).upload(
                key,
                data,
                {"content-type": content_type, "upsert": "true"},
            )
        except Exception as exc:
            raise StorageFailure(f"Upload of {key} failed: {exc}") from exc

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        try:
            result = self.client.storage.from_(self.bucket).create_signed_url(key, ttl_seconds)
        except Exception as exc:
            raise StorageFailure(f"Signing {key} failed: {exc}") from exc
        url = (result or {}).get("signedURL") or (result or {}).get("signedUrl")
        if not url:
            raise StorageFailure(f"Storage returned no signed URL for {key}")
        return url
