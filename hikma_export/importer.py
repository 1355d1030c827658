from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from hikma_export.auth import AuthResolver
from hikma_export.core.models import EnterpriseSetting, ImportPayload
from hikma_export.core.payload import parse_payload
from hikma_export.database import RecordStore
from hikma_export.errors import HikmaExportError

logger = logging.getLogger(__name__)


class ImportService:
    """Replace a user's records with the contents of an uploaded export.

    Transactions, categories and the enterprise name are three independent
    units, applied in that order. Each unit is atomic on its own; a failure
    in a later unit does not undo an earlier one that already committed.
    Category names on transactions are not checked against the imported
    categories.
    """

    def __init__(self, auth: AuthResolver, store: RecordStore):
        self.auth = auth
        self.store = store

    def import_records(self, credential: Optional[str], raw: bytes) -> ImportPayload:
        try:
            user_id = self.auth.resolve(credential)
        except HikmaExportError as exc:
            logger.warning("Import failed: %s: %s", type(exc).__name__, exc.message)
            raise
        return self.import_for_user(user_id, raw)

    def import_for_user(self, user_id: str, raw: bytes) -> ImportPayload:
        """Import for a caller whose identity has already been resolved."""
        try:
            payload = self._import(user_id, raw)
        except HikmaExportError as exc:
            logger.warning("Import failed: %s: %s", type(exc).__name__, exc.message)
            raise
        logger.info(
            "Imported %s transaction(s), %s category(ies), enterprise name %s",
            "no" if payload.transactions is None else len(payload.transactions),
            "no" if payload.categories is None else len(payload.categories),
            "updated" if payload.enterprise_name else "unchanged",
        )
        return payload

    def _import(self, user_id, raw):
        payload = self._restamp(parse_payload(raw), user_id)

        if payload.transactions is not None:
            self.store.replace_transactions(user_id, payload.transactions)
        if payload.categories is not None:
            self.store.replace_categories(user_id, payload.categories)
        if payload.enterprise_name:
            self.store.upsert_enterprise_setting(
                EnterpriseSetting(user_id=user_id, name=payload.enterprise_name)
            )
        return payload

    @staticmethod
    def _restamp(payload: ImportPayload, user_id: str) -> ImportPayload:
        # Records are always owned by the caller, whatever the file says.
        transactions = payload.transactions
        if transactions is not None:
            transactions = [replace(tx, user_id=user_id) for tx in transactions]
        categories = payload.categories
        if categories is not None:
            categories = [replace(cat, user_id=user_id) for cat in categories]
        return replace(payload, transactions=transactions, categories=categories)
