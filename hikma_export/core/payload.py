# hikma_export/core/payload.py
"""Parsing and validation of uploaded import documents.

The whole document is validated before anything touches the record store,
so a bad record late in the file can never leave an import half-applied.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

import simplejson

from hikma_export.core.models import (
    TRANSACTION_TYPES,
    Category,
    ImportPayload,
    Transaction,
)
from hikma_export.errors import MalformedPayload


def parse_payload(raw: bytes) -> ImportPayload:
    """Parse ``raw`` bytes into an :class:`ImportPayload`.

    Raises :class:`MalformedPayload` when the bytes are not UTF-8 JSON, the
    top level is not an object, or any record is missing a required field.
    """
    try:
        text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
        data = simplejson.loads(text, use_decimal=True)
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedPayload(f"Import file is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedPayload("Import file must contain a JSON object")

    transactions = _parse_list(data, "transactions", _parse_transaction)
    categories = _parse_list(data, "categories", _parse_category)
    enterprise_name = _parse_enterprise_name(data.get("enterpriseName"))
    return ImportPayload(
        transactions=transactions,
        categories=categories,
        enterprise_name=enterprise_name,
    )


def _parse_list(data: dict, key: str, parse_item) -> Optional[list]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise MalformedPayload(f"'{key}' must be an array")
    items = []
    for idx, entry in enumerate(value):
        if not isinstance(entry, dict):
            raise MalformedPayload(f"{key}[{idx}] must be an object")
        try:
            items.append(parse_item(entry))
        except MalformedPayload as exc:
            raise MalformedPayload(f"{key}[{idx}]: {exc.message}") from exc
    seen = set()
    for idx, item in enumerate(items):
        if item.id in seen:
            raise MalformedPayload(f"{key}[{idx}]: duplicate id {item.id!r}")
        seen.add(item.id)
    return items


def _parse_transaction(entry: dict) -> Transaction:
    return Transaction(
        id=_parse_id(entry.get("id")),
        user_id=_parse_user_id(entry),
        date=_parse_date(_require(entry, "date")),
        type=_parse_type(_require(entry, "type")),
        category=_require_str(entry, "category"),
        client=_optional_str(entry, "client"),
        description=_optional_str(entry, "description") or "",
        amount=_parse_amount(_require(entry, "amount")),
    )


def _parse_category(entry: dict) -> Category:
    return Category(
        id=_parse_id(entry.get("id")),
        user_id=_parse_user_id(entry),
        name=_require_str(entry, "name"),
        type=_parse_type(_require(entry, "type")),
        color=_optional_str(entry, "color"),
    )


def _parse_enterprise_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedPayload("'enterpriseName' must be a string")
    return value.strip() or None


def _require(entry: dict, key: str) -> Any:
    value = entry.get(key)
    if value is None:
        raise MalformedPayload(f"missing required field '{key}'")
    return value


def _require_str(entry: dict, key: str) -> str:
    value = _require(entry, key)
    if not isinstance(value, str):
        raise MalformedPayload(f"'{key}' must be a string")
    return value


def _optional_str(entry: dict, key: str) -> Optional[str]:
    value = entry.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedPayload(f"'{key}' must be a string")
    return value


def _parse_id(value: Any) -> str:
    if value is None or value == "":
        return str(uuid.uuid4())
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise MalformedPayload("'id' must be a string")
    return str(value)


def _parse_user_id(entry: dict) -> Optional[str]:
    # Read only so round trips stay lossless; the importer always restamps.
    value = entry.get("userId", entry.get("user_id"))
    return None if value is None else str(value)


def _parse_type(value: Any) -> str:
    if value not in TRANSACTION_TYPES:
        raise MalformedPayload(
            f"'type' must be one of {', '.join(TRANSACTION_TYPES)}, got {value!r}"
        )
    return value


def _parse_date(value: Any) -> date:
    if not isinstance(value, str):
        raise MalformedPayload("'date' must be an ISO formatted string")
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise MalformedPayload(f"invalid date {value!r}") from exc


def _parse_amount(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise MalformedPayload("'amount' must be a number")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise MalformedPayload(f"invalid amount {value!r}") from exc
        if not amount.is_finite():
            raise MalformedPayload(f"invalid amount {value!r}")
        return amount
    raise MalformedPayload("'amount' must be a number")


def dump_records(transactions: List[Transaction], categories: List[Category], enterprise_name: Optional[str]) -> dict:
    """Return the document shape shared by the JSON export and import."""
    return {
        "transactions": [tx.to_dict() for tx in transactions],
        "categories": [cat.to_dict() for cat in categories],
        "enterpriseName": enterprise_name,
    }
