# hikma_export/core/models.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

TRANSACTION_TYPES = ("income", "expense")


@dataclass
class Transaction:
    id: str
    date: date
    type: str
    category: str
    amount: Decimal
    description: str = ""
    client: Optional[str] = None
    user_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "date": self.date.isoformat(),
            "type": self.type,
            "category": self.category,
            "client": self.client,
            "description": self.description,
            "amount": self.amount,
        }


@dataclass
class Category:
    id: str
    name: str
    type: str
    color: Optional[str] = None
    user_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "type": self.type,
            "color": self.color,
        }


@dataclass
class EnterpriseSetting:
    user_id: str
    name: str


@dataclass
class ExportRequest:
    format: str
    enterprise_name: Optional[str] = None


@dataclass
class ExportArtifact:
    """A generated export. Lives only for the duration of one export call."""

    file_name: str
    content_type: str
    data: bytes
    storage_key: Optional[str] = None
    signed_url: Optional[str] = None
    expires_at: Optional[datetime] = None


@dataclass
class ImportPayload:
    """Parsed upload. ``None`` means the key was absent and is left untouched."""

    transactions: Optional[List[Transaction]] = None
    categories: Optional[List[Category]] = None
    enterprise_name: Optional[str] = None
