from datetime import date
from decimal import Decimal

import pytest

from hikma_export.auth import StaticTokenAuthResolver
from hikma_export.core.models import Category, Transaction
from hikma_export.database import SQLiteRecordStore
from hikma_export.errors import PersistenceFailure, StorageFailure
from hikma_export.storage import ObjectStore

TOKENS = {"token-u": "user-u", "token-v": "user-v"}


class RecordingObjectStore(ObjectStore):
    """In-memory object store that remembers every call."""

    def __init__(self, fail_put=False, fail_sign=False):
        self.objects = {}
        self.calls = []
        self.fail_put = fail_put
        self.fail_sign = fail_sign

    def put(self, key, data, content_type):
        self.calls.append(("put", key))
        if self.fail_put:
            raise StorageFailure(f"Upload of {key} failed: bucket offline")
        self.objects[key] = (data, content_type)

    def signed_url(self, key, ttl_seconds):
        self.calls.append(("signed_url", key, ttl_seconds))
        if self.fail_sign:
            raise StorageFailure(f"Signing {key} failed")
        return f"https://storage.test/{key}?ttl={ttl_seconds}"


class FailingCategoryStore(SQLiteRecordStore):
    """SQLite store whose category replace always fails."""

    def replace_categories(self, user_id, records):
        raise PersistenceFailure("Replacing categories failed: simulated outage")


class DuplicatingInsertStore(SQLiteRecordStore):
    """SQLite store that inserts the first transaction twice, so the insert fails mid-replace."""

    def replace_transactions(self, user_id, records):
        super().replace_transactions(user_id, list(records) + list(records[:1]))


@pytest.fixture
def auth():
    return StaticTokenAuthResolver(TOKENS)


@pytest.fixture
def store(tmp_path):
    return SQLiteRecordStore(tmp_path / "hikma.db")


@pytest.fixture
def object_store():
    return RecordingObjectStore()


@pytest.fixture
def transactions():
    user_id = "user-u"
    return [
        Transaction(
            id="t1",
            user_id=user_id,
            date=date(2024, 5, 20),
            type="income",
            category="Sales",
            client="Globex",
            description="Invoice 42",
            amount=Decimal("1500.00"),
        ),
        Transaction(
            id="t2",
            user_id=user_id,
            date=date(2024, 5, 28),
            type="expense",
            category="Food",
            client=None,
            description="Team lunch",
            amount=Decimal("42.50"),
        ),
    ]


@pytest.fixture
def categories():
    return [Category(id="c1", user_id="user-u", name="Food", type="expense", color="#ff0000")]


@pytest.fixture
def seeded_store(store, transactions, categories):
    store.replace_transactions("user-u", transactions)
    store.replace_categories("user-u", categories)
    return store


@pytest.fixture
def failing_upload_store():
    return RecordingObjectStore(fail_put=True)


@pytest.fixture
def failing_category_store(tmp_path):
    return FailingCategoryStore(tmp_path / "hikma.db")


@pytest.fixture
def duplicating_insert_store(tmp_path, transactions, categories):
    store = DuplicatingInsertStore(tmp_path / "hikma.db")
    SQLiteRecordStore.replace_transactions(store, "user-u", transactions)
    store.replace_categories("user-u", categories)
    return store


@pytest.fixture
def failing_sign_store():
    return RecordingObjectStore(fail_sign=True)
