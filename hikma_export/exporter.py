from __future__ import annotations

import logging
import tempfile
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from hikma_export.artifacts import build_artifact, resolve_enterprise_name
from hikma_export.auth import AuthResolver
from hikma_export.core.models import ExportArtifact, ExportRequest
from hikma_export.database import RecordStore
from hikma_export.errors import HikmaExportError, StorageFailure
from hikma_export.storage import ObjectStore

logger = logging.getLogger(__name__)

SIGNED_URL_TTL = 300


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExportService:
    """Snapshot a user's records into an artifact and hand back a signed URL.

    The encoded bytes are staged in a temporary directory that is removed on
    every exit path, including codec and upload failures.
    """

    def __init__(
        self,
        auth: AuthResolver,
        store: RecordStore,
        object_store: ObjectStore,
        config: Optional[dict] = None,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = _utcnow,
        staging_root: Optional[str] = None,
    ):
        self.auth = auth
        self.store = store
        self.object_store = object_store
        self.config = config or {}
        self.today = today
        self.now = now
        self.staging_root = staging_root

    def export(self, credential: Optional[str], request: ExportRequest) -> ExportArtifact:
        try:
            user_id = self.auth.resolve(credential)
        except HikmaExportError as exc:
            logger.warning("Export failed: %s: %s", type(exc).__name__, exc.message)
            raise
        return self.export_for_user(user_id, request)

    def export_for_user(self, user_id: str, request: ExportRequest) -> ExportArtifact:
        """Export for a caller whose identity has already been resolved."""
        try:
            artifact = self._export(user_id, request)
        except HikmaExportError as exc:
            logger.warning("Export failed: %s: %s", type(exc).__name__, exc.message)
            raise
        logger.info("Exported %s (%d bytes)", artifact.storage_key, len(artifact.data))
        return artifact

    def _export(self, user_id, request):
        transactions = self.store.list_transactions(user_id)
        categories = self.store.list_categories(user_id)
        enterprise_name = resolve_enterprise_name(
            request.enterprise_name,
            self.store.get_enterprise_setting(user_id),
        )

        with tempfile.TemporaryDirectory(prefix="hikma-export-", dir=self.staging_root) as staging_dir:
            artifact = build_artifact(
                request.format,
                transactions,
                categories,
                enterprise_name,
                self.today(),
                self.config,
            )
            staged = Path(staging_dir) / artifact.file_name
            try:
                staged.write_bytes(artifact.data)
                payload = staged.read_bytes()
            except OSError as exc:
                raise StorageFailure(f"Could not stage {artifact.file_name}: {exc}") from exc

            key = f"{user_id}/{artifact.file_name}"
            self.object_store.put(key, payload, artifact.content_type)
            url = self.object_store.signed_url(key, SIGNED_URL_TTL)

        return replace(
            artifact,
            storage_key=key,
            signed_url=url,
            expires_at=self.now() + timedelta(seconds=SIGNED_URL_TTL),
        )
