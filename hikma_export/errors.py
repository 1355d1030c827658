# hikma_export/errors.py
"""Error taxonomy shared by the export and import pipelines.

Every error carries the HTTP status the web boundary answers with. None of
them is fatal to the process; each one is scoped to a single call.
"""


class HikmaExportError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(HikmaExportError):
    """Missing or invalid bearer credential."""

    status_code = 401


class InvalidFormat(HikmaExportError):
    """Export requested in a format no codec handles."""

    status_code = 400


class MalformedPayload(HikmaExportError):
    """Uploaded bytes do not parse into an import payload."""

    status_code = 400


class StorageFailure(HikmaExportError):
    """Upload or signed URL issuance failed. The whole export can be retried."""

    status_code = 502


class PersistenceFailure(HikmaExportError):
    """A replace against the record store failed and was rolled back."""

    status_code = 500
