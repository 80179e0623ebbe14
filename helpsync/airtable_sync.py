"""Create-or-update of harvested records in Airtable.

Airtable has no upsert keyed on an arbitrary field here, so each record is
looked up by its key field (``Country`` by default) and then either updated in
place or created. The synchronizer assumes it is the only writer to the
destination table while a run is in progress.
"""
from __future__ import annotations

import enum
from typing import Any, Callable, Dict, Optional

from pyairtable import Api
from pyairtable.formulas import match

from .config import (
    DEFAULT_KEY_FIELD,
    DEFAULT_LINK_FIELD,
    LOOKUP_FAILURE_CREATE,
    LOOKUP_FAILURE_POLICIES,
    LOOKUP_FAILURE_SKIP,
    HelpSyncConfig,
)
from .error_codes import ErrorCode, classify_store_error
from .logging_utils import _sync_event
from .utils import log_line, short_error_message

# Returns an object with pyairtable ``Table``'s all/create/update methods.
TableFactory = Callable[[str], Any]


class UpsertOutcome(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"


class SyncError(Exception):
    def __init__(
        self,
        error_code: str,
        message: str,
        *,
        http_status: int | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.http_status = http_status
        self.key = key


def airtable_table_factory(api_key: str, base_id: str) -> TableFactory:
    api = Api(api_key)

    def _table(name: str):
        return api.table(base_id, name)

    return _table


class RecordSynchronizer:
    def __init__(
        self,
        tables: TableFactory,
        *,
        key_field: str = DEFAULT_KEY_FIELD,
        link_field: str = DEFAULT_LINK_FIELD,
        lookup_failure: str = LOOKUP_FAILURE_CREATE,
    ) -> None:
        if lookup_failure not in LOOKUP_FAILURE_POLICIES:
            raise ValueError(f"Unknown lookup failure policy: {lookup_failure!r}")
        self._tables = tables
        self._table_cache: Dict[str, Any] = {}
        self.key_field = key_field
        self.link_field = link_field
        self.lookup_failure = lookup_failure

    @classmethod
    def from_config(cls, cfg: HelpSyncConfig) -> "RecordSynchronizer":
        return cls(
            airtable_table_factory(cfg.airtable_api_key, cfg.airtable_base_id),
            key_field=cfg.key_field,
            link_field=cfg.link_field,
            lookup_failure=cfg.lookup_failure,
        )

    def _table(self, name: str):
        table = self._table_cache.get(name)
        if table is None:
            table = self._tables(name)
            self._table_cache[name] = table
        return table

    def key_formula(self, key: str):
        return match({self.key_field: key})

    def find_existing(self, key: str, table_name: str) -> Optional[Dict[str, Any]]:
        """Return the first record whose key field equals ``key``.

        Lookup errors are handled according to ``lookup_failure``: with
        ``"create"`` they are logged and reported as not found, with ``"skip"``
        a :class:`SyncError` is raised.
        """

        try:
            records = self._table(table_name).all(
                formula=self.key_formula(key), max_records=1
            )
        except Exception as exc:  # noqa: BLE001
            error_code, status = classify_store_error(exc)
            _sync_event(
                "error",
                phase="lookup",
                table=table_name,
                key=key,
                error_code=error_code,
                http_status=status,
                policy=self.lookup_failure,
                error=short_error_message(exc),
            )
            log_line(f"[SYNC] Error checking for existing record {key!r}: {short_error_message(exc)}")
            if self.lookup_failure == LOOKUP_FAILURE_SKIP:
                raise SyncError(
                    ErrorCode.LOOKUP_FAILED,
                    f"Lookup failed for {key!r}: {short_error_message(exc)}",
                    http_status=status,
                    key=key,
                ) from exc
            return None

        return records[0] if records else None

    def upsert(self, key: str, table_name: str, link: str) -> UpsertOutcome:
        """Point the record for ``key`` at ``link``, creating it if needed.

        Create/update failures raise :class:`SyncError`.
        """

        existing = self.find_existing(key, table_name)
        fields = {self.key_field: key, self.link_field: link}
        table = self._table(table_name)

        try:
            if existing:
                table.update(existing["id"], fields)
                outcome = UpsertOutcome.UPDATED
            else:
                table.create(fields)
                outcome = UpsertOutcome.CREATED
        except Exception as exc:  # noqa: BLE001
            error_code, status = classify_store_error(exc)
            _sync_event(
                "error",
                phase="upsert",
                table=table_name,
                key=key,
                error_code=error_code,
                http_status=status,
                error=short_error_message(exc),
            )
            log_line(f"[SYNC] Error saving {key!r} to {table_name!r}: {short_error_message(exc)}")
            raise SyncError(
                error_code,
                f"Saving {key!r} failed: {short_error_message(exc)}",
                http_status=status,
                key=key,
            ) from exc

        log_line(f"[SYNC] {outcome.value.capitalize()}: {key} - {link}")
        _sync_event("sync", table=table_name, key=key, outcome=outcome.value, link=link)
        return outcome


__all__ = [
    "RecordSynchronizer",
    "SyncError",
    "UpsertOutcome",
    "airtable_table_factory",
]
