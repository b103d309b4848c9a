"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted backend because:
1. Users can view and fix their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Sheets cannot push changes, so the change feed polls and diffs
- No transactions (every write is independent, which the sync engine
  expects anyway)
- Limited query capabilities (we filter in Python)

Each collection is one worksheet with the columns in COLLECTION_COLUMNS.
Entity fields other than id and owner live in a JSON column, so one
layout serves every entity kind.
"""

import asyncio
import json
from datetime import datetime
from typing import Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from pawplanner.config import get_settings
from pawplanner.models.audit import AuditEvent, AuditEventType, AuditSeverity
from pawplanner.services.storage.interface import (
    AuditStorageInterface,
    CollectionServiceInterface,
    ConnectionError,
    DeleteCallback,
    FeedOpenError,
    FetchError,
    InsertCallback,
    NotFoundError,
    Row,
    StorageError,
    SubscriptionHandle,
    UpdateCallback,
    collection_key,
)

logger = structlog.get_logger(__name__)


# Column mappings for every collection sheet
COLLECTION_COLUMNS = [
    "id",
    "owner_id",
    "updated_at",
    "data_json",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "collection",
    "entity_id",
    "owner_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def poll_interval_seconds(self) -> float:
        return self._settings.poll_interval_seconds

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_collection_sheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        title = f"{self._settings.collection_sheet_prefix}{collection_key(collection)}"
        return self._get_or_create_sheet(title, COLLECTION_COLUMNS, rows=1000)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


def _row_to_entity(row: list) -> Row:
    """
    Convert a spreadsheet row to a backend row dict.

    Raises:
        ValueError: If data_json is not a JSON object
    """
    data = json.loads(row[3]) if len(row) > 3 and row[3] else {}
    if not isinstance(data, dict):
        raise ValueError(f"data_json for {row[0]} is not a JSON object")
    data["id"] = row[0]
    data["owner_id"] = row[1]
    return data


def _entity_to_row(entity_id: str, owner_id: str, data: Row) -> list:
    """Convert a backend row dict to a spreadsheet row."""
    payload = {k: v for k, v in data.items() if k not in ("id", "owner_id")}
    return [
        entity_id,
        owner_id,
        datetime.utcnow().isoformat(),
        json.dumps(payload, default=str, sort_keys=True),
    ]


class _SheetsFeed:
    """
    Polling change feed for one collection and owner.

    Each poll reads the owner's rows and compares them with the previous
    read: new ids are inserts, ids whose row changed are updates and
    missing ids are deletes.
    """

    def __init__(
        self,
        service: "GoogleSheetsCollectionService",
        handle: SubscriptionHandle,
        baseline: dict[str, list],
        on_insert: InsertCallback,
        on_update: UpdateCallback,
        on_delete: DeleteCallback,
        interval: float,
    ):
        self.handle = handle
        self._service = service
        self._known = baseline
        self._on_insert = on_insert
        self._on_update = on_update
        self._on_delete = on_delete
        self._interval = interval
        self.task: Optional[asyncio.Task] = None

    def start(self) -> None:
        self.task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                # gspread is blocking; keep the loop free for other feeds
                current = await asyncio.to_thread(
                    self._service.read_owner_rows,
                    self.handle.collection,
                    self.handle.owner_id,
                )
            except Exception as e:
                # Transient read failure; try again next poll
                logger.warning(
                    "feed_poll_failed",
                    collection=self.handle.collection,
                    error=str(e),
                )
                continue
            self.dispatch(current)

    def dispatch(self, current: dict[str, list]) -> None:
        """Emit notifications for the difference between two reads."""
        previous = self._known
        self._known = current

        for entity_id, row in current.items():
            if entity_id in previous and row == previous[entity_id]:
                continue
            try:
                entity = _row_to_entity(row)
            except (ValueError, TypeError) as e:
                logger.warning(
                    "malformed_row_skipped",
                    collection=self.handle.collection,
                    row_id=entity_id,
                    error=str(e),
                )
                continue
            if entity_id in previous:
                self._on_update(entity)
            else:
                self._on_insert(entity)

        for entity_id in previous:
            if entity_id not in current:
                self._on_delete(entity_id)


class GoogleSheetsCollectionService(CollectionServiceInterface):
    """
    Google Sheets implementation of the collection service.

    Entities are stored as rows, one worksheet per collection.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        poll_interval_seconds: Optional[float] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._poll_interval = poll_interval_seconds or self._client.poll_interval_seconds
        self._feeds: dict[str, _SheetsFeed] = {}

    def read_owner_rows(self, collection: str, owner_id: str) -> dict[str, list]:
        """Raw sheet rows for one owner, keyed by id, in sheet order."""
        sheet = self._client.get_collection_sheet(collection)
        all_rows = sheet.get_all_values()[1:]  # Skip header
        return {
            row[0]: row
            for row in all_rows
            if row and row[0] and len(row) > 1 and row[1] == owner_id
        }

    def _find_row_index(self, sheet: gspread.Worksheet, entity_id: str) -> Optional[tuple[int, list]]:
        all_rows = sheet.get_all_values()
        # Start from 2 (row 1 is header)
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == entity_id:
                return idx, row
        return None

    async def fetch_all(self, collection: str, owner_id: str) -> list[Row]:
        """Fetch every row owned by owner_id."""
        try:
            rows = self.read_owner_rows(collection, owner_id)
        except Exception as e:
            raise FetchError(f"Failed to fetch {collection_key(collection)}: {e}")

        entities = []
        for row in rows.values():
            try:
                entities.append(_row_to_entity(row))
            except (ValueError, TypeError):
                logger.warning("malformed_row_skipped", collection=collection_key(collection), row_id=row[0])
        return entities

    async def subscribe(
        self,
        collection: str,
        owner_id: str,
        on_insert: InsertCallback,
        on_update: UpdateCallback,
        on_delete: DeleteCallback,
    ) -> SubscriptionHandle:
        """Start a polling feed. The first read is the acknowledgement."""
        handle = SubscriptionHandle(collection=collection_key(collection), owner_id=owner_id)
        try:
            baseline = self.read_owner_rows(collection, owner_id)
        except Exception as e:
            raise FeedOpenError(f"Failed to open feed for {handle.collection}: {e}")

        feed = _SheetsFeed(
            service=self,
            handle=handle,
            baseline=baseline,
            on_insert=on_insert,
            on_update=on_update,
            on_delete=on_delete,
            interval=self._poll_interval,
        )
        feed.start()
        self._feeds[handle.handle_id] = feed
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Stop a polling feed."""
        feed = self._feeds.pop(handle.handle_id, None)
        if feed is None or feed.task is None:
            return
        feed.task.cancel()
        try:
            await feed.task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            # The poll task already died; the feed is gone either way
            logger.warning(
                "feed_task_failed",
                collection=handle.collection,
                owner_id=handle.owner_id,
                error=str(e),
            )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create(self, collection: str, data: Row) -> Row:
        """Append a new row."""
        owner_id = data.get("owner_id")
        if not owner_id:
            raise StorageError("Cannot create a row without an owner_id")

        entity_id = uuid4().hex
        try:
            sheet = self._client.get_collection_sheet(collection)
            sheet.append_row(
                _entity_to_row(entity_id, owner_id, data),
                value_input_option="RAW",
            )
        except Exception as e:
            raise StorageError(f"Failed to create {collection_key(collection)} entity: {e}")

        created = dict(data)
        created["id"] = entity_id
        return created

    async def update(self, collection: str, entity_id: str, patch: Row) -> bool:
        """Merge a patch into an existing row."""
        try:
            sheet = self._client.get_collection_sheet(collection)
            found = self._find_row_index(sheet, entity_id)
            if found is None:
                raise NotFoundError(f"{collection_key(collection)} entity not found: {entity_id}")

            idx, row = found
            data = _row_to_entity(row)
            data.update({k: v for k, v in patch.items() if k not in ("id", "owner_id")})
            new_row = _entity_to_row(entity_id, row[1], data)

            # Only updated_at and data_json change
            sheet.update_cell(idx, 3, new_row[2])
            sheet.update_cell(idx, 4, new_row[3])
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {collection_key(collection)} entity: {e}")

    async def delete(self, collection: str, entity_id: str) -> bool:
        """Delete a row by ID."""
        try:
            sheet = self._client.get_collection_sheet(collection)
            found = self._find_row_index(sheet, entity_id)
            if found is None:
                return False
            sheet.delete_rows(found[0])
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete {collection_key(collection)} entity: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=safe_get(0),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            collection=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            owner_id=safe_get(6) or None,
            correlation_id=safe_get(7) or None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and row[0]:
                    try:
                        events.append(self._row_to_event(row))
                    except ValueError:
                        continue

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
