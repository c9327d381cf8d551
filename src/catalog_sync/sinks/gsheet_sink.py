from __future__ import annotations

from typing import Any, List
import gspread
from google.oauth2.service_account import Credentials

from catalog_sync.core.models import AuditRecord
from catalog_sync.sinks.base import AuditSink


_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

HEADER = [
    "timestamp",
    "processed_count",
    "inserted_count",
    "updated_count",
    "no_change_count",
    "removed_count",
    "inserted",
    "updated",
    "no_change",
]


class GoogleSheetsAuditSink(AuditSink):
    """Appends one row per completed pass to a Google Sheets tab."""

    def __init__(self, sheet_id: str, tab: str = "sync_log", credentials_path: str = "service_account.json"):
        self.sheet_id = sheet_id
        self.tab = tab
        self.credentials_path = credentials_path

    def write(self, record: AuditRecord) -> None:
        ws = self._open_worksheet()
        self._ensure_header(ws)
        ws.append_row(self._record_to_row(record), value_input_option="USER_ENTERED")

    def _open_worksheet(self):
        """Open a Google Sheets worksheet."""
        creds = Credentials.from_service_account_file(self.credentials_path, scopes=_SCOPES)
        client = gspread.authorize(creds)
        sh = client.open_by_key(self.sheet_id)
        return sh.worksheet(self.tab)

    def _ensure_header(self, ws) -> None:
        """Write the header row into an empty tab."""
        existing = ws.row_values(1)
        if not existing:
            ws.append_row(HEADER, value_input_option="USER_ENTERED")

    def _record_to_row(self, record: AuditRecord) -> List[Any]:
        titles = record.title_lists
        return [
            record.timestamp,
            record.processed_count,
            record.inserted_count,
            record.updated_count,
            record.no_change_count,
            record.removed_count,
            ", ".join(titles.get("inserted", [])),
            ", ".join(titles.get("updated", [])),
            ", ".join(titles.get("no_change", [])),
        ]
