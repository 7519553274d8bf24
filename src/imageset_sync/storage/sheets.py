"""Google Sheets client for publishing the image table."""

from typing import Any

import httplib2
import structlog
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient import errors
from googleapiclient.discovery import Resource, build

from ..config import GoogleConfig
from ..exceptions import SheetSortError, SheetUpdateError, SyncError
from ..models.image import HEADER, ImageTable

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
RECORD_WIDTH = len(HEADER)

# Failures the Google client stack can surface from a single API call.
GOOGLE_ERRORS = (
    errors.Error,
    GoogleAuthError,
    httplib2.HttpLib2Error,
    OSError,
    ValueError,
)


class SheetsClient:
    """Write and sort the image table in a spreadsheet.

    Parameters
    ----------
    cfg
        Google settings.  ``service_account`` and ``sheet_id`` must be set.
    service
        Prebuilt Sheets API resource.  If not supplied, a new one is built
        from the service account credentials for every call.
    """

    def __init__(
        self, cfg: GoogleConfig, service: Resource | None = None
    ) -> None:
        self._logger = structlog.get_logger(__name__)
        self._service_account = cfg.service_account
        self._sheet_id = cfg.sheet_id
        self._sheet_name = cfg.sheet_name
        self._grid_id = cfg.sheet_grid_id
        self._service = service

    def _build_service(self, error: type[SyncError]) -> Resource:
        if self._service is not None:
            return self._service
        if self._service_account is None:
            raise error("No Google service account configured")
        try:
            credentials = (
                service_account.Credentials.from_service_account_file(
                    str(self._service_account), scopes=SHEETS_SCOPES
                )
            )
            return build(
                "sheets",
                "v4",
                credentials=credentials,
                cache_discovery=False,
            )
        except GOOGLE_ERRORS as exc:
            raise error(
                f"Unable to retrieve Google Sheets client: {exc}"
            ) from exc

    def value_range(self, rows: ImageTable) -> str:
        """A1 range covering ``rows``, anchored at the top-left cell."""
        last_column = chr(ord("A") + RECORD_WIDTH - 1)
        return f"{self._sheet_name}!A1:{last_column}{len(rows)}"

    def update_values(self, rows: ImageTable) -> dict[str, Any]:
        """Overwrite the top of the sheet with ``rows``.

        Rows below the new table are left alone, so a shorter table leaves
        stale rows from a previous run at the bottom of the sheet.
        """
        service = self._build_service(SheetUpdateError)
        sheet_range = self.value_range(rows)
        body = {
            "valueInputOption": "RAW",
            "data": [
                {
                    "range": sheet_range,
                    "majorDimension": "ROWS",
                    "values": rows,
                }
            ],
        }
        self._logger.debug(
            f"Writing {len(rows)} rows",
            range=sheet_range,
            sheet=self._sheet_id,
        )
        try:
            return (
                service.spreadsheets()
                .values()
                .batchUpdate(spreadsheetId=self._sheet_id, body=body)
                .execute()
            )
        except GOOGLE_ERRORS as exc:
            raise SheetUpdateError(f"Unable to update sheet: {exc}") from exc

    def sort_rows(self) -> dict[str, Any]:
        """Sort all rows below the header by name, descending."""
        service = self._build_service(SheetSortError)
        body = {
            "requests": [
                {
                    "sortRange": {
                        "range": {
                            "sheetId": self._grid_id,
                            "startRowIndex": 1,
                            "startColumnIndex": 0,
                            "endColumnIndex": RECORD_WIDTH,
                        },
                        "sortSpecs": [
                            {"dimensionIndex": 1, "sortOrder": "DESCENDING"}
                        ],
                    }
                }
            ]
        }
        try:
            return (
                service.spreadsheets()
                .batchUpdate(spreadsheetId=self._sheet_id, body=body)
                .execute()
            )
        except GOOGLE_ERRORS as exc:
            raise SheetSortError(f"Unable to sort sheet: {exc}") from exc
