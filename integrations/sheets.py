import logging
from urllib.parse import quote

import httpx

from integrations.google_auth import GoogleAuthError, GoogleTokenProvider
from integrations.row_store import RowStore, RowStoreUnavailable

logger = logging.getLogger(__name__)

SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"


class GoogleSheetsRowStore(RowStore):
    """Booking rows kept in a Google Sheets tab, over the Sheets v4 REST API."""

    def __init__(self, spreadsheet_id: str, tokens: GoogleTokenProvider,
                 sheet_range: str = "Prenotazioni!A:K", timeout: float = 10.0, client=None):
        self.spreadsheet_id = spreadsheet_id
        self.tokens = tokens
        self.sheet_range = sheet_range
        self.client = client or httpx.Client(timeout=timeout)

    def _url(self, range_: str, suffix: str = "") -> str:
        return f"{SHEETS_API}/{self.spreadsheet_id}/values/{quote(range_, safe='!:')}{suffix}"

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self.client.request(method, url, headers=self.tokens.headers(), **kwargs)
        except (httpx.HTTPError, GoogleAuthError) as exc:
            raise RowStoreUnavailable(str(exc)) from exc
        if response.status_code >= 400:
            raise RowStoreUnavailable(f"Sheets API {response.status_code}: {response.text[:200]}")
        return response.json()

    def append(self, row):
        self._request(
            "POST",
            self._url(self.sheet_range, ":append"),
            params={"valueInputOption": "USER_ENTERED"},
            json={"values": [list(row)]},
        )
        logger.info("Booking row appended to sheet %s", self.spreadsheet_id)

    def read_all(self, range_hint=None):
        data = self._request("GET", self._url(range_hint or self.sheet_range))
        return data.get("values", [])
