"""Read-only gateway to the Google Sheets and Drive REST APIs.

Each public method backs one MCP tool and issues a short, fixed sequence of
authenticated GET requests. Results are plain dictionaries with snake_case
keys; rendering them is left to :mod:`google_sheets_mcp.server.formatting`.
"""

import logging
import re
from typing import Any, NoReturn
from urllib.parse import quote

import httpx

from google_sheets_mcp.auth import OAuthManager
from google_sheets_mcp.config import MAX_SEARCH_FILES
from google_sheets_mcp.errors import (
    AccessDenied,
    InvalidUrl,
    RangeOrTabNotFound,
    TokenExpired,
    UnknownError,
)

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4"
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"

SPREADSHEET_URL_PATTERN = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
SPREADSHEET_ID_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")
PLAIN_SHEET_NAME = re.compile(r"^[A-Za-z0-9_]+$")

MIME_TYPES = {
    "spreadsheet": "application/vnd.google-apps.spreadsheet",
    "document": "application/vnd.google-apps.document",
}


def extract_spreadsheet_id(url: str) -> str:
    """Extract the spreadsheet ID from a Google Sheets URL.

    Args:
        url: e.g. https://docs.google.com/spreadsheets/d/{SPREADSHEET_ID}/edit#gid=0

    Returns:
        The path segment following ``/spreadsheets/d/``.

    Raises:
        InvalidUrl: If the URL does not contain a spreadsheet path.
    """
    match = SPREADSHEET_URL_PATTERN.search(url)
    if not match:
        raise InvalidUrl(url)
    return match.group(1)


def resolve_spreadsheet_id(value: str) -> str:
    """Accept either a bare spreadsheet ID or a full Google Sheets URL.

    Raises:
        InvalidUrl: If a bare ID contains characters outside ``[A-Za-z0-9_-]``.
    """
    if "/" in value:
        return extract_spreadsheet_id(value)
    if not SPREADSHEET_ID_PATTERN.fullmatch(value):
        raise InvalidUrl(value)
    return value


def quote_sheet_name(name: str) -> str:
    """Quote a sheet name for A1 notation when it is not a plain identifier."""
    if PLAIN_SHEET_NAME.match(name):
        return name
    return "'" + name.replace("'", "''") + "'"


def build_range(tab_name: str, cell_range: str | None = None) -> str:
    """Build a fully qualified A1 range.

    ``A1:B2`` on tab ``Sheet1`` becomes ``Sheet1!A1:B2``; a range that already
    names a sheet is passed through; no range reads the whole tab.
    """
    if not cell_range:
        return quote_sheet_name(tab_name)
    if "!" in cell_range:
        return cell_range
    return f"{quote_sheet_name(tab_name)}!{cell_range}"


def column_letter(column: int) -> str:
    """Convert a 1-based column number to letters (1 -> A, 27 -> AA)."""
    letters = ""
    while column > 0:
        column, remainder = divmod(column - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def _escape_query_literal(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _google_error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a Google API error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("status") or response.reason_phrase)
    if isinstance(error, str):
        return error
    return response.reason_phrase


class SheetsGateway:
    """Thin async adapter over the Sheets v4 and Drive v3 APIs.

    Attributes:
        manager: Supplies (and refreshes) the OAuth access token.
    """

    def __init__(self, manager: OAuthManager, http_client: httpx.AsyncClient | None = None) -> None:
        """Initialize the gateway.

        Args:
            manager: OAuth manager used for every request.
            http_client: Optional pre-built client (tests pass a mock transport).
        """
        self.manager = manager
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=5),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _make_request(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Make an authenticated GET request to a Google API.

        Raises:
            httpx.HTTPStatusError: If the request fails.
        """
        access_token = await self.manager.get_access_token()
        client = await self._get_http_client()

        response = await client.get(
            url,
            params=params,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )
        response.raise_for_status()
        result: dict[str, Any] = response.json()
        return result

    async def _get(
        self,
        url: str,
        params: dict[str, Any] | None,
        resource: str,
        range_notation: str | None = None,
    ) -> dict[str, Any]:
        """GET with Google API failures mapped to domain errors."""
        try:
            return await self._make_request(url, params)
        except httpx.HTTPStatusError as e:
            self._raise_for_status(e.response, resource, range_notation)
        except httpx.HTTPError as e:
            raise UnknownError(f"Request to Google failed: {e}") from e

    def _raise_for_status(
        self, response: httpx.Response, resource: str, range_notation: str | None
    ) -> NoReturn:
        status = response.status_code
        message = _google_error_message(response)
        logger.warning(f"Google API returned {status} for {resource}: {message}")

        if status == 401:
            raise TokenExpired(self.manager.token_path, "Google rejected the access token")
        if status in (403, 404):
            raise AccessDenied(resource, status)
        if status == 400 and range_notation is not None:
            lowered = message.lower()
            if "range" in lowered or "sheet" in lowered:
                raise RangeOrTabNotFound(range_notation, message)
        raise UnknownError(f"Google API error {status}: {message}")

    async def _get_file_owner(self, file_id: str) -> dict[str, str] | None:
        """Look up the Drive owner of a file.

        Returns:
            Owner name, email and creation time, or None when Drive does not
            expose an owner to this user (shared files, shared drives).
        """
        try:
            response = await self._make_request(
                f"{DRIVE_API_BASE}/files/{file_id}",
                params={
                    "fields": "owners(displayName,emailAddress),createdTime",
                    "supportsAllDrives": "true",
                },
            )
        except httpx.HTTPError as e:
            logger.debug(f"Owner lookup for {file_id} failed: {e}")
            return None

        owners = response.get("owners") or []
        if not owners:
            return None
        owner = owners[0]
        return {
            "name": owner.get("displayName") or "Unknown",
            "email": owner.get("emailAddress") or "Unknown",
            "created_at": response.get("createdTime") or "Unknown",
        }

    async def get_info(self, url: str) -> dict[str, Any]:
        """Get spreadsheet metadata, owner and sheet list.

        Args:
            url: Google Sheets URL.

        Returns:
            Dictionary with spreadsheet_id, title, locale, timezone, owner
            (None if not accessible) and sheets sorted by index.
        """
        spreadsheet_id = extract_spreadsheet_id(url)

        response = await self._get(
            f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}",
            {"fields": "spreadsheetId,properties(title,locale,timeZone),sheets.properties"},
            resource="spreadsheet",
        )
        properties = response.get("properties", {})
        owner = await self._get_file_owner(spreadsheet_id)

        sheets = []
        for sheet in response.get("sheets", []):
            props = sheet.get("properties", {})
            grid = props.get("gridProperties", {})
            sheets.append(
                {
                    "sheet_id": props.get("sheetId", 0),
                    "title": props.get("title", "Untitled"),
                    "index": props.get("index", 0),
                    "row_count": grid.get("rowCount", 0),
                    "column_count": grid.get("columnCount", 0),
                }
            )
        sheets.sort(key=lambda s: s["index"])

        return {
            "spreadsheet_id": response.get("spreadsheetId", spreadsheet_id),
            "title": properties.get("title", "Untitled"),
            "locale": properties.get("locale", "unknown"),
            "timezone": properties.get("timeZone", "unknown"),
            "owner": owner,
            "sheets": sheets,
        }

    async def list_tabs(self, url: str) -> dict[str, Any]:
        """List tabs in ascending sheet index order.

        Args:
            url: Google Sheets URL.

        Returns:
            Dictionary with spreadsheet_id, spreadsheet_title and tabs.
        """
        spreadsheet_id = extract_spreadsheet_id(url)

        response = await self._get(
            f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}",
            {"fields": "spreadsheetId,properties.title,sheets.properties(title,index,sheetId)"},
            resource="spreadsheet",
        )

        tabs = [
            {
                "title": props.get("title", "Untitled"),
                "index": props.get("index", 0),
                "sheet_id": props.get("sheetId", 0),
            }
            for props in (sheet.get("properties", {}) for sheet in response.get("sheets", []))
        ]
        tabs.sort(key=lambda t: t["index"])

        return {
            "spreadsheet_id": response.get("spreadsheetId", spreadsheet_id),
            "spreadsheet_title": response.get("properties", {}).get("title", "Untitled"),
            "tabs": tabs,
        }

    async def get_tab_data(
        self, url: str, tab_name: str, cell_range: str | None = None
    ) -> dict[str, Any]:
        """Read cell values from one tab.

        Args:
            url: Google Sheets URL.
            tab_name: Tab to read.
            cell_range: Optional A1 range; prefixed with the tab name when it
                does not name a sheet itself.

        Returns:
            Dictionary with spreadsheet_id, range, row_count, column_count and
            values. Rows keep their original (ragged) lengths.
        """
        spreadsheet_id = extract_spreadsheet_id(url)
        range_notation = build_range(tab_name, cell_range)

        response = await self._get(
            f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}/values/{quote(range_notation, safe='')}",
            {
                "valueRenderOption": "FORMATTED_VALUE",
                "dateTimeRenderOption": "FORMATTED_STRING",
            },
            resource="spreadsheet",
            range_notation=range_notation,
        )

        values = response.get("values", [])
        return {
            "spreadsheet_id": spreadsheet_id,
            "range": response.get("range", range_notation),
            "row_count": len(values),
            "column_count": max((len(row) for row in values), default=0),
            "values": values,
        }

    async def search_files(
        self, query: str, file_type: str = "any", max_results: int = 10
    ) -> dict[str, Any]:
        """Search Drive by file name, most recently modified first.

        Args:
            query: Substring matched against file names.
            file_type: "any", "spreadsheet" or "document".
            max_results: Maximum files returned (capped at 50).

        Returns:
            Dictionary with query, file_type, count and files.
        """
        q = f"name contains '{_escape_query_literal(query)}' and trashed=false"
        if file_type in MIME_TYPES:
            q += f" and mimeType='{MIME_TYPES[file_type]}'"

        response = await self._get(
            f"{DRIVE_API_BASE}/files",
            {
                "q": q,
                "spaces": "drive",
                "fields": "files(id,name,owners,createdTime,modifiedTime,webViewLink,mimeType)",
                "pageSize": min(max_results, MAX_SEARCH_FILES),
                "orderBy": "modifiedTime desc",
            },
            resource="Google Drive",
        )

        files = []
        for item in response.get("files", []):
            owners = item.get("owners") or [{}]
            files.append(
                {
                    "id": item.get("id"),
                    "name": item.get("name"),
                    "owner": owners[0].get("emailAddress", "Unknown"),
                    "created_time": item.get("createdTime"),
                    "modified_time": item.get("modifiedTime"),
                    "web_view_link": item.get("webViewLink"),
                    "mime_type": item.get("mimeType"),
                }
            )

        return {"query": query, "file_type": file_type, "count": len(files), "files": files}

    async def search_content(
        self, spreadsheet_id: str, search_term: str, max_results: int = 5
    ) -> dict[str, Any]:
        """Find rows containing a search term, across all tabs.

        Tabs are scanned in index order, rows top to bottom and cells left to
        right. Only the first matching cell of a row is reported, and the scan
        stops as soon as ``max_results`` rows have matched.

        Args:
            spreadsheet_id: Spreadsheet ID or full Google Sheets URL.
            search_term: Case-insensitive substring to look for.
            max_results: Maximum matching rows returned.

        Returns:
            Dictionary with spreadsheet_id, search_term, count and matches.
        """
        spreadsheet_id = resolve_spreadsheet_id(spreadsheet_id)

        response = await self._get(
            f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}",
            {"fields": "sheets.properties(title,index)"},
            resource="spreadsheet",
        )
        sheet_props = sorted(
            (sheet.get("properties", {}) for sheet in response.get("sheets", [])),
            key=lambda props: props.get("index", 0),
        )

        needle = search_term.lower()
        matches: list[dict[str, Any]] = []

        for props in sheet_props:
            if len(matches) >= max_results:
                break

            title = props.get("title", "Unknown")
            range_notation = quote_sheet_name(title)
            data = await self._get(
                f"{SHEETS_API_BASE}/spreadsheets/{spreadsheet_id}/values/{quote(range_notation, safe='')}",
                None,
                resource="spreadsheet",
                range_notation=range_notation,
            )

            for row_idx, row in enumerate(data.get("values", []), start=1):
                if len(matches) >= max_results:
                    break
                for col_idx, cell in enumerate(row, start=1):
                    if needle in str(cell).lower():
                        matches.append(
                            {
                                "sheet": title,
                                "row": row_idx,
                                "column": col_idx,
                                "cell": f"{column_letter(col_idx)}{row_idx}",
                                "value": cell,
                                "context": " | ".join(str(c) for c in row),
                            }
                        )
                        break

        return {
            "spreadsheet_id": spreadsheet_id,
            "search_term": search_term,
            "count": len(matches),
            "matches": matches,
        }
