"""
Google Sheets logger and FAQ store.

Append-only logs (MessageLog, PrayerLog, AdminLog) and read-only tables
(FAQ, Announcements) on a single spreadsheet, via the Sheets REST API with
an API key.

Never raises: every operation returns a result and logs failures.
Unconfigured stores return {"success": False, "reason": "not_configured"}.
"""

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"

MESSAGE_LOG = "MessageLog"
PRAYER_LOG = "PrayerLog"
ADMIN_LOG = "AdminLog"
FAQ_SHEET = "FAQ"
ANNOUNCEMENTS_SHEET = "Announcements"


@dataclass
class FAQEntry:
    id: int  # row index in the sheet (header is row 0)
    question: str
    answer: str
    category: str = "general"
    keywords: List[str] = field(default_factory=list)
    active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_faq_rows(rows: List[List[str]]) -> List[FAQEntry]:
    """FAQ table rows → entries. Skips the header row and rows with fewer than 3 cells."""
    entries = []
    for index, row in enumerate(rows[1:], start=1):
        if len(row) < 3:
            continue
        keywords = row[3] if len(row) > 3 else ""
        entries.append(
            FAQEntry(
                id=index,
                question=row[0] or "",
                answer=row[1] or "",
                category=row[2] or "general",
                keywords=[k.strip() for k in keywords.split(",") if k.strip()],
                active=(row[4] if len(row) > 4 else "") != "false",
            )
        )
    return entries


def search_faq(entries: List[FAQEntry], query: str) -> Optional[FAQEntry]:
    """
    First active entry with a keyword contained in the query; otherwise the
    first active entry whose question and the query contain one another.
    """
    query_lower = (query or "").strip().lower()
    if not query_lower:
        return None

    active = [entry for entry in entries if entry.active]

    for entry in active:
        for keyword in entry.keywords:
            if keyword.lower() in query_lower:
                return entry

    for entry in active:
        question = entry.question.lower()
        if question and (query_lower in question or question in query_lower):
            return entry

    return None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SheetsStore:
    """Spreadsheet-backed logger and FAQ store."""

    def __init__(
        self,
        api_key: Optional[str],
        spreadsheet_id: Optional[str],
        timeout: float = 15.0,
        base_url: str = SHEETS_API_BASE,
    ):
        self.api_key = api_key
        self.spreadsheet_id = spreadsheet_id
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.api_key and self.spreadsheet_id)

    # ──────────────────────────────────────────────────────────
    # HTTP plumbing
    # ──────────────────────────────────────────────────────────

    def _url(self, suffix: str = "") -> str:
        return f"{self.base_url}/{self.spreadsheet_id}{suffix}"

    async def _append(self, sheet: str, row: List[Any]) -> Dict[str, Any]:
        if not self.is_configured():
            logger.debug(f"Google Sheets not configured, skipping {sheet} append")
            return {"success": False, "reason": "not_configured"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self._url(f"/values/{sheet}:append"),
                    params={"key": self.api_key, "valueInputOption": "RAW"},
                    json={"values": [row], "majorDimension": "ROWS"},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error appending to {sheet}: {e}")
            return {"success": False, "error": str(e)}

        logger.info(f"Row appended to {sheet}")
        return {"success": True, "data": data}

    async def _read(self, sheet: str) -> List[List[str]]:
        """Rows of a sheet (header included). Raises httpx.HTTPError or ValueError."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self._url(f"/values/{sheet}"), params={"key": self.api_key})
            response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"Unexpected {sheet} response: {type(body).__name__}")
        values = body.get("values", [])
        if not isinstance(values, list):
            raise ValueError(f"Unexpected {sheet} values: {type(values).__name__}")
        return [row for row in values if isinstance(row, list)]

    # ──────────────────────────────────────────────────────────
    # Logs
    # ──────────────────────────────────────────────────────────

    async def log_message(
        self,
        number: str,
        text: str,
        message_type: str = "text",
        reply: str = "",
        is_admin: bool = False,
        source: str = "whatsapp",
    ) -> Dict[str, Any]:
        row = [_now_iso(), number or "", text or "", message_type or "", reply or "",
               "Yes" if is_admin else "No", source or "whatsapp"]
        return await self._append(MESSAGE_LOG, row)

    async def log_prayer_request(
        self,
        number: str,
        city: str,
        source: str = "",
        success: bool = True,
        error: str = "",
    ) -> Dict[str, Any]:
        row = [_now_iso(), number or "", city or "", source or "",
               "Success" if success else "Failed", error or ""]
        return await self._append(PRAYER_LOG, row)

    async def log_admin_action(
        self,
        admin: str,
        action: str,
        details: str = "",
        success: bool = True,
        error: str = "",
    ) -> Dict[str, Any]:
        row = [_now_iso(), admin or "", action or "", details or "",
               "Success" if success else "Failed", error or ""]
        return await self._append(ADMIN_LOG, row)

    # ──────────────────────────────────────────────────────────
    # Read-only tables
    # ──────────────────────────────────────────────────────────

    async def get_faq(self) -> List[FAQEntry]:
        if not self.is_configured():
            return []
        try:
            entries = parse_faq_rows(await self._read(FAQ_SHEET))
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching FAQ data: {e}")
            return []
        logger.info(f"Loaded {len(entries)} FAQ entries")
        return entries

    async def search_faq(self, query: str) -> Optional[FAQEntry]:
        return search_faq(await self.get_faq(), query)

    async def get_announcements(self) -> List[Dict[str, Any]]:
        if not self.is_configured():
            return []
        try:
            rows = await self._read(ANNOUNCEMENTS_SHEET)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching announcements: {e}")
            return []

        templates = []
        for index, row in enumerate(rows[1:], start=1):
            if len(row) < 2:
                continue
            templates.append({
                "id": index,
                "title": row[0] or "",
                "content": row[1] or "",
                "category": (row[2] if len(row) > 2 else "") or "general",
                "active": (row[3] if len(row) > 3 else "") != "false",
            })
        return templates

    async def get_usage_stats(self) -> Dict[str, Any]:
        """Totals over MessageLog: all rows, today's rows, unique users, per-type counts."""
        if not self.is_configured():
            return {"success": False, "reason": "not_configured"}
        try:
            rows = await self._read(MESSAGE_LOG)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error getting usage stats: {e}")
            return {"success": False, "error": str(e)}

        if not rows:
            return {"success": False, "reason": "no_data"}

        today = datetime.now(timezone.utc).date().isoformat()
        today_count = 0
        users = set()
        types: Counter = Counter()
        for row in rows[1:]:
            if len(row) < 4:
                continue
            if row[0].startswith(today):
                today_count += 1
            if row[1]:
                users.add(row[1])
            if row[3]:
                types[row[3]] += 1

        return {
            "success": True,
            "stats": {
                "totalMessages": len(rows) - 1,
                "todayMessages": today_count,
                "uniqueUsers": len(users),
                "messageTypes": dict(types),
            },
        }

    async def test_connection(self) -> Dict[str, Any]:
        """Fetch spreadsheet metadata; used by /api/sheets/test."""
        if not self.is_configured():
            return {"success": False, "reason": "not_configured"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self._url(), params={"key": self.api_key})
                response.raise_for_status()
            info = response.json()
            if not isinstance(info, dict):
                raise ValueError(f"Unexpected spreadsheet metadata: {type(info).__name__}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Google Sheets connection test failed: {e}")
            return {"success": False, "error": str(e)}

        return {
            "success": True,
            "title": info.get("properties", {}).get("title", ""),
            "sheets": [s.get("properties", {}).get("title", "") for s in info.get("sheets", [])],
        }
