# app/core/exotel_client.py
"""
Exotel REST client.

Provides async:
 - list_calls(page_size=50) -> list of raw call dicts (empty on failure)
 - fetch_call_details(call_sid) -> normalized call dict or None on failure
 - place_outbound_call(to_number) -> provider response JSON
 - open_recording(url) -> streamed httpx.Response (caller closes it)
 - download_recording(url, dest_path) -> number of bytes written

All requests use HTTP basic auth with the account's API key / token.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.utils.dates import iso_or_none, now_iso

logger = logging.getLogger("call-center.core.exotel")


def normalize_call(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map an Exotel `Call` object onto the stored call shape."""
    sid = raw.get("Sid")
    recording_url = raw.get("RecordingUrl")
    return {
        "sid": sid,
        "from_number": raw.get("From") or raw.get("from"),
        "to_number": raw.get("To") or raw.get("to"),
        "status": raw.get("Status") or raw.get("status"),
        "start_time": iso_or_none(raw.get("StartTime")),
        "end_time": iso_or_none(raw.get("EndTime")),
        "duration": str(raw["Duration"]) if raw.get("Duration") is not None else None,
        "direction": raw.get("Direction") or raw.get("direction"),
        "recordings": [{"sid": sid, "recording_url": recording_url, "created_at": now_iso()}] if recording_url else [],
    }


class ExotelClient:
    def __init__(self, settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.account_sid = settings.EXOTEL_SID
        self.base_url = settings.EXOTEL_BASE_URL.rstrip("/")
        self._auth = httpx.BasicAuth(settings.EXOTEL_USER or "", settings.EXOTEL_TOKEN or "")
        self._http = httpx.AsyncClient(auth=self._auth, timeout=settings.HTTP_TIMEOUT_SECONDS, transport=transport)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/v1/Accounts/{self.account_sid}/{path}"

    async def aclose(self) -> None:
        await self._http.aclose()

    async def list_calls(self, page_size: int = 50) -> List[Dict[str, Any]]:
        try:
            resp = await self._http.get(self._url("Calls.json"), params={"PageSize": page_size})
            resp.raise_for_status()
            body = resp.json()
            if not isinstance(body, dict):
                raise ValueError("unexpected call list body")
            calls = body.get("Calls") or []
            if not isinstance(calls, list):
                raise ValueError("Calls is not a list")
            return [c for c in calls if isinstance(c, dict)]
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error fetching calls: %s", exc)
            return []

    async def fetch_call_details(self, call_sid: str) -> Optional[Dict[str, Any]]:
        try:
            resp = await self._http.get(self._url(f"Calls/{call_sid}.json"))
            resp.raise_for_status()
            body = resp.json()
            raw = body.get("Call") if isinstance(body, dict) else None
            if not isinstance(raw, dict):
                raise ValueError("response has no Call object")
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error fetching call details for %s: %s", call_sid, exc)
            return None
        return normalize_call(raw)

    async def place_outbound_call(self, to_number: str) -> Dict[str, Any]:
        """Connect `to_number` to the configured call flow. Raises httpx.HTTPError on failure."""
        form = {
            "From": self.settings.EXOTEL_NUMBER or "",
            "To": to_number,
            "CallerId": self.settings.EXOTEL_NUMBER or "",
            "CallFlowSid": self.settings.CALLFLOW_SID or "",
        }
        resp = await self._http.post(self._url("Calls/connect.json"), data=form)
        resp.raise_for_status()
        return resp.json()

    async def open_recording(self, url: str) -> httpx.Response:
        req = self._http.build_request("GET", url)
        resp = await self._http.send(req, stream=True)
        if resp.is_error:
            await resp.aclose()
            resp.raise_for_status()
        return resp

    async def download_recording(self, url: str, dest_path: str) -> int:
        written = 0
        async with self._http.stream("GET", url) as resp:
            resp.raise_for_status()
            with open(dest_path, "wb") as fh:
                async for chunk in resp.aiter_bytes():
                    fh.write(chunk)
                    written += len(chunk)
        return written
