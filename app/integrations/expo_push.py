from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from app.config import settings


class ExpoPushClient:
    """Push notification sending via the Expo push service."""

    def __init__(self, url: str | None = None, access_token: str | None = None, timeout: float = 20.0):
        self.url = url or str(settings.expo_push_url)
        token = settings.expo_access_token.get_secret_value() if settings.expo_access_token else None
        self.access_token = access_token or token
        self.timeout = timeout

    async def send(
        self,
        to: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not to:
            return {"status": "failed", "error": "Missing push token", "to": to}

        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        payload = {"to": to, "title": title, "body": body, "sound": "default", "data": data or {}}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, headers=headers, json=payload)
                response.raise_for_status()
                ticket = response.json().get("data") or {}
        except (httpx.HTTPError, ValueError) as exc:
            return {"status": "failed", "error": str(exc), "to": to}

        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") == "error":
            return {"status": "failed", "error": ticket.get("message", "Expo rejected push"), "to": to}
        return {"status": "sent", "ticket_id": ticket.get("id"), "to": to}
