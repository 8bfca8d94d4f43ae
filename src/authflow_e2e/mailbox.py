"""Client for a Mailpit-compatible mailbox REST API.

Used by the external OTP provider to read verification emails sent by the
application under test.

Usage:
    client = MailboxClient("http://localhost:8025")
    msg = client.latest_for("qa.automation+20250101120000@example.com")
    if msg:
        print(msg.subject, msg.text)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


def _parse_created(value: str) -> datetime:
    if not value:
        return datetime.now()
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass
class MailAddress:
    address: str
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MailAddress:
        return cls(address=data.get("Address", ""), name=data.get("Name", ""))


@dataclass
class MessageSummary:
    """Summary of a message as returned by the list and search endpoints."""

    id: str
    to: list[MailAddress]
    subject: str
    snippet: str
    created: datetime

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageSummary:
        return cls(
            id=data.get("ID", ""),
            to=[MailAddress.from_dict(a) for a in (data.get("To") or [])],
            subject=data.get("Subject", ""),
            snippet=data.get("Snippet", ""),
            created=_parse_created(data.get("Created", "")),
        )

    def is_addressed_to(self, email: str) -> bool:
        return any(a.address.lower() == email.lower() for a in self.to)


@dataclass
class MessageList:
    total: int
    messages: list[MessageSummary]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageList:
        return cls(
            total=data.get("total", 0),
            messages=[MessageSummary.from_dict(m) for m in data.get("messages") or []],
        )


@dataclass
class Message:
    """Full message with body content."""

    id: str
    to: list[MailAddress]
    subject: str
    created: datetime
    text: str
    html: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            id=data.get("ID", ""),
            to=[MailAddress.from_dict(a) for a in (data.get("To") or [])],
            subject=data.get("Subject", ""),
            created=_parse_created(data.get("Created", "")),
            text=data.get("Text", ""),
            html=data.get("HTML", ""),
        )

    @property
    def body(self) -> str:
        return self.text or self.html

    def __repr__(self) -> str:
        return f"<Message id={self.id!r} subject={self.subject!r}>"


class MailboxClient:
    """Synchronous client for the mailbox API.

    Args:
        base_url: mailbox base URL; the API lives under ``/api/v1``
        username/password: optional basic-auth credentials
        timeout: request timeout in seconds
        transport: optional httpx transport (tests inject ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_url = f"{self.base_url}/api/v1"
        auth = (username, password) if username and password else None
        self._client = httpx.Client(timeout=timeout, auth=auth, transport=transport)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        response = self._client.request(method, f"{self.api_url}{endpoint}", **kwargs)
        response.raise_for_status()
        return response

    def list_messages(self, limit: int = 50, start: int = 0) -> MessageList:
        response = self._request("GET", "/messages", params={"limit": limit, "start": start})
        return MessageList.from_dict(response.json())

    def search(self, query: str, limit: int = 50) -> MessageList:
        """Search messages, e.g. ``to:user@example.com``."""
        response = self._request("GET", "/search", params={"query": query, "limit": limit})
        return MessageList.from_dict(response.json())

    def get_message(self, message_id: str) -> Message:
        response = self._request("GET", f"/message/{message_id}")
        return Message.from_dict(response.json())

    def clear(self) -> None:
        """Delete all messages in the mailbox."""
        self._request("DELETE", "/messages")

    def latest_for(self, email: str) -> Optional[Message]:
        """Newest message addressed to ``email``, or None."""
        results = self.search(f"to:{email}")
        candidates = [m for m in results.messages if m.is_addressed_to(email)]
        if not candidates:
            return None
        # the API lists newest first
        return self.get_message(candidates[0].id)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> MailboxClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
