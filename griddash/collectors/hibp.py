"""Have I Been Pwned breach lookup client.

One GET per configured account against the breached-account endpoint. When
the widget has no ``since`` boundary the truncated (name-only) response is
requested; full bodies are only needed for date filtering.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from griddash.models import FetchError, Record

logger = logging.getLogger(__name__)

API_URL = "https://haveibeenpwned.com/api/breachedaccount/"
API_VERSION = "application/vnd.haveibeenpwned.v2+json"
CLIENT_TIMEOUT_SECONDS = 2.0
USER_AGENT = "griddash"


def full_url(account: str, truncated: bool) -> str:
    flag = "true" if truncated else "false"
    return f"{API_URL}{quote(account, safe='')}?truncateResponse={flag}"


def parse_response_body(account: str, body: bytes) -> list[dict[str, Any]]:
    # An empty body means the account has no breaches.
    if not body.strip():
        return []

    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise FetchError(f"{account}: invalid JSON from breach lookup: {exc}") from exc

    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise FetchError(f"{account}: breach lookup returned an unexpected payload")
    return payload


def breach_records(account: str, breaches: list[dict[str, Any]]) -> list[Record]:
    records = []
    for breach in breaches:
        records.append(
            Record(
                title=str(breach.get("Title") or breach.get("Name") or "unknown breach"),
                timestamp=breach.get("BreachDate"),
                group=account,
                detail=str(breach.get("Domain") or ""),
            )
        )
    return records


class HibpClient:
    def __init__(
        self,
        timeout: float = CLIENT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport

    def fetch_account(self, client: httpx.Client, account: str, truncated: bool) -> list[dict[str, Any]]:
        try:
            response = client.get(full_url(account, truncated))
        except httpx.HTTPError as exc:
            raise FetchError(f"{account}: {exc.__class__.__name__}: {exc}") from exc

        # The service answers 404 for accounts it has never seen in a breach.
        if response.status_code == 404:
            return []
        if not response.is_success:
            raise FetchError(f"{account}: breach lookup returned HTTP {response.status_code}")
        return parse_response_body(account, response.content)

    def fetch(self, accounts: list[str], truncated: bool, timeout: float | None = None) -> dict[str, list[dict[str, Any]]]:
        """Fetch breaches for each account, keyed by account, in account order."""
        limit = self.timeout if timeout is None else min(timeout, self.timeout)
        results: dict[str, list[dict[str, Any]]] = {}
        with httpx.Client(
            timeout=limit,
            transport=self._transport,
            headers={"Accept": API_VERSION, "User-Agent": USER_AGENT},
        ) as client:
            for account in accounts:
                if not account:
                    continue
                results[account] = self.fetch_account(client, account, truncated)
                logger.debug("hibp %s: %d breaches", account, len(results[account]))
        return results
