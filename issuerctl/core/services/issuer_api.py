"""
Issuer platform HTTP API client.

Only two endpoints matter to the orchestrator: ``GET /status`` for
liveness and ``POST /v1/identities`` for identity creation. Calls never
raise; transport and HTTP errors come back as a failed ApiResponse.
No call is retried.
"""

from __future__ import annotations

import base64
import json
import logging
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from issuerctl.core.config.env_file import read_env_file

logger = logging.getLogger(__name__)

USER_AGENT = "issuerctl/1.0"


@dataclass
class ApiResponse:
    """Outcome of one API call."""

    ok: bool
    url: str
    status: int | None = None
    body: str = ""
    error: str = ""
    latency_ms: int = 0

    def json(self) -> Any:
        """The body parsed as JSON, or None when it is not JSON."""
        try:
            return json.loads(self.body)
        except ValueError:
            return None

    def to_dict(self) -> dict:
        parsed = self.json()
        return {
            "ok": self.ok,
            "url": self.url,
            "status": self.status,
            "body": parsed if parsed is not None else self.body,
            "error": self.error,
            "latency_ms": self.latency_ms,
        }


class IssuerApiClient:
    """Minimal client for the platform API."""

    def __init__(
        self,
        base_url: str,
        auth_user: str = "",
        auth_password: str = "",
        timeout: float = 5.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._auth = (auth_user, auth_password) if auth_user else None
        self.timeout = timeout

    @classmethod
    def from_env_file(cls, path: Path, timeout: float = 5.0) -> IssuerApiClient:
        """Build a client from the rendered environment file.

        Raises:
            FileNotFoundError: If the environment file does not exist.
        """
        env = read_env_file(path)
        return cls(
            base_url=env.get("ISSUER_SERVER_URL", "http://localhost:3001"),
            auth_user=env.get("ISSUER_API_AUTH_USER", ""),
            auth_password=env.get("ISSUER_API_AUTH_PASSWORD", ""),
            timeout=timeout,
        )

    def health(self) -> ApiResponse:
        """Liveness probe against ``/status``."""
        return self._request("GET", "/status")

    def create_identity(self, did_metadata: dict[str, str]) -> ApiResponse:
        """Create an identity with the given DID metadata."""
        return self._request(
            "POST",
            "/v1/identities",
            payload={"didMetadata": did_metadata},
            authenticated=True,
        )

    def _request(
        self,
        method: str,
        path: str,
        payload: dict | None = None,
        authenticated: bool = False,
    ) -> ApiResponse:
        url = f"{self.base_url}{path}"
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        data = None
        if payload is not None:
            data = json.dumps(payload).encode()
            headers["Content-Type"] = "application/json"
        if authenticated and self._auth:
            token = base64.b64encode(":".join(self._auth).encode()).decode()
            headers["Authorization"] = f"Basic {token}"

        req = urllib.request.Request(url, data=data, method=method, headers=headers)
        logger.debug("%s %s", method, url)
        start = time.monotonic()

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8", errors="replace")
                return ApiResponse(
                    ok=True,
                    url=url,
                    status=resp.getcode(),
                    body=body,
                    latency_ms=_elapsed(start),
                )
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            return ApiResponse(
                ok=False,
                url=url,
                status=e.code,
                body=body,
                error=f"HTTP {e.code} {e.reason}",
                latency_ms=_elapsed(start),
            )
        except (urllib.error.URLError, OSError) as e:
            reason = getattr(e, "reason", e)
            return ApiResponse(
                ok=False,
                url=url,
                error=str(reason)[:200],
                latency_ms=_elapsed(start),
            )


def _elapsed(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
