"""
Administrative use cases — key import hand-off, identity creation,
configuration check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.core.models.settings import Settings
from issuerctl.core.observability.health import SystemHealth, reachability
from issuerctl.core.services.database import probe_cache, probe_database
from issuerctl.core.services.issuer_api import ApiResponse, IssuerApiClient

logger = logging.getLogger(__name__)


# ── Import key ──────────────────────────────────────────────────


@dataclass
class ImportKeyResult:
    """Where the keystore is and the command that completes the import."""

    keystore: Path
    created: bool
    command: str
    working_directory: Path

    def to_dict(self) -> dict:
        return {
            "keystore": str(self.keystore),
            "created": self.created,
            "command": self.command,
            "working_directory": str(self.working_directory),
        }


def import_key(settings: Settings, key: str) -> ImportKeyResult:
    """Prepare the local keystore and return the import command.

    The key itself is not written: the platform's own key-management
    target does that when the operator runs the returned command.

    Raises:
        ValueError: If ``key`` is empty. Nothing is touched in that case.
    """
    key = (key or "").strip()
    if not key:
        raise ValueError("A private key is required")

    home = settings.installation_home()
    keystore = home.keystore_file
    created = False
    if not keystore.exists():
        keystore.parent.mkdir(parents=True, exist_ok=True)
        keystore.write_text("[]\n", encoding="utf-8")
        created = True
        logger.info("Created empty keystore %s", keystore)

    return ImportKeyResult(
        keystore=keystore,
        created=created,
        command=f"make private_key={key} import-private-key-to-kms",
        working_directory=home.source_tree,
    )


# ── Create identity ─────────────────────────────────────────────


@dataclass
class IdentityResult:
    """Raw outcome of the identity-creation call."""

    response: ApiResponse | None = None
    payload: dict = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None and self.response.ok

    def to_dict(self) -> dict:
        result: dict = {"ok": self.ok, "payload": self.payload}
        if self.error:
            result["error"] = self.error
        if self.response:
            result["response"] = self.response.to_dict()
        return result


def create_identity(settings: Settings, client: IssuerApiClient | None = None) -> IdentityResult:
    """POST the default DID metadata to the running API, once.

    URL and credentials come from the rendered environment file. A
    failed call is reported as is; no retry, and no attempt to start
    the platform unit.
    """
    ident = settings.identity
    payload = {
        "method": ident.method,
        "blockchain": ident.blockchain,
        "network": ident.network,
    }
    result = IdentityResult(payload={"didMetadata": payload})

    if client is None:
        env_file = settings.installation_home().env_file
        try:
            client = IssuerApiClient.from_env_file(env_file, timeout=settings.api.timeout)
        except FileNotFoundError:
            result.error = f"Configuration file not found: {env_file}"
            return result

    response = client.create_identity(payload)
    result.response = response
    if not response.ok:
        result.error = f"Identity creation failed: {response.error}"
        logger.warning("POST %s failed: %s", response.url, response.error)
    return result


# ── Check config ────────────────────────────────────────────────


@dataclass
class ConfigCheckResult:
    """Env file presence plus database and cache reachability."""

    env_file: Path | None = None
    env_file_exists: bool = False
    health: SystemHealth | None = None
    error: str | None = None

    @property
    def database_reachable(self) -> bool:
        component = self.health.get("database") if self.health else None
        return bool(component and component.healthy)

    @property
    def cache_reachable(self) -> bool:
        component = self.health.get("cache") if self.health else None
        return bool(component and component.healthy)

    def to_dict(self) -> dict:
        result: dict = {
            "env_file": str(self.env_file) if self.env_file else None,
            "env_file_exists": self.env_file_exists,
        }
        if self.error:
            result["error"] = self.error
        if self.health:
            result["database_reachable"] = self.database_reachable
            result["cache_reachable"] = self.cache_reachable
            result["health"] = self.health.to_dict()
        return result


def check_config(settings: Settings, registry: AdapterRegistry) -> ConfigCheckResult:
    """Verify the env file, then probe database and cache independently.

    A missing env file ends the check before any probe runs.
    """
    env_file = settings.installation_home().env_file
    result = ConfigCheckResult(env_file=env_file)

    if not env_file.is_file():
        result.error = f"Configuration file not found: {env_file}"
        return result
    result.env_file_exists = True

    health = SystemHealth()
    db = settings.database
    ok, detail = probe_database(db, registry)
    health.add(reachability("database", ok, f"{db.host}:{db.port}", detail))

    cache = settings.cache
    ok, detail = probe_cache(cache, registry)
    health.add(reachability("cache", ok, f"{cache.host}:{cache.port}", detail))

    result.health = health
    return result
