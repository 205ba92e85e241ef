"""
Settings — orchestrator configuration.

Defaults reproduce a stock single-node install. Every field can be
overridden from issuerctl.yml; the home path can also come from
$ISSUERCTL_HOME or --home.
"""

from __future__ import annotations

import getpass

from pydantic import BaseModel, Field

from issuerctl.core.models.home import DEFAULT_HOME, InstallationHome


class DatabaseSettings(BaseModel):
    """PostgreSQL role and database owned by the issuer node."""

    host: str = "localhost"
    port: int = 5432
    name: str = "issuerdb"
    user: str = "issuer"
    password: str = "issuerpass"
    admin_user: str = "postgres"   # OS user that runs admin statements
    sslmode: str = "disable"

    @property
    def dsn(self) -> str:
        return (
            f"postgres://{self.user}:{self.password}@{self.host}:{self.port}"
            f"/{self.name}?sslmode={self.sslmode}"
        )


class CacheSettings(BaseModel):
    """Redis instance used as queue and cache."""

    host: str = "localhost"
    port: int = 6379
    db: int = 1

    @property
    def url(self) -> str:
        return f"redis://@{self.host}:{self.port}/{self.db}"


class ApiSettings(BaseModel):
    """The platform HTTP API."""

    host: str = "localhost"
    port: int = 3001
    auth_user: str = "admin"
    auth_password: str = "admin123"
    timeout: float = 5.0

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"


class IdentityDefaults(BaseModel):
    """DID metadata sent by create-identity."""

    method: str = "polygonid"
    blockchain: str = "polygon"
    network: str = "amoy"


class Settings(BaseModel):
    """Root orchestrator settings."""

    home: str = DEFAULT_HOME
    repo_url: str = "https://github.com/0xronaldo/Go-issuer-node.git"
    branch: str = "main"
    checkout_name: str = "IsureNode-docker"
    source_subdir: str = "Go-issuer-node"

    go_min_version: str = "1.22"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    identity: IdentityDefaults = Field(default_factory=IdentityDefaults)

    ipfs_gateway_url: str = "https://cloudflare-ipfs.com"
    platform_log_level: str = "0"
    platform_log_mode: str = "1"

    # ── Supervisor ───────────────────────────────────────────────
    unit_dir: str = "/etc/systemd/system"
    service_user: str = Field(default_factory=getpass.getuser)
    restart_sec: int = 5
    activate_on_install: bool = True

    # ── Lifecycle pauses (seconds) ───────────────────────────────
    restart_pause: float = 2.0
    start_settle: float = 3.0

    # ── Timeouts (seconds) ───────────────────────────────────────
    build_timeout: int = 1800
    migrate_timeout: int = 600
    package_timeout: int = 900

    def installation_home(self) -> InstallationHome:
        return InstallationHome.at(
            self.home,
            checkout_name=self.checkout_name,
            source_subdir=self.source_subdir,
        )
