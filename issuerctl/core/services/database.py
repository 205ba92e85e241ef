"""
Database initializer — role, database and schema migrations.

``provision`` issues the admin statements as the database admin OS
user; an "already exists" failure means an earlier run got there first
and is tolerated. ``migrate`` runs the platform's own migration
executable with the rendered environment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.core.config.env_file import read_env_file
from issuerctl.core.errors import DatabaseError, MigrationError
from issuerctl.core.models.home import InstallationHome
from issuerctl.core.models.settings import CacheSettings, DatabaseSettings, Settings

logger = logging.getLogger(__name__)

ALREADY_EXISTS = "already exists"


@dataclass
class StatementOutcome:
    """Result of one admin statement: created or exists."""

    name: str
    statement: str
    outcome: str
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "statement": self.statement,
            "outcome": self.outcome,
            "message": self.message,
        }


def provision_statements(db: DatabaseSettings) -> list[tuple[str, str]]:
    """The (name, SQL) pairs that create the issuer role and database."""
    return [
        ("create-role", f"CREATE USER {db.user} WITH PASSWORD '{db.password}';"),
        ("create-database", f"CREATE DATABASE {db.name} OWNER {db.user};"),
        ("grant", f"GRANT ALL PRIVILEGES ON DATABASE {db.name} TO {db.user};"),
    ]


def provision(settings: Settings, registry: AdapterRegistry) -> list[StatementOutcome]:
    """Create the role and database, tolerating ones that already exist.

    Raises:
        DatabaseError: On any failure other than "already exists".
    """
    db = settings.database
    logger.info("Provisioning database %s for role %s…", db.name, db.user)

    outcomes = []
    for name, sql in provision_statements(db):
        receipt = registry.run(
            f"database:{name}",
            "privileged",
            argv=["psql", "-c", sql],
            run_as=db.admin_user,
        )
        if receipt.ok:
            outcomes.append(StatementOutcome(name=name, statement=sql, outcome="created"))
            continue

        error = receipt.error or ""
        if ALREADY_EXISTS in error:
            logger.info("%s: %s", name, error.strip().splitlines()[-1])
            outcomes.append(
                StatementOutcome(name=name, statement=sql, outcome="exists", message=error)
            )
            continue

        raise DatabaseError(f"Database statement '{name}' failed", detail=error)

    return outcomes


def migrate(
    home: InstallationHome,
    settings: Settings,
    registry: AdapterRegistry,
) -> None:
    """Run the migration executable with the rendered environment.

    Raises:
        MigrationError: If the environment file is missing or the
            migration exits non-zero. Migrations are not retried.
    """
    try:
        env = read_env_file(home.env_file)
    except FileNotFoundError:
        raise MigrationError(
            f"Environment file not found: {home.env_file}",
            detail="Run the config step before migrating.",
        ) from None

    executable = home.binary("migrate")
    logger.info("Running database migrations…")
    receipt = registry.run(
        "database:migrate",
        "shell",
        cwd=str(home.source_tree),
        command=[str(executable)],
        env=env,
        timeout=settings.migrate_timeout,
    )
    if receipt.failed:
        code = receipt.return_code
        raise MigrationError(
            f"Migrations failed (exit code {code})" if code else "Migrations failed",
            detail=receipt.error or "",
        )
    logger.info("Migrations applied")


def probe_database(db: DatabaseSettings, registry: AdapterRegistry) -> tuple[bool, str]:
    """Whether the database server accepts connections."""
    receipt = registry.run(
        "probe:database",
        "shell",
        command=["pg_isready", "-h", db.host, "-p", str(db.port)],
        timeout=10,
    )
    return receipt.ok, (receipt.output if receipt.ok else receipt.error or "")


def probe_cache(cache: CacheSettings, registry: AdapterRegistry) -> tuple[bool, str]:
    """Whether the cache server answers PING."""
    receipt = registry.run(
        "probe:cache",
        "shell",
        command=["redis-cli", "-h", cache.host, "-p", str(cache.port), "ping"],
        timeout=10,
    )
    return receipt.ok, (receipt.output if receipt.ok else receipt.error or "")
