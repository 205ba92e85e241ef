"""
InstallationHome — the root of every file this tool generates.

The home is a strict tree. Nothing outside it is written except the
supervisor unit files, which the process supervisor owns.

    <root>/
        .env-issuer                 EnvironmentConfig
        resolvers_settings.yaml     ResolverSettings
        bin/                        BuildArtifacts
        keys/                       local key storage
        IsureNode-docker/           git checkout
            Go-issuer-node/         source tree
        .state/                     checkpoints, audit ledger, lock
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

DEFAULT_HOME = "~/.issuer-node"


class InstallationHome(BaseModel):
    """Resolved paths of one installation."""

    root: Path
    checkout_name: str = "IsureNode-docker"
    source_subdir: str = "Go-issuer-node"

    @classmethod
    def at(cls, root: str | Path, **kwargs) -> InstallationHome:
        """Build a home from a possibly user-relative path."""
        return cls(root=Path(root).expanduser().resolve(), **kwargs)

    @property
    def checkout_dir(self) -> Path:
        return self.root / self.checkout_name

    @property
    def source_tree(self) -> Path:
        return self.checkout_dir / self.source_subdir

    @property
    def bin_dir(self) -> Path:
        return self.root / "bin"

    @property
    def keys_dir(self) -> Path:
        return self.root / "keys"

    @property
    def keystore_file(self) -> Path:
        return self.keys_dir / "kms_localstorage_keys.json"

    @property
    def env_file(self) -> Path:
        return self.root / ".env-issuer"

    @property
    def resolver_file(self) -> Path:
        return self.root / "resolvers_settings.yaml"

    @property
    def circuits_dir(self) -> Path:
        return self.source_tree / "pkg" / "credentials" / "circuits"

    @property
    def state_dir(self) -> Path:
        return self.root / ".state"

    @property
    def state_file(self) -> Path:
        return self.state_dir / "install.json"

    @property
    def audit_file(self) -> Path:
        return self.state_dir / "audit.ndjson"

    @property
    def lock_file(self) -> Path:
        return self.state_dir / "issuerctl.lock"

    def binary(self, name: str) -> Path:
        """Path of a built executable."""
        return self.bin_dir / name

    def ensure(self) -> None:
        """Create the home root (idempotent)."""
        self.root.mkdir(parents=True, exist_ok=True)
