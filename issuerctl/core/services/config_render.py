"""
Config materializer — render the environment file and resolver settings.

Pure templating over the home path and settings. Both files are owned
by this module and regenerated wholesale on every install run; other
components only read them. Values are not validated here: the default
API credentials are literals the operator must rotate after install.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from issuerctl.core.config.env_file import read_env_file, write_env_file
from issuerctl.core.errors import ConfigRenderError
from issuerctl.core.models.home import InstallationHome
from issuerctl.core.models.resolver import NetworkParameters, ResolverSettings
from issuerctl.core.models.settings import ApiSettings, Settings
from issuerctl.core.persistence.state_file import atomic_write

logger = logging.getLogger(__name__)

# Section comment → keys, in file order.
ENV_LAYOUT: list[tuple[str, list[str]]] = [
    ("Issuer node server", [
        "ISSUER_SERVER_URL",
        "ISSUER_SERVER_PORT",
        "ISSUER_DATABASE_URL",
        "ISSUER_REDIS_URL",
    ]),
    ("API authentication", [
        "ISSUER_API_AUTH_USER",
        "ISSUER_API_AUTH_PASSWORD",
    ]),
    ("KMS (local storage)", [
        "ISSUER_KMS_BJJ_PROVIDER",
        "ISSUER_KMS_ETH_PROVIDER",
        "ISSUER_KMS_SOL_PROVIDER",
        "ISSUER_KMS_PROVIDER_LOCAL_STORAGE_FILE_PATH",
    ]),
    ("Cache", ["ISSUER_CACHE_PROVIDER", "ISSUER_CACHE_URL"]),
    ("Circuits", ["ISSUER_CIRCUIT_PATH"]),
    ("Logs", ["ISSUER_LOG_LEVEL", "ISSUER_LOG_MODE"]),
    ("IPFS", ["ISSUER_IPFS_GATEWAY_URL"]),
    ("Resolver", ["ISSUER_RESOLVER_PATH"]),
    ("Schema cache", ["ISSUER_SCHEMA_CACHE"]),
]

# Every key the built executables read at startup.
REQUIRED_ENV_KEYS: list[str] = [key for _, keys in ENV_LAYOUT for key in keys]

RESOLVER_NETWORKS: dict[str, dict[str, dict]] = {
    "polygon": {
        "amoy": {
            "networkURL": "https://rpc-amoy.polygon.technology/",
            "chainID": 80002,
            "defaultGasLimit": 600000,
            "maxGasPrice": 1000000,
            "confirmationTimeout": "600s",
            "confirmationBlockCount": 5,
            "receiptTimeout": "600s",
            "minGasPrice": 0,
            "rpcResponseTimeout": "5s",
            "waitReceiptCycleTime": "30s",
            "waitBlockCycleTime": "30s",
            "contractAddress": "0x1a4cC30f2aA0377b0c3bc9848766D90cb4404124",
            "multicallAddress": "0xca11bde05977b3631167028862be2a173976ca11",
        },
        "main": {
            "networkURL": "https://polygon-rpc.com/",
            "chainID": 137,
            "defaultGasLimit": 600000,
            "maxGasPrice": 500000000000,
            "confirmationTimeout": "600s",
            "confirmationBlockCount": 50,
            "receiptTimeout": "600s",
            "minGasPrice": 30000000000,
            "rpcResponseTimeout": "5s",
            "waitReceiptCycleTime": "30s",
            "waitBlockCycleTime": "30s",
            "contractAddress": "0x624ce98D2d27b20b8f8d521723Df8fC4db71D79D",
            "multicallAddress": "0xca11bde05977b3631167028862be2a173976ca11",
        },
    },
    "ethereum": {
        "main": {
            "networkURL": "https://mainnet.infura.io/v3/YOUR_INFURA_KEY",
            "chainID": 1,
            "defaultGasLimit": 600000,
            "maxGasPrice": 50000000000,
            "confirmationTimeout": "600s",
            "confirmationBlockCount": 12,
            "receiptTimeout": "600s",
            "minGasPrice": 1000000000,
            "rpcResponseTimeout": "5s",
            "waitReceiptCycleTime": "30s",
            "waitBlockCycleTime": "30s",
            "contractAddress": "0x624ce98D2d27b20b8f8d521723Df8fC4db71D79D",
            "multicallAddress": "0xca11bde05977b3631167028862be2a173976ca11",
        },
    },
}


def render_environment(home: InstallationHome, settings: Settings) -> dict[str, str]:
    """Build the ordered EnvironmentConfig for ``home``."""
    api = settings.api
    cache_url = settings.cache.url
    return {
        "ISSUER_SERVER_URL": api.url,
        "ISSUER_SERVER_PORT": str(api.port),
        "ISSUER_DATABASE_URL": settings.database.dsn,
        "ISSUER_REDIS_URL": cache_url,
        "ISSUER_API_AUTH_USER": api.auth_user,
        "ISSUER_API_AUTH_PASSWORD": api.auth_password,
        "ISSUER_KMS_BJJ_PROVIDER": "localstorage",
        "ISSUER_KMS_ETH_PROVIDER": "localstorage",
        "ISSUER_KMS_SOL_PROVIDER": "localstorage",
        "ISSUER_KMS_PROVIDER_LOCAL_STORAGE_FILE_PATH": str(home.keys_dir),
        "ISSUER_CACHE_PROVIDER": "redis",
        "ISSUER_CACHE_URL": cache_url,
        "ISSUER_CIRCUIT_PATH": str(home.circuits_dir),
        "ISSUER_LOG_LEVEL": settings.platform_log_level,
        "ISSUER_LOG_MODE": settings.platform_log_mode,
        "ISSUER_IPFS_GATEWAY_URL": settings.ipfs_gateway_url,
        "ISSUER_RESOLVER_PATH": str(home.resolver_file),
        "ISSUER_SCHEMA_CACHE": "true",
    }


def format_environment(env: dict[str, str]) -> str:
    """Serialize an EnvironmentConfig as commented ``KEY=value`` lines.

    Keys outside ENV_LAYOUT are appended in their own section.
    """
    lines = ["# Issuer node configuration (generated by issuerctl, do not edit)"]
    placed: set[str] = set()

    for title, keys in ENV_LAYOUT:
        present = [k for k in keys if k in env]
        if not present:
            continue
        lines += ["", f"# {title}"]
        for key in present:
            lines.append(f"{key}={env[key]}")
            placed.add(key)

    extra = [k for k in env if k not in placed]
    if extra:
        lines += ["", "# Additional"]
        lines += [f"{key}={env[key]}" for key in extra]

    return "\n".join(lines) + "\n"


def render_resolver_settings() -> ResolverSettings:
    """Build the ResolverSettings document."""
    return {
        family: {
            network: NetworkParameters.model_validate(params)
            for network, params in networks.items()
        }
        for family, networks in RESOLVER_NETWORKS.items()
    }


def format_resolver_settings(resolver: ResolverSettings) -> str:
    """Serialize ResolverSettings as YAML, preserving key order."""
    document = {
        family: {
            network: params.model_dump(by_alias=True)
            for network, params in networks.items()
        }
        for family, networks in resolver.items()
    }
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)


def materialize(
    home: InstallationHome,
    settings: Settings,
) -> tuple[dict[str, str], ResolverSettings]:
    """Write both config artifacts, replacing any previous version.

    Raises:
        ConfigRenderError: If either file or the key directory cannot be written.
    """
    env = render_environment(home, settings)
    resolver = render_resolver_settings()

    try:
        write_env_file(home.env_file, format_environment(env))
        atomic_write(home.resolver_file, format_resolver_settings(resolver), prefix=".resolver_")
        home.keys_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigRenderError(f"Cannot write configuration under {home.root}: {e}") from e

    logger.info("Configuration written to %s", home.env_file)
    logger.info("Resolver settings written to %s", home.resolver_file)

    defaults = ApiSettings()
    if (settings.api.auth_user, settings.api.auth_password) == (
        defaults.auth_user,
        defaults.auth_password,
    ):
        logger.warning(
            "API credentials are the built-in defaults; rotate "
            "ISSUER_API_AUTH_USER/ISSUER_API_AUTH_PASSWORD in %s",
            home.env_file,
        )

    return env, resolver


def missing_env_keys(path: Path) -> list[str]:
    """Required keys absent from the env file at ``path``.

    An absent file is missing every key.
    """
    if not path.is_file():
        return list(REQUIRED_ENV_KEYS)
    present = read_env_file(path)
    return [key for key in REQUIRED_ENV_KEYS if key not in present]


def env_file_problem(path: Path) -> str:
    """Why the units cannot start against ``path``; empty when they can."""
    if not path.is_file():
        return f"Environment file not found: {path}"
    missing = missing_env_keys(path)
    if missing:
        return f"Environment file {path} is missing {', '.join(missing)}"
    return ""
