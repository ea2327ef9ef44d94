# Copyright (c) 2025 Stephen Clau

# This file is part of MC Status Panel.

# MC Status Panel is dual-licensed:

# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms

# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com

# SPDX-License-Identifier: AGPL-3.0-only OR Commercial

"""
Configuration module for MC Status Panel.

Everything is read from the environment:
- DISCORD_TOKEN and MC_ADDRESS are REQUIRED
- Status source, command visibility, registration scope and panel scope
  select the deployment flavour (one bot instead of many forks)
- Docker secrets support: reads from /run/secrets/* before env vars
- A local .env file is honoured for development
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Any
import os

from dotenv import load_dotenv
import structlog

logger = structlog.get_logger()

MIN_INTERVAL_SECONDS = 15


class StatusSourceKind(str, Enum):
    """Backend that supplies the current player counts."""

    RCON = "rcon"
    QUERY = "query"
    API = "api"
    PROBE = "probe"
    RELAY = "relay"


class CommandVisibility(str, Enum):
    """Who may run the slash commands."""

    PUBLIC = "public"
    ADMIN = "admin"


class RegistrationScope(str, Enum):
    """Where slash commands are synced."""

    GLOBAL = "global"
    GUILD = "guild"


class PanelScope(str, Enum):
    """What a panel location key identifies: one panel per channel or per guild."""

    CHANNEL = "channel"
    GUILD = "guild"


def _read_docker_secret(secret_name: str) -> Optional[str]:
    """
    Read a secret from Docker secrets location.

    Args:
        secret_name: Name of the secret (e.g., 'discord_token')

    Returns:
        Secret value or None if not found
    """
    secret_path = Path(f"/run/secrets/{secret_name}")

    if secret_path.exists():
        try:
            return secret_path.read_text().strip()
        except (IOError, OSError) as e:
            logger.warning("docker_secret_read_error", secret=secret_name, error=str(e))
            return None

    return None


def get_config_value(
    env_var: str,
    secret_name: Optional[str] = None,
    required: bool = False,
    default: Optional[str] = None,
) -> Optional[str]:
    """
    Get configuration value from Docker secrets or environment variables.

    Tries in order:
    1. Docker secret file at /run/secrets/{secret_name}
    2. Environment variable {env_var} (empty strings count as unset)
    3. Default value if provided
    4. Raise error if required and not found

    Args:
        env_var: Environment variable name (e.g., 'DISCORD_TOKEN')
        secret_name: Docker secret name. Defaults to env_var lowercased
        required: If True, raises ValueError when value not found
        default: Default value if not found in env or secrets

    Returns:
        Configuration value from secret, env var, or default

    Raises:
        ValueError: If required=True and value not found
    """
    if secret_name is None:
        secret_name = env_var.lower()

    secret_value = _read_docker_secret(secret_name)
    if secret_value is not None:
        logger.debug("config_value_loaded_from_secret", source="docker_secret", var=env_var)
        return secret_value

    env_value = os.getenv(env_var)
    if env_value is not None and env_value.strip() != "":
        logger.debug("config_value_loaded_from_env", source="environment", var=env_var)
        return env_value.strip()

    if default is not None:
        logger.debug("config_value_loaded_from_default", source="default", var=env_var)
        return default

    if required:
        raise ValueError(
            f"Required configuration value not found for '{env_var}'. "
            f"Checked: Docker secret '{secret_name}', environment variable '{env_var}'"
        )

    return None


def _safe_int(value: Any, field_name: str, default: int) -> int:
    """
    Safely convert value to int with proper type checking.

    Raises:
        ValueError: If conversion fails
    """
    if value is None:
        return default

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ValueError(f"Invalid integer for {field_name}: {value}")

    raise ValueError(f"Cannot convert {field_name} to int: {type(value).__name__}")


def _safe_float(value: Any, field_name: str, default: float) -> float:
    """
    Safely convert value to float with proper type checking.

    Raises:
        ValueError: If conversion fails
    """
    if value is None:
        return default

    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            raise ValueError(f"Invalid float for {field_name}: {value}")

    raise ValueError(f"Cannot convert {field_name} to float: {type(value).__name__}")


def _parse_enum(enum_cls: Any, value: Optional[str], field_name: str) -> Any:
    """Parse a case-insensitive enum value, raising ValueError with the allowed values."""
    try:
        return enum_cls((value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"Invalid {field_name} '{value}'. Must be one of: {allowed}")


@dataclass
class Config:
    """Main application configuration."""

    discord_token: str
    """Discord bot token."""

    mc_address: str
    """Public Minecraft address shown on the panel (host or host:port)."""

    mc_name: str = "Minecraft Server"
    """Display name used in the panel title and presence text."""

    application_id: Optional[int] = None
    """Discord application id (CLIENT_ID). Optional for discord.py."""

    # Panel links and artwork
    website_url: Optional[str] = None
    store_url: Optional[str] = None
    modpack_url: Optional[str] = None
    discord_invite_url: Optional[str] = None
    panel_thumbnail_url: Optional[str] = None
    panel_banner_url: Optional[str] = None

    # Scheduling
    status_update_seconds: int = 60
    """Panel refresh interval. Floored at 15 seconds."""

    presence_update_seconds: int = 60
    """Presence refresh interval. Floored at 15 seconds."""

    # Deployment flavour
    status_source: StatusSourceKind = StatusSourceKind.RCON
    command_visibility: CommandVisibility = CommandVisibility.PUBLIC
    registration_scope: RegistrationScope = RegistrationScope.GLOBAL
    panel_scope: PanelScope = PanelScope.CHANNEL
    guild_id: Optional[int] = None
    """Guild to sync commands to when registration_scope is 'guild'."""

    # RCON source
    rcon_host: Optional[str] = None
    rcon_port: int = 25575
    rcon_password: Optional[str] = None
    rcon_timeout: float = 6.0

    # Query / API / probe sources
    query_timeout: float = 5.0
    status_api_url: str = "https://api.mcsrvstat.us/3/{address}"

    # Relay source
    relay_channel_id: Optional[int] = None
    relay_max_age_seconds: int = 180

    # Persistence
    panel_state_file: Path = Path("panel_state.json")

    # Health check configuration
    health_check_host: str = "0.0.0.0"
    health_check_port: int = 3000

    # Logging configuration
    log_level: str = "info"
    log_format: str = "console"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.discord_token:
            raise ValueError("discord_token is REQUIRED (set DISCORD_TOKEN)")

        if not self.mc_address:
            raise ValueError("mc_address is REQUIRED (set MC_ADDRESS, host:port or domain)")

        if not isinstance(self.panel_state_file, Path):
            self.panel_state_file = Path(self.panel_state_file)

        self.status_update_seconds = max(MIN_INTERVAL_SECONDS, self.status_update_seconds)
        self.presence_update_seconds = max(MIN_INTERVAL_SECONDS, self.presence_update_seconds)

        if self.status_source is StatusSourceKind.RCON:
            if not self.rcon_host:
                raise ValueError("rcon_host is REQUIRED for the rcon status source (set RCON_HOST)")
            if not self.rcon_password:
                raise ValueError(
                    "rcon_password is REQUIRED for the rcon status source (set RCON_PASSWORD)"
                )

        if self.status_source is StatusSourceKind.RELAY and not self.relay_channel_id:
            raise ValueError(
                "relay_channel_id is REQUIRED for the relay status source (set RELAY_CHANNEL_ID)"
            )

        if self.registration_scope is RegistrationScope.GUILD and not self.guild_id:
            raise ValueError("guild_id is REQUIRED for guild registration (set GUILD_ID)")

        if not 1 <= self.rcon_port <= 65535:
            raise ValueError(f"Invalid RCON port: {self.rcon_port}")

        if not 1 <= self.health_check_port <= 65535:
            raise ValueError(
                f"Invalid health_check_port: {self.health_check_port}. Must be 1-65535"
            )

        if self.rcon_timeout <= 0 or self.query_timeout <= 0:
            raise ValueError("Timeouts must be > 0")

        valid_levels = {"debug", "info", "warning", "error"}
        if self.log_level.lower() not in valid_levels:
            raise ValueError(
                f"Invalid log_level '{self.log_level}'. Must be one of: {', '.join(sorted(valid_levels))}"
            )

        valid_formats = {"console", "json"}
        if self.log_format.lower() not in valid_formats:
            raise ValueError(
                f"Invalid log_format '{self.log_format}'. Must be one of: {', '.join(sorted(valid_formats))}"
            )

    @property
    def admin_only(self) -> bool:
        """True when commands are restricted to server managers."""
        return self.command_visibility is CommandVisibility.ADMIN

    @property
    def mc_host_port(self) -> tuple[str, int]:
        """Split mc_address into (host, port), defaulting to the Java port 25565."""
        host, _, port = self.mc_address.rpartition(":")
        if host and port.isdigit():
            return host, int(port)
        return self.mc_address, 25565


def _optional_int(env_var: str) -> Optional[int]:
    raw = get_config_value(env_var=env_var)
    if raw is None:
        return None
    return _safe_int(raw, env_var.lower(), 0)


def load_config(env_file: Optional[str] = ".env") -> Config:
    """
    Load configuration from environment variables (and an optional .env file).

    Priority order for each config value:
    1. Docker secret (tokens and passwords)
    2. Environment variable
    3. Hardcoded defaults

    Returns:
        Fully populated and validated Config object

    Raises:
        ValueError: If required config values are missing or malformed
    """
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)
        logger.debug("dotenv_loaded", path=env_file)

    discord_token = get_config_value(
        env_var="DISCORD_TOKEN",
        secret_name="discord_token",
        required=True,
    )

    mc_address = get_config_value(env_var="MC_ADDRESS", required=True)

    status_source = _parse_enum(
        StatusSourceKind, get_config_value(env_var="STATUS_SOURCE", default="rcon"), "STATUS_SOURCE"
    )

    rcon_host = get_config_value(env_var="RCON_HOST")
    rcon_password = get_config_value(env_var="RCON_PASSWORD", secret_name="rcon_password")
    if status_source is StatusSourceKind.RCON:
        rcon_host = get_config_value(env_var="RCON_HOST", required=True)
        rcon_password = get_config_value(
            env_var="RCON_PASSWORD", secret_name="rcon_password", required=True
        )

    health_check_port = _safe_int(
        get_config_value(
            env_var="PORT",
            default=get_config_value(env_var="HEALTH_CHECK_PORT", default="3000"),
        ),
        "health_check_port",
        3000,
    )

    config = Config(
        discord_token=discord_token or "",
        mc_address=mc_address or "",
        mc_name=get_config_value(env_var="MC_NAME", default="Minecraft Server") or "Minecraft Server",
        application_id=_optional_int("CLIENT_ID"),
        website_url=get_config_value(env_var="WEBSITE_URL"),
        store_url=get_config_value(env_var="STORE_URL"),
        modpack_url=get_config_value(env_var="MODPACK_URL"),
        discord_invite_url=get_config_value(env_var="DISCORD_INVITE_URL"),
        panel_thumbnail_url=get_config_value(env_var="PANEL_THUMBNAIL_URL"),
        panel_banner_url=get_config_value(env_var="PANEL_BANNER_URL"),
        status_update_seconds=_safe_int(
            get_config_value(env_var="STATUS_UPDATE_SECONDS", default="60"),
            "status_update_seconds",
            60,
        ),
        presence_update_seconds=_safe_int(
            get_config_value(env_var="PRESENCE_UPDATE_SECONDS", default="60"),
            "presence_update_seconds",
            60,
        ),
        status_source=status_source,
        command_visibility=_parse_enum(
            CommandVisibility,
            get_config_value(env_var="COMMAND_VISIBILITY", default="public"),
            "COMMAND_VISIBILITY",
        ),
        registration_scope=_parse_enum(
            RegistrationScope,
            get_config_value(env_var="REGISTRATION_SCOPE", default="global"),
            "REGISTRATION_SCOPE",
        ),
        panel_scope=_parse_enum(
            PanelScope,
            get_config_value(env_var="PANEL_SCOPE", default="channel"),
            "PANEL_SCOPE",
        ),
        guild_id=_optional_int("GUILD_ID"),
        rcon_host=rcon_host,
        rcon_port=_safe_int(get_config_value(env_var="RCON_PORT", default="25575"), "rcon_port", 25575),
        rcon_password=rcon_password,
        rcon_timeout=_safe_float(get_config_value(env_var="RCON_TIMEOUT", default="6"), "rcon_timeout", 6.0),
        query_timeout=_safe_float(
            get_config_value(env_var="QUERY_TIMEOUT", default="5"), "query_timeout", 5.0
        ),
        status_api_url=get_config_value(
            env_var="STATUS_API_URL", default="https://api.mcsrvstat.us/3/{address}"
        )
        or "https://api.mcsrvstat.us/3/{address}",
        relay_channel_id=_optional_int("RELAY_CHANNEL_ID"),
        relay_max_age_seconds=_safe_int(
            get_config_value(env_var="RELAY_MAX_AGE_SECONDS", default="180"),
            "relay_max_age_seconds",
            180,
        ),
        panel_state_file=Path(
            get_config_value(env_var="PANEL_STATE_FILE", default="panel_state.json") or "panel_state.json"
        ),
        health_check_host=get_config_value(env_var="HEALTH_CHECK_HOST", default="0.0.0.0") or "0.0.0.0",
        health_check_port=health_check_port,
        log_level=get_config_value(env_var="LOG_LEVEL", default="info") or "info",
        log_format=get_config_value(env_var="LOG_FORMAT", default="console") or "console",
    )

    logger.info(
        "config_loaded",
        status_source=config.status_source.value,
        command_visibility=config.command_visibility.value,
        registration_scope=config.registration_scope.value,
        panel_scope=config.panel_scope.value,
    )
    return config
