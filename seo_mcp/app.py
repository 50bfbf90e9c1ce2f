"""Application configuration: YAML settings, ``.env`` secrets, env overrides."""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from seo_mcp.constants import DEFAULT_USER_AGENT, ScoreWeights, SeoRules

logger = logging.getLogger(__name__)


@dataclass
class HttpSettings:
    timeout: float = 15
    user_agent: str = DEFAULT_USER_AGENT
    max_redirects: int = 10


@dataclass
class CacheSettings:
    max_entries: int = 100
    ttl_seconds: int = 900


@dataclass
class ServerSettings:
    name: str = "seo-mcp"
    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class Settings:
    rules: SeoRules = field(default_factory=SeoRules)
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    http: HttpSettings = field(default_factory=HttpSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    server: ServerSettings = field(default_factory=ServerSettings)
    pagespeed_api_key: str = ""
    gsc_credentials_path: str = ""
    dataforseo_login: str = ""
    dataforseo_password: str = ""
    log_level: str = "INFO"


# ------------------------------------------------------------------
# Loading
# ------------------------------------------------------------------

def _override(obj: Any, overrides: dict[str, Any], path: str) -> Any:
    """Return a copy of dataclass *obj* with *overrides* applied recursively."""
    changes: dict[str, Any] = {}
    names = {f.name for f in dataclasses.fields(obj)}
    for key, value in overrides.items():
        if key not in names:
            logger.warning("Unknown config key ignored: %s.%s", path, key)
            continue
        current = getattr(obj, key)
        if dataclasses.is_dataclass(current) and isinstance(value, dict):
            value = _override(current, value, f"{path}.{key}")
        elif isinstance(current, tuple) and isinstance(value, list):
            value = tuple(value)
        changes[key] = value
    return dataclasses.replace(obj, **changes)


def _load_yaml(config_path: str) -> dict[str, Any]:
    config_file = Path(config_path)
    if not config_file.exists():
        logger.warning("Config file not found: %s (using defaults)", config_path)
        return {}
    with open(config_file, "r", encoding="utf-8") as fh:
        config = yaml.safe_load(fh) or {}
    logger.info("Configuration loaded from %s", config_path)
    return config


def load_settings(
    config_path: str = "config/settings.yaml",
    env_path: str = ".env",
) -> Settings:
    """Build :class:`Settings` from YAML, then apply environment overrides.

    Recognised variables: ``PAGESPEED_API_KEY``, ``GSC_CREDENTIALS_PATH``,
    ``DATAFORSEO_LOGIN``, ``DATAFORSEO_PASSWORD``, ``MCP_TRANSPORT``,
    ``HOST``, ``PORT`` and ``MCP_LOG_LEVEL``.
    """
    env_file = Path(env_path)
    if env_file.exists():
        load_dotenv(env_file)
        logger.info("Loaded environment from %s", env_path)

    config = _load_yaml(config_path)
    settings = Settings()

    for section in ("rules", "weights", "http", "cache", "server"):
        overrides = config.get(section)
        if isinstance(overrides, dict):
            setattr(settings, section, _override(getattr(settings, section), overrides, section))

    api_cfg = config.get("api", {}) or {}
    settings.pagespeed_api_key = api_cfg.get("pagespeed_api_key", "") or ""
    settings.gsc_credentials_path = api_cfg.get("gsc_credentials_path", "") or ""
    settings.dataforseo_login = api_cfg.get("dataforseo_login", "") or ""
    settings.dataforseo_password = api_cfg.get("dataforseo_password", "") or ""
    settings.log_level = (config.get("logging", {}) or {}).get("level", settings.log_level)

    settings.pagespeed_api_key = os.getenv("PAGESPEED_API_KEY", settings.pagespeed_api_key)
    settings.gsc_credentials_path = os.getenv("GSC_CREDENTIALS_PATH", settings.gsc_credentials_path)
    settings.dataforseo_login = os.getenv("DATAFORSEO_LOGIN", settings.dataforseo_login)
    settings.dataforseo_password = os.getenv("DATAFORSEO_PASSWORD", settings.dataforseo_password)
    settings.server.transport = os.getenv("MCP_TRANSPORT", settings.server.transport).lower()
    settings.server.host = os.getenv("HOST", settings.server.host)
    port = os.getenv("PORT")
    if port:
        try:
            settings.server.port = int(port)
        except ValueError:
            logger.warning("Ignoring non-numeric PORT=%s", port)
    settings.log_level = os.getenv("MCP_LOG_LEVEL", settings.log_level).upper()

    if settings.server.transport not in ("stdio", "sse"):
        logger.warning("Unknown transport %r, falling back to stdio", settings.server.transport)
        settings.server.transport = "stdio"

    return settings


# ------------------------------------------------------------------
# Status
# ------------------------------------------------------------------

def get_status(settings: Settings, config_path: str = "config/settings.yaml") -> dict[str, dict[str, str]]:
    """Return configuration health of each component."""
    status: dict[str, dict[str, str]] = {}

    status["config"] = (
        {"status": "ok", "details": config_path}
        if Path(config_path).exists()
        else {"status": "warning", "details": "not found, using defaults"}
    )

    status["pagespeed"] = (
        {"status": "ok", "details": "API key configured (400 req/100s)"}
        if settings.pagespeed_api_key
        else {"status": "warning", "details": "no API key (25 req/100s)"}
    )

    creds = settings.gsc_credentials_path
    if creds and Path(creds).is_file():
        status["search_console"] = {"status": "ok", "details": creds}
    elif creds:
        status["search_console"] = {"status": "error", "details": f"file not found: {creds}"}
    else:
        status["search_console"] = {"status": "warning", "details": "GSC_CREDENTIALS_PATH not set"}

    status["dataforseo"] = (
        {"status": "ok", "details": f"login {settings.dataforseo_login}"}
        if settings.dataforseo_login and settings.dataforseo_password
        else {"status": "warning", "details": "DATAFORSEO_LOGIN / DATAFORSEO_PASSWORD not set"}
    )

    server = settings.server
    details = server.transport
    if server.transport == "sse":
        details += f" on {server.host}:{server.port}"
    status["server"] = {"status": "ok", "details": details}

    return status


def mask_secret(value: Optional[str]) -> str:
    if not value:
        return ""
    if len(value) <= 12:
        return "*" * len(value)
    return value[:8] + "..." + value[-4:]
