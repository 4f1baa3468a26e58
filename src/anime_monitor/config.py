"""
Configuration management module.
Loads config.toml once at startup and validates it with Pydantic.
"""

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel
from tomlkit import dumps as toml_dumps

from .logger import logger


class QBittorrentConfig(BaseModel):
    url: str = "http://localhost:8080"
    username: str = ""
    password: str = ""
    save_path: str = ""


class SourceConfig(BaseModel):
    search_url: str = ""
    title_pattern: str = ""  # Regex template, formatted with ep (e.g. "Show - {ep:02d}")
    user_agent: str = "anime-monitor/1.0 aiohttp"


class MonitorConfig(BaseModel):
    state_file: str = "data/episode.json"
    check_interval: int = 300  # Seconds between attempts (default: 5 minutes)
    http_timeout: int = 15  # Seconds per HTTP request
    continuous: bool = False  # Keep acquiring following episodes instead of stopping after one


class LogConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"  # Console log level: DEBUG, INFO, WARNING, ERROR, CRITICAL
    file_level: str = "INFO"  # File log level
    rotation: str = (
        "00:00"  # Log rotation time (e.g., "00:00" for midnight, "500 MB" for size-based)
    )
    retention: str = "1 week"  # How long to keep old logs
    dir: str = "logs"  # Empty string disables file logging


class ProxyConfig(BaseModel):
    """Configuration for proxy settings."""

    http: str = ""  # HTTP proxy URL (e.g., "http://127.0.0.1:7890")
    https: str = ""  # HTTPS proxy URL (e.g., "http://127.0.0.1:7890")


class UserConfig(BaseModel):
    qbittorrent: QBittorrentConfig = QBittorrentConfig()
    source: SourceConfig = SourceConfig()
    monitor: MonitorConfig = MonitorConfig()
    log: LogConfig = LogConfig()
    proxy: ProxyConfig = ProxyConfig()


class ConfigManager:
    def __init__(self, config_path: str = "config.toml"):
        self.config_path = Path(os.getcwd()) / config_path
        self._config: UserConfig = UserConfig()
        self._load_error: str | None = None

        self.reload()

    def _set_proxy_env(self) -> None:
        """Set proxy environment variables from configuration."""
        if self._config.proxy.http:
            os.environ["HTTP_PROXY"] = self._config.proxy.http
            logger.info(f"Set HTTP_PROXY to {self._config.proxy.http}")

        if self._config.proxy.https:
            os.environ["HTTPS_PROXY"] = self._config.proxy.https
            logger.info(f"Set HTTPS_PROXY to {self._config.proxy.https}")

    def reload(self) -> None:
        """Load configuration from file, writing a default file if none exists."""
        self._load_error = None
        if not self.config_path.exists():
            logger.info(f"Config file not found, writing defaults to {self.config_path}")
            self.save()
            return

        try:
            content = self.config_path.read_bytes()
            raw = tomllib.loads(content.decode("utf-8"))
            self._config = UserConfig.model_validate(raw)
            self._set_proxy_env()
        except Exception as e:
            self._load_error = str(e)
            logger.error(f"Failed to load configuration: {e}")

    @property
    def data(self) -> UserConfig:
        return self._config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            payload = self._config.model_dump()
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self.config_path.write_text(toml_dumps(payload), encoding="utf-8")
        except Exception as e:
            logger.error(f"Failed to save configuration: {e}")

    def validate(self) -> bool:
        """
        Validate that everything the monitor needs at startup is present.

        Required: qbittorrent url/username/password/save_path,
        source search_url and a title_pattern that formats with ``ep``,
        and positive monitor intervals.

        Returns:
            True if all required configuration is valid, False otherwise.
        """
        errors: list[str] = []

        if self._load_error:
            errors.append(f"Could not parse {self.config_path.name}: {self._load_error}")

        qb = self.qbittorrent
        if not qb.url:
            errors.append("qBittorrent URL is not configured in [qbittorrent] url.")
        if not qb.username:
            errors.append("qBittorrent username is not configured in [qbittorrent] username.")
        if not qb.password:
            errors.append("qBittorrent password is not configured in [qbittorrent] password.")
        if not qb.save_path:
            errors.append("Save directory is not configured in [qbittorrent] save_path.")

        if not self.source.search_url:
            errors.append("Search page is not configured in [source] search_url.")

        if not self.source.title_pattern:
            errors.append("Episode title pattern is not configured in [source] title_pattern.")
        else:
            try:
                self.source.title_pattern.format(ep=1)
            except (KeyError, IndexError, ValueError) as e:
                errors.append(
                    f"[source] title_pattern must only reference {{ep}}: {e!r}"
                )

        if self.monitor.check_interval <= 0:
            errors.append("[monitor] check_interval must be a positive number of seconds.")
        if self.monitor.http_timeout <= 0:
            errors.append("[monitor] http_timeout must be a positive number of seconds.")

        for e in errors:
            logger.error(f"Config Error: {e}")

        return len(errors) == 0

    @property
    def qbittorrent(self) -> QBittorrentConfig:
        return self.data.qbittorrent

    @property
    def source(self) -> SourceConfig:
        return self.data.source

    @property
    def monitor(self) -> MonitorConfig:
        return self.data.monitor

    @property
    def log(self) -> LogConfig:
        return self.data.log

    @property
    def proxy(self) -> ProxyConfig:
        return self.data.proxy
