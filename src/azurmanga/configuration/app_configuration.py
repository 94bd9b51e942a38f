from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from azurmanga.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_LISTING_URL = "https://wiki.biligame.com/blhx/%E4%B8%80%E6%A0%BC%E6%BC%AB%E7%94%BB"
DEFAULT_BASE_URL = "https://wiki.biligame.com"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36"
)
STORAGE_BACKENDS = ("memory", "sqlite")


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes
    dictionary-like access helpers plus typed shortcuts for every option the
    bot reads. Missing keys (or a missing file) fall back to defaults.
    Uses fcntl file locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                if not isinstance(data, dict):
                    logger.warning("[APP CONFIGURATION] %s does not contain a mapping; using defaults", self.config_path)
                    return {}
                return data
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def show_info(self) -> bool:
        """Whether the caption line is sent before the image. Default False."""
        return _as_bool(self._data.get("show_info"), False)

    @property
    def listing_url(self) -> str:
        return str(self._section("scraper").get("listing_url") or DEFAULT_LISTING_URL)

    @property
    def base_url(self) -> str:
        """Origin joined with the relative ``href`` of each listing block."""
        return str(self._section("scraper").get("base_url") or DEFAULT_BASE_URL)

    @property
    def embed_images(self) -> bool:
        """Download and base64-embed each image during the refresh. Default True."""
        return _as_bool(self._section("scraper").get("embed_images"), True)

    @property
    def abort_on_item_error(self) -> bool:
        """Abort the whole refresh when a single listing block fails. Default False.

        When False, failed blocks are logged and skipped and the remaining
        items are still stored.
        """
        return _as_bool(self._section("scraper").get("abort_on_item_error"), False)

    @property
    def http_timeout(self) -> float:
        """Total timeout in seconds applied to every HTTP request. Default 30."""
        try:
            return float(self._section("http").get("timeout_seconds", 30.0))
        except (TypeError, ValueError):
            return 30.0

    @property
    def user_agent(self) -> str:
        return str(self._section("http").get("user_agent") or DEFAULT_USER_AGENT)

    @property
    def storage_backend(self) -> str:
        """``memory`` or ``sqlite``; unknown values fall back to ``sqlite``."""
        value = str(self._section("storage").get("backend", "sqlite")).strip().lower()
        if value not in STORAGE_BACKENDS:
            logger.warning("[APP CONFIGURATION] Unknown storage backend %r; using sqlite", value)
            return "sqlite"
        return value

    @property
    def database_path(self) -> Path:
        return Path(self._section("storage").get("database_path") or "./data/manga.db").resolve()


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
