"""Process-wide configuration store for the harness.

Values are resolved through immutable layers, highest precedence first:

1. explicit overrides (``--cfg key=value`` on the pytest command line, or the
   ``overrides`` argument of :func:`init_settings`)
2. process environment: the exact key (``base.url``) or its prefixed form
   (``AUTHFLOW_BASE_URL``)
3. the properties file (``config/config.properties`` by default, or the path
   in ``AUTHFLOW_CONFIG_FILE``)
4. the default supplied by the caller

The store is built once per process and never mutated afterwards. Overrides
may only be injected before the first browser session exists.
"""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional
from urllib.parse import urljoin

from authflow_e2e.exceptions import MissingConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "config.properties"
CONFIG_PATH_ENV = "AUTHFLOW_CONFIG_FILE"
ENV_PREFIX = "AUTHFLOW_"

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}

_MISSING = object()


def parse_properties(text: str) -> Dict[str, str]:
    """Parse ``key=value`` lines; ``#`` and ``!`` start comments."""
    values: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or line.startswith("!"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
            value = value[1:-1]
        values[key.strip()] = value
    return values


def load_properties(path: Path) -> Dict[str, str]:
    if not path.exists():
        logger.warning(f"Config file not found: {path} (continuing with overrides and defaults)")
        return {}
    return parse_properties(path.read_text(encoding="utf-8"))


def env_name(key: str) -> str:
    """Environment variable name for a dotted config key."""
    return ENV_PREFIX + key.upper().replace(".", "_").replace("-", "_")


class ConfigStore:
    """Immutable key/value configuration with typed accessors."""

    def __init__(
        self,
        file_values: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, str]] = None,
        environ: Optional[Mapping[str, str]] = None,
        source: Optional[Path] = None,
    ) -> None:
        self._overrides = MappingProxyType(dict(overrides or {}))
        self._environ = MappingProxyType(dict(environ or {}))
        self._file = MappingProxyType(dict(file_values or {}))
        self.source = source

    @classmethod
    def load(
        cls,
        path: Optional[Path | str] = None,
        overrides: Optional[Mapping[str, str]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ConfigStore":
        environ = dict(os.environ if environ is None else environ)
        if path is None:
            path = environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH
        path = Path(path)
        store = cls(load_properties(path), overrides=overrides, environ=environ, source=path)
        logger.debug(f"Loaded configuration from {path} ({len(store._file)} keys, {len(store._overrides)} overrides)")
        return store

    def with_overrides(self, **overrides: str) -> "ConfigStore":
        """Return a new store with extra overrides; dots may be spelled as ``__``."""
        merged = dict(self._overrides)
        merged.update({key.replace("__", "."): str(value) for key, value in overrides.items()})
        return ConfigStore(self._file, overrides=merged, environ=self._environ, source=self.source)

    def without_overrides(self) -> "ConfigStore":
        return ConfigStore(self._file, environ=self._environ, source=self.source)

    # ---- raw lookup ------------------------------------------------------------
    def _lookup(self, key: str) -> Optional[str]:
        if key in self._overrides:
            return self._overrides[key]
        if key in self._environ:
            return self._environ[key]
        prefixed = env_name(key)
        if prefixed in self._environ:
            return self._environ[prefixed]
        return self._file.get(key)

    def has(self, key: str) -> bool:
        return self._lookup(key) is not None

    def get(self, key: str, default: object = _MISSING) -> str:
        value = self._lookup(key)
        if value is not None:
            return value
        if default is _MISSING:
            raise MissingConfig(key)
        return default  # type: ignore[return-value]

    def get_int(self, key: str, default: int) -> int:
        value = self._lookup(key)
        if value is None:
            return default
        try:
            return int(value.strip())
        except ValueError:
            logger.warning(f"Config key '{key}' is not an integer ({value!r}); using {default}")
            return default

    def get_float(self, key: str, default: float) -> float:
        value = self._lookup(key)
        if value is None:
            return default
        try:
            return float(value.strip())
        except ValueError:
            logger.warning(f"Config key '{key}' is not a number ({value!r}); using {default}")
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        value = self._lookup(key)
        if value is None:
            return default
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        logger.warning(f"Config key '{key}' is not a boolean ({value!r}); using {default}")
        return default

    def keys(self) -> Iterable[str]:
        return sorted(set(self._file) | set(self._overrides))

    def as_dict(self) -> Dict[str, str]:
        """Resolved view of every key known from the file or overrides."""
        return {key: self.get(key) for key in self.keys()}

    # ---- application -----------------------------------------------------------
    @property
    def base_url(self) -> str:
        return self.get("base.url")

    def url(self, path: str) -> str:
        """Return an absolute URL for the provided path."""
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    @property
    def environment(self) -> str:
        return self.get("app.environment", "Development")

    # ---- browser ---------------------------------------------------------------
    @property
    def browser(self) -> str:
        return self.get("browser", "chrome").strip().lower()

    @property
    def browser_channel(self) -> Optional[str]:
        return self.get("browser.channel", "") or None

    @property
    def headless(self) -> bool:
        return self.get_bool("headless", True)

    @property
    def maximize_window(self) -> bool:
        return self.get_bool("maximize.window", True)

    @property
    def incognito(self) -> bool:
        return self.get_bool("incognito", False)

    @property
    def auto_install_browsers(self) -> bool:
        return self.get_bool("browser.auto.install", False)

    @property
    def slow_mo_ms(self) -> int:
        return self.get_int("browser.slow.mo.ms", 0)

    @property
    def viewport(self) -> Dict[str, int]:
        return {
            "width": self.get_int("viewport.width", 1920),
            "height": self.get_int("viewport.height", 1080),
        }

    # ---- timeouts (seconds) ----------------------------------------------------
    @property
    def implicit_wait(self) -> int:
        return self.get_int("implicit.wait", 10)

    @property
    def explicit_wait(self) -> int:
        return self.get_int("explicit.wait", 30)

    @property
    def page_load_timeout(self) -> int:
        return self.get_int("page.load.timeout", 30)

    @property
    def poll_interval(self) -> float:
        return max(self.get_int("poll.interval.ms", 250), 10) / 1000.0

    @property
    def settle_seconds(self) -> float:
        # Settle delays around navigation are bounded to 3 seconds.
        return min(max(self.get_float("settle.seconds", 2.0), 0.0), 3.0)

    @property
    def strict_mode(self) -> bool:
        return self.get_bool("strict.mode", False)

    # ---- test data -------------------------------------------------------------
    @property
    def email_prefix(self) -> str:
        return self.get("test.email.prefix", "qa.automation")

    @property
    def email_domain(self) -> str:
        domain = self.get("test.email.domain", "@example.com")
        return domain if domain.startswith("@") else f"@{domain}"

    @property
    def use_timestamp_in_email(self) -> bool:
        return self.get_bool("use.timestamp.in.email", True)

    # ---- otp -------------------------------------------------------------------
    @property
    def otp_mode(self) -> str:
        return self.get("otp.mode", "mock").strip().lower()

    @property
    def otp_mock_value(self) -> str:
        return self.get("otp.mock.value", "123456")

    @property
    def otp_wait_seconds(self) -> int:
        return max(self.get_int("otp.wait.seconds", 3), 0)

    @property
    def otp_test_mode(self) -> bool:
        return self.get_bool("otp.test.mode", False)

    @property
    def otp_interactive(self) -> bool:
        return self.get_bool("otp.interactive", False)

    @property
    def otp_api_timeout(self) -> float:
        return max(self.get_float("otp.api.timeout.seconds", 30.0), 0.0)

    # ---- execution -------------------------------------------------------------
    @property
    def retry_count(self) -> int:
        return max(self.get_int("retry.count", 2), 0)

    @property
    def onboarding_max_steps(self) -> int:
        return max(self.get_int("onboarding.max.steps", 5), 1)

    # ---- artifacts & reporting -------------------------------------------------
    @property
    def capture_screenshots(self) -> bool:
        return self.get_bool("capture.screenshots", True)

    @property
    def screenshot_on_failure(self) -> bool:
        return self.get_bool("screenshot.on.failure", True)

    @property
    def screenshot_on_pass(self) -> bool:
        return self.get_bool("screenshot.on.pass", False)

    @property
    def screenshot_dir(self) -> Path:
        return Path(self.get("screenshot.dir", "target/screenshots"))

    @property
    def screenshot_timeout(self) -> float:
        return max(self.get_float("screenshot.timeout.seconds", 10.0), 0.1)

    @property
    def report_path(self) -> Path:
        return Path(self.get("report.path", "target/reports"))

    @property
    def allure_results_dir(self) -> Path:
        return Path(self.get("allure.results.directory", "target/allure-results"))

    @property
    def report_product(self) -> str:
        return self.get("report.product", "AuthFlow")

    @property
    def report_author(self) -> str:
        return self.get("report.author", "QA Automation Team")

    # ---- logging ---------------------------------------------------------------
    @property
    def log_level(self) -> str:
        return self.get("log.level", "INFO").upper()

    @property
    def log_file(self) -> Optional[Path]:
        value = self.get("log.file", "target/logs/harness.log")
        return Path(value) if value else None

    def __repr__(self) -> str:
        return f"ConfigStore(source={self.source}, overrides={sorted(self._overrides)})"


# ---- process singleton ----------------------------------------------------------
_lock = threading.Lock()
_settings: Optional[ConfigStore] = None
_frozen = False


def init_settings(
    path: Optional[Path | str] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> ConfigStore:
    """Build the process-wide store. Allowed only before any Session exists."""
    global _settings
    with _lock:
        if _frozen:
            raise RuntimeError("Configuration is frozen: a browser session has already been created")
        _settings = ConfigStore.load(path, overrides=overrides)
        return _settings


def get_settings() -> ConfigStore:
    """Return the process-wide store, loading defaults on first use."""
    global _settings
    if _settings is None:
        with _lock:
            if _settings is None:
                _settings = ConfigStore.load()
    return _settings


def freeze_settings() -> None:
    global _frozen
    with _lock:
        _frozen = True


def reset_settings() -> None:
    """Drop the singleton and unfreeze it (self-tests only)."""
    global _settings, _frozen
    with _lock:
        _settings = None
        _frozen = False
