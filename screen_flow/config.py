from __future__ import annotations

"""Run configuration: defaults, JSON config file and environment overrides."""

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".screen-flow.json"
ZOOM_LADDER: Tuple[float, ...] = (0.5, 0.75, 1.0, 1.25, 1.5, 2.0)


@dataclass(frozen=True)
class Viewport:
    name: str
    width: int
    height: int

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Viewport":
        return cls(name=str(raw.get("name", "")), width=int(raw["width"]), height=int(raw["height"]))

    def size(self) -> Dict[str, int]:
        """Shape accepted by ``page.set_viewport_size``."""
        return {"width": self.width, "height": self.height}


def _default_viewports() -> List[Viewport]:
    return [
        Viewport("Desktop", 1920, 1080),
        Viewport("Laptop", 1366, 768),
        Viewport("Tablet", 768, 1024),
        Viewport("Mobile", 375, 667),
    ]


@dataclass(frozen=True)
class ExplorerConfig:
    """Immutable settings for one exploration run.

    The first viewport is the desktop baseline: the browser context is
    created with it and the probe returns to it after the touch channel.
    """

    base_url: str = "http://localhost:3000"
    output_dir: str = "/tmp/screen-flow"
    viewports: List[Viewport] = field(default_factory=_default_viewports)
    headless: bool = True
    fingerprint: str = "url-title"

    # exploration caps
    max_states: int = 10
    max_elements: int = 200
    keyboard_limit: int = 15
    mouse_limit: int = 10
    touch_limit: int = 5
    form_limit: int = 10
    zoom_levels: Tuple[float, ...] = ZOOM_LADDER

    # timings (milliseconds)
    navigation_timeout_ms: int = 10_000
    back_timeout_ms: int = 5_000
    click_timeout_ms: int = 2_000
    slow_click_ms: int = 1_000
    settle_ms: int = 500

    @property
    def desktop(self) -> Viewport:
        return self.viewports[0]

    @property
    def mobile(self) -> Viewport:
        for vp in self.viewports:
            if vp.name.lower() == "mobile":
                return vp
        return Viewport("Mobile", 375, 667)

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url.rstrip("/") + path


# ----------------------------------------------------------------------
# loading ---------------------------------------------------------------

_ENV_OVERRIDES = {
    "SCREEN_FLOW_BASE_URL": "base_url",
    "SCREEN_FLOW_OUTPUT_DIR": "output_dir",
    "SCREEN_FLOW_HEADLESS": "headless",
}

# camelCase keys used by existing config files
_ALIASES = {
    "baseUrl": "base_url",
    "outputDir": "output_dir",
    "maxStates": "max_states",
    "maxElements": "max_elements",
    "zoomLevels": "zoom_levels",
}


def _coerce(name: str, value: Any) -> Any:
    if name == "viewports":
        vps = [v if isinstance(v, Viewport) else Viewport.from_dict(v) for v in value]
        if not vps:
            raise ConfigError("at least one viewport is required")
        return vps
    if name == "zoom_levels":
        return tuple(float(v) for v in value)
    if name == "headless" and isinstance(value, str):
        return value.strip().lower() not in ("0", "false", "no", "off")
    return value


def config_from_dict(data: Dict[str, Any], base: Optional[ExplorerConfig] = None) -> ExplorerConfig:
    """Overlay known keys from ``data`` on ``base`` (defaults when omitted).

    Unknown keys are ignored so one config file can be shared with the other
    phases of a larger test run.
    """
    base = base or ExplorerConfig()
    known = {f.name for f in fields(ExplorerConfig)}
    updates: Dict[str, Any] = {}
    for key, value in data.items():
        name = _ALIASES.get(key, key)
        if name not in known:
            logger.debug("Ignoring unknown config key %r", key)
            continue
        try:
            updates[name] = _coerce(name, value)
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {key!r}: {e}") from e
    return replace(base, **updates)


def load_config(path: str | os.PathLike[str] | None = None, **overrides: Any) -> ExplorerConfig:
    """Build the run configuration.

    Precedence, lowest first: built-in defaults, the JSON config file,
    ``SCREEN_FLOW_*`` environment variables (a ``.env`` file is honoured),
    then explicit keyword overrides (``None`` values are skipped).
    """
    load_dotenv()
    cfg = ExplorerConfig()

    cfg_path = Path(path or DEFAULT_CONFIG_PATH)
    if cfg_path.exists():
        try:
            data = json.loads(cfg_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load config from {cfg_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {cfg_path} must contain a JSON object")
        cfg = config_from_dict(data, cfg)
        logger.debug("Loaded config from %s", cfg_path)
    elif path is not None:
        raise ConfigError(f"Config file {cfg_path} does not exist")

    env = {attr: os.environ[var] for var, attr in _ENV_OVERRIDES.items() if os.environ.get(var)}
    if env:
        cfg = config_from_dict(env, cfg)

    explicit = {k: v for k, v in overrides.items() if v is not None}
    if explicit:
        cfg = config_from_dict(explicit, cfg)
    return cfg
