"""
Per-user plot defaults for gogplot (platformdirs + JSON).

Persisted items (schema v1):
- theme: Theme dict representation
- jitter_seed, density_bw, density_n, smooth_span, smooth_level: RenderOptions defaults

Behavior:
- If config file missing or unreadable -> defaults are used
- If schema_version mismatches:
  - default: reset to defaults
  - optional: keep loaded but update version
- Unknown keys in loaded JSON are ignored with warnings

Nothing in gogplot reads this file implicitly; callers pass
PlotConfig.theme() and PlotConfig.render_options() where they want them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from platformdirs import user_config_dir

from gogplot.plot.render import RenderOptions
from gogplot.plot.theme import Theme
from gogplot.utils.logging import get_logger

logger = get_logger(__name__)

# Increment when you make a breaking change to the on-disk JSON schema.
SCHEMA_VERSION: int = 1

DEFAULT_FILENAME = "plot_config.json"


@dataclass
class PlotConfigData:
    """
    JSON-serializable config payload.

    Schema v1:
    - theme: Dict[str, Any] - Theme.to_dict(); missing keys keep Theme defaults
    - jitter_seed: Optional[int]
    - density_bw: str rule ("silverman", "scott") or float factor
    - density_n: int
    - smooth_span: float
    - smooth_level: float
    """
    schema_version: int = SCHEMA_VERSION
    theme: Dict[str, Any] = field(default_factory=dict)
    jitter_seed: Optional[int] = 0
    density_bw: Union[str, float] = "silverman"
    density_n: int = 512
    smooth_span: float = 0.75
    smooth_level: float = 0.95

    def to_json_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "schema_version": self.schema_version,
            "theme": self.theme,
            "jitter_seed": self.jitter_seed,
            "density_bw": self.density_bw,
            "density_n": self.density_n,
            "smooth_span": self.smooth_span,
            "smooth_level": self.smooth_level,
        }

    @classmethod
    def from_json_dict(cls, d: Dict[str, Any]) -> "PlotConfigData":
        """
        Tolerant loader:
        - ignores unknown keys
        - tolerates partially missing or malformed values (defaults kept)
        """
        defaults = cls()
        schema_version = int(d.get("schema_version", -1))

        theme = d.get("theme", {})
        if not isinstance(theme, dict):
            logger.warning("theme is not a dict, using default theme")
            theme = {}

        jitter_seed = d.get("jitter_seed", defaults.jitter_seed)
        if jitter_seed is not None:
            try:
                jitter_seed = int(jitter_seed)
            except (TypeError, ValueError):
                logger.warning(f"jitter_seed {jitter_seed!r} is not an int, using {defaults.jitter_seed}")
                jitter_seed = defaults.jitter_seed

        density_bw = d.get("density_bw", defaults.density_bw)
        if not isinstance(density_bw, str):
            try:
                density_bw = float(density_bw)
            except (TypeError, ValueError):
                logger.warning(f"density_bw {density_bw!r} is invalid, using {defaults.density_bw!r}")
                density_bw = defaults.density_bw

        numbers: Dict[str, Any] = {}
        for key, cast in (("density_n", int), ("smooth_span", float), ("smooth_level", float)):
            value = d.get(key, getattr(defaults, key))
            try:
                numbers[key] = cast(value)
            except (TypeError, ValueError):
                logger.warning(f"{key} {value!r} is invalid, using {getattr(defaults, key)!r}")
                numbers[key] = getattr(defaults, key)

        known_keys = {f for f in defaults.to_json_dict()}
        for key in d.keys():
            if key not in known_keys:
                logger.warning(f"Unknown key '{key}' in plot config, ignoring")

        return cls(
            schema_version=schema_version,
            theme=theme,
            jitter_seed=jitter_seed,
            density_bw=density_bw,
            **numbers,
        )


class PlotConfig:
    """
    Manager for loading/saving PlotConfigData to disk.
    """

    def __init__(self, *, path: Path, data: Optional[PlotConfigData] = None):
        self.path = path
        self.data = data if data is not None else PlotConfigData()

    # -----------------------------
    # Construction / persistence
    # -----------------------------
    @staticmethod
    def default_config_path(
        app_name: str = "gogplot",
        filename: str = DEFAULT_FILENAME,
        app_author: str | None = None,
    ) -> Path:
        """
        Determine OS-appropriate per-user config path.

        macOS:   ~/Library/Application Support/gogplot/plot_config.json
        Linux:   ~/.config/gogplot/plot_config.json
        Windows: %APPDATA%\\gogplot\\plot_config.json
        """
        return Path(user_config_dir(app_name, app_author)) / filename

    @classmethod
    def load(
        cls,
        *,
        config_path: Optional[Path] = None,
        app_name: str = "gogplot",
        filename: str = DEFAULT_FILENAME,
        app_author: str | None = None,
        schema_version: int = SCHEMA_VERSION,
        reset_on_version_mismatch: bool = True,
        create_if_missing: bool = False,
    ) -> "PlotConfig":
        """
        Load config from disk.

        If file doesn't exist or is unreadable -> defaults.
        If schema mismatch:
          - reset_on_version_mismatch=True -> defaults
          - else -> keep loaded but overwrite schema_version

        If create_if_missing=True and file is missing -> immediately write defaults.
        """
        path = config_path or cls.default_config_path(app_name=app_name, filename=filename, app_author=app_author)
        default_data = PlotConfigData(schema_version=schema_version)

        try:
            raw = path.read_text(encoding="utf-8")
            parsed = json.loads(raw)
            if not isinstance(parsed, dict):
                logger.warning(f"Plot config file at {path} does not contain a dict, using defaults")
                return cls(path=path, data=default_data)

            loaded = PlotConfigData.from_json_dict(parsed)

            if int(loaded.schema_version) != int(schema_version):
                if reset_on_version_mismatch:
                    logger.warning(
                        f"Plot config schema version mismatch: loaded={loaded.schema_version}, "
                        f"expected={schema_version}, resetting to defaults"
                    )
                    return cls(path=path, data=default_data)
                loaded.schema_version = int(schema_version)

            return cls(path=path, data=loaded)
        except FileNotFoundError:
            logger.debug(f"Plot config file not found at {path}, using defaults")
            cfg = cls(path=path, data=default_data)
            if create_if_missing:
                cfg.save()
            return cfg
        except json.JSONDecodeError as e:
            logger.warning(f"Plot config file at {path} is not valid JSON: {e}, using defaults")
            return cls(path=path, data=default_data)
        except OSError as e:
            logger.warning(f"Error reading plot config from {path}: {e}, using defaults")
            return cls(path=path, data=default_data)

    def save(self) -> None:
        """Write config to disk."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            json_str = json.dumps(self.data.to_json_dict(), indent=2)
            self.path.write_text(json_str, encoding="utf-8")
            logger.info(f"Saved plot config to {self.path}")
        except OSError as e:
            logger.error(f"Error saving plot config to {self.path}: {e}")
            raise

    def theme(self) -> Theme:
        """Theme built from the stored settings; invalid settings fall back to Theme()."""
        try:
            return Theme.from_dict(self.data.theme)
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid theme in plot config: {e}, using default theme")
            return Theme()

    def set_theme(self, theme: Theme) -> None:
        self.data.theme = theme.to_dict()

    def render_options(self, **overrides: Any) -> RenderOptions:
        """RenderOptions from the stored defaults; keyword overrides win."""
        values: Dict[str, Any] = dict(
            jitter_seed=self.data.jitter_seed,
            density_bw=self.data.density_bw,
            density_n=self.data.density_n,
            smooth_span=self.data.smooth_span,
            smooth_level=self.data.smooth_level,
        )
        values.update(overrides)
        try:
            return RenderOptions(**values)
        except ValueError as e:
            logger.warning(f"Invalid render options in plot config: {e}, using defaults")
            return RenderOptions(**overrides)

    def set_render_options(self, options: RenderOptions) -> None:
        self.data.jitter_seed = options.jitter_seed
        self.data.density_bw = options.density_bw
        self.data.density_n = options.density_n
        self.data.smooth_span = options.smooth_span
        self.data.smooth_level = options.smooth_level
