"""Theme and label values threaded explicitly through rendering.

Theme holds text sizes, legend placement and panel styling; Labels holds
titles and axis/legend titles. Both are frozen dataclasses so several plots can
carry independent styling at the same time.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional

from gogplot.plot.aes import Aesthetic

LEGEND_POSITIONS = ("right", "left", "top", "bottom", "none")


@dataclass(frozen=True)
class Theme:
    """Styling for a rendered figure.

    Sizes are in points; width/height in pixels.
    """
    base_size: float = 11.0
    title_size: Optional[float] = None        # defaults to 1.2 x base_size
    axis_title_size: Optional[float] = None   # defaults to base_size
    axis_text_size: Optional[float] = None    # defaults to 0.8 x base_size
    legend_title_size: Optional[float] = None
    legend_text_size: Optional[float] = None
    strip_text_size: Optional[float] = None
    font_family: str = "Arial"
    legend_position: str = "right"
    panel_background: str = "#EBEBEB"
    plot_background: str = "white"
    grid_color: str = "white"
    show_grid: bool = True
    strip_background: str = "#D9D9D9"
    width: int = 700
    height: int = 500

    def __post_init__(self) -> None:
        if self.legend_position not in LEGEND_POSITIONS:
            raise ValueError(
                f"legend_position must be one of {LEGEND_POSITIONS}, got {self.legend_position!r}"
            )

    # Resolved sizes
    @property
    def resolved_title_size(self) -> float:
        return self.title_size if self.title_size is not None else 1.2 * self.base_size

    @property
    def resolved_axis_title_size(self) -> float:
        return self.axis_title_size if self.axis_title_size is not None else self.base_size

    @property
    def resolved_axis_text_size(self) -> float:
        return self.axis_text_size if self.axis_text_size is not None else 0.8 * self.base_size

    @property
    def resolved_legend_title_size(self) -> float:
        return self.legend_title_size if self.legend_title_size is not None else self.base_size

    @property
    def resolved_legend_text_size(self) -> float:
        return self.legend_text_size if self.legend_text_size is not None else 0.8 * self.base_size

    @property
    def resolved_strip_text_size(self) -> float:
        return self.strip_text_size if self.strip_text_size is not None else 0.8 * self.base_size

    def to_dict(self) -> dict[str, Any]:
        """Serialize Theme to a JSON-friendly dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Theme":
        """Deserialize Theme, ignoring unknown keys and keeping defaults for absent ones."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class ThemeUpdate:
    """Partial theme changes, applied on top of a plot's current Theme."""
    changes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        known = {f.name for f in fields(Theme)}
        unknown = sorted(set(self.changes) - known)
        if unknown:
            raise ValueError(f"Unknown theme settings {unknown}")
        object.__setattr__(self, "changes", MappingProxyType(dict(self.changes)))

    def apply(self, base: Theme) -> Theme:
        return replace(base, **dict(self.changes))


def theme(**changes: Any) -> ThemeUpdate:
    """Partial theme update, e.g. theme(legend_position="bottom")."""
    return ThemeUpdate(changes)


def theme_gray(base_size: float = 11.0) -> Theme:
    return Theme(base_size=base_size)


def theme_bw(base_size: float = 11.0) -> Theme:
    return Theme(
        base_size=base_size,
        panel_background="white",
        grid_color="#EBEBEB",
        strip_background="#D9D9D9",
    )


def theme_minimal(base_size: float = 11.0) -> Theme:
    return Theme(
        base_size=base_size,
        panel_background="white",
        grid_color="#EBEBEB",
        strip_background="white",
    )


@dataclass(frozen=True)
class Labels:
    """Plot, axis and legend titles. None means "use the default"."""
    title: Optional[str] = None
    subtitle: Optional[str] = None
    caption: Optional[str] = None
    x: Optional[str] = None
    y: Optional[str] = None
    legend: Mapping[Aesthetic, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        legend = {Aesthetic.parse(k): v for k, v in dict(self.legend).items()}
        object.__setattr__(self, "legend", MappingProxyType(legend))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Labels):
            return NotImplemented
        return (
            (self.title, self.subtitle, self.caption, self.x, self.y)
            == (other.title, other.subtitle, other.caption, other.x, other.y)
            and dict(self.legend) == dict(other.legend)
        )

    def __hash__(self) -> int:
        return hash((self.title, self.subtitle, self.caption, self.x, self.y))

    def merged(self, other: "Labels") -> "Labels":
        """Labels with other's non-None values taking precedence."""
        legend = dict(self.legend)
        legend.update(other.legend)
        return Labels(
            title=other.title if other.title is not None else self.title,
            subtitle=other.subtitle if other.subtitle is not None else self.subtitle,
            caption=other.caption if other.caption is not None else self.caption,
            x=other.x if other.x is not None else self.x,
            y=other.y if other.y is not None else self.y,
            legend=legend,
        )

    def axis_title(self, role: Aesthetic) -> Optional[str]:
        return self.x if role is Aesthetic.X else self.y if role is Aesthetic.Y else None


def labs(
    title: Optional[str] = None,
    subtitle: Optional[str] = None,
    caption: Optional[str] = None,
    x: Optional[str] = None,
    y: Optional[str] = None,
    **legend_titles: str,
) -> Labels:
    """Build Labels; extra keywords name legend titles, e.g. labs(color="Gender")."""
    return Labels(title=title, subtitle=subtitle, caption=caption, x=x, y=y, legend=legend_titles)
