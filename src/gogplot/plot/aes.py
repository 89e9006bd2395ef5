"""Aesthetic roles and mappings.

An AestheticMapping binds visual roles to table columns (data-driven) or to
constants (fixed values that never produce a legend). Roles come from the
closed Aesthetic enumeration, so a typo in a role name fails immediately
instead of at render time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Union

from gogplot.errors import SchemaError, TypeMismatchError


class Aesthetic(Enum):
    """Closed set of visual roles."""
    X = "x"
    Y = "y"
    COLOR = "color"
    SHAPE = "shape"
    FILL = "fill"
    LABEL = "label"
    ALPHA = "alpha"
    SIZE = "size"
    LINETYPE = "linetype"

    @property
    def is_position(self) -> bool:
        return self in (Aesthetic.X, Aesthetic.Y)

    @classmethod
    def parse(cls, role: Union[str, "Aesthetic"]) -> "Aesthetic":
        """Accept an Aesthetic or its name ("colour" is accepted for "color")."""
        if isinstance(role, Aesthetic):
            return role
        name = str(role).lower()
        if name == "colour":
            name = "color"
        try:
            return cls(name)
        except ValueError:
            raise ValueError(
                f"Unknown aesthetic {role!r}; expected one of {[a.value for a in cls]}"
            ) from None


# Roles that only accept discrete (categorical/logical) columns
DISCRETE_ONLY = frozenset({Aesthetic.SHAPE, Aesthetic.LINETYPE})

# Roles whose discrete values split data into groups for stats and legends
GROUPING_ROLES = (
    Aesthetic.COLOR,
    Aesthetic.FILL,
    Aesthetic.SHAPE,
    Aesthetic.LINETYPE,
    Aesthetic.ALPHA,
    Aesthetic.SIZE,
)


@dataclass(frozen=True)
class AestheticMapping:
    """Immutable role -> column / role -> constant bindings.

    Attributes:
        columns: Role to column name (data-driven, contributes to legends).
        constants: Role to fixed value (applied outside the mapping).
    """
    columns: Mapping[Aesthetic, str] = field(default_factory=dict)
    constants: Mapping[Aesthetic, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        columns = {Aesthetic.parse(k): str(v) for k, v in dict(self.columns).items()}
        constants = {Aesthetic.parse(k): v for k, v in dict(self.constants).items()}
        both = set(columns) & set(constants)
        if both:
            raise ValueError(
                f"Aesthetics {sorted(a.value for a in both)} are both mapped and set to constants"
            )
        object.__setattr__(self, "columns", MappingProxyType(columns))
        object.__setattr__(self, "constants", MappingProxyType(constants))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AestheticMapping):
            return NotImplemented
        return dict(self.columns) == dict(other.columns) and dict(self.constants) == dict(other.constants)

    def __hash__(self) -> int:
        return hash((tuple(sorted((a.value, c) for a, c in self.columns.items())),
                     tuple(sorted(a.value for a in self.constants))))

    def column(self, role: Aesthetic) -> Optional[str]:
        return self.columns.get(role)

    def constant(self, role: Aesthetic, default: Any = None) -> Any:
        return self.constants.get(role, default)

    def maps(self, role: Aesthetic) -> bool:
        """True if role is bound to a column."""
        return role in self.columns

    def merged(self, override: "AestheticMapping") -> "AestheticMapping":
        """Return self extended/overridden by override.

        A constant in override removes an inherited column binding for the
        same role and vice versa.
        """
        columns = dict(self.columns)
        constants = dict(self.constants)
        for role, col in override.columns.items():
            constants.pop(role, None)
            columns[role] = col
        for role, value in override.constants.items():
            columns.pop(role, None)
            constants[role] = value
        return AestheticMapping(columns, constants)

    def validate(self, schema: Mapping[str, Any], *, context: str = "") -> None:
        """Check mapped columns exist and discrete-only roles get discrete columns.

        Args:
            schema: Table schema (column -> ValueKind).
            context: Description for error messages.

        Raises:
            SchemaError: A mapped column is not in schema.
            TypeMismatchError: shape/linetype mapped to a numeric column.
        """
        where = f" in {context}" if context else ""
        missing = sorted(f"{a.value}={c!r}" for a, c in self.columns.items() if c not in schema)
        if missing:
            raise SchemaError(f"Unknown column(s) {missing}{where}; declared columns are {list(schema)}")
        for role in DISCRETE_ONLY:
            col = self.columns.get(role)
            if col is not None and not schema[col].is_discrete:
                raise TypeMismatchError(
                    f"A continuous column {col!r} cannot be mapped to {role.value}{where}"
                )

    def roles(self) -> Iterable[Aesthetic]:
        return tuple(self.columns)


def aes(**kwargs: Any) -> AestheticMapping:
    """Build a mapping from keyword role names to column names.

    Example:
        aes(x="age", y="vtl", color="gender")
    """
    return AestheticMapping(columns={Aesthetic.parse(k): v for k, v in kwargs.items()})


def as_mapping(mapping: Union[AestheticMapping, Mapping[str, str], None]) -> AestheticMapping:
    """Coerce None or a plain dict of role names to an AestheticMapping."""
    if mapping is None:
        return AestheticMapping()
    if isinstance(mapping, AestheticMapping):
        return mapping
    return aes(**dict(mapping))
