"""Core data models shared across nativecom components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .identifiers import FieldLayout


@dataclass(frozen=True)
class SourceLocation:
    """Position of a declaration in the host compilation."""

    path: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.path}({self.line},{self.column})"


@dataclass(frozen=True)
class Marker:
    """An attribute occurrence attached to a symbol, with its constructor arguments."""

    type_name: str
    arguments: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Symbol:
    """Read-only view of a type supplied by the host compilation."""

    qualified_name: str
    namespace: str = ""
    kind: str = "class"
    markers: Tuple[Marker, ...] = ()
    interfaces: Tuple[str, ...] = ()
    location: Optional[SourceLocation] = None

    @property
    def name(self) -> str:
        return self.qualified_name.rsplit(".", 1)[-1]

    @property
    def containing_types(self) -> Tuple[str, ...]:
        """Simple names of enclosing types, outermost first."""
        relative = self.qualified_name
        if self.namespace:
            relative = relative[len(self.namespace) + 1 :]
        return tuple(relative.split(".")[:-1])


@dataclass(frozen=True)
class Declaration:
    """One requested factory-for-target association."""

    factory: Symbol
    target: Symbol


@dataclass(frozen=True)
class ValidatedDeclaration:
    """A declaration that passed every structural check."""

    declaration: Declaration
    identifier: FieldLayout

    @property
    def factory(self) -> Symbol:
        return self.declaration.factory

    @property
    def target(self) -> Symbol:
        return self.declaration.target


@dataclass(frozen=True)
class DispatchEntry:
    """Maps a class identifier to a dense position in the helper table."""

    identifier: FieldLayout
    index: int


@dataclass(frozen=True)
class GeneratedUnit:
    """A named piece of generated source."""

    name: str
    content: str


class UnitCollisionError(RuntimeError):
    """Raised when a unit name is emitted twice with different content."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Generated unit '{name}' was emitted twice with different content")
        self.name = name


@dataclass
class UnitSet:
    """Write-once, insertion-ordered collection of generated units."""

    _units: Dict[str, GeneratedUnit] = field(default_factory=dict)

    def add(self, unit: GeneratedUnit) -> None:
        existing = self._units.get(unit.name)
        if existing is not None:
            if existing.content != unit.content:
                raise UnitCollisionError(unit.name)
            return
        self._units[unit.name] = unit

    def get(self, name: str) -> Optional[GeneratedUnit]:
        return self._units.get(name)

    def names(self) -> List[str]:
        return list(self._units)

    def __iter__(self) -> Iterator[GeneratedUnit]:
        return iter(self._units.values())

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, name: object) -> bool:
        return name in self._units
