"""Read-only query surface over a host compilation's symbols."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from ..models import Symbol


class SymbolGraph(Protocol):
    """Protocol implemented by symbol sources (manifests, parsed sources)."""

    def iter_types(self) -> Iterable[Symbol]:
        """Yield declared types in host declaration order."""

    def resolve_type(self, qualified_name: str) -> Optional[Symbol]:
        """Return the declared or referenced type with this name, if any."""

    def has_marker(self, symbol: Symbol, marker_type: str) -> bool:
        """Return True when ``symbol`` carries at least one ``marker_type`` attribute."""

    def implements(self, symbol: Symbol, interface: str) -> bool:
        """Return True when ``symbol`` implements ``interface`` directly or through its bases."""

    def marker_values(self, symbol: Symbol, marker_type: str) -> List[Tuple[str, ...]]:
        """Return the arguments of every ``marker_type`` occurrence on ``symbol``."""


class StaticSymbolGraph:
    """Symbol graph over a fixed, ordered list of symbols plus referenced type names."""

    def __init__(self, symbols: Sequence[Symbol], references: Iterable[str] = ()) -> None:
        self._symbols: List[Symbol] = list(symbols)
        self._by_name: Dict[str, Symbol] = {}
        for symbol in self._symbols:
            self._by_name.setdefault(symbol.qualified_name, symbol)
        self._references: Dict[str, Symbol] = {}
        for name in references:
            if name in self._by_name or name in self._references:
                continue
            namespace = name.rsplit(".", 1)[0] if "." in name else ""
            self._references[name] = Symbol(qualified_name=name, namespace=namespace, kind="reference")

    def iter_types(self) -> Iterable[Symbol]:
        return iter(self._symbols)

    def resolve_type(self, qualified_name: str) -> Optional[Symbol]:
        return self._by_name.get(qualified_name) or self._references.get(qualified_name)

    def has_marker(self, symbol: Symbol, marker_type: str) -> bool:
        return any(marker.type_name == marker_type for marker in symbol.markers)

    def implements(self, symbol: Symbol, interface: str) -> bool:
        seen: Set[str] = set()
        pending = list(symbol.interfaces)
        while pending:
            name = pending.pop()
            if name == interface:
                return True
            if name in seen:
                continue
            seen.add(name)
            base = self._by_name.get(name)
            if base is not None:
                pending.extend(base.interfaces)
        return False

    def marker_values(self, symbol: Symbol, marker_type: str) -> List[Tuple[str, ...]]:
        return [marker.arguments for marker in symbol.markers if marker.type_name == marker_type]

    @property
    def references(self) -> List[str]:
        return list(self._references)

    def __len__(self) -> int:
        return len(self._symbols)


__all__ = ["StaticSymbolGraph", "SymbolGraph"]
