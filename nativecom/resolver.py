"""Discovery of factory-for-target declarations in a symbol graph."""

from __future__ import annotations

from typing import List, Sequence, Set, Tuple

from .config import FACTORY_MARKERS
from .graph.base import SymbolGraph
from .logging import get_logger
from .models import Declaration


class DeclarationResolver:
    """Finds every class annotated as a factory for a target type."""

    def __init__(self, factory_markers: Sequence[str] = FACTORY_MARKERS) -> None:
        self.factory_markers = tuple(factory_markers)
        self.logger = get_logger("resolver")

    def resolve(self, graph: SymbolGraph) -> List[Declaration]:
        """Return declarations in graph order, one per marker occurrence, without duplicates."""
        declarations: List[Declaration] = []
        seen: Set[Tuple[str, str]] = set()
        for symbol in graph.iter_types():
            for marker_type in self.factory_markers:
                for arguments in graph.marker_values(symbol, marker_type):
                    if not arguments:
                        self.logger.warning(
                            "Ignoring %s on %s: no target type argument",
                            marker_type,
                            symbol.qualified_name,
                        )
                        continue
                    # Both marker forms carry the target class as their last argument.
                    target_name = arguments[-1]
                    target = graph.resolve_type(target_name)
                    if target is None:
                        self.logger.warning(
                            "Ignoring factory %s: target type '%s' could not be resolved",
                            symbol.qualified_name,
                            target_name,
                        )
                        continue
                    key = (symbol.qualified_name, target.qualified_name)
                    if key in seen:
                        self.logger.debug("Skipping duplicate declaration %s -> %s", *key)
                        continue
                    seen.add(key)
                    declarations.append(Declaration(factory=symbol, target=target))
        self.logger.debug("Resolved %d factory declarations", len(declarations))
        return declarations


__all__ = ["DeclarationResolver"]
