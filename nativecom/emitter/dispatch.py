"""Accumulation of the class identifier dispatch table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..identifiers import FieldLayout, render
from ..logging import get_logger
from ..models import DispatchEntry, ValidatedDeclaration


class EmissionError(RuntimeError):
    """Raised when an internal invariant of code emission is violated."""


@dataclass(frozen=True)
class DispatchTable:
    """Identifier-to-index mapping and the parallel table of factory helpers.

    ``entries[i].index == i`` and ``helpers[i]`` names the factory whose
    instantiation routine serves ``entries[i].identifier``.
    """

    entries: Tuple[DispatchEntry, ...] = ()
    helpers: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if len(self.entries) != len(self.helpers):
            raise EmissionError(
                f"Dispatch table has {len(self.entries)} identifiers but {len(self.helpers)} helpers"
            )
        for position, entry in enumerate(self.entries):
            if entry.index != position:
                raise EmissionError(
                    f"Dispatch entry {render(entry.identifier)} has index {entry.index}, expected {position}"
                )
        identifiers = {entry.identifier for entry in self.entries}
        if len(identifiers) != len(self.entries):
            raise EmissionError("Dispatch table maps the same identifier more than once")

    def lookup(self, identifier: FieldLayout) -> Optional[int]:
        for entry in self.entries:
            if entry.identifier == identifier:
                return entry.index
        return None

    def factory_for(self, identifier: FieldLayout) -> Optional[str]:
        index = self.lookup(identifier)
        return self.helpers[index] if index is not None else None

    def __len__(self) -> int:
        return len(self.entries)


class DispatchTableBuilder:
    """Appends identifiers and helpers in lock-step, in resolution order."""

    def __init__(self) -> None:
        self._entries: List[DispatchEntry] = []
        self._helpers: List[str] = []
        self._owners: Dict[FieldLayout, str] = {}
        self.logger = get_logger("emitter.dispatch")

    def add(self, validated: ValidatedDeclaration) -> Optional[DispatchEntry]:
        """Append a declaration; returns None when its identifier is already mapped."""
        identifier = validated.identifier
        owner = self._owners.get(identifier)
        if owner is not None:
            self.logger.warning(
                "Identifier %s of %s is already served by %s; %s is left out of the dispatch table",
                render(identifier),
                validated.target.qualified_name,
                owner,
                validated.factory.qualified_name,
            )
            return None
        entry = DispatchEntry(identifier=identifier, index=len(self._entries))
        self._entries.append(entry)
        self._helpers.append(validated.factory.qualified_name)
        self._owners[identifier] = validated.factory.qualified_name
        return entry

    def build(self) -> DispatchTable:
        return DispatchTable(entries=tuple(self._entries), helpers=tuple(self._helpers))


__all__ = ["DispatchTable", "DispatchTableBuilder", "EmissionError"]
