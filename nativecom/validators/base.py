"""Validation outcomes and well-known type resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config import MarkerConfig
from ..diagnostics import DiagnosticCode
from ..graph.base import SymbolGraph
from ..models import Symbol


class ValidationOutcome(Enum):
    """Terminal state of the per-declaration check sequence."""

    SUCCESS = "success"
    NC0002 = DiagnosticCode.NC0002.value
    NC0003 = DiagnosticCode.NC0003.value
    NC0004 = DiagnosticCode.NC0004.value
    NC0005 = DiagnosticCode.NC0005.value

    @property
    def code(self) -> Optional[DiagnosticCode]:
        if self is ValidationOutcome.SUCCESS:
            return None
        return DiagnosticCode(self.value)


class EnvironmentNotSupported(RuntimeError):
    """Raised when a well-known type is missing from the host graph."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"'{type_name}' couldn't be found")
        self.type_name = type_name


@dataclass(frozen=True)
class WellKnownTypes:
    """Resolved marker types every check is made against."""

    activation_interface: Symbol
    interop_marker: Symbol
    identifier_marker: Symbol


def resolve_well_known(graph: SymbolGraph, markers: MarkerConfig) -> WellKnownTypes:
    """Resolve the marker types, failing on the first one the graph does not know."""
    resolved = []
    for name in (markers.activation_interface, markers.interop_marker, markers.identifier_marker):
        symbol = graph.resolve_type(name)
        if symbol is None:
            raise EnvironmentNotSupported(name)
        resolved.append(symbol)
    return WellKnownTypes(*resolved)


__all__ = [
    "EnvironmentNotSupported",
    "ValidationOutcome",
    "WellKnownTypes",
    "resolve_well_known",
]
