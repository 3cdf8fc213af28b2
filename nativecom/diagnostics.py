"""Stable diagnostic codes and the reporter that collects them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Dict, List, Optional

from .logging import get_logger
from .models import SourceLocation


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class DiagnosticCode(str, Enum):
    """User-facing diagnostic codes. Values are part of the external contract."""

    NC0001 = "NC0001"
    NC0002 = "NC0002"
    NC0003 = "NC0003"
    NC0004 = "NC0004"
    NC0005 = "NC0005"
    NC0006 = "NC0006"


@dataclass(frozen=True)
class DiagnosticDescriptor:
    """Title, message format and default severity of a diagnostic code."""

    code: DiagnosticCode
    title: str
    message_format: str
    severity: Severity = Severity.ERROR


DESCRIPTORS: Dict[DiagnosticCode, DiagnosticDescriptor] = {
    DiagnosticCode.NC0001: DiagnosticDescriptor(
        DiagnosticCode.NC0001,
        "Couldn't be found required type",
        "'{0}' couldn't be found",
    ),
    DiagnosticCode.NC0002: DiagnosticDescriptor(
        DiagnosticCode.NC0002,
        "Factory does not implement the activation interface",
        "Factory class does not implement {0}",
    ),
    DiagnosticCode.NC0003: DiagnosticDescriptor(
        DiagnosticCode.NC0003,
        "Factory is not interop-capable",
        "Factory class does not have {0}",
    ),
    DiagnosticCode.NC0004: DiagnosticDescriptor(
        DiagnosticCode.NC0004,
        "Target is not interop-capable",
        "Target class does not have {0}",
    ),
    DiagnosticCode.NC0005: DiagnosticDescriptor(
        DiagnosticCode.NC0005,
        "Target has no decodable class identifier",
        "Target class does not have {0}",
    ),
    DiagnosticCode.NC0006: DiagnosticDescriptor(
        DiagnosticCode.NC0006,
        "Factory already creates another target",
        "Factory class already creates {0}; the association with {1} is ignored",
        Severity.WARNING,
    ),
}


@dataclass(frozen=True)
class Diagnostic:
    """A reported generation-time problem."""

    code: DiagnosticCode
    severity: Severity
    message: str
    location: Optional[SourceLocation] = None


def format_diagnostic(diagnostic: Diagnostic) -> str:
    """Render a diagnostic in the conventional ``file(line,col): error CODE: message`` form."""
    prefix = f"{diagnostic.location}: " if diagnostic.location is not None else ""
    return f"{prefix}{diagnostic.severity.value} {diagnostic.code.value}: {diagnostic.message}"


class DiagnosticReporter:
    """Collects diagnostics in report order and mirrors them to the log."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._diagnostics: List[Diagnostic] = []
        self.logger = logger or get_logger("diagnostics")

    def report(
        self,
        code: DiagnosticCode,
        location: Optional[SourceLocation],
        *args: object,
        message: str | None = None,
    ) -> Diagnostic:
        descriptor = DESCRIPTORS[code]
        text = message if message is not None else descriptor.message_format.format(*args)
        diagnostic = Diagnostic(
            code=code,
            severity=descriptor.severity,
            message=text,
            location=location,
        )
        self._diagnostics.append(diagnostic)
        level = logging.ERROR if diagnostic.severity is Severity.ERROR else logging.WARNING
        self.logger.log(level, "%s", format_diagnostic(diagnostic))
        return diagnostic

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    @property
    def has_errors(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self._diagnostics)

    def codes(self) -> List[DiagnosticCode]:
        return [d.code for d in self._diagnostics]


__all__ = [
    "DESCRIPTORS",
    "Diagnostic",
    "DiagnosticCode",
    "DiagnosticDescriptor",
    "DiagnosticReporter",
    "Severity",
    "format_diagnostic",
]
