"""Structural checks applied to every resolved declaration."""

from __future__ import annotations

from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from ..diagnostics import DiagnosticCode, DiagnosticReporter
from ..graph.base import SymbolGraph
from ..identifiers import FieldLayout, IdentifierError, decode, is_valid
from ..logging import get_logger
from ..models import Declaration, ValidatedDeclaration
from .base import ValidationOutcome, WellKnownTypes

_Check = Callable[[Declaration], bool]


class DeclarationValidator:
    """Runs the fixed check sequence; the first failing check decides the outcome."""

    def __init__(self, graph: SymbolGraph, well_known: WellKnownTypes) -> None:
        self.graph = graph
        self.well_known = well_known
        self.logger = get_logger("validators")
        self._checks: Tuple[Tuple[ValidationOutcome, _Check], ...] = (
            (ValidationOutcome.NC0002, self._factory_implements_activation_interface),
            (ValidationOutcome.NC0003, self._factory_is_interop_capable),
            (ValidationOutcome.NC0004, self._target_is_interop_capable),
            (ValidationOutcome.NC0005, self._target_has_identifier),
        )

    def check(self, declaration: Declaration) -> ValidationOutcome:
        for outcome, passes in self._checks:
            if not passes(declaration):
                return outcome
        return ValidationOutcome.SUCCESS

    def validate(
        self, declarations: Iterable[Declaration], reporter: DiagnosticReporter
    ) -> Iterator[ValidatedDeclaration]:
        """Yield declarations that pass, reporting one diagnostic for each that does not."""
        for declaration in declarations:
            outcome = self.check(declaration)
            if outcome is ValidationOutcome.SUCCESS:
                yield ValidatedDeclaration(
                    declaration=declaration,
                    identifier=self._identifier(declaration),
                )
                continue
            code = DiagnosticCode(outcome.value)
            self.logger.debug(
                "Dropping %s -> %s (%s)",
                declaration.factory.qualified_name,
                declaration.target.qualified_name,
                code.value,
            )
            reporter.report(
                code,
                declaration.factory.location,
                self._subject(outcome),
                message=self._override_message(outcome, declaration),
            )

    # ------------------------------------------------------------------
    # Checks

    def _factory_implements_activation_interface(self, declaration: Declaration) -> bool:
        return self.graph.implements(
            declaration.factory, self.well_known.activation_interface.qualified_name
        )

    def _factory_is_interop_capable(self, declaration: Declaration) -> bool:
        return self.graph.has_marker(declaration.factory, self.well_known.interop_marker.qualified_name)

    def _target_is_interop_capable(self, declaration: Declaration) -> bool:
        return self.graph.has_marker(declaration.target, self.well_known.interop_marker.qualified_name)

    def _target_has_identifier(self, declaration: Declaration) -> bool:
        value = self._identifier_text(declaration)
        return value is not None and is_valid(value)

    # ------------------------------------------------------------------
    # Helpers

    def _identifier_values(self, declaration: Declaration) -> List[Tuple[str, ...]]:
        return self.graph.marker_values(
            declaration.target, self.well_known.identifier_marker.qualified_name
        )

    def _identifier_text(self, declaration: Declaration) -> Optional[str]:
        values = self._identifier_values(declaration)
        if len(values) != 1 or len(values[0]) != 1:
            return None
        return values[0][0]

    def _identifier(self, declaration: Declaration) -> FieldLayout:
        text = self._identifier_text(declaration)
        if text is None:
            raise IdentifierError(
                f"{declaration.target.qualified_name} has no single identifier value"
            )
        return decode(text)

    def _subject(self, outcome: ValidationOutcome) -> str:
        if outcome is ValidationOutcome.NC0002:
            return self.well_known.activation_interface.name
        if outcome is ValidationOutcome.NC0005:
            return self.well_known.identifier_marker.name
        return self.well_known.interop_marker.name

    def _override_message(self, outcome: ValidationOutcome, declaration: Declaration) -> Optional[str]:
        if outcome is not ValidationOutcome.NC0005:
            return None
        values = self._identifier_values(declaration)
        marker = self.well_known.identifier_marker.name
        if len(values) > 1:
            return f"Target class has {len(values)} {marker} occurrences, expected exactly one"
        if values and len(values[0]) == 1:
            return f"Target class {marker} value '{values[0][0]}' is not a valid identifier"
        if values:
            return f"Target class {marker} must have exactly one identifier argument"
        return None


__all__ = ["DeclarationValidator"]
