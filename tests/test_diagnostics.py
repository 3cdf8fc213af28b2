"""Tests for diagnostic reporting."""

from __future__ import annotations

from nativecom.diagnostics import (
    DESCRIPTORS,
    DiagnosticCode,
    DiagnosticReporter,
    Severity,
    format_diagnostic,
)
from nativecom.models import SourceLocation


def test_every_code_has_a_descriptor() -> None:
    assert [code.value for code in DiagnosticCode] == [
        "NC0001",
        "NC0002",
        "NC0003",
        "NC0004",
        "NC0005",
        "NC0006",
    ]
    assert [code for code in DiagnosticCode if DESCRIPTORS[code].severity is Severity.WARNING] == [
        DiagnosticCode.NC0006
    ]


def test_warning_does_not_count_as_error() -> None:
    reporter = DiagnosticReporter()

    diagnostic = reporter.report(DiagnosticCode.NC0006, None, "App.A", "App.B")

    assert format_diagnostic(diagnostic) == (
        "warning NC0006: Factory class already creates App.A; the association with App.B is ignored"
    )
    assert reporter.has_errors is False


def test_report_formats_message_and_location() -> None:
    reporter = DiagnosticReporter()
    location = SourceLocation("src/Factory.cs", 12, 22)

    diagnostic = reporter.report(DiagnosticCode.NC0002, location, "IClassFactory")

    assert diagnostic.message == "Factory class does not implement IClassFactory"
    assert format_diagnostic(diagnostic) == (
        "src/Factory.cs(12,22): error NC0002: Factory class does not implement IClassFactory"
    )
    assert reporter.has_errors is True
    assert reporter.codes() == [DiagnosticCode.NC0002]


def test_report_without_location_and_with_message_override() -> None:
    reporter = DiagnosticReporter()

    missing = reporter.report(DiagnosticCode.NC0001, None, "Bluehill.NativeCom.IClassFactory")
    custom = reporter.report(DiagnosticCode.NC0005, None, message="custom text")

    assert format_diagnostic(missing) == (
        "error NC0001: 'Bluehill.NativeCom.IClassFactory' couldn't be found"
    )
    assert custom.message == "custom text"
    assert [d.code for d in reporter.diagnostics] == [DiagnosticCode.NC0001, DiagnosticCode.NC0005]


def test_empty_reporter_has_no_errors() -> None:
    reporter = DiagnosticReporter()

    assert reporter.has_errors is False
    assert reporter.diagnostics == []
