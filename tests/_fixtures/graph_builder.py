"""Helpers for assembling symbol graphs and manifest projects in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml

from nativecom.config import (
    ACTIVATION_INTERFACE,
    FACTORY_MARKERS,
    IDENTIFIER_MARKER,
    INTEROP_MARKER,
    MarkerConfig,
)
from nativecom.graph import StaticSymbolGraph
from nativecom.models import Marker, SourceLocation, Symbol

GENERIC_FACTORY_MARKER, FACTORY_MARKER = FACTORY_MARKERS
EXPLORER_CLSID = "E10F1111-2222-3333-4444-555566667777"


class GraphBuilder:
    """Builds a StaticSymbolGraph of factories and targets in declaration order."""

    def __init__(self, references: Optional[Iterable[str]] = None) -> None:
        self.symbols: List[Symbol] = []
        self.references = (
            list(references) if references is not None else MarkerConfig().reference_types()
        )

    def target(
        self,
        name: str,
        identifier: Optional[str] = EXPLORER_CLSID,
        *,
        interop: bool = True,
        extra_markers: Iterable[Marker] = (),
    ) -> Symbol:
        markers: List[Marker] = []
        if interop:
            markers.append(Marker(INTEROP_MARKER))
        if identifier is not None:
            markers.append(Marker(IDENTIFIER_MARKER, (identifier,)))
        markers.extend(extra_markers)
        return self.add(name, markers=markers)

    def factory(
        self,
        name: str,
        *targets: str,
        implements: bool = True,
        interop: bool = True,
        generic: bool = True,
        interfaces: Iterable[str] = (),
    ) -> Symbol:
        markers: List[Marker] = []
        for target in targets:
            if generic:
                markers.append(Marker(GENERIC_FACTORY_MARKER, (target,)))
            else:
                markers.append(Marker(FACTORY_MARKER, ("Contoso.IUnused", target)))
        if interop:
            markers.append(Marker(INTEROP_MARKER))
        declared = list(interfaces)
        if implements:
            declared.append(ACTIVATION_INTERFACE)
        return self.add(name, markers=markers, interfaces=declared)

    def add(
        self,
        name: str,
        *,
        markers: Iterable[Marker] = (),
        interfaces: Iterable[str] = (),
        kind: str = "class",
        namespace: Optional[str] = None,
    ) -> Symbol:
        if namespace is None:
            namespace = name.rsplit(".", 1)[0] if "." in name else ""
        symbol = Symbol(
            qualified_name=name,
            namespace=namespace,
            kind=kind,
            markers=tuple(markers),
            interfaces=tuple(interfaces),
            location=SourceLocation("Program.cs", len(self.symbols) + 1, 7),
        )
        self.symbols.append(symbol)
        return symbol

    def build(self) -> StaticSymbolGraph:
        return StaticSymbolGraph(self.symbols, self.references)


def explorer_graph() -> StaticSymbolGraph:
    """The canonical single-factory module used across tests."""
    builder = GraphBuilder()
    builder.target("TestNamespace.ExplorerCommand")
    builder.factory("TestNamespace.ExplorerCommandFactory", "TestNamespace.ExplorerCommand")
    return builder.build()


class ProjectBuilder:
    """Writes a manifest-backed project (config plus symbol manifest) under tmp_path."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")

    def write_manifest(
        self,
        types: List[Dict[str, Any]],
        *,
        references: Optional[Iterable[str]] = None,
        name: str = "nativecom.symbols.yml",
    ) -> Path:
        refs = list(references) if references is not None else MarkerConfig().reference_types()
        path = self.root / name
        path.write_text(
            yaml.safe_dump({"references": refs, "types": types}, sort_keys=False),
            encoding="utf-8",
        )
        return path

    def write_explorer_manifest(self, identifier: str = EXPLORER_CLSID) -> Path:
        return self.write_manifest(
            [
                {
                    "name": "TestNamespace.ExplorerCommand",
                    "file": "ExplorerCommand.cs",
                    "line": 6,
                    "column": 14,
                    "attributes": [
                        INTEROP_MARKER,
                        {"type": IDENTIFIER_MARKER, "args": [identifier]},
                    ],
                },
                {
                    "name": "TestNamespace.ExplorerCommandFactory",
                    "file": "ExplorerCommandFactory.cs",
                    "line": 8,
                    "column": 22,
                    "attributes": [
                        {"type": GENERIC_FACTORY_MARKER, "args": ["TestNamespace.ExplorerCommand"]},
                        INTEROP_MARKER,
                    ],
                    "interfaces": [ACTIVATION_INTERFACE],
                },
            ]
        )

    def path(self) -> Path:
        return self.root


__all__ = [
    "EXPLORER_CLSID",
    "FACTORY_MARKER",
    "GENERIC_FACTORY_MARKER",
    "GraphBuilder",
    "ProjectBuilder",
    "explorer_graph",
]
