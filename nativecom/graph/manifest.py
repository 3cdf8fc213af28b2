"""YAML symbol manifests as a symbol graph source.

A manifest lists the types of a compilation in declaration order::

    references:
      - Bluehill.NativeCom.IClassFactory
    types:
      - name: Contoso.Shell.ExplorerCommand
        namespace: Contoso.Shell
        file: src/ExplorerCommand.cs
        line: 9
        column: 22
        attributes:
          - type: System.Runtime.InteropServices.Marshalling.GeneratedComClassAttribute
          - type: System.Runtime.InteropServices.GuidAttribute
            args: ["E10F1111-2222-3333-4444-555566667777"]
        interfaces: [Contoso.Shell.IExplorerCommand]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from ..logging import get_logger
from ..models import Marker, SourceLocation, Symbol
from .base import StaticSymbolGraph

_KINDS = {"class", "interface", "struct"}

logger = get_logger("graph.manifest")


class ManifestError(RuntimeError):
    """Raised when a symbol manifest is malformed."""


class ManifestGraph(StaticSymbolGraph):
    """Symbol graph backed by a parsed manifest document."""

    def __init__(
        self,
        symbols: Iterable[Symbol],
        references: Iterable[str] = (),
        *,
        source: Optional[Path] = None,
    ) -> None:
        super().__init__(list(symbols), references)
        self.source = source


def load_manifest(path: Path, references: Iterable[str] = ()) -> ManifestGraph:
    """Load a manifest file, merging ``references`` with the ones it declares."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestError(f"Symbol manifest not found at {path}") from exc
    try:
        data = yaml.safe_load(text) if text.strip() else {}
    except yaml.YAMLError as exc:
        raise ManifestError(f"Failed to parse {path.name}: {exc}") from exc
    graph = parse_manifest(data or {}, references, default_file=path.name)
    graph.source = path
    logger.debug("Loaded %d types from %s", len(graph), path)
    return graph


def parse_manifest(
    data: Any,
    references: Iterable[str] = (),
    *,
    default_file: str = "<manifest>",
) -> ManifestGraph:
    """Build a graph from an already-decoded manifest mapping."""
    if not isinstance(data, Mapping):
        raise ManifestError("Symbol manifest must contain a mapping at the root")

    declared_refs = data.get("references") or []
    if not isinstance(declared_refs, list):
        raise ManifestError("'references' must be a list of type names")
    merged_refs = [str(name) for name in declared_refs] + [name for name in references]

    raw_types = data.get("types") or []
    if not isinstance(raw_types, list):
        raise ManifestError("'types' must be a list")

    symbols: List[Symbol] = []
    seen: Dict[str, int] = {}
    for position, raw in enumerate(raw_types):
        symbol = _parse_symbol(raw, position, default_file)
        if symbol.qualified_name in seen:
            raise ManifestError(
                f"Type '{symbol.qualified_name}' is declared twice "
                f"(entries {seen[symbol.qualified_name]} and {position})"
            )
        seen[symbol.qualified_name] = position
        symbols.append(symbol)
    return ManifestGraph(symbols, merged_refs)


def _parse_symbol(raw: Any, position: int, default_file: str) -> Symbol:
    if not isinstance(raw, Mapping):
        raise ManifestError(f"Type entry {position} must be a mapping")
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ManifestError(f"Type entry {position} is missing a 'name'")
    name = name.strip()

    namespace = raw.get("namespace")
    if namespace is None:
        namespace = name.rsplit(".", 1)[0] if "." in name else ""
    if not isinstance(namespace, str):
        raise ManifestError(f"Type '{name}' has a non-string namespace")
    if namespace and not name.startswith(namespace + "."):
        raise ManifestError(f"Type '{name}' is not inside namespace '{namespace}'")

    kind = str(raw.get("kind", "class")).lower()
    if kind not in _KINDS:
        raise ManifestError(f"Type '{name}' has unsupported kind '{kind}'")

    markers = tuple(_parse_marker(name, item) for item in raw.get("attributes") or [])
    interfaces = raw.get("interfaces") or []
    if not isinstance(interfaces, list):
        raise ManifestError(f"Type '{name}' must list interfaces as a sequence")

    location = SourceLocation(
        path=str(raw.get("file") or default_file),
        line=_as_position(raw.get("line"), name, "line", default=position + 1),
        column=_as_position(raw.get("column"), name, "column", default=1),
    )
    return Symbol(
        qualified_name=name,
        namespace=namespace,
        kind=kind,
        markers=markers,
        interfaces=tuple(str(item) for item in interfaces),
        location=location,
    )


def _parse_marker(owner: str, raw: Any) -> Marker:
    if isinstance(raw, str):
        return Marker(type_name=raw)
    if not isinstance(raw, Mapping) or not isinstance(raw.get("type"), str):
        raise ManifestError(f"Attribute on '{owner}' must be a type name or a mapping with 'type'")
    args = raw.get("args") or []
    if not isinstance(args, list):
        args = [args]
    arguments: Tuple[str, ...] = tuple(str(arg) for arg in args)
    return Marker(type_name=raw["type"], arguments=arguments)


def _as_position(value: Any, owner: str, label: str, *, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ManifestError(f"Type '{owner}' has an invalid {label} '{value}'")
    return value


__all__ = ["ManifestError", "ManifestGraph", "load_manifest", "parse_manifest"]
