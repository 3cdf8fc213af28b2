"""Symbol graph sources consumed by the generator pipeline."""

from .base import StaticSymbolGraph, SymbolGraph
from .csharp import TREE_SITTER_AVAILABLE, CSharpGraphBuilder, CSharpParseError, CSharpSourceGraph
from .manifest import ManifestError, ManifestGraph, load_manifest, parse_manifest

__all__ = [
    "CSharpGraphBuilder",
    "CSharpParseError",
    "CSharpSourceGraph",
    "ManifestError",
    "ManifestGraph",
    "StaticSymbolGraph",
    "SymbolGraph",
    "TREE_SITTER_AVAILABLE",
    "load_manifest",
    "parse_manifest",
]
