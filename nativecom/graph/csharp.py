"""Tree-sitter powered symbol graph over C# source files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..models import Marker, SourceLocation, Symbol
from .base import StaticSymbolGraph

try:  # pragma: no cover - optional dependency
    from tree_sitter import Parser
    from tree_sitter_languages import get_language

    TREE_SITTER_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    Parser = None  # type: ignore[assignment]
    get_language = None  # type: ignore[assignment]
    TREE_SITTER_AVAILABLE = False


_TYPE_DECLARATIONS = {
    "class_declaration": "class",
    "record_declaration": "class",
    "interface_declaration": "interface",
    "struct_declaration": "struct",
}
_NAME_NODES = {"identifier", "qualified_name", "generic_name", "alias_qualified_name", "predefined_type"}
_USING_PATTERN = re.compile(
    r"^(?:global\s+)?using\s+(?P<static>static\s+)?(?:(?P<alias>\w+)\s*=\s*)?(?P<target>[\w.:<>, ]+?)\s*;$",
    re.DOTALL,
)
_GENERIC_PATTERN = re.compile(r"^(?P<base>[\w.]+)<(?P<args>.*)>$", re.DOTALL)
_TYPEOF_PATTERN = re.compile(r"^typeof\s*\((?P<type>.+)\)$", re.DOTALL)
_STRING_PATTERN = re.compile(r'^@?"(?P<value>.*)"$', re.DOTALL)
_NAMED_ARGUMENT = re.compile(r"^\w+\s*(=|:)(?!:)")

logger = get_logger("graph.csharp")


class CSharpParseError(RuntimeError):
    """Raised when C# sources cannot be parsed."""


@dataclass
class _RawAttribute:
    name: str
    arguments: List[str]


@dataclass
class _RawType:
    qualified_name: str
    namespace: str
    kind: str
    location: SourceLocation
    scopes: Tuple[str, ...]
    usings: Tuple[str, ...]
    aliases: Dict[str, str]
    attributes: List[_RawAttribute] = field(default_factory=list)
    bases: List[str] = field(default_factory=list)


@dataclass
class _FileContext:
    path: str
    source: bytes
    usings: List[str] = field(default_factory=list)
    aliases: Dict[str, str] = field(default_factory=dict)
    types: List[_RawType] = field(default_factory=list)


class CSharpSourceGraph(StaticSymbolGraph):
    """Symbol graph assembled from C# declarations found by tree-sitter."""

    def __init__(self, symbols: Iterable[Symbol], references: Iterable[str] = ()) -> None:
        super().__init__(list(symbols), references)


class CSharpGraphBuilder:
    """Parses C# sources and resolves attribute and base type names to qualified names."""

    def __init__(self, references: Iterable[str] = (), enabled: Optional[bool] = None) -> None:
        self._references = list(references)
        self._enabled = TREE_SITTER_AVAILABLE if enabled is None else enabled
        self._parser: Optional[Parser] = None

    @property
    def available(self) -> bool:
        return self._enabled

    def build_from_paths(self, root: Path, paths: Sequence[Path]) -> CSharpSourceGraph:
        sources: List[Tuple[str, str]] = []
        for path in paths:
            try:
                text = path.read_text(encoding="utf-8-sig")
            except (OSError, UnicodeDecodeError) as exc:
                raise CSharpParseError(f"Failed to read {path}: {exc}") from exc
            try:
                relative = path.relative_to(root).as_posix()
            except ValueError:
                relative = path.as_posix()
            sources.append((relative, text))
        return self.build(sources)

    def build(self, sources: Sequence[Tuple[str, str]]) -> CSharpSourceGraph:
        """Build a graph from ``(path, text)`` pairs, in the given order."""
        parser = self._get_parser()
        raw_types: List[_RawType] = []
        for path, text in sources:
            source_bytes = text.encode("utf-8")
            tree = parser.parse(source_bytes)
            context = _FileContext(path=path, source=source_bytes)
            self._collect_usings(tree.root_node, context)
            self._walk(tree.root_node, context, namespace="", containers=())
            raw_types.extend(context.types)
            logger.debug("Parsed %s (%d types)", path, len(context.types))

        known: Set[str] = {raw.qualified_name for raw in raw_types} | set(self._references)

        merged: Dict[str, Symbol] = {}
        for raw in raw_types:
            symbol = self._resolve(raw, known)
            existing = merged.get(symbol.qualified_name)
            if existing is None:
                merged[symbol.qualified_name] = symbol
                continue
            # Partial declarations contribute to a single symbol.
            interfaces = existing.interfaces + tuple(
                name for name in symbol.interfaces if name not in existing.interfaces
            )
            merged[symbol.qualified_name] = Symbol(
                qualified_name=existing.qualified_name,
                namespace=existing.namespace,
                kind=existing.kind,
                markers=existing.markers + symbol.markers,
                interfaces=interfaces,
                location=existing.location,
            )
        logger.debug("Resolved %d C# types", len(merged))
        return CSharpSourceGraph(merged.values(), self._references)

    # ------------------------------------------------------------------
    # Parsing

    def _get_parser(self) -> Parser:
        if self._parser is not None:
            return self._parser
        if not self._enabled or not TREE_SITTER_AVAILABLE:
            raise CSharpParseError(
                "tree-sitter is required for C# sources. Install it with `pip install nativecom[csharp]`."
            )
        parser = Parser()
        parser.set_language(get_language("c_sharp"))
        self._parser = parser
        return parser

    def _collect_usings(self, node, context: _FileContext) -> None:  # type: ignore[no-untyped-def]
        for child in node.named_children:
            if child.type == "using_directive":
                match = _USING_PATTERN.match(self._node_text(child, context.source).strip())
                if not match or match.group("static"):
                    continue
                target = _normalise_name(match.group("target"))
                alias = match.group("alias")
                if alias:
                    context.aliases[alias] = target
                else:
                    context.usings.append(target)
            elif child.type in {"namespace_declaration", "file_scoped_namespace_declaration", "declaration_list"}:
                self._collect_usings(child, context)

    def _walk(self, node, context: _FileContext, *, namespace: str, containers: Tuple[str, ...]) -> None:  # type: ignore[no-untyped-def]
        current_namespace = namespace
        for child in node.named_children:
            if child.type == "file_scoped_namespace_declaration":
                current_namespace = _join(namespace, self._declared_name(child, context))
                # Newer grammars nest members under the declaration, older ones keep them as siblings.
                self._walk(child, context, namespace=current_namespace, containers=containers)
            elif child.type == "namespace_declaration":
                nested = _join(current_namespace, self._declared_name(child, context))
                body = self._first_child(child, {"declaration_list"})
                if body is not None:
                    self._walk(body, context, namespace=nested, containers=containers)
            elif child.type in _TYPE_DECLARATIONS:
                self._collect_type(child, context, current_namespace, containers)

    def _collect_type(self, node, context: _FileContext, namespace: str, containers: Tuple[str, ...]) -> None:  # type: ignore[no-untyped-def]
        name_node = node.child_by_field_name("name") or self._first_child(node, {"identifier"})
        if name_node is None:
            return
        name = self._node_text(name_node, context.source)
        qualified = ".".join(part for part in (namespace, *containers, name) if part)
        line, column = name_node.start_point
        raw = _RawType(
            qualified_name=qualified,
            namespace=namespace,
            kind=_TYPE_DECLARATIONS[node.type],
            location=SourceLocation(path=context.path, line=line + 1, column=column + 1),
            scopes=_scopes(namespace, containers),
            usings=tuple(context.usings),
            aliases=dict(context.aliases),
        )
        for child in node.named_children:
            if child.type == "attribute_list":
                raw.attributes.extend(self._attributes(child, context))
            elif child.type == "base_list":
                raw.bases.extend(
                    self._node_text(base, context.source)
                    for base in child.named_children
                    if base.type in _NAME_NODES
                )
        context.types.append(raw)

        body = node.child_by_field_name("body") or self._first_child(node, {"declaration_list"})
        if body is not None:
            nested_containers = (*containers, name)
            for member in body.named_children:
                if member.type in _TYPE_DECLARATIONS:
                    self._collect_type(member, context, namespace, nested_containers)

    def _attributes(self, node, context: _FileContext) -> Iterable[_RawAttribute]:  # type: ignore[no-untyped-def]
        for attribute in node.named_children:
            if attribute.type != "attribute":
                continue
            name_node = attribute.child_by_field_name("name") or self._first_child(attribute, _NAME_NODES)
            if name_node is None:
                continue
            arguments: List[str] = []
            argument_list = self._first_child(attribute, {"attribute_argument_list"})
            if argument_list is not None:
                arguments = [
                    self._node_text(argument, context.source).strip()
                    for argument in argument_list.named_children
                    if argument.type == "attribute_argument"
                ]
            yield _RawAttribute(name=self._node_text(name_node, context.source), arguments=arguments)

    def _declared_name(self, node, context: _FileContext) -> str:  # type: ignore[no-untyped-def]
        name_node = node.child_by_field_name("name") or self._first_child(node, {"identifier", "qualified_name"})
        return _normalise_name(self._node_text(name_node, context.source)) if name_node is not None else ""

    @staticmethod
    def _first_child(node, types: Set[str]):  # type: ignore[no-untyped-def]
        for child in node.named_children:
            if child.type in types:
                return child
        return None

    @staticmethod
    def _node_text(node, source_bytes: bytes) -> str:  # type: ignore[no-untyped-def]
        return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")

    # ------------------------------------------------------------------
    # Name resolution

    def _resolve(self, raw: _RawType, known: Set[str]) -> Symbol:
        markers: List[Marker] = []
        for attribute in raw.attributes:
            type_name, type_arguments = self._resolve_name(attribute.name, raw, known, attribute=True)
            arguments = list(type_arguments)
            for text in attribute.arguments:
                value = self._resolve_argument(text, raw, known)
                if value is not None:
                    arguments.append(value)
            markers.append(Marker(type_name=type_name, arguments=tuple(arguments)))
        interfaces = tuple(self._resolve_name(base, raw, known)[0] for base in raw.bases)
        return Symbol(
            qualified_name=raw.qualified_name,
            namespace=raw.namespace,
            kind=raw.kind,
            markers=tuple(markers),
            interfaces=interfaces,
            location=raw.location,
        )

    def _resolve_argument(self, text: str, raw: _RawType, known: Set[str]) -> Optional[str]:
        if _NAMED_ARGUMENT.match(text):
            return None
        typeof = _TYPEOF_PATTERN.match(text)
        if typeof:
            return self._resolve_name(typeof.group("type"), raw, known)[0]
        string = _STRING_PATTERN.match(text)
        if string:
            return string.group("value")
        return text

    def _resolve_name(
        self, text: str, raw: _RawType, known: Set[str], *, attribute: bool = False
    ) -> Tuple[str, Tuple[str, ...]]:
        name = _normalise_name(text)
        type_arguments: Tuple[str, ...] = ()
        generic = _GENERIC_PATTERN.match(name)
        if generic:
            name = generic.group("base")
            type_arguments = tuple(
                self._resolve_name(argument, raw, known)[0]
                for argument in _split_arguments(generic.group("args"))
            )

        head, _, rest = name.partition(".")
        if head in raw.aliases:
            name = raw.aliases[head] + ("." + rest if rest else "")

        candidates = [name]
        if attribute and not name.endswith("Attribute"):
            candidates.insert(0, name + "Attribute")
        if type_arguments:
            candidates = [f"{candidate}`{len(type_arguments)}" for candidate in candidates]

        for scope in (*raw.scopes, *raw.usings):
            for candidate in candidates:
                qualified = _join(scope, candidate)
                if qualified in known:
                    return qualified, type_arguments
        return candidates[-1], type_arguments


def _normalise_name(text: str) -> str:
    cleaned = re.sub(r"\s+", "", text)
    if cleaned.startswith("global::"):
        cleaned = cleaned[len("global::") :]
    return cleaned.replace("::", ".")


def _split_arguments(text: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current = ""
    for char in text:
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        current += char
    if current:
        parts.append(current)
    return [part for part in parts if part]


def _join(prefix: str, name: str) -> str:
    if not prefix:
        return name
    if not name:
        return prefix
    return f"{prefix}.{name}"


def _scopes(namespace: str, containers: Tuple[str, ...]) -> Tuple[str, ...]:
    scopes: List[str] = []
    for depth in range(len(containers), 0, -1):
        scopes.append(_join(namespace, ".".join(containers[:depth])))
    parts = namespace.split(".") if namespace else []
    for depth in range(len(parts), 0, -1):
        scopes.append(".".join(parts[:depth]))
    scopes.append("")
    return tuple(scopes)


__all__ = [
    "CSharpGraphBuilder",
    "CSharpParseError",
    "CSharpSourceGraph",
    "TREE_SITTER_AVAILABLE",
]
