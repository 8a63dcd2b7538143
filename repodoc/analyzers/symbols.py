"""Tree-sitter powered class extraction."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from tree_sitter import Node, Parser
from tree_sitter_language_pack import get_parser

from ..logging import get_logger
from ..models import ClassInfo, FileAnalysis, ProjectStructure
from ..repo_scanner import RepoScanner
from .categories import categorize
from .metadata import load_project_metadata

_SUPPORTED_LANGUAGES = {
    "Python": "python",
    "Java": "java",
    "TypeScript": "typescript",
    "JavaScript": "javascript",
    "Dart": "dart",
}

_CLASS_NODES = {
    "python": {"class_definition"},
    "java": {"class_declaration", "interface_declaration", "enum_declaration", "record_declaration"},
    "typescript": {"class_declaration", "abstract_class_declaration", "interface_declaration"},
    "javascript": {"class_declaration"},
    "dart": {"class_definition", "mixin_declaration", "enum_declaration"},
}

_METHOD_NODES = {
    "python": {"function_definition"},
    "java": {"method_declaration", "constructor_declaration"},
    "typescript": {"method_definition", "method_signature", "abstract_method_signature"},
    "javascript": {"method_definition"},
    "dart": {
        "function_signature",
        "getter_signature",
        "setter_signature",
        "constructor_signature",
        "constant_constructor_signature",
        "factory_constructor_signature",
        "redirecting_factory_constructor_signature",
    },
}

_FUNCTION_NODES = {
    "python": {"function_definition"},
    "java": set(),
    "typescript": {"function_declaration"},
    "javascript": {"function_declaration"},
    "dart": {"function_signature"},
}

# Dart class bodies hold signatures inside these wrappers; function bodies are siblings.
_DART_MEMBER_NODES = {"method_signature", "declaration"}
_DART_BODY_NODES = {"class_body", "enum_body"}

_HERITAGE_FIELDS = ("superclass", "superclasses")
_INTERFACE_NODES = {"interfaces", "super_interfaces"}
_HERITAGE_KEYWORDS = {"extends", "implements", "with", "on", "metaclass"}
_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$.]*")


class StructureAnalyzer:
    """Produces a :class:`ProjectStructure` (file → classes) for a repository."""

    def __init__(
        self,
        scanner: RepoScanner | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.scanner = scanner or RepoScanner()
        self.logger = logger or get_logger("structure")
        self._parsers: Dict[str, Parser] = {}

    def analyze(self, project_path: str | Path) -> ProjectStructure:
        manifest = self.scanner.scan(project_path)
        root = Path(manifest.root)
        self.logger.info("Found %d source files to analyze", len(manifest.files))

        files: Dict[str, FileAnalysis] = {}
        for meta in manifest.files:
            path = root / meta.path
            analysis = FileAnalysis(path=str(path), relative_path=meta.path, language=meta.language)
            language_key = _SUPPORTED_LANGUAGES.get(meta.language or "")
            if language_key is not None:
                try:
                    source = path.read_bytes()
                except OSError as exc:
                    self.logger.warning("Error reading %s: %s", meta.path, exc)
                else:
                    self._collect(language_key, source, analysis)
            files[meta.path] = analysis

        return ProjectStructure(
            root=str(root),
            metadata=load_project_metadata(root),
            files=files,
        )

    def _collect(self, language_key: str, source: bytes, analysis: FileAnalysis) -> None:
        tree = self._get_parser(language_key).parse(source)
        for node in _walk(tree.root_node):
            if node.type in _CLASS_NODES[language_key]:
                name = _name_text(node, source)
                if name:
                    info = ClassInfo(
                        name=name,
                        methods=list(self._methods(language_key, node, source)),
                        superclass=_superclass(node, source),
                        interfaces=_interfaces(node, source),
                    )
                    info.category = categorize(info)
                    analysis.classes.append(info)
            elif node.type in _FUNCTION_NODES[language_key] and not _inside_class(node, language_key):
                name = _name_text(node, source)
                if name:
                    analysis.functions.append(name)

    @staticmethod
    def _methods(language_key: str, class_node: Node, source: bytes) -> Iterable[str]:
        body = class_node.child_by_field_name("body")
        if body is None:
            body = next((child for child in class_node.children if child.type in _DART_BODY_NODES), None)
        if body is None:
            return
        for child in body.children:
            if language_key == "dart":
                if child.type in _DART_MEMBER_NODES:
                    yield from _dart_signature_names(child, source)
                continue
            target = child
            if child.type == "decorated_definition":
                target = child.child_by_field_name("definition") or child
            if target.type in _METHOD_NODES[language_key]:
                name = _name_text(target, source)
                if name:
                    yield name

    def _get_parser(self, language_key: str) -> Parser:
        parser = self._parsers.get(language_key)
        if parser is None:
            parser = get_parser(language_key)
            self._parsers[language_key] = parser
        return parser


def _walk(node: Node) -> Iterable[Node]:
    stack: List[Node] = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def _inside_class(node: Node, language_key: str) -> bool:
    parent: Optional[Node] = node.parent
    while parent is not None:
        if parent.type in _CLASS_NODES[language_key]:
            return True
        parent = parent.parent
    return False


def _dart_signature_names(member: Node, source: bytes) -> Iterable[str]:
    stack: List[Node] = [member]
    while stack:
        current = stack.pop()
        if current.type in _METHOD_NODES["dart"]:
            name = _name_text(current, source)
            if name:
                yield name
            continue
        stack.extend(reversed(current.children))


def _superclass(node: Node, source: bytes) -> Optional[str]:
    for field in _HERITAGE_FIELDS:
        child = node.child_by_field_name(field)
        if child is None:
            child = next((item for item in node.children if item.type == field), None)
        if child is not None:
            names = _type_names(_text(child, source))
            return names[0] if names else None
    return None


def _interfaces(node: Node, source: bytes) -> List[str]:
    child = node.child_by_field_name("interfaces")
    if child is None:
        child = next((item for item in node.children if item.type in _INTERFACE_NODES), None)
    if child is None:
        return []
    return _type_names(_text(child, source))


def _type_names(text: str) -> List[str]:
    return [token for token in _IDENTIFIER.findall(text) if token not in _HERITAGE_KEYWORDS]


def _name_text(node: Node, source: bytes) -> str:
    name = _field_text(node, "name", source)
    if name:
        return name
    for child in node.children:
        if child.type == "identifier":
            return _text(child, source)
    return ""


def _field_text(node: Node, field: str, source: bytes) -> str:
    child = node.child_by_field_name(field)
    if child is None:
        return ""
    return _text(child, source)


def _text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


__all__ = ["StructureAnalyzer"]
