"""
Small helpers for reading tree-sitter C# syntax nodes.

Grammar releases differ in a few shapes (``equals_value_clause`` wrappers,
``returns`` versus ``type`` fields); the helpers here accept both.
"""

import re
from typing import Iterator, List, Optional

from tree_sitter import Node

from analysis.config import (
    COMMENT_NODE,
    DOC_COMMENT_PREFIXES,
    PREPROCESSOR_CONTAINERS,
)

_SPACE_RE = re.compile(r"\s+")
_TYPE_PUNCT_RE = re.compile(r"\s*([<>\[\](),?.*])\s*")


def node_text(node: Optional[Node]) -> str:
    """Source text of a node, or an empty string for ``None``."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def line_of(node: Node) -> int:
    """1-indexed line on which the node starts."""
    return node.start_point.row + 1


def normalize_whitespace(text: str) -> str:
    return _SPACE_RE.sub(" ", text).strip()


def normalize_type_text(text: str) -> str:
    """Canonical spelling of a type as written: ``List< int,string >`` -> ``List<int, string>``."""
    collapsed = _TYPE_PUNCT_RE.sub(r"\1", normalize_whitespace(text))
    return collapsed.replace(",", ", ")


def declared_name(node: Node) -> Optional[str]:
    """Identifier declared by ``node`` (type, member, parameter or declarator)."""
    name_node = node.child_by_field_name("name")
    if name_node is None:
        for child in node.children:
            if child.type == "identifier":
                name_node = child
                break
    if name_node is None:
        return None
    return node_text(name_node) or None


def simple_name(node: Optional[Node]) -> str:
    """Name of an identifier or generic name without its type arguments."""
    if node is None:
        return ""
    if node.type == "generic_name":
        for child in node.children:
            if child.type == "identifier":
                return node_text(child)
    if node.type == "qualified_name":
        return simple_name(node.child_by_field_name("name"))
    return node_text(node)


def modifiers_of(node: Node) -> List[str]:
    """Declared modifiers in source order."""
    return [node_text(child) for child in node.children if child.type == "modifier"]


def find_initializer(node: Node) -> Optional[Node]:
    """Expression after ``=`` in a declarator, property, enum member or parameter."""
    for child in node.children:
        if child.type == "equals_value_clause":
            for inner in child.named_children:
                if inner.type != COMMENT_NODE:
                    return inner
            return None

    seen_equals = False
    for child in node.children:
        if seen_equals and child.is_named and child.type != COMMENT_NODE:
            return child
        if child.type == "=":
            seen_equals = True
    return None


def return_type_node(node: Node) -> Optional[Node]:
    return node.child_by_field_name("returns") or node.child_by_field_name("type")


def callable_body(node: Node) -> Optional[Node]:
    """Block or expression body of a constructor or method, ``None`` if declare-only."""
    body = node.child_by_field_name("body")
    if body is not None:
        return body
    for child in node.children:
        if child.type in ("block", "arrow_expression_clause"):
            return child
    return None


def variable_declarators(node: Node) -> List[Node]:
    """Declarators of a field declaration or of a ``variable_declaration``."""
    declaration = node
    if node.type != "variable_declaration":
        declaration = next(
            (child for child in node.children if child.type == "variable_declaration"),
            None,
        )
    if declaration is None:
        return []
    return [child for child in declaration.children if child.type == "variable_declarator"]


def variable_declaration_of(node: Node) -> Optional[Node]:
    for child in node.children:
        if child.type == "variable_declaration":
            return child
    return None


def body_members(node: Node) -> Iterator[Node]:
    """Direct declarations inside a body, looking through ``#if`` blocks."""
    for child in node.named_children:
        if child.type in PREPROCESSOR_CONTAINERS:
            yield from body_members(child)
        elif child.type != COMMENT_NODE:
            yield child


def is_doc_comment(comment_text: str) -> bool:
    """Check if a comment is an XML documentation comment (``///`` or ``/**``).

    ``////`` and ``/**/`` are ordinary comments.
    """
    stripped = comment_text.strip()
    if stripped.startswith("////") or stripped.startswith("/**/"):
        return False
    return any(stripped.startswith(prefix) for prefix in DOC_COMMENT_PREFIXES)


def clean_doc_comment(comment_text: str) -> List[str]:
    """Strip documentation comment delimiters, keeping the markup lines."""
    stripped = comment_text.strip()
    if stripped.startswith("///"):
        line = stripped[3:]
        return [line[1:] if line.startswith(" ") else line]

    lines = []
    for idx, line in enumerate(stripped.split("\n")):
        text = line.strip()
        if idx == 0 and text.startswith("/**"):
            text = text[3:]
        if text.endswith("*/"):
            text = text[:-2].rstrip()
        if text.startswith("*"):
            text = text[1:]
            if text.startswith(" "):
                text = text[1:]
        lines.append(text)
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


def preceding_doc_comment_lines(node: Node) -> List[str]:
    """Collect documentation comment lines immediately preceding a declaration.

    Walks backward through comment siblings; a blank line ends the run.
    Ordinary comments inside the run are skipped.
    """
    comments = []
    sibling = node.prev_sibling
    expected_row = node.start_point.row

    while sibling is not None and sibling.type == COMMENT_NODE:
        if expected_row - sibling.end_point.row > 1:
            break
        text = node_text(sibling)
        if is_doc_comment(text):
            comments.append(text)
        expected_row = sibling.start_point.row
        sibling = sibling.prev_sibling

    comments.reverse()
    lines: List[str] = []
    for comment in comments:
        lines.extend(clean_doc_comment(comment))
    return lines
