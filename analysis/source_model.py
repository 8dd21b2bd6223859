"""
Source model: the semantic queries the declaration analysis relies on.

``SourceModel`` is the interface the type graph builder and its describers
consume. ``SyntaxSourceModel`` answers the queries from a tree-sitter syntax
tree plus a ``TypeIndex`` of every type declared in the analyzed sources:
type references are resolved through enclosing types, enclosing namespaces
and ``using`` directives, and anything that cannot be found keeps the
spelling used in the source.
"""

import hashlib
import logging
import re
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
from xml.sax.saxutils import quoteattr

from tree_sitter import Node, Tree

from analysis.config import (
    CONTAINER_TYPES,
    FILE_SCOPED_NAMESPACE_NODE,
    FIXED_EXPRESSION_TYPES,
    LITERAL_TYPE_MAP,
    MEMBER_KIND_MAP,
    NAMESPACE_NODE,
    OBJECT_CREATION_NODE,
    PREPROCESSOR_CONTAINERS,
    TYPE_DECLARATION_TYPES,
    TYPE_KIND_MAP,
)
from analysis.errors import ResolutionError
from analysis.models import TYPE_KINDS
from analysis.syntax import (
    declared_name,
    find_initializer,
    line_of,
    node_text,
    normalize_type_text,
    normalize_whitespace,
    preceding_doc_comment_lines,
    simple_name,
    variable_declaration_of,
    variable_declarators,
)

logger = logging.getLogger(__name__)

_GENERIC_ARGS_RE = re.compile(r"<[^<>]*>")

_DOC_ID_PREFIX = {
    "Field": "F",
    "EnumMember": "F",
    "Property": "P",
    "Constructor": "M",
    "Method": "M",
}

# Nodes that introduce parameters visible inside their body
_CALLABLE_SCOPES = {
    "method_declaration",
    "constructor_declaration",
    "local_function_statement",
    "lambda_expression",
    "anonymous_method_expression",
    "operator_declaration",
    "indexer_declaration",
}

# Statements whose direct children may declare locals
_LOCAL_SCOPES = {
    "block",
    "for_statement",
    "using_statement",
    "fixed_statement",
    "switch_section",
}

_MAX_INFERENCE_DEPTH = 8


@dataclass(frozen=True)
class DeclaredSymbol:
    """Handle for a declaration: its name, owner-qualified name and doc id."""

    name: str
    full_name: str
    kind: str
    doc_id: str
    node: Node = field(compare=False, repr=False)


@dataclass(frozen=True)
class CallTarget:
    """Resolved identity of an invoked method."""

    containing_type: str
    method_name: str


def index_key(display_name: str) -> str:
    """Type name with every generic argument list removed (``A<T>.B<U>`` -> ``A.B``)."""
    key = display_name
    while True:
        stripped = _GENERIC_ARGS_RE.sub("", key)
        if stripped == key:
            return key
        key = stripped


def type_parameters_text(node: Node) -> str:
    """``<T, U>`` for a generic declaration, empty otherwise."""
    for child in node.children:
        if child.type == "type_parameter_list":
            names = []
            for param in child.named_children:
                if param.type == "type_parameter":
                    names.append(declared_name(param) or node_text(param))
            return "<" + ", ".join(names) + ">" if names else ""
    return ""


def type_arity(node: Node) -> int:
    for child in node.children:
        if child.type == "type_parameter_list":
            return sum(1 for param in child.named_children if param.type == "type_parameter")
    return 0


def namespace_name(node: Node) -> str:
    return normalize_type_text(node_text(node.child_by_field_name("name")))


def _file_scoped_namespace(root: Node, node: Node) -> Optional[str]:
    name = None
    for child in root.children:
        if child.type == FILE_SCOPED_NAMESPACE_NODE and child.start_byte <= node.start_byte:
            name = namespace_name(child)
    return name


def namespace_parts(node: Node) -> List[str]:
    """Namespaces enclosing ``node``, outermost first."""
    parts: List[str] = []
    inside_file_scoped = False
    parent = node.parent
    while parent is not None:
        if parent.type == NAMESPACE_NODE:
            parts.append(namespace_name(parent))
        elif parent.type == FILE_SCOPED_NAMESPACE_NODE:
            parts.append(namespace_name(parent))
            inside_file_scoped = True
        elif parent.type == "compilation_unit" and not inside_file_scoped:
            scoped = _file_scoped_namespace(parent, node)
            if scoped:
                parts.append(scoped)
        parent = parent.parent
    parts.reverse()
    return [part for part in parts if part]


def enclosing_type_nodes(node: Node) -> List[Node]:
    """Type declarations containing ``node``, innermost first."""
    result = []
    parent = node.parent
    while parent is not None:
        if parent.type in TYPE_DECLARATION_TYPES:
            result.append(parent)
        parent = parent.parent
    return result


def qualified_type_name(node: Node) -> str:
    """Fully-qualified display name of a type declaration (``Ns.Outer<T>.Inner``).

    Raises:
        ResolutionError: If the declaration or one of its containers has no name.
    """
    segments = []
    for type_node in [node] + enclosing_type_nodes(node):
        name = declared_name(type_node)
        if not name:
            raise ResolutionError(
                f"Cannot resolve the name of {type_node.type}",
                node_type=type_node.type,
                line=line_of(type_node),
            )
        segments.append(name + type_parameters_text(type_node))
    segments.reverse()
    return ".".join(namespace_parts(node) + segments)


def declaration_kind(node: Node) -> Optional[str]:
    if node.type == "record_declaration":
        if any(child.type == "struct" for child in node.children):
            return "Struct"
        return "Class"
    return TYPE_KIND_MAP.get(node.type) or MEMBER_KIND_MAP.get(node.type)


def iter_type_declarations(root: Node) -> Iterable[Node]:
    """All type declarations reachable through namespaces and type bodies."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type in TYPE_DECLARATION_TYPES:
            yield node
        for child in reversed(node.named_children):
            if (
                child.type in TYPE_DECLARATION_TYPES
                or child.type in CONTAINER_TYPES
                or child.type in PREPROCESSOR_CONTAINERS
                or child.type in (NAMESPACE_NODE, FILE_SCOPED_NAMESPACE_NODE)
            ):
                stack.append(child)


class TypeIndex:
    """Declared types of a set of sources, keyed by generic-free name and arity."""

    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, int], str] = {}
        self._kinds: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, display_name: object) -> bool:
        return display_name in self._kinds

    def add(self, display_name: str, kind: str, arity: int = 0) -> None:
        self._entries.setdefault((index_key(display_name), arity), display_name)
        self._kinds.setdefault(display_name, kind)

    def add_tree(self, tree: Tree) -> int:
        added = 0
        for node in iter_type_declarations(tree.root_node):
            try:
                display_name = qualified_type_name(node)
            except ResolutionError as e:
                logger.debug("Not indexing unnamed type: %s", e)
                continue
            self.add(display_name, declaration_kind(node) or "Class", type_arity(node))
            added += 1
        return added

    def lookup(self, name: str, arity: int = 0) -> Optional[str]:
        return self._entries.get((index_key(name), arity))

    def kind(self, display_name: str) -> Optional[str]:
        return self._kinds.get(display_name)


def build_type_index(trees: Iterable[Tree]) -> TypeIndex:
    """Index the declared types of every tree (the cross-file pre-pass)."""
    index = TypeIndex()
    for tree in trees:
        index.add_tree(tree)
    logger.debug("Indexed %d declared types", len(index))
    return index


class SourceModel(ABC):
    """Semantic queries over one compilation unit."""

    @property
    @abstractmethod
    def source_id(self) -> str:
        """Identifier of the compilation unit (file path or content hash)."""

    @abstractmethod
    def kind_of(self, node: Node) -> Optional[str]:
        """Declaration kind (``Class`` .. ``Method``) or ``None`` for other nodes."""

    @abstractmethod
    def display_type_of(self, node: Node) -> str:
        """Fully-qualified display string for a type syntax or attribute node."""

    @abstractmethod
    def declared_symbol_of(self, node: Node) -> DeclaredSymbol:
        """Symbol declared by a type or member declaration node."""

    @abstractmethod
    def documentation_of(self, symbol: DeclaredSymbol) -> str:
        """Raw documentation XML for a symbol, or an empty string."""

    @abstractmethod
    def type_of_expression(self, node: Node) -> Optional[str]:
        """Display type of an expression, ``None`` when unknown."""

    @abstractmethod
    def resolve_call_target(self, node: Node) -> Optional[CallTarget]:
        """Declaring type and name of the method invoked by a call expression."""


class SyntaxSourceModel(SourceModel):
    """Source model answering from syntax and a declared-type index.

    Args:
        tree: Parsed compilation unit.
        source_bytes: Raw source the tree was parsed from.
        file_path: Path used as the source id; a content hash is used when omitted.
        index: Declared types of every analyzed source. Defaults to the types
            of this tree alone.
    """

    def __init__(
        self,
        tree: Tree,
        source_bytes: bytes,
        file_path: Optional[str] = None,
        index: Optional[TypeIndex] = None,
    ):
        self.tree = tree
        self.source_bytes = source_bytes
        self.file_path = file_path
        self.index = index if index is not None else build_type_index([tree])
        if file_path:
            self._source_id = file_path
        else:
            self._source_id = "sha1:" + hashlib.sha1(source_bytes).hexdigest()[:16]

    @property
    def source_id(self) -> str:
        return self._source_id

    def kind_of(self, node: Node) -> Optional[str]:
        return declaration_kind(node)

    # ---- declared symbols ----

    def declared_symbol_of(self, node: Node) -> DeclaredSymbol:
        kind = self.kind_of(node)
        if kind is None:
            raise ResolutionError(
                f"'{node.type}' does not declare a symbol",
                node_type=node.type,
                line=line_of(node),
            )

        if kind in TYPE_KINDS:
            full_name = qualified_type_name(node)
            return DeclaredSymbol(
                name=declared_name(node) or "",
                full_name=full_name,
                kind=kind,
                doc_id=f"T:{full_name}",
                node=node,
            )

        if kind == "Field":
            declarators = variable_declarators(node)
            name = declared_name(declarators[0]) if declarators else None
        else:
            name = declared_name(node)
        if not name:
            raise ResolutionError(
                f"Cannot resolve the name of {node.type}",
                node_type=node.type,
                line=line_of(node),
            )

        owners = enclosing_type_nodes(node)
        owner_name = qualified_type_name(owners[0]) if owners else ""
        full_name = f"{owner_name}.{name}" if owner_name else name
        doc_name = f"{owner_name}.#ctor" if kind == "Constructor" else full_name
        return DeclaredSymbol(
            name=name,
            full_name=full_name,
            kind=kind,
            doc_id=f"{_DOC_ID_PREFIX[kind]}:{doc_name}",
            node=node,
        )

    def documentation_of(self, symbol: DeclaredSymbol) -> str:
        """Assemble preceding doc comment lines into a ``<member>`` payload.

        Mirrors what compilers emit: badly-formed XML comes back as a comment
        marker instead of the markup.
        """
        lines = preceding_doc_comment_lines(symbol.node)
        if not any(line.strip() for line in lines):
            return ""
        payload = "<member name={}>\n{}\n</member>".format(
            quoteattr(symbol.doc_id), "\n".join(lines)
        )
        try:
            ET.fromstring(payload)
        except ET.ParseError as e:
            logger.debug("Badly formed documentation for %s: %s", symbol.doc_id, e)
            return f'<!-- Badly formed XML comment ignored for member "{symbol.doc_id}" -->'
        return payload

    # ---- type names ----

    def display_type_of(self, node: Node) -> str:
        if node is None:
            raise ResolutionError("Missing type syntax")

        node_type = node.type
        if node_type in ("predefined_type", "void_keyword"):
            return node_text(node)
        if node_type == "implicit_type":
            return "var"
        if node_type in ("identifier", "generic_name", "qualified_name"):
            return self._display_named_type(node)
        if node_type == "alias_qualified_name":
            return normalize_type_text(node_text(node).split("::", 1)[-1])
        if node_type == "array_type":
            element = node.child_by_field_name("type")
            rank = node.child_by_field_name("rank")
            return self.display_type_of(element) + normalize_type_text(node_text(rank))
        if node_type in ("nullable_type", "pointer_type", "ref_type", "scoped_type"):
            inner = node.child_by_field_name("type") or node.named_children[0]
            suffix = {"nullable_type": "?", "pointer_type": "*"}.get(node_type, "")
            return self.display_type_of(inner) + suffix
        if node_type == "tuple_type":
            elements = []
            for element in node.named_children:
                if element.type != "tuple_element":
                    continue
                element_type = self.display_type_of(element.child_by_field_name("type"))
                element_name = element.child_by_field_name("name")
                if element_name is not None:
                    element_type = f"{element_type} {node_text(element_name)}"
                elements.append(element_type)
            return "(" + ", ".join(elements) + ")"
        if node_type == "attribute":
            return self._display_attribute_type(node)

        text = normalize_type_text(node_text(node))
        if not text:
            raise ResolutionError(
                f"Cannot resolve a type name for {node_type}",
                node_type=node_type,
                line=line_of(node),
            )
        return text

    def _display_named_type(self, node: Node) -> str:
        type_args: List[str] = []
        if node.type == "generic_name":
            type_args = self._type_arguments(node)
        elif node.type == "qualified_name":
            last = node.child_by_field_name("name")
            if last is not None and last.type == "generic_name":
                type_args = self._type_arguments(last)

        written = index_key(normalize_type_text(node_text(node)))
        resolved = self.resolve_type_name(written, len(type_args), node)
        base = _strip_last_type_parameters(resolved) if resolved else written
        if node.type == "qualified_name" and not resolved:
            return normalize_type_text(node_text(node))
        if type_args:
            return f"{base}<{', '.join(type_args)}>"
        return base

    def _type_arguments(self, generic_node: Node) -> List[str]:
        for child in generic_node.children:
            if child.type == "type_argument_list":
                return [self.display_type_of(arg) for arg in child.named_children]
        return []

    def _display_attribute_type(self, node: Node) -> str:
        name = normalize_type_text(node_text(node.child_by_field_name("name")))
        if not name:
            raise ResolutionError("Attribute has no name", node_type=node.type, line=line_of(node))
        if not name.endswith("Attribute"):
            resolved = self.resolve_type_name(f"{name}Attribute", 0, node)
            if resolved:
                return resolved
        resolved = self.resolve_type_name(name, 0, node)
        if resolved:
            return resolved
        return name if name.endswith("Attribute") else f"{name}Attribute"

    def resolve_type_name(self, name: str, arity: int, context: Node) -> Optional[str]:
        """Look a written type name up the way C# name lookup would.

        Candidates are tried innermost first: nested in an enclosing type, in
        an enclosing namespace, global, then through ``using`` directives.
        """
        aliases, usings = self._using_directives(context)
        head, _, rest = name.partition(".")
        if head in aliases:
            name = aliases[head] + ("." + rest if rest else "")

        candidates = []
        for type_node in enclosing_type_nodes(context):
            try:
                candidates.append(f"{index_key(qualified_type_name(type_node))}.{name}")
            except ResolutionError:
                continue
        namespace = ".".join(namespace_parts(context))
        while namespace:
            candidates.append(f"{namespace}.{name}")
            namespace = namespace.rpartition(".")[0]
        candidates.append(name)
        candidates.extend(f"{using}.{name}" for using in usings)

        for candidate in candidates:
            hit = self.index.lookup(candidate, arity)
            if hit:
                return hit
        return None

    def _using_directives(self, context: Node) -> Tuple[Dict[str, str], List[str]]:
        aliases: Dict[str, str] = {}
        usings: List[str] = []
        scopes = []
        parent = context
        while parent is not None:
            if parent.type == NAMESPACE_NODE:
                scopes.append(parent.child_by_field_name("body"))
            elif parent.type == "compilation_unit":
                scopes.append(parent)
            parent = parent.parent

        for scope in scopes:
            if scope is None:
                continue
            for child in scope.named_children:
                if child.type != "using_directive":
                    continue
                if any(part.type == "static" for part in child.children):
                    continue
                names = [c for c in child.named_children if c.type in ("identifier", "qualified_name")]
                if not names:
                    continue
                name_equals = next((c for c in child.named_children if c.type == "name_equals"), None)
                if name_equals is not None:
                    aliases[node_text(name_equals).rstrip("=").strip()] = normalize_type_text(node_text(names[-1]))
                elif any(part.type == "=" for part in child.children) or child.child_by_field_name("alias"):
                    alias = child.child_by_field_name("alias") or names[0]
                    aliases[node_text(alias)] = normalize_type_text(node_text(names[-1]))
                else:
                    usings.append(normalize_type_text(node_text(names[-1])))
        return aliases, usings

    # ---- expressions ----

    def type_of_expression(self, node: Node, _depth: int = 0) -> Optional[str]:
        if node is None or _depth > _MAX_INFERENCE_DEPTH:
            return None

        node_type = node.type
        if node_type in LITERAL_TYPE_MAP:
            return _literal_type(node) or None
        if node_type in FIXED_EXPRESSION_TYPES:
            return FIXED_EXPRESSION_TYPES[node_type]
        if node_type == "parenthesized_expression":
            inner = node.named_children[0] if node.named_children else None
            return self.type_of_expression(inner, _depth + 1)
        if node_type in (OBJECT_CREATION_NODE, "cast_expression", "array_creation_expression", "default_expression"):
            type_node = node.child_by_field_name("type")
            return self.display_type_of(type_node) if type_node is not None else None
        if node_type in ("this_expression", "this"):
            owners = enclosing_type_nodes(node)
            return qualified_type_name(owners[0]) if owners else None
        if node_type in ("base_expression", "base"):
            return self._base_type_of_enclosing(node)
        if node_type == "identifier":
            return self._type_of_identifier(node, _depth)
        if node_type == "member_access_expression":
            receiver = node.child_by_field_name("expression")
            receiver_type = self._as_type_name(receiver)
            if receiver_type and self.index.kind(receiver_type) == "Enum":
                return receiver_type
            return None
        if node_type == "invocation_expression":
            function = node.child_by_field_name("function")
            if function is not None and node_text(function) == "nameof":
                return "string"
        return None

    def _as_type_name(self, node: Optional[Node]) -> Optional[str]:
        if node is None or node.type not in ("identifier", "generic_name", "qualified_name", "member_access_expression"):
            return None
        written = index_key(normalize_type_text(node_text(node)))
        return self.resolve_type_name(written, 0, node)

    def _base_type_of_enclosing(self, node: Node) -> Optional[str]:
        owners = enclosing_type_nodes(node)
        if not owners:
            return None
        for child in owners[0].children:
            if child.type == "base_list":
                for base in child.named_children:
                    if base.type == "primary_constructor_base_type":
                        base = base.child_by_field_name("type") or base.named_children[0]
                    return self.display_type_of(base)
        return None

    def _type_of_identifier(self, node: Node, depth: int) -> Optional[str]:
        """Type of a parameter, local, field or property referenced by name."""
        name = node_text(node)
        scope = node.parent
        while scope is not None and scope.type not in TYPE_DECLARATION_TYPES:
            if scope.type in _CALLABLE_SCOPES:
                params = scope.child_by_field_name("parameters")
                if params is not None:
                    if params.type == "identifier":
                        if node_text(params) == name:
                            return None
                    else:
                        for param in params.named_children:
                            if param.type == "parameter" and declared_name(param) == name:
                                param_type = param.child_by_field_name("type")
                                return self.display_type_of(param_type) if param_type is not None else None
            if scope.type in _LOCAL_SCOPES:
                found = self._local_variable_type(scope, name, depth)
                if found is not None:
                    return found or None
            if scope.type == "foreach_statement":
                left = scope.child_by_field_name("left")
                if left is not None and node_text(left) == name:
                    loop_type = scope.child_by_field_name("type")
                    if loop_type is None or loop_type.type == "implicit_type":
                        return None
                    return self.display_type_of(loop_type)
            scope = scope.parent

        for type_node in enclosing_type_nodes(node):
            member_type = self._member_type(type_node, name)
            if member_type is not None:
                return member_type
        return None

    def _local_variable_type(self, scope: Node, name: str, depth: int) -> Optional[str]:
        """Declared type of a local in ``scope``; ``""`` if declared but not inferable."""
        for child in scope.named_children:
            declaration = child if child.type == "variable_declaration" else variable_declaration_of(child)
            if declaration is None:
                continue
            for declarator in variable_declarators(declaration):
                if declared_name(declarator) != name:
                    continue
                type_node = declaration.child_by_field_name("type")
                if type_node is None:
                    return ""
                if type_node.type == "implicit_type":
                    initializer = find_initializer(declarator)
                    return self.type_of_expression(initializer, depth + 1) or ""
                return self.display_type_of(type_node)
        return None

    def _member_type(self, type_node: Node, name: str) -> Optional[str]:
        body = type_node.child_by_field_name("body")
        if body is None:
            return None
        for member in body.named_children:
            if member.type == "field_declaration":
                declaration = variable_declaration_of(member)
                if declaration is None:
                    continue
                if any(declared_name(d) == name for d in variable_declarators(declaration)):
                    return self.display_type_of(declaration.child_by_field_name("type"))
            elif member.type == "property_declaration" and declared_name(member) == name:
                return self.display_type_of(member.child_by_field_name("type"))
        return None

    # ---- calls ----

    def resolve_call_target(self, node: Node) -> Optional[CallTarget]:
        if node.type == OBJECT_CREATION_NODE:
            type_node = node.child_by_field_name("type")
            if type_node is None:
                return None
            return CallTarget(self.display_type_of(type_node), simple_name(type_node))

        function = node.child_by_field_name("function")
        if function is None:
            return None

        if function.type in ("identifier", "generic_name"):
            name = simple_name(function)
            owners = enclosing_type_nodes(node)
            if name == "nameof" or not owners:
                return None
            return CallTarget(qualified_type_name(owners[0]), name)

        if function.type == "member_access_expression":
            name = simple_name(function.child_by_field_name("name"))
            receiver = function.child_by_field_name("expression")
            receiver_type = self.type_of_expression(receiver) or self._as_type_name(receiver)
            if not receiver_type:
                receiver_type = normalize_whitespace(node_text(receiver))
            return CallTarget(receiver_type, name)

        return None


def _strip_last_type_parameters(display_name: str) -> str:
    if not display_name.endswith(">"):
        return display_name
    depth = 0
    for idx in range(len(display_name) - 1, -1, -1):
        char = display_name[idx]
        if char == ">":
            depth += 1
        elif char == "<":
            depth -= 1
            if depth == 0:
                return display_name[:idx]
    return display_name


def _literal_type(node: Node) -> str:
    base = LITERAL_TYPE_MAP[node.type]
    text = node_text(node).lower()
    if node.type == "integer_literal":
        if text.endswith(("ul", "lu")):
            return "ulong"
        if text.endswith("l"):
            return "long"
        if text.endswith("u"):
            return "uint"
    if node.type == "real_literal":
        if text.endswith("f"):
            return "float"
        if text.endswith("m"):
            return "decimal"
    return base
