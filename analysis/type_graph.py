"""
Type graph traversal.

This module walks a C# compilation unit, creates one TypeDescription per
distinct type full name and attaches the members of every declaration
fragment. Nested types are described by an independent traversal and become
their own entries in the shared collection, never members of the type that
encloses them.
"""

import logging
from typing import List, Optional

from tree_sitter import Node, Tree

from analysis.attributes import extract_attributes
from analysis.config import (
    CONTAINER_TYPES,
    FILE_SCOPED_NAMESPACE_NODE,
    NAMESPACE_NODE,
    PREPROCESSOR_CONTAINERS,
    TYPE_DECLARATION_TYPES,
    UNSUPPORTED_MEMBER_TYPES,
)
from analysis.describers import DescribeOptions, describe_member
from analysis.documentation import extract_documentation
from analysis.errors import ResolutionError, UnsupportedDeclarationError
from analysis.models import TYPE_KINDS, TypeCollection, TypeDescription
from analysis.source_model import SourceModel
from analysis.syntax import body_members, line_of, modifiers_of

logger = logging.getLogger(__name__)


def base_type_names(node: Node, model: SourceModel) -> List[str]:
    """Display names of the declared base class and interfaces, in order."""
    names = []
    for child in node.children:
        if child.type != "base_list":
            continue
        for base in child.named_children:
            if base.type == "comment":
                continue
            if base.type == "primary_constructor_base_type":
                base = base.child_by_field_name("type") or base.named_children[0]
            names.append(model.display_type_of(base))
    return names


def process_type(
    node: Node,
    model: SourceModel,
    types: TypeCollection,
    options: DescribeOptions = DescribeOptions(),
) -> TypeDescription:
    """Describe one type declaration and everything declared directly in it.

    Args:
        node: A class, struct, interface, enum or record declaration.
        model: Source model for the compilation unit containing ``node``.
        types: Shared output collection; the entry for the type's full name
            is reused when present, otherwise created and appended.
        options: Member description policy.

    Returns:
        The TypeDescription the declaration contributed to.

    Raises:
        ResolutionError: If the type's full name cannot be resolved.
    """
    kind = model.kind_of(node)
    if kind not in TYPE_KINDS:
        raise ResolutionError(
            f"'{node.type}' is not a type declaration",
            node_type=node.type,
            line=line_of(node),
        )

    symbol = model.declared_symbol_of(node)
    current = types.get_or_add(kind, symbol.full_name)
    current._sources.add(model.source_id)

    current.add_base_types(base_type_names(node, model))
    current.add_modifiers(modifiers_of(node))
    documentation = extract_documentation(node, model)
    if documentation is not None and current.documentation is None:
        current.documentation = documentation
    current.attributes.extend(extract_attributes(node, model))

    body = node.child_by_field_name("body")
    if body is None:
        logger.debug("Type %s has no body", current.full_name)
        return current

    for child in body_members(body):
        if child.type in TYPE_DECLARATION_TYPES:
            # A nested type gets its own traversal and its own entry.
            process_type(child, model, types, options)
            continue
        try:
            describe_member(child, current, model, options)
        except UnsupportedDeclarationError as e:
            if e.node_type in UNSUPPORTED_MEMBER_TYPES:
                logger.info("Skipping member of %s: %s", current.full_name, e)
            else:
                logger.warning("Skipping unrecognized declaration in %s: %s", current.full_name, e)

    logger.debug("Described %s %s with %d members", kind, current.full_name, len(current.members))
    return current


def _walk_declarations(
    node: Node,
    model: SourceModel,
    types: TypeCollection,
    options: DescribeOptions,
) -> None:
    for child in node.named_children:
        if child.type in TYPE_DECLARATION_TYPES:
            process_type(child, model, types, options)
        elif child.type == NAMESPACE_NODE:
            body = child.child_by_field_name("body")
            if body is not None:
                _walk_declarations(body, model, types, options)
        elif (
            child.type == FILE_SCOPED_NAMESPACE_NODE
            or child.type in CONTAINER_TYPES
            or child.type in PREPROCESSOR_CONTAINERS
        ):
            _walk_declarations(child, model, types, options)


def analyze(
    tree: Tree,
    model: SourceModel,
    types: TypeCollection,
    options: Optional[DescribeOptions] = None,
) -> int:
    """Describe every type declared in a compilation unit into ``types``.

    Results are staged in a private collection and merged at the end, so a
    unit that fails contributes nothing and a unit analyzed twice adds
    nothing the second time.

    Args:
        tree: Parsed compilation unit.
        model: Source model for ``tree``.
        types: Shared output collection.
        options: Member description policy.

    Returns:
        Number of entries added to or extended in ``types``.
    """
    if options is None:
        options = DescribeOptions()

    staged = TypeCollection()
    _walk_declarations(tree.root_node, model, staged, options)
    changed = types.merge(staged)
    logger.debug("Analyzed %s: %d types staged, %d merged", model.source_id, len(staged), changed)
    return changed
