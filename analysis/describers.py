"""
Member declaration describers.

``describe_member`` turns one member declaration node into its description
record and appends it to the owning type.
"""

import logging
from dataclasses import dataclass
from typing import List

from tree_sitter import Node

from analysis.config import DEFAULT_SPLIT_FIELD_DECLARATORS, MEMBER_KIND_MAP
from analysis.documentation import extract_documentation
from analysis.errors import ResolutionError, UnsupportedDeclarationError
from analysis.invocations import extract_invocations
from analysis.models import (
    CallableDescription,
    ConstructorDescription,
    EnumMemberDescription,
    FieldDescription,
    MemberDescription,
    MethodDescription,
    ParameterDescription,
    PropertyDescription,
    TypeDescription,
)
from analysis.source_model import SourceModel
from analysis.syntax import (
    callable_body,
    declared_name,
    find_initializer,
    line_of,
    modifiers_of,
    node_text,
    normalize_whitespace,
    return_type_node,
    variable_declaration_of,
    variable_declarators,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DescribeOptions:
    """Policy switches for member description.

    Attributes:
        split_field_declarators: Emit one Field per declarator of
            ``int a, b;`` instead of describing only the first one.
    """

    split_field_declarators: bool = DEFAULT_SPLIT_FIELD_DECLARATORS


def _initializer_text(node: Node) -> str | None:
    initializer = find_initializer(node)
    if initializer is None:
        return None
    return normalize_whitespace(node_text(initializer))


def _require_name(node: Node) -> str:
    name = declared_name(node)
    if not name:
        raise ResolutionError(
            f"Cannot resolve the name of {node.type}",
            node_type=node.type,
            line=line_of(node),
        )
    return name


def describe_parameters(node: Node, model: SourceModel) -> List[ParameterDescription]:
    parameters = []
    parameter_list = node.child_by_field_name("parameters")
    if parameter_list is None:
        return parameters
    for parameter in parameter_list.named_children:
        if parameter.type not in ("parameter", "parameter_array"):
            continue
        type_node = parameter.child_by_field_name("type")
        if type_node is None and parameter.type == "parameter_array":
            type_node = next(
                (c for c in parameter.named_children if c.type in ("array_type", "nullable_type")),
                None,
            )
        parameters.append(
            ParameterDescription(
                type=model.display_type_of(type_node) if type_node is not None else "",
                name=_require_name(parameter),
                has_default_value=find_initializer(parameter) is not None,
            )
        )
    return parameters


def describe_fields(node: Node, model: SourceModel, options: DescribeOptions) -> List[FieldDescription]:
    declaration = variable_declaration_of(node)
    declarators = variable_declarators(node)
    if declaration is None or not declarators:
        raise ResolutionError("Field declaration has no variables", node_type=node.type, line=line_of(node))

    field_type = model.display_type_of(declaration.child_by_field_name("type"))
    modifiers = modifiers_of(node)
    documentation = extract_documentation(node, model)

    # Without splitting, a multi-variable declaration is represented by its first variable.
    if not options.split_field_declarators:
        declarators = declarators[:1]

    return [
        FieldDescription(
            name=_require_name(declarator),
            type=field_type,
            modifiers=list(modifiers),
            initializer=_initializer_text(declarator),
            documentation=documentation,
        )
        for declarator in declarators
    ]


def describe_property(node: Node, model: SourceModel) -> PropertyDescription:
    initializer = find_initializer(node)
    if initializer is not None and initializer.type == "arrow_expression_clause":
        initializer = None
    return PropertyDescription(
        name=_require_name(node),
        type=model.display_type_of(node.child_by_field_name("type")),
        modifiers=modifiers_of(node),
        initializer=normalize_whitespace(node_text(initializer)) if initializer is not None else None,
        documentation=extract_documentation(node, model),
    )


def describe_enum_member(node: Node, model: SourceModel) -> EnumMemberDescription:
    return EnumMemberDescription(
        name=_require_name(node),
        value=_initializer_text(node),
        documentation=extract_documentation(node, model),
    )


def _fill_callable(node: Node, callable_description: CallableDescription, model: SourceModel) -> None:
    callable_description.modifiers = modifiers_of(node)
    callable_description.parameters = describe_parameters(node, model)
    callable_description.documentation = extract_documentation(node, model)
    callable_description.invocations = extract_invocations(callable_body(node), model)


def describe_constructor(node: Node, model: SourceModel) -> ConstructorDescription:
    constructor = ConstructorDescription(name=_require_name(node))
    _fill_callable(node, constructor, model)
    return constructor


def describe_method(node: Node, model: SourceModel) -> MethodDescription:
    method = MethodDescription(
        name=_require_name(node),
        return_type=model.display_type_of(return_type_node(node)),
    )
    _fill_callable(node, method, model)
    return method


def describe_member(
    node: Node,
    owner: TypeDescription,
    model: SourceModel,
    options: DescribeOptions = DescribeOptions(),
) -> MemberDescription:
    """Describe a member declaration and append it to ``owner``.

    Args:
        node: Field, property, enum member, constructor or method declaration.
        owner: Type description receiving the member.
        model: Source model for type, symbol and documentation queries.
        options: Description policy.

    Returns:
        The member appended to ``owner`` (the first one when a field
        declaration is split into several).

    Raises:
        UnsupportedDeclarationError: For member kinds that are not described.
        ResolutionError: If a required name or type cannot be resolved.
    """
    kind = MEMBER_KIND_MAP.get(node.type)
    if kind is None:
        raise UnsupportedDeclarationError(node.type, line_of(node))

    if kind == "Field":
        members: List[MemberDescription] = list(describe_fields(node, model, options))
    elif kind == "Property":
        members = [describe_property(node, model)]
    elif kind == "EnumMember":
        members = [describe_enum_member(node, model)]
    elif kind == "Constructor":
        members = [describe_constructor(node, model)]
    else:
        members = [describe_method(node, model)]

    for member in members:
        owner.add_member(member)
        logger.debug("Described %s %s.%s", kind, owner.full_name, member.name)
    return members[0]
