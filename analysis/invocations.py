"""
Invocation extraction for constructor and method bodies.

The walk is bounded to one callable body and reports calls in lexical
pre-order: an outer call is listed before the calls nested in its receiver or
arguments, and branches appear in the order they are written.
"""

import logging
from typing import List, Optional

from tree_sitter import Node

from analysis.config import COMMENT_NODE, INVOCATION_NODE, OBJECT_CREATION_NODE
from analysis.models import ArgumentDescription, InvocationDescription
from analysis.source_model import SourceModel
from analysis.syntax import line_of, node_text, normalize_whitespace

logger = logging.getLogger(__name__)


def _argument_expression(argument: Node) -> Optional[Node]:
    expression = argument.child_by_field_name("expression")
    if expression is not None:
        return expression
    named = [child for child in argument.named_children if child.type not in ("name_colon", COMMENT_NODE)]
    return named[-1] if named else None


def describe_arguments(call: Node, model: SourceModel) -> List[ArgumentDescription]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return []
    result = []
    for argument in arguments.named_children:
        if argument.type != "argument":
            continue
        expression = _argument_expression(argument)
        result.append(
            ArgumentDescription(
                text=normalize_whitespace(node_text(expression or argument)),
                type=model.type_of_expression(expression) if expression is not None else None,
            )
        )
    return result


def extract_invocations(body: Optional[Node], model: SourceModel) -> List[InvocationDescription]:
    """Record the calls performed inside a callable body.

    Args:
        body: Block or expression body; None for abstract or extern members.
        model: Source model resolving each call target.

    Returns:
        Invocation facts in lexical order. Calls whose target the model cannot
        resolve are left out.
    """
    if body is None:
        return []

    invocations: List[InvocationDescription] = []
    stack = [body]
    while stack:
        node = stack.pop()
        if node.type in (INVOCATION_NODE, OBJECT_CREATION_NODE):
            target = model.resolve_call_target(node)
            if target is None:
                logger.debug(
                    "Unresolved call target '%s' at line %d",
                    normalize_whitespace(node_text(node))[:80],
                    line_of(node),
                )
            else:
                invocations.append(
                    InvocationDescription(
                        containing_type=target.containing_type,
                        name=target.method_name,
                        arguments=describe_arguments(node, model),
                    )
                )
        stack.extend(reversed(node.named_children))
    return invocations
