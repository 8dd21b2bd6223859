"""
Attribute extraction for type declarations.
"""

import logging
from typing import List, Optional

from tree_sitter import Node

from analysis.config import COMMENT_NODE, LITERAL_TYPE_MAP
from analysis.models import (
    EXPRESSION,
    LITERAL,
    AttributeArgumentDescription,
    AttributeDescription,
    AttributeValue,
)
from analysis.source_model import SourceModel
from analysis.syntax import node_text, normalize_type_text, normalize_whitespace

logger = logging.getLogger(__name__)

_SIMPLE_ESCAPES = {
    "'": "'",
    '"': '"',
    "\\": "\\",
    "0": "\0",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "e": "\x1b",
}


def _unescape(text: str) -> str:
    result = []
    idx = 0
    while idx < len(text):
        char = text[idx]
        if char != "\\" or idx + 1 >= len(text):
            result.append(char)
            idx += 1
            continue
        marker = text[idx + 1]
        if marker in _SIMPLE_ESCAPES:
            result.append(_SIMPLE_ESCAPES[marker])
            idx += 2
        elif marker in "uxU":
            width = 8 if marker == "U" else 4
            digits = ""
            pos = idx + 2
            while pos < len(text) and len(digits) < width and text[pos] in "0123456789abcdefABCDEF":
                digits += text[pos]
                pos += 1
            if digits:
                result.append(chr(int(digits, 16)))
            idx = pos
        else:
            result.append(marker)
            idx += 2
    return "".join(result)


def literal_value_text(node: Node) -> str:
    """Value of a literal token as text: strings unescaped, integers normalised."""
    text = node_text(node)
    node_type = node.type

    if node_type == "string_literal":
        body = text
        if body.endswith("u8"):
            body = body[:-2]
        return _unescape(body[1:-1])
    if node_type == "verbatim_string_literal":
        return text[2:-1].replace('""', '"')
    if node_type == "raw_string_literal":
        quotes = len(text) - len(text.lstrip('"'))
        body = text[quotes:len(text) - quotes]
        if "\n" in body:
            lines = body.split("\n")[1:-1]
            return "\n".join(line.strip() for line in lines)
        return body
    if node_type == "character_literal":
        return _unescape(text[1:-1])
    if node_type == "integer_literal":
        digits = text.replace("_", "").rstrip("uUlL")
        lowered = digits.lower()
        try:
            if lowered.startswith("0x"):
                return str(int(lowered[2:], 16))
            if lowered.startswith("0b"):
                return str(int(lowered[2:], 2))
            return str(int(digits))
        except ValueError:
            return text
    if node_type == "real_literal":
        return text.replace("_", "").rstrip("fFdDmM")
    return text


def _argument_parts(argument: Node) -> tuple:
    """Split an attribute argument into (explicit name, expression)."""
    name: Optional[str] = None
    expression: Optional[Node] = None

    for child in argument.children:
        if child.type == "name_equals":
            name = normalize_whitespace(node_text(child)).rstrip("=").strip()

    name_node = argument.child_by_field_name("name")
    if name is None and name_node is not None:
        # ``Name = value`` names a property; ``name: value`` stays positional.
        if any(child.type == "=" for child in argument.children):
            name = node_text(name_node)

    for child in argument.named_children:
        if child.type in ("name_equals", "name_colon", COMMENT_NODE):
            continue
        if name_node is not None and child == name_node:
            continue
        expression = child

    if name is None and expression is not None and expression.type == "assignment_expression":
        left = expression.child_by_field_name("left")
        operator = expression.child_by_field_name("operator")
        plain = node_text(operator) == "=" or any(child.type == "=" for child in expression.children)
        if left is not None and left.type == "identifier" and plain:
            name = node_text(left)
            expression = expression.child_by_field_name("right")
    return name, expression


def describe_argument(argument: Node, model: SourceModel) -> AttributeArgumentDescription:
    name, expression = _argument_parts(argument)
    expression_text = normalize_whitespace(node_text(expression)) if expression is not None else ""

    if expression is not None and expression.type in LITERAL_TYPE_MAP:
        value = AttributeValue(LITERAL, literal_value_text(expression))
    else:
        value = AttributeValue(EXPRESSION, expression_text)

    argument_type = model.type_of_expression(expression) if expression is not None else None
    return AttributeArgumentDescription(
        name=name or expression_text,
        type=argument_type,
        value=value,
    )


def extract_attributes(node: Node, model: SourceModel) -> List[AttributeDescription]:
    """Describe every attribute applied to a declaration, in source order.

    Args:
        node: A type or member declaration node.
        model: Source model used to resolve attribute and argument types.

    Returns:
        One AttributeDescription per attribute; attributes without arguments
        get an empty argument list.
    """
    attributes: List[AttributeDescription] = []
    for attribute_list in node.children:
        if attribute_list.type != "attribute_list":
            continue
        for attribute in attribute_list.named_children:
            if attribute.type != "attribute":
                continue

            description = AttributeDescription(
                type=model.display_type_of(attribute),
                name=normalize_type_text(node_text(attribute.child_by_field_name("name"))),
            )
            for child in attribute.children:
                if child.type != "attribute_argument_list":
                    continue
                for argument in child.named_children:
                    if argument.type == "attribute_argument":
                        description.arguments.append(describe_argument(argument, model))

            logger.debug(
                "Extracted attribute %s with %d arguments",
                description.name,
                len(description.arguments),
            )
            attributes.append(description)
    return attributes
