"""
Documentation summary extraction.

Only the ``<summary>`` section of a declaration's XML documentation is kept.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Optional

from tree_sitter import Node

from analysis.errors import MalformedDocumentationError
from analysis.source_model import SourceModel

logger = logging.getLogger(__name__)

COMMENT_MARKER = "<!--"


def summary_from_xml(payload: Optional[str]) -> Optional[str]:
    """Extract the trimmed summary text from a documentation payload.

    Args:
        payload: Raw documentation XML as reported by the source model.

    Returns:
        The summary text with each line trimmed, or None when the payload is
        empty, a comment marker, or carries no (or an empty) summary.

    Raises:
        MalformedDocumentationError: If the payload is not well-formed XML.
    """
    if payload is None or not payload.strip():
        return None
    if payload.lstrip().startswith(COMMENT_MARKER):
        # No documentation or unparseable documentation
        return None

    try:
        element = ET.fromstring(payload)
    except ET.ParseError as e:
        raise MalformedDocumentationError(f"Documentation is not well-formed XML: {e}") from e

    summary = element.find("summary")
    if summary is None:
        return None

    lines = [line.strip() for line in "".join(summary.itertext()).splitlines()]
    text = "\n".join(line for line in lines if line)
    return text or None


def extract_documentation(node: Node, model: SourceModel) -> Optional[str]:
    """Documentation summary of a type or member declaration, if any."""
    symbol = model.declared_symbol_of(node)
    summary = summary_from_xml(model.documentation_of(symbol))
    if summary is not None:
        logger.debug("Found documentation for %s", symbol.full_name)
    return summary
