"""
Tree-sitter parser initialization and file parsing utilities.

This module provides functions to initialize the C# parser and parse source files.
"""

import logging
import threading
from typing import Tuple

import tree_sitter_c_sharp as tscsharp
from tree_sitter import Language, Node, Parser, Tree

logger = logging.getLogger(__name__)

# Module-level language constant
CSHARP_LANGUAGE = Language(tscsharp.language())

# Parsers are not thread-safe; each worker thread keeps its own.
_thread_state = threading.local()


def create_parser() -> Parser:
    """Create and configure a tree-sitter parser for C#.

    Returns:
        A Parser instance configured with the C# language.

    Example:
        >>> parser = create_parser()
        >>> tree = parser.parse(b"class Foo { }")
    """
    parser = Parser(CSHARP_LANGUAGE)
    logger.debug("Created tree-sitter C# parser")
    return parser


def _thread_parser() -> Parser:
    parser = getattr(_thread_state, "parser", None)
    if parser is None:
        parser = create_parser()
        _thread_state.parser = parser
    return parser


def parse_bytes(source: bytes) -> Tree:
    """Parse raw bytes of C# source code.

    Args:
        source: UTF-8 encoded bytes of C# source code.

    Returns:
        A Tree object representing the parsed syntax tree.

    Raises:
        TypeError: If source is not bytes.

    Example:
        >>> tree = parse_bytes(b"class Foo { }")
        >>> tree.root_node.type
        'compilation_unit'
    """
    if not isinstance(source, bytes):
        raise TypeError(f"Source must be bytes, got {type(source).__name__}")

    tree = _thread_parser().parse(source)

    if tree.root_node.has_error:
        logger.debug("Parsed tree contains syntax errors")

    logger.debug("Parsed %d bytes of C# code", len(source))
    return tree


def parse_file(file_path: str) -> Tuple[Tree, bytes]:
    """Parse a C# source file from disk.

    A UTF-8 byte order mark, common in Visual Studio projects, is dropped
    before parsing.

    Args:
        file_path: Path to the .cs file.

    Returns:
        A tuple of (Tree, source_bytes).

    Raises:
        FileNotFoundError: If the file does not exist.
        IOError: If the file cannot be read.
    """
    try:
        with open(file_path, "rb") as f:
            source_bytes = f.read()
    except FileNotFoundError:
        logger.error("File not found: %s", file_path)
        raise
    except IOError as e:
        logger.error("Error reading file %s: %s", file_path, e)
        raise

    if source_bytes.startswith(b"\xef\xbb\xbf"):
        source_bytes = source_bytes[3:]

    tree = parse_bytes(source_bytes)

    if tree.root_node.has_error:
        logger.warning("File %s contains syntax errors", file_path)

    logger.debug("Successfully parsed file: %s", file_path)
    return tree, source_bytes


def count_error_nodes(tree: Tree) -> int:
    """Count ERROR and MISSING nodes in a parsed tree."""
    count = 0
    stack = [tree.root_node]
    while stack:
        node: Node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            count += 1
        if node.has_error:
            stack.extend(node.children)
    return count
