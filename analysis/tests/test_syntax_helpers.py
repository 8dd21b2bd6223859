"""
Unit tests for syntax.py

Tests text normalization, documentation comment detection and collection,
and the small node accessors used by the describers.
"""

import unittest

from analysis.parser import parse_bytes
from analysis.syntax import (
    body_members,
    clean_doc_comment,
    declared_name,
    is_doc_comment,
    modifiers_of,
    normalize_type_text,
    normalize_whitespace,
    preceding_doc_comment_lines,
    variable_declarators,
)


def find_first(node, node_type):
    """Depth-first search for the first node of ``node_type``."""
    if node.type == node_type:
        return node
    for child in node.children:
        found = find_first(child, node_type)
        if found is not None:
            return found
    return None


class TestNormalization(unittest.TestCase):
    """Test text normalization."""

    def test_whitespace(self):
        """Test whitespace collapsing."""
        self.assertEqual(normalize_whitespace("  a \n\t b  "), "a b")

    def test_type_text(self):
        """Test type text spacing."""
        self.assertEqual(normalize_type_text("List< int,string >"), "List<int, string>")
        self.assertEqual(normalize_type_text("int [ ]"), "int[]")
        self.assertEqual(normalize_type_text("Dictionary<string , List<int> >"), "Dictionary<string, List<int>>")


class TestDocCommentDetection(unittest.TestCase):
    """Test documentation comment detection."""

    def test_triple_slash(self):
        """Test /// comments."""
        self.assertTrue(is_doc_comment("/// <summary>x</summary>"))

    def test_block_doc(self):
        """Test /** comments."""
        self.assertTrue(is_doc_comment("/** <summary>x</summary> */"))

    def test_regular_comments(self):
        """Test that // and /* are not documentation."""
        self.assertFalse(is_doc_comment("// regular"))
        self.assertFalse(is_doc_comment("/* regular */"))

    def test_quadruple_slash_is_not_doc(self):
        """Test that //// is not documentation."""
        self.assertFalse(is_doc_comment("//// commented out"))

    def test_empty_block_is_not_doc(self):
        """Test that /**/ is not documentation."""
        self.assertFalse(is_doc_comment("/**/"))


class TestCleanDocComment(unittest.TestCase):
    """Test comment marker stripping."""

    def test_triple_slash_line(self):
        """Test a /// line."""
        self.assertEqual(clean_doc_comment("/// <summary>"), ["<summary>"])

    def test_block_comment(self):
        """Test a /** */ block."""
        lines = clean_doc_comment("/**\n * <summary>\n * Text\n * </summary>\n */")
        self.assertEqual(lines, ["<summary>", "Text", "</summary>"])


class TestPrecedingDocComments(unittest.TestCase):
    """Test collecting comments before a declaration."""

    def test_collects_adjacent_lines(self):
        """Test that adjacent lines are collected."""
        source = b"""
class Foo {
    /// <summary>
    /// Does it.
    /// </summary>
    void Bar() { }
}
"""
        tree = parse_bytes(source)
        method = find_first(tree.root_node, "method_declaration")
        self.assertEqual(preceding_doc_comment_lines(method), ["<summary>", "Does it.", "</summary>"])

    def test_blank_line_ends_run(self):
        """Test that a blank line detaches earlier comments."""
        source = b"""
class Foo {
    /// <summary>Detached.</summary>

    void Bar() { }
}
"""
        tree = parse_bytes(source)
        method = find_first(tree.root_node, "method_declaration")
        self.assertEqual(preceding_doc_comment_lines(method), [])

    def test_regular_comment_is_skipped(self):
        """Test that a regular comment is skipped."""
        source = b"""
class Foo {
    /// <summary>Kept.</summary>
    // not documentation
    void Bar() { }
}
"""
        tree = parse_bytes(source)
        method = find_first(tree.root_node, "method_declaration")
        self.assertEqual(preceding_doc_comment_lines(method), ["<summary>Kept.</summary>"])


class TestNodeAccessors(unittest.TestCase):
    """Test node accessor helpers."""

    def test_declared_name_and_modifiers(self):
        """Test name and modifiers of a class."""
        tree = parse_bytes(b"public static class Util { }")
        node = find_first(tree.root_node, "class_declaration")
        self.assertEqual(declared_name(node), "Util")
        self.assertEqual(modifiers_of(node), ["public", "static"])

    def test_variable_declarators(self):
        """Test the declarators of a field."""
        tree = parse_bytes(b"class Foo { int a, b = 2; }")
        field = find_first(tree.root_node, "field_declaration")
        names = [declared_name(d) for d in variable_declarators(field)]
        self.assertEqual(names, ["a", "b"])

    def test_body_members_skip_comments(self):
        """Test that body members skip comments."""
        tree = parse_bytes(b"class Foo { // note\n int a; void M() { } }")
        body = find_first(tree.root_node, "declaration_list")
        kinds = [member.type for member in body_members(body)]
        self.assertEqual(kinds, ["field_declaration", "method_declaration"])


if __name__ == "__main__":
    unittest.main()
