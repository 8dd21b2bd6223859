"""
Unit tests for documentation.py

Tests summary extraction from documentation payloads and from declarations.
"""

import unittest

from analysis.documentation import extract_documentation, summary_from_xml
from analysis.errors import MalformedDocumentationError
from analysis.parser import parse_bytes
from analysis.source_model import SyntaxSourceModel


def first_of(tree, node_type):
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == node_type:
            return node
        stack.extend(reversed(node.children))
    return None


class TestSummaryFromXml(unittest.TestCase):
    """Test summary extraction from documentation payloads."""

    def test_absent_payloads(self):
        """Test that empty payloads give no summary."""
        for payload in (None, "", "   \n  "):
            with self.subTest(payload=payload):
                self.assertIsNone(summary_from_xml(payload))

    def test_comment_marker(self):
        """Test that a badly formed comment marker gives no summary."""
        marker = '<!-- Badly formed XML comment ignored for member "T:N.Foo" -->'
        self.assertIsNone(summary_from_xml(marker))

    def test_summary_lines_are_trimmed(self):
        """Test that summary lines are trimmed."""
        payload = '<member name="T:N.Foo">\n<summary>\n   First line.\n     Second line.\n</summary>\n</member>'
        self.assertEqual(summary_from_xml(payload), "First line.\nSecond line.")

    def test_other_sections_are_discarded(self):
        """Test that sections other than summary are ignored."""
        payload = (
            '<member name="M:N.Foo.Bar">'
            "<summary>Adds.</summary>"
            '<param name="x">The value.</param>'
            "<returns>Nothing.</returns>"
            "</member>"
        )
        self.assertEqual(summary_from_xml(payload), "Adds.")

    def test_missing_summary(self):
        """Test a payload without a summary."""
        self.assertIsNone(summary_from_xml("<member><remarks>Only remarks.</remarks></member>"))

    def test_empty_summary(self):
        """Test a whitespace-only summary."""
        self.assertIsNone(summary_from_xml("<member><summary>   </summary></member>"))

    def test_malformed_payload_raises(self):
        """Test that malformed XML raises."""
        with self.assertRaises(MalformedDocumentationError):
            summary_from_xml("<member><summary>Unclosed</member>")


class TestExtractDocumentation(unittest.TestCase):
    """Test documentation of parsed declarations."""

    def _documentation(self, source: bytes, node_type: str):
        tree = parse_bytes(source)
        model = SyntaxSourceModel(tree, source)
        return extract_documentation(first_of(tree, node_type), model)

    def test_documented_method(self):
        """Test a method with a multi-line summary."""
        source = b"""
class Foo {
    /// <summary>
    /// Computes the bar.
    /// </summary>
    /// <param name="x">Input.</param>
    public void Bar(int x) { }
}
"""
        self.assertEqual(self._documentation(source, "method_declaration"), "Computes the bar.")

    def test_block_documentation(self):
        """Test a /** */ documentation comment."""
        source = b"/** <summary>Block doc.</summary> */\nclass Foo { }\n"
        self.assertEqual(self._documentation(source, "class_declaration"), "Block doc.")

    def test_undocumented(self):
        """Test that a plain comment is not documentation."""
        source = b"class Foo {\n    // plain comment\n    int x;\n}\n"
        self.assertIsNone(self._documentation(source, "field_declaration"))

    def test_badly_formed_is_ignored(self):
        """Test that badly formed documentation is dropped."""
        source = b"/// <summary>Never closed\nclass Foo { }\n"
        self.assertIsNone(self._documentation(source, "class_declaration"))

    def test_documentation_on_type_with_attribute(self):
        """Test documentation placed before an attribute list."""
        source = b"/// <summary>Tagged.</summary>\n[Serializable]\npublic class Foo { }\n"
        self.assertEqual(self._documentation(source, "class_declaration"), "Tagged.")


if __name__ == "__main__":
    unittest.main()
