"""
Unit tests for extractor.py

Tests high-level orchestration: in-memory sources, files, file sets and
solutions, including cross-file type resolution and error handling.
"""

import os
import shutil
import tempfile
import unittest
from pathlib import Path

from analysis.extractor import (
    AnalysisStats,
    analyze_file,
    analyze_files,
    analyze_solution,
    analyze_source,
    analyze_to_dict_list,
)
from analysis.models import TypeCollection

APP_CSPROJ = """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup><TargetFramework>net8.0</TargetFramework></PropertyGroup>
</Project>
"""

TEST_CSPROJ = """<Project Sdk="Microsoft.NET.Sdk">
  <ItemGroup>
    <PackageReference Include="Microsoft.NET.Test.Sdk" Version="17.8.0" />
  </ItemGroup>
</Project>
"""

WIDGET_CS = """namespace Shop.Core
{
    /// <summary>A thing for sale.</summary>
    public class Widget
    {
        public decimal Price { get; set; }
        public void Ship() { }
    }
}
"""

SERVICE_CS = """using Shop.Core;

namespace Shop.Services
{
    public class OrderService
    {
        private readonly Widget _widget = new Widget();

        public void Place()
        {
            _widget.Ship();
        }
    }
}
"""


class TestAnalysisStats(unittest.TestCase):
    """Test the run statistics record."""

    def test_creation(self):
        """Test that a fresh stats object starts at zero."""
        stats = AnalysisStats()
        self.assertEqual(stats.files_processed, 0)
        self.assertEqual(stats.files_with_syntax_errors, [])

    def test_to_dict(self):
        """Test that the report dict carries counters but not the file list."""
        stats = AnalysisStats(files_processed=3, files_failed=1, types_described=4)
        d = stats.to_dict()
        self.assertEqual(d["files_processed"], 3)
        self.assertEqual(d["files_failed"], 1)
        self.assertEqual(d["types_described"], 4)
        self.assertNotIn("files_with_syntax_errors", d)

    def test_str_representation(self):
        """Test the one-line summary used in logs."""
        text = str(AnalysisStats(files_processed=2, members_described=7))
        self.assertIn("processed=2", text)
        self.assertIn("members=7", text)


class TestAnalyzeSource(unittest.TestCase):
    """Test analyzing C# source held in memory."""

    def test_new_collection(self):
        """Test that a new collection is created when none is passed."""
        types = analyze_source(b"namespace N { class Foo { int x; } }")
        self.assertEqual([t.full_name for t in types.sorted()], ["N.Foo"])

    def test_adds_to_existing_collection(self):
        """Test that several sources accumulate into one collection."""
        types = TypeCollection()
        analyze_source(b"class A { }", types=types, file_path="A.cs")
        analyze_source(b"class B { }", types=types, file_path="B.cs")
        self.assertEqual(len(types), 2)

    def test_split_field_declarators(self):
        """Test that the split option emits one field per declarator."""
        types = analyze_source(b"class A { int x, y; }", split_field_declarators=True)
        self.assertEqual([m.name for m in types.get("A").members], ["x", "y"])


class FileTreeTestCase(unittest.TestCase):
    """Base case that writes C# files into a temporary directory."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.root = Path(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _write(self, relative: str, content: str) -> str:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return str(path)


class TestAnalyzeFile(FileTreeTestCase):
    """Test single file analysis."""

    def test_analyze_file(self):
        """Test describing the types of one file."""
        path = self._write("Widget.cs", WIDGET_CS)
        types = analyze_file(path)
        widget = types.get("Shop.Core.Widget")
        self.assertIsNotNone(widget)
        self.assertEqual(widget.documentation, "A thing for sale.")
        self.assertEqual([m.name for m in widget.members], ["Price", "Ship"])

    def test_nonexistent_file(self):
        """Test that a missing file raises FileNotFoundError."""
        with self.assertRaises(FileNotFoundError):
            analyze_file(str(self.root / "Missing.cs"))

    def test_non_csharp_file(self):
        """Test that a non .cs file raises ValueError."""
        path = self._write("notes.txt", "class A { }")
        with self.assertRaises(ValueError):
            analyze_file(path)


class TestAnalyzeFiles(FileTreeTestCase):
    """Test analyzing a set of files as one compilation."""

    def test_cross_file_resolution(self):
        """Test that types declared in one file resolve in another."""
        paths = [self._write("Widget.cs", WIDGET_CS), self._write("OrderService.cs", SERVICE_CS)]
        types, stats = analyze_files(paths, root=self.temp_dir)

        self.assertEqual(stats.files_processed, 2)
        self.assertEqual(stats.files_failed, 0)
        service = types.get("Shop.Services.OrderService")
        field, method = service.members
        self.assertEqual(field.type, "Shop.Core.Widget")
        self.assertEqual(field.initializer, "new Widget()")
        self.assertEqual([(i.containing_type, i.name) for i in method.invocations], [("Shop.Core.Widget", "Ship")])

    def test_workers_produce_same_output(self):
        """Test that a thread pool gives the same output as a sequential run."""
        paths = [self._write(f"T{idx}.cs", f"namespace N {{ class T{idx} {{ int f; }} }}") for idx in range(6)]
        sequential, _ = analyze_files(paths, root=self.temp_dir)
        parallel, stats = analyze_files(paths, root=self.temp_dir, max_workers=3)
        self.assertEqual(sequential.to_dict_list(), parallel.to_dict_list())
        self.assertEqual(stats.files_processed, 6)

    def test_workers_keep_partial_type_member_order(self):
        """Test that partial type fragments are merged in file order under a thread pool."""
        paths = [
            self._write(
                f"P{idx:02d}.cs",
                "partial class P { " + " ".join(f"int f{idx}_{j};" for j in range(3)) + " }",
            )
            for idx in range(24)
        ]
        expected = [f"f{idx}_{j}" for idx in range(24) for j in range(3)]
        sequential, _ = analyze_files(paths, root=self.temp_dir)
        self.assertEqual([m.name for m in sequential.get("P").members], expected)
        for _ in range(5):
            parallel, stats = analyze_files(paths, root=self.temp_dir, max_workers=8)
            self.assertEqual([m.name for m in parallel.get("P").members], expected)
            self.assertEqual(parallel.to_dict_list(), sequential.to_dict_list())
        self.assertEqual(stats.files_processed, 24)

    def test_continue_on_error(self):
        """Test that a failing file is counted and the rest still analyzed."""
        good = self._write("Good.cs", "class Good { }")
        missing = str(self.root / "Missing.cs")
        types, stats = analyze_files([good, missing], root=self.temp_dir)
        self.assertEqual(stats.files_processed, 1)
        self.assertEqual(stats.files_failed, 1)
        self.assertIn("Good", types)

    def test_stop_on_error(self):
        """Test that the first failure is raised when continue_on_error is off."""
        good = self._write("Good.cs", "class Good { }")
        missing = str(self.root / "Missing.cs")
        with self.assertRaises(FileNotFoundError):
            analyze_files([good, missing], continue_on_error=False)

    def test_syntax_errors_are_reported(self):
        """Test that files with syntax errors are counted and listed."""
        broken = self._write("Broken.cs", "class Broken { void M( { }")
        _types, stats = analyze_files([broken], root=self.temp_dir)
        self.assertGreater(stats.parse_errors, 0)
        self.assertEqual(stats.files_with_syntax_errors, ["Broken.cs"])

    def test_reanalysis_is_idempotent(self):
        """Test that analyzing the same file twice adds nothing."""
        path = self._write("Widget.cs", WIDGET_CS)
        types, _ = analyze_files([path], root=self.temp_dir)
        analyze_files([path], types=types, root=self.temp_dir)
        self.assertEqual(len(types), 1)
        self.assertEqual(types.member_count(), 2)


class TestAnalyzeSolution(FileTreeTestCase):
    """Test solution, directory and project discovery end to end."""

    def setUp(self):
        super().setUp()
        self._write(
            "Shop.sln",
            'Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "Shop", "src\\Shop\\Shop.csproj", "{A}"\n'
            "EndProject\n"
            'Project("{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}") = "Shop.Tests", "tests\\Shop.Tests\\Shop.Tests.csproj", "{B}"\n'
            "EndProject\n",
        )
        self._write("src/Shop/Shop.csproj", APP_CSPROJ)
        self._write("src/Shop/Core/Widget.cs", WIDGET_CS)
        self._write("src/Shop/Services/OrderService.cs", SERVICE_CS)
        self._write("src/Shop/obj/Debug/AssemblyInfo.cs", "class AssemblyInfo { }")
        self._write("tests/Shop.Tests/Shop.Tests.csproj", TEST_CSPROJ)
        self._write("tests/Shop.Tests/WidgetTests.cs", "namespace Shop.Tests { class WidgetTests { } }")

    def test_solution(self):
        """Test that a solution analyzes its non-test projects only."""
        types, stats = analyze_solution(str(self.root / "Shop.sln"))
        self.assertEqual(
            [t.full_name for t in types.sorted()],
            ["Shop.Core.Widget", "Shop.Services.OrderService"],
        )
        self.assertEqual(stats.projects_analyzed, 1)
        self.assertEqual(stats.files_processed, 2)
        self.assertEqual(stats.types_described, 2)
        self.assertEqual(stats.members_described, 4)

    def test_directory(self):
        """Test analyzing a directory with a thread pool."""
        types, stats = analyze_solution(self.temp_dir, max_workers=2)
        self.assertNotIn("Shop.Tests.WidgetTests", types)
        self.assertEqual(len(types), 2)

    def test_empty_directory(self):
        """Test that a directory without sources yields nothing."""
        empty = self.root / "empty"
        empty.mkdir()
        types, stats = analyze_solution(str(empty))
        self.assertEqual(len(types), 0)
        self.assertEqual(stats.files_processed, 0)

    def test_missing_solution(self):
        """Test that a missing solution raises FileNotFoundError."""
        with self.assertRaises(FileNotFoundError):
            analyze_solution(str(self.root / "Missing.sln"))

    def test_to_dict_list(self):
        """Test the serializable form of a solution analysis."""
        payload = analyze_to_dict_list(str(self.root / "Shop.sln"))
        self.assertEqual(payload[0]["full_name"], "Shop.Core.Widget")
        self.assertEqual(payload[0]["documentation"], "A thing for sale.")
        self.assertEqual(payload[0]["members"][0], {
            "kind": "Property",
            "name": "Price",
            "type": "decimal",
            "modifiers": ["public"],
        })


if __name__ == "__main__":
    unittest.main()
