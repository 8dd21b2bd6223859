"""
Declaration analysis engine.

Tree-sitter-based C# source analyzer. Describes declared types, their
members, attributes, documentation summaries and the invocations made inside
method and constructor bodies.
"""

from analysis.errors import (
    AnalysisError,
    MalformedDocumentationError,
    ResolutionError,
    UnsupportedDeclarationError,
)
from analysis.models import (
    AttributeArgumentDescription,
    AttributeDescription,
    AttributeValue,
    ConstructorDescription,
    EnumMemberDescription,
    FieldDescription,
    InvocationDescription,
    MethodDescription,
    ParameterDescription,
    PropertyDescription,
    TypeCollection,
    TypeDescription,
)
from analysis.parser import create_parser, parse_file, parse_bytes, count_error_nodes
from analysis.source_model import SourceModel, SyntaxSourceModel, TypeIndex, build_type_index
from analysis.type_graph import analyze, process_type
from analysis.extractor import (
    AnalysisStats,
    analyze_file,
    analyze_files,
    analyze_solution,
    analyze_source,
    analyze_to_dict_list,
)
from analysis.projects import discover_projects, discover_source_files
from analysis.serialization import to_json, write_output

__all__ = [
    # Errors
    "AnalysisError",
    "MalformedDocumentationError",
    "ResolutionError",
    "UnsupportedDeclarationError",
    # Data models
    "AttributeArgumentDescription",
    "AttributeDescription",
    "AttributeValue",
    "ConstructorDescription",
    "EnumMemberDescription",
    "FieldDescription",
    "InvocationDescription",
    "MethodDescription",
    "ParameterDescription",
    "PropertyDescription",
    "TypeCollection",
    "TypeDescription",
    "AnalysisStats",
    # Low-level parsing
    "create_parser",
    "parse_file",
    "parse_bytes",
    "count_error_nodes",
    # Source model
    "SourceModel",
    "SyntaxSourceModel",
    "TypeIndex",
    "build_type_index",
    # Mid-level analysis
    "analyze",
    "process_type",
    # High-level orchestration
    "analyze_file",
    "analyze_files",
    "analyze_solution",
    "analyze_source",
    "analyze_to_dict_list",
    "discover_projects",
    "discover_source_files",
    "to_json",
    "write_output",
]
