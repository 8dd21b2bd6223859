"""
Configuration constants for C# declaration analysis.

Defines the tree-sitter node type strings used by the type graph traversal.
"""

from typing import Dict, Set

# Type declarations and the kind recorded for each
TYPE_KIND_MAP: Dict[str, str] = {
    "class_declaration": "Class",
    "struct_declaration": "Struct",
    "interface_declaration": "Interface",
    "enum_declaration": "Enum",
    "record_declaration": "Class",
    "record_struct_declaration": "Struct",
}

TYPE_DECLARATION_TYPES: Set[str] = set(TYPE_KIND_MAP)

# Member declarations and the member variant produced for each
MEMBER_KIND_MAP: Dict[str, str] = {
    "field_declaration": "Field",
    "property_declaration": "Property",
    "enum_member_declaration": "EnumMember",
    "constructor_declaration": "Constructor",
    "method_declaration": "Method",
}

# Members that exist in C# but are not described
UNSUPPORTED_MEMBER_TYPES: Set[str] = {
    "event_declaration",
    "event_field_declaration",
    "indexer_declaration",
    "operator_declaration",
    "conversion_operator_declaration",
    "destructor_declaration",
    "delegate_declaration",
}

# Namespace declaration node types
NAMESPACE_NODE: str = "namespace_declaration"
FILE_SCOPED_NAMESPACE_NODE: str = "file_scoped_namespace_declaration"

# Comment node type (includes //, ///, /* */, /** */)
COMMENT_NODE: str = "comment"

# Documentation comment prefixes
DOC_COMMENT_PREFIXES: tuple = (
    "///",
    "/**",
)

# Containers whose direct children are scanned for declarations
CONTAINER_TYPES: Set[str] = {
    "compilation_unit",
    "declaration_list",
    "enum_member_declaration_list",
}

# Preprocessor blocks that may wrap declarations
PREPROCESSOR_CONTAINERS: Set[str] = {
    "preproc_if",
    "preproc_elif",
    "preproc_else",
    "preproc_region",
}

# Invocation node types walked inside callable bodies
INVOCATION_NODE: str = "invocation_expression"
OBJECT_CREATION_NODE: str = "object_creation_expression"

# Literal expression node types and the C# type they carry
LITERAL_TYPE_MAP: Dict[str, str] = {
    "string_literal": "string",
    "verbatim_string_literal": "string",
    "raw_string_literal": "string",
    "character_literal": "char",
    "boolean_literal": "bool",
    "integer_literal": "int",
    "real_literal": "double",
    "null_literal": "",
}

# Expressions whose type is fixed regardless of operands
FIXED_EXPRESSION_TYPES: Dict[str, str] = {
    "interpolated_string_expression": "string",
    "typeof_expression": "System.Type",
    "is_expression": "bool",
    "is_pattern_expression": "bool",
}

# C# source file extension
CSHARP_EXTENSIONS: Set[str] = {
    ".cs",
}

# Directories never scanned for sources
DEFAULT_EXCLUDED_DIRS: Set[str] = {
    "bin",
    "obj",
    "packages",
    "node_modules",
    "TestResults",
}

# Package reference marker identifying test projects
DEFAULT_TEST_PROJECT_MARKERS: tuple = ("Test",)

# Extraction policy defaults
DEFAULT_SPLIT_FIELD_DECLARATORS: bool = False
DEFAULT_MAX_WORKERS: int = 1
