"""
High-level orchestrator for C# declaration analysis.

This module provides the entry points for analyzing in-memory sources, single
files, file sets and whole solutions. Analysis runs in two passes: every file
is parsed and its declared types indexed, then each compilation unit is
traversed into its own collection and merged into the shared one in file
order.
"""

import contextvars
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from tree_sitter import Tree

from analysis.config import (
    CSHARP_EXTENSIONS,
    DEFAULT_EXCLUDED_DIRS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_SPLIT_FIELD_DECLARATORS,
    DEFAULT_TEST_PROJECT_MARKERS,
)
from analysis.describers import DescribeOptions
from analysis.models import TypeCollection
from analysis.parser import count_error_nodes, parse_bytes, parse_file
from analysis.projects import discover_projects, discover_source_files
from analysis.source_model import SyntaxSourceModel, TypeIndex, build_type_index
from analysis.type_graph import analyze
from core.structured_logging import source_scope

logger = logging.getLogger(__name__)


@dataclass
class ParsedSource:
    """A parsed compilation unit waiting for traversal."""

    file_path: str
    tree: Tree
    source_bytes: bytes
    parse_error_count: int


@dataclass
class AnalysisStats:
    """Statistics for an analysis run."""

    projects_analyzed: int = 0
    files_processed: int = 0
    files_failed: int = 0
    types_described: int = 0
    members_described: int = 0
    parse_errors: int = 0
    elapsed_ms: int = 0
    files_with_syntax_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projects_analyzed": self.projects_analyzed,
            "files_processed": self.files_processed,
            "files_failed": self.files_failed,
            "types_described": self.types_described,
            "members_described": self.members_described,
            "parse_errors": self.parse_errors,
            "elapsed_ms": self.elapsed_ms,
        }

    def __str__(self) -> str:
        return (
            f"AnalysisStats(processed={self.files_processed}, "
            f"failed={self.files_failed}, types={self.types_described}, "
            f"members={self.members_described}, parse_errors={self.parse_errors})"
        )


def analyze_source(
    source: bytes,
    types: Optional[TypeCollection] = None,
    file_path: Optional[str] = None,
    index: Optional[TypeIndex] = None,
    split_field_declarators: bool = DEFAULT_SPLIT_FIELD_DECLARATORS,
) -> TypeCollection:
    """Analyze C# source held in memory.

    Args:
        source: UTF-8 encoded C# source.
        types: Collection to add to; a new one is created when omitted.
        file_path: Source id for the unit; defaults to a content hash.
        index: Declared types visible to the unit; defaults to its own.
        split_field_declarators: Emit one Field per declarator.

    Returns:
        The collection holding the described types.

    Example:
        >>> types = analyze_source(b"namespace N { class Foo { int x; } }")
        >>> [t.full_name for t in types.sorted()]
        ['N.Foo']
    """
    if types is None:
        types = TypeCollection()
    tree = parse_bytes(source)
    model = SyntaxSourceModel(tree, source, file_path=file_path, index=index)
    analyze(tree, model, types, DescribeOptions(split_field_declarators=split_field_declarators))
    return types


def _relative_path(file_path: str, root: Optional[str]) -> str:
    if root is None:
        return file_path
    try:
        return os.path.relpath(file_path, root)
    except ValueError:
        logger.warning("Cannot compute relative path for %s from %s. Using absolute path.", file_path, root)
        return file_path


def _parse_source_file(file_path: str, root: Optional[str]) -> ParsedSource:
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")
    if os.path.splitext(file_path)[1] not in CSHARP_EXTENSIONS:
        raise ValueError(f"File {file_path} is not a C# source file. Expected one of: {CSHARP_EXTENSIONS}")

    relative_path = _relative_path(file_path, root)
    with source_scope(relative_path):
        tree, source_bytes = parse_file(file_path)
    return ParsedSource(
        file_path=relative_path,
        tree=tree,
        source_bytes=source_bytes,
        parse_error_count=count_error_nodes(tree),
    )


def _analyze_parsed(parsed: ParsedSource, index: TypeIndex, options: DescribeOptions) -> TypeCollection:
    """Traverse one unit into a private collection; the caller merges it."""
    with source_scope(parsed.file_path):
        model = SyntaxSourceModel(parsed.tree, parsed.source_bytes, file_path=parsed.file_path, index=index)
        staged = TypeCollection()
        analyze(parsed.tree, model, staged, options)
        logger.debug("Analyzed %s (%d types staged)", parsed.file_path, len(staged))
        return staged


def _run_all(
    work: Callable,
    items: List[Any],
    max_workers: int,
) -> List[Tuple[Any, Any, Optional[BaseException]]]:
    """Run ``work`` over ``items``; returns (item, result, error) in item order."""

    def guarded(item):
        try:
            return item, work(item), None
        except Exception as e:
            return item, None, e

    if max_workers <= 1 or len(items) <= 1:
        return [guarded(item) for item in items]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        # Each task runs in a copy of the caller's context so log records keep the run id.
        futures = [executor.submit(contextvars.copy_context().run, guarded, item) for item in items]
        return [future.result() for future in futures]


def _record_failure(stats: AnalysisStats, file_path: str, error: BaseException, continue_on_error: bool) -> None:
    stats.files_failed += 1
    if isinstance(error, (FileNotFoundError, ValueError)):
        logger.error("Invalid file %s: %s", file_path, error)
    else:
        logger.error("Unexpected error processing %s: %s", file_path, error, exc_info=error)
    if not continue_on_error:
        raise error


def analyze_files(
    file_paths: Iterable[str],
    types: Optional[TypeCollection] = None,
    root: Optional[str] = None,
    continue_on_error: bool = True,
    split_field_declarators: bool = DEFAULT_SPLIT_FIELD_DECLARATORS,
    max_workers: int = DEFAULT_MAX_WORKERS,
    stats: Optional[AnalysisStats] = None,
) -> Tuple[TypeCollection, AnalysisStats]:
    """Analyze a set of C# files as one compilation.

    Args:
        file_paths: Paths of the .cs files.
        types: Collection to add to; a new one is created when omitted.
        root: Directory that source ids are made relative to.
        continue_on_error: If True, log and count failing files and go on.
            If False, raise on the first failure.
        split_field_declarators: Emit one Field per declarator.
        max_workers: Threads used for parsing and traversal.
        stats: Statistics object to update.

    Returns:
        A tuple of (types, stats).
    """
    types = types if types is not None else TypeCollection()
    stats = stats if stats is not None else AnalysisStats()
    options = DescribeOptions(split_field_declarators=split_field_declarators)
    started = time.perf_counter()

    paths = [os.path.abspath(p) for p in file_paths]
    parsed_sources: List[ParsedSource] = []
    for path, parsed, error in _run_all(lambda p: _parse_source_file(p, root), paths, max_workers):
        if error is not None:
            _record_failure(stats, path, error, continue_on_error)
            continue
        parsed_sources.append(parsed)
        stats.parse_errors += parsed.parse_error_count
        if parsed.parse_error_count:
            stats.files_with_syntax_errors.append(parsed.file_path)

    index = build_type_index(parsed.tree for parsed in parsed_sources)
    logger.info("Indexed %d types from %d files", len(index), len(parsed_sources))

    # Merged in file order: members of partial types never depend on thread completion order.
    results = _run_all(lambda p: _analyze_parsed(p, index, options), parsed_sources, max_workers)
    for parsed, staged, error in results:
        if error is not None:
            _record_failure(stats, parsed.file_path, error, continue_on_error)
            continue
        types.merge(staged)
        stats.files_processed += 1

    stats.types_described = len(types)
    stats.members_described = types.member_count()
    stats.elapsed_ms += int((time.perf_counter() - started) * 1000)
    logger.info("Analysis complete: %s", stats)
    return types, stats


def analyze_file(
    file_path: str,
    types: Optional[TypeCollection] = None,
    split_field_declarators: bool = DEFAULT_SPLIT_FIELD_DECLARATORS,
) -> TypeCollection:
    """Analyze a single C# file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a C# source file.
        AnalysisError: If a declaration in the file cannot be resolved.
    """
    types, _stats = analyze_files(
        [file_path],
        types=types,
        root=os.path.dirname(os.path.abspath(file_path)),
        continue_on_error=False,
        split_field_declarators=split_field_declarators,
    )
    return types


def analyze_solution(
    path: str,
    test_markers: Iterable[str] = DEFAULT_TEST_PROJECT_MARKERS,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
    continue_on_error: bool = True,
    split_field_declarators: bool = DEFAULT_SPLIT_FIELD_DECLARATORS,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Tuple[TypeCollection, AnalysisStats]:
    """Analyze every non-test project of a solution, project file or directory.

    Example:
        >>> types, stats = analyze_solution("/path/to/App.sln")
        >>> print(f"Described {stats.types_described} types from {stats.files_processed} files")
    """
    markers = tuple(test_markers)
    exclude_dirs = tuple(exclude_dirs)
    projects = discover_projects(path, markers, exclude_dirs, include_test_projects=True)
    project_roots = [project.root for project in projects]

    stats = AnalysisStats()
    seen = set()
    file_paths: List[str] = []
    for project in projects:
        if project.is_test_project(markers):
            logger.info("Skipping test project %s", project.name)
            continue
        stats.projects_analyzed += 1
        for file_path in discover_source_files(project.root, exclude_dirs, project_roots):
            if file_path not in seen:
                seen.add(file_path)
                file_paths.append(file_path)

    if not file_paths:
        logger.warning("No C# files found for %s", path)
        return TypeCollection(), stats

    root = path if os.path.isdir(path) else os.path.dirname(os.path.abspath(path))
    logger.info("Processing %d C# files from %d projects", len(file_paths), stats.projects_analyzed)
    return analyze_files(
        file_paths,
        root=os.path.abspath(root),
        continue_on_error=continue_on_error,
        split_field_declarators=split_field_declarators,
        max_workers=max_workers,
        stats=stats,
    )


def analyze_to_dict_list(source: str, **kwargs: Any) -> List[Dict[str, Any]]:
    """Analyze a file, project, solution or directory into serializable dicts."""
    source = os.path.abspath(source)
    if os.path.isfile(source) and source.endswith(tuple(CSHARP_EXTENSIONS)):
        types = analyze_file(source, split_field_declarators=kwargs.get("split_field_declarators", False))
    else:
        types, stats = analyze_solution(source, **kwargs)
        logger.info("Analysis stats: %s", stats)
    return types.to_dict_list()
