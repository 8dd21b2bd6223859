"""
Solution and project discovery.

Finds the C# projects to analyze from a ``.sln`` file, a ``.csproj`` file or
a directory, drops test projects, and lists each project's source files.
"""

import logging
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from analysis.config import (
    CSHARP_EXTENSIONS,
    DEFAULT_EXCLUDED_DIRS,
    DEFAULT_TEST_PROJECT_MARKERS,
)

logger = logging.getLogger(__name__)

# Project("{FAE04EC0-...}") = "Name", "relative\path\Name.csproj", "{GUID}"
_SLN_PROJECT_RE = re.compile(r'^Project\("[^"]*"\)\s*=\s*"([^"]*)",\s*"([^"]*)"', re.MULTILINE)


@dataclass
class ProjectInfo:
    """A project to analyze.

    Attributes:
        name: Project name.
        path: Absolute path of the .csproj, or of the directory for
            directories without project files.
        package_references: Names of NuGet packages the project references.
    """

    name: str
    path: str
    package_references: List[str] = field(default_factory=list)

    @property
    def root(self) -> str:
        return self.path if os.path.isdir(self.path) else os.path.dirname(self.path)

    def is_test_project(self, markers: Iterable[str] = DEFAULT_TEST_PROJECT_MARKERS) -> bool:
        return any(marker in ref for ref in self.package_references for marker in markers)


def read_package_references(csproj_path: str) -> List[str]:
    """Names of ``<PackageReference Include="...">`` entries in a project file."""
    try:
        root = ET.parse(csproj_path).getroot()
    except ET.ParseError as e:
        logger.warning("Cannot parse project file %s: %s", csproj_path, e)
        return []

    references = []
    for element in root.iter():
        tag = element.tag.rsplit("}", 1)[-1]
        if tag == "PackageReference":
            name = element.get("Include") or element.get("Update")
            if name:
                references.append(name)
    return references


def _project_from_csproj(csproj_path: str) -> ProjectInfo:
    csproj_path = os.path.abspath(csproj_path)
    return ProjectInfo(
        name=os.path.splitext(os.path.basename(csproj_path))[0],
        path=csproj_path,
        package_references=read_package_references(csproj_path),
    )


def parse_solution(sln_path: str) -> List[ProjectInfo]:
    """Projects listed in a Visual Studio solution file."""
    sln_path = os.path.abspath(sln_path)
    with open(sln_path, "r", encoding="utf-8-sig") as f:
        content = f.read()

    base_dir = os.path.dirname(sln_path)
    projects = []
    for _name, relative in _SLN_PROJECT_RE.findall(content):
        if not relative.lower().endswith(".csproj"):
            continue  # solution folders and non-C# projects
        project_path = os.path.normpath(os.path.join(base_dir, relative.replace("\\", os.sep)))
        if not os.path.isfile(project_path):
            logger.warning("Project listed in solution not found: %s", project_path)
            continue
        projects.append(_project_from_csproj(project_path))
    return projects


def _find_csproj_files(directory: str, excluded: Iterable[str]) -> List[str]:
    excluded = set(excluded)
    found = []
    for root, dirs, files in os.walk(directory):
        dirs[:] = [d for d in dirs if not d.startswith(".") and d not in excluded]
        for name in files:
            if name.endswith(".csproj"):
                found.append(os.path.join(root, name))
    return sorted(found)


def discover_projects(
    path: str,
    test_markers: Iterable[str] = DEFAULT_TEST_PROJECT_MARKERS,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
    include_test_projects: bool = False,
) -> List[ProjectInfo]:
    """Projects to analyze for a solution, project file or directory.

    Test projects (those referencing a package whose name contains one of
    ``test_markers``) are dropped unless ``include_test_projects`` is set.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """
    path = os.path.abspath(path)
    if os.path.isdir(path):
        csproj_files = _find_csproj_files(path, exclude_dirs)
        if csproj_files:
            projects = [_project_from_csproj(p) for p in csproj_files]
        else:
            projects = [ProjectInfo(name=os.path.basename(path), path=path)]
    elif os.path.isfile(path) and path.lower().endswith(".sln"):
        projects = parse_solution(path)
    elif os.path.isfile(path) and path.lower().endswith(".csproj"):
        projects = [_project_from_csproj(path)]
    else:
        raise FileNotFoundError(f"Solution, project or directory not found: {path}")

    markers = tuple(test_markers)
    kept = []
    for project in projects:
        if not include_test_projects and project.is_test_project(markers):
            logger.info("Skipping test project %s", project.name)
            continue
        kept.append(project)
    logger.info("Found %d projects to analyze in %s", len(kept), path)
    return kept


def discover_source_files(
    directory: str,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
    nested_project_roots: Optional[Iterable[str]] = None,
) -> List[str]:
    """Recursively discover all C# source files in a directory.

    Args:
        directory: Root directory to search.
        exclude_dirs: Directory names never descended into.
        nested_project_roots: Directories owned by other projects; skipped so
            a file is attributed to one project only.

    Returns:
        Sorted list of absolute paths to .cs files.
    """
    directory = os.path.abspath(directory)
    excluded = set(exclude_dirs)
    skip_roots = {os.path.abspath(p) for p in (nested_project_roots or []) if os.path.abspath(p) != directory}
    source_files = []

    for root, dirs, files in os.walk(directory):
        dirs[:] = [
            d for d in dirs
            if not d.startswith(".")
            and d not in excluded
            and os.path.join(root, d) not in skip_roots
        ]
        for name in files:
            if os.path.splitext(name)[1] in CSHARP_EXTENSIONS:
                source_files.append(os.path.join(root, name))

    logger.debug("Found %d C# files in %s", len(source_files), directory)
    return sorted(source_files)
