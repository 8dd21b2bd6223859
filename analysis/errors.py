"""Exceptions raised by the declaration analysis engine."""


class AnalysisError(RuntimeError):
    """Base class for analysis failures."""


class ResolutionError(AnalysisError):
    """The source model could not resolve a name, symbol or type for a node.

    Fatal for the enclosing traversal: an unresolved full name would break
    the one-entry-per-type guarantee of the output collection.
    """

    def __init__(self, message: str, node_type: str | None = None, line: int | None = None):
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message)
        self.node_type = node_type
        self.line = line


class MalformedDocumentationError(AnalysisError):
    """A documentation payload is neither empty, a comment marker, nor valid XML."""


class UnsupportedDeclarationError(AnalysisError):
    """A member declaration kind that the describer does not handle."""

    def __init__(self, node_type: str, line: int):
        super().__init__(f"Unsupported member declaration '{node_type}' at line {line}")
        self.node_type = node_type
        self.line = line
