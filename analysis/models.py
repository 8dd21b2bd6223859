"""
Data models for described C# declarations.

Every record serializes through ``to_dict``, which leaves out ``None`` values
and empty collections so the persisted output only carries what the source
declares.
"""

import threading
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterator, List, Optional, Set

TYPE_KINDS = ("Class", "Struct", "Interface", "Enum")

LITERAL = "Literal"
EXPRESSION = "Expression"


def _compact(value: Any) -> Any:
    if isinstance(value, list):
        return [_compact(item) for item in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def _record_to_dict(record: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for f in fields(record):
        if not f.init or f.name.startswith("_"):
            continue
        value = getattr(record, f.name)
        if value is None or value is False:
            continue
        if isinstance(value, (list, str)) and not value:
            continue
        result[f.name] = _compact(value)
    return result


@dataclass(frozen=True)
class AttributeValue:
    """Argument value resolved once at extraction time.

    ``kind`` is ``Literal`` when the argument is a literal token (``text`` is
    the token value) and ``Expression`` otherwise (``text`` is the raw source).
    """

    kind: str
    text: str

    @property
    def is_literal(self) -> bool:
        return self.kind == LITERAL


@dataclass
class AttributeArgumentDescription:
    name: str
    type: Optional[str]
    value: AttributeValue

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": self.name}
        if self.type:
            result["type"] = self.type
        result["value"] = self.value.text
        return result


@dataclass
class AttributeDescription:
    type: str
    name: str
    arguments: List[AttributeArgumentDescription] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _record_to_dict(self)


@dataclass
class ParameterDescription:
    type: str
    name: str
    has_default_value: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return _record_to_dict(self)


@dataclass
class ArgumentDescription:
    text: str
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _record_to_dict(self)


@dataclass
class InvocationDescription:
    """One call performed inside a callable body.

    Attributes:
        containing_type: Display name of the type declaring the invoked method,
            or the receiver text when the type could not be determined.
        name: Invoked method name (the type name for constructor calls).
        arguments: Argument expressions in call order.
    """

    containing_type: str
    name: str
    arguments: List[ArgumentDescription] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _record_to_dict(self)


@dataclass
class MemberDescription:
    """Base for every member variant; ``kind`` names the variant."""

    name: str

    kind = "Member"

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"kind": self.kind}
        result.update(_record_to_dict(self))
        return result


@dataclass
class FieldDescription(MemberDescription):
    type: str = ""
    modifiers: List[str] = field(default_factory=list)
    initializer: Optional[str] = None
    documentation: Optional[str] = None

    kind = "Field"


@dataclass
class PropertyDescription(MemberDescription):
    type: str = ""
    modifiers: List[str] = field(default_factory=list)
    initializer: Optional[str] = None
    documentation: Optional[str] = None

    kind = "Property"


@dataclass
class EnumMemberDescription(MemberDescription):
    value: Optional[str] = None
    documentation: Optional[str] = None

    kind = "EnumMember"


@dataclass
class CallableDescription(MemberDescription):
    """Shape shared by constructors and methods."""

    modifiers: List[str] = field(default_factory=list)
    parameters: List[ParameterDescription] = field(default_factory=list)
    documentation: Optional[str] = None
    invocations: List[InvocationDescription] = field(default_factory=list)


@dataclass
class ConstructorDescription(CallableDescription):
    kind = "Constructor"


@dataclass
class MethodDescription(CallableDescription):
    return_type: str = "void"

    kind = "Method"


@dataclass
class TypeDescription:
    """A declared class, struct, interface or enum, keyed by ``full_name``.

    ``_sources`` remembers which compilation units already contributed to the
    entry so that analyzing the same unit twice adds nothing.
    """

    kind: str
    full_name: str
    modifiers: List[str] = field(default_factory=list)
    base_types: List[str] = field(default_factory=list)
    attributes: List[AttributeDescription] = field(default_factory=list)
    documentation: Optional[str] = None
    members: List[MemberDescription] = field(default_factory=list)
    _sources: Set[str] = field(default_factory=set, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.kind not in TYPE_KINDS:
            raise ValueError(f"Unknown type kind: {self.kind}")

    @property
    def name(self) -> str:
        """Simple name, without namespace, containing types or type parameters."""
        depth = 0
        cut = 0
        for idx, char in enumerate(self.full_name):
            if char == "<":
                depth += 1
            elif char == ">":
                depth -= 1
            elif char == "." and depth == 0:
                cut = idx + 1
        return self.full_name[cut:].split("<", 1)[0]

    def add_member(self, member: MemberDescription) -> None:
        self.members.append(member)

    def add_modifiers(self, modifiers: List[str]) -> None:
        for modifier in modifiers:
            if modifier not in self.modifiers:
                self.modifiers.append(modifier)

    def add_base_types(self, base_types: List[str]) -> None:
        for base_type in base_types:
            if base_type not in self.base_types:
                self.base_types.append(base_type)

    def absorb(self, fragment: "TypeDescription") -> None:
        """Merge another declaration fragment of the same type into this one."""
        self.add_modifiers(fragment.modifiers)
        self.add_base_types(fragment.base_types)
        self.attributes.extend(fragment.attributes)
        if self.documentation is None:
            self.documentation = fragment.documentation
        self.members.extend(fragment.members)
        self._sources.update(fragment._sources)

    def to_dict(self) -> Dict[str, Any]:
        return _record_to_dict(self)


class TypeCollection:
    """Ordered mapping of full name to ``TypeDescription``.

    Safe to share between threads: every mutation happens under one lock, so
    two traversals can never insert the same full name twice.
    """

    def __init__(self) -> None:
        self._types: Dict[str, TypeDescription] = {}
        self._lock = threading.Lock()

    def __contains__(self, full_name: object) -> bool:
        return full_name in self._types

    def __len__(self) -> int:
        return len(self._types)

    def __iter__(self) -> Iterator[TypeDescription]:
        return iter(list(self._types.values()))

    def get(self, full_name: str) -> Optional[TypeDescription]:
        return self._types.get(full_name)

    def get_or_add(self, kind: str, full_name: str) -> TypeDescription:
        """Return the entry for ``full_name``, creating and appending it if new."""
        with self._lock:
            existing = self._types.get(full_name)
            if existing is not None:
                return existing
            created = TypeDescription(kind=kind, full_name=full_name)
            self._types[full_name] = created
            return created

    def merge(self, other: "TypeCollection") -> int:
        """Fold entries staged in ``other`` into this collection.

        Entries whose sources were all merged before are skipped. Returns the
        number of entries that were added or extended.
        """
        changed = 0
        with self._lock:
            for staged in other:
                existing = self._types.get(staged.full_name)
                if existing is None:
                    self._types[staged.full_name] = staged
                    changed += 1
                    continue
                if staged._sources and staged._sources <= existing._sources:
                    continue
                existing.absorb(staged)
                changed += 1
        return changed

    def sorted(self) -> List[TypeDescription]:
        """Entries ordered by full name, the persisted output order."""
        return sorted(self._types.values(), key=lambda t: t.full_name)

    def member_count(self) -> int:
        return sum(len(t.members) for t in self._types.values())

    def to_dict_list(self) -> List[Dict[str, Any]]:
        return [t.to_dict() for t in self.sorted()]
