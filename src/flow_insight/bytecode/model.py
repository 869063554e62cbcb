"""In-memory image of a compiled module.

The bytecode publisher extractor only sees these types, so it can be
driven by the IL listing reader or by a hand-built image in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Sequence, Union


class OpCategory(Enum):
    """Instruction families the publisher trace cares about."""

    CALL = "call"
    NEW_OBJECT = "newobj"
    LOAD_LOCAL = "ldloc"
    STORE_LOCAL = "stloc"
    LOAD_FIELD = "ldfld"
    OTHER = "other"


_CALL_OPCODES = frozenset({"call", "callvirt", "calli"})
_LOAD_FIELD_OPCODES = frozenset({"ldfld", "ldsfld"})


def categorize(opcode: str) -> OpCategory:
    """Map an opcode mnemonic (``callvirt``, ``ldloc.0`` ...) to its category."""
    op = opcode.lower()
    if op in _CALL_OPCODES:
        return OpCategory.CALL
    if op == "newobj":
        return OpCategory.NEW_OBJECT
    if op == "ldloc" or op.startswith("ldloc."):
        return OpCategory.LOAD_LOCAL
    if op == "stloc" or op.startswith("stloc."):
        return OpCategory.STORE_LOCAL
    if op in _LOAD_FIELD_OPCODES:
        return OpCategory.LOAD_FIELD
    return OpCategory.OTHER


@dataclass(frozen=True)
class TypeRef:
    """Reference to a type, possibly declared in another module.

    ``scope`` names the declaring assembly for external references and is
    empty for types of the current module.
    """

    name: str
    full_name: str = ""
    scope: str = ""

    def __post_init__(self) -> None:
        if not self.full_name:
            object.__setattr__(self, "full_name", self.name)

    def __str__(self) -> str:
        return f"[{self.scope}]{self.full_name}" if self.scope else self.full_name


@dataclass(frozen=True)
class MethodRef:
    name: str
    declaring_type: TypeRef

    def __str__(self) -> str:
        return f"{self.declaring_type}::{self.name}"


@dataclass(frozen=True)
class FieldRef:
    name: str
    field_type: TypeRef
    declaring_type: Optional[TypeRef] = None

    def __str__(self) -> str:
        owner = f"{self.declaring_type}::" if self.declaring_type else ""
        return f"{self.field_type} {owner}{self.name}"


Operand = Union[MethodRef, FieldRef, TypeRef, int, str, None]


@dataclass(frozen=True)
class Instruction:
    """One instruction; local load/store operands are slot indices."""

    offset: int
    opcode: str
    operand: Operand = None
    category: OpCategory = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", categorize(self.opcode))

    @property
    def local_slot(self) -> Optional[int]:
        """Slot index of a local load/store; short forms carry it in the opcode."""
        if self.category not in (OpCategory.LOAD_LOCAL, OpCategory.STORE_LOCAL):
            return None
        if isinstance(self.operand, int):
            return self.operand
        _, _, suffix = self.opcode.partition(".")
        return int(suffix) if suffix.isdigit() else None

    def __str__(self) -> str:
        operand = "" if self.operand is None else f" {self.operand}"
        return f"IL_{self.offset:04X}: {self.opcode}{operand}"


@dataclass(frozen=True)
class SequencePoint:
    """Debug mapping from an instruction offset to a source line."""

    offset: int
    line: int
    document: str = ""


@dataclass
class MethodDef:
    name: str
    instructions: list[Instruction] = field(default_factory=list)
    attributes: list[str] = field(default_factory=list)
    sequence_points: list[SequencePoint] = field(default_factory=list)

    @property
    def has_body(self) -> bool:
        return bool(self.instructions)

    def line_for(self, offset: int) -> int:
        """Source line of the closest sequence point at or before ``offset`` (0 if none)."""
        best: Optional[SequencePoint] = None
        for sp in self.sequence_points:
            if sp.offset <= offset and (best is None or sp.offset >= best.offset):
                best = sp
        return best.line if best else 0


@dataclass
class TypeDef:
    """A type declared in the module."""

    name: str
    full_name: str = ""
    base_type: Optional[TypeRef] = None
    interfaces: list[TypeRef] = field(default_factory=list)
    attributes: list[str] = field(default_factory=list)
    methods: list[MethodDef] = field(default_factory=list)
    is_interface: bool = False
    is_abstract: bool = False
    # Enclosing type of a nested type
    declaring_type: Optional[TypeDef] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.full_name:
            self.full_name = self.name

    @property
    def is_compiler_generated(self) -> bool:
        """Names such as ``<Run>d__2`` (async state machine) or ``<>c`` (lambdas)."""
        return self.name.startswith("<")

    def source_type(self) -> TypeDef:
        """The declared type a compiler-generated nested type was emitted for."""
        type_def = self
        while type_def.is_compiler_generated and type_def.declaring_type is not None:
            type_def = type_def.declaring_type
        return type_def


class TypeNode(Protocol):
    """What hierarchy walking needs to know about a resolved type."""

    name: str
    base_type: Optional[TypeRef]
    interfaces: Sequence[TypeRef]


class TypeResolver(Protocol):
    """Resolves a reference to its definition.

    Returns None when the definition is not available and may raise
    ``TypeResolutionError`` when resolution itself fails.
    """

    def resolve(self, ref: TypeRef) -> Optional[TypeNode]: ...


@dataclass
class ModuleImage:
    """All types of one compiled module."""

    name: str
    path: str = ""
    types: list[TypeDef] = field(default_factory=list)

    def resolve(self, ref: TypeRef) -> Optional[TypeDef]:
        """Resolve ``ref`` against this module's own types.

        References scoped to another assembly are not available.
        """
        if ref.scope and ref.scope != self.name:
            return None
        for t in self.types:
            if t.full_name == ref.full_name:
                return t
        return None
