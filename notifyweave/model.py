"""
Module Model for NotifyWeave.

An in-memory IR of a compiled module: types (with nesting and a base type
reference), methods with editable instruction bodies, and properties whose
accessors are methods. Every node carries its markers.

Domain Objects:
    Instruction      — One operation node in a doubly-linked body
    InstructionList  — Editable body supporting O(1) insert/remove
    TypeRef          — Reference to a type, possibly in another module
    MethodRef        — Reference to a method, possibly in another module
    MethodDef        — Method definition (body is None when abstract/external)
    PropertyDef      — Property with optional get/set accessors
    TypeDef          — Type definition with nested types
    ModuleDef        — Owner of the type tree
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from .markers import Marker


STRING_TYPE_NAME = "System.String"
VOID_TYPE_NAME = "System.Void"
OBJECT_TYPE_NAME = "System.Object"


# =============================================================================
# INSTRUCTIONS
# =============================================================================

class OpCode(Enum):
    """The subset of opcodes the weaver reads or emits."""
    NOP = "nop"
    LDARG_0 = "ldarg.0"
    LDARG_1 = "ldarg.1"
    LDSTR = "ldstr"
    LDNULL = "ldnull"
    LDFLD = "ldfld"
    STFLD = "stfld"
    CALL = "call"
    CALLVIRT = "callvirt"
    POP = "pop"
    RET = "ret"


@dataclass(eq=False)
class Instruction:
    """
    A single operation node.

    Identity matters: two `nop`s are different instructions, so equality is
    by object, not by value. The links are owned by the InstructionList.
    """
    opcode: OpCode
    operand: Any = None
    previous: Optional[Instruction] = field(default=None, repr=False)
    next: Optional[Instruction] = field(default=None, repr=False)

    @classmethod
    def create(cls, opcode: OpCode, operand: Any = None) -> Instruction:
        return cls(opcode=opcode, operand=operand)

    def __str__(self) -> str:
        if self.operand is None:
            return self.opcode.value
        if isinstance(self.operand, str) and self.opcode == OpCode.LDSTR:
            return f'{self.opcode.value} "{self.operand}"'
        return f"{self.opcode.value} {self.operand}"


class InstructionList:
    """
    Doubly-linked instruction sequence.

    Insertion and removal relative to a known instruction are O(1).
    Indexing walks the list and is O(n).
    """

    def __init__(self, instructions: Optional[list[Instruction]] = None):
        self.first: Optional[Instruction] = None
        self.last: Optional[Instruction] = None
        self._count = 0
        for instruction in instructions or []:
            self.append(instruction)

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[Instruction]:
        node = self.first
        while node is not None:
            yield node
            node = node.next

    def __getitem__(self, index: int) -> Instruction:
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError("instruction index out of range")
        for i, node in enumerate(self):
            if i == index:
                return node
        raise IndexError("instruction index out of range")

    def _check_detached(self, instruction: Instruction) -> None:
        if instruction.previous is not None or instruction.next is not None or instruction is self.first:
            raise ValueError(f"Instruction already belongs to a body: {instruction}")

    def append(self, instruction: Instruction) -> None:
        self._check_detached(instruction)
        if self.last is None:
            self.first = self.last = instruction
        else:
            instruction.previous = self.last
            self.last.next = instruction
            self.last = instruction
        self._count += 1

    def insert_before(self, target: Instruction, instruction: Instruction) -> None:
        """Link `instruction` immediately before `target`."""
        self._check_detached(instruction)
        instruction.next = target
        instruction.previous = target.previous
        if target.previous is None:
            self.first = instruction
        else:
            target.previous.next = instruction
        target.previous = instruction
        self._count += 1

    def insert_after(self, target: Instruction, instruction: Instruction) -> None:
        """Link `instruction` immediately after `target`."""
        self._check_detached(instruction)
        instruction.previous = target
        instruction.next = target.next
        if target.next is None:
            self.last = instruction
        else:
            target.next.previous = instruction
        target.next = instruction
        self._count += 1

    def remove(self, instruction: Instruction) -> None:
        if instruction.previous is None:
            self.first = instruction.next
        else:
            instruction.previous.next = instruction.next
        if instruction.next is None:
            self.last = instruction.previous
        else:
            instruction.next.previous = instruction.previous
        instruction.previous = instruction.next = None
        self._count -= 1

    def opcodes(self) -> list[OpCode]:
        return [i.opcode for i in self]


@dataclass
class MethodBody:
    instructions: InstructionList = field(default_factory=InstructionList)


# =============================================================================
# REFERENCES
# =============================================================================

@dataclass(frozen=True)
class TypeRef:
    """A type identified by its defining module and full name."""
    module: str
    full_name: str

    def __str__(self) -> str:
        return f"[{self.module}]{self.full_name}"


@dataclass(frozen=True)
class MethodRef:
    """A method identified by declaring type, name and signature."""
    declaring_type: TypeRef
    name: str
    parameter_types: tuple[str, ...] = ()
    return_type: str = VOID_TYPE_NAME

    @property
    def full_name(self) -> str:
        params = ",".join(self.parameter_types)
        return f"{self.declaring_type.full_name}::{self.name}({params})"

    def __str__(self) -> str:
        return f"{self.return_type} [{self.declaring_type.module}]{self.full_name}"


# =============================================================================
# DEFINITIONS
# =============================================================================

@dataclass
class ParameterDef:
    name: str
    type_name: str


@dataclass(eq=False)
class MethodDef:
    """
    A method definition.

    `body` is None for abstract and external methods.
    """
    name: str
    parameters: list[ParameterDef] = field(default_factory=list)
    return_type: str = VOID_TYPE_NAME
    visibility: str = "public"
    markers: list[Marker] = field(default_factory=list)
    body: Optional[MethodBody] = None
    declaring_type: Optional[TypeDef] = field(default=None, repr=False)

    @property
    def is_public(self) -> bool:
        return self.visibility == "public"

    @property
    def has_body(self) -> bool:
        return self.body is not None

    def reference(self) -> MethodRef:
        """Reference to this method as seen from its own module."""
        if self.declaring_type is None:
            raise ValueError(f"Method {self.name} is not attached to a type")
        return MethodRef(
            declaring_type=self.declaring_type.reference(),
            name=self.name,
            parameter_types=tuple(p.type_name for p in self.parameters),
            return_type=self.return_type,
        )


@dataclass(eq=False)
class PropertyDef:
    name: str
    type_name: str = OBJECT_TYPE_NAME
    get_method: Optional[MethodDef] = None
    set_method: Optional[MethodDef] = None
    markers: list[Marker] = field(default_factory=list)
    declaring_type: Optional[TypeDef] = field(default=None, repr=False)


@dataclass(eq=False)
class TypeDef:
    """
    A type definition.

    Nested types keep a link to their declaring type; the module link is
    set on the whole tree when the type is added to a module.
    """
    name: str
    namespace: str = ""
    base_type: Optional[TypeRef] = None
    markers: list[Marker] = field(default_factory=list)
    methods: list[MethodDef] = field(default_factory=list)
    properties: list[PropertyDef] = field(default_factory=list)
    nested_types: list[TypeDef] = field(default_factory=list)
    declaring_type: Optional[TypeDef] = field(default=None, repr=False)
    module: Optional[ModuleDef] = field(default=None, repr=False)

    @property
    def full_name(self) -> str:
        if self.declaring_type is not None:
            return f"{self.declaring_type.full_name}/{self.name}"
        if self.namespace:
            return f"{self.namespace}.{self.name}"
        return self.name

    def reference(self) -> TypeRef:
        if self.module is None:
            raise ValueError(f"Type {self.full_name} is not attached to a module")
        return TypeRef(module=self.module.name, full_name=self.full_name)

    def add_method(self, method: MethodDef) -> MethodDef:
        method.declaring_type = self
        self.methods.append(method)
        return method

    def add_property(self, prop: PropertyDef) -> PropertyDef:
        prop.declaring_type = self
        self.properties.append(prop)
        return prop

    def add_nested_type(self, nested: TypeDef) -> TypeDef:
        nested.declaring_type = self
        self.nested_types.append(nested)
        if self.module is not None:
            self.module._attach(nested)
        return nested

    def find_method(self, name: str) -> Optional[MethodDef]:
        return next((m for m in self.methods if m.name == name), None)

    def add_auto_property(
        self,
        name: str,
        type_name: str = STRING_TYPE_NAME,
        setter_visibility: str = "public",
        markers: Optional[list[Marker]] = None,
        read_only: bool = False,
    ) -> PropertyDef:
        """
        Add a property backed by a compiler-generated field.

        The setter body is the usual `this.<Name>k__BackingField = value`.
        """
        field_name = f"<{name}>k__BackingField"
        getter = self.add_method(MethodDef(
            name=f"get_{name}",
            return_type=type_name,
            body=MethodBody(InstructionList([
                Instruction.create(OpCode.LDARG_0),
                Instruction.create(OpCode.LDFLD, field_name),
                Instruction.create(OpCode.RET),
            ])),
        ))
        setter = None
        if not read_only:
            setter = self.add_method(MethodDef(
                name=f"set_{name}",
                parameters=[ParameterDef("value", type_name)],
                visibility=setter_visibility,
                body=MethodBody(InstructionList([
                    Instruction.create(OpCode.LDARG_0),
                    Instruction.create(OpCode.LDARG_1),
                    Instruction.create(OpCode.STFLD, field_name),
                    Instruction.create(OpCode.RET),
                ])),
            ))
        return self.add_property(PropertyDef(
            name=name,
            type_name=type_name,
            get_method=getter,
            set_method=setter,
            markers=list(markers or []),
        ))


@dataclass(eq=False)
class ModuleDef:
    """
    A loaded module: the type tree plus the names of referenced modules.

    `symbols` holds the companion debug-symbol payload when it was read.
    """
    name: str
    types: list[TypeDef] = field(default_factory=list)
    references: list[str] = field(default_factory=list)
    symbols: Optional[dict] = field(default=None, repr=False)

    def add_type(self, type_def: TypeDef) -> TypeDef:
        self.types.append(type_def)
        self._attach(type_def)
        return type_def

    def _attach(self, type_def: TypeDef) -> None:
        type_def.module = self
        for nested in type_def.nested_types:
            nested.declaring_type = type_def
            self._attach(nested)

    def iter_types(self) -> Iterator[TypeDef]:
        """All types, depth-first, outer before nested."""
        stack = list(reversed(self.types))
        while stack:
            type_def = stack.pop()
            yield type_def
            stack.extend(reversed(type_def.nested_types))

    def find_type(self, full_name: str) -> Optional[TypeDef]:
        return next((t for t in self.iter_types() if t.full_name == full_name), None)

    def import_reference(self, method: MethodRef) -> MethodRef:
        """
        Make a method reference usable from this module.

        Foreign declaring modules are recorded in `references`.
        """
        foreign = method.declaring_type.module
        if foreign != self.name and foreign not in self.references:
            self.references.append(foreign)
        return method
