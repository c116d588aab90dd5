"""IR (Intermediate Representation) data models consumed by the points-to analysis."""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Iterator, Union
from enum import Enum


def is_pointer_type(type_name: Optional[str]) -> bool:
    """Check whether a type string denotes a pointer."""
    if not type_name:
        return False
    type_name = type_name.strip()
    return type_name == "ptr" or type_name.endswith("*")


class Opcode(Enum):
    """Instruction kinds understood by the analysis."""
    ALLOCA = "alloca"    # %a = alloca T
    LOAD = "load"        # %v = load %p
    STORE = "store"      # store %v, %p
    FIELD = "gep"        # %f = getelementptr %base, idx...
    CALL = "call"        # %r = call @f(args)
    RET = "ret"          # ret %v
    COPY = "copy"        # %b = bitcast %a
    BRANCH = "br"        # br label...
    OTHER = "other"      # arithmetic, compares, ...


TERMINATORS = {Opcode.RET, Opcode.BRANCH}


@dataclass(eq=False)
class Value:
    """Base class for anything that can appear as an operand."""
    name: str = ""
    type: str = "void"

    @property
    def is_pointer(self) -> bool:
        return is_pointer_type(self.type)

    @property
    def ref(self) -> str:
        """Operand spelling of this value."""
        return f"%{self.name}"

    def __str__(self) -> str:
        return self.ref


@dataclass(eq=False)
class Constant(Value):
    """A literal operand: ``null`` (value None) or an integer."""
    value: Optional[int] = None

    @property
    def is_null(self) -> bool:
        return self.value is None

    @property
    def ref(self) -> str:
        return "null" if self.is_null else str(self.value)


@dataclass(eq=False)
class GlobalVariable(Value):
    """A module-level variable; as an operand it is the address of its storage."""
    value_type: str = "i32"
    initializer: Optional[Value] = None

    def __post_init__(self):
        self.type = f"{self.value_type}*"

    @property
    def holds_pointer(self) -> bool:
        return is_pointer_type(self.value_type)

    @property
    def ref(self) -> str:
        return f"@{self.name}"


@dataclass(eq=False)
class Argument(Value):
    """Formal parameter of a function."""
    function: Optional["Function"] = field(default=None, repr=False)
    index: int = 0


@dataclass(eq=False)
class Instruction(Value):
    """A single IR instruction.

    Operand layout per opcode:
      - LOAD: [pointer]
      - STORE: [value, pointer]
      - FIELD: [base]; static indices in ``indices``
      - CALL: actual arguments; callee name in ``callee`` (None if indirect)
      - RET: [] or [value]
      - COPY: [source]
      - BRANCH: []; successor block labels in ``targets``
    """
    opcode: Opcode = Opcode.OTHER
    operands: List[Value] = field(default_factory=list)
    callee: Optional[str] = None
    indices: List[Union[int, str]] = field(default_factory=list)
    targets: List[str] = field(default_factory=list)
    attributes: Dict[str, Any] = field(default_factory=dict)
    parent: Optional["BasicBlock"] = field(default=None, repr=False)

    @property
    def function(self) -> Optional["Function"]:
        return self.parent.parent if self.parent else None

    @property
    def is_terminator(self) -> bool:
        return self.opcode in TERMINATORS

    @property
    def pointer_operand(self) -> Optional[Value]:
        if self.opcode == Opcode.LOAD and self.operands:
            return self.operands[0]
        if self.opcode == Opcode.STORE and len(self.operands) == 2:
            return self.operands[1]
        return None

    @property
    def value_operand(self) -> Optional[Value]:
        if self.opcode == Opcode.STORE and len(self.operands) == 2:
            return self.operands[0]
        if self.opcode == Opcode.RET and self.operands:
            return self.operands[0]
        return None

    @property
    def source_operand(self) -> Optional[Value]:
        if self.opcode in (Opcode.COPY, Opcode.FIELD) and self.operands:
            return self.operands[0]
        return None

    @property
    def arguments(self) -> List[Value]:
        return list(self.operands) if self.opcode == Opcode.CALL else []

    @property
    def is_indirect_call(self) -> bool:
        return self.opcode == Opcode.CALL and self.callee is None

    @property
    def does_not_return(self) -> bool:
        return bool(self.attributes.get("noreturn", False))

    @property
    def index_descriptor(self) -> tuple:
        """Static field path of a FIELD instruction; non-constant indices become '*'."""
        return tuple(i if isinstance(i, int) else "*" for i in self.indices)

    def __str__(self) -> str:
        ops = ", ".join(op.ref for op in self.operands)
        if self.opcode == Opcode.CALL:
            target = f"@{self.callee}" if self.callee else "<indirect>"
            text = f"call {target}({ops})"
        elif self.opcode == Opcode.FIELD:
            idx = ", ".join(str(i) for i in self.indices)
            text = f"gep {ops}, [{idx}]"
        elif self.opcode == Opcode.BRANCH:
            text = "br " + ", ".join(f"label %{t}" for t in self.targets)
        else:
            text = f"{self.opcode.value} {ops}".rstrip()
        if self.name and self.opcode not in (Opcode.STORE, Opcode.RET, Opcode.BRANCH):
            return f"%{self.name} = {text}"
        return text


@dataclass(eq=False)
class BasicBlock:
    """Straight-line sequence of instructions."""
    label: str = ""
    instructions: List[Instruction] = field(default_factory=list)
    parent: Optional["Function"] = field(default=None, repr=False)

    def append(self, inst: Instruction) -> Instruction:
        inst.parent = self
        self.instructions.append(inst)
        return inst

    @property
    def terminator(self) -> Optional[Instruction]:
        if self.instructions and self.instructions[-1].is_terminator:
            return self.instructions[-1]
        return None


@dataclass(eq=False)
class Function:
    """A function definition or declaration."""
    name: str
    return_type: str = "void"
    arguments: List[Argument] = field(default_factory=list)
    blocks: List[BasicBlock] = field(default_factory=list)
    is_declaration: bool = False
    attributes: Dict[str, Any] = field(default_factory=dict)

    def add_argument(self, name: str, type_name: str) -> Argument:
        arg = Argument(name=name, type=type_name, function=self, index=len(self.arguments))
        self.arguments.append(arg)
        return arg

    def add_block(self, label: str) -> BasicBlock:
        block = BasicBlock(label=label, parent=self)
        self.blocks.append(block)
        return block

    def get_block(self, label: str) -> Optional[BasicBlock]:
        for block in self.blocks:
            if block.label == label:
                return block
        return None

    def instructions(self) -> Iterator[Instruction]:
        for block in self.blocks:
            yield from block.instructions

    @property
    def does_not_return(self) -> bool:
        return bool(self.attributes.get("noreturn", False))

    def __str__(self) -> str:
        return f"@{self.name}"


@dataclass(eq=False)
class Module:
    """A translation unit: globals plus functions in definition order."""
    name: str = "module"
    globals: List[GlobalVariable] = field(default_factory=list)
    functions: List[Function] = field(default_factory=list)

    def get_function(self, name: Optional[str]) -> Optional[Function]:
        for func in self.functions:
            if func.name == name:
                return func
        return None

    def get_global(self, name: str) -> Optional[GlobalVariable]:
        for var in self.globals:
            if var.name == name:
                return var
        return None

    def instructions(self) -> Iterator[Instruction]:
        for func in self.functions:
            yield from func.instructions()
