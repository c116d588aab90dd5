"""Programmatic construction of IR modules."""

from typing import List, Optional, Sequence, Tuple, Union

from aliasflow.ir.models import (
    Module, Function, BasicBlock, Instruction, Opcode, Value, Constant, GlobalVariable
)


class IRBuilder:
    """Builds a module instruction by instruction.

    The builder keeps an insertion point (the current block). ``function``
    and ``block`` move it; every instruction helper appends at it and
    returns the new instruction so it can be used as an operand later.
    """

    def __init__(self, module_name: str = "module"):
        self.module = Module(name=module_name)
        self.current_function: Optional[Function] = None
        self.current_block: Optional[BasicBlock] = None

    # Module-level entities

    def global_variable(self, name: str, value_type: str,
                        initializer: Optional[Value] = None) -> GlobalVariable:
        var = GlobalVariable(name=name, value_type=value_type, initializer=initializer)
        self.module.globals.append(var)
        return var

    def function(self, name: str, params: Sequence[Tuple[str, str]] = (),
                 return_type: str = "void", **attributes) -> Function:
        """Start a function definition and make it the current function."""
        func = Function(name=name, return_type=return_type, attributes=dict(attributes))
        for param_name, param_type in params:
            func.add_argument(param_name, param_type)
        self.module.functions.append(func)
        self.current_function = func
        self.current_block = None
        return func

    def declare(self, name: str, params: Sequence[Tuple[str, str]] = (),
                return_type: str = "void", **attributes) -> Function:
        """Add a body-less declaration (library function, intrinsic)."""
        func = Function(name=name, return_type=return_type,
                        is_declaration=True, attributes=dict(attributes))
        for param_name, param_type in params:
            func.add_argument(param_name, param_type)
        self.module.functions.append(func)
        return func

    def block(self, label: str) -> BasicBlock:
        if self.current_function is None:
            raise ValueError("No current function; call function() first")
        self.current_block = self.current_function.add_block(label)
        return self.current_block

    # Operands

    @staticmethod
    def null(type_name: str = "ptr") -> Constant:
        return Constant(type=type_name, value=None)

    @staticmethod
    def const(value: int, type_name: str = "i32") -> Constant:
        return Constant(type=type_name, value=value)

    # Instructions

    def _insert(self, inst: Instruction) -> Instruction:
        if self.current_block is None:
            raise ValueError("No insertion block; call block() first")
        return self.current_block.append(inst)

    def alloca(self, name: str, type_name: str) -> Instruction:
        """``%name = alloca``; ``type_name`` is the result (pointer) type."""
        return self._insert(Instruction(name=name, type=type_name, opcode=Opcode.ALLOCA))

    def load(self, name: str, type_name: str, pointer: Value) -> Instruction:
        return self._insert(Instruction(name=name, type=type_name, opcode=Opcode.LOAD,
                                        operands=[pointer]))

    def store(self, value: Value, pointer: Value) -> Instruction:
        return self._insert(Instruction(opcode=Opcode.STORE, operands=[value, pointer]))

    def field(self, name: str, type_name: str, base: Value,
              indices: List[Union[int, str]]) -> Instruction:
        return self._insert(Instruction(name=name, type=type_name, opcode=Opcode.FIELD,
                                        operands=[base], indices=list(indices)))

    def call(self, callee: Optional[str], args: Sequence[Value] = (), name: str = "",
             type_name: str = "void", **attributes) -> Instruction:
        """Direct call to ``callee``; pass ``callee=None`` for an indirect call."""
        return self._insert(Instruction(name=name, type=type_name, opcode=Opcode.CALL,
                                        operands=list(args), callee=callee,
                                        attributes=dict(attributes)))

    def ret(self, value: Optional[Value] = None) -> Instruction:
        operands = [value] if value is not None else []
        type_name = value.type if value is not None else "void"
        return self._insert(Instruction(type=type_name, opcode=Opcode.RET, operands=operands))

    def copy(self, name: str, type_name: str, source: Value) -> Instruction:
        return self._insert(Instruction(name=name, type=type_name, opcode=Opcode.COPY,
                                        operands=[source]))

    def br(self, *targets: str) -> Instruction:
        return self._insert(Instruction(opcode=Opcode.BRANCH, targets=list(targets)))

    def other(self, name: str = "", type_name: str = "i32",
              operands: Sequence[Value] = ()) -> Instruction:
        return self._insert(Instruction(name=name, type=type_name, opcode=Opcode.OTHER,
                                        operands=list(operands)))
