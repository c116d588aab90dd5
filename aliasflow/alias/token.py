"""Abstract memory locations (tokens) and the store that interns them.

A token stands for one abstract location: a global, an SSA value, a formal
parameter, a stack or heap object, a field of another token, or the opaque
object returned by an unanalyzed callee. Tokens are interned, so two
requests for the same structural location return the same instance and
identity comparison is token equality.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

from aliasflow.ir.models import (
    Value, Constant, GlobalVariable, Argument, Instruction, Function, Opcode
)


class TokenKind(Enum):
    """Kinds of abstract memory locations."""
    GLOBAL = "global"          # @g, the storage of a global
    VALUE = "value"            # %v, an SSA value
    PARAMETER = "parameter"    # a formal parameter
    MEMORY = "memory"          # stack slot, heap site or incoming-argument object
    FIELD = "field"            # base.(path)
    RETURN = "return"          # object returned by an unanalyzed callee


@dataclass(eq=False)
class Token:
    """Canonical abstract memory location; compare with ``is`` or ``==``."""
    token_id: int
    kind: TokenKind
    name: str
    function: Optional[str] = None
    base: Optional["Token"] = field(default=None, repr=False)
    path: Tuple = ()
    is_mem: bool = False

    def __hash__(self):
        return self.token_id

    @property
    def is_global(self) -> bool:
        return self.kind == TokenKind.GLOBAL

    @property
    def is_field(self) -> bool:
        return self.kind == TokenKind.FIELD

    @property
    def root(self) -> "Token":
        return self.base.root if self.base is not None else self

    def same_function(self, func: Optional[Function]) -> bool:
        """True if this token is lexically scoped to ``func``."""
        return func is not None and self.function == func.name

    def __str__(self) -> str:
        if self.kind == TokenKind.FIELD:
            return f"{self.base}." + ".".join(str(step) for step in self.path[-1])
        if self.kind == TokenKind.GLOBAL:
            return f"@{self.name}"
        if self.kind == TokenKind.RETURN:
            return f"<ret {self.name}>"
        scope = f"{self.function}." if self.function else ""
        if self.kind == TokenKind.MEMORY:
            return f"[{scope}{self.name}]"
        return f"%{scope}{self.name}"


def _owner(value: Value, function: Optional[Function] = None) -> Optional[str]:
    owner = getattr(value, "function", None) or function
    return owner.name if owner is not None else None


class AliasTokens:
    """Intern table for tokens plus the classification rules of IR statements.

    Instruction classification (``extract_alias_token``):

      ======================  =====================================  ===========
      instruction             tokens                                  levels
      ======================  =====================================  ===========
      %a = alloca             [%a, [a]]                               (1, 0)
      %v = load %p            [%v, %p]                                (1, 2)
      store %v, %p            [%p, %v]                                (2, 1)
      %f = gep %b, idx        [%f, %b]                                (1, 1)
      %b = copy %a            [%b, %a]                                (1, 1)
      %r = call @malloc       [%r, [heap r]]                          (1, 0)
      %r = call @defined      [%r]                                    -
      %r = call @external     [%r, <ret external>]                    (1, 0)
      ret %v                  [%v]                                    -
      ======================  =====================================  ===========

    Only pointer-typed relations are classified; everything else yields no
    tokens. A global operand names its storage rather than a pointer to it,
    so its level is one lower than an SSA operand in the same position.
    """

    def __init__(self, allocator_functions: Sequence[str] = ("malloc", "calloc", "realloc"),
                 analyzable=None, max_field_depth: int = 4):
        """Initialize the token store.

        Args:
            allocator_functions: Callee names whose result is a fresh heap object
            analyzable: Predicate telling whether a callee body is analyzed
            max_field_depth: Longest field path kept before fields collapse
        """
        self.allocator_functions = set(allocator_functions)
        self.analyzable = analyzable or (lambda func: func is not None and not func.is_declaration)
        self.max_field_depth = max_field_depth
        self.module = None
        self._tokens: Dict[Hashable, Token] = {}

    def __len__(self) -> int:
        return len(self._tokens)

    def tokens(self) -> List[Token]:
        return sorted(self._tokens.values(), key=lambda t: t.token_id)

    def _intern(self, key: Hashable, **attrs) -> Token:
        token = self._tokens.get(key)
        if token is None:
            token = Token(token_id=len(self._tokens), **attrs)
            self._tokens[key] = token
        return token

    # Canonical token lookup

    def get_alias_token(self, value: Optional[Value],
                        function: Optional[Function] = None) -> Optional[Token]:
        """Canonical token for an operand value; None for constants.

        ``function`` scopes a formal parameter whose model is not linked to
        its function.
        """
        if value is None or isinstance(value, Constant):
            return None
        if isinstance(value, GlobalVariable):
            return self._intern(("global", value), kind=TokenKind.GLOBAL, name=value.name)
        if isinstance(value, Argument):
            return self._intern(("param", value), kind=TokenKind.PARAMETER,
                                name=value.name, function=_owner(value, function))
        if isinstance(value, Instruction):
            return self._intern(("value", value), kind=TokenKind.VALUE,
                                name=value.name, function=_owner(value, function))
        return None

    def get_memory_token(self, site: Value, label: Optional[str] = None,
                         function: Optional[Function] = None) -> Token:
        """Object allocated by ``site`` (an alloca, an allocator call or a formal)."""
        return self._intern(("memory", site), kind=TokenKind.MEMORY,
                            name=label or site.name, function=_owner(site, function),
                            is_mem=True)

    def get_return_token(self, callee: str) -> Token:
        return self._intern(("return", callee), kind=TokenKind.RETURN, name=callee, is_mem=True)

    def get_field_token(self, base: Token, index: Sequence) -> Token:
        """Canonical field ``index`` of ``base``.

        Fields of fields nest up to ``max_field_depth``; past that depth the
        base token itself is returned so the token universe stays finite.
        """
        index = tuple(index)
        if len(base.path) >= self.max_field_depth:
            return base
        return self._intern(("field", base.token_id, index), kind=TokenKind.FIELD,
                            name=base.name, function=base.function, base=base,
                            path=base.path + (index,), is_mem=base.is_mem)

    # Statement classification

    def extract_alias_token(self, item, function: Optional[Function] = None) -> List[Token]:
        """Tokens related by an instruction, a global or a formal parameter.

        Args:
            item: Instruction, GlobalVariable or Argument
            function: Enclosing function, used for arguments

        Returns:
            0, 1 or 2 tokens; two tokens are (lhs, rhs)
        """
        if isinstance(item, Instruction):
            return self._instruction_tokens(item)
        if isinstance(item, GlobalVariable):
            if not item.holds_pointer:
                return []
            return self._pair(self.get_alias_token(item), self.get_alias_token(item.initializer))
        if isinstance(item, Argument):
            if not item.is_pointer:
                return []
            return [self.get_alias_token(item, function),
                    self.get_memory_token(item, f"{item.name}.in", function)]
        return []

    def _instruction_tokens(self, inst: Instruction) -> List[Token]:
        opcode = inst.opcode
        if opcode == Opcode.ALLOCA:
            return [self.get_alias_token(inst), self.get_memory_token(inst)]
        if opcode == Opcode.LOAD:
            if not inst.is_pointer:
                return []
            return self._pair(self.get_alias_token(inst), self.get_alias_token(inst.pointer_operand))
        if opcode == Opcode.STORE:
            value = inst.value_operand
            if value is None or not value.is_pointer:
                return []
            return self._pair(self.get_alias_token(inst.pointer_operand), self.get_alias_token(value))
        if opcode in (Opcode.FIELD, Opcode.COPY):
            if not inst.is_pointer:
                return []
            return self._pair(self.get_alias_token(inst), self.get_alias_token(inst.source_operand))
        if opcode == Opcode.CALL:
            return self._call_tokens(inst)
        if opcode == Opcode.RET:
            value = inst.value_operand
            token = self.get_alias_token(value) if value is not None and value.is_pointer else None
            return [token] if token is not None else []
        return []

    def _call_tokens(self, inst: Instruction) -> List[Token]:
        if not inst.is_pointer:
            return []
        result = self.get_alias_token(inst)
        if inst.is_indirect_call:
            return [result]
        if inst.callee in self.allocator_functions:
            return [result, self.get_memory_token(inst, f"heap.{inst.name}")]
        callee = self.module.get_function(inst.callee) if self.module is not None else None
        if callee is not None and self.analyzable(callee):
            return [result]
        return [result, self.get_return_token(inst.callee)]

    @staticmethod
    def _pair(lhs: Optional[Token], rhs: Optional[Token]) -> List[Token]:
        if lhs is None or rhs is None:
            return []
        return [lhs, rhs]

    def extract_statement_type(self, item) -> Tuple[int, int]:
        """Redirection levels (lhs, rhs) of an instruction or global initializer."""
        if isinstance(item, GlobalVariable):
            return self.adjust_level(item, 2), self.adjust_level(item.initializer, 1)
        if isinstance(item, Argument):
            return 1, 0
        if not isinstance(item, Instruction):
            return 1, 1
        opcode = item.opcode
        if opcode == Opcode.ALLOCA:
            return 1, 0
        if opcode == Opcode.LOAD:
            return 1, self.adjust_level(item.pointer_operand, 2)
        if opcode == Opcode.STORE:
            return (self.adjust_level(item.pointer_operand, 2),
                    self.adjust_level(item.value_operand, 1))
        if opcode == Opcode.CALL:
            return 1, 0
        if opcode in (Opcode.FIELD, Opcode.COPY):
            return 1, self.adjust_level(item.source_operand, 1)
        return 1, 1

    @staticmethod
    def adjust_level(value: Optional[Value], level: int) -> int:
        """Globals name their storage, one dereference shallower than a pointer."""
        return level - 1 if isinstance(value, GlobalVariable) else level
