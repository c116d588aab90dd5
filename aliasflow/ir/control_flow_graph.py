"""Instruction-level control flow graph used to drive the points-to analysis."""

import networkx as nx
from typing import Dict, List, Optional, Sequence

from aliasflow.ir.models import Module, Function, Instruction, Opcode
from aliasflow.monitor import LogLevel


class CFGBuilder:
    """Builds and queries an instruction-level CFG for a whole module.

    Nodes are instructions of analyzable functions. Inside a block each
    instruction flows to the next one; a block's last instruction flows to
    the first instruction of every branch target, or falls through to the
    next block when the block has no terminator. ``ret`` has no successors.
    """

    def __init__(self, module: Module, skip_prefixes: Sequence[str] = ("llvm.",), logger=None):
        """Initialize CFG builder.

        Args:
            module: Module whose functions are analyzed
            skip_prefixes: Name prefixes of functions never analyzed (intrinsics)
            logger: Logger instance
        """
        self.module = module
        self.skip_prefixes = tuple(skip_prefixes)
        self.logger = logger
        self.cfg_graph = nx.DiGraph()
        self._order: Dict[Instruction, int] = {}
        self._call_sites: Dict[str, List[Instruction]] = {}
        self.build_cfg()

    def build_cfg(self) -> nx.DiGraph:
        """Rebuild the graph from the module."""
        self.cfg_graph.clear()
        self._order.clear()
        self._call_sites.clear()

        for func in self.module.functions:
            if not self.is_analyzable(func):
                continue
            for inst in func.instructions():
                self._order[inst] = len(self._order)
                self.cfg_graph.add_node(inst)
            self._add_function_edges(func)

        for inst in self._order:
            if inst.opcode == Opcode.CALL and inst.callee is not None:
                self._call_sites.setdefault(inst.callee, []).append(inst)

        if self.logger:
            self.logger.log(f"Built CFG with {self.cfg_graph.number_of_nodes()} instructions "
                            f"and {self.cfg_graph.number_of_edges()} edges")
        return self.cfg_graph

    def _add_function_edges(self, func: Function):
        blocks = [b for b in func.blocks if b.instructions]
        for position, block in enumerate(blocks):
            insts = block.instructions
            for current, following in zip(insts, insts[1:]):
                self.cfg_graph.add_edge(current, following)

            last = insts[-1]
            if last.opcode == Opcode.RET:
                continue
            if last.opcode == Opcode.BRANCH:
                for label in last.targets:
                    target = func.get_block(label)
                    if target is None or not target.instructions:
                        if self.logger:
                            self.logger.log(f"Ignoring branch to unknown or empty block "
                                            f"'{label}' in {func.name}", level=LogLevel.DEBUG)
                        continue
                    self.cfg_graph.add_edge(last, target.instructions[0])
            elif position + 1 < len(blocks):
                self.cfg_graph.add_edge(last, blocks[position + 1].instructions[0])

    def is_analyzable(self, func: Optional[Function]) -> bool:
        """False for declarations, empty bodies and skipped (intrinsic) names."""
        if func is None or func.is_declaration:
            return False
        if func.name.startswith(self.skip_prefixes):
            return False
        return any(block.instructions for block in func.blocks)

    def predecessors(self, inst: Instruction) -> List[Instruction]:
        if inst not in self.cfg_graph:
            return []
        return list(self.cfg_graph.predecessors(inst))

    def successors(self, inst: Instruction) -> List[Instruction]:
        if inst not in self.cfg_graph:
            return []
        return list(self.cfg_graph.successors(inst))

    def entry_instruction(self, func: Function) -> Optional[Instruction]:
        for block in func.blocks:
            if block.instructions:
                return block.instructions[0]
        return None

    def exit_instruction(self, func: Function) -> Optional[Instruction]:
        """Last instruction of the last non-empty block."""
        for block in reversed(func.blocks):
            if block.instructions:
                return block.instructions[-1]
        return None

    def call_sites(self, func: Function) -> List[Instruction]:
        """Direct calls to ``func`` from analyzable functions, in program order."""
        return list(self._call_sites.get(func.name, []))

    def instructions(self) -> List[Instruction]:
        """All analyzed instructions in program order."""
        return list(self._order)

    def order_of(self, inst: Instruction) -> int:
        return self._order.get(inst, -1)

    @staticmethod
    def assign_stable_names(func: Function) -> int:
        """Name anonymous arguments, blocks and value-producing instructions.

        Names are ``argN``, ``bbN`` and ``tN`` in program order, so repeated
        runs over the same function produce the same diagnostics keys.

        Returns:
            Number of names assigned
        """
        taken = {arg.name for arg in func.arguments if arg.name}
        taken.update(inst.name for inst in func.instructions() if inst.name)
        assigned = 0

        def fresh(prefix: str, counter: List[int]) -> str:
            while True:
                candidate = f"{prefix}{counter[0]}"
                counter[0] += 1
                if candidate not in taken:
                    taken.add(candidate)
                    return candidate

        arg_counter, block_counter, value_counter = [0], [0], [0]
        for arg in func.arguments:
            if not arg.name:
                arg.name = fresh("arg", arg_counter)
                assigned += 1

        labels = {block.label for block in func.blocks if block.label}
        for block in func.blocks:
            if not block.label:
                label = fresh("bb", block_counter)
                while label in labels:
                    label = fresh("bb", block_counter)
                block.label = label
                labels.add(label)
                assigned += 1
            for inst in block.instructions:
                produces_value = inst.opcode not in (Opcode.STORE, Opcode.RET, Opcode.BRANCH) \
                    and inst.type != "void"
                if produces_value and not inst.name:
                    inst.name = fresh("t", value_counter)
                    assigned += 1
        return assigned
