"""Flow-sensitive, field-sensitive points-to analysis over an IR module.

Every instruction owns an IN and an OUT alias graph. A FIFO worklist, seeded
with every analyzed instruction, re-runs an instruction's transfer function
and queues its CFG successors whenever its OUT graph changes. Direct calls
to analyzed functions push the caller's facts and actual arguments into the
callee entry and splice the callee's non-local effects back at the call.
"""

from typing import Dict, List, Optional, Set, Tuple

from aliasflow.alias.alias_graph import AliasGraph
from aliasflow.alias.benchmark import BenchmarkRunner
from aliasflow.alias.token import AliasTokens, Token
from aliasflow.alias.worklist import Worklist
from aliasflow.ir.control_flow_graph import CFGBuilder
from aliasflow.ir.models import Module, Function, Instruction, Opcode, Value
from aliasflow.monitor import LogLevel


class PointsToAnalysis:
    """Worklist fixpoint computing IN/OUT alias graphs for every instruction."""

    def __init__(self, module: Module, cfg: Optional[CFGBuilder] = None,
                 tokens: Optional[AliasTokens] = None,
                 bench: Optional[BenchmarkRunner] = None,
                 propagate_call_edges: bool = True, logger=None):
        """Initialize the analysis and seed the global alias graph.

        Args:
            module: Module to analyze
            cfg: CFG adapter; built from the module if omitted
            tokens: Token store; a default store is created if omitted
            bench: Precision benchmark runner, or None to skip evaluation
            propagate_call_edges: Re-queue callee entries and call sites when
                interprocedural facts change
            logger: Logger instance
        """
        self.module = module
        self.logger = logger
        self.cfg = cfg or CFGBuilder(module, logger=logger)
        self.tokens = tokens or AliasTokens(analyzable=self.cfg.is_analyzable)
        self.tokens.module = module
        self.bench = bench
        self.propagate_call_edges = propagate_call_edges

        self.global_alias_map = AliasGraph()
        self.alias_in: Dict[Instruction, AliasGraph] = {}
        self.alias_out: Dict[Instruction, AliasGraph] = {}
        self._argument_maps: Dict[Function, AliasGraph] = {}
        self.worklist = Worklist(self.cfg.instructions())
        self.iterations = 0

        self.handle_global_var()

    def handle_global_var(self):
        """Seed the global graph from pointer-valued global initializers."""
        for var in self.module.globals:
            aliases = self.tokens.extract_alias_token(var)
            if len(aliases) != 2:
                continue
            left, right = self.tokens.extract_statement_type(var)
            self.global_alias_map.insert(aliases[0], aliases[1], left, right)
            # Initialized with the address of another global.
            if aliases[1].is_global:
                self.global_alias_map.insert(aliases[0], aliases[1], 1, 0)
        if self.logger:
            self.logger.log(f"Seeded {len(self.global_alias_map)} global points-to facts",
                            level=LogLevel.DEBUG)

    def alias_in_of(self, inst: Instruction) -> AliasGraph:
        graph = self.alias_in.get(inst)
        if graph is None:
            graph = self.alias_in[inst] = AliasGraph()
        return graph

    def alias_out_of(self, inst: Instruction) -> AliasGraph:
        graph = self.alias_out.get(inst)
        if graph is None:
            graph = self.alias_out[inst] = AliasGraph()
        return graph

    def argument_alias_map(self, func: Function) -> AliasGraph:
        """Formal parameters bound to their incoming objects, built once per function."""
        graph = self._argument_maps.get(func)
        if graph is None:
            graph = AliasGraph()
            for arg in func.arguments:
                aliases = self.tokens.extract_alias_token(arg, func)
                if len(aliases) == 2:
                    graph.insert(aliases[0], aliases[1], 1, 0)
            self._argument_maps[func] = graph
        return graph

    def run_on_worklist(self) -> int:
        """Run until no OUT graph changes; returns the number of instructions processed."""
        while not self.worklist.empty():
            inst = self.worklist.pop()
            old_alias_info = self.alias_out_of(inst).copy()
            self.run_analysis(inst)
            self.iterations += 1
            if old_alias_info != self.alias_out[inst]:
                for succ in self.cfg.successors(inst):
                    self.worklist.push(succ)
                if self.propagate_call_edges and self._is_exit(inst):
                    for call in self.cfg.call_sites(inst.function):
                        self.worklist.push(call)
        if self.logger:
            self.logger.log(f"Points-to fixpoint reached after {self.iterations} iterations "
                            f"({len(self.tokens)} tokens)")
        return self.iterations

    def _is_exit(self, inst: Instruction) -> bool:
        func = inst.function
        return func is not None and self.cfg.exit_instruction(func) is inst

    def run_analysis(self, inst: Instruction):
        """Apply the transfer function of ``inst``."""
        func = inst.function
        predecessors: List[AliasGraph] = []
        # Globals and arguments only enter at the start of the function
        if self.cfg.entry_instruction(func) is inst:
            predecessors.append(self.global_alias_map)
            predecessors.append(self.argument_alias_map(func))
        for pred in self.cfg.predecessors(inst):
            if pred in self.alias_out:
                predecessors.append(self.alias_out[pred])
        alias_in = self.alias_in_of(inst)
        alias_in.merge(predecessors)
        alias_out = self.alias_out[inst] = alias_in.copy()

        aliases = self.tokens.extract_alias_token(inst)
        redirections = self.tokens.extract_statement_type(inst)

        if inst.opcode == Opcode.STORE:
            self._handle_kill(alias_out, aliases, redirections)
        elif inst.opcode == Opcode.FIELD:
            self._handle_field(inst, alias_out, aliases, redirections)
            # Already handled; keep the generic rule from applying again
            aliases = []
        elif inst.opcode == Opcode.CALL:
            self._handle_call(inst, alias_out, aliases)

        if len(aliases) == 2:
            left, right = redirections
            if aliases[1].is_mem:
                right = 0
            alias_out.insert(aliases[0], aliases[1], left, right)

        if self.bench is not None:
            self._evaluate_precision(inst, alias_out)

    def _handle_kill(self, alias_out: AliasGraph, aliases: List[Token],
                     redirections: Tuple[int, int]):
        """Strong update when the store writes exactly one location."""
        if len(aliases) != 2:
            return
        written = alias_out.resolve(aliases[0], redirections[0] - 1)
        if len(written) == 1:
            alias_out.erase(next(iter(written)))

    def _handle_field(self, inst: Instruction, alias_out: AliasGraph, aliases: List[Token],
                      redirections: Tuple[int, int]):
        if len(aliases) != 2:
            return
        dst, base = aliases
        index = inst.index_descriptor
        for pointee in sorted(alias_out.resolve(base, redirections[1]), key=lambda t: t.token_id):
            field_token = self.tokens.get_field_token(pointee, index)
            alias_out.insert(dst, field_token, 1, 0)

    def _handle_call(self, inst: Instruction, alias_out: AliasGraph, aliases: List[Token]):
        if inst.is_indirect_call:
            if self.logger:
                self.logger.log(f"Skipping indirect call {inst}", level=LogLevel.DEBUG)
            return
        callee = self.module.get_function(inst.callee)
        if not self.cfg.is_analyzable(callee):
            if self.logger:
                self.logger.log(f"Skipping call to non-analyzable @{inst.callee}",
                                level=LogLevel.DEBUG)
            return

        entry = self.cfg.entry_instruction(callee)
        exit_inst = self.cfg.exit_instruction(callee)
        entry_in = self.alias_in_of(entry)
        entry_before = entry_in.copy()

        # Caller context flows into the callee
        entry_in.merge([self.alias_in_of(inst)])

        # Return value
        diverges = inst.does_not_return or callee.does_not_return
        if not diverges and aliases and exit_inst.opcode == Opcode.RET:
            returned = self.tokens.extract_alias_token(exit_inst)
            if len(returned) == 1:
                right = self.tokens.adjust_level(exit_inst.value_operand, 1)
                self.alias_out_of(exit_inst).insert(aliases[0], returned[0], 1, right)

        # Pass by reference
        for actual, formal in zip(inst.arguments, callee.arguments):
            actual_token = self.tokens.get_alias_token(actual)
            if actual_token is None:
                continue
            formal_token = self.tokens.get_alias_token(formal)
            entry_in.insert(formal_token, actual_token, 1, self.tokens.adjust_level(actual, 1))

        # Changes the callee made to non-local state
        for lhs, pointees in self.alias_out_of(exit_inst):
            if not lhs.same_function(callee):
                alias_out.splice(lhs, pointees)

        if self.propagate_call_edges and entry_in != entry_before:
            self.worklist.push(entry)

    def _evaluate_precision(self, inst: Instruction, alias_out: AliasGraph):
        bench_vars = self.bench.extract(inst)
        if len(bench_vars) != 2:
            return
        first = self.value_pointees(alias_out, bench_vars[0])
        second = self.value_pointees(alias_out, bench_vars[1])
        self.bench.evaluate(inst, first, second)

    def value_pointees(self, graph: AliasGraph, value: Value) -> Set[Token]:
        """Locations the operand ``value`` may address in ``graph``.

        A global operand addresses its own storage, an SSA pointer addresses
        its pointees.
        """
        token = self.tokens.get_alias_token(value)
        if token is None:
            return set()
        return graph.resolve(token, self.tokens.adjust_level(value, 1))

    def get_pointee(self, inst: Instruction, token: Token, at: str = "out") -> Set[Token]:
        graph = self._graph_at(inst, at)
        return graph.get_pointee(token) if graph is not None else set()

    def points_to(self, inst: Instruction, value: Value, at: str = "out") -> Set[Token]:
        """Locations ``value`` may address before (``at="in"``) or after ``inst``."""
        graph = self._graph_at(inst, at)
        return self.value_pointees(graph, value) if graph is not None else set()

    def _graph_at(self, inst: Instruction, at: str) -> Optional[AliasGraph]:
        graphs = self.alias_in if at == "in" else self.alias_out
        return graphs.get(inst)

    def results(self) -> List[Tuple[Instruction, AliasGraph, AliasGraph]]:
        """(instruction, IN, OUT) for every analyzed instruction in program order."""
        return [(inst, self.alias_in_of(inst), self.alias_out_of(inst))
                for inst in self.cfg.instructions()]

    def format_results(self) -> str:
        lines = []
        for inst, alias_in, alias_out in self.results():
            lines.append(str(alias_in))
            lines.append(f"[Instruction] {inst.function.name}: {inst}")
            lines.append(str(alias_out))
            lines.append("-----------")
        if self.bench is not None:
            lines.append(self.bench.report(order=self.cfg.order_of))
        return "\n".join(lines)
