"""Precision benchmark against ground-truth alias annotations.

Annotations are calls such as ``call @MAYALIAS(%a, %b)`` whose callee name
states the expected relation between the two pointer arguments. After (or
during) the fixpoint, the predicted pointee sets of both arguments are
compared with that expectation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from aliasflow.ir.models import Instruction, Opcode, Value
from aliasflow.monitor import LogLevel


class AliasRelation(Enum):
    """Relation between two pointers."""
    NO = "no"
    MAY = "may"
    MUST = "must"


class Verdict(Enum):
    """Outcome of comparing a prediction with ground truth."""
    EXACT = "exact"
    IMPRECISE = "imprecise"   # sound over-approximation
    UNSOUND = "unsound"       # aliasing missed


DEFAULT_BENCHMARK_FUNCTIONS = {
    "MAYALIAS": "may",
    "NOALIAS": "no",
    "MUSTALIAS": "must",
}


@dataclass
class BenchmarkResult:
    """Evaluation of one annotated instruction."""
    instruction: Instruction
    expected: AliasRelation
    predicted: AliasRelation
    first: List[str] = field(default_factory=list)
    second: List[str] = field(default_factory=list)

    @property
    def verdict(self) -> Verdict:
        if self.predicted == self.expected:
            return Verdict.EXACT
        if self.predicted == AliasRelation.NO:
            return Verdict.UNSOUND
        if self.expected == AliasRelation.MAY:
            # A must-alias prediction also answers "may alias".
            return Verdict.EXACT
        return Verdict.IMPRECISE

    def to_dict(self) -> Dict[str, object]:
        return {
            'instruction': str(self.instruction),
            'function': self.instruction.function.name if self.instruction.function else None,
            'expected': self.expected.value,
            'predicted': self.predicted.value,
            'verdict': self.verdict.value,
            'first': self.first,
            'second': self.second,
        }


def _names(tokens) -> List[str]:
    return [str(t) for t in sorted(tokens, key=lambda t: t.token_id)]


def classify(first: Set, second: Set) -> AliasRelation:
    """Predicted relation between two pointers from their pointee sets."""
    if not first & second:
        return AliasRelation.NO
    if len(first) == 1 and first == second:
        return AliasRelation.MUST
    return AliasRelation.MAY


class BenchmarkRunner:
    """Collects predictions for annotated instructions and scores them."""

    def __init__(self, benchmark_functions: Optional[Dict[str, str]] = None, logger=None):
        functions = benchmark_functions if benchmark_functions is not None \
            else DEFAULT_BENCHMARK_FUNCTIONS
        self.benchmark_functions = {name: AliasRelation(rel) for name, rel in functions.items()}
        self.logger = logger
        self.results: Dict[Instruction, BenchmarkResult] = {}

    def is_annotation(self, inst: Instruction) -> bool:
        return (inst.opcode == Opcode.CALL and inst.callee in self.benchmark_functions
                and len(inst.operands) == 2)

    def extract(self, inst: Instruction) -> List[Value]:
        """The two annotated values, or an empty list for ordinary instructions."""
        if not self.is_annotation(inst):
            return []
        return list(inst.operands)

    def expected_relation(self, inst: Instruction) -> Optional[AliasRelation]:
        return self.benchmark_functions.get(inst.callee) if self.is_annotation(inst) else None

    def evaluate(self, inst: Instruction, first: Set, second: Set) -> BenchmarkResult:
        """Score the predicted pointee sets of the two annotated values.

        A later evaluation of the same instruction replaces the earlier one,
        so the stored result reflects the final fixpoint.
        """
        expected = self.expected_relation(inst)
        if expected is None:
            raise ValueError(f"Not a benchmark annotation: {inst}")
        result = BenchmarkResult(instruction=inst, expected=expected,
                                 predicted=classify(set(first), set(second)),
                                 first=_names(first), second=_names(second))
        self.results[inst] = result
        if self.logger:
            self.logger.log(f"Benchmark {inst}: expected {expected.value}, "
                            f"predicted {result.predicted.value}", level=LogLevel.DEBUG)
        return result

    def summary(self) -> Dict[str, object]:
        counts = {verdict.value: 0 for verdict in Verdict}
        for result in self.results.values():
            counts[result.verdict.value] += 1
        total = len(self.results)
        return {
            'total': total,
            **counts,
            'precision': counts[Verdict.EXACT.value] / total if total else 1.0,
            'sound': counts[Verdict.UNSOUND.value] == 0,
        }

    def ordered_results(self, order=None) -> List[BenchmarkResult]:
        results = list(self.results.values())
        if order is not None:
            results.sort(key=lambda r: order(r.instruction))
        return results

    def report(self, order=None) -> str:
        """Printable summary, one line per annotation plus totals."""
        if not self.results:
            return "Benchmark: no annotations evaluated"
        lines = ["Benchmark results:"]
        for result in self.ordered_results(order):
            func = result.instruction.function.name if result.instruction.function else "?"
            lines.append(f"  [{result.verdict.value:9}] {func}: {result.instruction} "
                         f"expected={result.expected.value} predicted={result.predicted.value}")
        stats = self.summary()
        lines.append(f"  total={stats['total']} exact={stats['exact']} "
                     f"imprecise={stats['imprecise']} unsound={stats['unsound']} "
                     f"precision={stats['precision']:.2f}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.report()
