"""Flow-sensitive alias analyzer interface.

This module wires the IR, CFG adapter, token store, benchmark runner and
points-to engine together and exposes results in export-friendly form.
"""

from typing import Dict, List, Set, Optional, Any, Tuple
from dataclasses import dataclass, field, fields
import json

from aliasflow.alias.alias_graph import AliasGraph
from aliasflow.alias.benchmark import BenchmarkRunner, DEFAULT_BENCHMARK_FUNCTIONS
from aliasflow.alias.points_to_analyzer import PointsToAnalysis
from aliasflow.alias.token import AliasTokens, Token
from aliasflow.config import load_analysis_config
from aliasflow.ir.control_flow_graph import CFGBuilder
from aliasflow.ir.models import Module, Instruction, Value
from aliasflow.utils import ConfigError, make_json_serializable


@dataclass
class AnalysisConfig:
    """Configuration for points-to analysis."""
    allocator_functions: List[str] = field(
        default_factory=lambda: ["malloc", "calloc", "realloc"])
    skip_function_prefixes: List[str] = field(default_factory=lambda: ["llvm."])
    benchmark_functions: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_BENCHMARK_FUNCTIONS))
    max_field_depth: int = 4
    propagate_call_edges: bool = True
    enable_benchmark: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        if 'max_field_depth' in data and (not isinstance(data['max_field_depth'], int)
                                          or data['max_field_depth'] < 0):
            raise ConfigError("max_field_depth must be a non-negative integer")
        return cls(**data)

    @classmethod
    def load(cls, override_path: Optional[str] = None) -> "AnalysisConfig":
        """Packaged defaults plus an optional JSON override file."""
        return cls.from_dict(load_analysis_config(override_path))

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class FlowSensitiveAliasAnalyzer:
    """Clean interface for flow-sensitive points-to analysis of a module."""

    def __init__(self, config: Optional[AnalysisConfig] = None, logger=None):
        self.config = config or AnalysisConfig()
        self.logger = logger

        # Analysis state
        self.module: Optional[Module] = None
        self.cfg: Optional[CFGBuilder] = None
        self.tokens: Optional[AliasTokens] = None
        self.bench: Optional[BenchmarkRunner] = None
        self.analysis: Optional[PointsToAnalysis] = None
        self.analysis_results: Dict[str, Any] = {}

    def analyze_module(self, module: Module) -> Dict[str, Any]:
        """Run the analysis to a fixpoint and return results in export form."""
        if not isinstance(module, Module):
            raise TypeError(f"Expected a Module, got {type(module).__name__}")
        self.module = module

        for func in module.functions:
            CFGBuilder.assign_stable_names(func)

        self.cfg = CFGBuilder(module, skip_prefixes=self.config.skip_function_prefixes,
                              logger=self.logger)
        self.tokens = AliasTokens(allocator_functions=self.config.allocator_functions,
                                  analyzable=self.cfg.is_analyzable,
                                  max_field_depth=self.config.max_field_depth)
        self.bench = BenchmarkRunner(self.config.benchmark_functions, logger=self.logger) \
            if self.config.enable_benchmark else None
        self.analysis = PointsToAnalysis(module, cfg=self.cfg, tokens=self.tokens,
                                         bench=self.bench,
                                         propagate_call_edges=self.config.propagate_call_edges,
                                         logger=self.logger)
        self.analysis.run_on_worklist()

        results = {
            'analysis_type': 'flow_sensitive_points_to',
            'module': module.name,
            'functions': {},
            'summary': self.get_analysis_summary(),
        }
        for inst, alias_in, alias_out in self.analysis.results():
            func_entry = results['functions'].setdefault(inst.function.name, [])
            func_entry.append({
                'instruction': str(inst),
                'block': inst.parent.label,
                'in': alias_in.to_dict(),
                'out': alias_out.to_dict(),
            })
        if self.bench is not None:
            results['benchmark'] = {
                'results': [r.to_dict() for r in self.bench.ordered_results(self.cfg.order_of)],
                'summary': self.bench.summary(),
            }

        self.analysis_results = results
        return results

    def _require_analysis(self):
        if self.analysis is None:
            raise RuntimeError("No analysis has been run; call analyze_module() first")

    def get_pointee(self, inst: Instruction, value: Value, at: str = "out") -> Set[Token]:
        """Locations ``value`` may address before (``at="in"``) or after ``inst``."""
        self._require_analysis()
        return self.analysis.points_to(inst, value, at)

    def get_pointee_names(self, inst: Instruction, value: Value, at: str = "out") -> Set[str]:
        return {str(t) for t in self.get_pointee(inst, value, at)}

    def may_alias(self, inst: Instruction, first: Value, second: Value) -> bool:
        """True if the two pointers may refer to a common location after ``inst``."""
        return bool(self.get_pointee(inst, first) & self.get_pointee(inst, second))

    def get_results(self) -> List[Tuple[Instruction, AliasGraph, AliasGraph]]:
        self._require_analysis()
        return self.analysis.results()

    def format_results(self) -> str:
        self._require_analysis()
        return self.analysis.format_results()

    def get_analysis_summary(self) -> Dict[str, Any]:
        """Get analysis summary."""
        if self.analysis is None:
            return {'config': self.config.to_dict(), 'analyzed': False}
        analyzed = [f.name for f in self.module.functions if self.cfg.is_analyzable(f)]
        summary = {
            'config': self.config.to_dict(),
            'analyzed': True,
            'analyzed_functions': analyzed,
            'skipped_functions': [f.name for f in self.module.functions if f.name not in analyzed],
            'total_instructions': len(self.cfg.instructions()),
            'iterations': self.analysis.iterations,
            'tokens': len(self.tokens),
            'global_facts': len(self.analysis.global_alias_map),
        }
        if self.bench is not None:
            summary['benchmark'] = self.bench.summary()
        return summary

    def export_results(self, format: str = "json") -> str:
        """Export analysis results."""
        if format == "json":
            return json.dumps(make_json_serializable(self.analysis_results), indent=2)
        elif format == "summary":
            return json.dumps(make_json_serializable(self.get_analysis_summary()), indent=2)
        elif format == "text":
            return self.format_results()
        else:
            raise ValueError(f"Unsupported export format: {format}")

    def clear_analysis(self):
        """Clear all analysis results."""
        self.module = None
        self.cfg = None
        self.tokens = None
        self.bench = None
        self.analysis = None
        self.analysis_results = {}
