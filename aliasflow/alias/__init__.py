"""Points-to analysis modules for aliasflow.

This package contains:
- Tokens (abstract memory locations) and their intern table
- The per-program-point alias graph
- The worklist-driven flow-sensitive engine
- The precision benchmark and the analyzer front end
"""

from .token import Token, TokenKind, AliasTokens
from .alias_graph import AliasGraph
from .worklist import Worklist
from .benchmark import BenchmarkRunner, BenchmarkResult, AliasRelation, Verdict
from .points_to_analyzer import PointsToAnalysis
from .alias_driver import FlowSensitiveAliasAnalyzer, AnalysisConfig

__all__ = [
    'Token',
    'TokenKind',
    'AliasTokens',
    'AliasGraph',
    'Worklist',
    'BenchmarkRunner',
    'BenchmarkResult',
    'AliasRelation',
    'Verdict',
    'PointsToAnalysis',
    'FlowSensitiveAliasAnalyzer',
    'AnalysisConfig'
]
