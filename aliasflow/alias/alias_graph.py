"""Points-to graph attached to one program point."""

import networkx as nx
from typing import Dict, Iterable, Iterator, List, Set, Tuple

from aliasflow.alias.token import Token


def _by_id(tokens: Iterable[Token]) -> List[Token]:
    return sorted(tokens, key=lambda t: t.token_id)


class AliasGraph:
    """May-points-to relation over tokens.

    An edge ``A -> B`` means A may point to B. Assertions carrying
    redirection levels are resolved against the graph when inserted: the
    locations reached by ``left - 1`` dereferences of A gain as pointees the
    locations reached by ``right`` dereferences of B. So ``(1, 0)`` is
    ``a = &b``, ``(1, 1)`` is ``a = b``, ``(2, 1)`` is ``*a = b`` and
    ``(1, 2)`` is ``a = *b``.
    """

    def __init__(self):
        self.graph = nx.DiGraph()

    def copy(self) -> "AliasGraph":
        clone = AliasGraph()
        clone.graph = self.graph.copy()
        return clone

    def resolve(self, token: Token, depth: int) -> Set[Token]:
        """Locations reached from ``token`` by ``depth`` dereferences."""
        if depth < 0:
            return set()
        frontier = {token}
        for _ in range(depth):
            frontier = {p for t in frontier for p in self.get_pointee(t)}
            if not frontier:
                break
        return frontier

    def insert(self, lhs: Token, rhs: Token, left: int = 1, right: int = 1):
        """Add the facts of assertion ``(lhs, rhs, left, right)``; idempotent."""
        targets = self.resolve(rhs, right)
        if not targets:
            return
        for source in self.resolve(lhs, left - 1):
            self.graph.add_edges_from((source, target) for target in targets)

    def splice(self, lhs: Token, targets: Iterable[Token]):
        """Add ``lhs -> t`` for every target unchanged."""
        self.graph.add_edges_from((lhs, target) for target in targets)

    def erase(self, token: Token):
        """Strong kill: drop every fact whose left token is ``token``."""
        if token in self.graph:
            self.graph.remove_edges_from(list(self.graph.out_edges(token)))

    def get_pointee(self, token: Token) -> Set[Token]:
        if token is None or token not in self.graph:
            return set()
        return set(self.graph.successors(token))

    def merge(self, graphs: Iterable["AliasGraph"]):
        """Union every input graph into this one."""
        for other in graphs:
            if other is self:
                continue
            self.graph.add_edges_from(other.graph.edges())

    def satisfies(self, lhs: Token, rhs: Token, left: int = 1, right: int = 1) -> bool:
        """True if every fact ``insert(lhs, rhs, left, right)`` would add is present."""
        targets = self.resolve(rhs, right)
        sources = self.resolve(lhs, left - 1)
        if not targets or not sources:
            return False
        return all(self.graph.has_edge(s, t) for s in sources for t in targets)

    def edges(self) -> List[Tuple[Token, Token]]:
        """Facts sorted by token id."""
        return sorted(self.graph.edges(), key=lambda e: (e[0].token_id, e[1].token_id))

    def to_dict(self) -> Dict[str, List[str]]:
        return {str(lhs): [str(t) for t in _by_id(pointees)] for lhs, pointees in self}

    def __iter__(self) -> Iterator[Tuple[Token, Set[Token]]]:
        for token in _by_id(n for n in self.graph.nodes() if self.graph.out_degree(n) > 0):
            yield token, set(self.graph.successors(token))

    def __len__(self) -> int:
        return self.graph.number_of_edges()

    def __eq__(self, other) -> bool:
        if not isinstance(other, AliasGraph):
            return NotImplemented
        return set(self.graph.edges()) == set(other.graph.edges())

    __hash__ = None

    def __str__(self) -> str:
        lines = []
        for lhs, pointees in self:
            lines.append(f"  {lhs} -> {{{', '.join(str(t) for t in _by_id(pointees))}}}")
        return "\n".join(lines) if lines else "  <empty>"
