"""Unit tests for the per-program-point alias graph."""

import pytest

from aliasflow.alias.alias_graph import AliasGraph
from aliasflow.alias.token import Token, TokenKind


def make_token(token_id, name, kind=TokenKind.VALUE, function="main", is_mem=False):
    return Token(token_id=token_id, kind=kind, name=name, function=function, is_mem=is_mem)


@pytest.fixture
def toks():
    """Four SSA pointers and three memory objects."""
    names = ["a", "b", "c", "d"]
    tokens = {name: make_token(i, name) for i, name in enumerate(names)}
    for i, name in enumerate(["x", "y", "z"], start=len(names)):
        tokens[name] = make_token(i, name, kind=TokenKind.MEMORY, is_mem=True)
    return tokens


class TestInsert:
    """Redirection levels resolve against the current graph."""

    def test_address_of(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        assert graph.get_pointee(toks["a"]) == {toks["x"]}

    def test_copy(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        graph.insert(toks["b"], toks["a"])
        assert graph.get_pointee(toks["b"]) == {toks["x"]}

    def test_store_through_pointer(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        graph.insert(toks["b"], toks["y"], 1, 0)
        graph.insert(toks["a"], toks["b"], 2, 1)
        assert graph.get_pointee(toks["x"]) == {toks["y"]}
        assert graph.get_pointee(toks["a"]) == {toks["x"]}

    def test_load_through_pointer(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        graph.insert(toks["x"], toks["y"], 1, 0)
        graph.insert(toks["c"], toks["a"], 1, 2)
        assert graph.get_pointee(toks["c"]) == {toks["y"]}

    def test_unresolvable_rhs_adds_nothing(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["b"])
        assert len(graph) == 0
        assert graph.get_pointee(toks["a"]) == set()

    def test_insert_is_idempotent(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        snapshot = graph.copy()
        graph.insert(toks["a"], toks["x"], 1, 0)
        assert len(graph) == 1
        assert graph == snapshot

    def test_splice_adds_targets_unchanged(self, toks):
        graph = AliasGraph()
        graph.splice(toks["a"], {toks["x"], toks["y"]})
        assert graph.get_pointee(toks["a"]) == {toks["x"], toks["y"]}


class TestEraseAndQuery:
    """Strong kill and pointee queries."""

    def test_erase_removes_only_left_token_facts(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        graph.insert(toks["a"], toks["y"], 1, 0)
        graph.insert(toks["b"], toks["x"], 1, 0)
        graph.erase(toks["a"])
        assert graph.get_pointee(toks["a"]) == set()
        assert graph.get_pointee(toks["b"]) == {toks["x"]}

    def test_erase_unknown_token_is_noop(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        graph.erase(toks["d"])
        assert len(graph) == 1

    def test_pointee_of_unknown_token(self, toks):
        assert AliasGraph().get_pointee(toks["a"]) == set()
        assert AliasGraph().get_pointee(None) == set()

    def test_resolve_depths(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        graph.insert(toks["x"], toks["y"], 1, 0)
        assert graph.resolve(toks["a"], 0) == {toks["a"]}
        assert graph.resolve(toks["a"], 1) == {toks["x"]}
        assert graph.resolve(toks["a"], 2) == {toks["y"]}
        assert graph.resolve(toks["a"], 3) == set()
        assert graph.resolve(toks["a"], -1) == set()

    def test_satisfies(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        graph.insert(toks["b"], toks["a"], 1, 1)
        assert graph.satisfies(toks["b"], toks["a"], 1, 1)
        assert graph.satisfies(toks["a"], toks["x"], 1, 0)
        assert not graph.satisfies(toks["c"], toks["a"], 1, 1)
        assert not graph.satisfies(toks["b"], toks["d"], 1, 1)


class TestMergeAndEquality:
    """Join-on-union and structural equality."""

    def test_merge_is_union(self, toks):
        first, second, joined = AliasGraph(), AliasGraph(), AliasGraph()
        first.insert(toks["a"], toks["x"], 1, 0)
        second.insert(toks["a"], toks["y"], 1, 0)
        second.insert(toks["b"], toks["x"], 1, 0)
        joined.merge([first, second])
        assert joined.get_pointee(toks["a"]) == {toks["x"], toks["y"]}
        assert joined.get_pointee(toks["b"]) == {toks["x"]}
        assert len(joined) == 3

    def test_merge_keeps_existing_facts(self, toks):
        graph, other = AliasGraph(), AliasGraph()
        graph.insert(toks["c"], toks["z"], 1, 0)
        other.insert(toks["a"], toks["x"], 1, 0)
        graph.merge([other])
        assert graph.get_pointee(toks["c"]) == {toks["z"]}

    def test_merge_with_itself(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        snapshot = graph.copy()
        graph.merge([graph, snapshot])
        assert graph == snapshot

    def test_equality_ignores_insertion_order(self, toks):
        first, second = AliasGraph(), AliasGraph()
        first.insert(toks["a"], toks["x"], 1, 0)
        first.insert(toks["b"], toks["y"], 1, 0)
        second.insert(toks["b"], toks["y"], 1, 0)
        second.insert(toks["a"], toks["x"], 1, 0)
        assert first == second
        second.insert(toks["c"], toks["z"], 1, 0)
        assert first != second

    def test_erased_node_does_not_break_equality(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        graph.erase(toks["a"])
        assert graph == AliasGraph()

    def test_copy_is_independent(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["x"], 1, 0)
        clone = graph.copy()
        clone.insert(toks["a"], toks["y"], 1, 0)
        assert graph.get_pointee(toks["a"]) == {toks["x"]}


class TestIterationAndExport:
    """Iteration order and export helpers."""

    def test_iteration_pairs_sorted_by_token_id(self, toks):
        graph = AliasGraph()
        graph.insert(toks["b"], toks["y"], 1, 0)
        graph.insert(toks["a"], toks["x"], 1, 0)
        graph.insert(toks["a"], toks["z"], 1, 0)
        pairs = list(graph)
        assert [lhs for lhs, _ in pairs] == [toks["a"], toks["b"]]
        assert pairs[0][1] == {toks["x"], toks["z"]}

    def test_edges_and_to_dict(self, toks):
        graph = AliasGraph()
        graph.insert(toks["a"], toks["y"], 1, 0)
        graph.insert(toks["a"], toks["x"], 1, 0)
        assert graph.edges() == [(toks["a"], toks["x"]), (toks["a"], toks["y"])]
        assert graph.to_dict() == {"%main.a": ["[main.x]", "[main.y]"]}

    def test_str_of_empty_graph(self):
        assert str(AliasGraph()) == "  <empty>"


if __name__ == "__main__":
    pytest.main([__file__])
