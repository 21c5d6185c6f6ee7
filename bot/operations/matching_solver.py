"""Maximum-weight matching over the pairing graph."""

from typing import List, Sequence, Tuple

import networkx as nx


class MatchingError(Exception):
    """Raised when the solver output is not a valid matching"""
    pass


def solve_matching(vertex_count: int, edges: Sequence[Tuple[int, int, int]]) -> List[int]:
    """
    Compute a maximum-cardinality, maximum-weight matching on a general graph.

    Vertices and edges are inserted in increasing index order so identical
    inputs always produce the same matching.

    Args:
        vertex_count: Number of vertices, labelled 0..vertex_count-1
        edges: (i, j, weight) triples, integer weights

    Returns:
        mates list where mates[v] is v's partner, or -1 when v is unmatched

    Raises:
        MatchingError: If the result pairs a vertex twice or with itself
    """
    graph = nx.Graph()
    graph.add_nodes_from(range(vertex_count))
    graph.add_weighted_edges_from(sorted((min(i, j), max(i, j), w) for i, j, w in edges))

    mates = [-1] * vertex_count
    for u, v in nx.max_weight_matching(graph, maxcardinality=True):
        if u == v or mates[u] != -1 or mates[v] != -1:
            raise MatchingError(f"Solver returned an invalid pair ({u}, {v})")
        mates[u] = v
        mates[v] = u
    return mates


def pairs_from_mates(mates: Sequence[int]) -> List[Tuple[int, int]]:
    """(i, mates[i]) for every i below its partner, in increasing i order."""
    return [(i, mate) for i, mate in enumerate(mates) if i < mate]


def solve_pairs(vertex_count: int, edges: Sequence[Tuple[int, int, int]]) -> List[Tuple[int, int]]:
    """
    Solve and require a perfect matching.

    Raises:
        MatchingError: If any vertex is left unmatched
    """
    mates = solve_matching(vertex_count, edges)
    unmatched = [v for v, mate in enumerate(mates) if mate == -1]
    if unmatched:
        raise MatchingError(f"Solver left vertices {unmatched} unmatched")
    return pairs_from_mates(mates)
