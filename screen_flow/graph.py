from __future__ import annotations

"""Directed multigraph of observed transitions between states."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

import networkx as nx

from .fingerprint import normalize_path
from .models import FlowResult, State, Transition


@dataclass(frozen=True)
class CollapsedEdge:
    """One arrow of the diagram: all transitions between the same two nodes."""

    source: str
    target: str
    label: str
    count: int


def _origin(url: str) -> Tuple[str, str]:
    parts = urlparse(url)
    return parts.scheme.lower(), parts.netloc.lower()


class TransitionGraph:
    """Multi-DiGraph connecting states via the transitions that were observed.

    Nodes are state ids. A transition whose target URL matches no known state
    points at a node keyed by the URL itself, flagged ``discovered=False``.
    When ``base_url`` is given, absolute URLs on any other origin never match
    a state. Edges are keyed by ``(trigger kind, n)`` and never merged while
    accumulating; ``collapsed`` folds them per ``(from, to)`` pair.
    """

    def __init__(self, base_url: Optional[str] = None) -> None:
        self._g: nx.MultiDiGraph = nx.MultiDiGraph()
        self._by_path: Dict[str, str] = {}
        self._origin = _origin(base_url) if base_url else None

    # --- state helpers ----------------------------------------------------
    def add_state(self, state: State) -> None:
        if state.id not in self._g:
            self._g.add_node(state.id, label=state.label, url=state.url, discovered=True)
        self._by_path.setdefault(normalize_path(state.url), state.id)

    def resolve(self, url: str) -> Optional[str]:
        if self._origin and "://" in url and _origin(url) != self._origin:
            return None
        return self._by_path.get(normalize_path(url))

    # --- edge helpers -----------------------------------------------------
    def add_transition(self, transition: Transition) -> Tuple[str, str, Tuple[str, int]]:
        target = self.resolve(transition.to) or transition.to
        if target not in self._g:
            self._g.add_node(target, label=transition.to, url=transition.to, discovered=False)
        kind = transition.trigger_kind
        existing = self._g.out_edges(transition.from_state, keys=True) if transition.from_state in self._g else []
        key = (kind, sum(1 for _, _, k in existing if k[0] == kind))
        self._g.add_edge(transition.from_state, target, key=key, obj=transition)
        return transition.from_state, target, key

    def transitions_between(self, source: str, target: str) -> List[Transition]:
        data = self._g.get_edge_data(source, target) or {}
        return [attrs["obj"] for attrs in data.values()]

    def collapsed(self, known_only: bool = False) -> List[CollapsedEdge]:
        """Unique ``(from, to)`` edges in first-seen order, labelled by their first trigger."""
        seen: Dict[Tuple[str, str], List[Transition]] = {}
        for u, v, data in self._g.edges(data=True):
            seen.setdefault((u, v), []).append(data["obj"])
        edges = []
        for (u, v), transitions in seen.items():
            if known_only and not self._g.nodes[v].get("discovered"):
                continue
            edges.append(CollapsedEdge(source=u, target=v, label=transitions[0].label, count=len(transitions)))
        return edges

    # convenience ----------------------------------------------------------
    def to_networkx(self) -> nx.MultiDiGraph:
        return self._g

    def to_graphml_graph(self) -> nx.MultiDiGraph:
        """Copy with string-only attributes, which is all GraphML can carry."""
        g_ml = nx.MultiDiGraph()
        for nid, data in self._g.nodes(data=True):
            g_ml.add_node(nid, label=str(data.get("label", "")), url=str(data.get("url", "")), discovered=bool(data.get("discovered")))
        for u, v, key, data in self._g.edges(keys=True, data=True):
            t: Transition = data["obj"]
            g_ml.add_edge(u, v, key=f"{key[0]}-{key[1]}", trigger=t.trigger_kind, label=t.label, duration=t.duration)
        return g_ml

    @classmethod
    def build(
        cls, states: Iterable[State], transitions: Iterable[Transition], base_url: Optional[str] = None
    ) -> "TransitionGraph":
        graph = cls(base_url)
        for state in states:
            graph.add_state(state)
        for transition in transitions:
            graph.add_transition(transition)
        return graph

    @classmethod
    def from_result(cls, result: FlowResult, base_url: Optional[str] = None) -> "TransitionGraph":
        return cls.build(result.states, result.transitions, base_url)
