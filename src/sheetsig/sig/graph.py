"""
Symbol interpretation graph for sheetsig.

Each system owns one SIGraph: nodes are integer inter handles carrying their
Inter model, edges are exclusions tagged with a cause. Reduction removes the
losing side of exclusions according to a reduction mode.
"""

import itertools

import networkx as nx

from sheetsig.models import Exclusion, ExclusionCause, ReductionMode
from sheetsig.tracer import get_tracer


class SIGraph:
    """Interpretation graph of one system."""

    def __init__(self, relaxed_margin=0.1):
        self.graph = nx.Graph()
        self.relaxed_margin = relaxed_margin
        self._ids = itertools.count(1)

    def __len__(self):
        return self.graph.number_of_nodes()

    def __contains__(self, inter_id):
        return inter_id in self.graph

    def add_vertex(self, inter):
        """
        Register an inter and return it with its handle assigned.
        """
        if inter.inter_id is None:
            inter.inter_id = next(self._ids)
        elif inter.inter_id in self.graph:
            raise ValueError(f"inter handle {inter.inter_id} already registered")
        else:
            # keep generated handles clear of explicit ones
            self._ids = itertools.count(max(inter.inter_id + 1, next(self._ids)))

        self.graph.add_node(inter.inter_id, inter=inter)
        return inter

    def get(self, inter_id):
        if inter_id not in self.graph:
            return None
        return self.graph.nodes[inter_id]["inter"]

    def inters(self, predicate=None):
        """All inters, ordered by handle, optionally filtered."""
        result = []
        for inter_id in sorted(self.graph.nodes):
            inter = self.graph.nodes[inter_id]["inter"]
            if predicate is None or predicate(inter):
                result.append(inter)
        return result

    def get_inter(self, glyph_id, shape):
        """First inter of given shape built on given glyph, if any."""
        for inter in self.inters():
            if inter.glyph_id == glyph_id and inter.shape == shape:
                return inter
        return None

    def remove_vertex(self, inter_id):
        if inter_id in self.graph:
            self.graph.remove_node(inter_id)

    def insert_exclusion(self, a, b, cause=ExclusionCause.OVERLAP):
        """
        Insert (or retrieve) the exclusion between two inters.

        Exclusion is symmetric: the edge is stored once whatever the order.
        """
        if a.inter_id == b.inter_id:
            raise ValueError(f"an inter cannot exclude itself: {a}")

        source, target = sorted((a.inter_id, b.inter_id))
        if self.graph.has_edge(source, target):
            return Exclusion(source=source, target=target, cause=self.graph.edges[source, target]["cause"])

        self.graph.add_edge(source, target, cause=cause)
        return Exclusion(source=source, target=target, cause=cause)

    def excludes(self, a_id, b_id):
        return self.graph.has_edge(a_id, b_id)

    def exclusions(self, inter_id=None):
        """Exclusions of one inter, or of the whole graph."""
        edges = self.graph.edges(inter_id, data="cause") if inter_id is not None else self.graph.edges(data="cause")
        return sorted(
            (Exclusion(source=min(u, v), target=max(u, v), cause=cause) for u, v, cause in edges),
            key=lambda e: (e.source, e.target),
        )

    def reduce_exclusions(self, mode, exclusions):
        """
        Resolve the provided exclusions and return the set of removed handles.

        Inters involved are visited by decreasing grade, equal grades being
        ordered by increasing handle. A visited inter still alive wins against
        its alive partners: in STRICT mode they are all removed, in RELAXED
        mode only those whose grade is lower by more than relaxed_margin.
        """
        tracer = get_tracer()

        partners = {}
        for exc in exclusions:
            if exc.source in self.graph and exc.target in self.graph:
                partners.setdefault(exc.source, set()).add(exc.target)
                partners.setdefault(exc.target, set()).add(exc.source)

        order = sorted(partners, key=lambda i: (-self.get(i).grade, i))
        removed = set()

        for inter_id in order:
            if inter_id in removed:
                continue

            winner = self.get(inter_id)
            for other_id in sorted(partners[inter_id]):
                if other_id in removed:
                    continue

                loser = self.get(other_id)
                if mode == ReductionMode.RELAXED and winner.grade - loser.grade <= self.relaxed_margin:
                    continue

                removed.add(other_id)
                tracer.vip(loser, f"{winner} removes {loser}", mode=mode)

        for inter_id in removed:
            self.remove_vertex(inter_id)

        return removed
