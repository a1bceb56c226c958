"""
Shape evaluator interface for sheetsig.

The classifier is an external oracle. This module defines the boundary it must
honor, a stub that never votes, and an evaluator that replays recorded votes.
"""

import os
from abc import ABC, abstractmethod

import yaml

from sheetsig.models import Evaluation, Shape
from sheetsig.tracer import get_tracer


class Evaluator(ABC):
    """
    Abstract shape evaluator.

    Implementations must be read-only and deterministic for a given glyph, so
    that systems can share one evaluator across threads.
    """

    @abstractmethod
    def evaluate(self, glyph):
        """
        Evaluate a glyph against the whole shape vocabulary.

        Returns:
            list of Evaluation sorted by increasing doubt
        """
        pass

    def vote(self, glyph, max_doubt):
        """Best evaluation if its doubt does not exceed max_doubt, else None."""
        evaluations = self.evaluate(glyph)
        if evaluations and evaluations[0].doubt <= max_doubt:
            return evaluations[0]
        return None


class StubEvaluator(Evaluator):
    """
    Stub implementation that never votes.

    Placeholder when no classifier is wired in.
    """

    def evaluate(self, glyph):
        return []


class RecordedEvaluator(Evaluator):
    """
    Evaluator replaying votes recorded per pixel content.

    Votes are keyed by the sorted section ids of the evaluated glyph, so a
    compound gets the vote recorded for the union of its sections.
    """

    def __init__(self, votes=None):
        self._votes = {}
        for key, evaluations in (votes or {}).items():
            self.record(key, evaluations)

    def record(self, section_ids, evaluations):
        key = self._key(section_ids)
        ranked = [e if isinstance(e, Evaluation) else Evaluation(**e) for e in evaluations]
        self._votes[key] = sorted(ranked, key=lambda e: e.doubt)

    @staticmethod
    def _key(section_ids):
        if isinstance(section_ids, str):
            section_ids = section_ids.split(",")
        return tuple(sorted(s.strip() for s in section_ids))

    def evaluate(self, glyph):
        return list(self._votes.get(glyph.signature, []))


def load_recorded_votes(path):
    """
    Load recorded votes from YAML.

    Expected layout: a mapping from comma-separated section ids to a list of
    {shape, doubt} entries.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Votes file {path} must contain a mapping")

    votes = {}
    for key, entries in data.items():
        votes[key] = [Evaluation(shape=Shape(e["shape"]), doubt=float(e["doubt"])) for e in entries]

    return RecordedEvaluator(votes)


def get_evaluator(config):
    """
    Factory to get the configured evaluator.

    Returns StubEvaluator if no recorded votes are configured.
    """
    tracer = get_tracer()

    votes_path = config.evaluator.votes_path
    if votes_path and os.path.exists(votes_path):
        tracer.event(f"Using recorded votes from {votes_path}")
        return load_recorded_votes(votes_path)

    if votes_path:
        tracer.event(f"Votes file not found: {votes_path}, using stub", level="WARN")
    else:
        tracer.event("No evaluator configured, using stub")

    return StubEvaluator()
