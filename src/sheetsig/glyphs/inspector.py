"""
Glyph inspection for sheetsig.

Works at system level: unassigned glyphs are evaluated, weak parts are merged
into compounds, and close stems are checked for broken alteration signs.
"""

from sheetsig.glyphs.alter_signs import verify_alter_signs
from sheetsig.glyphs.compounds import retrieve_compounds
from sheetsig.tracer import get_tracer, trace


class GlyphInspector:
    """Inspection of the glyphs of one system."""

    def __init__(self, system, evaluator, config):
        self.system = system
        self.evaluator = evaluator
        self.config = config

    @property
    def symbol_max_doubt(self):
        return self.config.inspector.symbol_max_doubt

    def evaluate_glyphs(self, max_doubt):
        """
        Assign the voted shape to every active unknown glyph of the system.

        Returns the number of glyphs assigned.
        """
        assigned = 0
        for glyph in self.system.active_glyphs():
            if glyph.is_known:
                continue

            vote = self.evaluator.vote(glyph, max_doubt)
            if vote is not None and glyph.assign_shape(vote.shape, vote.doubt):
                assigned += 1

        get_tracer().event(f"Evaluated glyphs: {assigned} assigned", level="DEBUG", max_doubt=max_doubt)
        return assigned

    @trace(label="inspect_glyphs")
    def inspect_glyphs(self, max_doubt):
        """
        Evaluate glyphs, then try compounds on what remains.

        Returns the list of compounds built.
        """
        self.evaluate_glyphs(max_doubt)
        self.system.remove_inactive_glyphs()
        compounds = retrieve_compounds(self.system, self.evaluator, max_doubt, self.config)
        self.evaluate_glyphs(max_doubt)
        return compounds

    def verify_alter_signs(self):
        """Rebuild alteration signs split into close stems. Returns the count fixed."""
        return verify_alter_signs(self.system, self.evaluator, self.config)
