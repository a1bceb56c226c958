"""
Sheet and system containers for sheetsig.

A sheet is split into systems, the unit of parallel processing. Each system
owns its glyphs and its interpretation graph. Sections lying on the border of
two systems are physically shared, so their ownership changes are serialized
through the sheet-wide section lock. The lock is reentrant: stick building
registers glyphs while the ledger retrieval holds it.
"""

import threading

from sheetsig.glyphs.geometry import boxes_intersect
from sheetsig.models import Glyph, generate_compound_id
from sheetsig.sig.graph import SIGraph


class SystemInfo:
    """
    One system of a sheet: glyphs, sections, staves and interpretations.

    glyphs holds the current glyph population. Every glyph ever registered is
    also remembered by its pixel signature, so that a compound rebuilding the
    same sections finds its "original" glyph.
    """

    def __init__(self, system_id, scale, staves=None, sections=None, ledger_sections=None,
                 horizontal_sections=None, picture=None, relaxed_margin=0.1):
        self.system_id = system_id
        self.scale = scale
        self.staves = list(staves or [])
        self.sections = {s.section_id: s for s in (sections or [])}
        self.ledger_sections = list(ledger_sections or [])
        self.horizontal_sections = list(horizontal_sections or [])
        self.picture = picture
        self.sig = SIGraph(relaxed_margin=relaxed_margin)
        self.glyphs = {}
        self.section_lock = threading.RLock()
        self._originals = {}

    def __repr__(self):
        return f"SystemInfo(#{self.system_id}, glyphs={len(self.glyphs)}, inters={len(self.sig)})"

    def add_glyph(self, glyph):
        """
        Register a glyph and make it own its sections.

        If a glyph with the very same sections was registered before, that
        original glyph is reactivated and returned instead.
        """
        original = self._originals.get(glyph.signature)
        if original is not None:
            glyph = original

        with self.section_lock:
            for section in glyph.sections:
                section.glyph_id = glyph.glyph_id
                self.sections.setdefault(section.section_id, section)

        self.glyphs[glyph.glyph_id] = glyph
        self._originals[glyph.signature] = glyph
        return glyph

    def build_compound(self, parts):
        """
        Build a compound glyph out of the union of parts sections.

        The compound is not registered: it owns nothing until add_glyph.
        """
        sections = [section for part in parts for section in part.sections]
        return self.build_glyph(sections, vip=any(p.vip for p in parts))

    def build_glyph(self, sections, vip=False):
        """Build an unregistered glyph out of the provided sections."""
        unique = {s.section_id: s for s in sections}
        return Glyph(
            glyph_id=generate_compound_id(list(unique)),
            sections=[unique[sid] for sid in sorted(unique)],
            vip=vip,
        )

    def get_original(self, glyph):
        """Previously registered glyph with the same sections, other than glyph itself."""
        original = self._originals.get(glyph.signature)
        if original is glyph:
            return None
        return original

    def get_glyph(self, glyph_id):
        return self.glyphs.get(glyph_id)

    def active_glyphs(self):
        """Active glyphs, ordered by id."""
        return [self.glyphs[gid] for gid in sorted(self.glyphs) if self.glyphs[gid].active]

    def lookup_glyphs(self, bounds):
        """Active glyphs whose bounds intersect the provided box."""
        return [g for g in self.active_glyphs() if boxes_intersect(g.bounds, bounds)]

    def remove_inactive_glyphs(self):
        """Drop glyphs that no longer own their sections. Returns the count removed."""
        inactive = [gid for gid, g in self.glyphs.items() if not g.active]
        for gid in inactive:
            del self.glyphs[gid]
        return len(inactive)

    def release_sections(self, sections):
        """Clear ownership of sections, to let a new glyph claim them."""
        for section in sections:
            section.release()


class Sheet:
    """A page: its scale and its systems, sharing one section lock."""

    def __init__(self, sheet_id, scale, systems=None):
        self.sheet_id = sheet_id
        self.scale = scale
        self.section_lock = threading.RLock()
        self.systems = []
        for system in systems or []:
            self.add_system(system)

    def add_system(self, system):
        system.section_lock = self.section_lock
        self.systems.append(system)
        return system
