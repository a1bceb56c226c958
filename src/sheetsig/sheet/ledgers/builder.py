"""
Ledger retrieval for sheetsig.

Ledgers are searched staff by staff, one virtual line after the other, going
away from the staff. Candidates for line index +/-1 are checked against the
staff boundary line; candidates further away are checked against a ledger
accepted on the previous index, so each step is anchored on the survivors of
the step before. A direction stops at the first index with no ledger.
"""

from dataclasses import dataclass, field
from typing import Any, List

from shapely.geometry import Point, Polygon, box

from sheetsig.glyphs.geometry import boxes_intersect, grow_bounds, translate_bounds, x_overlap
from sheetsig.models import ALGORITHM_DOUBT, BEAM_SHAPES, Inter, Shape
from sheetsig.sheet.ledgers.checks import GlyphContext, build_ledger_suite
from sheetsig.sheet.ledgers.sticks import build_sticks
from sheetsig.sig.reducer import by_abscissa, reduce_overlaps
from sheetsig.tracer import get_tracer, trace


@dataclass
class VirtualLineScan:
    """
    Scan of virtual lines on one side of a staff.

    sign is -1 above the staff and +1 below it. Each step evaluates index
    sign * magnitude; a step with no ledger ends the scan.
    """
    staff: Any
    sign: int
    magnitude: int = 1
    done: bool = False
    evaluated: List[int] = field(default_factory=list)

    @property
    def index(self):
        return self.sign * self.magnitude

    def step(self, lookup):
        """Evaluate the current index with lookup(staff, index). Returns the ledger count."""
        if self.done:
            return 0

        index = self.index
        found = lookup(self.staff, index)
        self.evaluated.append(index)

        if found == 0:
            self.done = True
        else:
            self.magnitude += 1

        return found

    def run(self, lookup):
        """Step until done. Returns {index: ledger count} for indices with ledgers."""
        counts = {}
        while not self.done:
            index = self.index
            found = self.step(lookup)
            if found:
                counts[index] = found
        return counts


def _beam_geometry(beam):
    if beam.area:
        return Polygon(beam.area)
    return box(*beam.bounds)


class LedgersBuilder:
    """
    Retrieval of ledgers for one system.

    stick_factory(system, sections, scale, config) is the boundary to the
    stick segmentation, build_sticks by default.
    """

    def __init__(self, system, config, stick_factory=build_sticks):
        self.system = system
        self.config = config
        self.scale = system.scale
        self.stick_factory = stick_factory

        self.short_suite = build_ledger_suite(config, is_long=False)
        self.long_suite = build_ledger_suite(config, is_long=True)

        self.max_short_length = self.scale.to_pixels(config.ledger.max_short_length)
        self.y_margin = self.scale.to_pixels(config.ledger.ledger_margin_y)

        self.candidates = []
        self.ledgers = {}  # staff_id -> {index: count}

    @trace(label="build_ledgers")
    def build_ledgers(self):
        """
        Search ledgers around every staff of the system.

        Any failure is logged and leaves the ledgers found so far in place.

        Returns:
            dict staff_id -> {index: number of ledgers}
        """
        tracer = get_tracer()

        try:
            beams = self.get_good_beams()
            sections = self.get_candidate_sections()

            with self.system.section_lock:
                self.system.release_sections(sections)
                sticks = self.stick_factory(self.system, sections, self.scale, self.config)

            self.candidates = self.filter_ledgers(sticks, beams)

            for stick in self.candidates:
                stick.assign_shape(Shape.LEDGER_CANDIDATE, ALGORITHM_DOUBT)

            tracer.event(
                f"Ledger candidates: {len(self.candidates)}",
                sections=len(sections),
                sticks=len(sticks),
                beams=len(beams),
            )

            for scan in self.scans():
                counts = scan.run(self.lookup_line)
                if counts:
                    self.ledgers.setdefault(scan.staff.staff_id, {}).update(counts)

        except Exception as e:
            tracer.event(
                f"Error retrieving ledgers in system #{self.system.system_id}: {type(e).__name__}: {e}",
                level="WARN",
            )

        return self.ledgers

    def get_good_beams(self):
        """Beam inters graded at least good_grade, ordered by abscissa."""
        good_grade = self.config.sig.good_grade
        beams = self.system.sig.inters(lambda i: i.shape in BEAM_SHAPES and i.grade >= good_grade)
        return sorted(beams, key=by_abscissa)

    def get_candidate_sections(self):
        """
        Ledger sections long enough to be part of a ledger.

        When the system lists horizontal sections, candidates must intersect
        one of them.
        """
        min_length = self.scale.to_pixels(self.config.ledger.min_ledger_length_low)
        horizontals = [h.bounds for h in self.system.horizontal_sections]

        sections = []
        for section in self.system.ledger_sections:
            bounds = section.bounds
            if bounds[2] - bounds[0] < min_length:
                continue
            if horizontals and not any(boxes_intersect(bounds, h) for h in horizontals):
                continue
            sections.append(section)

        return sections

    def filter_ledgers(self, sticks, beams):
        """Discard sticks whose middle lies within a good beam."""
        tracer = get_tracer()
        areas = [_beam_geometry(beam) for beam in beams]

        kept = []
        for stick in sticks:
            middle = Point(*stick.middle)
            if any(area.intersects(middle) for area in areas):
                tracer.vip(stick, f"Ledger stick {stick} inside beam")
                continue
            kept.append(stick)

        return kept

    def scans(self):
        """Virtual line scans: above then below each staff."""
        for staff in self.system.staves:
            for sign in (-1, 1):
                yield VirtualLineScan(staff=staff, sign=sign)

    def select_suite(self, stick):
        if stick.length <= self.max_short_length:
            return self.short_suite
        return self.long_suite

    def virtual_line_box(self, staff, index):
        """Lookup area for virtual line index, from the staff boundary line."""
        line = staff.boundary_line(index)
        shifted = translate_bounds(line.bounds, 0, index * self.scale.interline)
        return grow_bounds(shifted, 0, 2 * self.y_margin)

    def get_y_reference(self, staff, index, stick):
        """
        Ordinate used as reference for a stick at virtual line index.

        Index +/-1 refers to the staff boundary line. Other indices refer to a
        ledger of the previous index overlapping the stick in abscissa.

        Returns:
            reference ordinate at the stick area center abscissa, or None
        """
        x = stick.area_center[0]

        if abs(index) == 1:
            return staff.boundary_line(index).y_at(x)

        sign = 1 if index > 0 else -1
        for inter_id in staff.get_ledgers(index - sign):
            inter = self.system.sig.get(inter_id)
            if inter is None or inter.glyph_id == stick.glyph_id:
                continue
            if x_overlap(inter.bounds, stick.bounds) <= 0:
                continue

            ledger = self.system.get_glyph(inter.glyph_id)
            if ledger is not None:
                return ledger.y_at_x(x)

        return None

    def lookup_line(self, staff, index):
        """
        Retrieve the ledgers of one virtual line.

        Returns:
            number of ledgers kept for this index
        """
        tracer = get_tracer()
        sig = self.system.sig
        sign = 1 if index > 0 else -1
        line_box = self.virtual_line_box(staff, index)

        found = []
        for stick in self.candidates:
            x, y = stick.middle
            if not (line_box[0] <= x < line_box[2] and line_box[1] <= y < line_box[3]):
                continue

            y_ref = self.get_y_reference(staff, index, stick)
            if y_ref is None:
                tracer.vip(stick, f"No reference for {stick} at index {index}")
                continue

            suite = self.select_suite(stick)
            ctx = GlyphContext(stick=stick, y_target=y_ref + sign * self.scale.interline,
                               scale=self.scale, picture=self.system.picture)
            impacts = suite.get_impacts(ctx)
            tracer.vip(stick, impacts.dump(), index=index)

            if not suite.passes(impacts):
                continue

            if sig.get_inter(stick.glyph_id, Shape.LEDGER) is not None:
                # Stick between two staves, already found from the other staff
                tracer.event(f"Double ledger definition for {stick}", level="ERROR", index=index)

            inter = Inter(
                shape=Shape.LEDGER,
                grade=impacts.grade,
                bounds=stick.bounds,
                glyph_id=stick.glyph_id,
                index=index,
                impacts=impacts,
                vip=stick.vip,
            )
            found.append(sig.add_vertex(inter))

        if not found:
            return 0

        removed = reduce_overlaps(sig, found)
        survivors = [inter for inter in found if inter.inter_id not in removed]

        for inter in survivors:
            glyph = self.system.get_glyph(inter.glyph_id)
            glyph.assign_shape(Shape.LEDGER, ALGORITHM_DOUBT)
            staff.add_ledger(inter.inter_id, index)

        tracer.event(
            f"Staff #{staff.staff_id} line {index}: {len(survivors)} ledgers",
            level="DEBUG",
            removed=len(removed),
        )

        return len(survivors)
