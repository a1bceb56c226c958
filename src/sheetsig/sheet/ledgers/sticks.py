"""
Ledger stick building for sheetsig.

Horizontal sections that touch each other are aggregated into sticks, the
glyphs later checked as ledger candidates.
"""

import networkx as nx

from sheetsig.glyphs.geometry import x_overlap, y_overlap
from sheetsig.tracer import get_tracer, trace


def _are_linked(b1, b2, max_coord_gap, max_pos_gap):
    """Sections are linked when both their abscissa and ordinate gaps are small."""
    return -x_overlap(b1, b2) <= max_coord_gap and -y_overlap(b1, b2) <= max_pos_gap


@trace(label="build_sticks")
def build_sticks(system, sections, scale, config):
    """
    Aggregate sections into horizontal sticks.

    Sections must have been released beforehand. Each connected group of
    sections becomes one glyph registered in the system, unless it is too thick
    to be a ledger.

    Returns:
        list of stick glyphs, ordered by abscissa
    """
    tracer = get_tracer()
    ledger = config.ledger

    max_coord_gap = scale.to_pixels(ledger.max_coord_gap)
    max_pos_gap = scale.to_pixels(ledger.max_pos_gap)
    max_thickness = min(
        scale.line_frac_to_pixels(ledger.max_thickness_high),
        scale.to_pixels(ledger.max_thickness_high2),
    )

    graph = nx.Graph()
    by_id = {s.section_id: s for s in sections}
    graph.add_nodes_from(by_id)

    ordered = sorted(by_id.values(), key=lambda s: (s.bounds[0], s.section_id))
    for i, section in enumerate(ordered):
        box = section.bounds
        for other in ordered[i + 1:]:
            o_box = other.bounds
            if o_box[0] - box[2] > max_coord_gap:
                break
            if _are_linked(box, o_box, max_coord_gap, max_pos_gap):
                graph.add_edge(section.section_id, other.section_id)

    sticks = []
    too_thick = 0
    for component in nx.connected_components(graph):
        parts = [by_id[sid] for sid in sorted(component)]
        stick = system.build_glyph(parts)

        if stick.mean_thickness > max_thickness:
            too_thick += 1
            continue

        sticks.append(system.add_glyph(stick))

    sticks.sort(key=lambda g: (g.bounds[0], g.glyph_id))
    tracer.event(
        f"Sticks: {len(sticks)} from {len(by_id)} sections",
        level="DEBUG",
        too_thick=too_thick,
        max_thickness=max_thickness,
    )

    return sticks

