"""
Overlap-driven exclusion reduction for sheetsig.

Competing inters that overlap in abscissa are linked by OVERLAP exclusions,
then the exclusions are reduced in the system interpretation graph.
"""

from sheetsig.glyphs.geometry import x_overlap
from sheetsig.models import ExclusionCause, ReductionMode
from sheetsig.tracer import get_tracer


def by_abscissa(inter):
    """Sort key: left abscissa, then handle."""
    return (inter.bounds[0], inter.inter_id)


def insert_overlap_exclusions(sig, inters):
    """
    Insert an OVERLAP exclusion for every pair of inters overlapping in abscissa.

    Inters are sorted by abscissa, so the rightward scan of each inter stops at
    its first non-overlapping neighbor.
    Returns the list of exclusions, in insertion order.
    """
    ordered = sorted(inters, key=by_abscissa)
    exclusions = []

    for i, inter in enumerate(ordered):
        for other in ordered[i + 1:]:
            if x_overlap(inter.bounds, other.bounds) > 0:
                exclusions.append(sig.insert_exclusion(inter, other, ExclusionCause.OVERLAP))
            else:
                break

    return exclusions


def reduce_overlaps(sig, inters, mode=ReductionMode.STRICT):
    """
    Insert overlap exclusions among inters and reduce them.

    Returns the set of removed inter handles. Callers must drop those inters
    from their own bookkeeping.
    """
    exclusions = insert_overlap_exclusions(sig, inters)
    if not exclusions:
        return set()

    removed = sig.reduce_exclusions(mode, exclusions)
    get_tracer().event(
        f"Overlap reduction: {len(exclusions)} exclusions, {len(removed)} deletions",
        level="DEBUG",
        removed=sorted(removed),
    )
    return removed
