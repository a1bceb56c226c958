"""
Compound building for sheetsig.

A compound merges a seed glyph with suitable neighbors found around it, and is
kept only when the evaluator recognizes the whole better than the seed alone.
The building behavior is a CompoundPolicy value rather than a subclass.
"""

from dataclasses import dataclass
from typing import Callable

from sheetsig.glyphs.geometry import boxes_intersect, grow_bounds
from sheetsig.models import RECLASSIFIABLE_SHAPES, Shape
from sheetsig.tracer import get_tracer, trace


@dataclass(frozen=True)
class CompoundPolicy:
    """
    Strategy for compound building.

    box_dx, box_dy: seed box extension (pixels) to look for neighbors
    is_suitable(glyph): may this glyph be part of a compound
    is_valid(compound, seed): is the built compound acceptable; expected to
        write the voted shape and doubt onto the compound
    """
    box_dx: int
    box_dy: int
    is_suitable: Callable
    is_valid: Callable


def basic_policy(evaluator, scale, config, max_doubt):
    """
    Policy used to retrieve all compounds of a system.

    Suitable glyphs are active and either unknown, or automatically assigned
    with a reclassifiable shape or a weak doubt.
    """
    box_widen = scale.to_pixels(config.inspector.box_widen)
    min_part_doubt = config.inspector.min_compound_part_doubt

    def is_suitable(glyph):
        if not glyph.active:
            return False
        if not glyph.is_known:
            return True
        if glyph.manual:
            return False
        return glyph.shape in RECLASSIFIABLE_SHAPES or glyph.doubt >= min_part_doubt

    def is_valid(compound, seed):
        vote = evaluator.vote(compound, max_doubt)
        if vote is None:
            return False

        compound.assign_shape(vote.shape, vote.doubt)

        if not vote.shape.is_well_known or vote.shape == Shape.CLUTTER:
            return False

        # A known seed is only superseded by a strictly better vote
        return not seed.is_known or vote.doubt < seed.doubt

    return CompoundPolicy(box_dx=box_widen, box_dy=box_widen, is_suitable=is_suitable, is_valid=is_valid)


def try_compound(system, seed, suitables, policy):
    """
    Try to build a compound around seed, using glyphs from suitables.

    The system is left untouched: for a successful (non-None) compound it is
    the caller's job to register it and to assign its shape.

    Returns:
        the compound glyph, or None
    """
    tracer = get_tracer()

    box = grow_bounds(seed.bounds, policy.box_dx, policy.box_dy)

    neighbors = [seed]
    for glyph in suitables:
        if glyph is seed or not policy.is_suitable(glyph):
            continue
        if boxes_intersect(box, glyph.bounds):
            neighbors.append(glyph)

    if len(neighbors) < 2:
        return None

    tracer.vip(seed, f"Compound neighbors of {seed}", neighbors=[g.glyph_id for g in neighbors])

    compound = system.build_compound(neighbors)

    if not policy.is_valid(compound, seed):
        return None

    # If this compound duplicates an original glyph, the shape must not have
    # been forbidden on the original
    original = system.get_original(compound)
    if original is not None and original.is_shape_forbidden(compound.shape):
        tracer.event(
            f"Compound {compound} rejected, shape forbidden on original {original}",
            level="WARN",
        )
        return None

    return compound


@trace(label="retrieve_compounds")
def retrieve_compounds(system, evaluator, max_doubt, config):
    """
    Look for glyph parts that should be merged into compounds.

    Suitable glyphs are processed by decreasing weight, each seed being
    combined with the smaller ones only.

    Returns:
        list of committed compound glyphs
    """
    tracer = get_tracer()
    policy = basic_policy(evaluator, system.scale, config, max_doubt)

    suitables = [g for g in system.active_glyphs() if policy.is_suitable(g)]
    suitables.sort(key=lambda g: (-g.weight, g.glyph_id))

    compounds = []
    for index, seed in enumerate(suitables):
        if not seed.active:
            continue

        compound = try_compound(system, seed, suitables[index + 1:], policy)
        if compound is None:
            continue

        shape, doubt = compound.shape, compound.doubt
        compound = system.add_glyph(compound)
        compound.assign_shape(shape, doubt)
        compounds.append(compound)
        tracer.event(f"Inserted compound {compound}", level="DEBUG", doubt=doubt)

    tracer.event(f"Built {len(compounds)} compounds from {len(suitables)} suitable glyphs")

    return compounds
