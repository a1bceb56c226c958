"""
Alteration sign verification for sheetsig.

Stems very close to each other may result from a wrong segmentation of sharp
or natural signs. Such pairs are hidden, the surrounding glyphs are merged, and
the evaluator decides whether a sharp sign stands there. When it does not, the
stems get their former shape back.
"""

from sheetsig.models import ALGORITHM_DOUBT, Shape
from sheetsig.tracer import get_tracer, trace


class AlterParams:
    """Alteration thresholds converted to pixels for a given scale."""

    def __init__(self, scale, config):
        alter = config.alter
        self.max_close_stem_dx = scale.to_pixels(alter.max_close_stem_dx)
        self.min_close_stem_overlap = scale.to_pixels(alter.min_close_stem_overlap)
        self.max_close_stem_length = scale.to_pixels(alter.max_close_stem_length)
        self.max_natural_overlap = scale.to_pixels(alter.max_natural_overlap)
        self.max_sharp_non_overlap = scale.to_pixels(alter.max_sharp_non_overlap)
        self.alter_max_doubt = alter.alter_max_doubt


def purge_manual_shapes(glyphs):
    """Return the glyphs whose shape was not assigned by hand."""
    return [g for g in glyphs if not g.manual]


def _center_x(bounds):
    return (bounds[0] + bounds[2]) // 2


def _is_stem(glyph):
    return glyph.active and glyph.shape == Shape.COMBINING_STEM


@trace(label="verify_alter_signs")
def verify_alter_signs(system, evaluator, config):
    """
    Verify the case of stems very close to each other.

    Returns:
        number of cases fixed
    """
    tracer = get_tracer()
    params = AlterParams(system.scale, config)

    stems = [
        g for g in system.active_glyphs()
        if _is_stem(g) and not g.manual and g.height <= params.max_close_stem_length
    ]
    stems.sort(key=lambda g: (_center_x(g.bounds), g.glyph_id))

    fixed = 0

    for i, glyph in enumerate(stems):
        if not _is_stem(glyph):
            continue

        box = glyph.bounds
        x = _center_x(box)

        for other in stems[i + 1:]:
            if not _is_stem(other):
                continue

            o_box = other.bounds
            dx = _center_x(o_box) - x

            if dx > params.max_close_stem_dx:
                break  # stems are sorted, no candidate is left

            overlap = min(box[3], o_box[3]) - max(box[1], o_box[1])
            if overlap < params.min_close_stem_overlap:
                continue

            tracer.event(f"Close stems {glyph} {other}", overlap=overlap, dx=dx)

            saved = [(glyph, glyph.shape, glyph.doubt), (other, other.shape, other.doubt)]

            # Hide the stems, not to perturb evaluation
            glyph.assign_shape(None, None)
            other.assign_shape(None, None)

            if overlap <= params.max_natural_overlap:
                success = check_natural(system, evaluator, box, o_box, params)
            else:
                success = check_sharp(system, evaluator, box, o_box, params)

            if success:
                fixed += 1
                break

            for stem, shape, doubt in saved:
                stem.assign_shape(shape, doubt)

    tracer.event(f"Alteration signs fixed: {fixed}", stems=len(stems))

    return fixed


def check_natural(system, evaluator, l_box, r_box, params):
    """
    Check for a natural sign around two moderately overlapping stems.

    No recovery is attempted for this configuration: the stems are left for
    their shapes to be restored.
    """
    get_tracer().event("Natural sign candidate left unresolved", level="DEBUG", left=l_box, right=r_box)
    return False


def check_sharp(system, evaluator, l_box, r_box, params):
    """
    Check whether a sharp sign stands around the two stem boxes.

    Returns:
        True if a sharp compound was built and registered
    """
    tracer = get_tracer()

    dy_top = abs(l_box[1] - r_box[1])
    dy_bot = abs(l_box[3] - r_box[3])

    if dy_top > params.max_sharp_non_overlap or dy_bot > params.max_sharp_non_overlap:
        return False

    l_x = _center_x(l_box)
    r_x = _center_x(r_box)
    half_width = (3 * params.max_close_stem_dx) // 2
    v_margin = params.min_close_stem_overlap // 2
    outer_box = [
        (l_x + r_x) // 2 - half_width,
        min(l_box[1], r_box[1]) - v_margin,
        (l_x + r_x) // 2 + half_width,
        max(l_box[3], r_box[3]) + v_margin,
    ]

    tracer.event("Sharp sign?", level="DEBUG", outer_box=outer_box)

    glyphs = purge_manual_shapes(system.lookup_glyphs(outer_box))
    if not glyphs:
        return False

    compound = system.build_compound(glyphs)
    vote = evaluator.vote(compound, params.alter_max_doubt)

    if vote is None:
        return False

    if vote.shape != Shape.SHARP:
        tracer.event(
            f"Shape {vote.shape.value} better than sharp",
            level="WARN",
            glyphs=[g.glyph_id for g in glyphs],
        )
        return False

    compound = system.add_glyph(compound)
    compound.assign_shape(Shape.SHARP, ALGORITHM_DOUBT)
    tracer.event(f"Sharp glyph rebuilt as {compound}")

    return True
