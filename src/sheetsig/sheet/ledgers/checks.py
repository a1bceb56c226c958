"""
Ledger check suites for sheetsig.

A ledger candidate (a rather horizontal stick) is graded against its
theoretical ordinate, one interline away from its reference line.
"""

from dataclasses import dataclass
from typing import Any, Optional

from sheetsig.check.suite import Check, CheckSuite

# Failure codes
TOO_SHORT = "Hori-TooShort"
TOO_THIN = "Hori-TooThin"
TOO_THICK = "Hori-TooThick"
TOO_CONCAVE = "Hori-TooConcave"
TOO_BENDED = "Hori-TooBended"
TOO_SHIFTED = "Hori-TooShifted"


@dataclass
class GlyphContext:
    """A stick being checked, with its target ordinate."""
    stick: Any
    y_target: float
    scale: Any
    picture: Optional[Any] = None

    @property
    def vip(self):
        return self.stick.vip

    def add_failure(self, failure):
        self.stick.add_failure(failure)


def _is_foreground(picture, x, y):
    if picture is None:
        return False
    height, width = picture.shape[:2]
    if 0 <= x < width and 0 <= y < height:
        return bool(picture[y, x])
    return False


def count_convex_ends(stick, picture):
    """
    Count stick ends that point out of their surroundings.

    On each end of the stick, the pixels just above and just below the stick
    bounds must be background.
    """
    x0, y0, x1, y1 = stick.bounds
    convexities = 0

    for x in (x0, x1 - 1):
        top_fore = _is_foreground(picture, x, y0 - 1)
        bottom_fore = _is_foreground(picture, x, y1)
        if not (top_fore or bottom_fore):
            convexities += 1

    return convexities


def _min_thickness(ctx):
    return ctx.scale.pixels_to_frac(ctx.stick.mean_thickness)


def _max_thickness(ctx):
    return ctx.scale.pixels_to_line_frac(ctx.stick.mean_thickness)


def _length(ctx):
    return ctx.scale.pixels_to_frac(ctx.stick.length)


def _convexity(ctx):
    return count_convex_ends(ctx.stick, ctx.picture)


def _straightness(ctx):
    return ctx.scale.pixels_to_frac(ctx.stick.mean_distance)


def _left_pitch(ctx):
    return ctx.scale.pixels_to_frac(abs(ctx.stick.start_point[1] - ctx.y_target))


def _right_pitch(ctx):
    return ctx.scale.pixels_to_frac(abs(ctx.stick.stop_point[1] - ctx.y_target))


def build_ledger_suite(config, is_long):
    """Create the check suite for short or long ledger candidates."""
    ledger = config.ledger
    name = "Ledger " + ("long" if is_long else "short")
    min_grade = ledger.long_min_grade if is_long else ledger.short_min_grade

    suite = CheckSuite(name, min_threshold=min_grade)
    suite.add(0.5, Check(
        "MinTh.", "Check that stick is thick enough",
        0.0, ledger.min_thickness_high, True, TOO_THIN, _min_thickness))
    suite.add(0, Check(
        "MaxTh.", "Check that stick is not too thick",
        ledger.max_thickness_low, ledger.max_thickness_high, False, TOO_THICK, _max_thickness))
    suite.add(4, Check(
        "Length", "Check that stick is long enough",
        ledger.min_ledger_length_low, ledger.min_ledger_length_high, True, TOO_SHORT, _length))
    suite.add(2, Check(
        "Convex", "Check number of convex stick ends",
        ledger.convexity_low, 2.0, True, TOO_CONCAVE, _convexity))
    suite.add(1, Check(
        "Straight", "Check that stick is rather straight",
        0.0, ledger.max_distance_high, False, TOO_BENDED, _straightness))
    suite.add(0.5, Check(
        "LPitch", "Check that left ordinate is close to theoretical value",
        0.0, ledger.ledger_margin_y, False, TOO_SHIFTED, _left_pitch))
    suite.add(0.5, Check(
        "RPitch", "Check that right ordinate is close to theoretical value",
        0.0, ledger.ledger_margin_y, False, TOO_SHIFTED, _right_pitch))

    return suite
