"""
Pydantic data models for sheetsig.

Glyphs, sections, evaluations, interpretations and staves all flow through
these validated models. Content-based ID generation keeps compound ids
deterministic.
"""

import hashlib
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from sheetsig.glyphs.geometry import (
    bounds_center,
    compute_bbox_from_bboxes,
    fit_line,
    mean_distance,
    pixel_arrays,
    runs_bounds,
)
from sheetsig.tracer import get_tracer


# Doubt used for shapes assigned by an algorithm rather than voted
ALGORITHM_DOUBT = 0.0

# Doubt used for shapes assigned by hand
MANUAL_DOUBT = -1.0


class Shape(str, Enum):
    """Classification vocabulary."""
    DOT = "dot"
    SLUR = "slur"
    CLUTTER = "clutter"
    NOISE = "noise"
    GLYPH_PART = "glyph_part"
    COMBINING_STEM = "stem"
    SHARP = "sharp"
    NATURAL = "natural"
    FLAT = "flat"
    NOTEHEAD_BLACK = "notehead_black"
    NOTEHEAD_VOID = "notehead_void"
    WHOLE_NOTE = "whole_note"
    QUARTER_REST = "quarter_rest"
    G_CLEF = "g_clef"
    F_CLEF = "f_clef"
    BEAM = "beam"
    BEAM_HOOK = "beam_hook"
    LEDGER = "ledger"
    LEDGER_CANDIDATE = "ledger_candidate"

    @property
    def is_well_known(self):
        """A shape that denotes an actual symbol, not a placeholder."""
        return self not in (Shape.NOISE, Shape.GLYPH_PART, Shape.LEDGER_CANDIDATE)


# Shapes that compound building may reclassify
RECLASSIFIABLE_SHAPES = (Shape.DOT, Shape.SLUR, Shape.CLUTTER)

BEAM_SHAPES = (Shape.BEAM, Shape.BEAM_HOOK)


class ExclusionCause(str, Enum):
    """Why two interpretations exclude each other."""
    OVERLAP = "overlap"


class ReductionMode(str, Enum):
    """How exclusions get resolved."""
    STRICT = "strict"
    RELAXED = "relaxed"


class Section(BaseModel):
    """An atomic run-length region, owned by at most one glyph."""
    section_id: str
    runs: List[List[int]] = Field(default_factory=list)  # [y, x_start, length]
    glyph_id: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @property
    def bounds(self):
        return runs_bounds(self.runs)

    @property
    def weight(self):
        return sum(r[2] for r in self.runs)

    def release(self):
        """Clear ownership so that another glyph may claim this section."""
        self.glyph_id = None


class Evaluation(BaseModel):
    """A classifier vote: shape and doubt (lower is better)."""
    shape: Shape
    doubt: float

    model_config = ConfigDict(extra="forbid", frozen=True)


class Glyph(BaseModel):
    """A candidate pixel region, made of one or several sections."""
    glyph_id: str
    sections: List[Section] = Field(default_factory=list)
    shape: Optional[Shape] = None
    doubt: Optional[float] = None
    manual: bool = False
    forbidden_shapes: List[Shape] = Field(default_factory=list)
    failures: List[str] = Field(default_factory=list)
    vip: bool = False

    model_config = ConfigDict(extra="forbid")

    _geometry: Optional[Dict[str, Any]] = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _check_doubt(self):
        if self.shape is not None and self.doubt is None:
            raise ValueError(f"glyph {self.glyph_id} has shape {self.shape.value} but no doubt")
        return self

    def __str__(self):
        shape = self.shape.value if self.shape else "-"
        return f"glyph#{self.glyph_id}({shape})"

    # Identity and state

    @property
    def section_ids(self):
        return sorted(s.section_id for s in self.sections)

    @property
    def signature(self):
        """Sorted section ids, identifying the pixel content."""
        return tuple(self.section_ids)

    @property
    def active(self):
        """A glyph is active while it owns all of its sections."""
        return bool(self.sections) and all(s.glyph_id == self.glyph_id for s in self.sections)

    @property
    def is_known(self):
        return self.shape is not None

    def is_shape_forbidden(self, shape):
        return shape in self.forbidden_shapes

    def forbid_shape(self, shape):
        if shape not in self.forbidden_shapes:
            self.forbidden_shapes.append(shape)

    def add_failure(self, code):
        if code not in self.failures:
            self.failures.append(code)

    def assign_shape(self, shape, doubt, manual=False):
        """
        Assign shape and doubt together.

        A manual shape is never overwritten by an automatic assignment; such an
        attempt is logged and refused. Returns True if the assignment happened.
        """
        if self.manual and not manual:
            get_tracer().event(
                f"Refused to overwrite manual shape of {self}",
                level="WARN",
                attempted=shape.value if shape else None,
            )
            return False

        if shape is None:
            self.shape = None
            self.doubt = None
        else:
            if doubt is None:
                raise ValueError(f"shape {shape.value} assigned without doubt")
            self.shape = shape
            self.doubt = doubt

        self.manual = manual and shape is not None
        return True

    # Geometry

    def _geo(self):
        if self._geometry is None:
            runs = [r for s in self.sections for r in s.runs]
            xs, ys = pixel_arrays(runs)
            slope, intercept = fit_line(xs, ys)
            self._geometry = {
                "bounds": compute_bbox_from_bboxes([s.bounds for s in self.sections]),
                "weight": int(len(xs)),
                "slope": slope,
                "intercept": intercept,
                "mean_distance": mean_distance(xs, ys, slope, intercept),
            }
        return self._geometry

    @property
    def bounds(self):
        return list(self._geo()["bounds"])

    @property
    def weight(self):
        return self._geo()["weight"]

    @property
    def area_center(self):
        return bounds_center(self.bounds)

    @property
    def width(self):
        b = self.bounds
        return b[2] - b[0]

    @property
    def height(self):
        b = self.bounds
        return b[3] - b[1]

    @property
    def slope(self):
        return self._geo()["slope"]

    def y_at_x(self, x):
        """Ordinate of the fitted line at abscissa x."""
        geo = self._geo()
        return geo["slope"] * x + geo["intercept"]

    @property
    def start_point(self):
        """Left end of the fitted line, for a rather horizontal glyph."""
        x = float(self.bounds[0])
        return [x, self.y_at_x(x)]

    @property
    def stop_point(self):
        """Right end of the fitted line, for a rather horizontal glyph."""
        x = float(self.bounds[2] - 1)
        return [x, self.y_at_x(x)]

    @property
    def middle(self):
        start, stop = self.start_point, self.stop_point
        return [(start[0] + stop[0]) / 2.0, (start[1] + stop[1]) / 2.0]

    @property
    def length(self):
        """Horizontal length."""
        return self.width

    @property
    def mean_thickness(self):
        """Mean horizontal thickness: weight over length."""
        return self.weight / self.length if self.length else 0.0

    @property
    def mean_distance(self):
        """Mean distance of pixels to the fitted line."""
        return self._geo()["mean_distance"]


class SuiteImpacts(BaseModel):
    """Detailed outcome of a check suite applied to one object."""
    suite: str
    names: List[str] = Field(default_factory=list)
    weights: List[float] = Field(default_factory=list)
    values: List[float] = Field(default_factory=list)
    impacts: List[float] = Field(default_factory=list)
    failures: List[str] = Field(default_factory=list)
    grade: float = 0.0

    model_config = ConfigDict(extra="forbid")

    def dump(self):
        parts = [
            f"{name}:{value:.2f}->{impact:.2f}"
            for name, value, impact in zip(self.names, self.values, self.impacts)
        ]
        return f"{self.suite} grade={self.grade:.3f} " + " ".join(parts)


class Inter(BaseModel):
    """A committed interpretation in a system interpretation graph."""
    inter_id: Optional[int] = None
    shape: Shape
    grade: float = Field(..., ge=0.0, le=1.0)
    bounds: List[float] = Field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])
    glyph_id: Optional[str] = None
    index: Optional[int] = None
    area: Optional[List[List[float]]] = None
    impacts: Optional[SuiteImpacts] = None
    vip: bool = False

    model_config = ConfigDict(extra="forbid")

    def __str__(self):
        return f"{self.shape.value}#{self.inter_id}"


class Exclusion(BaseModel):
    """Mutual exclusion between two inters, endpoints ordered."""
    source: int
    target: int
    cause: ExclusionCause = ExclusionCause.OVERLAP

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _check_order(self):
        if self.source >= self.target:
            raise ValueError("exclusion endpoints must be distinct and ordered")
        return self

    def other(self, inter_id):
        return self.target if inter_id == self.source else self.source


class LineInfo(BaseModel):
    """A staff line, as a polyline ordered by abscissa."""
    points: List[List[float]] = Field(..., min_length=2)
    thickness: float = 1.0

    model_config = ConfigDict(extra="forbid")

    def y_at(self, x):
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        return float(np.interp(x, xs, ys))

    @property
    def bounds(self):
        half = self.thickness / 2.0
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        return [min(xs), min(ys) - half, max(xs), max(ys) + half]


class Staff(BaseModel):
    """A staff with its boundary lines and per-index ledger table."""
    staff_id: int
    first_line: LineInfo
    last_line: LineInfo
    ledgers: Dict[int, List[int]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    def boundary_line(self, index):
        """Top line for negative indices (above), bottom line otherwise."""
        return self.first_line if index < 0 else self.last_line

    def add_ledger(self, inter_id, index):
        handles = self.ledgers.setdefault(index, [])
        if inter_id not in handles:
            handles.append(inter_id)

    def get_ledgers(self, index):
        return list(self.ledgers.get(index, []))


class SystemReport(BaseModel):
    """Outcome of processing one system."""
    system_id: int
    compounds: List[str] = Field(default_factory=list)
    alter_fixes: int = 0
    ledgers: Dict[int, Dict[int, int]] = Field(default_factory=dict)
    failed: bool = False
    error: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @property
    def ledger_count(self):
        return sum(sum(per_index.values()) for per_index in self.ledgers.values())


class SheetReport(BaseModel):
    """Outcome of processing a whole sheet."""
    sheet_id: str
    systems: List[SystemReport] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def failed_systems(self):
        return [s.system_id for s in self.systems if s.failed]


def generate_compound_id(section_ids):
    """
    Generate deterministic compound ID from sorted section IDs.
    """
    if not section_ids:
        return "glyph_empty"

    data = ":".join(sorted(section_ids))
    h = hashlib.sha256(data.encode()).hexdigest()[:12]
    return f"glyph_{h}"
