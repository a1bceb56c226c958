"""
Scene loading and report saving for sheetsig.

A scene is a JSON document describing one sheet: its scale, its sections
(shared by all systems) and, per system, staves, glyphs, candidate sections
and already committed inters such as beams.
"""

import json
import os
from typing import List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sheetsig.models import MANUAL_DOUBT, Glyph, Inter, Section, Shape, Staff, generate_compound_id
from sheetsig.scale import Scale
from sheetsig.sheet.system import Sheet, SystemInfo
from sheetsig.tracer import get_tracer, trace


class GlyphSpec(BaseModel):
    """A glyph of the scene, referring to sections by id."""
    glyph_id: Optional[str] = None
    section_ids: List[str] = Field(..., min_length=1)
    shape: Optional[Shape] = None
    doubt: Optional[float] = None
    manual: bool = False
    vip: bool = False

    model_config = ConfigDict(extra="forbid")


class SystemScene(BaseModel):
    system_id: int
    staves: List[Staff] = Field(default_factory=list)
    glyphs: List[GlyphSpec] = Field(default_factory=list)
    ledger_sections: List[str] = Field(default_factory=list)
    horizontal_sections: List[str] = Field(default_factory=list)
    inters: List[Inter] = Field(default_factory=list)
    picture_path: Optional[str] = None  # .npy binary image, staff lines removed

    model_config = ConfigDict(extra="forbid")


class SheetScene(BaseModel):
    sheet_id: str
    interline: int = Field(..., gt=0)
    line_thickness: int = Field(default=3, gt=0)
    sections: List[Section] = Field(default_factory=list)
    systems: List[SystemScene] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


def _resolve(sections, section_ids, where):
    missing = [sid for sid in section_ids if sid not in sections]
    if missing:
        raise ValueError(f"{where}: unknown sections {missing}")
    return [sections[sid] for sid in section_ids]


def _load_picture(path, base_dir):
    if not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    if not os.path.exists(path):
        raise ValueError(f"Picture not found: {path}")
    return np.load(path)


def _build_glyph(glyph_spec, sections, system_id):
    parts = _resolve(sections, glyph_spec.section_ids, f"system #{system_id} glyph")
    doubt = glyph_spec.doubt
    if glyph_spec.shape is not None and doubt is None and glyph_spec.manual:
        doubt = MANUAL_DOUBT

    return Glyph(
        glyph_id=glyph_spec.glyph_id or generate_compound_id(glyph_spec.section_ids),
        sections=parts,
        shape=glyph_spec.shape,
        doubt=doubt,
        manual=glyph_spec.manual,
        vip=glyph_spec.vip,
    )


def build_sheet(scene, base_dir=".", relaxed_margin=0.1):
    """
    Turn a validated scene into runtime objects.

    Section objects are shared: systems referring to the same section id get
    the very same Section instance.
    """
    scale = Scale(interline=scene.interline, line_thickness=scene.line_thickness)

    sections = {}
    for section in scene.sections:
        if section.section_id in sections:
            raise ValueError(f"Duplicate section id: {section.section_id}")
        sections[section.section_id] = section

    sheet = Sheet(scene.sheet_id, scale)

    for sys_scene in scene.systems:
        sid = sys_scene.system_id
        glyphs = [_build_glyph(glyph_spec, sections, sid) for glyph_spec in sys_scene.glyphs]
        owned = {s.section_id: s for g in glyphs for s in g.sections}

        system = SystemInfo(
            system_id=sid,
            scale=scale,
            staves=sys_scene.staves,
            sections=list(owned.values()),
            ledger_sections=_resolve(sections, sys_scene.ledger_sections, f"system #{sid} ledger sections"),
            horizontal_sections=_resolve(sections, sys_scene.horizontal_sections, f"system #{sid} horizontals"),
            picture=_load_picture(sys_scene.picture_path, base_dir) if sys_scene.picture_path else None,
            relaxed_margin=relaxed_margin,
        )

        for glyph in glyphs:
            system.add_glyph(glyph)

        for inter in sys_scene.inters:
            system.sig.add_vertex(inter)

        sheet.add_system(system)

    return sheet


@trace(label="load_sheet")
def load_sheet(path, relaxed_margin=0.1):
    """
    Load a sheet from a JSON scene file.

    Raises FileNotFoundError if path does not exist.
    Raises ValueError if the scene is malformed or inconsistent.
    """
    tracer = get_tracer()

    if not os.path.exists(path):
        raise FileNotFoundError(f"Scene not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

    try:
        scene = SheetScene.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid scene {path}: {e}") from e

    sheet = build_sheet(scene, base_dir=os.path.dirname(os.path.abspath(path)), relaxed_margin=relaxed_margin)

    tracer.event(
        f"Loaded sheet {sheet.sheet_id}: {len(sheet.systems)} systems",
        sections=len(scene.sections),
        interline=scene.interline,
    )

    return sheet


def ensure_dir(path):
    """Create directory if it does not exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def save_json(data, path, indent=2):
    """
    Save a dictionary or Pydantic model to JSON.
    """
    tracer = get_tracer()

    ensure_dir(os.path.dirname(path))

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

    tracer.event(f"Saved JSON: {path}")


def save_report(report, path):
    """Save a SheetReport to JSON."""
    save_json(report, path)
