"""Pytest fixtures for sheetsig tests."""

import tempfile

import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def default_config():
    """Create default pipeline configuration."""
    from sheetsig.config import PipelineConfig
    return PipelineConfig()


@pytest.fixture
def scale():
    """Interline of 20 pixels, staff lines 2 pixels thick."""
    from sheetsig.scale import Scale
    return Scale(interline=20, line_thickness=2)


@pytest.fixture
def make_section():
    """Factory for rectangular sections: one run per row."""
    from sheetsig.models import Section

    def _make(section_id, x, y, width, height):
        return Section(
            section_id=section_id,
            runs=[[row, x, width] for row in range(y, y + height)],
        )

    return _make


@pytest.fixture
def make_glyph(make_section):
    """Factory for single-section rectangular glyphs."""
    from sheetsig.models import Glyph

    def _make(glyph_id, x, y, width, height, shape=None, doubt=None, manual=False):
        section = make_section(f"s_{glyph_id}", x, y, width, height)
        return Glyph(
            glyph_id=glyph_id,
            sections=[section],
            shape=shape,
            doubt=doubt,
            manual=manual,
        )

    return _make


@pytest.fixture
def staff():
    """Staff with top line at y=100 and bottom line at y=180."""
    from sheetsig.models import LineInfo, Staff
    return Staff(
        staff_id=1,
        first_line=LineInfo(points=[[0, 100], [1000, 100]], thickness=2),
        last_line=LineInfo(points=[[0, 180], [1000, 180]], thickness=2),
    )


@pytest.fixture
def make_system(scale):
    """Factory for a system with glyphs registered."""
    from sheetsig.sheet.system import SystemInfo

    def _make(glyphs=(), staves=(), ledger_sections=(), horizontal_sections=(), picture=None, system_id=1):
        system = SystemInfo(
            system_id=system_id,
            scale=scale,
            staves=list(staves),
            ledger_sections=list(ledger_sections),
            horizontal_sections=list(horizontal_sections),
            picture=picture,
        )
        for glyph in glyphs:
            system.add_glyph(glyph)
        return system

    return _make
