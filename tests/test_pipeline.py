"""Tests for sheet processing."""

from sheetsig.glyphs.evaluator import RecordedEvaluator


class ExplodingEvaluator(RecordedEvaluator):
    """Evaluator failing on glyphs whose id starts with 'boom'."""

    def evaluate(self, glyph):
        if glyph.glyph_id.startswith("boom"):
            raise RuntimeError(f"cannot evaluate {glyph.glyph_id}")
        return super().evaluate(glyph)


def ledger_system(make_section, make_system, staff, system_id, extra_glyphs=()):
    section = make_section(f"l{system_id}", 200, 79, 40, 3)
    return make_system(
        glyphs=list(extra_glyphs),
        staves=[staff],
        ledger_sections=[section],
        system_id=system_id,
    )


class TestProcessSystem:
    """Tests for process_system."""

    def test_all_steps_reported(self, make_section, make_glyph, make_system, staff, default_config):
        from sheetsig.glyphs.evaluator import RecordedEvaluator
        from sheetsig.pipeline import process_system

        heavy = make_glyph("a", 500, 130, 10, 20)
        light = make_glyph("b", 512, 130, 8, 20)
        system = ledger_system(make_section, make_system, staff, 1, [heavy, light])
        evaluator = RecordedEvaluator({"s_a,s_b": [{"shape": "flat", "doubt": 0.5}]})

        report = process_system(system, default_config, evaluator)

        assert not report.failed
        assert len(report.compounds) == 1
        assert report.alter_fixes == 0
        assert report.ledgers == {1: {-1: 1}}
        assert report.ledger_count == 1

    def test_failure_reported(self, make_section, make_glyph, make_system, staff, default_config):
        from sheetsig.pipeline import process_system

        system = ledger_system(make_section, make_system, staff, 1, [make_glyph("boom", 0, 0, 5, 5)])

        report = process_system(system, default_config, ExplodingEvaluator())

        assert report.failed
        assert "RuntimeError" in report.error


class TestProcessSheet:
    """Tests for process_sheet."""

    def test_failed_system_isolated(self, make_section, make_glyph, make_system, staff, scale, default_config):
        from sheetsig.models import LineInfo, Staff
        from sheetsig.pipeline import process_sheet
        from sheetsig.sheet.system import Sheet

        other_staff = Staff(
            staff_id=2,
            first_line=LineInfo(points=[[0, 100], [1000, 100]], thickness=2),
            last_line=LineInfo(points=[[0, 180], [1000, 180]], thickness=2),
        )
        good = ledger_system(make_section, make_system, staff, 1)
        bad = ledger_system(make_section, make_system, other_staff, 2, [make_glyph("boom", 0, 0, 5, 5)])
        sheet = Sheet("page", scale, [good, bad])

        report = process_sheet(sheet, config=default_config, evaluator=ExplodingEvaluator())

        assert [s.system_id for s in report.systems] == [1, 2]
        assert report.failed_systems == [2]
        assert report.systems[0].ledgers == {1: {-1: 1}}

    def test_systems_share_section_lock(self, make_system, scale):
        from sheetsig.sheet.system import Sheet

        first = make_system(system_id=1)
        second = make_system(system_id=2)
        sheet = Sheet("page", scale, [first, second])

        assert first.section_lock is sheet.section_lock
        assert second.section_lock is sheet.section_lock

    def test_default_evaluator(self, make_section, make_system, staff, scale, default_config):
        from sheetsig.pipeline import process_sheet
        from sheetsig.sheet.system import Sheet

        sheet = Sheet("page", scale, [ledger_system(make_section, make_system, staff, 1)])

        report = process_sheet(sheet, config=default_config)

        assert report.sheet_id == "page"
        assert report.systems[0].compounds == []
        assert report.systems[0].ledger_count == 1
