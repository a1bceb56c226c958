"""Tests for alteration sign verification."""

import pytest


SHARP_KEY = "s_bar1,s_bar2,s_st1,s_st2"


def sharp_pieces(make_glyph, right_top=50):
    """Two close stems (24 pixels high) crossed by two bars."""
    from sheetsig.models import Shape

    st1 = make_glyph("st1", 100, 50, 3, 24, shape=Shape.COMBINING_STEM, doubt=0.2)
    st2 = make_glyph("st2", 110, right_top, 3, 74 - right_top, shape=Shape.COMBINING_STEM, doubt=0.2)
    bar1 = make_glyph("bar1", 95, 56, 23, 3)
    bar2 = make_glyph("bar2", 95, 64, 23, 3)
    return st1, st2, bar1, bar2


class TestVerifyAlterSigns:
    """Tests for verify_alter_signs."""

    def test_sharp_rebuilt(self, make_glyph, make_system, default_config):
        from sheetsig.glyphs.alter_signs import verify_alter_signs
        from sheetsig.glyphs.evaluator import RecordedEvaluator
        from sheetsig.models import ALGORITHM_DOUBT, Shape

        st1, st2, bar1, bar2 = sharp_pieces(make_glyph)
        system = make_system([st1, st2, bar1, bar2])
        evaluator = RecordedEvaluator({SHARP_KEY: [{"shape": "sharp", "doubt": 1.5}]})

        fixed = verify_alter_signs(system, evaluator, default_config)

        assert fixed == 1
        active = system.active_glyphs()
        assert len(active) == 1
        assert active[0].shape == Shape.SHARP
        assert active[0].doubt == ALGORITHM_DOUBT
        assert not st1.active and not st2.active

    def test_other_shape_restores_stems(self, make_glyph, make_system, default_config):
        from sheetsig.glyphs.alter_signs import verify_alter_signs
        from sheetsig.glyphs.evaluator import RecordedEvaluator
        from sheetsig.models import Shape

        st1, st2, bar1, bar2 = sharp_pieces(make_glyph)
        system = make_system([st1, st2, bar1, bar2])
        evaluator = RecordedEvaluator({SHARP_KEY: [{"shape": "natural", "doubt": 1.0}]})

        assert verify_alter_signs(system, evaluator, default_config) == 0

        for stem in (st1, st2):
            assert stem.active
            assert stem.shape == Shape.COMBINING_STEM
            assert stem.doubt == 0.2
        assert len(system.active_glyphs()) == 4

    def test_vote_above_alter_max_doubt(self, make_glyph, make_system, default_config):
        from sheetsig.glyphs.alter_signs import verify_alter_signs
        from sheetsig.glyphs.evaluator import RecordedEvaluator
        from sheetsig.models import Shape

        st1, st2, bar1, bar2 = sharp_pieces(make_glyph)
        system = make_system([st1, st2, bar1, bar2])
        evaluator = RecordedEvaluator({SHARP_KEY: [{"shape": "sharp", "doubt": 3.5}]})

        assert verify_alter_signs(system, evaluator, default_config) == 0
        assert st1.shape == Shape.COMBINING_STEM

    def test_moderate_overlap_left_alone(self, make_glyph, make_system, default_config):
        from sheetsig.glyphs.alter_signs import verify_alter_signs
        from sheetsig.glyphs.evaluator import RecordedEvaluator
        from sheetsig.models import Shape

        # 15 pixels of overlap: within the natural band
        st1, st2, bar1, bar2 = sharp_pieces(make_glyph, right_top=59)
        system = make_system([st1, st2, bar1, bar2])
        evaluator = RecordedEvaluator({SHARP_KEY: [{"shape": "sharp", "doubt": 0.5}]})

        assert verify_alter_signs(system, evaluator, default_config) == 0
        assert st1.shape == Shape.COMBINING_STEM
        assert st2.shape == Shape.COMBINING_STEM
        assert st2.doubt == 0.2

    def test_distant_stems_ignored(self, make_glyph, make_system, default_config):
        from sheetsig.glyphs.alter_signs import verify_alter_signs
        from sheetsig.glyphs.evaluator import RecordedEvaluator
        from sheetsig.models import Shape

        st1 = make_glyph("st1", 100, 50, 3, 24, shape=Shape.COMBINING_STEM, doubt=0.2)
        st2 = make_glyph("st2", 130, 50, 3, 24, shape=Shape.COMBINING_STEM, doubt=0.2)
        system = make_system([st1, st2])
        evaluator = RecordedEvaluator({"s_st1,s_st2": [{"shape": "sharp", "doubt": 0.5}]})

        assert verify_alter_signs(system, evaluator, default_config) == 0
        assert st1.active and st2.active

    def test_manual_glyph_kept_out(self, make_glyph, make_system, default_config):
        from sheetsig.glyphs.alter_signs import verify_alter_signs
        from sheetsig.glyphs.evaluator import RecordedEvaluator
        from sheetsig.models import MANUAL_DOUBT, Shape

        st1, st2, bar1, bar2 = sharp_pieces(make_glyph)
        dot = make_glyph("dot", 120, 70, 3, 3, shape=Shape.DOT, doubt=MANUAL_DOUBT, manual=True)
        system = make_system([st1, st2, bar1, bar2, dot])
        evaluator = RecordedEvaluator({SHARP_KEY: [{"shape": "sharp", "doubt": 1.5}]})

        assert verify_alter_signs(system, evaluator, default_config) == 1
        assert dot.active
        assert dot.shape == Shape.DOT


class TestAlterParams:
    """Tests for pixel thresholds."""

    def test_params_in_pixels(self, scale, default_config):
        from sheetsig.glyphs.alter_signs import AlterParams

        params = AlterParams(scale, default_config)

        assert params.max_close_stem_dx == 14
        assert params.min_close_stem_overlap == 10
        assert params.max_natural_overlap == 20
        assert params.alter_max_doubt == pytest.approx(3.0)

    def test_purge_manual_shapes(self, make_glyph):
        from sheetsig.glyphs.alter_signs import purge_manual_shapes
        from sheetsig.models import MANUAL_DOUBT, Shape

        auto = make_glyph("a", 0, 0, 3, 3)
        manual = make_glyph("m", 5, 0, 3, 3, shape=Shape.DOT, doubt=MANUAL_DOUBT, manual=True)

        assert purge_manual_shapes([auto, manual]) == [auto]
