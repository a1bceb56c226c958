"""Tests for shape evaluators."""

import os

import yaml


class TestEvaluators:
    """Tests for stub and recorded evaluators."""

    def test_stub_never_votes(self, make_glyph):
        from sheetsig.glyphs.evaluator import StubEvaluator

        glyph = make_glyph("g", 0, 0, 5, 5)
        assert StubEvaluator().vote(glyph, 10.0) is None

    def test_recorded_vote_respects_max_doubt(self, make_section):
        from sheetsig.glyphs.evaluator import RecordedEvaluator
        from sheetsig.models import Glyph, Shape

        glyph = Glyph(
            glyph_id="g",
            sections=[make_section("s2", 0, 0, 3, 3), make_section("s1", 5, 0, 3, 3)],
        )
        evaluator = RecordedEvaluator({
            "s1, s2": [
                {"shape": "natural", "doubt": 0.9},
                {"shape": "sharp", "doubt": 0.3},
            ],
        })

        evaluations = evaluator.evaluate(glyph)
        assert [e.shape for e in evaluations] == [Shape.SHARP, Shape.NATURAL]

        assert evaluator.vote(glyph, 0.2) is None
        assert evaluator.vote(glyph, 0.3).shape == Shape.SHARP

    def test_unknown_glyph_has_no_vote(self, make_glyph):
        from sheetsig.glyphs.evaluator import RecordedEvaluator

        evaluator = RecordedEvaluator({"x": [{"shape": "dot", "doubt": 0.1}]})
        assert evaluator.vote(make_glyph("g", 0, 0, 5, 5), 5.0) is None

    def test_load_recorded_votes(self, temp_dir, make_glyph):
        from sheetsig.glyphs.evaluator import load_recorded_votes
        from sheetsig.models import Shape

        path = os.path.join(temp_dir, "votes.yaml")
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"s_g": [{"shape": "quarter_rest", "doubt": 0.4}]}, f)

        evaluator = load_recorded_votes(path)
        vote = evaluator.vote(make_glyph("g", 0, 0, 5, 5), 1.0)

        assert vote.shape == Shape.QUARTER_REST
        assert vote.doubt == 0.4


class TestGetEvaluator:
    """Tests for the evaluator factory."""

    def test_default_is_stub(self, default_config):
        from sheetsig.glyphs.evaluator import StubEvaluator, get_evaluator

        assert isinstance(get_evaluator(default_config), StubEvaluator)

    def test_missing_votes_file_falls_back(self, default_config, temp_dir):
        from sheetsig.glyphs.evaluator import StubEvaluator, get_evaluator

        default_config.evaluator.votes_path = os.path.join(temp_dir, "missing.yaml")
        assert isinstance(get_evaluator(default_config), StubEvaluator)

    def test_votes_file_used(self, default_config, temp_dir):
        from sheetsig.glyphs.evaluator import RecordedEvaluator, get_evaluator

        path = os.path.join(temp_dir, "votes.yaml")
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump({}, f)

        default_config.evaluator.votes_path = path
        assert isinstance(get_evaluator(default_config), RecordedEvaluator)
