"""Tests for configuration loading."""

import os

import yaml


class TestConfig:
    """Tests for YAML configuration."""

    def test_defaults(self):
        from sheetsig.config import load_config

        config = load_config()

        assert config.inspector.symbol_max_doubt == 1.0001
        assert config.alter.max_natural_overlap == 1.0
        assert config.ledger.min_ledger_length_low == 1.0
        assert config.sig.good_grade == 0.5
        assert config.evaluator.votes_path is None

    def test_missing_file_gives_defaults(self, temp_dir):
        from sheetsig.config import load_config

        config = load_config(os.path.join(temp_dir, "absent.yaml"))
        assert config.runtime.max_workers == 4

    def test_partial_override(self, temp_dir):
        from sheetsig.config import load_config

        path = os.path.join(temp_dir, "config.yaml")
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump({
                "ledger": {"ledger_margin_y": 0.5, "unknown_key": 3},
                "sig": {"relaxed_margin": 0.2},
                "not_a_section": {"x": 1},
            }, f)

        config = load_config(path)

        assert config.ledger.ledger_margin_y == 0.5
        assert not hasattr(config.ledger, "unknown_key")
        assert config.ledger.max_pos_gap == 0.3
        assert config.sig.relaxed_margin == 0.2

    def test_save_default_roundtrip(self, temp_dir):
        from sheetsig.config import PipelineConfig, load_config, save_default_config

        path = os.path.join(temp_dir, "defaults.yaml")
        save_default_config(path)

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        assert set(data) == {"inspector", "alter", "ledger", "sig", "evaluator", "runtime", "tracing"}
        assert load_config(path) == PipelineConfig()
