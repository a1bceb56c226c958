"""
Configuration management for sheetsig.

Loads YAML configuration with sensible defaults for every processing step.
Distances are interline fractions unless stated otherwise; doubts are
classifier distances (lower is better).
"""

import os
from dataclasses import asdict, dataclass, field, fields

import yaml


@dataclass
class InspectorConfig:
    """Configuration for glyph inspection and compound building."""
    box_widen: float = 0.15  # box widening to look for compound neighbors
    symbol_max_doubt: float = 1.0001
    min_compound_part_doubt: float = 1.020


@dataclass
class AlterConfig:
    """Configuration for alteration sign verification on close stems."""
    max_close_stem_dx: float = 0.7
    min_close_stem_overlap: float = 0.5
    max_close_stem_length: float = 3.0
    max_natural_overlap: float = 1.0
    max_sharp_non_overlap: float = 1.0
    alter_max_doubt: float = 3.0


@dataclass
class LedgerConfig:
    """Configuration for ledger retrieval."""
    convexity_low: float = -0.5  # minimum number of convex ends
    max_thickness_high: float = 3.0  # line thickness fraction
    max_thickness_low: float = 1.0  # line thickness fraction
    max_thickness_high2: float = 0.3
    min_thickness_high: float = 0.25
    max_coord_gap: float = 0.0
    max_pos_gap: float = 0.3
    ledger_margin_y: float = 0.35
    min_ledger_length_high: float = 1.5
    min_ledger_length_low: float = 1.0
    max_distance_high: float = 0.3
    max_short_length: float = 2.0
    short_min_grade: float = 0.5
    long_min_grade: float = 0.5


@dataclass
class SigConfig:
    """Configuration for interpretation graphs."""
    good_grade: float = 0.5
    relaxed_margin: float = 0.1  # grade gap needed to remove in relaxed mode


@dataclass
class EvaluatorConfig:
    """Configuration for the shape evaluator."""
    votes_path: str = None  # YAML file of recorded votes


@dataclass
class RuntimeConfig:
    """Configuration for sheet processing."""
    max_workers: int = 4


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class PipelineConfig:
    """Complete configuration."""
    inspector: InspectorConfig = field(default_factory=InspectorConfig)
    alter: AlterConfig = field(default_factory=AlterConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    sig: SigConfig = field(default_factory=SigConfig)
    evaluator: EvaluatorConfig = field(default_factory=EvaluatorConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)


def load_config(config_path=None):
    """
    Load configuration from YAML file.

    Falls back to defaults for any missing values.
    """
    config = PipelineConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_config(config, yaml_data):
    """Merge YAML data into config dataclass, ignoring unknown keys."""
    for section in fields(config):
        values = yaml_data.get(section.name)
        if not isinstance(values, dict):
            continue

        target = getattr(config, section.name)
        for key, value in values.items():
            if hasattr(target, key):
                setattr(target, key, value)

    return config


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    yaml_data = asdict(PipelineConfig())

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
