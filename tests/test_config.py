import logging

import pytest

from aisle_nav.config import AdvancePolicy, EngineConfig, load_config
from aisle_nav.errors import ConfigError
from aisle_nav.logging_setup import PACKAGE_LOGGER, setup_logging


def test_sample_config_loads(configs_dir):
    config = load_config(configs_dir / "store.yaml")

    assert config.grid.width == 18
    assert config.grid.height == 24
    assert config.layout.aisle_xs() == [2, 6, 10, 14]
    assert config.layout.entrance == (9, 23)
    assert config.navigation.advance_policy == AdvancePolicy.ARRIVAL
    assert config.suggestions.affinities['bread'] == ['jam', 'butter', 'cheese', 'milk']
    assert config.seed == 42
    assert config.catalog_path.exists()


def test_missing_sections_use_defaults(tmp_path):
    path = tmp_path / "minimal.yaml"
    path.write_text("navigation:\n  advance_policy: interval\n")

    config = load_config(path)

    defaults = EngineConfig()
    assert config.navigation.advance_policy == AdvancePolicy.INTERVAL
    assert config.layout == defaults.layout
    assert config.movement == defaults.movement
    assert config.catalog_path is None
    assert config.movement.dt == pytest.approx(1 / 60)


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == EngineConfig()


def test_unknown_advance_policy(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("navigation:\n  advance_policy: sideways\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_bad_entrance(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("layout:\n  entrance: [9]\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_relative_catalog_resolves_against_config(tmp_path):
    (tmp_path / "data").mkdir()
    path = tmp_path / "store.yaml"
    path.write_text("catalog: data/products.yaml\n")

    config = load_config(path)
    assert config.catalog_path == (tmp_path / "data" / "products.yaml").resolve()


def test_setup_logging_is_idempotent():
    logger = setup_logging(logging.DEBUG)
    handlers = list(logger.handlers)
    again = setup_logging("INFO")

    assert logger is again
    assert logger.name == PACKAGE_LOGGER
    assert again.handlers == handlers
    assert again.level == logging.INFO


def test_log_level_is_normalized_and_validated(tmp_path):
    path = tmp_path / "levels.yaml"
    path.write_text("log_level: warning\n")
    assert load_config(path).log_level == "WARNING"

    path.write_text("log_level: chatty\n")
    with pytest.raises(ConfigError):
        load_config(path)
