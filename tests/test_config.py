"""Tests for YAML configuration and logging setup."""

import logging

import pytest

from dendroclim.utils.config import ConfigLoader, PROJECT_ROOT
from dendroclim.utils.logging_config import (
    PACKAGE_LOGGER,
    configure_logging,
    get_logger,
    log_section,
    setup_logging
)


def test_dot_notation(config):
    assert config.get('crossdating.seg_length') == 50
    assert config.get('releases.minor_threshold') == 0.25
    assert config.get('climate.seasons') == {'JJA': [6, 7, 8]}
    assert config.get('crossdating.missing', default='fallback') == 'fallback'
    assert config.get('releases.buffer.deeper') is None


def test_paths(config, tmp_path):
    assert config.get_path('data.output_path') == tmp_path / 'output'
    assert config.base_path == tmp_path.resolve()
    assert config.get_path('data.unknown', 'data/output') == tmp_path.resolve() / 'data' / 'output'

    with pytest.raises(ValueError):
        config.get_path('data.unknown')


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigLoader(str(tmp_path / 'absent.yaml'))


def test_empty_config_file(tmp_path):
    path = tmp_path / 'empty.yaml'
    path.write_text('')
    assert ConfigLoader(str(path)).get('anything', 1) == 1


def test_set_overrides_in_memory(study_dir):
    config = ConfigLoader(str(study_dir))
    config.set('filtering.min_correlation', 0.5)
    config.set('results.index_variable', 'JJA')
    config.set('new_section.value', 3)

    assert config.get('filtering.min_correlation') == 0.5
    assert config.get('filtering.drop_undefined') is True
    assert config.get('results.index_variable') == 'JJA'
    assert config.get('new_section.value') == 3

    config.reload()
    assert config.get('filtering.min_correlation') == 0.3


def test_reload(study_dir):
    config = ConfigLoader(str(study_dir))
    study_dir.write_text('crossdating:\n  seg_length: 40\n')
    config.reload()
    assert config.get('crossdating.seg_length') == 40


def test_shipped_config_is_complete():
    config = ConfigLoader(str(PROJECT_ROOT / 'config' / 'config.yaml'))

    for section in ['data', 'correlation', 'filtering', 'crossdating', 'detrending',
                    'chronology', 'climate', 'releases', 'pointer_years', 'logging']:
        assert config.get(section), section
    assert config.get('releases.backward_window') == 10
    assert config.get('crossdating.pcrit') == 0.05


def test_module_loggers_share_package_handlers(tmp_path):
    log_file = tmp_path / 'logs' / 'run.log'
    logger = setup_logging(log_level='INFO', log_file=str(log_file), log_to_console=False)

    assert logger.name == PACKAGE_LOGGER
    get_logger('dendroclim.analysis.releases').info('release check')

    for handler in logger.handlers:
        handler.flush()
    assert 'release check' in log_file.read_text()

    logger.handlers = []
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.WARNING)


def test_console_only_logging():
    logger = setup_logging(log_level='DEBUG')

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    logger.handlers = []


def test_relative_paths_belong_to_the_study(tmp_path):
    study = tmp_path / 'study'
    (study / 'config').mkdir(parents=True)
    (study / 'config' / 'config.yaml').write_text('data:\n  raw_path: data/raw\n')
    (tmp_path / 'loose.yaml').write_text('data:\n  raw_path: raw\n')

    nested = ConfigLoader(str(study / 'config' / 'config.yaml'))
    loose = ConfigLoader(str(tmp_path / 'loose.yaml'))

    assert nested.get_path('data.raw_path') == study.resolve() / 'data' / 'raw'
    assert loose.get_path('data.raw_path') == tmp_path.resolve() / 'raw'
    assert ConfigLoader(str(PROJECT_ROOT / 'config' / 'config.yaml')).base_path == PROJECT_ROOT.resolve()


def test_constructor_overrides_survive_reload(study_dir):
    config = ConfigLoader(str(study_dir), overrides={'crossdating.seg_length': 40, 'filtering.min_correlation': None})

    assert config.get('crossdating.seg_length') == 40
    assert config.get('filtering.min_correlation') == 0.3

    config.reload()
    assert config.get('crossdating.seg_length') == 40


def test_logging_from_study_config(config, tmp_path, caplog):
    logger = configure_logging(config)
    assert [type(h) for h in logger.handlers] == [logging.FileHandler]

    with caplog.at_level(logging.INFO, logger=PACKAGE_LOGGER):
        log_section(get_logger('dendroclim.pipeline'), "CHRONOLOGY", "Started: now")

    assert [r.getMessage() for r in caplog.records] == ['=' * 60, 'CHRONOLOGY', 'Started: now', '=' * 60]

    logger.handlers = []
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.WARNING)
