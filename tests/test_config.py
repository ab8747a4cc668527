"""
Tests for Pipeline Configuration
================================

Environment overrides, the global singleton and JSON/YAML persistence.
"""

import json
import logging
import pytest
from pathlib import Path
import sys

import yaml

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from iban_ocr import config as config_module
from iban_ocr.config import (
    PipelineConfig,
    PreprocessingConfig,
    OCRConfig,
    StorageConfig,
    get_config,
    reset_config,
    set_config,
)


ENV_KEYS = (
    'IBAN_PREPROCESS_STRATEGY', 'IBAN_TARGET_WIDTH', 'IBAN_GAMMA', 'IBAN_OCR_PROVIDER',
    'IBAN_TESSERACT_LANG', 'IBAN_USE_GPU', 'IBAN_RECORDS_PATH', 'IBAN_LOG_LEVEL', 'IBAN_LOG_FILE',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


class TestDefaults:
    """Tests for default configuration values."""

    def test_preprocessing_defaults(self):
        config = PreprocessingConfig()
        assert config.default_strategy == 'document'
        assert config.target_width == 1280
        assert config.gamma == 1.2
        assert config.binary_threshold == 128
        assert config.clahe_tile_size == (8, 8)

    def test_ocr_defaults(self):
        config = OCRConfig()
        assert config.provider == 'paddleocr'
        assert config.tesseract_lang == 'eng'
        assert config.use_gpu is False

    def test_records_path_in_home(self):
        assert StorageConfig().records_path == str(Path.home() / '.iban_ocr' / 'records.json')


class TestEnvironmentOverrides:
    """Tests for IBAN_* environment variables."""

    def test_string_and_int_overrides(self, monkeypatch):
        monkeypatch.setenv('IBAN_OCR_PROVIDER', 'tesseract')
        monkeypatch.setenv('IBAN_TARGET_WIDTH', '960')
        monkeypatch.setenv('IBAN_RECORDS_PATH', '/data/records.json')

        config = PipelineConfig()

        assert config.ocr.provider == 'tesseract'
        assert config.preprocessing.target_width == 960
        assert config.storage.records_path == '/data/records.json'

    @pytest.mark.parametrize("value,expected", [("true", True), ("1", True), ("yes", True), ("off", False)])
    def test_bool_override(self, monkeypatch, value, expected):
        monkeypatch.setenv('IBAN_USE_GPU', value)
        assert OCRConfig().use_gpu is expected

    def test_invalid_number_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv('IBAN_GAMMA', 'bright')
        with caplog.at_level(logging.WARNING):
            assert PreprocessingConfig().gamma == 1.2
        assert "IBAN_GAMMA" in caplog.text


class TestGlobalConfig:
    """Tests for the configuration singleton."""

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reset_config(self):
        first = get_config()
        reset_config()
        assert get_config() is not first

    def test_set_config(self):
        custom = PipelineConfig()
        custom.ocr.provider = 'tesseract'
        set_config(custom)
        assert get_config() is custom
        assert config_module._config is custom


class TestPersistence:
    """Tests for save/load in JSON and YAML."""

    def test_json_round_trip(self, tmp_path):
        config = PipelineConfig()
        config.ocr.provider = 'tesseract'
        config.preprocessing.binary_threshold = 140
        path = tmp_path / "config.json"

        config.save(path)
        loaded = PipelineConfig.load(path)

        assert json.loads(path.read_text())['ocr']['provider'] == 'tesseract'
        assert loaded.ocr.provider == 'tesseract'
        assert loaded.preprocessing.binary_threshold == 140
        assert loaded.preprocessing.clahe_tile_size == (8, 8)

    def test_yaml_round_trip(self, tmp_path):
        config = PipelineConfig()
        config.storage.records_path = str(tmp_path / "r.json")
        path = tmp_path / "config.yaml"

        config.save(path)
        loaded = PipelineConfig.load(path)

        assert yaml.safe_load(path.read_text())['preprocessing']['clahe_tile_size'] == [8, 8]
        assert loaded.storage.records_path == str(tmp_path / "r.json")
        assert loaded.preprocessing.clahe_tile_size == (8, 8)

    def test_partial_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("ocr:\n  provider: tesseract\n  tesseract_lang: deu\n")

        loaded = PipelineConfig.load(path)

        assert loaded.ocr.tesseract_lang == 'deu'
        assert loaded.preprocessing.default_strategy == 'document'

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert PipelineConfig.load(path).ocr.provider == 'paddleocr'

    def test_empty_section_keeps_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("ocr:\nstorage:\n  records_path: x.json\n")

        loaded = PipelineConfig.load(path)

        assert loaded.ocr.provider == 'paddleocr'
        assert loaded.storage.records_path == 'x.json'

    @pytest.mark.parametrize("content", ["just a string\n", "- ocr\n- storage\n"])
    def test_non_mapping_file(self, tmp_path, content):
        path = tmp_path / "config.yaml"
        path.write_text(content)
        with pytest.raises(ValueError, match="must contain a mapping"):
            PipelineConfig.load(path)

    def test_non_mapping_section(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"ocr": "tesseract"}))
        with pytest.raises(ValueError, match="section 'ocr' must be a mapping"):
            PipelineConfig.load(path)

    def test_unknown_key_warns(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"ocr": {"engine_speed": 11}}))
        with caplog.at_level(logging.WARNING):
            loaded = PipelineConfig.load(path)
        assert not hasattr(loaded.ocr, 'engine_speed')
        assert "ocr.engine_speed" in caplog.text
