"""
Tests for OCR Providers Module
==============================

Unit tests for the OCR provider abstraction layer. OCR engines are mocked,
so neither PaddleOCR nor Tesseract needs to be installed.
"""

import pytest
import numpy as np
from unittest.mock import Mock, patch
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from iban_ocr.config import reset_config
from iban_ocr.providers import (
    OCRProviderType,
    OCRResult,
    ProviderConfig,
    PaddleOCRConfig,
    TesseractOCRConfig,
    OCRProvider,
    PaddleOCRProvider,
    TesseractOCRProvider,
    OCRProviderFactory,
    OCRProviderError,
    PreprocessStrategy,
    recognize_text,
)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    for key in ('IBAN_OCR_PROVIDER', 'IBAN_PREPROCESS_STRATEGY', 'IBAN_TESSERACT_LANG', 'IBAN_USE_GPU'):
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def sample_image():
    return np.full((120, 480, 3), 255, dtype=np.uint8)


@pytest.fixture
def paddle_result():
    """PaddleOCR 3.x predict() output for a two-line crop."""
    return [{
        'rec_texts': ['IBAN', 'GB82 WEST 1234 5698 7654 32'],
        'rec_scores': [0.9, 0.7],
        'dt_polys': [np.array([[0, 0], [10, 0], [10, 5], [0, 5]]), np.array([[0, 6], [90, 6], [90, 12], [0, 12]])],
    }]


@pytest.fixture
def tesseract_data():
    """pytesseract image_to_data(output_type=DICT) output."""
    return {
        'text': ['', 'IBAN:', 'GB82', 'WEST', '1234', 'NWBK'],
        'conf': ['-1', '90', '80', '70', '60', '50'],
        'block_num': [0, 1, 1, 1, 1, 2],
        'par_num': [0, 1, 1, 1, 1, 1],
        'line_num': [0, 1, 2, 2, 2, 1],
    }


# =============================================================================
# OCRResult Tests
# =============================================================================

class TestOCRResult:
    """Tests for OCRResult dataclass."""

    def test_basic_creation(self):
        result = OCRResult(text="GB82 WEST", confidence=0.95, provider="TestProvider")
        assert result.text == "GB82 WEST"
        assert result.confidence == 0.95
        assert result.provider == "TestProvider"

    def test_default_values(self):
        result = OCRResult(text="", confidence=0.0)
        assert result.bounding_boxes == []
        assert result.metadata == {}
        assert result.provider == ""
        assert result.raw_response is None

    def test_to_dict_omits_raw_response(self):
        result = OCRResult(text="x", confidence=0.5, raw_response=object(), metadata={"k": "v"})
        d = result.to_dict()
        assert "raw_response" not in d
        assert d["metadata"] == {"k": "v"}


# =============================================================================
# Config Tests
# =============================================================================

class TestProviderConfigs:
    """Tests for provider configuration dataclasses."""

    def test_base_defaults(self):
        config = ProviderConfig()
        assert config.preprocess_enabled is True
        assert config.preprocess_strategy == PreprocessStrategy.DOCUMENT

    def test_paddle_defaults(self):
        config = PaddleOCRConfig()
        assert config.lang == "en"
        assert config.use_gpu is False
        assert config.det_db_box_thresh == 0.3

    def test_tesseract_defaults(self):
        config = TesseractOCRConfig()
        assert config.lang == "eng"
        assert config.psm == 6
        assert config.oem == 1


class TestOCRProviderError:
    def test_message_includes_provider(self):
        error = OCRProviderError("boom", provider="Tesseract", details={"code": 1})
        assert str(error) == "[Tesseract] boom"
        assert error.details == {"code": 1}


# =============================================================================
# PaddleOCR Tests
# =============================================================================

class TestPaddleOCRProvider:
    """Tests for PaddleOCRProvider with a mocked engine."""

    def test_name(self):
        assert PaddleOCRProvider().name == "PaddleOCR"

    def test_not_available_without_package(self):
        with patch.dict(sys.modules, {'paddleocr': None}):
            assert PaddleOCRProvider().is_available is False

    def test_initialize_without_package_raises(self):
        with patch.dict(sys.modules, {'paddleocr': None}):
            with pytest.raises(OCRProviderError):
                PaddleOCRProvider().initialize()

    def test_parse_result_joins_lines(self, paddle_result):
        text, confidence, boxes = PaddleOCRProvider()._parse_result(paddle_result)
        assert text == "IBAN\nGB82 WEST 1234 5698 7654 32"
        assert confidence == pytest.approx(0.8)
        assert len(boxes) == 2
        assert boxes[1]["text"] == "GB82 WEST 1234 5698 7654 32"

    def test_parse_empty_result(self):
        assert PaddleOCRProvider()._parse_result([]) == ("", 0.0, [])
        assert PaddleOCRProvider()._parse_result([{'rec_texts': []}]) == ("", 0.0, [])

    def test_recognize(self, sample_image, paddle_result):
        provider = PaddleOCRProvider(PaddleOCRConfig(preprocess_enabled=False))
        provider._ocr = Mock()
        provider._ocr.predict.return_value = paddle_result
        provider._initialized = True

        result = provider.recognize(sample_image)

        assert result.text.endswith("7654 32")
        assert result.provider == "PaddleOCR"
        provider._ocr.predict.assert_called_once()
        np.testing.assert_array_equal(provider._ocr.predict.call_args[0][0], sample_image)

    def test_recognize_preprocesses(self, sample_image, paddle_result):
        provider = PaddleOCRProvider()
        provider._ocr = Mock()
        provider._ocr.predict.return_value = paddle_result
        provider._initialized = True

        with patch.object(provider._preprocessor, 'process', return_value=sample_image) as process:
            provider.recognize(sample_image, preprocess_strategy=PreprocessStrategy.STANDARD)

        process.assert_called_once()
        assert process.call_args[1]['strategy'] == PreprocessStrategy.STANDARD

    def test_engine_failure_wrapped(self, sample_image):
        provider = PaddleOCRProvider(PaddleOCRConfig(preprocess_enabled=False))
        provider._ocr = Mock()
        provider._ocr.predict.side_effect = RuntimeError("device lost")
        provider._initialized = True

        with pytest.raises(OCRProviderError, match="device lost"):
            provider.recognize(sample_image)


# =============================================================================
# Tesseract Tests
# =============================================================================

class TestTesseractOCRProvider:
    """Tests for TesseractOCRProvider with a mocked pytesseract module."""

    def test_name(self):
        assert TesseractOCRProvider().name == "Tesseract"

    def test_parse_data_groups_lines(self, tesseract_data):
        text, confidence = TesseractOCRProvider()._parse_data(tesseract_data)
        assert text == "IBAN:\nGB82 WEST 1234\nNWBK"
        assert confidence == pytest.approx(0.7)

    def test_parse_empty_data(self):
        assert TesseractOCRProvider()._parse_data({'text': []}) == ("", 0.0)

    def test_recognize(self, sample_image, tesseract_data):
        provider = TesseractOCRProvider(TesseractOCRConfig(preprocess_enabled=False, psm=7))
        provider._tesseract = Mock()
        provider._tesseract.image_to_data.return_value = tesseract_data
        provider._initialized = True

        result = provider.recognize(sample_image)

        assert result.text.splitlines()[1] == "GB82 WEST 1234"
        assert result.metadata == {"lang": "eng", "psm": 7}
        kwargs = provider._tesseract.image_to_data.call_args[1]
        assert kwargs["lang"] == "eng"
        assert kwargs["config"] == "--oem 1 --psm 7"

    def test_not_available_without_package(self):
        with patch.dict(sys.modules, {'pytesseract': None}):
            assert TesseractOCRProvider().is_available is False


# =============================================================================
# Base Class Tests
# =============================================================================

class TestOCRProviderBase:
    """Tests for behaviour shared through the OCRProvider base class."""

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            TesseractOCRProvider()._load_image(tmp_path / "missing.png")

    def test_load_undecodable_file(self, tmp_path):
        path = tmp_path / "bad.png"
        path.write_bytes(b"not an image")
        with pytest.raises(ValueError, match="Failed to load"):
            TesseractOCRProvider()._load_image(path)

    def test_recognize_batch(self, sample_image):
        provider = TesseractOCRProvider()
        provider.recognize = Mock(return_value=OCRResult(text="x", confidence=1.0))
        results = provider.recognize_batch([sample_image, sample_image])
        assert len(results) == 2

    def test_preprocessing_disabled(self):
        assert TesseractOCRProvider(TesseractOCRConfig(preprocess_enabled=False))._preprocessor is None


# =============================================================================
# Factory Tests
# =============================================================================

class TestOCRProviderFactory:
    """Tests for OCRProviderFactory."""

    def test_list_available(self):
        available = OCRProviderFactory.list_available()
        assert "paddleocr" in available
        assert "tesseract" in available

    def test_create_by_name(self):
        provider = OCRProviderFactory.create("TESSERACT", auto_initialize=False)
        assert isinstance(provider, TesseractOCRProvider)
        assert provider.config.lang == "eng"

    def test_create_by_enum(self):
        provider = OCRProviderFactory.create(OCRProviderType.PADDLEOCR, auto_initialize=False)
        assert isinstance(provider, PaddleOCRProvider)

    def test_create_with_options(self):
        provider = OCRProviderFactory.create(
            "tesseract", auto_initialize=False, lang="deu", preprocess_strategy="none"
        )
        assert provider.config.lang == "deu"
        assert provider.config.preprocess_strategy == PreprocessStrategy.NONE

    def test_create_uses_env_config(self, monkeypatch):
        monkeypatch.setenv('IBAN_TESSERACT_LANG', 'fra')
        reset_config()
        provider = OCRProviderFactory.create("tesseract", auto_initialize=False)
        assert provider.config.lang == "fra"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider type"):
            OCRProviderFactory.create("easyocr")

    def test_register_rejects_non_provider(self):
        with pytest.raises(TypeError):
            OCRProviderFactory.register(OCRProviderType.TESSERACT, dict)

    def test_register_provider(self):
        class FakeProvider(TesseractOCRProvider):
            pass

        original = OCRProviderFactory._providers[OCRProviderType.TESSERACT]
        try:
            OCRProviderFactory.register(OCRProviderType.TESSERACT, FakeProvider)
            provider = OCRProviderFactory.create("tesseract", auto_initialize=False)
            assert isinstance(provider, FakeProvider)
        finally:
            OCRProviderFactory._providers[OCRProviderType.TESSERACT] = original


class TestRecognizeText:
    def test_with_provider_instance(self, sample_image):
        provider = Mock(spec=OCRProvider)
        provider.recognize.return_value = OCRResult(text="GB82", confidence=0.5)

        result = recognize_text(sample_image, provider=provider)

        assert result.text == "GB82"
        provider.recognize.assert_called_once_with(sample_image)
