"""
Tests for IBAN Image Preprocessing
==================================

Unit tests for the preprocessing strategies applied before OCR.
"""

import pytest
import numpy as np
from pathlib import Path
import sys

import cv2

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from iban_ocr.preprocessing import (
    IBANPreprocessor,
    PreprocessConfig,
    PreprocessStrategy,
    SHARPEN_KERNEL,
    preprocess_iban_image,
)


# =============================================================================
# TEST FIXTURES
# =============================================================================

@pytest.fixture
def sample_bgr_image():
    """Sample BGR image the size of a phone crop of an account card."""
    rng = np.random.default_rng(42)
    return rng.integers(60, 200, (200, 640, 3), dtype=np.uint8)


@pytest.fixture
def sample_gray_image():
    rng = np.random.default_rng(7)
    return rng.integers(60, 200, (200, 640), dtype=np.uint8)


@pytest.fixture
def flat_image():
    """Nearly uniform image (very low contrast)."""
    img = np.full((120, 400, 3), 128, dtype=np.uint8)
    img[50:70, 100:300] = 135
    return img


# =============================================================================
# CONFIG
# =============================================================================

class TestPreprocessConfig:
    """Tests for PreprocessConfig defaults."""

    def test_defaults(self):
        config = PreprocessConfig()
        assert config.strategy == PreprocessStrategy.DOCUMENT
        assert config.target_width == 1280
        assert config.binary_threshold == 128
        assert config.median_kernel_size == 3
        assert config.upscale is False

    def test_sharpen_kernel(self):
        assert SHARPEN_KERNEL.shape == (3, 3)
        assert SHARPEN_KERNEL.sum() == pytest.approx(1.0)

    def test_strategy_values(self):
        assert {s.value for s in PreprocessStrategy} == {
            'none', 'standard', 'document', 'low_contrast', 'adaptive'
        }


# =============================================================================
# STRATEGIES
# =============================================================================

class TestIBANPreprocessor:
    """Tests for IBANPreprocessor."""

    def test_none_returns_input(self, sample_bgr_image):
        preprocessor = IBANPreprocessor(strategy=PreprocessStrategy.NONE)
        assert preprocessor.process(sample_bgr_image) is sample_bgr_image

    def test_document_output_is_binary_bgr(self, sample_bgr_image):
        preprocessor = IBANPreprocessor(strategy=PreprocessStrategy.DOCUMENT)
        result = preprocessor.process(sample_bgr_image)

        assert result.shape == sample_bgr_image.shape
        assert set(np.unique(result)).issubset({0, 255})

    def test_document_accepts_grayscale(self, sample_gray_image):
        result = IBANPreprocessor(strategy="document").process(sample_gray_image)
        assert result.ndim == 3
        assert result.shape[:2] == sample_gray_image.shape

    def test_standard_output_shape(self, sample_bgr_image):
        result = IBANPreprocessor(strategy=PreprocessStrategy.STANDARD).process(sample_bgr_image)
        assert result.shape == sample_bgr_image.shape
        assert result.dtype == np.uint8

    def test_low_contrast_output_shape(self, flat_image):
        result = IBANPreprocessor(strategy=PreprocessStrategy.LOW_CONTRAST).process(flat_image)
        assert result.shape == flat_image.shape

    def test_adaptive_picks_low_contrast(self, flat_image):
        preprocessor = IBANPreprocessor(strategy=PreprocessStrategy.ADAPTIVE)
        expected = IBANPreprocessor(strategy=PreprocessStrategy.LOW_CONTRAST).process(flat_image)
        np.testing.assert_array_equal(preprocessor.process(flat_image), expected)

    def test_strategy_override_per_call(self, sample_bgr_image):
        preprocessor = IBANPreprocessor(strategy=PreprocessStrategy.DOCUMENT)
        assert preprocessor.process(sample_bgr_image, strategy=PreprocessStrategy.NONE) is sample_bgr_image

    def test_wide_image_is_downscaled(self):
        wide = np.full((500, 2560, 3), 200, dtype=np.uint8)
        result = IBANPreprocessor(strategy=PreprocessStrategy.STANDARD).process(wide)
        assert result.shape[1] == 1280
        assert result.shape[0] == 250

    def test_narrow_image_not_upscaled(self, sample_bgr_image):
        result = IBANPreprocessor(strategy=PreprocessStrategy.STANDARD).process(sample_bgr_image)
        assert result.shape[1] == 640

    def test_upscale_enabled(self, sample_bgr_image):
        config = PreprocessConfig(strategy=PreprocessStrategy.STANDARD, upscale=True)
        result = IBANPreprocessor(config=config).process(sample_bgr_image)
        assert result.shape[1] == 1280

    def test_none_image_raises(self):
        with pytest.raises(ValueError):
            IBANPreprocessor().process(None)

    def test_empty_image_raises(self):
        with pytest.raises(ValueError):
            IBANPreprocessor().process(np.array([], dtype=np.uint8))

    def test_process_batch(self, sample_bgr_image, sample_gray_image):
        results = IBANPreprocessor().process_batch([sample_bgr_image, sample_gray_image])
        assert len(results) == 2
        assert all(r.ndim == 3 for r in results)


class TestAnalyzeImage:
    """Tests for image analysis."""

    def test_keys(self, sample_bgr_image):
        analysis = IBANPreprocessor().analyze_image(sample_bgr_image)
        assert analysis['width'] == 640
        assert analysis['height'] == 200
        assert analysis['channels'] == 3
        for key in ('contrast', 'brightness', 'dynamic_range', 'suggested_strategy'):
            assert key in analysis

    def test_low_contrast_suggestion(self, flat_image):
        analysis = IBANPreprocessor().analyze_image(flat_image)
        assert analysis['suggested_strategy'] == 'low_contrast'

    def test_high_contrast_suggestion(self):
        checker = np.zeros((100, 100), dtype=np.uint8)
        checker[::2] = 255
        assert IBANPreprocessor().analyze_image(checker)['suggested_strategy'] == 'standard'
        assert IBANPreprocessor().analyze_image(checker)['channels'] == 1


class TestPreprocessIBANImage:
    """Tests for the preprocess_iban_image convenience function."""

    def test_from_path(self, tmp_path, sample_bgr_image):
        path = tmp_path / "card.png"
        cv2.imwrite(str(path), sample_bgr_image)
        result = preprocess_iban_image(path)
        assert result.shape == sample_bgr_image.shape

    def test_unreadable_path(self, tmp_path):
        with pytest.raises(ValueError):
            preprocess_iban_image(tmp_path / "missing.png")
