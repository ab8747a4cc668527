"""
IBAN OCR Providers Module
=========================

OCR provider abstraction layer for multiple backends.

Supported providers:
- PaddleOCR
- Tesseract (pytesseract)

Usage:
    from iban_ocr.providers import OCRProviderFactory, PreprocessStrategy

    provider = OCRProviderFactory.create("paddleocr")
    result = provider.recognize(image_path)
    print(result.text, result.confidence)
"""

from .ocr_providers import (
    OCRProviderType,
    OCRResult,
    OCRProvider,
    OCRProviderError,
    PaddleOCRProvider,
    TesseractOCRProvider,
    OCRProviderFactory,
    PaddleOCRConfig,
    TesseractOCRConfig,
    ProviderConfig,
    get_default_provider,
    recognize_text,
)

# Re-export preprocessing components for convenience
from ..preprocessing import (
    PreprocessStrategy,
    PreprocessConfig,
    IBANPreprocessor,
)

__all__ = [
    # Providers
    "OCRProviderType",
    "OCRResult",
    "OCRProvider",
    "OCRProviderError",
    "PaddleOCRProvider",
    "TesseractOCRProvider",
    "OCRProviderFactory",
    "get_default_provider",
    "recognize_text",
    # Configs
    "PaddleOCRConfig",
    "TesseractOCRConfig",
    "ProviderConfig",
    # Preprocessing
    "PreprocessStrategy",
    "PreprocessConfig",
    "IBANPreprocessor",
]
