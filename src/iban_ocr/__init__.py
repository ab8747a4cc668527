"""
IBAN OCR
========

Extracts International Bank Account Numbers from noisy OCR output and
validates them with the ISO 13616 mod-97 checksum.

Package Structure:
    iban_ocr/
    ├── core/           # IBAN constants, validation, extraction
    ├── preprocessing/  # Image preprocessing before OCR
    ├── providers/      # OCR backends (PaddleOCR, Tesseract)
    ├── pipeline/       # Image/text -> IBAN scan pipeline
    ├── storage/        # Local record store and CSV export
    ├── config.py       # Settings with environment overrides
    └── cli.py          # iban-ocr command line

Quick Start:
    # Validation
    from iban_ocr import validate_iban
    result = validate_iban("GB82 WEST 1234 5698 7654 32")
    print(result.is_valid)

    # Extraction from OCR text
    from iban_ocr import extract_iban_from_text
    print(extract_iban_from_text("IBAN: DE89 3704 0044 0532 0130 00"))

    # Scanning an image
    from iban_ocr import IBANScanPipeline
    result = IBANScanPipeline(provider="tesseract").scan("statement.jpg")

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "IBAN OCR Team"

# Core exports (lightweight, always available)
from .core import (
    IBANConstants,
    IBAN_MIN_LENGTH,
    IBAN_COUNTRY_LENGTHS,
    ValidationErrorKind,
    IBANValidationResult,
    clean_iban,
    validate_iban,
    is_valid_iban,
    format_iban_for_display,
    calculate_check_digits,
    IBANExtractor,
    extract_iban_from_text,
)

__all__ = [
    "__version__",
    "__author__",
    # Core
    "IBANConstants",
    "IBAN_MIN_LENGTH",
    "IBAN_COUNTRY_LENGTHS",
    "ValidationErrorKind",
    "IBANValidationResult",
    "clean_iban",
    "validate_iban",
    "is_valid_iban",
    "format_iban_for_display",
    "calculate_check_digits",
    "IBANExtractor",
    "extract_iban_from_text",
    # Lazy
    "IBANScanPipeline",
    "OCRProviderFactory",
    "RecordStore",
]


# Lazy imports for image scanning (heavier dependencies)
def __getattr__(name: str):
    """Lazy import for pipeline, provider and storage modules."""
    if name == "IBANScanPipeline":
        from .pipeline import IBANScanPipeline
        return IBANScanPipeline
    elif name == "OCRProviderFactory":
        from .providers import OCRProviderFactory
        return OCRProviderFactory
    elif name == "RecordStore":
        from .storage import RecordStore
        return RecordStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
