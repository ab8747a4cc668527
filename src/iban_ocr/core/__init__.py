"""
IBAN OCR Core Module
====================

Core IBAN constants, validation and extraction logic.
Single Source of Truth for all IBAN-related functionality.
"""

from .iban_utils import (
    # Constants
    IBANConstants,
    IBAN_MIN_LENGTH,
    IBAN_COUNTRY_LENGTHS,
    IBAN_CONFUSION_GROUPS,
    # Validation
    ValidationErrorKind,
    IBANValidationResult,
    clean_iban,
    validate_iban,
    is_valid_iban,
    format_iban_for_display,
    # Checksum
    iban_mod97,
    calculate_check_digits,
)
from .extraction import (
    CANDIDATE_PATTERN,
    ExtractionResult,
    IBANExtractor,
    confusion_group,
    blanket_correct,
    normalize_ocr_text,
    find_candidates,
    generate_variations,
    extract_iban_from_text,
    get_extractor,
)

__all__ = [
    # Constants
    "IBANConstants",
    "IBAN_MIN_LENGTH",
    "IBAN_COUNTRY_LENGTHS",
    "IBAN_CONFUSION_GROUPS",
    # Validation
    "ValidationErrorKind",
    "IBANValidationResult",
    "clean_iban",
    "validate_iban",
    "is_valid_iban",
    "format_iban_for_display",
    # Checksum
    "iban_mod97",
    "calculate_check_digits",
    # Extraction
    "CANDIDATE_PATTERN",
    "ExtractionResult",
    "IBANExtractor",
    "confusion_group",
    "blanket_correct",
    "normalize_ocr_text",
    "find_candidates",
    "generate_variations",
    "extract_iban_from_text",
    "get_extractor",
]
