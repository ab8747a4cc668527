"""
IBAN Utilities - Single Source of Truth
=======================================

Normalization, structural checks and ISO 7064 mod-97 checksum validation
for International Bank Account Numbers.

Every function here is pure: no I/O, no shared mutable state. Invalid input
is an expected outcome and is reported through IBANValidationResult, never
raised.

Author: IBAN OCR Team
Date: October 2026
"""

import re
import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


# =============================================================================
# IBAN CONSTANTS
# =============================================================================

class IBANConstants:
    """Immutable IBAN constants per ISO 13616 / ISO 7064."""

    MIN_LENGTH: int = 15
    MAX_LENGTH: int = 34

    # Expected total length per country code
    COUNTRY_LENGTHS: Mapping[str, int] = MappingProxyType({
        'AD': 24, 'AE': 23, 'AL': 28, 'AT': 20, 'AZ': 28, 'BA': 20, 'BE': 16, 'BG': 22,
        'BH': 22, 'BR': 29, 'BY': 28, 'CH': 21, 'CR': 22, 'CY': 28, 'CZ': 24, 'DE': 22,
        'DK': 18, 'DO': 28, 'EE': 20, 'EG': 29, 'ES': 24, 'FI': 18, 'FO': 18, 'FR': 27,
        'GB': 22, 'GE': 22, 'GI': 23, 'GL': 18, 'GR': 27, 'GT': 28, 'HR': 21, 'HU': 28,
        'IE': 22, 'IL': 23, 'IS': 26, 'IT': 27, 'JO': 30, 'KW': 30, 'KZ': 20, 'LB': 28,
        'LC': 32, 'LI': 21, 'LT': 20, 'LU': 20, 'LV': 21, 'MC': 27, 'MD': 24, 'ME': 22,
        'MK': 19, 'MR': 27, 'MT': 31, 'MU': 30, 'NL': 18, 'NO': 15, 'PK': 24, 'PL': 28,
        'PS': 29, 'PT': 25, 'QA': 29, 'RO': 24, 'RS': 22, 'SA': 24, 'SE': 24, 'SI': 19,
        'SK': 24, 'SM': 27, 'TN': 24, 'TR': 26, 'UA': 29, 'VA': 22, 'VG': 24, 'XK': 20,
    })

    # Characters OCR engines commonly conflate, digit first.
    # Blanket correction maps every other member to the digit; variation
    # search substitutes members for one another in the listed order.
    CONFUSION_GROUPS: Tuple[Tuple[str, ...], ...] = (
        ('0', 'O', 'Q', 'D'),
        ('1', 'I', 'L', '|'),
        ('5', 'S'),
        ('8', 'B'),
        ('6', 'G'),
        ('7', 'T'),
        ('2', 'Z'),
    )

    # Search bounds used by the extractor
    MAX_VARIATIONS: int = 15
    UNKNOWN_COUNTRY_MIN_LENGTH: int = 18
    UNKNOWN_COUNTRY_MAX_LENGTH: int = 31
    VARIATION_START_INDEX: int = 2


IBAN_MIN_LENGTH = IBANConstants.MIN_LENGTH
IBAN_COUNTRY_LENGTHS = IBANConstants.COUNTRY_LENGTHS
IBAN_CONFUSION_GROUPS = IBANConstants.CONFUSION_GROUPS

_NON_ALNUM_RE = re.compile(r'[^A-Z0-9]')
_COUNTRY_CODE_RE = re.compile(r'^[A-Z]{2}$')
_CHECK_DIGITS_RE = re.compile(r'^[0-9]{2}$')


# =============================================================================
# VALIDATION RESULT
# =============================================================================

class ValidationErrorKind(str, Enum):
    """Reasons an identifier is rejected, in the order they are checked."""
    TOO_SHORT = 'too_short'
    BAD_COUNTRY_CODE = 'bad_country_code'
    BAD_CHECK_DIGITS = 'bad_check_digits'
    WRONG_LENGTH_FOR_COUNTRY = 'wrong_length_for_country'
    CHECKSUM_FAILED = 'checksum_failed'


@dataclass(frozen=True)
class IBANValidationResult:
    """Result of IBAN validation."""
    iban: str
    is_valid: bool
    error_kind: Optional[ValidationErrorKind] = None
    detail: Optional[str] = None
    country_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'iban': self.iban,
            'is_valid': self.is_valid,
            'error_kind': self.error_kind.value if self.error_kind else None,
            'detail': self.detail,
            'country_code': self.country_code,
        }


# =============================================================================
# NORMALIZATION & DISPLAY
# =============================================================================

def clean_iban(raw: Any) -> str:
    """
    Normalize an IBAN-like string.

    Upper-cases the input and strips every character that is not A-Z or 0-9.
    Anything that is not a string normalizes to the empty string.

    Examples:
        >>> clean_iban("gb82 west-1234")
        'GB82WEST1234'
        >>> clean_iban(None)
        ''
    """
    if not isinstance(raw, str):
        return ''
    return _NON_ALNUM_RE.sub('', raw.upper())


def format_iban_for_display(raw: Any) -> str:
    """
    Group a cleaned IBAN into blocks of four characters.

    Examples:
        >>> format_iban_for_display("GB82WEST12345698765432")
        'GB82 WEST 1234 5698 7654 32'
    """
    cleaned = clean_iban(raw)
    return ' '.join(cleaned[i:i + 4] for i in range(0, len(cleaned), 4))


# =============================================================================
# CHECKSUM (ISO 7064 MOD 97-10)
# =============================================================================

def _mod97(chars: Iterable[str]) -> int:
    """
    Streaming mod-97 over digits and letters.

    Letters count as two-digit values (A=10 ... Z=35), so the running
    remainder is shifted by 100 instead of 10. The result equals reducing the
    fully expanded decimal numeral digit by digit, without building it.
    """
    remainder = 0
    for ch in chars:
        if '0' <= ch <= '9':
            remainder = (remainder * 10 + ord(ch) - 48) % 97
        else:
            remainder = (remainder * 100 + ord(ch) - 55) % 97
    return remainder


def iban_mod97(iban: str) -> int:
    """
    Compute the mod-97 remainder of an IBAN.

    The first four characters are moved to the end before the remainder is
    taken. A correct IBAN yields 1.

    Args:
        iban: IBAN string (normalized with clean_iban first)

    Returns:
        Remainder in range 0..96
    """
    cleaned = clean_iban(iban)
    return _mod97(cleaned[4:] + cleaned[:4])


def calculate_check_digits(country_code: str, bban: str) -> str:
    """
    Calculate the two IBAN check digits for a country code and BBAN.

    Args:
        country_code: Two-letter country code
        bban: Basic bank account number (alphanumeric)

    Returns:
        Check digits as a two-character string ('02'..'98')

    Raises:
        ValueError: If the country code is not two letters or the BBAN is empty
    """
    country_code = clean_iban(country_code)
    bban = clean_iban(bban)
    if not _COUNTRY_CODE_RE.match(country_code):
        raise ValueError(f"Country code must be two letters, got {country_code!r}")
    if not bban:
        raise ValueError("BBAN must not be empty")

    remainder = _mod97(bban + country_code + '00')
    return f"{98 - remainder:02d}"


# =============================================================================
# IBAN VALIDATION
# =============================================================================

def validate_iban(raw: Any) -> IBANValidationResult:
    """
    Comprehensive IBAN validation.

    Checks, in order:
    1. Length (at least 15 after normalization)
    2. Country code (two letters)
    3. Check digits (two digits)
    4. Length expected for a known country
    5. mod-97 checksum

    Args:
        raw: IBAN text, possibly with spaces or punctuation

    Returns:
        IBANValidationResult; the first failing check determines error_kind
    """
    iban = clean_iban(raw)
    country_code = iban[:2] if _COUNTRY_CODE_RE.match(iban[:2]) else None

    if len(iban) < IBAN_MIN_LENGTH:
        return IBANValidationResult(
            iban=iban,
            is_valid=False,
            error_kind=ValidationErrorKind.TOO_SHORT,
            detail=f"IBAN must be at least {IBAN_MIN_LENGTH} characters long",
            country_code=country_code,
        )

    if country_code is None:
        return IBANValidationResult(
            iban=iban,
            is_valid=False,
            error_kind=ValidationErrorKind.BAD_COUNTRY_CODE,
            detail="IBAN must start with a two-letter country code",
        )

    if not _CHECK_DIGITS_RE.match(iban[2:4]):
        return IBANValidationResult(
            iban=iban,
            is_valid=False,
            error_kind=ValidationErrorKind.BAD_CHECK_DIGITS,
            detail="Country code must be followed by two check digits",
            country_code=country_code,
        )

    expected_length = IBAN_COUNTRY_LENGTHS.get(country_code)
    if expected_length is not None and len(iban) != expected_length:
        return IBANValidationResult(
            iban=iban,
            is_valid=False,
            error_kind=ValidationErrorKind.WRONG_LENGTH_FOR_COUNTRY,
            detail=f"IBAN for {country_code} must be {expected_length} characters long",
            country_code=country_code,
        )

    if _mod97(iban[4:] + iban[:4]) != 1:
        return IBANValidationResult(
            iban=iban,
            is_valid=False,
            error_kind=ValidationErrorKind.CHECKSUM_FAILED,
            detail="IBAN does not pass the mod-97 checksum",
            country_code=country_code,
        )

    return IBANValidationResult(
        iban=iban,
        is_valid=True,
        detail=f"Valid IBAN from {country_code}",
        country_code=country_code,
    )


def is_valid_iban(raw: Any) -> bool:
    """Quick boolean check. Use validate_iban() for the failure reason."""
    return validate_iban(raw).is_valid
