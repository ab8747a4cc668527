"""
IBAN Extraction from OCR Text
=============================

Finds IBAN-shaped substrings in noisy OCR output and recovers the real
identifier despite whitespace inside it and visually confusable glyphs
(0/O/Q/D, 1/I/L/|, 5/S, 8/B, 6/G, 7/T, 2/Z).

Search order:
1. Cleaned text (whitespace removed, upper-cased), then a blanket-corrected
   copy where every confusable letter is replaced by its digit.
2. Regex matches in each text, left to right.
3. Per match: the country-length candidate followed by its single-position
   variations (at most 15 candidates in all), or prefix lengths 18-31 for
   unknown countries.

The first candidate the validator accepts wins. Failing to find one is a
normal outcome and returns None.

Author: IBAN OCR Team
Date: October 2026
"""

import re
import logging
from typing import Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from .iban_utils import (
    IBANConstants,
    IBANValidationResult,
    validate_iban,
)

logger = logging.getLogger(__name__)

# Two letters, two digits, then 4-30 alphanumerics
CANDIDATE_PATTERN = re.compile(r'[A-Z]{2}[0-9]{2}[A-Z0-9]{4,30}')

_WHITESPACE_RE = re.compile(r'\s+')

Validator = Callable[[str], IBANValidationResult]


# =============================================================================
# CONFUSION TABLE
# =============================================================================

def _build_group_index(groups: Tuple[Tuple[str, ...], ...]) -> Dict[str, Tuple[str, ...]]:
    index: Dict[str, Tuple[str, ...]] = {}
    for group in groups:
        for char in group:
            # First group listing a character wins
            index.setdefault(char, group)
    return index


_GROUP_INDEX = _build_group_index(IBANConstants.CONFUSION_GROUPS)

# Every non-digit member maps to the digit that heads its group
_BLANKET_RULES: Dict[str, str] = {
    char: group[0]
    for group in IBANConstants.CONFUSION_GROUPS
    for char in group[1:]
}


def confusion_group(char: str) -> Optional[Tuple[str, ...]]:
    """Return the confusion group containing ``char``, or None."""
    return _GROUP_INDEX.get(char)


def blanket_correct(text: str) -> str:
    """
    Replace every confusable letter with its digit reading.

    Examples:
        >>> blanket_correct("DE89 37O4 OO44")
        '0E89 3704 0044'
    """
    return ''.join(_BLANKET_RULES.get(c, c) for c in text)


def normalize_ocr_text(text: str) -> str:
    """Remove all whitespace and upper-case OCR output."""
    if not isinstance(text, str):
        return ''
    return _WHITESPACE_RE.sub('', text).upper()


def find_candidates(text: str) -> List[str]:
    """All non-overlapping IBAN-shaped substrings of ``text``, left to right."""
    return CANDIDATE_PATTERN.findall(text)


def generate_variations(
    candidate: str,
    max_variations: int = IBANConstants.MAX_VARIATIONS,
) -> List[str]:
    """
    Generate single-position OCR-confusion variations of a candidate.

    The first entry is the candidate itself. Then, walking from index 2 (the
    check digits onward), every character in a confusion group yields one
    variation per other member of that group, in group order, changing only
    that position. Generation stops once the list holds ``max_variations``
    entries.

    Args:
        candidate: Exact-length IBAN candidate
        max_variations: Upper bound on the list length, candidate included

    Returns:
        Candidates in the order they should be validated
    """
    variations: List[str] = [candidate]
    i = IBANConstants.VARIATION_START_INDEX
    while i < len(candidate) and len(variations) < max_variations:
        char = candidate[i]
        group = confusion_group(char)
        if group is not None:
            for alt in group:
                if alt == char:
                    continue
                variations.append(candidate[:i] + alt + candidate[i + 1:])
                if len(variations) >= max_variations:
                    break
        i += 1
    return variations


# =============================================================================
# EXTRACTION RESULT
# =============================================================================

@dataclass
class ExtractionResult:
    """Outcome of an extraction attempt with diagnostics."""
    iban: Optional[str]
    raw_text: str
    candidate: Optional[str] = None
    text_pass: Optional[str] = None
    corrections: List[str] = field(default_factory=list)
    attempts: int = 0

    @property
    def found(self) -> bool:
        return self.iban is not None

    def to_dict(self) -> Dict:
        return {
            'iban': self.iban,
            'raw_text': self.raw_text,
            'candidate': self.candidate,
            'text_pass': self.text_pass,
            'corrections': self.corrections,
            'attempts': self.attempts,
            'found': self.found,
        }


# =============================================================================
# EXTRACTOR
# =============================================================================

class IBANExtractor:
    """
    Candidate search with OCR-confusion correction.

    Holds no state between calls; a single instance can be shared across
    threads.

    Example:
        extractor = IBANExtractor()
        extractor.extract("IBAN: GB82 WEST 1234 5698 7654 32")
        # 'GB82WEST12345698765432'
    """

    ORIGINAL_PASS = 'original'
    CORRECTED_PASS = 'corrected'

    def __init__(
        self,
        validator: Optional[Validator] = None,
        max_variations: int = IBANConstants.MAX_VARIATIONS,
    ):
        """
        Initialize the extractor.

        Args:
            validator: Callable returning an IBANValidationResult (defaults to
                validate_iban)
            max_variations: Cap on candidates tried per match, exact one included
        """
        self.validator = validator or validate_iban
        self.max_variations = max_variations

    def extract(self, ocr_text: str) -> Optional[str]:
        """Return the first valid IBAN found in ``ocr_text``, or None."""
        return self.extract_with_details(ocr_text).iban

    def extract_with_details(self, ocr_text: str) -> ExtractionResult:
        """
        Run the full search and report how the result was reached.

        Args:
            ocr_text: Raw OCR output

        Returns:
            ExtractionResult; ``iban`` is None when nothing validates
        """
        raw_text = ocr_text if isinstance(ocr_text, str) else ''
        result = ExtractionResult(iban=None, raw_text=raw_text)

        cleaned = normalize_ocr_text(raw_text)
        corrected = blanket_correct(cleaned)
        passes = [(self.ORIGINAL_PASS, cleaned), (self.CORRECTED_PASS, corrected)]

        for pass_name, text in passes:
            for match in find_candidates(text):
                found = self._search_match(match, result)
                if found is not None:
                    result.iban = found
                    result.text_pass = pass_name
                    if pass_name == self.CORRECTED_PASS:
                        result.corrections.insert(
                            0, f"Blanket corrections: '{cleaned}' -> '{corrected}'"
                        )
                    logger.debug(
                        f"Extracted IBAN {found} from {pass_name} text "
                        f"after {result.attempts} validations"
                    )
                    return result

        logger.debug(f"No IBAN found after {result.attempts} validations")
        return result

    def _validate(self, candidate: str, result: ExtractionResult) -> bool:
        result.attempts += 1
        return self.validator(candidate).is_valid

    def _search_match(self, match: str, result: ExtractionResult) -> Optional[str]:
        """Search a single regex match; returns the valid IBAN or None."""
        country_code = match[:2]
        expected_length = IBANConstants.COUNTRY_LENGTHS.get(country_code)

        if expected_length is None:
            upper = min(IBANConstants.UNKNOWN_COUNTRY_MAX_LENGTH, len(match))
            for length in range(IBANConstants.UNKNOWN_COUNTRY_MIN_LENGTH, upper + 1):
                candidate = match[:length]
                if self._validate(candidate, result):
                    result.candidate = match
                    if length != len(match):
                        result.corrections.append(
                            f"Trimmed unknown-country match: '{match}' -> '{candidate}'"
                        )
                    return candidate
            return None

        exact = match[:expected_length]
        # Exact-length candidate first, then its variations
        for variation in generate_variations(exact, self.max_variations):
            if not self._validate(variation, result):
                continue
            result.candidate = match
            if exact != match:
                result.corrections.append(f"Trimmed to {country_code} length: '{match}' -> '{exact}'")
            if variation != exact:
                result.corrections.append(f"Confusion correction: '{exact}' -> '{variation}'")
            return variation

        return None


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

# Module-level extractor instance for simple usage
_default_extractor = IBANExtractor()


def extract_iban_from_text(ocr_text: str) -> Optional[str]:
    """
    Extract the first valid IBAN from OCR text.

    Convenience function using the default extractor.

    Args:
        ocr_text: Raw OCR output

    Returns:
        Validated IBAN (cleaned, no spaces) or None if nothing validates

    Examples:
        >>> extract_iban_from_text("noise GB82 WEST 1234 5698 7654 32 noise")
        'GB82WEST12345698765432'
        >>> extract_iban_from_text("randomtext") is None
        True
    """
    return _default_extractor.extract(ocr_text)


def get_extractor() -> IBANExtractor:
    """Get the default extractor instance."""
    return _default_extractor
