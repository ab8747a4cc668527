"""
IBAN Scan Pipeline
==================

Glues the pieces together: image -> preprocessing -> OCR -> IBAN extraction
-> validation. Pasted text skips straight to extraction.

Usage:
    from iban_ocr.pipeline import IBANScanPipeline

    pipeline = IBANScanPipeline()
    result = pipeline.scan('path/to/statement.jpg')
    print(result.iban, result.is_valid)

Author: IBAN OCR Team
Date: October 2026
"""

import cv2
import numpy as np
from typing import Dict, List, Optional, Union, Any
from pathlib import Path
from dataclasses import dataclass, field
import logging
import time
from contextlib import contextmanager

from ..config import get_config
from ..core import (
    IBANExtractor,
    format_iban_for_display,
    get_extractor,
    validate_iban,
)
from ..preprocessing import PreprocessStrategy
from ..providers import OCRProvider, OCRProviderFactory

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """
    Base exception for pipeline errors.

    Provides structured error information with error codes for programmatic handling.
    """

    def __init__(self, message: str, error_code: str = "PIPELINE_ERROR", context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class ImageLoadError(PipelineError):
    """Raised when image cannot be loaded."""

    def __init__(self, file_path: str, reason: str = "Unknown error"):
        super().__init__(
            message=f"Failed to load image: {file_path}. Reason: {reason}",
            error_code="IMAGE_LOAD_ERROR",
            context={"file_path": file_path, "reason": reason}
        )
        self.file_path = file_path
        self.reason = reason


class OCREngineError(PipelineError):
    """Raised when OCR engine fails."""

    def __init__(self, message: str, engine: str = "unknown", details: Optional[str] = None):
        super().__init__(
            message=f"OCR engine error ({engine}): {message}",
            error_code="OCR_ENGINE_ERROR",
            context={"engine": engine, "details": details}
        )
        self.engine = engine
        self.details = details


class ConfigurationError(PipelineError):
    """Raised when pipeline is misconfigured."""

    def __init__(self, message: str, config_key: Optional[str] = None, expected: Optional[str] = None):
        super().__init__(
            message=f"Configuration error: {message}",
            error_code="CONFIG_ERROR",
            context={"config_key": config_key, "expected": expected}
        )
        self.config_key = config_key
        self.expected = expected


@dataclass
class ScanResult:
    """Structured IBAN scan result."""
    iban: Optional[str]
    raw_ocr: str
    source: str
    confidence: float = 0.0
    is_valid: bool = False
    detail: Optional[str] = None
    country_code: Optional[str] = None
    corrections: List[str] = field(default_factory=list)
    processing_time_ms: float = 0.0
    provider: Optional[str] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.iban is not None

    @property
    def formatted(self) -> Optional[str]:
        return format_iban_for_display(self.iban) if self.iban else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'iban': self.iban,
            'formatted': self.formatted,
            'found': self.found,
            'is_valid': self.is_valid,
            'detail': self.detail,
            'country_code': self.country_code,
            'raw_ocr': self.raw_ocr,
            'source': self.source,
            'confidence': self.confidence,
            'corrections': self.corrections,
            'processing_time_ms': self.processing_time_ms,
            'provider': self.provider,
            'error': self.error,
        }


@contextmanager
def _timer():
    """Context manager for timing operations."""
    start = time.perf_counter()
    elapsed = {'ms': 0.0}
    try:
        yield elapsed
    finally:
        elapsed['ms'] = (time.perf_counter() - start) * 1000


class IBANScanPipeline:
    """
    Complete IBAN scan pipeline.

    Combines:
    - OCR provider (with its own image preprocessing)
    - IBAN extraction with OCR-confusion correction
    - mod-97 validation

    The OCR provider is created lazily on the first image scan, so
    text-only use needs no OCR engine installed.

    Thread Safety: NOT thread-safe; OCR engines keep internal state.
    Create separate instances for parallel processing.

    Example:
        pipeline = IBANScanPipeline(provider="tesseract")
        result = pipeline.scan('card.jpg')
        print(result.formatted)  # "GB82 WEST 1234 5698 7654 32"
    """

    def __init__(
        self,
        provider: Optional[Union[str, OCRProvider]] = None,
        preprocess_strategy: Optional[Union[str, PreprocessStrategy]] = None,
        extractor: Optional[IBANExtractor] = None,
    ):
        """
        Initialize the scan pipeline.

        Args:
            provider: Provider name or instance (uses config default if None)
            preprocess_strategy: Preprocessing strategy for image scans
                (uses config default if None)
            extractor: IBAN extractor (uses the shared default if None)

        Raises:
            ConfigurationError: If the preprocessing strategy is unknown
        """
        config = get_config()

        strategy = preprocess_strategy or config.preprocessing.default_strategy
        try:
            self.preprocess_strategy = PreprocessStrategy(strategy)
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown preprocessing strategy: {strategy}",
                config_key="preprocessing.default_strategy",
                expected=", ".join(s.value for s in PreprocessStrategy),
            ) from e

        if isinstance(provider, OCRProvider):
            self._provider: Optional[OCRProvider] = provider
            self.provider_name = provider.name
        else:
            self._provider = None
            self.provider_name = provider or config.ocr.provider

        self.extractor = extractor or get_extractor()

    @property
    def provider(self) -> OCRProvider:
        """The OCR provider, created on first access."""
        if self._provider is None:
            try:
                self._provider = OCRProviderFactory.create(
                    self.provider_name,
                    preprocess_strategy=self.preprocess_strategy,
                )
            except ValueError as e:
                raise ConfigurationError(str(e), config_key="ocr.provider") from e
        return self._provider

    def scan_text(self, text: str, source: str = "manual") -> ScanResult:
        """
        Extract and validate an IBAN from already-recognized or pasted text.

        Args:
            text: Raw text
            source: Capture source recorded on the result

        Returns:
            ScanResult; ``iban`` is None when no valid IBAN was found
        """
        with _timer() as elapsed:
            result = self._analyze(text, source)
        result.processing_time_ms = elapsed['ms']
        return result

    def scan(
        self,
        image: Union[str, Path, np.ndarray],
        source: str = "camera",
    ) -> ScanResult:
        """
        Scan an IBAN from an image.

        Errors are logged and reported in ``ScanResult.error`` instead of
        being raised.

        Args:
            image: Path to image file or numpy array (BGR)
            source: Capture source recorded on the result

        Returns:
            ScanResult
        """
        with _timer() as elapsed:
            try:
                result = self._scan_internal(image, source)
            except Exception as e:
                logger.exception(f"Scan failed: {e}")
                result = ScanResult(
                    iban=None,
                    raw_ocr='',
                    source=source,
                    provider=self.provider_name,
                    error=str(e),
                )
        result.processing_time_ms = elapsed['ms']
        return result

    def scan_batch(
        self,
        images: List[Union[str, Path]],
        source: str = "gallery",
    ) -> List[ScanResult]:
        """Scan several images; failures are reported per result."""
        results = []
        for i, image in enumerate(images):
            logger.info(f"Scanning {i + 1}/{len(images)}: {image}")
            results.append(self.scan(image, source=source))

        found = sum(1 for r in results if r.found)
        logger.info(f"Batch complete: {found}/{len(results)} IBANs found")
        return results

    def _scan_internal(self, image: Union[str, Path, np.ndarray], source: str) -> ScanResult:
        loaded = self._load_image(image)
        logger.debug(f"Loaded image, shape={loaded.shape}")

        provider = self.provider
        try:
            ocr_result = provider.recognize(loaded, preprocess_strategy=self.preprocess_strategy)
        except Exception as e:
            raise OCREngineError(str(e), engine=provider.name) from e

        logger.debug(f"Raw OCR: {ocr_result.text!r} (confidence: {ocr_result.confidence:.2f})")

        result = self._analyze(ocr_result.text, source)
        result.confidence = ocr_result.confidence
        result.provider = provider.name
        return result

    def _analyze(self, text: str, source: str) -> ScanResult:
        extraction = self.extractor.extract_with_details(text)
        result = ScanResult(
            iban=extraction.iban,
            raw_ocr=extraction.raw_text,
            source=source,
            corrections=list(extraction.corrections),
        )
        if extraction.iban is None:
            # Caller falls back to manual entry
            result.detail = "No valid IBAN found"
            return result

        validation = validate_iban(extraction.iban)
        result.is_valid = validation.is_valid
        result.detail = validation.detail
        result.country_code = validation.country_code
        return result

    def _load_image(self, image: Union[str, Path, np.ndarray]) -> np.ndarray:
        if isinstance(image, np.ndarray):
            if image.size == 0:
                raise ImageLoadError("numpy_array", "empty array")
            return image

        path = Path(image)
        if not path.exists():
            raise ImageLoadError(str(path), "file not found")

        loaded = cv2.imread(str(path))
        if loaded is None:
            raise ImageLoadError(str(path), "could not decode image")
        return loaded
