"""
IBAN OCR Pipeline - Main Pipeline Module
========================================

Contains the image/text to IBAN scan pipeline.
"""

from .iban_pipeline import (
    IBANScanPipeline,
    ScanResult,
    PipelineError,
    ImageLoadError,
    OCREngineError,
    ConfigurationError,
)

__all__ = [
    "IBANScanPipeline",
    "ScanResult",
    "PipelineError",
    "ImageLoadError",
    "OCREngineError",
    "ConfigurationError",
]
