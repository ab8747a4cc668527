"""
IBAN Image Preprocessing Module
===============================

Image preprocessing applied before OCR of IBAN-bearing documents.

Classes:
    IBANPreprocessor: Main preprocessing class with multiple strategies
    PreprocessConfig: Configuration for preprocessing parameters

Usage:
    from iban_ocr.preprocessing import IBANPreprocessor

    preprocessor = IBANPreprocessor()
    processed = preprocessor.process(image)
"""

from .iban_preprocessor import (
    IBANPreprocessor,
    PreprocessConfig,
    PreprocessStrategy,
    SHARPEN_KERNEL,
    preprocess_iban_image,
)

__all__ = [
    'IBANPreprocessor',
    'PreprocessConfig',
    'PreprocessStrategy',
    'SHARPEN_KERNEL',
    'preprocess_iban_image',
]
