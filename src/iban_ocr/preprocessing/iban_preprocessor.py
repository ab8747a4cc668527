"""
IBAN Image Preprocessor
=======================

Image preprocessing ahead of OCR for photographed or scanned documents
carrying an IBAN (bank cards, statements, invoices, screenshots).

Strategies:

- NONE: Pass-through
- STANDARD: Resize + grayscale + CLAHE
- DOCUMENT: Sharpen, gamma contrast boost, grayscale, binary threshold and
  median filter; the chain used for camera captures
- LOW_CONTRAST: Strong CLAHE + unsharp masking for faded prints
- ADAPTIVE: Picks one of the above from measured contrast

Author: IBAN OCR Team
License: MIT
"""

import cv2
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, List, Dict, Any, Union
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


class PreprocessStrategy(str, Enum):
    """Preprocessing strategy enumeration."""
    NONE = 'none'
    STANDARD = 'standard'
    DOCUMENT = 'document'
    LOW_CONTRAST = 'low_contrast'
    ADAPTIVE = 'adaptive'


@dataclass
class PreprocessConfig:
    """Configuration for IBAN image preprocessing."""

    strategy: PreprocessStrategy = PreprocessStrategy.DOCUMENT

    # Resizing parameters
    target_width: int = 1280
    min_height: int = 32
    max_height: int = 2048
    upscale: bool = False  # Only shrink unless enabled

    # CLAHE parameters
    clahe_clip_limit: float = 2.0
    clahe_tile_size: Tuple[int, int] = (8, 8)

    # Document chain
    gamma: float = 1.2
    binary_threshold: int = 128
    median_kernel_size: int = 3

    # Unsharp masking (low contrast)
    unsharp_radius: int = 1
    unsharp_amount: float = 1.5

    # Auto-detection thresholds
    low_contrast_threshold: float = 40.0  # Std dev below this = low contrast
    high_contrast_threshold: float = 80.0


# 3x3 sharpening kernel
SHARPEN_KERNEL = np.array(
    [[0, -1, 0],
     [-1, 5, -1],
     [0, -1, 0]],
    dtype=np.float32,
)


class IBANPreprocessor:
    """
    IBAN image preprocessor with multiple strategies.

    Example:
        preprocessor = IBANPreprocessor()
        processed = preprocessor.process(image)

        # With specific strategy
        preprocessor = IBANPreprocessor(strategy=PreprocessStrategy.STANDARD)
        processed = preprocessor.process(image)
    """

    def __init__(
        self,
        strategy: Optional[PreprocessStrategy] = None,
        config: Optional[PreprocessConfig] = None,
    ):
        """
        Initialize the IBAN preprocessor.

        Args:
            strategy: Preprocessing strategy (overrides config.strategy if provided)
            config: Full configuration (uses defaults if None)
        """
        self.config = config or PreprocessConfig()

        if strategy is not None:
            self.config.strategy = PreprocessStrategy(strategy)

        self.clahe = cv2.createCLAHE(
            clipLimit=self.config.clahe_clip_limit,
            tileGridSize=self.config.clahe_tile_size
        )

        # Lookup table for gamma contrast boost
        inv_gamma = 1.0 / self.config.gamma
        self.gamma_table = np.array(
            [((i / 255.0) ** inv_gamma) * 255 for i in range(256)]
        ).astype(np.uint8)

        logger.debug(f"IBANPreprocessor initialized with strategy={self.config.strategy.value}")

    def process(
        self,
        image: np.ndarray,
        strategy: Optional[PreprocessStrategy] = None,
    ) -> np.ndarray:
        """
        Process image for OCR.

        Args:
            image: Input image (BGR or grayscale)
            strategy: Override strategy for this call

        Returns:
            Preprocessed image (BGR format)

        Raises:
            ValueError: If image is invalid
        """
        if image is None or image.size == 0:
            raise ValueError("Input image is empty or None")

        active_strategy = PreprocessStrategy(strategy or self.config.strategy)

        if active_strategy == PreprocessStrategy.NONE:
            return image
        elif active_strategy == PreprocessStrategy.STANDARD:
            return self._process_standard(image)
        elif active_strategy == PreprocessStrategy.DOCUMENT:
            return self._process_document(image)
        elif active_strategy == PreprocessStrategy.LOW_CONTRAST:
            return self._process_low_contrast(image)
        else:
            return self._process_adaptive(image)

    def _process_standard(self, image: np.ndarray) -> np.ndarray:
        """Standard preprocessing: resize + light enhancement."""
        resized = self._resize_to_target(image)
        gray = self._to_gray(resized)
        enhanced = self.clahe.apply(gray)
        return cv2.cvtColor(enhanced, cv2.COLOR_GRAY2BGR)

    def _process_document(self, image: np.ndarray) -> np.ndarray:
        """
        Preprocessing for photographed documents.

        Pipeline:
        1. Resize to target width
        2. Sharpen with a 3x3 kernel
        3. Gamma contrast boost
        4. Grayscale
        5. Binary threshold
        6. Median filter to remove salt-and-pepper noise
        """
        resized = self._resize_to_target(image)

        sharpened = cv2.filter2D(resized, -1, SHARPEN_KERNEL)

        contrasted = cv2.LUT(sharpened, self.gamma_table)

        gray = self._to_gray(contrasted)

        _, binary = cv2.threshold(
            gray,
            self.config.binary_threshold,
            255,
            cv2.THRESH_BINARY
        )

        denoised = cv2.medianBlur(binary, self.config.median_kernel_size)

        return cv2.cvtColor(denoised, cv2.COLOR_GRAY2BGR)

    def _process_low_contrast(self, image: np.ndarray) -> np.ndarray:
        """Enhanced preprocessing for low contrast images."""
        resized = self._resize_to_target(image)
        gray = self._to_gray(resized)

        strong_clahe = cv2.createCLAHE(clipLimit=4.0, tileGridSize=(4, 4))
        enhanced = strong_clahe.apply(gray)

        blurred = cv2.GaussianBlur(enhanced, (0, 0), self.config.unsharp_radius)
        sharpened = cv2.addWeighted(
            enhanced,
            1 + self.config.unsharp_amount,
            blurred,
            -self.config.unsharp_amount,
            0
        )

        return cv2.cvtColor(sharpened, cv2.COLOR_GRAY2BGR)

    def _process_adaptive(self, image: np.ndarray) -> np.ndarray:
        """Select a strategy from image contrast."""
        strategy = PreprocessStrategy(self._suggest_strategy(self._to_gray(image)))
        logger.debug(f"Adaptive preprocessing selected {strategy.value}")
        return self.process(image, strategy=strategy)

    def _to_gray(self, image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return image
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    def _resize_to_target(self, image: np.ndarray) -> np.ndarray:
        """
        Resize image to target width while maintaining aspect ratio.

        Images narrower than the target are left alone unless upscaling is
        enabled.
        """
        h, w = image.shape[:2]

        if w <= self.config.target_width and not self.config.upscale:
            return image

        scale = self.config.target_width / w
        new_h = int(h * scale)
        new_h = max(self.config.min_height, min(new_h, self.config.max_height))

        return cv2.resize(
            image,
            (self.config.target_width, new_h),
            interpolation=cv2.INTER_AREA if scale < 1 else cv2.INTER_CUBIC
        )

    def process_batch(
        self,
        images: List[np.ndarray],
        strategy: Optional[PreprocessStrategy] = None,
    ) -> List[np.ndarray]:
        """Process multiple images."""
        return [self.process(img, strategy) for img in images]

    def analyze_image(self, image: np.ndarray) -> Dict[str, Any]:
        """
        Analyze image characteristics for debugging/tuning.

        Args:
            image: Input image

        Returns:
            Dict with analysis results
        """
        gray = self._to_gray(image)

        return {
            'width': image.shape[1],
            'height': image.shape[0],
            'channels': image.shape[2] if image.ndim > 2 else 1,
            'contrast': float(np.std(gray)),
            'brightness': float(np.mean(gray)),
            'dynamic_range': int(gray.max()) - int(gray.min()),
            'suggested_strategy': self._suggest_strategy(gray),
        }

    def _suggest_strategy(self, gray: np.ndarray) -> str:
        """Suggest optimal strategy based on grayscale image analysis."""
        contrast = np.std(gray)

        if contrast < self.config.low_contrast_threshold:
            return PreprocessStrategy.LOW_CONTRAST.value
        elif contrast > self.config.high_contrast_threshold:
            return PreprocessStrategy.STANDARD.value
        else:
            return PreprocessStrategy.DOCUMENT.value


def preprocess_iban_image(
    image: Union[np.ndarray, str, Path],
    strategy: PreprocessStrategy = PreprocessStrategy.DOCUMENT,
    target_width: int = 1280,
) -> np.ndarray:
    """
    Quick preprocessing function for IBAN images.

    Args:
        image: Input image (numpy array or path)
        strategy: Preprocessing strategy
        target_width: Target width for resizing

    Returns:
        Preprocessed image (BGR format)
    """
    if isinstance(image, (str, Path)):
        path = image
        image = cv2.imread(str(path))
        if image is None:
            raise ValueError(f"Failed to load image: {path}")

    config = PreprocessConfig(strategy=strategy, target_width=target_width)
    return IBANPreprocessor(config=config).process(image)
