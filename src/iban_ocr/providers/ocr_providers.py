"""
OCR Providers - Multi-Engine Abstraction Layer
==============================================

Provides a unified interface for OCR backends that turn an image into the
raw text handed to the IBAN extractor:
- PaddleOCR (default, local)
- Tesseract (local, via pytesseract)

Usage:
    from iban_ocr.providers import OCRProviderFactory, OCRProviderType

    provider = OCRProviderFactory.create(OCRProviderType.TESSERACT)
    result = provider.recognize(image)
    print(result.text)

Author: IBAN OCR Team
Date: October 2026
"""

import logging
import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import cv2

from ..config import get_config
from ..preprocessing import IBANPreprocessor, PreprocessConfig, PreprocessStrategy

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS AND DATA CLASSES
# =============================================================================

class OCRProviderType(str, Enum):
    """
    Supported OCR provider types.

    Use OCRProviderFactory.list_available() to check registrations.
    """
    PADDLEOCR = "paddleocr"
    TESSERACT = "tesseract"


@dataclass
class OCRResult:
    """
    Standardized OCR result across all providers.

    Attributes:
        text: Recognized text, lines separated by newlines
        confidence: Confidence score (0.0 to 1.0)
        raw_response: Provider-specific raw response for debugging
        bounding_boxes: List of detected text regions (optional)
        provider: Name of the OCR provider used
        metadata: Additional provider-specific metadata
    """
    text: str
    confidence: float
    raw_response: Any = None
    bounding_boxes: List[Dict[str, Any]] = field(default_factory=list)
    provider: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "text": self.text,
            "confidence": self.confidence,
            "provider": self.provider,
            "bounding_boxes": self.bounding_boxes,
            "metadata": self.metadata,
        }


@dataclass
class ProviderConfig:
    """Base configuration for OCR providers."""
    # Preprocessing configuration (shared by all providers)
    preprocess_enabled: bool = True
    preprocess_strategy: PreprocessStrategy = PreprocessStrategy.DOCUMENT
    preprocess_target_width: int = 1280


@dataclass
class PaddleOCRConfig(ProviderConfig):
    """PaddleOCR-specific configuration."""
    lang: str = "en"
    use_gpu: bool = False
    det_db_box_thresh: float = 0.3
    use_doc_orientation_classify: bool = False
    use_doc_unwarping: bool = False
    use_textline_orientation: bool = False


@dataclass
class TesseractOCRConfig(ProviderConfig):
    """Tesseract-specific configuration."""
    lang: str = "eng"
    psm: int = 6   # Assume a uniform block of text
    oem: int = 1   # LSTM engine


class OCRProviderError(Exception):
    """Base exception for OCR provider errors."""

    def __init__(
        self,
        message: str,
        provider: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.provider = provider
        self.details = details or {}
        super().__init__(f"[{provider}] {message}")


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class OCRProvider(ABC):
    """
    Abstract base class for OCR providers.

    All OCR backends implement this interface so the scan pipeline can treat
    them interchangeably. Includes optional preprocessing via
    IBANPreprocessor.

    Thread Safety: Not guaranteed; use one provider per worker.
    """

    _initialized: bool = False
    _preprocessor: Optional[IBANPreprocessor] = None

    def _init_preprocessor(self, config: ProviderConfig) -> None:
        """Initialize the image preprocessor based on config."""
        if config.preprocess_enabled:
            settings = get_config().preprocessing
            preprocess_config = PreprocessConfig(
                strategy=config.preprocess_strategy,
                target_width=config.preprocess_target_width,
                clahe_clip_limit=settings.clahe_clip_limit,
                clahe_tile_size=tuple(settings.clahe_tile_size),
                gamma=settings.gamma,
                binary_threshold=settings.binary_threshold,
                median_kernel_size=settings.median_kernel_size,
            )
            self._preprocessor = IBANPreprocessor(config=preprocess_config)
            logger.debug(f"Preprocessor initialized with strategy={config.preprocess_strategy.value}")
        else:
            self._preprocessor = None
            logger.debug("Preprocessing disabled")

    def _preprocess_image(
        self,
        image: np.ndarray,
        strategy: Optional[PreprocessStrategy] = None,
    ) -> np.ndarray:
        if self._preprocessor is None:
            return image
        return self._preprocessor.process(image, strategy=strategy)

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name."""
        ...

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider's engine is installed."""
        ...

    @property
    def is_initialized(self) -> bool:
        """Check if the provider has been initialized."""
        return self._initialized

    @abstractmethod
    def initialize(self) -> None:
        """
        Initialize the OCR engine.

        Raises:
            OCRProviderError: If initialization fails
        """
        ...

    @abstractmethod
    def recognize(
        self,
        image: Union[str, Path, np.ndarray],
        **kwargs
    ) -> OCRResult:
        """
        Recognize text from an image.

        Args:
            image: Image path or numpy array (BGR format)
            **kwargs: Provider-specific options

        Returns:
            OCRResult with recognized text and confidence

        Raises:
            OCRProviderError: If recognition fails
        """
        ...

    def recognize_batch(
        self,
        images: List[Union[str, Path, np.ndarray]],
        **kwargs
    ) -> List[OCRResult]:
        """
        Recognize text from multiple images sequentially.

        Providers may override for batch optimization.
        """
        return [self.recognize(img, **kwargs) for img in images]

    def _load_image(self, image: Union[str, Path, np.ndarray]) -> np.ndarray:
        """
        Load image from path or return numpy array.

        Raises:
            ValueError: If image cannot be loaded
        """
        if isinstance(image, np.ndarray):
            return image

        path = Path(image)
        if not path.exists():
            raise ValueError(f"Image file not found: {path}")

        img = cv2.imread(str(path))
        if img is None:
            raise ValueError(f"Failed to load image: {path}")

        return img


# =============================================================================
# PADDLEOCR PROVIDER
# =============================================================================

class PaddleOCRProvider(OCRProvider):
    """
    PaddleOCR-based text recognition provider.

    Features:
    - Local processing (no API calls)
    - Optional GPU acceleration
    - Line-level confidences averaged into one score
    """

    def __init__(self, config: Optional[PaddleOCRConfig] = None):
        self.config = config or PaddleOCRConfig()
        self._ocr = None
        self._initialized = False
        self._init_preprocessor(self.config)

    @property
    def name(self) -> str:
        return "PaddleOCR"

    @property
    def is_available(self) -> bool:
        """Check if PaddleOCR is installed."""
        try:
            from paddleocr import PaddleOCR  # noqa: F401
            return True
        except ImportError:
            return False

    def initialize(self) -> None:
        """Initialize PaddleOCR engine."""
        if self._initialized:
            return

        if not self.is_available:
            raise OCRProviderError(
                "PaddleOCR is not installed. Run: pip install paddleocr paddlepaddle",
                provider=self.name
            )

        try:
            from paddleocr import PaddleOCR

            logger.info(f"Initializing PaddleOCR (lang={self.config.lang})...")
            self._ocr = PaddleOCR(
                lang=self.config.lang,
                device='gpu' if self.config.use_gpu else 'cpu',
                use_doc_orientation_classify=self.config.use_doc_orientation_classify,
                use_doc_unwarping=self.config.use_doc_unwarping,
                use_textline_orientation=self.config.use_textline_orientation,
                text_det_box_thresh=self.config.det_db_box_thresh,
            )
            self._initialized = True
            logger.info("PaddleOCR initialized successfully")

        except Exception as e:
            raise OCRProviderError(
                f"Failed to initialize PaddleOCR: {e}",
                provider=self.name,
                details={"error": str(e)}
            ) from e

    def recognize(
        self,
        image: Union[str, Path, np.ndarray],
        preprocess: Optional[bool] = None,
        preprocess_strategy: Optional[PreprocessStrategy] = None,
        **kwargs
    ) -> OCRResult:
        """
        Recognize text using PaddleOCR.

        Args:
            image: Image path or numpy array
            preprocess: Override preprocessing (None=use config)
            preprocess_strategy: Override preprocessing strategy
        """
        if not self._initialized:
            self.initialize()

        img = self._load_image(image)

        should_preprocess = preprocess if preprocess is not None else self.config.preprocess_enabled
        if should_preprocess:
            img = self._preprocess_image(img, preprocess_strategy)

        try:
            result = self._ocr.predict(img)
        except Exception as e:
            raise OCRProviderError(
                f"OCR prediction failed: {e}",
                provider=self.name,
                details={"error": str(e)}
            ) from e

        text, confidence, boxes = self._parse_result(result)

        return OCRResult(
            text=text,
            confidence=confidence,
            raw_response=result,
            bounding_boxes=boxes,
            provider=self.name,
            metadata={"lang": self.config.lang}
        )

    def _parse_result(self, result: Any) -> Tuple[str, float, List[Dict]]:
        """Parse PaddleOCR v3.x result format (list of dicts)."""
        if not result:
            return "", 0.0, []

        if isinstance(result, list):
            result = result[0]

        if isinstance(result, dict):
            texts = result.get('rec_texts', [])
            scores = result.get('rec_scores', [])
            dt_polys = result.get('dt_polys', [])

            if texts:
                full_text = '\n'.join(texts)
                avg_score = float(np.mean(scores)) if len(scores) else 0.0

                boxes = []
                for i, poly in enumerate(dt_polys):
                    boxes.append({
                        "text": texts[i] if i < len(texts) else "",
                        "confidence": float(scores[i]) if i < len(scores) else 0.0,
                        "polygon": poly.tolist() if hasattr(poly, 'tolist') else poly
                    })

                return full_text, avg_score, boxes

        return "", 0.0, []


# =============================================================================
# TESSERACT PROVIDER
# =============================================================================

class TesseractOCRProvider(OCRProvider):
    """
    Tesseract-based text recognition provider (pytesseract).

    Requires the tesseract binary on PATH in addition to the Python package.
    """

    def __init__(self, config: Optional[TesseractOCRConfig] = None):
        self.config = config or TesseractOCRConfig()
        self._tesseract = None
        self._initialized = False
        self._init_preprocessor(self.config)

    @property
    def name(self) -> str:
        return "Tesseract"

    @property
    def is_available(self) -> bool:
        """Check if pytesseract and the tesseract binary are installed."""
        try:
            import pytesseract
            pytesseract.get_tesseract_version()
            return True
        except Exception:
            return False

    def initialize(self) -> None:
        if self._initialized:
            return

        if not self.is_available:
            raise OCRProviderError(
                "Tesseract is not installed. Run: pip install pytesseract "
                "and install the tesseract binary",
                provider=self.name
            )

        import pytesseract
        self._tesseract = pytesseract
        self._initialized = True
        logger.info(f"Tesseract initialized (lang={self.config.lang})")

    def recognize(
        self,
        image: Union[str, Path, np.ndarray],
        preprocess: Optional[bool] = None,
        preprocess_strategy: Optional[PreprocessStrategy] = None,
        **kwargs
    ) -> OCRResult:
        """Recognize text using Tesseract."""
        if not self._initialized:
            self.initialize()

        img = self._load_image(image)

        should_preprocess = preprocess if preprocess is not None else self.config.preprocess_enabled
        if should_preprocess:
            img = self._preprocess_image(img, preprocess_strategy)

        # Tesseract expects RGB
        if img.ndim == 3:
            img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)

        cfg = f"--oem {self.config.oem} --psm {self.config.psm}"
        try:
            data = self._tesseract.image_to_data(
                img,
                lang=self.config.lang,
                config=cfg,
                output_type=self._tesseract.Output.DICT,
            )
        except Exception as e:
            raise OCRProviderError(
                f"OCR prediction failed: {e}",
                provider=self.name,
                details={"error": str(e)}
            ) from e

        text, confidence = self._parse_data(data)

        return OCRResult(
            text=text,
            confidence=confidence,
            raw_response=data,
            provider=self.name,
            metadata={"lang": self.config.lang, "psm": self.config.psm}
        )

    def _parse_data(self, data: Dict[str, List[Any]]) -> Tuple[str, float]:
        """Rebuild lines from word-level output and average word confidences."""
        lines: Dict[Tuple[int, int, int], List[str]] = {}
        confidences: List[float] = []

        words = data.get('text', [])
        for i, word in enumerate(words):
            word = (word or '').strip()
            if not word:
                continue
            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            lines.setdefault(key, []).append(word)
            conf = float(data['conf'][i])
            if conf >= 0:
                confidences.append(conf / 100.0)

        text = '\n'.join(' '.join(lines[key]) for key in sorted(lines))
        confidence = float(np.mean(confidences)) if confidences else 0.0
        return text, confidence


# =============================================================================
# PROVIDER FACTORY
# =============================================================================

class OCRProviderFactory:
    """
    Factory for creating OCR provider instances.

    Usage:
        provider = OCRProviderFactory.create(OCRProviderType.PADDLEOCR)
        provider = OCRProviderFactory.create("tesseract", lang="deu")
    """

    _providers: Dict[OCRProviderType, Type[OCRProvider]] = {
        OCRProviderType.PADDLEOCR: PaddleOCRProvider,
        OCRProviderType.TESSERACT: TesseractOCRProvider,
    }

    @classmethod
    def create(
        cls,
        provider_type: Union[str, OCRProviderType],
        auto_initialize: bool = True,
        **kwargs
    ) -> OCRProvider:
        """
        Create an OCR provider instance.

        Args:
            provider_type: Type of provider to create
            auto_initialize: Whether to initialize immediately
            **kwargs: Provider-specific configuration options

        Returns:
            Configured OCRProvider instance

        Raises:
            ValueError: If provider type is not supported
        """
        if isinstance(provider_type, str):
            try:
                provider_type = OCRProviderType(provider_type.lower())
            except ValueError:
                available = [p.value for p in OCRProviderType]
                raise ValueError(
                    f"Unknown provider type: '{provider_type}'. "
                    f"Available: {available}"
                )

        provider_class = cls._providers.get(provider_type)
        if provider_class is None:
            raise ValueError(f"Provider not implemented: {provider_type.value}")

        config = cls._create_config(provider_type, **kwargs)
        provider = provider_class(config=config)

        if auto_initialize and provider.is_available:
            provider.initialize()

        return provider

    @classmethod
    def _create_config(
        cls,
        provider_type: OCRProviderType,
        **kwargs
    ) -> ProviderConfig:
        """Create provider-specific config from kwargs."""
        config = get_config()
        strategy = PreprocessStrategy(
            kwargs.get('preprocess_strategy', config.preprocessing.default_strategy)
        )
        common = dict(
            preprocess_enabled=kwargs.get('preprocess_enabled', True),
            preprocess_strategy=strategy,
            preprocess_target_width=kwargs.get('target_width', config.preprocessing.target_width),
        )
        if provider_type == OCRProviderType.PADDLEOCR:
            return PaddleOCRConfig(
                lang=kwargs.get('lang', config.ocr.language),
                use_gpu=kwargs.get('use_gpu', config.ocr.use_gpu),
                det_db_box_thresh=kwargs.get('det_db_box_thresh', config.ocr.det_db_box_thresh),
                **common,
            )
        elif provider_type == OCRProviderType.TESSERACT:
            return TesseractOCRConfig(
                lang=kwargs.get('lang', config.ocr.tesseract_lang),
                psm=kwargs.get('psm', 6),
                oem=kwargs.get('oem', 1),
                **common,
            )
        else:
            return ProviderConfig(**common)

    @classmethod
    def list_available(cls) -> List[str]:
        """List all registered provider types."""
        return [p.value for p in cls._providers.keys()]

    @classmethod
    def register(
        cls,
        provider_type: OCRProviderType,
        provider_class: type
    ) -> None:
        """
        Register a new provider type.

        Raises:
            TypeError: If the class does not inherit from OCRProvider
        """
        if not issubclass(provider_class, OCRProvider):
            raise TypeError(
                f"Provider class must inherit from OCRProvider, "
                f"got {provider_class.__name__}"
            )
        cls._providers[provider_type] = provider_class
        logger.info(f"Registered OCR provider: {provider_type.value}")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def get_default_provider() -> OCRProvider:
    """Get the OCR provider named in the configuration."""
    return OCRProviderFactory.create(get_config().ocr.provider)


def recognize_text(
    image: Union[str, Path, np.ndarray],
    provider: Optional[Union[str, OCRProvider]] = None,
    **kwargs
) -> OCRResult:
    """
    Convenience function to OCR an image.

    Example:
        result = recognize_text("card.jpg")
        result = recognize_text("card.jpg", provider="tesseract")
    """
    if provider is None:
        ocr = get_default_provider()
    elif isinstance(provider, str):
        ocr = OCRProviderFactory.create(provider, **kwargs)
    else:
        ocr = provider

    return ocr.recognize(image)
