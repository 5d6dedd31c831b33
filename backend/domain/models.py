"""
Core domain models for the stamp generator.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
import math

import numpy as np


class ExtractionMode(str, Enum):
    """Feature extraction algorithms that turn a photo into an ink mask."""
    EDGE = "edge"
    SILHOUETTE = "silhouette"
    OUTLINE = "outline"
    DETAILED = "detailed"  # Gradient alpha instead of a binary mask
    ANIME = "anime"
    HUMAN = "human"
    ANIMAL = "animal"


class BlendMode(str, Enum):
    """Per-layer pixel combination rules used by the compositor."""
    NORMAL = "normal"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    OVERLAY = "overlay"


class BorderStyle(str, Enum):
    NONE = "none"
    SINGLE = "single"
    DOUBLE = "double"
    DOTTED = "dotted"
    DECORATIVE = "decorative"


class StampShape(str, Enum):
    CIRCLE = "circle"
    SQUARE = "square"
    ROUNDED = "rounded"
    OVAL = "oval"
    BADGE = "badge"
    FIT = "fit"  # Hug the ink image with padding instead of a fixed frame


# RGB plus a 0..1 alpha, the way shadow colours are expressed in presets.
ShadowColor = Tuple[int, int, int, float]


@dataclass(eq=False)
class PixelBuffer:
    """
    RGBA8 image held as a (height, width, 4) uint8 array in row-major order.

    Every pipeline stage either mutates `data` in place or returns a new
    buffer with the same width and height.
    """
    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        if not isinstance(self.width, (int, np.integer)) or not isinstance(self.height, (int, np.integer)):
            raise ValueError("PixelBuffer dimensions must be integers")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"PixelBuffer dimensions must be positive, got {self.width}x{self.height}")
        if not isinstance(self.data, np.ndarray) or self.data.dtype != np.uint8:
            raise ValueError("PixelBuffer data must be a uint8 numpy array")
        if self.data.shape != (self.height, self.width, 4):
            raise ValueError(
                f"PixelBuffer data shape {self.data.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )

    @classmethod
    def from_array(cls, data: np.ndarray) -> "PixelBuffer":
        """Wrap an existing (H, W, 4) uint8 array without copying."""
        if data.ndim != 3 or data.shape[2] != 4:
            raise ValueError(f"Expected an (H, W, 4) array, got shape {data.shape}")
        return cls(width=int(data.shape[1]), height=int(data.shape[0]), data=data)

    @classmethod
    def blank(cls, width: int, height: int, fill: Tuple[int, int, int, int] = (0, 0, 0, 0)) -> "PixelBuffer":
        if width <= 0 or height <= 0:
            raise ValueError(f"PixelBuffer dimensions must be positive, got {width}x{height}")
        data = np.empty((height, width, 4), dtype=np.uint8)
        data[:, :] = fill
        return cls(width=width, height=height, data=data)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(width=self.width, height=self.height, data=self.data.copy())

    def with_data(self, data: np.ndarray) -> "PixelBuffer":
        """New buffer of identical dimensions around `data`."""
        return PixelBuffer(width=self.width, height=self.height, data=data)

    @property
    def alpha(self) -> np.ndarray:
        return self.data[:, :, 3]


@dataclass(frozen=True)
class ExtractionOptions:
    """Parameters for one feature extraction run."""
    mode: ExtractionMode = ExtractionMode.EDGE
    threshold: int = 128
    contrast: float = 1.2
    brightness: float = 0.0
    blur: float = 1.0
    invert: bool = False
    edge_strength: float = 1.0

    def __post_init__(self) -> None:
        try:
            mode = ExtractionMode(self.mode)
        except ValueError:
            allowed = ", ".join(m.value for m in ExtractionMode)
            raise ValueError(f"Unsupported extraction mode {self.mode!r}; expected one of: {allowed}") from None
        object.__setattr__(self, "mode", mode)

        if isinstance(self.threshold, bool) or int(self.threshold) != self.threshold:
            raise ValueError(f"threshold must be an integer, got {self.threshold!r}")
        if not 0 <= self.threshold <= 255:
            raise ValueError(f"threshold must be within 0..255, got {self.threshold}")
        object.__setattr__(self, "threshold", int(self.threshold))

        if not math.isfinite(self.contrast) or self.contrast <= 0:
            raise ValueError(f"contrast must be a positive number, got {self.contrast}")
        if not math.isfinite(self.brightness) or not -255 <= self.brightness <= 255:
            raise ValueError(f"brightness must be within -255..255, got {self.brightness}")
        if not math.isfinite(self.blur) or self.blur < 0:
            raise ValueError(f"blur must be non-negative, got {self.blur}")
        if not math.isfinite(self.edge_strength) or self.edge_strength <= 0:
            raise ValueError(f"edge_strength must be positive, got {self.edge_strength}")


DEFAULT_EXTRACTION_OPTIONS = ExtractionOptions()

# Largest multiplier a placement may apply to the nominal sprite size
MAX_PLACEMENT_SCALE = 4.0


@dataclass(frozen=True)
class StampStyle:
    """
    Named bundle of extraction and visual settings.

    Presets are module constants; editing a style always produces a new value
    (see services.stamp_styles.create_custom_style).
    """
    id: str
    name: str
    description: str

    # Extraction settings
    extraction_mode: ExtractionMode
    threshold: int
    contrast: float
    edge_strength: float

    # Visual settings
    ink_color: str
    border_style: BorderStyle
    border_width: int
    shape: StampShape

    # 3D effect settings
    depth_3d: int  # 0-100 intensity
    shadow_angle: int  # 0-360 degrees
    shadow_distance: int  # pixels
    shadow_blur: int  # pixels
    shadow_color: ShadowColor

    # Emboss/engrave
    emboss_strength: int  # 0-100
    inner_shadow: bool

    # Textures
    rubber_texture: bool
    paper_texture: bool
    grunge: int  # 0-100

    # Ink effects
    ink_bleed: int  # 0-100
    ink_opacity: int  # 0-100

    blur: float = 1.0
    invert: bool = False


@dataclass(frozen=True, eq=False)
class PlacedStamp:
    """
    A stamp committed onto a document.

    Position is fractional (0..1) of the document width/height so the same
    placement renders at any resolution.
    """
    stamp: PixelBuffer
    x_frac: float
    y_frac: float
    rotation: float = 0.0  # degrees, clockwise on screen
    scale: float = 1.0

    def __post_init__(self) -> None:
        for name in ("x_frac", "y_frac"):
            value = getattr(self, name)
            if not math.isfinite(value) or not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within 0..1, got {value}")
        if not math.isfinite(self.rotation):
            raise ValueError(f"rotation must be finite, got {self.rotation}")
        if not math.isfinite(self.scale) or not 0 < self.scale <= MAX_PLACEMENT_SCALE:
            raise ValueError(f"scale must be within (0, {MAX_PLACEMENT_SCALE}], got {self.scale}")


@dataclass(frozen=True)
class LayerDescriptor:
    """One draw of the stamp sprite in the emboss recipe."""
    name: str
    opacity: float
    blend_mode: BlendMode
    shadow_offset: Tuple[int, int] = (0, 0)
    shadow_blur: float = 0.0
    shadow_color: Optional[ShadowColor] = None  # None draws the sprite without a shadow
