"""
autopull/calibration.py - Resolution scaling.

Templates were cut at a reference design resolution. The live window is
whatever size the player left it at. One factor, height only, computed
once per session and used for templates and thresholds alike.

Width is ignored on purpose: letterboxed windows keep their height ratio
but not their width ratio.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Tuple

from .config import ThresholdConfig
from .errors import TargetSurfaceNotFound

if TYPE_CHECKING:
    from .surface import Surface


@dataclass(frozen=True)
class Bounds:
    width: int
    height: int


def compute_scale(surface_height: float, reference_height: float) -> float:
    if surface_height <= 0:
        raise ValueError(f"surface height must be positive, got {surface_height}")
    if reference_height <= 0:
        raise ValueError(f"reference height must be positive, got {reference_height}")
    return surface_height / reference_height


def calibrate(surface: "Surface", title_hint: str, reference: Tuple[int, int]) -> Tuple[object, Bounds, float]:
    """
    Find the window, bring it forward, and derive the scale factor.

    Returns (handle, bounds, scale). Raises TargetSurfaceNotFound when the
    window is gone or has no usable size (minimised).
    """
    handle = surface.locate_surface(title_hint)
    if handle is None:
        raise TargetSurfaceNotFound(f"no window with '{title_hint}' in its title")
    surface.bring_to_front(handle)
    bounds = surface.bounds(handle)
    if bounds.width <= 0 or bounds.height <= 0:
        raise TargetSurfaceNotFound(f"window '{title_hint}' has no usable size ({bounds.width}x{bounds.height})")
    return handle, bounds, compute_scale(bounds.height, reference[1])


def _clamp_score(value: float) -> float:
    return max(-1.0, min(1.0, value))


@dataclass(frozen=True)
class ThresholdSet:
    draw: float
    confirm: float
    dismiss: float
    rare_outcome: float
    quality: float

    @classmethod
    def from_config(
        cls,
        cfg: ThresholdConfig,
        scale: float,
        log_fn: Optional[Callable[[str, str], None]] = None
    ) -> "ThresholdSet":
        log = log_fn or (lambda m, l: None)
        factor = scale if cfg.scale else 1.0
        values = {}
        for name in ("draw", "confirm", "dismiss", "rare_outcome", "quality"):
            base = getattr(cfg, name)
            scaled = base * factor
            clamped = _clamp_score(scaled)
            if clamped != scaled:
                hint = " - it will almost never match, set scale_thresholds=false" if clamped >= 1.0 else ""
                log(f"Threshold '{name}' {scaled:.3f} clamped to {clamped:.2f}{hint}", "WARN")
            values[name] = clamped
        return cls(**values)
