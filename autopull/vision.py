"""
autopull/vision.py - Screen capture and template matching.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import cv2
import mss
import mss.exception
import numpy as np

from .errors import CaptureUnavailable, TemplateLargerThanSearchArea
from .templates import Template, TemplateStore

# Written over a reported match so it can't be picked again.
# Below any real TM_CCOEFF_NORMED score.
SUPPRESSED = -2.0


@dataclass(frozen=True)
class Frame:
    # One captured screen. BGRA, read-only.
    pixels: np.ndarray
    left: int = 0
    top: int = 0

    @classmethod
    def from_array(cls, image: np.ndarray, left: int = 0, top: int = 0) -> "Frame":
        """Wrap a gray, BGR or BGRA array. Always copies."""
        if image.ndim == 2:
            bgra = cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
        elif image.shape[2] == 3:
            bgra = cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
        elif image.shape[2] == 4:
            bgra = image.copy()
        else:
            raise ValueError(f"unsupported frame shape {image.shape}")
        bgra = np.ascontiguousarray(bgra, dtype=np.uint8)
        bgra.flags.writeable = False
        return cls(pixels=bgra, left=left, top=top)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def crop(self, roi: "Roi") -> np.ndarray:
        return self.pixels[roi.y:roi.y + roi.height, roi.x:roi.x + roi.width]

    def to_screen(self, point: Tuple[int, int]) -> Tuple[int, int]:
        return self.left + point[0], self.top + point[1]


class ScreenCapture:
    # Screen grabber using mss (way faster than pyautogui)

    def __init__(self, monitor_index: int = 1) -> None:
        self._sct: Optional[mss.mss] = None
        self.monitor_index = monitor_index

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_str, exc_tb):
        self.close()

    def close(self) -> None:
        if self._sct:
            self._sct.close()
            self._sct = None

    def capture(self) -> Frame:
        try:
            if not self._sct:
                self._sct = mss.mss()
            # Pick the right monitor (clamped to valid range)
            monitor_idx = max(0, min(self.monitor_index, len(self._sct.monitors) - 1))
            monitor = self._sct.monitors[monitor_idx]
            img = self._sct.grab(monitor)
        except mss.exception.ScreenShotError as e:
            raise CaptureUnavailable(f"screen capture failed: {e}") from e

        # mss hands back BGRA already
        pixels = np.array(img, dtype=np.uint8)
        pixels.flags.writeable = False
        return Frame(pixels=pixels, left=monitor["left"], top=monitor["top"])


def save_screenshot(frame: Frame, directory: Union[str, Path], label: str = "screenshot") -> Path:
    out = Path(directory)
    out.mkdir(parents=True, exist_ok=True)
    ts = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
    path = out / f"{label}-{ts}.png"
    if not cv2.imwrite(str(path), frame.pixels):
        raise OSError(f"could not write screenshot {path}")
    return path


# ═══════════════════════════════════════════════════════════════════════════════
# ROI
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Roi:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def full(cls, frame_width: int, frame_height: int) -> "Roi":
        return cls(0, 0, frame_width, frame_height)


def clamp_roi(
    center: Optional[Tuple[int, int]],
    roi_size: int,
    frame_width: int,
    frame_height: int
) -> Roi:
    """
    Square of side roi_size centred on center, shifted to stay inside the
    frame. Truncated only when the frame itself is smaller than roi_size.
    No center = whole frame.
    """
    if center is None:
        return Roi.full(frame_width, frame_height)
    if roi_size <= 0:
        raise ValueError(f"roi_size must be positive, got {roi_size}")

    cx, cy = center
    x = int(cx) - roi_size // 2
    y = int(cy) - roi_size // 2
    x = max(0, min(x, frame_width - roi_size))
    y = max(0, min(y, frame_height - roi_size))
    return Roi(x, y, min(roi_size, frame_width - x), min(roi_size, frame_height - y))


# ═══════════════════════════════════════════════════════════════════════════════
# MATCHING
# ═══════════════════════════════════════════════════════════════════════════════

class MatchMode(str, Enum):
    BEST = "best"   # single best location, for clicking
    ALL = "all"     # every non-overlapping hit, for counting


@dataclass(frozen=True)
class MatchCandidate:
    name: str
    score: float
    x: int  # top-left, full-frame coordinates
    y: int
    width: int
    height: int

    @property
    def center(self) -> Tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2


@dataclass(frozen=True)
class MatchResult:
    mode: MatchMode
    candidates: Tuple[MatchCandidate, ...] = ()
    best_scores: Dict[str, float] = field(default_factory=dict)
    skipped: Tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.candidates)

    @property
    def best(self) -> Optional[MatchCandidate]:
        # max() keeps the first of equal scores, so input order breaks ties
        if not self.candidates:
            return None
        return max(self.candidates, key=lambda c: c.score)

    def counts(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for c in self.candidates:
            out[c.name] = out.get(c.name, 0) + 1
        return out

    def __bool__(self) -> bool:
        return bool(self.candidates)

    def __len__(self) -> int:
        return len(self.candidates)


class MatchEngine:
    """
    Normalized correlation (TM_CCOEFF_NORMED) of templates against a frame.

    Each template is searched on its own against its own score buffer, so
    two different templates hitting the same spot both count.
    """

    def __init__(
        self,
        store: TemplateStore,
        grayscale: bool = True,
        workers: int = 1,
        debug_path: Optional[Path] = None,
        log_fn: Optional[Callable[[str, str], None]] = None
    ) -> None:
        self._store = store
        self._gray = grayscale
        self._workers = max(1, workers)
        self._pool: Optional[ThreadPoolExecutor] = None
        self._debug = debug_path
        self._log = log_fn or (lambda m, l: None)

    def close(self) -> None:
        if self._pool:
            self._pool.shutdown(wait=True)
            self._pool = None

    def match(
        self,
        frame: Frame,
        names: Union[str, Sequence[str]],
        mode: MatchMode = MatchMode.BEST,
        threshold: float = 0.8,
        roi: Optional[Roi] = None
    ) -> MatchResult:
        if isinstance(names, str):
            names = [names]
        mode = MatchMode(mode)
        if not -1.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [-1, 1], got {threshold}")

        roi = roi or Roi.full(frame.width, frame.height)
        surface = self._prepare(frame.crop(roi))
        templates = [self._store.get(n) for n in names]

        def run(template: Template):
            try:
                return self._search(surface, template, mode, threshold, roi)
            except TemplateLargerThanSearchArea as e:
                self._log(f"Skipped {template.name}: {e}", "WARN")
                return None

        if self._workers > 1 and len(templates) > 1:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="match")
            outcomes = list(self._pool.map(run, templates))
        else:
            outcomes = [run(t) for t in templates]

        candidates: List[MatchCandidate] = []
        best_scores: Dict[str, float] = {}
        skipped: List[str] = []
        for template, outcome in zip(templates, outcomes):
            if outcome is None:
                skipped.append(template.name)
                continue
            top, found = outcome
            best_scores[template.name] = top
            candidates.extend(found)
            self._log(f"{template.name}: best {top:.3f} ({len(found)} >= {threshold:.2f})", "DEBUG")

        result = MatchResult(
            mode=mode,
            candidates=tuple(candidates),
            best_scores=best_scores,
            skipped=tuple(skipped),
        )
        if result and self._debug:
            self._save_debug(frame, result)
        return result

    def _prepare(self, image: np.ndarray) -> np.ndarray:
        if self._gray:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)

    def _template_image(self, template: Template) -> np.ndarray:
        img = template.image
        if self._gray and img.ndim == 3 and img.size:
            return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        return img

    def _search(
        self,
        surface: np.ndarray,
        template: Template,
        mode: MatchMode,
        threshold: float,
        roi: Roi
    ) -> Tuple[float, List[MatchCandidate]]:
        t_img = self._template_image(template)
        th, tw = t_img.shape[:2]
        sh, sw = surface.shape[:2]
        if template.is_empty or tw > sw or th > sh:
            raise TemplateLargerThanSearchArea(template.name, (tw, th), (sw, sh))

        # Owned by this call; suppression writes into it
        scores = cv2.matchTemplate(surface, t_img, cv2.TM_CCOEFF_NORMED)
        np.nan_to_num(scores, copy=False, nan=-1.0, posinf=1.0, neginf=-1.0)
        np.clip(scores, -1.0, 1.0, out=scores)

        _, top, _, loc = cv2.minMaxLoc(scores)
        found: List[MatchCandidate] = []

        if mode is MatchMode.BEST:
            if top >= threshold:
                found.append(self._candidate(template.name, top, loc, tw, th, roi))
            return top, found

        max_val, (x, y) = top, loc
        while max_val >= threshold and max_val > SUPPRESSED:
            found.append(self._candidate(template.name, max_val, (x, y), tw, th, roi))
            # Every location whose footprint overlaps this one
            x0, y0 = max(0, x - tw + 1), max(0, y - th + 1)
            scores[y0:y + th, x0:x + tw] = SUPPRESSED
            _, max_val, _, (x, y) = cv2.minMaxLoc(scores)
        return top, found

    @staticmethod
    def _candidate(name: str, score: float, loc: Tuple[int, int], w: int, h: int, roi: Roi) -> MatchCandidate:
        return MatchCandidate(
            name=name,
            score=float(score),
            x=int(loc[0]) + roi.x,
            y=int(loc[1]) + roi.y,
            width=w,
            height=h,
        )

    def _save_debug(self, frame: Frame, result: MatchResult) -> None:
        self._debug.mkdir(parents=True, exist_ok=True)
        vis = cv2.cvtColor(frame.pixels, cv2.COLOR_BGRA2BGR)
        for c in result.candidates:
            cv2.rectangle(vis, (c.x, c.y), (c.x + c.width, c.y + c.height), (0, 255, 0), 2)
            cv2.putText(vis, f"{c.name} {c.score:.2f}",
                        (c.x, max(0, c.y - 10)), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 255, 0), 1)
        ts = int(time.time() * 1000)
        names = "_".join(sorted(result.counts()))
        path = self._debug / f"match_{names}_{result.mode.value}_{ts}.png"
        if not cv2.imwrite(str(path), vis):
            self._log(f"Could not write debug image {path}", "WARN")
