"""
autopull/templates.py - Template loading and caching.

Templates live as PNGs in one directory, named by file stem ("draw",
"confirm", "5star"...). Each one is resized by the session scale factor
the first time it's asked for and cached for the life of the process.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import cv2
import numpy as np

from .errors import TemplateNotFound

TEMPLATE_EXTENSIONS = (".png",)


@dataclass(frozen=True)
class Template:
    name: str
    source: np.ndarray
    image: np.ndarray  # scaled, BGR

    @property
    def native_size(self) -> Tuple[int, int]:
        h, w = self.source.shape[:2]
        return w, h

    @property
    def size(self) -> Tuple[int, int]:
        h, w = self.image.shape[:2]
        return w, h

    @property
    def is_empty(self) -> bool:
        w, h = self.size
        return w == 0 or h == 0


def scale_image(image: np.ndarray, scale: float, interpolation: int) -> np.ndarray:
    h, w = image.shape[:2]
    new_w, new_h = int(round(w * scale)), int(round(h * scale))
    if new_w <= 0 or new_h <= 0:
        # Nothing left to match against; the engine rejects it
        return np.zeros((0, 0) + image.shape[2:], dtype=image.dtype)
    if (new_w, new_h) == (w, h):
        return image.copy()
    return cv2.resize(image, (new_w, new_h), interpolation=interpolation)


class TemplateStore:
    """
    Name -> Template cache.

    Reads never block on a running preload: a miss loads synchronously and
    the first writer wins, so two threads racing on the same name still end
    up sharing one decoded template.
    """

    def __init__(
        self,
        directory: str = "templates",
        scale: float = 1.0,
        log_fn: Optional[Callable[[str, str], None]] = None
    ) -> None:
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.directory = Path(directory)
        self.scale = scale
        # Fixed for the session so scores stay comparable
        self.interpolation = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LINEAR
        self._log = log_fn or (lambda m, l: None)
        self._cache: Dict[str, Template] = {}
        self._lock = threading.Lock()

    def available(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(
            p.stem for p in self.directory.iterdir()
            if p.is_file() and p.suffix.lower() in TEMPLATE_EXTENSIONS
        )

    def path_for(self, name: str) -> Path:
        for ext in TEMPLATE_EXTENSIONS:
            p = self.directory / f"{name}{ext}"
            if p.is_file():
                return p
        raise TemplateNotFound(f"template '{name}' not found in {self.directory}")

    def missing(self, names: Iterable[str]) -> List[str]:
        have = set(self.available())
        return [n for n in names if n not in have]

    def get(self, name: str) -> Template:
        cached = self._cache.get(name)
        if cached is not None:
            return cached
        return self._insert(self._load(name))

    def __contains__(self, name: str) -> bool:
        return name in self._cache

    def preload(self, names: Iterable[str]) -> threading.Thread:
        """Warm the cache in the background. Returns the (started) thread."""
        pending = list(names)

        def warm():
            for name in pending:
                if name in self._cache:
                    continue
                try:
                    self._insert(self._load(name))
                except (TemplateNotFound, ValueError) as e:
                    # get() will raise it again for whoever actually needs it
                    self._log(f"Preload skipped {name}: {e}", "WARN")

        thread = threading.Thread(target=warm, name="template-preload", daemon=True)
        thread.start()
        return thread

    def _insert(self, template: Template) -> Template:
        with self._lock:
            return self._cache.setdefault(template.name, template)

    def _load(self, name: str) -> Template:
        path = self.path_for(name)
        img = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if img is None:
            raise ValueError(f"could not decode template image {path}")
        scaled = scale_image(img, self.scale, self.interpolation)
        self._log(f"Template {name}: {img.shape[1]}x{img.shape[0]} -> {scaled.shape[1]}x{scaled.shape[0]}", "DEBUG")
        return Template(name=name, source=img, image=scaled)
