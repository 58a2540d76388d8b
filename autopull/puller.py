"""
autopull/puller.py - The pull loop.

    Idle -> Drawing -> Confirming -> DismissingOverlays -> Evaluating -> Idle | Stopped

One trip from Drawing to Evaluating is a cycle. Stats are written once
per completed cycle, plus a final flush on the way out whatever the
reason. Cancellation can land anywhere and is a clean stop.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .actions import ActionDispatcher
from .calibration import ThresholdSet
from .cancel import CancellationToken
from .config import AppConfig
from .errors import Cancelled, TargetReached
from .stats import PullStats
from .surface import Surface
from .vision import Frame, MatchEngine, MatchMode, MatchResult, clamp_roi, save_screenshot

# Template names (file stems in the template directory)
DRAW = "draw"
CONFIRM = "confirm"
NEXT = "next"
FIVE_STAR = "5star"


def required_templates(cfg: AppConfig) -> List[str]:
    names = [DRAW, CONFIRM, NEXT, FIVE_STAR]
    names.extend(n for n in cfg.stop.quality_templates if n not in names)
    return names


@dataclass(frozen=True)
class Session:
    # Per-run context handed to every stage instead of module globals
    token: CancellationToken
    thresholds: ThresholdSet


class PullState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    CONFIRMING = "confirming"
    DISMISSING = "dismissing"
    EVALUATING = "evaluating"
    STOPPED = "stopped"


class StopReason(str, Enum):
    TARGET_REACHED = "target_reached"
    CANCELLED = "cancelled"


class PullStateMachine:

    def __init__(
        self,
        session: Session,
        surface: Surface,
        engine: MatchEngine,
        dispatcher: ActionDispatcher,
        stats: PullStats,
        cfg: AppConfig,
        log_fn: Optional[Callable[[str, str], None]] = None,
        on_state: Optional[Callable[[PullState, str], None]] = None
    ) -> None:
        self.session = session
        self._token = session.token
        self._surface = surface
        self._engine = engine
        self._dispatcher = dispatcher
        self.stats = stats
        self.cfg = cfg
        self._log = log_fn or (lambda m, l: None)
        self._on_state = on_state or (lambda s, d: None)
        self.state = PullState.IDLE
        self.stop_reason: Optional[StopReason] = None

    def _set_state(self, state: PullState, detail: str = "") -> None:
        self.state = state
        self._on_state(state, detail)

    # ── primitives ─────────────────────────────────────────────────────────

    def capture(self) -> Frame:
        return self._token.run(self._surface.capture_screen)

    def find(
        self,
        name,
        threshold: float,
        anchor: Optional[Tuple[int, int]] = None,
        mode: MatchMode = MatchMode.BEST
    ) -> Tuple[Frame, MatchResult]:
        frame = self.capture()
        roi = None
        if anchor is not None:
            roi = clamp_roi(anchor, self.cfg.anchors.roi_size, frame.width, frame.height)
        result = self._token.run(self._engine.match, frame, name, mode, threshold, roi)
        return frame, result

    def find_and_click(self, name: str, threshold: float, anchor: Optional[Tuple[int, int]] = None) -> bool:
        frame, result = self.find(name, threshold, anchor, MatchMode.BEST)
        if not result:
            self._dispatcher.settle()
            return False
        best = result.best
        self._log(f"Match: {name} ({best.score:.2f})", "INFO")
        self._dispatcher.click_at(frame.to_screen(best.center))
        return True

    def click_until_gone(self, name: str, threshold: float, anchor: Optional[Tuple[int, int]] = None) -> int:
        """Keep clicking while the control is still there. Returns click count."""
        clicks = 0
        limit = self.cfg.loop.max_repeat_clicks
        while self.find_and_click(name, threshold, anchor):
            clicks += 1
            if limit > 0 and clicks >= limit:
                self._log(f"{name} still visible after {clicks} clicks, moving on", "WARN")
                break
        return clicks

    # ── states ─────────────────────────────────────────────────────────────

    def draw(self) -> None:
        self._set_state(PullState.DRAWING)
        thr, anchor = self.session.thresholds.draw, self.cfg.anchors.draw
        if self.cfg.loop.draw_mode == "once":
            self.find_and_click(DRAW, thr, anchor)
        else:
            self.click_until_gone(DRAW, thr, anchor)

    def confirm(self) -> bool:
        self._set_state(PullState.CONFIRMING)
        clicked = self.find_and_click(CONFIRM, self.session.thresholds.confirm, self.cfg.anchors.confirm)
        if clicked:
            self.stats.record_pull()
        return clicked

    def dismiss_overlays(self) -> int:
        self._set_state(PullState.DISMISSING)
        return self.click_until_gone(NEXT, self.session.thresholds.dismiss, self.cfg.anchors.dismiss)

    def evaluate(self) -> Tuple[int, Optional[int]]:
        self._set_state(PullState.EVALUATING)
        thresholds, stop = self.session.thresholds, self.cfg.stop

        frame, result = self.find(FIVE_STAR, thresholds.rare_outcome, self.cfg.anchors.rare_outcome, MatchMode.ALL)
        count = result.count

        # Quality runs every cycle, against the same frame
        quality = None
        if stop.quality_templates:
            q = self._token.run(self._engine.match, frame, stop.quality_templates, MatchMode.ALL, thresholds.quality)
            quality = q.count
            self._log(f"Quality score: {quality} {q.counts()}", "INFO")

        if count > 0:
            self._log(f"Five stars pulled: {count}", "SUCCESS")
        if 0 < stop.five_stars_to_screenshot <= count:
            self._screenshot(frame, f"5star-{count}")

        self.stats.record_cycle(count, quality)
        self.stats.save()
        return count, quality

    def _screenshot(self, frame: Frame, label: str) -> None:
        try:
            path = save_screenshot(frame, Path(self.cfg.paths.screenshot_dir), label)
        except OSError as e:
            self._log(f"Screenshot failed: {e}", "WARN")
            return
        self._log(f"Screenshot saved: {path}", "SUCCESS")

    def target_reached(self, count: int, quality: Optional[int]) -> bool:
        stop = self.cfg.stop
        if stop.five_stars_to_pull > 0 and count >= stop.five_stars_to_pull:
            return True
        if stop.quality_target > 0 and quality is not None and quality >= stop.quality_target:
            return True
        return False

    # ── loop ───────────────────────────────────────────────────────────────

    def run_cycle(self) -> Tuple[int, Optional[int]]:
        self.draw()
        self.confirm()
        self.dismiss_overlays()
        count, quality = self.evaluate()
        if self.target_reached(count, quality):
            raise TargetReached(count, quality or 0)
        self._set_state(PullState.IDLE)
        return count, quality

    def run(self) -> StopReason:
        """
        Cycle until the target is hit or the user cancels.

        Anything else (CaptureUnavailable, a crash) propagates, but a pull
        already recorded this cycle is still written out first.
        """
        try:
            while True:
                self.run_cycle()
        except TargetReached as e:
            self.stop_reason = StopReason.TARGET_REACHED
            self._log(f"Target reached: {e.count} five stars (quality {e.quality})", "SUCCESS")
        except Cancelled:
            self.stop_reason = StopReason.CANCELLED
            self._log("Aborted by user", "WARN")
        finally:
            self.stats.flush()
            self._set_state(PullState.STOPPED, self.stop_reason.value if self.stop_reason else "error")
        return self.stop_reason
