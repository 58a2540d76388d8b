"""
autopull package - the perception-action loop

cancel.py      - Cooperative cancellation token
config.py      - settings.txt parsing and typed configuration
stats.py       - Pull counters with JSON persistence
calibration.py - Window scale factor and threshold scaling
templates.py   - Template loading, scaling and caching
vision.py      - Screen capture (mss), ROI and template matching (OpenCV)
actions.py     - Click dispatch with settle delay
puller.py      - The draw / confirm / dismiss / evaluate state machine
human_input.py - Pointer movement (pyautogui)
surface.py     - Desktop window, capture and pointer boundary
ui.py          - Rich terminal dashboard

human_input.py imports pyautogui, which needs a real display, so it is not
re-exported here. surface.py only pulls it in on the first click.
"""

from .cancel import CancellationToken
from .config import AppConfig, load_config, load_settings
from .stats import PullStats
from .calibration import Bounds, ThresholdSet, compute_scale, calibrate
from .templates import Template, TemplateStore
from .vision import Frame, ScreenCapture, Roi, clamp_roi, MatchMode, MatchCandidate, MatchResult, MatchEngine
from .actions import ActionDispatcher
from .puller import PullStateMachine, PullState, Session, StopReason
from .surface import Surface, DesktopSurface, check_window

__all__ = [
    "CancellationToken",
    "AppConfig", "load_config", "load_settings",
    "PullStats",
    "Bounds", "ThresholdSet", "compute_scale", "calibrate",
    "Template", "TemplateStore",
    "Frame", "ScreenCapture", "Roi", "clamp_roi", "MatchMode", "MatchCandidate", "MatchResult", "MatchEngine",
    "ActionDispatcher",
    "PullStateMachine", "PullState", "Session", "StopReason",
    "Surface", "DesktopSurface", "check_window",
]
