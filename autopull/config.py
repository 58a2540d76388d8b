"""
autopull/config.py - The Knobs and Dials

settings.txt is flat key=value. No sections, no quoting, no nonsense.
If it's missing we write the defaults and carry on.

Values go through YAML scalar rules: "2" is an int, "0.9" is a float,
"true"/"false" are bools. Anything else stays a string, untouched.
Only the YAML 1.2 core forms count, so "010" is 10 (not octal 8), "1:30"
stays text (not 90 seconds) and "on"/"no" stay text (not bools).
Keys we don't know about are kept in AppConfig.extras so nothing you
put in the file silently disappears.

Old settings files used camelCase (fiveStarsToPull=3). Those names still
work, see SETTING_ALIASES.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import SettingsError


SETTINGS_FILE = "settings.txt"

DRAW_MODES = ("until_gone", "once")

# Order matters - this is the order the default file is written in
DEFAULT_SETTINGS: Dict[str, Any] = {
    # When to stop
    "five_stars_to_pull": 2,
    "five_stars_to_screenshot": 1,
    "quality_target": 0,
    "quality_templates": "",
    # Thresholds (base values, scaled at session start)
    "draw_threshold": 0.6,
    "confirm_threshold": 0.6,
    "next_threshold": 0.5,
    "five_star_threshold": 0.9,
    "quality_threshold": 0.85,
    "scale_thresholds": True,
    # Where to look
    "draw_anchor": "",
    "confirm_anchor": "",
    "next_anchor": "",
    "five_star_anchor": "",
    "roi_size": 400,
    # How to loop
    "draw_mode": "until_gone",
    "max_repeat_clicks": 25,
    # The game window
    "window_title": "browndust",
    "reference_width": 2560,
    "reference_height": 1080,
    "monitor": 1,
    # Timing
    "settle_delay_ms": 300,
    "poll_interval_ms": 50,
    # Matching
    "match_workers": 1,
    "grayscale": True,
    # Keys and paths
    "cancel_key": "esc",
    "template_dir": "templates",
    "screenshot_dir": "screenshots",
    "stats_file": "log.txt",
    "debug": False,
}

# Old camelCase key -> current key. The current key wins if both are set.
SETTING_ALIASES: Dict[str, str] = {
    "fiveStarsToPull": "five_stars_to_pull",
    "fiveStarsToScreenshot": "five_stars_to_screenshot",
}


class _ScalarLoader(yaml.SafeLoader):
    """SafeLoader that only knows YAML 1.2 core bools, ints and floats."""


_ScalarLoader.yaml_implicit_resolvers = {}
_ScalarLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"))
_ScalarLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    re.compile(r"^[-+]?[0-9]+$"),
    list("-+0123456789"))
_ScalarLoader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(r"^[-+]?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?$"),
    list("-+.0123456789"))
# Plain base 10, leading zeros and all
_ScalarLoader.add_constructor(
    "tag:yaml.org,2002:int",
    lambda loader, node: int(loader.construct_scalar(node)))


# ═══════════════════════════════════════════════════════════════════════════════
# PARSING
# ═══════════════════════════════════════════════════════════════════════════════

def coerce_value(raw: str) -> Any:
    """Numbers and bools become numbers and bools. Everything else stays text."""
    if raw == "":
        return raw
    try:
        value = yaml.load(raw, Loader=_ScalarLoader)
    except yaml.YAMLError:
        return raw
    if isinstance(value, (bool, int, float)):
        return value
    return raw


def parse_settings(text: str) -> Dict[str, Any]:
    settings: Dict[str, Any] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if key:
            settings[key] = coerce_value(value.strip())
    return settings


def format_settings(settings: Dict[str, Any]) -> str:
    return "\n".join(f"{key}={value}" for key, value in settings.items()) + "\n"


def load_settings(path: str = SETTINGS_FILE) -> Dict[str, Any]:
    """
    Read settings.txt over the defaults. Missing file = write defaults first.
    """
    settings_path = Path(path)
    if not settings_path.exists():
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        settings_path.write_text(format_settings(DEFAULT_SETTINGS), encoding="utf-8")
        return dict(DEFAULT_SETTINGS)

    settings = dict(DEFAULT_SETTINGS)
    settings.update(parse_settings(settings_path.read_text(encoding="utf-8")))
    return settings


def parse_point(value: Any, key: str = "") -> Optional[Tuple[int, int]]:
    """'1280,900' -> (1280, 900). Empty -> None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parts = [p.strip() for p in str(value).split(",")]
    try:
        if len(parts) != 2:
            raise ValueError(value)
        return int(float(parts[0])), int(float(parts[1]))
    except ValueError:
        raise SettingsError(f"{key or 'anchor'}: expected 'x,y', got {value!r}") from None


def parse_names(value: Any) -> List[str]:
    if not isinstance(value, str):
        value = str(value)
    return [name.strip() for name in value.split(",") if name.strip()]


# ═══════════════════════════════════════════════════════════════════════════════
# TYPED VIEW
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class StopConfig:
    # Stop once a single cycle shows this many rare outcomes
    five_stars_to_pull: int = 2
    # Save a screenshot once a cycle shows at least this many. 0 = never.
    five_stars_to_screenshot: int = 1
    # Quality score target. 0 = ignore quality entirely.
    quality_target: int = 0
    quality_templates: List[str] = field(default_factory=list)


@dataclass
class ThresholdConfig:
    # Base thresholds, before scaling
    draw: float = 0.6
    confirm: float = 0.6
    dismiss: float = 0.5
    rare_outcome: float = 0.9
    quality: float = 0.85
    scale: bool = True


@dataclass
class AnchorConfig:
    # ROI centre hints in frame pixels. None = search the whole frame.
    draw: Optional[Tuple[int, int]] = None
    confirm: Optional[Tuple[int, int]] = None
    dismiss: Optional[Tuple[int, int]] = None
    rare_outcome: Optional[Tuple[int, int]] = None
    roi_size: int = 400


@dataclass
class LoopConfig:
    draw_mode: str = "until_gone"
    max_repeat_clicks: int = 25
    settle_delay: float = 0.3
    poll_interval: float = 0.05


@dataclass
class DisplayConfig:
    window_title: str = "browndust"
    reference_width: int = 2560
    reference_height: int = 1080
    monitor: int = 1


@dataclass
class MatchingConfig:
    workers: int = 1
    grayscale: bool = True


@dataclass
class PathsConfig:
    template_dir: str = "templates"
    screenshot_dir: str = "screenshots"
    stats_file: str = "log.txt"


@dataclass
class AppConfig:
    """
    Everything bundled together. Build it with load_config() or
    AppConfig.from_settings() - don't fill the sections in by hand.
    """
    stop: StopConfig = field(default_factory=StopConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    anchors: AnchorConfig = field(default_factory=AnchorConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    cancel_key: str = "esc"
    debug: bool = False
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "AppConfig":
        s = dict(DEFAULT_SETTINGS)
        for old, new in SETTING_ALIASES.items():
            if old in settings and new not in settings:
                s[new] = settings[old]
        s.update(settings)

        draw_mode = str(s["draw_mode"]).strip().lower()
        if draw_mode not in DRAW_MODES:
            raise SettingsError(f"draw_mode: expected one of {DRAW_MODES}, got {s['draw_mode']!r}")

        try:
            return cls(
                stop=StopConfig(
                    five_stars_to_pull=int(s["five_stars_to_pull"]),
                    five_stars_to_screenshot=int(s["five_stars_to_screenshot"]),
                    quality_target=int(s["quality_target"]),
                    quality_templates=parse_names(s["quality_templates"]),
                ),
                thresholds=ThresholdConfig(
                    draw=float(s["draw_threshold"]),
                    confirm=float(s["confirm_threshold"]),
                    dismiss=float(s["next_threshold"]),
                    rare_outcome=float(s["five_star_threshold"]),
                    quality=float(s["quality_threshold"]),
                    scale=bool(s["scale_thresholds"]),
                ),
                anchors=AnchorConfig(
                    draw=parse_point(s["draw_anchor"], "draw_anchor"),
                    confirm=parse_point(s["confirm_anchor"], "confirm_anchor"),
                    dismiss=parse_point(s["next_anchor"], "next_anchor"),
                    rare_outcome=parse_point(s["five_star_anchor"], "five_star_anchor"),
                    roi_size=int(s["roi_size"]),
                ),
                loop=LoopConfig(
                    draw_mode=draw_mode,
                    max_repeat_clicks=int(s["max_repeat_clicks"]),
                    settle_delay=float(s["settle_delay_ms"]) / 1000.0,
                    poll_interval=float(s["poll_interval_ms"]) / 1000.0,
                ),
                display=DisplayConfig(
                    window_title=str(s["window_title"]),
                    reference_width=int(s["reference_width"]),
                    reference_height=int(s["reference_height"]),
                    monitor=int(s["monitor"]),
                ),
                matching=MatchingConfig(
                    workers=max(1, int(s["match_workers"])),
                    grayscale=bool(s["grayscale"]),
                ),
                paths=PathsConfig(
                    template_dir=str(s["template_dir"]),
                    screenshot_dir=str(s["screenshot_dir"]),
                    stats_file=str(s["stats_file"]),
                ),
                cancel_key=str(s["cancel_key"]),
                debug=bool(s["debug"]),
                extras={
                    k: v for k, v in settings.items()
                    if k not in DEFAULT_SETTINGS and k not in SETTING_ALIASES
                },
            )
        except (TypeError, ValueError) as e:
            raise SettingsError(f"bad settings value: {e}") from e


def load_config(path: str = SETTINGS_FILE) -> AppConfig:
    return AppConfig.from_settings(load_settings(path))
