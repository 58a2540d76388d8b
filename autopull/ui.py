# Dashboard UI

import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Optional

from rich.align import Align
from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .stats import PullStats

VERSION = "v0.3.0"

COLORS = {
    "border": "#334155",
    "muted": "#64748b",
    "text": "#e2e8f0",
    "text_dim": "#94a3b8",
    "heading": "#eab308",
    "success": "#10b981",
    "warn": "#f59e0b",
    "error": "#ef4444",
    "info": "#3b82f6",
    "click": "#10b981",
    "debug": "#64748b",
    "idle": "#64748b",
    "active": "#10b981",
}

HEADER = "★ ★ ★  AUTO-PULL  ★ ★ ★"


class LogBuffer:
    def __init__(self, max_lines: int = 15) -> None:
        self._lines = deque(maxlen=max_lines)
        self._lock = threading.Lock()

    def add(self, message: str, level: str = "INFO") -> None:
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        with self._lock:
            self._lines.append((timestamp, level, message))

    def get_all(self):
        with self._lock: return list(self._lines)


class Dashboard:
    STATUS_IDLE = "idle"
    STATUS_RUNNING = "running"
    STATUS_STOPPED = "stopped"
    STATUS_ERROR = "error"

    def __init__(self, stats: PullStats, refresh_ms: int = 100, cancel_key: str = "esc") -> None:
        self._live: Optional[Live] = None
        self._refresh_ms = refresh_ms
        self._cancel_key = cancel_key.upper()
        self._console = Console()
        self._stats = stats
        self._log = LogBuffer(max_lines=50)
        self._status = self.STATUS_IDLE
        self._status_detail = ""
        self._step = ""
        self._started = datetime.now()
        self._lock = threading.Lock()

    @property
    def stats(self) -> PullStats: return self._stats

    @property
    def status(self) -> str: return self._status

    def log(self, message: str, level: str = "INFO"):
        self._log.add(message, level)

    def set_status(self, status: str, detail: str = ""):
        with self._lock:
            self._status = status
            self._status_detail = detail

    def set_step(self, step: str):
        with self._lock: self._step = step

    def start(self):
        self._started = datetime.now()
        self._live = Live(
            self._render(), console=self._console,
            refresh_per_second=1000 // self._refresh_ms,
            screen=True, transient=False
        )
        self._live.start()

    def update(self):
        if self._live: self._live.update(self._render())

    def stop(self):
        if self._live:
            self._live.stop()
            self._live = None

    def _runtime(self) -> str:
        total = max(0, int((datetime.now() - self._started) / timedelta(seconds=1)))
        h, rem = divmod(total, 3600)
        m, s = divmod(rem, 60)
        return f"{h:02d}:{m:02d}:{s:02d}"

    def _render(self):
        layout = Layout()
        layout.split(
            Layout(name="header", size=4),
            Layout(name="middle", size=11),
            Layout(name="log", ratio=1, minimum_size=5),
            Layout(name="footer", size=3)
        )
        layout["middle"].split_row(
            Layout(name="stats", ratio=2),
            Layout(name="histogram", ratio=1)
        )
        layout["header"].update(self._render_header())
        layout["stats"].update(self._render_stats())
        layout["histogram"].update(self._render_histogram())
        layout["log"].update(self._render_log())
        layout["footer"].update(self._render_footer())
        return layout

    def _render_header(self):
        colors = {
            self.STATUS_IDLE: COLORS['idle'],
            self.STATUS_RUNNING: COLORS['active'],
            self.STATUS_STOPPED: COLORS['warn'],
            self.STATUS_ERROR: COLORS['error'],
        }
        badge = Text(f" ● {self._status.capitalize()} ", style=f"bold {colors.get(self._status, COLORS['muted'])}")
        subtitle = Text()
        subtitle.append(f"  {VERSION}  ", style=f"bold {COLORS['text_dim']}")
        subtitle.append("│", style=COLORS['border'])
        subtitle.append_text(badge)
        if self._step:
            subtitle.append(f" {self._step}", style=f"bold {COLORS['text']}")
        if self._status_detail:
            subtitle.append(f"  {self._status_detail}", style=COLORS['text_dim'])
        title = Text(HEADER, style=f"bold {COLORS['heading']}")
        return Panel(Group(Align.center(title), Align.center(subtitle)), border_style=COLORS['border'])

    def _render_stats(self):
        s = self._stats
        table = Table.grid(padding=(0, 2), expand=True)
        table.add_column("L", justify="right", style=COLORS['muted'])
        table.add_column("V", justify="left", style=f"bold {COLORS['text']}")
        table.add_row("Runtime", self._runtime())
        table.add_row("Cycles", str(s.session_cycles))
        table.add_row("Pulls", f"{s.session_pulls} (lifetime {s.pulls})")
        table.add_row("Last ★5", "-" if s.last_count is None else str(s.last_count))
        if s.last_quality is not None:
            table.add_row("Quality", str(s.last_quality))
        return Panel(table, title=f"[{COLORS['heading']}]Session[/]", border_style=COLORS['border'])

    def _render_histogram(self):
        hist = self._stats.to_dict()["fiveStars"]
        table = Table.grid(padding=(0, 2), expand=True)
        table.add_column("★5", justify="right", style=COLORS['muted'])
        table.add_column("Cycles", justify="left", style=f"bold {COLORS['text']}")
        for key in sorted(hist, key=lambda k: int(k) if k.lstrip("-").isdigit() else 0):
            table.add_row(f"{key} ★5", str(hist[key]))
        body = table if hist else Align.center(Text("No cycles yet", style=COLORS['text_dim']))
        return Panel(body, title=f"[{COLORS['heading']}]Histogram[/]", border_style=COLORS['border'])

    def _render_log(self):
        lines = self._log.get_all()
        term_height = self._console.size.height
        avail = max(3, term_height - 22)
        visible = lines[-avail:] if lines else []

        if not visible:
            return Panel(Align.center(Text("Waiting...", style=COLORS['muted'])), title=f"[{COLORS['heading']}]Log[/]", border_style=COLORS['border'])

        text = Text()
        for ts, lvl, msg in visible:
            text.append(f" {ts} ", style=COLORS['text_dim'])
            c = COLORS.get(lvl.lower(), COLORS['info'])
            text.append(f"[{lvl:^7}]", style=f"bold {c}")
            text.append(f" {msg}\n", style=COLORS['text'])

        return Panel(Align(text, vertical="bottom"), title=f"[{COLORS['heading']}]Event Log[/]", border_style=COLORS['border'])

    def _render_footer(self):
        f = Text()
        f.append(f"  {self._cancel_key} Stop  ", style=COLORS['muted'])
        f.append(f"  Stats → {self._stats.path}", style=COLORS['text_dim'])
        return Panel(Align.center(f), border_style=COLORS['border'])


def make_logger(dash: Dashboard, debug: bool = False) -> Callable[[str, str], None]:
    def log(msg: str, level: str = "INFO"):
        if level == "DEBUG" and not debug:
            return
        dash.log(msg, level)
        dash.update()
    return log
