"""
autopull/surface.py - The bit that touches the real desktop.

Everything above this layer talks to a Surface and never to pygetwindow,
mss or pyautogui directly, so tests can swap in a fake.

pygetwindow refuses to import on Linux and pyautogui wants a display the
moment it's imported, so both are pulled in only when actually used.
"""

from typing import TYPE_CHECKING, Any, Iterable, Optional, Protocol, Tuple, runtime_checkable

from .calibration import Bounds
from .errors import CaptureUnavailable
from .vision import Frame, ScreenCapture

if TYPE_CHECKING:
    from .human_input import HumanMouse


@runtime_checkable
class Surface(Protocol):
    def locate_surface(self, title_hint: str) -> Optional[Any]: ...
    def bring_to_front(self, handle: Any) -> None: ...
    def bounds(self, handle: Any) -> Bounds: ...
    def capture_screen(self) -> Frame: ...
    def move_and_click(self, point: Tuple[int, int]) -> Tuple[int, int]: ...


def check_window(window, open_windows: Iterable[Any]) -> None:
    """Raise CaptureUnavailable unless the window is still open, restored and focused."""
    title = getattr(window, "title", "") or "?"
    if not any(w == window for w in open_windows):
        raise CaptureUnavailable(f"window '{title}' was closed")
    if window.isMinimized:
        raise CaptureUnavailable(f"window '{title}' was minimised")
    if not window.isActive:
        raise CaptureUnavailable(f"window '{title}' lost focus")


class DesktopSurface:
    # pygetwindow for the window, mss for pixels, pyautogui for the pointer

    def __init__(self, monitor_index: int = 1, mouse: Optional["HumanMouse"] = None) -> None:
        self.screen = ScreenCapture(monitor_index=monitor_index)
        self._mouse = mouse
        # Set once locate_surface finds the game. Every capture checks it.
        self.window = None

    @property
    def mouse(self) -> "HumanMouse":
        if self._mouse is None:
            from .human_input import HumanMouse
            self._mouse = HumanMouse()
        return self._mouse

    def locate_surface(self, title_hint: str):
        import pygetwindow as gw

        hint = title_hint.lower()
        for window in gw.getAllWindows():
            if hint in (window.title or "").lower():
                self.window = window
                return window
        return None

    def bring_to_front(self, handle) -> None:
        if handle.isMinimized:
            handle.restore()
        handle.activate()

    def bounds(self, handle) -> Bounds:
        return Bounds(width=int(handle.width), height=int(handle.height))

    def capture_screen(self) -> Frame:
        if self.window is not None:
            import pygetwindow as gw
            check_window(self.window, gw.getAllWindows())
        return self.screen.capture()

    def move_and_click(self, point: Tuple[int, int]) -> Tuple[int, int]:
        return self.mouse.move_and_click(int(point[0]), int(point[1]))

    def close(self) -> None:
        self.screen.close()
