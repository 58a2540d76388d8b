"""Window liveness checks and the Surface protocol. No real desktop needed."""

import pytest

from autopull.errors import CaptureUnavailable
from autopull.surface import DesktopSurface, Surface, check_window

from tests.fakes import FakeSurface


class FakeWindow:
    def __init__(self, hwnd, title="BrownDust II", minimized=False, active=True):
        self.hwnd = hwnd
        self.title = title
        self.isMinimized = minimized
        self.isActive = active

    def __eq__(self, other):
        return isinstance(other, FakeWindow) and other.hwnd == self.hwnd


class TestCheckWindow:
    def test_open_and_focused(self):
        game = FakeWindow(7)
        check_window(game, [FakeWindow(1, "Explorer"), FakeWindow(7)])

    def test_closed(self):
        with pytest.raises(CaptureUnavailable, match="closed"):
            check_window(FakeWindow(7), [FakeWindow(1, "Explorer")])

    def test_minimised(self):
        game = FakeWindow(7, minimized=True)
        with pytest.raises(CaptureUnavailable, match="minimised"):
            check_window(game, [game])

    def test_lost_focus(self):
        game = FakeWindow(7, active=False)
        with pytest.raises(CaptureUnavailable, match="focus"):
            check_window(game, [game])


class TestSurfaceProtocol:
    def test_fake_and_desktop_both_qualify(self):
        assert isinstance(FakeSurface(), Surface)
        desktop = DesktopSurface()
        try:
            assert isinstance(desktop, Surface)
            assert desktop.window is None
        finally:
            desktop.close()
