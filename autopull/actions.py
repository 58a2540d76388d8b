# Click dispatch - point in, click out, then let the UI settle

from typing import Callable, Optional, Tuple

from .cancel import CancellationToken
from .surface import Surface


class ActionDispatcher:

    def __init__(
        self,
        surface: Surface,
        token: CancellationToken,
        settle_delay: float = 0.3,
        log_fn: Optional[Callable[[str, str], None]] = None
    ) -> None:
        self._surface = surface
        self._token = token
        self.settle_delay = settle_delay
        self._log = log_fn or (lambda m, l: None)
        self.clicks = 0

    def click_at(self, point: Tuple[int, int]) -> Tuple[int, int]:
        """Move + click in screen coordinates. No check that it landed."""
        self._token.raise_if_cancelled()
        x, y = self._surface.move_and_click(point)
        self.clicks += 1
        self._log(f"Click executed @ {x},{y}", "CLICK")
        self.settle()
        return x, y

    def settle(self) -> None:
        # Give the game time to animate before the next capture
        self._token.sleep(self.settle_delay)
