# Mouse control - one move, one click

import math
import random
import time
from typing import Tuple

import pyautogui

# Slam the pointer into a screen corner to abort
pyautogui.FAILSAFE = True


class HumanMouse:
    # Eased pointer moves with a short hesitation and a held click

    def __init__(
        self,
        speed: float = 1.0,
        hesitate_range: Tuple[int, int] = (40, 120),
        hold_range: Tuple[float, float] = (0.05, 0.12)
    ) -> None:
        self.speed = speed
        self.hesitate_rng = hesitate_range
        self.hold_rng = hold_range

    def hesitate(self) -> None:
        ms = random.randint(*self.hesitate_rng)
        time.sleep(ms / 1000.0)

    def move_to(self, x: int, y: int) -> None:
        sx, sy = pyautogui.position()
        dist = math.hypot(x - sx, y - sy)
        # seconds per pixel, floor so short hops still ease in
        duration = max(0.08, dist * random.uniform(0.0002, 0.0004) / self.speed)
        pyautogui.moveTo(x, y, duration=duration, tween=pyautogui.easeInOutQuad, _pause=False)

    def click(self) -> Tuple[int, int]:
        pyautogui.mouseDown(_pause=False)
        time.sleep(random.uniform(*self.hold_rng))
        pyautogui.mouseUp(_pause=False)
        pos = pyautogui.position()
        return (pos[0], pos[1])

    def move_and_click(self, x: int, y: int, hesitate: bool = True) -> Tuple[int, int]:
        self.move_to(x, y)
        if hesitate:
            self.hesitate()
        return self.click()
