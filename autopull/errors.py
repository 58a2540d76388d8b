"""
autopull/errors.py - Everything that can go wrong, and a few things that go right.

Cancelled and TargetReached are not faults. They unwind the loop the same
way an error would, but the state machine treats them as a clean stop.
"""


class AutoPullError(Exception):
    """Base for every error raised by the package."""


class Cancelled(AutoPullError):
    """User pressed the cancel key. Clean stop, not logged as an error."""


class TargetReached(AutoPullError):
    """Configured stop condition fired after a completed cycle."""

    def __init__(self, count: int, quality: int = 0) -> None:
        super().__init__(f"target reached (count={count}, quality={quality})")
        self.count = count
        self.quality = quality


class CaptureUnavailable(AutoPullError):
    """Screen pixels could not be read."""


class TargetSurfaceNotFound(AutoPullError):
    """Game window could not be located. No scale can be computed without it."""


class TemplateNotFound(AutoPullError, FileNotFoundError):
    """A named template file does not exist in the template directory."""


class TemplateLargerThanSearchArea(AutoPullError):
    """Template is empty or does not fit inside the search surface."""

    def __init__(self, name: str, template_size, search_size) -> None:
        super().__init__(
            f"template '{name}' {template_size[0]}x{template_size[1]} "
            f"does not fit search area {search_size[0]}x{search_size[1]}"
        )
        self.name = name
        self.template_size = template_size
        self.search_size = search_size


class SettingsError(AutoPullError):
    """A settings value has the wrong shape."""
