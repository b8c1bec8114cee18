from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

DEFAULT_FLOATING_BUTTON_HEIGHT = 80
NARROW_VIEWPORT_MAX_WIDTH = 1024


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float


class ScrollSource(Protocol):
    def add_listener(self, listener: Callable[[], None]) -> None: ...

    def remove_listener(self, listener: Callable[[], None]) -> None: ...


def floating_cta_visible(
    panel_top: float,
    viewport: Viewport,
    *,
    floating_button_height: float = DEFAULT_FLOATING_BUTTON_HEIGHT,
    narrow_max_width: float = NARROW_VIEWPORT_MAX_WIDTH,
) -> bool:
    """Show the floating Reserve button until the booking panel scrolls into view."""
    if viewport.width >= narrow_max_width:
        return False
    return panel_top >= viewport.height - floating_button_height


class CtaVisibilityController:
    """Keeps the floating Reserve affordance in sync with the scroll position.

    ``panel_top`` and ``viewport`` are read on every scroll event; the
    listener is registered on ``mount`` and removed on ``unmount``.
    """

    def __init__(
        self,
        source: ScrollSource,
        panel_top: Callable[[], float | None],
        viewport: Callable[[], Viewport],
        *,
        floating_button_height: float = DEFAULT_FLOATING_BUTTON_HEIGHT,
        on_change: Callable[[bool], None] | None = None,
    ):
        self._source = source
        self._panel_top = panel_top
        self._viewport = viewport
        self.floating_button_height = floating_button_height
        self._on_change = on_change
        self.visible = True
        self.mounted = False

    def mount(self) -> None:
        if self.mounted:
            return
        self._source.add_listener(self.handle_scroll)
        self.mounted = True
        self.handle_scroll()

    def unmount(self) -> None:
        if not self.mounted:
            return
        self._source.remove_listener(self.handle_scroll)
        self.mounted = False

    def handle_scroll(self) -> None:
        top = self._panel_top()
        if top is None:
            return
        visible = floating_cta_visible(
            top, self._viewport(), floating_button_height=self.floating_button_height
        )
        if visible != self.visible:
            self.visible = visible
            if self._on_change is not None:
                self._on_change(visible)
