"""
Navigation state for one case's image stacks.

Pure state machine: the viewer frame feeds it wheel / pointer / button events
and renders whatever it holds. Out-of-range requests are clamped, never
reported as errors.
"""
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from model.models import Series

MIN_ZOOM = 0.5
MAX_ZOOM = 5.0
WHEEL_ZOOM_RATE = 0.002     # zoom change per wheel delta unit
BUTTON_ZOOM_STEP = 0.3
FULLSCREEN_MAGNIFICATION = 1.5


def _clamp(value, lo, hi):
    return max(lo, min(value, hi))


@dataclass
class ViewerState:
    series: Sequence[Series] = field(default_factory=list)
    active_series_index: int = 0
    slice_index: int = 0
    zoom: float = 1.0
    pan: Tuple[float, float] = (0.0, 0.0)
    is_dragging: bool = False
    is_fullscreen: bool = False
    _drag_origin: Tuple[float, float] = (0.0, 0.0)

    # ---------- derived ----------
    @property
    def is_empty(self) -> bool:
        return len(self.series) == 0

    @property
    def active_series(self):
        if self.is_empty:
            return None
        return self.series[self.active_series_index]

    @property
    def slice_count(self) -> int:
        s = self.active_series
        return len(s.images) if s else 0

    @property
    def current_image(self):
        if self.slice_count == 0:
            return None
        return self.active_series.images[self.slice_index]

    @property
    def display_zoom(self) -> float:
        """Zoom used for drawing; fullscreen magnifies without touching `zoom`."""
        return self.zoom * FULLSCREEN_MAGNIFICATION if self.is_fullscreen else self.zoom

    @property
    def series_names(self) -> List[str]:
        return [s.name for s in self.series]

    def slice_label(self) -> str:
        return f"Coupe {self.slice_index + 1} / {self.slice_count}"

    # ---------- transitions ----------
    def select_series(self, index: int) -> None:
        if self.is_empty:
            return
        self.active_series_index = _clamp(index, 0, len(self.series) - 1)
        self.slice_index = 0
        self.reset_view()
        self.is_dragging = False

    def step_slice(self, step: int) -> None:
        if self.slice_count == 0:
            return
        self.slice_index = _clamp(self.slice_index + step, 0, self.slice_count - 1)

    def go_to_slice(self, index: int) -> None:
        if self.slice_count == 0:
            return
        self.slice_index = _clamp(index, 0, self.slice_count - 1)

    def wheel(self, delta_y: float, modifier: bool = False) -> None:
        """
        delta_y > 0 means scrolling down / away from the user.

        Without modifier: next/previous slice. With modifier: proportional zoom.
        """
        if modifier:
            self.set_zoom(self.zoom - delta_y * WHEEL_ZOOM_RATE)
        elif delta_y > 0:
            self.step_slice(+1)
        elif delta_y < 0:
            self.step_slice(-1)

    def set_zoom(self, zoom: float) -> None:
        self.zoom = _clamp(float(zoom), MIN_ZOOM, MAX_ZOOM)
        if self.zoom <= 1:
            self.is_dragging = False

    def zoom_in(self) -> None:
        self.set_zoom(self.zoom + BUTTON_ZOOM_STEP)

    def zoom_out(self) -> None:
        self.set_zoom(self.zoom - BUTTON_ZOOM_STEP)

    def reset_view(self) -> None:
        self.zoom = 1.0
        self.pan = (0.0, 0.0)
        self.is_dragging = False

    def pointer_down(self, x: float, y: float) -> None:
        if self.zoom <= 1:
            return
        self.is_dragging = True
        self._drag_origin = (x - self.pan[0], y - self.pan[1])

    def pointer_move(self, x: float, y: float) -> None:
        if not self.is_dragging:
            return
        self.pan = (x - self._drag_origin[0], y - self._drag_origin[1])

    def pointer_up(self) -> None:
        self.is_dragging = False

    def enter_fullscreen(self) -> None:
        self.is_fullscreen = True

    def exit_fullscreen(self) -> None:
        self.is_fullscreen = False
