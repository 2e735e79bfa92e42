"""
Time grid mapping: clock time to vertical pixels.

The mapper never clips. An event before the window's start gets a negative
top and one running past the end extends below the grid; whether to clip,
scroll, or flag it is the renderer's call.
"""

from .models import GridWindow, PixelGeometry, TimeInterval


def map_to_geometry(interval: TimeInterval, window: GridWindow) -> PixelGeometry:
    """
    Project an interval onto the grid.

    top    = minutes after the window start, in hours, times pixels/hour
    height = duration in hours times pixels/hour, at least min_height_px
    """
    offset_minutes = interval.start_minutes_since_midnight - window.start_hour * 60
    top = offset_minutes / 60 * window.pixels_per_hour
    raw_height = interval.duration_minutes / 60 * window.pixels_per_hour

    return PixelGeometry(top=top, height=max(raw_height, window.min_height_px))


def is_visible(geometry: PixelGeometry, window: GridWindow) -> bool:
    """True if any part of the block falls inside the visible band."""
    return geometry.bottom > 0 and geometry.top < window.total_height_px
