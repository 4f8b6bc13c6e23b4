"""X11 display probing for virtual display diagnostics"""

import logging
from dataclasses import dataclass
from typing import Optional

from Xlib import display as xdisplay
from Xlib import error as xerror
from Xlib.display import Display

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScreenGeometry:
    """Screen dimensions in pixels"""
    width: int
    height: int


class DisplayProbe:
    """Short-lived X11 connection used to check a display"""

    def __init__(self, display_name: Optional[str] = None) -> None:
        """
        Initialize probe

        Args:
            display_name: X11 display name (e.g., ':99'), None for $DISPLAY
        """
        self._display: Optional[Display] = None
        self._display_name: Optional[str] = display_name

    def connection_establish(self) -> None:
        """Connect to the X11 display"""
        self._display = xdisplay.Display(self._display_name)

    def connection_close(self) -> None:
        """Close the X11 connection"""
        if self._display is not None:
            self._display.close()
            self._display = None

    def display_get(self) -> Display:
        """
        Get X11 display object

        Raises:
            RuntimeError: If not connected to display
        """
        if self._display is None:
            raise RuntimeError("Not connected to X11 display")
        return self._display

    def screenGeometry_get(self) -> ScreenGeometry:
        """
        Get geometry of the default screen

        Raises:
            RuntimeError: If not connected to display
        """
        geom = self.display_get().screen().root.get_geometry()
        return ScreenGeometry(width=geom.width, height=geom.height)

    def __enter__(self) -> "DisplayProbe":
        self.connection_establish()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.connection_close()


def displayReachable_check(display_name: Optional[str]) -> Optional[ScreenGeometry]:
    """
    Try to connect to a display

    Args:
        display_name: X11 display name, None for $DISPLAY

    Returns:
        Screen geometry when the display accepts connections, else None
    """
    try:
        with DisplayProbe(display_name) as probe:
            return probe.screenGeometry_get()
    except (xerror.DisplayError, OSError) as e:
        logger.debug(f"Display {display_name} not reachable: {e}")
        return None
