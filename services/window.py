from __future__ import annotations

from typing import Optional, Tuple

Window = Tuple[int, int]


class WindowSelector:
    """Tracks the zoomed sub-range of the displayed series.

    ``window`` is ``None`` while the view follows the full series ("auto").
    A drag gesture records provisional endpoints with ``begin``/``extend``
    and only ``commit`` changes the window.
    """

    def __init__(self) -> None:
        self.window: Optional[Window] = None
        self._anchor: Optional[int] = None
        self._edge: Optional[int] = None

    @property
    def provisional(self) -> Optional[Window]:
        if self._anchor is None or self._edge is None:
            return None
        return self._anchor, self._edge

    def begin(self, x: int) -> None:
        self._anchor = x
        self._edge = None

    def extend(self, x: int) -> None:
        if self._anchor is None:
            return
        self._edge = x

    def commit(self) -> Optional[Window]:
        anchor, edge = self._anchor, self._edge
        self._anchor = self._edge = None
        if anchor is None or edge is None or anchor == edge:
            return None
        self.window = (min(anchor, edge), max(anchor, edge))
        return self.window

    def reset(self) -> None:
        self.window = None
        self._anchor = self._edge = None

