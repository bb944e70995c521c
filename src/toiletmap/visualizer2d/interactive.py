# interactive.py
from typing import List, Optional, Set

import matplotlib.pyplot as plt
from matplotlib.backend_bases import KeyEvent, MouseEvent
from matplotlib.widgets import Button

from .renderer import PlotRenderer, new_surface
from .tiles import TileKey
from .viewport import SlippyMap

TILE_POLL_MSEC = 200


class InteractiveMap:
    """
    matplotlib window around a SlippyMap.

    Only the press handler is permanently connected. Motion and release
    handlers are connected on the whole canvas when a drag starts and
    disconnected when it ends, so the release is seen even if the pointer
    has left the map axes.
    """

    def __init__(self, smap: SlippyMap, renderer: PlotRenderer, width: int, height: int):
        self.map = smap
        self.renderer = renderer
        self.width = width
        self.height = height
        self.fig, self.ax = new_surface(width, height)
        self.canvas = self.fig.canvas
        self._drag_cids: List[int] = []
        self._drawn: Set[TileKey] = set()
        self._wanted: Set[TileKey] = set()

        # --- Controls (top right) ---
        bw, bh = 36 / width, 36 / height
        bx = 1.0 - bw - 12 / width
        self._btn_axes = {
            "center": self.fig.add_axes((bx, 1.0 - 12 / height - bh, bw, bh)),
            "zoom_in": self.fig.add_axes((bx, 1.0 - 56 / height - bh, bw, bh)),
            "zoom_out": self.fig.add_axes((bx, 1.0 - 100 / height - bh, bw, bh)),
        }
        self._buttons = {
            "center": Button(self._btn_axes["center"], "◎"),
            "zoom_in": Button(self._btn_axes["zoom_in"], "+"),
            "zoom_out": Button(self._btn_axes["zoom_out"], "−"),
        }
        self._buttons["center"].on_clicked(lambda _e: self._control(self.map.center_on_user))
        self._buttons["zoom_in"].on_clicked(lambda _e: self._control(self.map.zoom_in))
        self._buttons["zoom_out"].on_clicked(lambda _e: self._control(self.map.zoom_out))

        self.canvas.mpl_connect("button_press_event", self._on_press)
        self.canvas.mpl_connect("key_press_event", self._on_key)

        self._timer = self.canvas.new_timer(interval=TILE_POLL_MSEC)
        self._timer.add_callback(self._poll_tiles)

    # --- Drawing ---

    def redraw(self) -> None:
        frame = self.map.render(self.width, self.height)
        self._wanted = {t.key for t in frame.tiles}
        self._drawn = self.renderer.draw(self.ax, frame)
        self._btn_axes["center"].set_visible(self.map.user_location is not None)
        self.canvas.draw_idle()

    def _poll_tiles(self) -> None:
        # tiles finish loading in the background; repaint when one arrives
        cache = self.renderer.cache
        if cache is None or self.map.drag is not None:
            return
        if any(k not in self._drawn and cache.get(k) is not None for k in self._wanted):
            self.redraw()

    def _control(self, action) -> None:
        action()
        self.redraw()

    # --- Pointer ---

    def _surface_xy(self, event: MouseEvent) -> Optional[tuple]:
        if event.x is None or event.y is None:
            return None
        x, y = self.ax.transData.inverted().transform((event.x, event.y))
        return float(x), float(y)

    def _on_press(self, event: MouseEvent) -> None:
        if event.inaxes is not self.ax or event.button != 1:
            return
        xy = self._surface_xy(event)
        if xy is None:
            return
        self.map.pointer_down(*xy)
        self._connect_drag()

    def _on_move(self, event: MouseEvent) -> None:
        xy = self._surface_xy(event)
        if xy is None:
            return
        if self.map.pointer_move(*xy):
            self.redraw()

    def _on_release(self, event: MouseEvent) -> None:
        xy = self._surface_xy(event)
        if xy is None:
            drag = self.map.drag
            xy = (drag.start_x, drag.start_y) if drag is not None else (0.0, 0.0)
        self.map.pointer_up(*xy)
        self._disconnect_drag()
        self.redraw()

    def _connect_drag(self) -> None:
        self._disconnect_drag()
        self._drag_cids = [
            self.canvas.mpl_connect("motion_notify_event", self._on_move),
            self.canvas.mpl_connect("button_release_event", self._on_release),
        ]

    def _disconnect_drag(self) -> None:
        for cid in self._drag_cids:
            self.canvas.mpl_disconnect(cid)
        self._drag_cids = []

    # --- Keyboard ---

    def _on_key(self, event: KeyEvent) -> None:
        if event.key in ("+", "="):
            self._control(self.map.zoom_in)
        elif event.key == "-":
            self._control(self.map.zoom_out)
        elif event.key == "c":
            self._control(self.map.center_on_user)
        elif event.key == "escape":
            self._control(self.map.deselect)

    def show(self) -> None:
        self.redraw()
        self._timer.start()
        plt.show()
