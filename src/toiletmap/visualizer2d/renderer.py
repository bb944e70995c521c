# renderer.py
from typing import Set

import matplotlib.pyplot as plt
from matplotlib import patches
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from toiletmap.model.models import ToiletType
from .markers import POI, USER, MarkerPlacement
from .projection import TILE_SIZE
from .tiles import TileCache, TileKey
from .viewport import RenderFrame

BACKGROUND = "#e5e7eb"
PIN_COLORS = {
    ToiletType.FREE: "#22c55e",
    ToiletType.PAID: "#ef4444",
    ToiletType.PURCHASE_REQUIRED: "#eab308",
}
USER_COLOR = "#3b82f6"
LEGEND_LABELS = {
    ToiletType.FREE: "Free",
    ToiletType.PAID: "Paid",
    ToiletType.PURCHASE_REQUIRED: "Purchase required",
}


def new_surface(width: float, height: float, dpi: int = 100) -> tuple[Figure, Axes]:
    """Figure whose single axes maps 1 data unit to 1 screen pixel."""
    fig = plt.figure(figsize=(width / dpi, height / dpi), dpi=dpi)
    ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
    return fig, ax


class PlotRenderer:
    """Paints a RenderFrame onto matplotlib axes in surface pixel coordinates."""

    def __init__(self, cache: TileCache | None = None, attribution: str = ""):
        self.cache = cache
        self.attribution = attribution

    def draw(self, ax: Axes, frame: RenderFrame) -> Set[TileKey]:
        """Returns the tiles that actually had an image to draw."""
        ax.clear()
        ax.set_facecolor(BACKGROUND)

        # tiles (pending or failed ones stay blank)
        drawn: Set[TileKey] = set()
        if self.cache is not None:
            self.cache.request_all(t.key for t in frame.tiles)
        for t in frame.tiles:
            if self.cache is None:
                continue
            img = self.cache.get(t.key)
            if img is None:
                continue
            ax.imshow(
                img,
                extent=(t.left, t.left + TILE_SIZE, t.top + TILE_SIZE, t.top),
                origin="upper",
                interpolation="nearest",
                zorder=0,
            )
            drawn.add(t.key)

        selected_id = frame.selected.id if frame.selected is not None else None
        for m in frame.markers:
            if m.kind == POI:
                self._draw_pin(ax, m, highlighted=(m.poi.id == selected_id))
            elif m.kind == USER:
                self._draw_user(ax, m)

        self._draw_legend(ax)
        if frame.selected is not None:
            self._draw_card(ax, frame)
        if self.attribution:
            ax.text(frame.width - 4, frame.height - 4, self.attribution,
                    ha="right", va="bottom", fontsize=6, color="#374151",
                    bbox=dict(boxstyle="square,pad=0.2", fc="white", ec="none", alpha=0.7),
                    zorder=8)

        # surface pixels: x right, y down
        ax.set_xlim(0, frame.width)
        ax.set_ylim(frame.height, 0)
        ax.set_aspect("equal", adjustable="box")
        ax.set_axis_off()
        return drawn

    # --- Pieces ---

    def _draw_pin(self, ax: Axes, m: MarkerPlacement, highlighted: bool = False):
        # teardrop: head circle above, tip at the anchor (left, top)
        color = PIN_COLORS[m.poi.category]
        edge = "black" if highlighted else "white"
        lw = 2.0 if highlighted else 1.0
        x, y = m.left, m.top
        ax.add_patch(patches.Polygon(
            [(x - 8, y - 20), (x + 8, y - 20), (x, y)],
            closed=True, facecolor=color, edgecolor=edge, linewidth=lw, zorder=5))
        ax.add_patch(patches.Circle((x, y - 22), 9, facecolor=color, edgecolor=edge, linewidth=lw, zorder=5))
        ax.add_patch(patches.Circle((x, y - 22), 3.5, facecolor="white", edgecolor="none", zorder=6))

    def _draw_user(self, ax: Axes, m: MarkerPlacement):
        ax.add_patch(patches.Circle((m.left, m.top), 16, facecolor=USER_COLOR, alpha=0.3,
                                    edgecolor="none", zorder=6))
        ax.add_patch(patches.Circle((m.left, m.top), 9, facecolor=USER_COLOR,
                                    edgecolor="white", linewidth=2.0, zorder=7))

    def _draw_legend(self, ax: Axes):
        handles = [patches.Patch(facecolor=PIN_COLORS[t], label=LEGEND_LABELS[t]) for t in ToiletType]
        handles.append(patches.Patch(facecolor=USER_COLOR, label="You are here"))
        ax.legend(handles=handles, loc="upper left", title="Legend", fontsize=8,
                  title_fontsize=9, framealpha=0.9)

    def _draw_card(self, ax: Axes, frame: RenderFrame):
        poi = frame.selected
        lines = [poi.name or f"Toilet #{poi.id}"]
        if poi.address:
            lines.append(poi.address)
        lines.append(f"[{poi.price_label()}]")
        if poi.description:
            lines.append(poi.description)
        ax.text(frame.width / 2, frame.height - 16, "\n".join(lines),
                ha="center", va="bottom", fontsize=10,
                bbox=dict(boxstyle="round,pad=0.5", fc="white", ec="gray", alpha=0.95),
                zorder=9)
