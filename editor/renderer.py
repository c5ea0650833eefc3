"""Pillow rendering of one army's deployment surface, plus hit testing.

``ArmyRenderer`` turns the committed unit list into an image: surface
background and grid, unit rectangles coloured by type, name/count labels,
general and soldier badges, and a gold outline with corner handles on the
selected unit. A unit can be left out (``hidden``) so the app can draw it
as a live canvas overlay during a drag or resize.

``hit_test`` maps a surface point back to ``(unit_id, corner)``. It is
pure and works on surface coordinates, so the Tk app only has to undo its
canvas scaling before calling it.
"""

from __future__ import annotations

from PIL import Image, ImageDraw, ImageFont

from formations.interaction import CORNERS, Preview
from formations.models import Unit
from formations.placement import Rect, unit_rect

# -- Visual constants --

SURFACE_BG = "#c9b98f"  # parchment
SURFACE_GRID = "#b8a77c"
SURFACE_BORDER = "#3b2f1c"
GRID_STEP = 50

UNIT_COLORS = {
    "light": {"fill": "#6f9a4e", "outline": "#3e5a2a"},
    "hoplite": {"fill": "#a8412f", "outline": "#5e2016"},
    "cavalry": {"fill": "#3f6aa1", "outline": "#213a5c"},
}
DEFAULT_UNIT_COLOR = {"fill": "#888888", "outline": "#444444"}
LABEL_COLOR = "#ffffff"
HIGHLIGHT_COLOR = "#FFD700"  # gold outline on the selected unit
PREVIEW_VALID_OUTLINE = "#00FF00"
PREVIEW_INVALID_OUTLINE = "#FF4444"
GENERAL_BADGE = "#f2c230"
SOLDIER_BADGE = "#e8e8e8"

HANDLE_SIZE = 10  # surface px, square centred on each corner


def unit_colors(unit_type: str) -> dict:
    return UNIT_COLORS.get(unit_type, DEFAULT_UNIT_COLOR)


def handle_boxes(rect: Rect) -> dict[str, Rect]:
    """Corner -> handle rectangle for a unit footprint."""
    x, y, w, h = rect
    half = HANDLE_SIZE / 2
    points = {
        "nw": (x, y),
        "ne": (x + w, y),
        "sw": (x, y + h),
        "se": (x + w, y + h),
    }
    return {
        corner: (px - half, py - half, HANDLE_SIZE, HANDLE_SIZE)
        for corner, (px, py) in points.items()
    }


def _contains(rect: Rect, x: float, y: float) -> bool:
    rx, ry, rw, rh = rect
    return rx <= x <= rx + rw and ry <= y <= ry + rh


def hit_test(
    units: list[Unit], x: float, y: float, selected: str | None = None
) -> tuple[str, str | None] | None:
    """Which unit (and which corner handle, if any) is under a point.

    Only the selected unit shows handles, so only its corners are tested.
    Units later in the list are drawn on top and win ties.
    """
    if selected is not None:
        for unit in units:
            if unit.id != selected:
                continue
            for corner, box in handle_boxes(unit_rect(unit)).items():
                if _contains(box, x, y):
                    return unit.id, corner
    for unit in reversed(units):
        if _contains(unit_rect(unit), x, y):
            return unit.id, None
    return None


class ArmyRenderer:
    """Renders an army's units to a Pillow image."""

    def __init__(self, surface_width, surface_height, scale=1.0, line_scale=1):
        self.surface_width = surface_width
        self.surface_height = surface_height
        self.scale = scale
        self.line_scale = line_scale
        self.font = ImageFont.load_default()

    def _lw(self, base_width):
        """Scale a pixel width by the supersample factor."""
        return max(1, round(base_width * self.line_scale))

    def _to_px(self, x, y):
        return x * self.scale, y * self.scale

    def _box(self, rect: Rect) -> list[float]:
        x, y, w, h = rect
        x0, y0 = self._to_px(x, y)
        x1, y1 = self._to_px(x + w, y + h)
        return [x0, y0, x1, y1]

    def render(
        self,
        units: list[Unit],
        selected: str | None = None,
        hidden: str | None = None,
        preview: Preview | None = None,
    ) -> Image.Image:
        w = int(self.surface_width * self.scale)
        h = int(self.surface_height * self.scale)
        img = Image.new("RGB", (w, h), SURFACE_BG)
        draw = ImageDraw.Draw(img)

        glw = self._lw(1)
        for gx in range(GRID_STEP, int(self.surface_width), GRID_STEP):
            px = int(gx * self.scale)
            draw.line([(px, 0), (px, h - 1)], fill=SURFACE_GRID, width=glw)
        for gy in range(GRID_STEP, int(self.surface_height), GRID_STEP):
            py = int(gy * self.scale)
            draw.line([(0, py), (w - 1, py)], fill=SURFACE_GRID, width=glw)

        for unit in units:
            if unit.id == hidden:
                continue
            self._draw_unit(draw, unit)

        if selected is not None and selected != hidden:
            for unit in units:
                if unit.id == selected:
                    self._draw_selection(draw, unit_rect(unit))

        if preview is not None:
            self.draw_preview(draw, preview)

        draw.rectangle(
            [0, 0, w - 1, h - 1], outline=SURFACE_BORDER, width=self._lw(3)
        )
        return img

    def _draw_unit(self, draw, unit: Unit):
        colors = unit_colors(unit.type)
        box = self._box(unit_rect(unit))
        draw.rectangle(
            box, fill=colors["fill"], outline=colors["outline"], width=self._lw(2)
        )
        x0, y0, _x1, y1 = box
        pad = 4 * self.line_scale
        draw.text((x0 + pad, y0 + pad), unit.name, fill=LABEL_COLOR, font=self.font)
        draw.text(
            (x0 + pad, y1 - pad - 10 * self.line_scale),
            f"{unit.soldier_count} ({unit.formation.width}x{unit.formation.depth})",
            fill=LABEL_COLOR,
            font=self.font,
        )
        self._draw_badges(draw, unit, box)

    def _draw_badges(self, draw, unit: Unit, box):
        """General dot and soldier pip with count, in the top-right corner."""
        _x0, y0, x1, _y1 = box
        r = 5 * self.line_scale
        cx = x1 - 2 * r
        cy = y0 + 2 * r
        if unit.general is not None:
            draw.ellipse(
                [cx - r, cy - r, cx + r, cy + r],
                fill=GENERAL_BADGE,
                outline="#000000",
            )
            cx -= 3 * r
        if unit.soldiers:
            draw.rectangle(
                [cx - r, cy - r, cx + r, cy + r],
                fill=SOLDIER_BADGE,
                outline="#000000",
            )
            draw.text(
                (cx - r - 3 * r, cy - r),
                str(len(unit.soldiers)),
                fill=LABEL_COLOR,
                font=self.font,
            )

    def _draw_selection(self, draw, rect: Rect):
        draw.rectangle(self._box(rect), outline=HIGHLIGHT_COLOR, width=self._lw(3))
        for corner in CORNERS:
            handle = handle_boxes(rect)[corner]
            draw.rectangle(
                self._box(handle), fill=HIGHLIGHT_COLOR, outline=SURFACE_BORDER
            )

    def draw_preview(self, draw, preview: Preview):
        """Outline of an in-progress drag/resize, green if valid else red."""
        rect = (
            preview.position.x,
            preview.position.y,
            preview.width,
            preview.height,
        )
        outline = (
            PREVIEW_VALID_OUTLINE if preview.valid else PREVIEW_INVALID_OUTLINE
        )
        draw.rectangle(self._box(rect), outline=outline, width=self._lw(3))
