"""Tests for the army renderer and hit testing."""

from editor.renderer import (
    HIGHLIGHT_COLOR,
    PREVIEW_INVALID_OUTLINE,
    SURFACE_BG,
    UNIT_COLORS,
    ArmyRenderer,
    handle_boxes,
    hit_test,
)
from formations.interaction import Preview
from formations.models import Formation, Position, Unit


def _unit(uid, x, y, unit_type="hoplite", general=None):
    return Unit(
        id=uid,
        type=unit_type,
        name=uid,
        soldier_count=120,
        formation=Formation(width=10, depth=12),
        position=Position(x=x, y=y),
        cost=240,
        general=general,
    )


def _hex_to_rgb(color):
    color = color.lstrip("#")
    return tuple(int(color[i : i + 2], 16) for i in (0, 2, 4))


class TestHitTest:
    def test_body_hit(self):
        units = [_unit("a", 100, 100)]
        assert hit_test(units, 150, 150) == ("a", None)

    def test_miss(self):
        assert hit_test([_unit("a", 100, 100)], 10, 10) is None

    def test_topmost_wins(self):
        units = [_unit("a", 100, 100), _unit("b", 150, 150)]
        assert hit_test(units, 160, 160) == ("b", None)

    def test_corner_only_on_selected(self):
        units = [_unit("a", 100, 100)]
        assert hit_test(units, 200, 220) == ("a", None)
        assert hit_test(units, 200, 220, selected="a") == ("a", "se")
        assert hit_test(units, 98, 98, selected="a") == ("a", "nw")

    def test_handle_boxes_centred_on_corners(self):
        boxes = handle_boxes((0, 0, 100, 50))
        assert boxes["ne"] == (95, -5, 10, 10)
        assert boxes["sw"] == (-5, 45, 10, 10)


class TestArmyRenderer:
    def test_image_size_follows_scale(self):
        img = ArmyRenderer(1200, 800, scale=0.5).render([])
        assert img.size == (600, 400)

    def test_unit_fill_colour(self):
        img = ArmyRenderer(400, 300).render([_unit("a", 100, 100)])
        fill = _hex_to_rgb(UNIT_COLORS["hoplite"]["fill"])
        assert img.getpixel((180, 190)) == fill

    def test_hidden_unit_not_drawn(self):
        img = ArmyRenderer(400, 300).render(
            [_unit("a", 100, 100)], hidden="a"
        )
        assert img.getpixel((180, 190)) == _hex_to_rgb(SURFACE_BG)

    def test_selection_outline(self):
        img = ArmyRenderer(400, 300).render(
            [_unit("a", 100, 100)], selected="a"
        )
        assert img.getpixel((150, 101)) == _hex_to_rgb(HIGHLIGHT_COLOR)

    def test_invalid_preview_outline(self):
        preview = Preview(
            unit_id="a",
            position=Position(250, 50),
            width=100,
            height=120,
            valid=False,
            soldier_count=120,
        )
        img = ArmyRenderer(400, 300).render([], preview=preview)
        assert img.getpixel((300, 51)) == _hex_to_rgb(PREVIEW_INVALID_OUTLINE)

    def test_general_badge_drawn(self):
        plain = ArmyRenderer(400, 300).render([_unit("a", 100, 100)])
        led = ArmyRenderer(400, 300).render(
            [_unit("a", 100, 100, general="leonidas")]
        )
        assert plain.tobytes() != led.tobytes()
