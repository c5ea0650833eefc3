"""Tests for the size <-> soldier-count mapping."""

import pytest

from formations.errors import ValidationError
from formations.models import Formation
from formations.sizing import (
    check_unit_size,
    count_from_footprint,
    default_formation_for,
    footprint_of,
    unit_cost,
    validate_unit_size,
)
from formations.unit_types import UNIT_TYPES, get_unit_type


class TestFootprint:
    def test_ten_pixels_per_rank_and_file(self):
        assert footprint_of(Formation(width=16, depth=5)) == (160, 50)
        assert footprint_of(Formation(width=10, depth=12)) == (100, 120)

    def test_clamped_to_minimum(self):
        assert footprint_of(Formation(width=2, depth=3)) == (40, 40)

    def test_clamped_to_maximum(self):
        assert footprint_of(Formation(width=40, depth=1)) == (300, 40)


class TestDefaultFormation:
    @pytest.mark.parametrize("key", sorted(UNIT_TYPES))
    def test_type_default_size_gives_type_default_formation(self, key):
        ut = get_unit_type(key)
        formation = default_formation_for(ut.default_size, key)
        assert formation == Formation(
            width=ut.default_width, depth=ut.default_depth
        )

    def test_non_square_count_rounds_up(self):
        # 100 light: depth = ceil(sqrt(31.25)) = 6, width = ceil(100/6) = 17
        assert default_formation_for(100, "light") == Formation(17, 6)

    def test_formation_holds_at_least_the_count(self):
        for count in (20, 37, 99, 151, 400):
            f = default_formation_for(count, "light")
            assert f.width * f.depth >= count

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            default_formation_for(50, "elephant")


class TestCountFromFootprint:
    def test_exact_grid(self):
        formation, count = count_from_footprint(160, 50)
        assert formation == Formation(16, 5)
        assert count == 80

    def test_half_rounds_up(self):
        formation, count = count_from_footprint(155, 45)
        assert formation == Formation(16, 5)
        assert count == 80

    def test_just_below_half_rounds_down(self):
        formation, _count = count_from_footprint(154, 44)
        assert formation == Formation(15, 4)

    def test_never_below_one(self):
        formation, count = count_from_footprint(3, 4)
        assert formation == Formation(1, 1)
        assert count == 1

    def test_count_is_width_times_depth(self):
        formation, count = count_from_footprint(123, 77)
        assert count == formation.width * formation.depth


class TestUnitSize:
    def test_cost(self):
        assert unit_cost("hoplite", 120) == 240
        assert unit_cost("light", 80) == 80
        assert unit_cost("cavalry", 60) == 240

    def test_bounds_are_inclusive(self):
        assert validate_unit_size("light", 20).valid
        assert validate_unit_size("light", 400).valid

    def test_below_minimum(self):
        check = validate_unit_size("light", 19)
        assert not check.valid
        assert check.error == "Light Infantry must have at least 20 soldiers"

    def test_above_maximum(self):
        check = validate_unit_size("cavalry", 201)
        assert not check.valid
        assert check.error == "Cavalry cannot exceed 200 soldiers"

    def test_check_raises_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            check_unit_size("hoplite", 39)
        assert exc_info.value.kind == "ValidationError"

    def test_unknown_type_is_invalid(self):
        check = validate_unit_size("elephant", 50)
        assert not check.valid
        assert "Unknown unit type" in check.error
