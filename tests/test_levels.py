from datetime import date

import pytest

from apps.corecode.models import Level
from apps.corecode.utils import LEVEL_ORDER, UnknownLevelError, add_months, next_level


class TestNextLevel:
    @pytest.mark.parametrize("level, expected", [
        (Level.L3, Level.L4),
        (Level.L4, Level.L5),
        ("L3", Level.L4),
    ])
    def test_successor(self, level, expected):
        assert next_level(level) == expected

    def test_top_of_ladder_has_no_successor(self):
        assert next_level(Level.L5) is None

    @pytest.mark.parametrize("level", ["L9", "", "l3", None])
    def test_unknown_level_is_rejected(self, level):
        with pytest.raises(UnknownLevelError):
            next_level(level)

    def test_ladder_covers_every_level(self):
        assert [str(level) for level in LEVEL_ORDER] == Level.values


class TestAddMonths:
    def test_plain_shift(self):
        assert add_months(date(2024, 12, 16), 3) == date(2025, 3, 16)

    def test_day_is_clamped_to_month_end(self):
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
