"""Tests for the week/state encoding stored in the category column."""

import pytest

from app.exceptions import InvalidWeek
from app.utils import category_codec
from app.utils.category_codec import Tag, decode, encode, parse_week, rejection_number, week_pattern


class TestEncode:
    @pytest.mark.parametrize("week", [1, 7, 52, 1000])
    @pytest.mark.parametrize("state", ["submitted", "approved", "rejected"])
    def test_decode_reverses_encode(self, week, state):
        assert decode(encode(week, state)) == Tag(week=week, state=state)

    def test_rejection_detail_is_appended(self):
        assert encode(3, "rejected", "2") == "weekly_3_log_rejected_2"
        assert decode("weekly_3_log_rejected_2") == Tag(week=3, state="rejected", detail="2")

    def test_compile_state(self):
        assert encode(4, category_codec.COMPILE) == "weekly_4_log_compile"

    @pytest.mark.parametrize("week", [0, -1, True, "3", None])
    def test_bad_week_is_rejected(self, week):
        with pytest.raises(InvalidWeek):
            encode(week, "submitted")

    def test_unknown_state_is_rejected(self):
        with pytest.raises(ValueError):
            encode(1, "archived")

    def test_detail_must_be_one_word(self):
        with pytest.raises(ValueError):
            encode(1, "rejected", "two words")


class TestDecode:
    @pytest.mark.parametrize("category", [
        "random text",
        "",
        None,
        "draft",
        "daily task",
        "weekly_abc_log_submitted",
        "weekly_0_log_submitted",
        "weekly_03_log_submitted",
        "weekly_3_log_pending",
        "weekly_3_log_submitted trailing",
        "prefix weekly_3_log_submitted",
    ])
    def test_untagged_values_decode_to_none(self, category):
        assert decode(category) is None

    def test_non_ascii_digits_are_not_weeks(self):
        assert decode("weekly_٣_log_submitted") is None

    def test_large_week(self):
        assert decode("weekly_120_log_approved").week == 120


class TestParseWeek:
    def test_accepts_int_and_digit_string(self):
        assert parse_week(5) == 5
        assert parse_week(" 12 ") == 12

    @pytest.mark.parametrize("value", ["0", "-2", "abc", "", "1.5", 0, -4, None, False, 2.0])
    def test_rejects_everything_else(self, value):
        with pytest.raises(InvalidWeek):
            parse_week(value)

    def test_invalid_week_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_week("x")


def test_week_pattern():
    assert week_pattern(3) == "weekly_3_log_%"


def test_rejection_number():
    assert rejection_number(decode("weekly_2_log_rejected_4")) == 4
    assert rejection_number(decode("weekly_2_log_rejected")) == 0
    assert rejection_number(decode("weekly_2_log_submitted")) == 0
    assert rejection_number(None) == 0
