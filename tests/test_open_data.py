"""
Tests for the open-data bulk feed pipeline.

Covers:
  - decode_feed(): Big5 decoding, UTF-8 retry on implausibly short text
  - guess_delimiter() / parse_feed(): semicolon vs comma exports
  - resolve_fields(): header fragment matching, SchemaMismatchError
  - session_matches(): regular / after-hours markers, blank session column
  - pick_main_for_each_date(): max-volume selection, tie-break, invalid rows
  - closes_from_open_data(): end to end on a synthetic export
"""

import pandas as pd
import pytest
from conftest import OPEN_DATA_HEADER, make_open_data_bytes

from src.taifex_lib.core.errors import SchemaMismatchError
from src.taifex_lib.core.models import ClosePoint, Session
from src.taifex_lib.parsing.open_data import (
    FieldMap,
    closes_from_open_data,
    decode_feed,
    filter_rows,
    guess_delimiter,
    parse_feed,
    pick_main_for_each_date,
    resolve_fields,
    session_matches,
)

_FIELDS = FieldMap(
    date="交易日期",
    contract="契約",
    month="到期月份(週別)",
    close="最後成交價",
    volume="合計成交量",
    session="交易時段",
)


def _frame(rows: list[list[str]]) -> pd.DataFrame:
    return pd.DataFrame(
        rows, columns=["交易日期", "契約", "到期月份(週別)", "最後成交價", "合計成交量", "交易時段"]
    )


# ═══════════════════════════════════════════════════════════════════════════
# Decoding
# ═══════════════════════════════════════════════════════════════════════════


class TestDecodeFeed:
    def test_big5_bytes_decode(self):
        raw = "交易日期,契約\r\n2025/01/03,TX\r\n".encode("big5")
        assert decode_feed(raw).startswith("交易日期,契約")

    def test_short_text_retried_as_utf8(self):
        raw = "契約".encode("utf-8")
        assert decode_feed(raw) == "契約"

    def test_empty_bytes(self):
        assert decode_feed(b"") == ""


class TestDelimiter:
    def test_semicolon_preferred(self):
        assert guess_delimiter("a;b,c") == ";"

    def test_comma(self):
        assert guess_delimiter("a,b,c") == ","

    def test_default_is_semicolon(self):
        assert guess_delimiter("single_column") == ";"

    def test_parse_feed_semicolon_export(self):
        raw = make_open_data_bytes(delimiter=";")
        frame = parse_feed(decode_feed(raw))
        assert list(frame.columns) == OPEN_DATA_HEADER.split(",")
        assert frame.iloc[0]["契約"] == "TX"

    def test_parse_feed_skips_leading_blank_lines(self):
        text = "\n\nA,B\n1,2\n"
        frame = parse_feed(text)
        assert list(frame.columns) == ["A", "B"]
        assert frame.iloc[0]["B"] == "2"

    def test_parse_feed_blank_text(self):
        assert parse_feed("  \n\n").empty


# ═══════════════════════════════════════════════════════════════════════════
# Field mapping
# ═══════════════════════════════════════════════════════════════════════════


class TestResolveFields:
    def test_resolves_all_fields_by_fragment(self):
        fields = resolve_fields(OPEN_DATA_HEADER.split(","))
        assert fields == _FIELDS

    def test_session_is_optional(self):
        headers = ["交易日期", "契約", "到期月份(週別)", "最後成交價", "合計成交量"]
        fields = resolve_fields(headers)
        assert fields.session is None

    def test_missing_required_field_raises(self):
        headers = ["交易日期", "契約", "到期月份(週別)", "收盤價", "成交量"]
        with pytest.raises(SchemaMismatchError) as excinfo:
            resolve_fields(headers)
        assert excinfo.value.missing_fields == ["close", "volume"]
        assert excinfo.value.headers == headers

    def test_empty_headers_raise(self):
        with pytest.raises(SchemaMismatchError):
            resolve_fields([])


class TestSessionMatches:
    def test_blank_matches_any_session(self):
        assert session_matches("", Session.REGULAR)
        assert session_matches(None, Session.AFTER_HOURS)

    def test_regular(self):
        assert session_matches("一般", Session.REGULAR)
        assert not session_matches("盤後", Session.REGULAR)

    def test_after_hours_markers(self):
        assert session_matches("盤後", Session.AFTER_HOURS)
        assert session_matches("夜盤交易", Session.AFTER_HOURS)
        assert not session_matches("一般", Session.AFTER_HOURS)


# ═══════════════════════════════════════════════════════════════════════════
# Main-contract selection
# ═══════════════════════════════════════════════════════════════════════════


class TestPickMainForEachDate:
    def test_highest_volume_month_wins(self):
        frame = _frame(
            [
                ["2025/01/03", "TX", "202501", "23000", "100", "一般"],
                ["2025/01/03", "TX", "202502", "23050", "500", "一般"],
            ]
        )
        points = pick_main_for_each_date(frame, _FIELDS)
        assert points == [ClosePoint("2025-01-03", 23050.0, "202502", 500)]

    def test_first_seen_wins_on_equal_volume(self):
        frame = _frame(
            [
                ["2025/01/03", "TX", "202501", "23000", "500", "一般"],
                ["2025/01/03", "TX", "202502", "23050", "500", "一般"],
            ]
        )
        points = pick_main_for_each_date(frame, _FIELDS)
        assert points[0].contract_month == "202501"

    def test_invalid_rows_dropped(self):
        frame = _frame(
            [
                ["2025/01/03", "TX", "202501", "-", "9000", "一般"],
                ["2025/01/03", "TX", "", "23100", "9000", "一般"],
                ["2025/01/03", "TX", "202502", "23050", "abc", "一般"],
                ["", "TX", "202502", "23050", "100", "一般"],
                ["2025/01/03", "TX", "202503", "22990", "10", "一般"],
            ]
        )
        points = pick_main_for_each_date(frame, _FIELDS)
        assert points == [ClosePoint("2025-01-03", 22990.0, "202503", 10)]

    def test_dates_descending_and_truncated(self):
        frame = _frame(
            [
                ["2025/01/02", "TX", "202501", "2", "1", "一般"],
                ["2025/01/06", "TX", "202501", "6", "1", "一般"],
                ["2025/01/03", "TX", "202501", "3", "1", "一般"],
            ]
        )
        points = pick_main_for_each_date(frame, _FIELDS, count=2)
        assert [p.date for p in points] == ["2025-01-06", "2025-01-03"]

    def test_empty_frame(self):
        assert pick_main_for_each_date(_frame([]), _FIELDS) == []

    def test_filter_rows_exact_symbol(self):
        frame = _frame(
            [
                ["2025/01/03", "TX", "202501", "1", "1", "一般"],
                ["2025/01/03", "TXO", "202501", "1", "1", "一般"],
                ["2025/01/03", " TX ", "202501", "1", "1", ""],
                ["2025/01/03", "TX", "202501", "1", "1", "盤後"],
            ]
        )
        rows = filter_rows(frame, _FIELDS, "TX", Session.REGULAR)
        assert len(rows) == 2


class TestClosesFromOpenData:
    def test_regular_session(self, open_data_bytes):
        points = closes_from_open_data(open_data_bytes, "TX", Session.REGULAR)
        assert points == [
            ClosePoint("2025-01-03", 23050.0, "202502", 5000),
            ClosePoint("2025-01-02", 22900.0, "202501", 8000),
            ClosePoint("2024-12-31", 22800.0, "202501", 6000),
        ]

    def test_after_hours_session(self, open_data_bytes):
        points = closes_from_open_data(open_data_bytes, "TX", Session.AFTER_HOURS)
        assert points == [ClosePoint("2025-01-03", 23010.0, "202501", 300)]

    def test_other_symbol_not_mixed_in(self, open_data_bytes):
        points = closes_from_open_data(open_data_bytes, "MTX", Session.REGULAR)
        assert points == [ClosePoint("2025-01-03", 23001.0, "202501", 9000)]

    def test_count_limits_output(self, open_data_bytes):
        points = closes_from_open_data(open_data_bytes, "TX", Session.REGULAR, count=1)
        assert [p.date for p in points] == ["2025-01-03"]

    def test_dates_strictly_descending_no_duplicates(self, open_data_bytes):
        points = closes_from_open_data(open_data_bytes, "TX", Session.REGULAR)
        dates = [p.date for p in points]
        assert dates == sorted(set(dates), reverse=True)

    def test_renamed_header_is_schema_mismatch(self):
        raw = make_open_data_bytes(
            header="交易日期,契約,到期月份(週別),開盤價,收盤價,合計成交量,交易時段"
        )
        with pytest.raises(SchemaMismatchError) as excinfo:
            closes_from_open_data(raw, "TX", Session.REGULAR)
        assert excinfo.value.missing_fields == ["close"]

    def test_unknown_symbol_gives_empty_series(self, open_data_bytes):
        assert closes_from_open_data(open_data_bytes, "TMF", Session.REGULAR) == []
