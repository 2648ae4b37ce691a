"""
Tests for the CSV backup codec.

Local time is pinned with explicit zones so results don't depend on the
machine running the tests.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID
from zoneinfo import ZoneInfo

import pytest

from unibudget.models.ledger import PaymentMethod, TransactionType
from unibudget.services.backup import (
    CSV_HEADERS,
    IMPORT_EMPTY_MESSAGE,
    export_filename,
    export_transactions,
    import_summary_message,
    parse_transactions,
    split_csv_line,
    unescape_field,
)
from unibudget.services.backup.csv_codec import (
    ImportRowSkipped,
    parse_amount,
    parse_timestamp,
)

from tests.helpers import make_transaction


UTC = ZoneInfo("UTC")
KOLKATA = ZoneInfo("Asia/Kolkata")

HEADER = "Date,Type,Category,Amount,Method,Note"


class TestExport:
    """Tests for encoding transactions."""

    def test_header_only_for_empty_collection(self):
        assert export_transactions([], UTC) == HEADER

    def test_row_format(self):
        t = make_transaction(
            amount="100",
            date=datetime(2024, 1, 15, 10, 30, 45, tzinfo=timezone.utc),
            note="lunch",
        )
        lines = export_transactions([t], UTC).split("\n")
        assert lines[0] == ",".join(CSV_HEADERS)
        assert lines[1] == '"2024-01-15 10:30","EXPENSE","Food",100,"CASH","lunch"'

    def test_date_written_in_local_time(self):
        t = make_transaction(date=datetime(2024, 1, 15, 20, 0, tzinfo=timezone.utc))
        row = export_transactions([t], KOLKATA).split("\n")[1]
        assert row.startswith('"2024-01-16 01:30"')

    def test_quotes_doubled(self):
        t = make_transaction(note='Bought "lunch", cheap')
        row = export_transactions([t], UTC).split("\n")[1]
        assert row.endswith('"Bought ""lunch"", cheap"')

    def test_amount_not_in_exponent_form(self):
        t = make_transaction(amount="1E+3")
        row = export_transactions([t], UTC).split("\n")[1]
        assert ",1000," in row

    def test_export_filename_carries_date(self):
        assert export_filename(datetime(2024, 3, 9, 18, 0)) == "uni_budget_export_2024-03-09.csv"

    def test_instant_without_local_time_written_in_utc(self):
        t = make_transaction(date=datetime.max.replace(tzinfo=timezone.utc))
        row = export_transactions([t], KOLKATA).split("\n")[1]
        assert row.startswith('"9999-12-31 23:59"')


class TestFieldParsing:
    """Tests for quote-aware splitting and unescaping."""

    def test_comma_inside_quotes_is_not_separator(self):
        fields = split_csv_line('"a, b",c,"d"')
        assert fields == ["a, b", "c", "d"]

    def test_doubled_quotes_collapse(self):
        assert unescape_field('"say ""hi"""') == 'say "hi"'

    def test_unescape_trims(self):
        assert unescape_field('  "Food"  ') == "Food"

    def test_unquoted_fields_pass_through(self):
        assert split_csv_line("2024-01-15 10:30,INCOME,Allowance,50,CARD,") == [
            "2024-01-15 10:30", "INCOME", "Allowance", "50", "CARD", "",
        ]

    def test_parse_amount_rejects_text(self):
        with pytest.raises(ImportRowSkipped):
            parse_amount("abc", 2)

    def test_parse_amount_rejects_infinity(self):
        with pytest.raises(ImportRowSkipped):
            parse_amount("Infinity", 2)

    def test_space_and_t_separators_are_equivalent(self):
        spaced = parse_timestamp("2024-01-15 10:30", 2, UTC)
        strict = parse_timestamp("2024-01-15T10:30", 2, UTC)
        assert spaced == strict == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_timestamp_read_as_local_time(self):
        parsed = parse_timestamp("2024-01-16 01:30", 2, KOLKATA)
        assert parsed == datetime(2024, 1, 15, 20, 0, tzinfo=timezone.utc)

    def test_explicit_offset_respected(self):
        parsed = parse_timestamp("2024-01-15T10:30:00+00:00", 2, KOLKATA)
        assert parsed == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_invalid_timestamp_rejected(self):
        with pytest.raises(ImportRowSkipped):
            parse_timestamp("15/01/2024", 2, UTC)


class TestImport:
    """Tests for decoding CSV text."""

    def test_header_always_skipped(self):
        text = '"2024-01-15 10:30","EXPENSE","Food",100,"CASH","first line"\n' \
               '"2024-01-16 10:30","EXPENSE","Food",200,"CASH","second line"'
        parsed = parse_transactions(text, UTC)
        assert len(parsed.transactions) == 1
        assert parsed.transactions[0].note == "second line"

    def test_bad_amount_row_skipped_others_kept(self):
        text = "\n".join([
            HEADER,
            '"2024-01-15 10:30","EXPENSE","Food",abc,"CASH","bad"',
            '"2024-01-16 09:00","INCOME","Allowance",500,"CARD","good"',
        ])
        parsed = parse_transactions(text, UTC)
        assert [t.note for t in parsed.transactions] == ["good"]
        assert parsed.skipped_count == 1
        assert parsed.skipped_lines == [2]

    def test_short_and_blank_rows(self):
        text = "\n".join([
            HEADER,
            "",
            '"2024-01-15 10:30","EXPENSE","Food",100',
            "   ",
            '"2024-01-15 10:30","EXPENSE","Food",100,"CASH"',
        ])
        parsed = parse_transactions(text, UTC)
        assert len(parsed.transactions) == 1
        assert parsed.transactions[0].note == ""
        assert parsed.skipped_count == 1

    def test_unknown_type_or_method_skipped(self):
        text = "\n".join([
            HEADER,
            '"2024-01-15 10:30","TRANSFER","Food",100,"CASH",""',
            '"2024-01-15 10:30","EXPENSE","Food",100,"UPI",""',
            '"2024-01-15 10:30","expense","Food",100,"cash",""',
        ])
        parsed = parse_transactions(text, UTC)
        assert len(parsed.transactions) == 1
        assert parsed.transactions[0].type == TransactionType.EXPENSE
        assert parsed.skipped_count == 2

    def test_crlf_and_bom_tolerated(self):
        text = "\ufeff" + HEADER + "\r\n" + '"2024-01-15 10:30","INCOME","Fees",10.5,"CARD","x"\r\n'
        parsed = parse_transactions(text, UTC)
        assert len(parsed.transactions) == 1
        assert parsed.transactions[0].amount == Decimal("10.5")
        assert parsed.transactions[0].method == PaymentMethod.CARD

    def test_ids_come_from_factory(self):
        ids = iter([
            UUID("00000000-0000-0000-0000-000000000001"),
            UUID("00000000-0000-0000-0000-000000000002"),
        ])
        text = "\n".join([
            HEADER,
            '"2024-01-15 10:30","EXPENSE","Food",1,"CASH",""',
            '"2024-01-15 11:30","EXPENSE","Food",2,"CASH",""',
        ])
        parsed = parse_transactions(text, UTC, id_factory=lambda: next(ids))
        assert [str(t.id)[-1] for t in parsed.transactions] == ["1", "2"]

    def test_out_of_range_date_skipped_others_kept(self):
        text = "\n".join([
            HEADER,
            '"0001-01-01 00:00","EXPENSE","Food",10,"CASH","too early"',
            '"0001-01-01T00:00+05:30","EXPENSE","Food",10,"CASH","offset"',
            '"2024-01-16 09:00","INCOME","Allowance",500,"CARD","good"',
        ])
        parsed = parse_transactions(text, KOLKATA)
        assert [t.note for t in parsed.transactions] == ["good"]
        assert parsed.skipped_lines == [2, 3]

    def test_summary_messages(self):
        assert import_summary_message(3) == "Successfully imported 3 transactions."
        assert import_summary_message(0) == IMPORT_EMPTY_MESSAGE


class TestRoundTrip:
    """Export followed by import reproduces the data."""

    def test_documented_example(self):
        original = make_transaction(
            amount="100",
            category="Food",
            date=datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc),
            note="lunch",
        )
        parsed = parse_transactions(export_transactions([original], UTC), UTC)

        assert len(parsed.transactions) == 1
        restored = parsed.transactions[0]
        assert restored.id != original.id
        assert restored.amount == original.amount
        assert restored.type == original.type
        assert restored.category == original.category
        assert restored.method == original.method
        assert restored.note == original.note
        assert restored.date == original.date

    def test_tricky_notes_and_minute_precision(self):
        originals = [
            make_transaction(
                amount="12.345",
                type=TransactionType.INCOME,
                category="Scholarship",
                method=PaymentMethod.CARD,
                date=datetime(2024, 2, 29, 23, 59, 59, tzinfo=timezone.utc),
                note='Bought "lunch", cheap',
            ),
            make_transaction(category='My "Gym", Club', note=""),
            make_transaction(note='ends with "quote"'),
        ]
        parsed = parse_transactions(export_transactions(originals, KOLKATA), KOLKATA)

        assert len(parsed.transactions) == len(originals)
        for original, restored in zip(originals, parsed.transactions):
            assert restored.amount == original.amount
            assert restored.type == original.type
            assert restored.category == original.category
            assert restored.method == original.method
            assert restored.note == original.note
            assert restored.date == original.date.replace(second=0, microsecond=0)
            assert abs(restored.date - original.date) < timedelta(minutes=1)

    def test_line_break_in_note_does_not_survive(self):
        original = make_transaction(note="two\nlines")
        parsed = parse_transactions(export_transactions([original], UTC), UTC)
        assert [t.note for t in parsed.transactions] == ["two"]
        assert parsed.skipped_count == 1
