"""
CSV Backup Codec

Text encoding of the transaction collection for backup and restore.

FORMAT:
    Date,Type,Category,Amount,Method,Note
    "2024-01-15 16:00","EXPENSE","Food",100,"CASH","lunch"

- Date is local wall-clock time at minute precision (seconds are dropped).
- Every field except Amount is double-quoted; quotes inside a field are
  doubled.
- Amount is the plain decimal string, unquoted.

KNOWN LOSSY CASES:
- Seconds and sub-second parts of the date are not exported.
- A line break inside a field (usually the note) is written as-is, and
  import reads one row per line, so such a row does not come back.
- An instant with no local wall-clock (at the edge of the datetime
  range) is exported in UTC.

Import tolerates hand-edited files: the header line is always skipped,
blank lines are ignored, and any row whose amount or date does not parse
is skipped and counted rather than reported individually. A date that
cannot be placed in the local zone counts as a date that does not parse.
"""

from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, Field

from unibudget.models.ledger import PaymentMethod, Transaction, TransactionType


CSV_HEADERS = ["Date", "Type", "Category", "Amount", "Method", "Note"]
EXPORT_DATE_FORMAT = "%Y-%m-%d %H:%M"
MIN_COLUMNS = 5

IMPORT_SUCCESS_TEMPLATE = "Successfully imported {count} transactions."
IMPORT_EMPTY_MESSAGE = (
    "No valid transactions found to import. "
    "Please check if your CSV date format is YYYY-MM-DD HH:MM."
)

logger = structlog.get_logger(__name__)


class ImportRowSkipped(Exception):
    """A CSV row could not be turned into a transaction."""

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Line {line_number}: {reason}")


class ParsedImport(BaseModel):
    """Transactions accepted from a CSV text, in file order."""

    transactions: list[Transaction] = Field(default_factory=list)
    skipped_count: int = Field(default=0, ge=0)
    skipped_lines: list[int] = Field(default_factory=list)


# =============================================================================
# LOCAL TIME
# =============================================================================

def to_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Express an instant in the given zone, or the system zone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz) if tz is not None else value.astimezone()


def from_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Attach a zone to a wall-clock datetime and convert it to UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz) if tz is not None else value.astimezone()
    return value.astimezone(timezone.utc)


# =============================================================================
# EXPORT
# =============================================================================

def quote_field(value: str) -> str:
    """Wrap a field in double quotes, doubling any quote inside it."""
    return '"' + value.replace('"', '""') + '"'


def format_amount(amount: Decimal) -> str:
    """Plain (non-exponent) decimal string."""
    return format(amount, "f")


def format_export_date(value: datetime, tz: Optional[tzinfo] = None) -> str:
    try:
        local = to_local(value, tz)
    except (OverflowError, OSError):
        # no local wall-clock exists at the edge of the datetime range
        local = to_local(value, timezone.utc)
    return local.strftime(EXPORT_DATE_FORMAT)


def export_row(transaction: Transaction, tz: Optional[tzinfo] = None) -> str:
    return ",".join([
        quote_field(format_export_date(transaction.date, tz)),
        quote_field(transaction.type.value),
        quote_field(transaction.category),
        format_amount(transaction.amount),
        quote_field(transaction.method.value),
        quote_field(transaction.note or ""),
    ])


def export_transactions(
    transactions: Iterable[Transaction],
    tz: Optional[tzinfo] = None,
) -> str:
    """Encode transactions as CSV text (header plus one line each)."""
    lines = [",".join(CSV_HEADERS)]
    lines.extend(export_row(t, tz) for t in transactions)
    return "\n".join(lines)


def export_filename(now: datetime) -> str:
    """Download name carrying the export date."""
    return f"uni_budget_export_{now.date().isoformat()}.csv"


# =============================================================================
# IMPORT
# =============================================================================

def unescape_field(raw: str) -> str:
    """Trim, strip the wrapping quotes and collapse doubled quotes."""
    value = raw.strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value.replace('""', '"')


def split_csv_line(line: str) -> list[str]:
    """
    Split one CSV line into unescaped fields.

    A quote toggles the in-quote state; commas inside quotes do not
    separate fields.
    """
    fields = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
            current.append(char)
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))

    return [unescape_field(f) for f in fields]


def parse_amount(raw: str, line_number: int) -> Decimal:
    try:
        amount = Decimal(raw.strip())
    except InvalidOperation:
        raise ImportRowSkipped(line_number, f"amount is not a number: {raw!r}")
    if not amount.is_finite():
        raise ImportRowSkipped(line_number, f"amount is not finite: {raw!r}")
    return amount


def parse_timestamp(raw: str, line_number: int, tz: Optional[tzinfo] = None) -> datetime:
    """
    Parse an exported (or hand-written) date.

    ``2024-01-15 10:30`` is read as ``2024-01-15T10:30``. Values without
    an offset are local wall-clock time.
    """
    text = raw.strip()
    if "T" not in text:
        text = text.replace(" ", "T", 1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ImportRowSkipped(line_number, f"date is not a valid timestamp: {raw!r}")
    try:
        return from_local(parsed, tz)
    except (ValueError, OverflowError, OSError):
        raise ImportRowSkipped(line_number, f"date is out of range: {raw!r}")


def parse_row(
    columns: list[str],
    line_number: int,
    tz: Optional[tzinfo] = None,
    id_factory: Callable[[], UUID] = uuid4,
) -> Transaction:
    if len(columns) < MIN_COLUMNS:
        raise ImportRowSkipped(
            line_number, f"expected at least {MIN_COLUMNS} columns, got {len(columns)}"
        )

    date_raw, type_raw, category, amount_raw, method_raw = columns[:MIN_COLUMNS]
    note = columns[5] if len(columns) > 5 else ""

    amount = parse_amount(amount_raw, line_number)
    when = parse_timestamp(date_raw, line_number, tz)

    try:
        transaction_type = TransactionType(type_raw.strip().upper())
        method = PaymentMethod(method_raw.strip().upper())
    except ValueError as e:
        raise ImportRowSkipped(line_number, str(e))

    return Transaction(
        id=id_factory(),
        amount=amount,
        type=transaction_type,
        category=category,
        method=method,
        date=when,
        note=note,
    )


def parse_transactions(
    text: str,
    tz: Optional[tzinfo] = None,
    id_factory: Callable[[], UUID] = uuid4,
) -> ParsedImport:
    """
    Decode CSV text into new transactions.

    The first line is always treated as the header. Every accepted row
    gets a fresh identity from ``id_factory``.
    """
    result = ParsedImport()
    lines = text.lstrip("\ufeff").split("\n")

    for index, raw_line in enumerate(lines[1:], start=2):
        line = raw_line.strip()
        if not line:
            continue
        try:
            transaction = parse_row(split_csv_line(line), index, tz, id_factory)
        except ImportRowSkipped as skipped:
            logger.debug("csv_row_skipped", line=skipped.line_number, reason=skipped.reason)
            result.skipped_count += 1
            result.skipped_lines.append(skipped.line_number)
            continue
        result.transactions.append(transaction)

    return result


def import_summary_message(imported_count: int) -> str:
    if imported_count > 0:
        return IMPORT_SUCCESS_TEMPLATE.format(count=imported_count)
    return IMPORT_EMPTY_MESSAGE
