"""CSV backup and restore."""

from unibudget.services.backup.csv_codec import (
    CSV_HEADERS,
    IMPORT_EMPTY_MESSAGE,
    IMPORT_SUCCESS_TEMPLATE,
    ImportRowSkipped,
    ParsedImport,
    export_filename,
    export_transactions,
    import_summary_message,
    parse_transactions,
    split_csv_line,
    unescape_field,
)

__all__ = [
    "CSV_HEADERS",
    "IMPORT_EMPTY_MESSAGE",
    "IMPORT_SUCCESS_TEMPLATE",
    "ImportRowSkipped",
    "ParsedImport",
    "export_filename",
    "export_transactions",
    "import_summary_message",
    "parse_transactions",
    "split_csv_line",
    "unescape_field",
]
