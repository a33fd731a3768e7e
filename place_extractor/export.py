"""TSV and CSV export of the working set.

Export is refused while any row has an invalid effective mapcode, so a
bad geocode never leaves the tool silently.
"""

import csv
import io
from pathlib import Path

from place_extractor.core.logging import get_logger
from place_extractor.models import Row

logger = get_logger().bind(module="export")

HEADER = ("place_name", "mapcode", "telephone", "address")


class ExportBlockedError(Exception):
    """Raised when rows with invalid mapcodes prevent an export."""

    def __init__(self, invalid_count: int, first_row_id: str) -> None:
        self.invalid_count = invalid_count
        self.first_row_id = first_row_id
        super().__init__(
            f"Cannot export. {invalid_count} row(s) have invalid Mapcodes "
            f"(first: row {first_row_id})."
        )


def effective_value(row: Row, field: str) -> str:
    """Export value of an overridable field (override first, then fetched)."""
    return row.effective(field)


def row_values(row: Row) -> list[str]:
    return [
        row.display_name or "",
        effective_value(row, "mapcode"),
        effective_value(row, "telephone"),
        effective_value(row, "address"),
    ]


def ensure_exportable(rows: list[Row]) -> None:
    """Check every effective mapcode.

    Raises:
        ExportBlockedError: With the number of offending rows and the first one
    """
    invalid = [row for row in rows if row.has_invalid_mapcode()]
    if invalid:
        logger.warning(
            "Export blocked by invalid mapcodes",
            invalid_count=len(invalid),
            first_row_id=invalid[0].id,
        )
        raise ExportBlockedError(len(invalid), invalid[0].id)


def generate_tsv(rows: list[Row]) -> str:
    ensure_exportable(rows)
    lines = ["\t".join(HEADER), *("\t".join(row_values(row)) for row in rows)]
    return "\n".join(lines)


def row_to_clipboard_tsv(row: Row) -> str:
    """Header plus a single row, for copying one place."""
    return generate_tsv([row])


def generate_csv(rows: list[Row]) -> str:
    ensure_exportable(rows)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(HEADER)
    writer.writerows(row_values(row) for row in rows)
    return buffer.getvalue().removesuffix("\n")


def write_csv(rows: list[Row], path: str | Path) -> Path:
    """Write the CSV export to ``path`` and return it."""
    target = Path(path)
    target.write_text(generate_csv(rows), encoding="utf-8")
    logger.info("Exported rows", path=str(target), rows=len(rows))
    return target
