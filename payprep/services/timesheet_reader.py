import logging
from datetime import date, datetime, time
from typing import Optional
from zipfile import BadZipFile
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from ..models import EmployeeWeekResult, ShiftSegment, StructuralError

logger = logging.getLogger(__name__)

# Accepted header names per field, tried in order on every row
NAME_COLUMNS = ('Employee Name', 'Name')
NUMBER_COLUMNS = ('Employee Number', 'ID', 'Employee ID')
DATE_COLUMNS = ('Date', 'Work Date')
IN_COLUMNS = ('In', 'Punch In', 'Start Time')
OUT_COLUMNS = ('Out', 'Punch Out', 'End Time')
HOURS_COLUMNS = ('Hours Worked', 'Hours')
WEEK_COLUMNS = ('Week Number', 'Week Date', 'Date')

MAX_PLAUSIBLE_HOURS = 14.0
INCONSISTENT_COMMENT = 'Manual recheck recommended: Unusual shift duration.'
DATE_FORMATS = ('%Y-%m-%d', '%d/%m/%Y', '%m/%d/%Y')


def read_timesheet(filepath) -> list[EmployeeWeekResult]:
    """Read an already-cleaned timesheet XLSX (first sheet, header in row 1).

    Rows are aggregated per employee number in order of first appearance;
    each row with a date, IN and OUT also becomes a punch detail. Rows with
    no name or number are skipped.
    """
    try:
        wb = load_workbook(filepath, read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError) as exc:
        raise StructuralError(f"Could not open workbook: {exc}") from exc

    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header = next(rows, None)
        col_map = {}
        for i, val in enumerate(header or ()):
            if val is not None and str(val).strip():
                col_map.setdefault(str(val).strip(), i)

        entries: dict[str, EmployeeWeekResult] = {}
        for row in rows:
            name = _text(_pick(row, col_map, NAME_COLUMNS))
            number = _text(_pick(row, col_map, NUMBER_COLUMNS))
            if not name or not number:
                continue

            hours = _hours(_pick(row, col_map, HOURS_COLUMNS))
            entry = entries.get(number)
            if entry is None:
                week = _text(_pick(row, col_map, WEEK_COLUMNS)) or 'N/A'
                entry = EmployeeWeekResult(
                    employee_name=name,
                    employee_number=number,
                    week_identifier=week,
                    week_ending_date='',
                    total_hours_worked=0.0,
                )
                entries[number] = entry
            entry.total_hours_worked = round(entry.total_hours_worked + hours, 2)

            segment = _punch_detail(row, col_map, hours, number)
            if segment is not None:
                entry.segments.append(segment)
    finally:
        wb.close()

    if not entries:
        raise StructuralError("No valid employee data found in the Excel file.")
    logger.info("Imported %d employees from cleaned timesheet", len(entries))
    return list(entries.values())


def _punch_detail(row, col_map: dict, hours: float, number: str) -> Optional[ShiftSegment]:
    raw_date = _pick(row, col_map, DATE_COLUMNS)
    in_time = _time_text(_pick(row, col_map, IN_COLUMNS))
    out_time = _time_text(_pick(row, col_map, OUT_COLUMNS))
    if raw_date in (None, '') or not in_time or not out_time:
        return None

    punch_date = _parse_date(raw_date)
    if punch_date is None:
        logger.warning("Employee %s: unreadable date %r, punch detail skipped", number, raw_date)
        return None

    inconsistent = hours > MAX_PLAUSIBLE_HOURS or hours < 0
    return ShiftSegment(
        date=punch_date,
        in_time=in_time,
        out_time=out_time,
        hours=hours,
        comment=INCONSISTENT_COMMENT if inconsistent else None,
        inconsistent=inconsistent,
    )


def _pick(row, col_map: dict, names: tuple):
    """First non-empty value among the columns named in `names`."""
    for name in names:
        idx = col_map.get(name)
        if idx is None or idx >= len(row):
            continue
        value = row[idx]
        if value is not None and str(value).strip() != '':
            return value
    return None


def _text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, datetime):
        return value.strftime('%d/%m/%Y')
    return str(value).strip()


def _time_text(value) -> str:
    if isinstance(value, (time, datetime)):
        return value.strftime('%H:%M')
    return _text(value)


def _hours(value) -> float:
    if value is None:
        return 0.0
    try:
        return float(str(value).strip().replace(',', '.'))
    except ValueError:
        return 0.0


def _parse_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(str(value).strip(), fmt).date()
        except ValueError:
            continue
    return None
