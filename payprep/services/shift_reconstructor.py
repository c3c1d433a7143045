import logging
import re
from datetime import date
from typing import Optional
from ..models import (
    DayPunches, EmployeeWeekResult, PayPeriod, PendingClockIn,
    ShiftFlag, ShiftSegment, StructuralError,
)

logger = logging.getLogger(__name__)

# Layout of the "Logs" sheet (0-based column indices)
COL_LABEL = 0
COL_DURATION_VALUE = 2
COL_EMPLOYEE_NUMBER = 2
COL_EMPLOYEE_NAME = 10

DURATION_LABEL = 'Duration:'
EMPLOYEE_MARKER = 'No:'

ROLLOVER_CUTOFF = 4.0   # a first punch at or before 04:00 closes yesterday's shift
MAX_SHIFT_HOURS = 18.0

INVALID_COMMENT = 'Invalid Shift - Review (>18h)'
INCOMPLETE_COMMENT = 'Incomplete Shift - Review'

DURATION_RE = re.compile(r'(\d{4})/(\d{2})/(\d{2})\s*~\s*(\d{2})/(\d{2})')
TOKEN_RE = re.compile(r'^(\d{1,2}):(\d{2})(?::\d{2})?$')


def parse_time(token: str) -> float:
    """Convert an HH:MM punch to hours since midnight (H + M/60)."""
    match = TOKEN_RE.match(token)
    if not match:
        raise ValueError(f"Unreadable punch time '{token}'")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Unreadable punch time '{token}'")
    return hours + minutes / 60


def shift_duration(in_time: float, out_time: float) -> float:
    """Hours between two punches, assuming at most one midnight crossing."""
    if out_time < in_time:
        out_time += 24
    return out_time - in_time


def parse_period(duration_text: str) -> PayPeriod:
    """Parse a header such as '2026/01/23 ~ 01/31 ( atherlys )'.

    The end date takes the start date's year. A period whose end would fall
    before its start (December -> January) is rejected rather than misdated.
    """
    match = DURATION_RE.search(duration_text)
    if not match:
        raise StructuralError("Invalid Duration format.")
    year, month, day, end_month, end_day = (int(g) for g in match.groups())
    try:
        start_date = date(year, month, day)
        end_date = date(year, end_month, end_day)
    except ValueError as exc:
        raise StructuralError(f"Invalid date in Duration header: {exc}") from exc

    if end_date < start_date:
        raise StructuralError(
            f"Pay period {start_date.isoformat()} ~ {end_month:02d}/{end_day:02d} "
            "crosses a year boundary, which is not supported."
        )

    return PayPeriod(
        start_date=start_date,
        end_date=end_date,
        week_number=end_date.isocalendar()[1],
        week_ending=end_date.strftime('%d/%m/%Y'),
    )


def locate_duration(grid: list[list]) -> Optional[str]:
    """Return the raw Duration header text, or None if no row carries the label."""
    for row in grid:
        if _cell_text(row, COL_LABEL) == DURATION_LABEL:
            return _cell_text(row, COL_DURATION_VALUE)
    return None


def locate_date_header(grid: list[list]) -> Optional[int]:
    """Return the index of the first row holding a day-of-month number."""
    for index, row in enumerate(grid):
        if any(_day_of_month(cell) is not None for cell in row):
            return index
    return None


def map_columns(header_row: list, period: PayPeriod) -> list[tuple[int, date]]:
    """Map each day-of-month column to its calendar date.

    Days on or after the start day fall in the start month, smaller day
    numbers in the end month (the period ran past a month end).
    """
    start = period.start_date
    columns = []
    for col_idx, cell in enumerate(header_row):
        day = _day_of_month(cell)
        if day is None:
            continue
        month = start.month if day >= start.day else period.end_date.month
        try:
            columns.append((col_idx, date(start.year, month, day)))
        except ValueError as exc:
            raise StructuralError(
                f"Date header day {day} is not a valid date for month {month}"
            ) from exc
    return columns


def find_employee_blocks(grid: list[list], header_index: int) -> list[tuple[str, str, list]]:
    """Return (employee_number, employee_name, punch_row) for every marker row.

    A marker that is the last row, or is directly followed by another
    marker, has no punch row and is skipped.
    """
    blocks = []
    i = header_index + 1
    while i < len(grid):
        row = grid[i]
        employee_number = _cell_text(row, COL_EMPLOYEE_NUMBER)
        if not _is_marker(row) or not employee_number:
            i += 1
            continue
        if i + 1 >= len(grid) or _is_marker(grid[i + 1]):
            logger.warning("Employee %s has no punch row, skipping", employee_number)
            i += 1
            continue
        blocks.append((employee_number, _cell_text(row, COL_EMPLOYEE_NAME), grid[i + 1]))
        i += 2
    return blocks


def split_days(punch_row: list, columns: list[tuple[int, date]], employee_number: str) -> list[DayPunches]:
    days = []
    for col_idx, day_date in columns:
        tokens = tuple(_cell_text(punch_row, col_idx).split())
        for token in tokens:
            try:
                parse_time(token)
            except ValueError as exc:
                raise StructuralError(
                    f"{exc} for employee {employee_number} on {day_date.strftime('%d/%m/%Y')}"
                ) from exc
        days.append(DayPunches(date=day_date, tokens=tokens))
    return days


def reconstruct_day(
    pending: Optional[PendingClockIn],
    day: DayPunches,
    next_day: Optional[DayPunches],
) -> tuple[list[ShiftSegment], Optional[PendingClockIn]]:
    """Process one day of punches.

    `pending` is an IN left open by the previous day; `next_day` is None on
    the last day of the period. Returns the segments closed on this day and
    the IN (if any) left open for the following day.

    A first punch at or before 04:00 with nothing pending is read as an
    ordinary IN, so an early start such as 02:00 10:00 is paid. Older
    versions of this cleaner discarded it as an unpaired OUT instead.
    """
    segments = []
    tokens = day.tokens
    cursor = 0

    if tokens:
        if pending is not None:
            first = parse_time(tokens[0])
            if first <= ROLLOVER_CUTOFF:
                # Overnight shift: today's first punch is yesterday's OUT
                segments.append(_paired_segment(
                    pending.date, pending.token, pending.time, tokens[0], first))
                cursor = 1
            else:
                segments.append(_incomplete_segment(pending.date, pending.token))
            pending = None
    elif pending is not None and next_day is None:
        segments.append(_incomplete_segment(pending.date, pending.token))
        pending = None

    while cursor < len(tokens):
        in_token = tokens[cursor]
        in_time = parse_time(in_token)
        if cursor + 1 < len(tokens):
            out_token = tokens[cursor + 1]
            segments.append(_paired_segment(
                day.date, in_token, in_time, out_token, parse_time(out_token)))
            cursor += 2
            continue

        cursor += 1
        if (next_day is not None and next_day.tokens
                and parse_time(next_day.tokens[0]) <= ROLLOVER_CUTOFF):
            pending = PendingClockIn(token=in_token, time=in_time, date=day.date)
        else:
            segments.append(_incomplete_segment(day.date, in_token))

    return segments, pending


def reconstruct_week(days: list[DayPunches]) -> list[ShiftSegment]:
    """Fold reconstruct_day over the period, threading the pending IN."""
    segments = []
    pending = None
    for i, day in enumerate(days):
        next_day = days[i + 1] if i + 1 < len(days) else None
        day_segments, pending = reconstruct_day(pending, day, next_day)
        segments.extend(day_segments)

    if pending is not None:
        segments.append(_incomplete_segment(pending.date, pending.token))
    return segments


def summarize(
    employee_number: str,
    employee_name: str,
    period: PayPeriod,
    segments: list[ShiftSegment],
) -> EmployeeWeekResult:
    total = sum(s.hours for s in segments if not s.ignored)
    flags = list(dict.fromkeys(s.flag for s in segments if s.flag is not None))
    return EmployeeWeekResult(
        employee_name=employee_name,
        employee_number=employee_number,
        week_identifier=str(period.week_number),
        week_ending_date=period.week_ending,
        total_hours_worked=round(total, 2),
        flags=flags,
        segments=segments,
    )


def reconstruct_logs(grid: list[list]) -> tuple[PayPeriod, list[EmployeeWeekResult]]:
    """Rebuild every employee's shifts from a "Logs" sheet grid.

    Raises StructuralError when the Duration header or date header row is
    missing or malformed; nothing is returned in that case.
    """
    duration_text = locate_duration(grid)
    if duration_text is None:
        raise StructuralError("Could not find 'Duration:' header in file.")
    period = parse_period(duration_text)

    header_index = locate_date_header(grid)
    if header_index is None:
        raise StructuralError("Could not find date header row.")
    columns = map_columns(grid[header_index], period)

    results = []
    for employee_number, employee_name, punch_row in find_employee_blocks(grid, header_index):
        days = split_days(punch_row, columns, employee_number)
        segments = reconstruct_week(days)
        for s in segments:
            if s.flag is not None:
                logger.debug("%s %s: %s", employee_number, s.date.isoformat(), s.comment)
        results.append(summarize(employee_number, employee_name, period, segments))

    logger.info(
        "Reconstructed %d employees for week %d (%s - %s)",
        len(results), period.week_number,
        period.start_date.isoformat(), period.end_date.isoformat(),
    )
    return period, results


def _paired_segment(
    seg_date: date, in_token: str, in_time: float, out_token: str, out_time: float,
) -> ShiftSegment:
    duration = shift_duration(in_time, out_time)
    if duration > MAX_SHIFT_HOURS:
        return ShiftSegment(
            date=seg_date, in_time=in_token, out_time=out_token, hours=0.0,
            ignored=True, flag=ShiftFlag.INVALID, comment=INVALID_COMMENT,
        )
    return ShiftSegment(
        date=seg_date, in_time=in_token, out_time=out_token, hours=round(duration, 2),
    )


def _incomplete_segment(seg_date: date, in_token: str) -> ShiftSegment:
    return ShiftSegment(
        date=seg_date, in_time=in_token, out_time=None, hours=0.0,
        ignored=True, flag=ShiftFlag.INCOMPLETE, comment=INCOMPLETE_COMMENT,
    )


def _cell_text(row: list, idx: int) -> str:
    if idx >= len(row) or row[idx] is None:
        return ''
    value = row[idx]
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _day_of_month(cell) -> Optional[int]:
    if isinstance(cell, bool):
        return None
    if isinstance(cell, float) and cell.is_integer():
        cell = int(cell)
    if isinstance(cell, int):
        day = cell
    elif isinstance(cell, str) and cell.strip().isdecimal():
        day = int(cell.strip())
    else:
        return None
    return day if 1 <= day <= 31 else None


def _is_marker(row: list) -> bool:
    return _cell_text(row, COL_LABEL) == EMPLOYEE_MARKER
