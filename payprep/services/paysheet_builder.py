import logging
import uuid
from datetime import date, datetime
from typing import Mapping, Optional
from ..models import (
    Employee, EmployeeWeekResult, Paysheet, PaysheetRow, RowStatus, ShiftSegment,
)
from .nis import calculate_nis_contribution
from .shift_reconstructor import MAX_SHIFT_HOURS, parse_time, shift_duration

logger = logging.getLogger(__name__)

DEFAULT_HIGH_HOURS_THRESHOLD = 60.0

MISSING_RATE_WARNING = 'No pay rate found in database'
HIGH_HOURS_WARNING = 'Unusually high hours reported'


def build_row(
    result: EmployeeWeekResult,
    rates: Mapping[str, float],
    high_hours_threshold: float = DEFAULT_HIGH_HOURS_THRESHOLD,
) -> PaysheetRow:
    rate = rates.get(result.employee_number)

    status = RowStatus.VALID
    warning = None
    if rate is None:
        status = RowStatus.MISSING_RATE
        warning = MISSING_RATE_WARNING
    elif result.total_hours_worked > high_hours_threshold:
        status = RowStatus.ANOMALY
        warning = HIGH_HOURS_WARNING

    hourly_rate = rate if rate is not None else 0.0
    amount = round(result.total_hours_worked * hourly_rate, 2)
    nis = calculate_nis_contribution(amount)
    return PaysheetRow(
        result=result,
        hourly_rate=hourly_rate,
        amount_to_pay=amount,
        nis_deduction=nis,
        net_pay=round(amount - nis, 2),
        status=status,
        warning_message=warning,
    )


def build_paysheet(
    results: list[EmployeeWeekResult],
    rates: Mapping[str, float],
    generated_by: str,
    high_hours_threshold: float = DEFAULT_HIGH_HOURS_THRESHOLD,
    generated_at: Optional[datetime] = None,
) -> Paysheet:
    """Price reconstructed hours against the employee directory.

    `rates` maps employee number -> hourly rate and is only read.
    """
    if not results:
        raise ValueError("No employee data to build a paysheet from")

    rows = [build_row(r, rates, high_hours_threshold) for r in results]
    generated_at = generated_at or datetime.now()
    paysheet = Paysheet(
        id=uuid.uuid4().hex[:9],
        generation_date=generated_at.isoformat(),
        week_identifier=results[0].week_identifier,
        week_ending_date=results[0].week_ending_date,
        rows=rows,
        total_hours=0.0,
        total_amount=0.0,
        generated_by=generated_by,
    )
    _update_totals(paysheet)

    flagged = sum(1 for r in rows if r.status != RowStatus.VALID)
    logger.info("Built paysheet %s: %d rows, %d need attention", paysheet.id, len(rows), flagged)
    return paysheet


def rates_from_directory(employees: list[Employee]) -> dict[str, float]:
    return {e.employee_number: e.hourly_rate for e in employees}


def add_manual_entry(
    paysheet: Paysheet,
    employee_number: str,
    entry_date: date,
    in_time: str,
    out_time: str,
    comment: Optional[str] = None,
    high_hours_threshold: float = DEFAULT_HIGH_HOURS_THRESHOLD,
) -> PaysheetRow:
    """Append a hand-entered shift to a row and re-price it.

    Raises ValueError for unknown employees, unreadable times or a shift
    longer than the maximum shift length.
    """
    index = next(
        (i for i, r in enumerate(paysheet.rows) if r.result.employee_number == employee_number),
        None,
    )
    if index is None:
        raise ValueError(f"Employee {employee_number} is not on paysheet {paysheet.id}")

    duration = shift_duration(parse_time(in_time), parse_time(out_time))
    if duration > MAX_SHIFT_HOURS:
        raise ValueError(f"Manual shift of {duration:.2f}h exceeds {MAX_SHIFT_HOURS:.0f}h")

    row = paysheet.rows[index]
    result = row.result
    hours = round(duration, 2)
    result.segments.append(ShiftSegment(
        date=entry_date,
        in_time=in_time,
        out_time=out_time,
        hours=hours,
        comment=comment or 'Manual entry',
        manual_entry=True,
    ))
    result.total_hours_worked = round(result.total_hours_worked + hours, 2)

    # Manual entries resolve pricing against the rate already on the row
    rates = {} if row.status == RowStatus.MISSING_RATE else {employee_number: row.hourly_rate}
    new_row = build_row(result, rates, high_hours_threshold)
    paysheet.rows[index] = new_row
    _update_totals(paysheet)
    return new_row


def missing_rate_employees(paysheet: Paysheet, employees: list[Employee]) -> list[dict]:
    """Distinct paysheet employees that still have no directory entry."""
    known = {e.employee_number for e in employees}
    missing = {}
    for row in paysheet.rows:
        number = row.result.employee_number
        if row.status == RowStatus.MISSING_RATE and number not in known:
            missing.setdefault(number, {
                'employee_number': number,
                'employee_name': row.result.employee_name,
            })
    return list(missing.values())


def _update_totals(paysheet: Paysheet) -> None:
    paysheet.total_hours = round(sum(r.result.total_hours_worked for r in paysheet.rows), 2)
    paysheet.total_amount = round(sum(r.amount_to_pay for r in paysheet.rows), 2)
