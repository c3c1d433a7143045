import io
import re
from openpyxl import Workbook
from openpyxl.styles import Font
from ..models import MISSING, Paysheet, RowStatus

PAYSHEET_COLUMNS = [
    'Employee Name', 'Employee Number', 'Week ID', 'Hours Worked', 'Hourly Rate',
    'Amount to Pay', 'NIS Deduction', 'Net Pay', 'Status',
]

AUDIT_COLUMNS = [
    'Employee Name', 'Employee ID', 'Date', 'Punch In', 'Punch Out', 'Hours',
    'Status', 'Pay Rate', 'Daily Pay', 'Comments',
]


def export_paysheet(paysheet: Paysheet) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = 'Paysheet'
    _write_header(ws, PAYSHEET_COLUMNS)

    for row in paysheet.rows:
        ws.append([
            row.result.employee_name,
            row.result.employee_number,
            row.result.week_identifier,
            row.result.total_hours_worked,
            row.hourly_rate,
            row.amount_to_pay,
            row.nis_deduction,
            row.net_pay,
            'Normal' if row.status == RowStatus.VALID else row.warning_message,
        ])
    return _to_bytes(wb)


def export_punch_audit(paysheet: Paysheet) -> bytes:
    """One line per shift segment, for checking pay against raw punches."""
    wb = Workbook()
    ws = wb.active
    ws.title = 'Punch Audit'
    _write_header(ws, AUDIT_COLUMNS)

    for row in paysheet.rows:
        result = row.result
        if not result.segments:
            ws.append([
                result.employee_name, result.employee_number, 'N/A', 'N/A', 'N/A',
                result.total_hours_worked, None, row.hourly_rate, row.amount_to_pay,
                'No detailed punch data available',
            ])
            continue

        for segment in result.segments:
            daily_pay = 0.0 if segment.ignored else round(segment.hours * row.hourly_rate, 2)
            ws.append([
                result.employee_name,
                result.employee_number,
                segment.date.strftime('%d/%m/%Y'),
                segment.in_time,
                segment.out_time or MISSING,
                segment.hours,
                'IGNORED' if segment.ignored else 'VALID',
                row.hourly_rate,
                daily_pay,
                segment.comment,
            ])
    return _to_bytes(wb)


def export_filename(paysheet: Paysheet, kind: str) -> str:
    # imported week labels may be dates such as 24/01/2026
    week = re.sub(r'[^0-9A-Za-z-]+', '-', paysheet.week_identifier).strip('-') or 'N-A'
    return f"{kind}_{week}_{paysheet.id[:4]}.xlsx"


def _write_header(ws, columns: list[str]) -> None:
    ws.append(columns)
    for cell in ws[1]:
        cell.font = Font(bold=True)


def _to_bytes(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
