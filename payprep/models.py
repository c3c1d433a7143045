from dataclasses import dataclass, field
from datetime import date
from typing import Optional
from enum import Enum

MISSING = "MISSING"


class StructuralError(ValueError):
    """The uploaded export is missing a required sheet, header or row."""


class ShiftFlag(Enum):
    INVALID = "Invalid Shift"
    INCOMPLETE = "Incomplete Shift"


class RowStatus(Enum):
    VALID = "valid"
    MISSING_RATE = "missing_rate"
    ANOMALY = "anomaly"


@dataclass(frozen=True)
class PayPeriod:
    start_date: date
    end_date: date
    week_number: int
    week_ending: str  # DD/MM/YYYY


@dataclass(frozen=True)
class PendingClockIn:
    token: str
    time: float
    date: date


@dataclass(frozen=True)
class DayPunches:
    date: date
    tokens: tuple


@dataclass
class ShiftSegment:
    date: date
    in_time: str
    out_time: Optional[str]  # None means the OUT punch is missing
    hours: float
    ignored: bool = False
    flag: Optional[ShiftFlag] = None
    comment: Optional[str] = None
    manual_entry: bool = False
    inconsistent: bool = False  # imported punch with an implausible duration

    def to_dict(self) -> dict:
        return {
            'date': self.date.strftime('%d/%m/%Y'),
            'in_time': self.in_time,
            'out_time': self.out_time if self.out_time is not None else MISSING,
            'hours': self.hours,
            'ignored': self.ignored,
            'flag': self.flag.value if self.flag else None,
            'comment': self.comment,
            'manual_entry': self.manual_entry,
            'inconsistent': self.inconsistent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ShiftSegment':
        out_time = data.get('out_time')
        return cls(
            date=_parse_display_date(data['date']),
            in_time=data['in_time'],
            out_time=None if out_time in (None, MISSING) else out_time,
            hours=float(data.get('hours', 0.0)),
            ignored=bool(data.get('ignored', False)),
            flag=ShiftFlag(data['flag']) if data.get('flag') else None,
            comment=data.get('comment'),
            manual_entry=bool(data.get('manual_entry', False)),
            inconsistent=bool(data.get('inconsistent', False)),
        )


@dataclass
class EmployeeWeekResult:
    employee_name: str
    employee_number: str
    week_identifier: str  # ISO week number, or the week label of an imported timesheet
    week_ending_date: str
    total_hours_worked: float
    flags: list[ShiftFlag] = field(default_factory=list)  # ordered, no duplicates
    segments: list[ShiftSegment] = field(default_factory=list)

    @property
    def comments(self) -> str:
        if not self.flags:
            return ''
        return ' - '.join(f.value for f in self.flags) + ' - Review'

    def to_dict(self) -> dict:
        return {
            'employee_name': self.employee_name,
            'employee_number': self.employee_number,
            'week_identifier': self.week_identifier,
            'week_ending_date': self.week_ending_date,
            'total_hours_worked': self.total_hours_worked,
            'flags': [f.value for f in self.flags],
            'comments': self.comments,
            'segments': [s.to_dict() for s in self.segments],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'EmployeeWeekResult':
        return cls(
            employee_name=data.get('employee_name', ''),
            employee_number=str(data['employee_number']),
            week_identifier=str(data.get('week_identifier', 'N/A')),
            week_ending_date=data.get('week_ending_date', ''),
            total_hours_worked=float(data.get('total_hours_worked', 0.0)),
            flags=[ShiftFlag(f) for f in data.get('flags', [])],
            segments=[ShiftSegment.from_dict(s) for s in data.get('segments', [])],
        )


@dataclass
class Employee:
    id: str
    employee_number: str
    alias: str
    first_name: str
    last_name: str
    hourly_rate: float
    last_updated: str

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'employee_number': self.employee_number,
            'alias': self.alias,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'hourly_rate': self.hourly_rate,
            'last_updated': self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Employee':
        return cls(
            id=data['id'],
            employee_number=str(data['employee_number']),
            alias=data.get('alias', ''),
            first_name=data.get('first_name', ''),
            last_name=data.get('last_name', ''),
            hourly_rate=float(data['hourly_rate']),
            last_updated=data.get('last_updated', ''),
        )


@dataclass
class NISClass:
    name: str
    min_earnings: float
    max_earnings: Optional[float]
    contribution: float


@dataclass
class PaysheetRow:
    result: EmployeeWeekResult
    hourly_rate: float
    amount_to_pay: float
    nis_deduction: float
    net_pay: float
    status: RowStatus
    warning_message: Optional[str] = None

    def to_dict(self) -> dict:
        data = self.result.to_dict()
        data.update({
            'hourly_rate': self.hourly_rate,
            'amount_to_pay': self.amount_to_pay,
            'nis_deduction': self.nis_deduction,
            'net_pay': self.net_pay,
            'status': self.status.value,
            'warning_message': self.warning_message,
        })
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'PaysheetRow':
        return cls(
            result=EmployeeWeekResult.from_dict(data),
            hourly_rate=float(data.get('hourly_rate', 0.0)),
            amount_to_pay=float(data.get('amount_to_pay', 0.0)),
            nis_deduction=float(data.get('nis_deduction', 0.0)),
            net_pay=float(data.get('net_pay', 0.0)),
            status=RowStatus(data.get('status', 'valid')),
            warning_message=data.get('warning_message'),
        )


@dataclass
class Paysheet:
    id: str
    generation_date: str
    week_identifier: str
    week_ending_date: str
    rows: list[PaysheetRow]
    total_hours: float
    total_amount: float
    generated_by: str

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'generation_date': self.generation_date,
            'week_identifier': self.week_identifier,
            'week_ending_date': self.week_ending_date,
            'rows': [r.to_dict() for r in self.rows],
            'total_hours': self.total_hours,
            'total_amount': self.total_amount,
            'generated_by': self.generated_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Paysheet':
        return cls(
            id=data['id'],
            generation_date=data.get('generation_date', ''),
            week_identifier=str(data.get('week_identifier', 'N/A')),
            week_ending_date=data.get('week_ending_date', ''),
            rows=[PaysheetRow.from_dict(r) for r in data.get('rows', [])],
            total_hours=float(data.get('total_hours', 0.0)),
            total_amount=float(data.get('total_amount', 0.0)),
            generated_by=data.get('generated_by', ''),
        )


def _parse_display_date(value: str) -> date:
    day, month, year = (int(part) for part in value.split('/'))
    return date(year, month, day)
