from datetime import date, datetime

import pytest

from payprep.models import Employee, EmployeeWeekResult, RowStatus, ShiftSegment
from payprep.services.paysheet_builder import (
    add_manual_entry, build_paysheet, build_row, missing_rate_employees, rates_from_directory,
)


def _result(number, hours, name='Worker'):
    segments = [ShiftSegment(date=date(2026, 1, 24), in_time='08:00', out_time='16:00', hours=hours)]
    return EmployeeWeekResult(
        employee_name=name,
        employee_number=number,
        week_identifier='5',
        week_ending_date='31/01/2026',
        total_hours_worked=hours,
        segments=segments,
    )


def _employee(number, rate):
    return Employee(
        id=f'id{number}', employee_number=number, alias='A', first_name='F',
        last_name='L', hourly_rate=rate, last_updated='2026-01-01T00:00:00',
    )


def test_valid_row_is_priced_with_nis():
    row = build_row(_result('101', 40.0), {'101': 12.5})

    assert row.status is RowStatus.VALID
    assert row.amount_to_pay == 500.0
    assert row.nis_deduction == 28.60
    assert row.net_pay == 471.40
    assert row.warning_message is None


def test_missing_rate_row_pays_nothing():
    row = build_row(_result('999', 40.0), {'101': 12.5})

    assert row.status is RowStatus.MISSING_RATE
    assert row.warning_message == 'No pay rate found in database'
    assert row.hourly_rate == 0.0
    assert row.amount_to_pay == 0.0
    assert row.nis_deduction == 0.0


def test_high_hours_row_is_anomaly():
    row = build_row(_result('101', 61.0), {'101': 10.0})
    assert row.status is RowStatus.ANOMALY
    assert row.warning_message == 'Unusually high hours reported'
    assert row.amount_to_pay == 610.0

    assert build_row(_result('101', 61.0), {'101': 10.0}, high_hours_threshold=70).status is RowStatus.VALID


def test_build_paysheet_totals_and_metadata():
    generated_at = datetime(2026, 2, 1, 9, 30)
    paysheet = build_paysheet(
        [_result('101', 40.0), _result('102', 10.25), _result('103', 5.0)],
        {'101': 12.5, '102': 20.0},
        generated_by='Tester',
        generated_at=generated_at,
    )

    assert len(paysheet.id) == 9
    assert paysheet.generation_date == generated_at.isoformat()
    assert paysheet.week_identifier == '5'
    assert paysheet.week_ending_date == '31/01/2026'
    assert paysheet.total_hours == 55.25
    assert paysheet.total_amount == 705.0
    assert [r.status for r in paysheet.rows] == [
        RowStatus.VALID, RowStatus.VALID, RowStatus.MISSING_RATE,
    ]


def test_build_paysheet_needs_results():
    with pytest.raises(ValueError):
        build_paysheet([], {}, generated_by='Tester')


def test_rates_from_directory():
    assert rates_from_directory([_employee('101', 12.5), _employee('102', 9.0)]) == {
        '101': 12.5, '102': 9.0,
    }


def test_manual_entry_reprices_row_and_totals():
    paysheet = build_paysheet([_result('101', 8.0), _result('102', 8.0)], {'101': 25.0, '102': 10.0}, 'Tester')

    row = add_manual_entry(paysheet, '101', date(2026, 1, 25), '22:00', '06:00', comment='Forgot to punch')

    assert row.result.total_hours_worked == 16.0
    assert row.amount_to_pay == 400.0
    assert row.nis_deduction == 21.30
    added = row.result.segments[-1]
    assert added.manual_entry and not added.ignored
    assert added.hours == 8.0
    assert added.comment == 'Forgot to punch'
    assert paysheet.rows[0] is row
    assert paysheet.total_hours == 24.0
    assert paysheet.total_amount == 480.0


def test_manual_entry_keeps_missing_rate_status():
    paysheet = build_paysheet([_result('555', 8.0)], {}, 'Tester')
    row = add_manual_entry(paysheet, '555', date(2026, 1, 25), '09:00', '13:00')
    assert row.status is RowStatus.MISSING_RATE
    assert row.result.total_hours_worked == 12.0
    assert row.result.segments[-1].comment == 'Manual entry'


@pytest.mark.parametrize('number, in_time, out_time', [
    ('404', '09:00', '17:00'),
    ('101', '06:00', '05:00'),
    ('101', 'nine', '17:00'),
])
def test_manual_entry_rejections(number, in_time, out_time):
    paysheet = build_paysheet([_result('101', 8.0)], {'101': 10.0}, 'Tester')
    with pytest.raises(ValueError):
        add_manual_entry(paysheet, number, date(2026, 1, 25), in_time, out_time)
    assert paysheet.total_hours == 8.0


def test_missing_rate_employees_are_distinct_and_not_in_directory():
    paysheet = build_paysheet(
        [_result('300', 8.0, 'Cy'), _result('300', 4.0, 'Cy'), _result('301', 4.0, 'Di'), _result('101', 1.0)],
        {'101': 10.0},
        'Tester',
    )

    missing = missing_rate_employees(paysheet, [_employee('301', 9.0)])

    assert missing == [{'employee_number': '300', 'employee_name': 'Cy'}]


def test_manual_entry_adds_to_row_without_segments():
    summary_only = EmployeeWeekResult.from_dict({'employee_number': '101', 'week_identifier': 5, 'total_hours_worked': 40.0})
    paysheet = build_paysheet([summary_only], {'101': 10.0}, 'Tester')

    row = add_manual_entry(paysheet, '101', date(2026, 1, 26), '09:00', '11:00')

    assert row.result.total_hours_worked == 42.0
    assert row.amount_to_pay == 420.0
    assert len(row.result.segments) == 1
    assert paysheet.total_hours == 42.0
