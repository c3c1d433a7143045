import json
import logging
import os
import uuid
from datetime import datetime
from typing import Optional
from ..models import Employee, Paysheet

logger = logging.getLogger(__name__)

EMPLOYEES_FILE = 'employees.json'
PAYSHEETS_FILE = 'paysheets.json'


class JsonStorage:
    """Employees and paysheets kept as JSON lists in a data folder."""

    def __init__(self, data_folder: str):
        self.data_folder = data_folder
        os.makedirs(data_folder, exist_ok=True)

    # Employees

    def get_employees(self) -> list[Employee]:
        return [Employee.from_dict(d) for d in self._read(EMPLOYEES_FILE)]

    def save_employees(self, employees: list[Employee]) -> None:
        self._write(EMPLOYEES_FILE, [e.to_dict() for e in employees])

    def upsert_employee(self, data: dict, employee_id: Optional[str] = None) -> Employee:
        """Create or update an employee after validating the submitted fields."""
        employees = self.get_employees()
        employee = _validate_employee(data, employees, employee_id)

        if employee_id is None:
            employees.append(employee)
        else:
            index = next((i for i, e in enumerate(employees) if e.id == employee_id), None)
            if index is None:
                raise KeyError(employee_id)
            employees[index] = employee

        self.save_employees(employees)
        return employee

    def delete_employee(self, employee_id: str) -> bool:
        employees = self.get_employees()
        remaining = [e for e in employees if e.id != employee_id]
        if len(remaining) == len(employees):
            return False
        self.save_employees(remaining)
        return True

    # Paysheets (newest first)

    def get_paysheets(self) -> list[Paysheet]:
        return [Paysheet.from_dict(d) for d in self._read(PAYSHEETS_FILE)]

    def get_paysheet(self, paysheet_id: str) -> Optional[Paysheet]:
        return next((p for p in self.get_paysheets() if p.id == paysheet_id), None)

    def save_paysheet(self, paysheet: Paysheet) -> None:
        existing = self._read(PAYSHEETS_FILE)
        self._write(PAYSHEETS_FILE, [paysheet.to_dict()] + existing)

    def update_paysheet(self, paysheet: Paysheet) -> None:
        existing = self._read(PAYSHEETS_FILE)
        updated = [paysheet.to_dict() if p['id'] == paysheet.id else p for p in existing]
        self._write(PAYSHEETS_FILE, updated)

    def delete_paysheet(self, paysheet_id: str) -> bool:
        existing = self._read(PAYSHEETS_FILE)
        remaining = [p for p in existing if p['id'] != paysheet_id]
        if len(remaining) == len(existing):
            return False
        self._write(PAYSHEETS_FILE, remaining)
        return True

    def _path(self, filename: str) -> str:
        return os.path.join(self.data_folder, filename)

    def _read(self, filename: str) -> list[dict]:
        path = self._path(filename)
        if not os.path.exists(path):
            return []
        with open(path, encoding='utf-8') as f:
            return json.load(f)

    def _write(self, filename: str, records: list[dict]) -> None:
        path = self._path(filename)
        tmp_path = path + '.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(records, f, indent=2)
        os.replace(tmp_path, path)
        logger.debug("Wrote %d records to %s", len(records), path)


def _validate_employee(data: dict, employees: list[Employee], employee_id: Optional[str]) -> Employee:
    fields = ['employee_number', 'alias', 'first_name', 'last_name', 'hourly_rate']
    values = {f: str(data.get(f, '') or '').strip() for f in fields}
    if not all(values.values()):
        raise ValueError('All fields are mandatory')

    try:
        rate = float(values['hourly_rate'])
    except ValueError:
        rate = 0.0
    if not rate > 0:
        raise ValueError('Hourly rate must be a valid number greater than 0')

    if any(e.employee_number == values['employee_number'] and e.id != employee_id for e in employees):
        raise ValueError('Employee Number must be unique')

    return Employee(
        id=employee_id or uuid.uuid4().hex[:9],
        employee_number=values['employee_number'],
        alias=values['alias'],
        first_name=values['first_name'],
        last_name=values['last_name'],
        hourly_rate=rate,
        last_updated=datetime.now().isoformat(),
    )
