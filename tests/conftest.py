"""Shared fixtures: synthetic "Logs" grids, workbooks and a Flask test client."""

import pytest
from openpyxl import Workbook

from payprep import create_app


def build_grid(duration, days, employees):
    """Build a Logs-sheet grid.

    `days` is the list of day-of-month header values; `employees` is a list of
    (number, name, cells) where `cells` is aligned with `days`.
    """
    grid = [
        ['Attendance Record Report'],
        ['Duration:', '', duration],
        list(days),
    ]
    for number, name, cells in employees:
        marker = ['No:', '', number, '', '', '', '', '', '', '', name]
        grid.append(marker)
        grid.append(list(cells))
    return grid


def write_workbook(path, grid, sheet_title='Logs', extra_sheets=()):
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    for row in grid:
        ws.append(row)
    for title in extra_sheets:
        wb.create_sheet(title)
    wb.save(path)
    return path


@pytest.fixture
def grid_builder():
    return build_grid


@pytest.fixture
def workbook_writer():
    return write_workbook


@pytest.fixture
def app(tmp_path):
    return create_app({
        'TESTING': True,
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'DATA_FOLDER': str(tmp_path / 'data'),
        'GENERATED_BY': 'Tester',
    })


@pytest.fixture
def client(app):
    return app.test_client()
