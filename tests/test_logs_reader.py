from datetime import time

import pytest

from payprep.models import StructuralError
from payprep.services.logs_reader import _normalize, read_logs_grid
from payprep.services.shift_reconstructor import reconstruct_logs

DURATION = '2026/01/23 ~ 01/25 ( atherlys )'


def test_reads_logs_sheet_case_insensitively(tmp_path, grid_builder, workbook_writer):
    grid = grid_builder(DURATION, [23, 24, 25], [
        ('101', 'Ana Smith', ['08:00 16:00', '23:30', '02:00']),
    ])
    path = workbook_writer(tmp_path / 'export.xlsx', grid, sheet_title='LOGS', extra_sheets=['Summary'])

    rows = read_logs_grid(path)

    assert rows[1][0] == 'Duration:'
    assert rows[1][2] == DURATION
    assert rows[2][:3] == [23, 24, 25]
    _, results = reconstruct_logs(rows)
    assert results[0].total_hours_worked == 10.5


def test_empty_cells_become_empty_strings(tmp_path, grid_builder, workbook_writer):
    grid = grid_builder(DURATION, [23, 24, 25], [('101', 'Ana Smith', ['', '09:00 17:00', ''])])
    path = workbook_writer(tmp_path / 'export.xlsx', grid)

    rows = read_logs_grid(path)

    assert all(cell is not None for row in rows for cell in row)


def test_missing_logs_sheet_is_structural_error(tmp_path, grid_builder, workbook_writer):
    grid = grid_builder(DURATION, [23, 24, 25], [])
    path = workbook_writer(tmp_path / 'export.xlsx', grid, sheet_title='Sheet1')

    with pytest.raises(StructuralError, match="tab labelled 'Logs'"):
        read_logs_grid(path)


def test_unreadable_file_is_structural_error(tmp_path):
    path = tmp_path / 'export.xlsx'
    path.write_text('not a workbook')

    with pytest.raises(StructuralError):
        read_logs_grid(path)


def test_normalize_formats_time_cells():
    assert _normalize(time(8, 5)) == '08:05'
    assert _normalize(None) == ''
    assert _normalize(23) == 23
    assert _normalize('No:') == 'No:'
