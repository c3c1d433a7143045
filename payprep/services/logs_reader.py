from datetime import time
from zipfile import BadZipFile
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from ..models import StructuralError

LOGS_SHEET = 'logs'


def read_logs_grid(filepath) -> list[list]:
    """Read the "Logs" sheet of a timeclock XLSX export as a grid of cells.

    The sheet name is matched case-insensitively. Empty cells become '' and
    time cells become 'HH:MM' so punch cells can be split as text.
    """
    try:
        wb = load_workbook(filepath, read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError) as exc:
        raise StructuralError(f"Could not open workbook: {exc}") from exc

    try:
        sheet_name = next(
            (name for name in wb.sheetnames if name.lower() == LOGS_SHEET),
            None,
        )
        if sheet_name is None:
            raise StructuralError("Could not find a tab labelled 'Logs' in the uploaded file.")

        ws = wb[sheet_name]
        return [[_normalize(value) for value in row] for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _normalize(value):
    if value is None:
        return ''
    if isinstance(value, time):
        return value.strftime('%H:%M')
    return value
