import io
import logging
import os
import uuid
from datetime import date
from flask import Blueprint, request, jsonify, current_app, send_file
from .models import EmployeeWeekResult, StructuralError
from .services.logs_reader import read_logs_grid
from .services.timesheet_reader import read_timesheet
from .services.shift_reconstructor import reconstruct_logs
from .services.paysheet_builder import (
    add_manual_entry, build_paysheet, missing_rate_employees, rates_from_directory,
)
from .services.storage import JsonStorage
from .services.exporter import export_filename, export_paysheet, export_punch_audit

logger = logging.getLogger(__name__)

main_bp = Blueprint('main', __name__)

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _storage() -> JsonStorage:
    return JsonStorage(current_app.config['DATA_FOLDER'])


@main_bp.route('/api/clean', methods=['POST'])
def api_clean():
    if 'xlsx_file' not in request.files:
        return jsonify({'error': 'No file uploaded'}), 400

    file = request.files['xlsx_file']
    if not file.filename or not file.filename.lower().endswith('.xlsx'):
        return jsonify({'error': 'File must be .xlsx'}), 400

    filename = f"{uuid.uuid4().hex}.xlsx"
    filepath = os.path.join(current_app.config['UPLOAD_FOLDER'], filename)
    file.save(filepath)

    try:
        grid = read_logs_grid(filepath)
        period, results = reconstruct_logs(grid)
    except StructuralError as e:
        logger.warning("Rejected %s: %s", file.filename, e)
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception("Failed to process %s", file.filename)
        return jsonify({'error': str(e)}), 500
    finally:
        if os.path.exists(filepath):
            os.remove(filepath)

    return jsonify({
        'period': {
            'start_date': period.start_date.isoformat(),
            'end_date': period.end_date.isoformat(),
            'week_number': period.week_number,
            'week_ending_date': period.week_ending,
        },
        'results': [r.to_dict() for r in results],
        'summary': {
            'employees': len(results),
            'total_hours': round(sum(r.total_hours_worked for r in results), 2),
            'anomalies': sum(1 for r in results if r.flags),
        },
    })


@main_bp.route('/api/employees', methods=['GET'])
def list_employees():
    return jsonify([e.to_dict() for e in _storage().get_employees()])


@main_bp.route('/api/employees', methods=['POST'])
def create_employee():
    try:
        employee = _storage().upsert_employee(request.get_json(silent=True) or {})
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(employee.to_dict()), 201


@main_bp.route('/api/employees/<employee_id>', methods=['PUT'])
def update_employee(employee_id):
    try:
        employee = _storage().upsert_employee(request.get_json(silent=True) or {}, employee_id)
    except KeyError:
        return jsonify({'error': 'Employee not found'}), 404
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(employee.to_dict())


@main_bp.route('/api/employees/<employee_id>', methods=['DELETE'])
def delete_employee(employee_id):
    if not _storage().delete_employee(employee_id):
        return jsonify({'error': 'Employee not found'}), 404
    return '', 204


@main_bp.route('/api/employees/missing', methods=['GET'])
def list_missing_employees():
    """Employees on the latest paysheet that have no pay rate yet."""
    storage = _storage()
    paysheets = storage.get_paysheets()
    if not paysheets:
        return jsonify([])
    return jsonify(missing_rate_employees(paysheets[0], storage.get_employees()))


@main_bp.route('/api/paysheets', methods=['GET'])
def list_paysheets():
    return jsonify([
        {
            'id': p.id,
            'generation_date': p.generation_date,
            'week_identifier': p.week_identifier,
            'week_ending_date': p.week_ending_date,
            'total_hours': p.total_hours,
            'total_amount': p.total_amount,
            'rows': len(p.rows),
        }
        for p in _storage().get_paysheets()
    ])


@main_bp.route('/api/paysheets', methods=['POST'])
def create_paysheet():
    payload = request.get_json(silent=True) or {}
    try:
        results = [EmployeeWeekResult.from_dict(r) for r in payload.get('results', [])]
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({'error': f'Invalid results: {e}'}), 400

    storage = _storage()
    try:
        paysheet = build_paysheet(
            results,
            rates_from_directory(storage.get_employees()),
            generated_by=current_app.config['GENERATED_BY'],
            high_hours_threshold=current_app.config['HIGH_HOURS_THRESHOLD'],
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    storage.save_paysheet(paysheet)
    return jsonify(paysheet.to_dict()), 201


@main_bp.route('/api/paysheets/import', methods=['POST'])
def import_paysheet():
    """Build a paysheet from an uploaded, already-cleaned timesheet."""
    if 'xlsx_file' not in request.files:
        return jsonify({'error': 'No file uploaded'}), 400

    file = request.files['xlsx_file']
    if not file.filename or not file.filename.lower().endswith('.xlsx'):
        return jsonify({'error': 'File must be .xlsx'}), 400

    filename = f"{uuid.uuid4().hex}.xlsx"
    filepath = os.path.join(current_app.config['UPLOAD_FOLDER'], filename)
    file.save(filepath)

    storage = _storage()
    try:
        results = read_timesheet(filepath)
        paysheet = build_paysheet(
            results,
            rates_from_directory(storage.get_employees()),
            generated_by=current_app.config['GENERATED_BY'],
            high_hours_threshold=current_app.config['HIGH_HOURS_THRESHOLD'],
        )
    except StructuralError as e:
        logger.warning("Rejected %s: %s", file.filename, e)
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.exception("Failed to import %s", file.filename)
        return jsonify({'error': str(e)}), 500
    finally:
        if os.path.exists(filepath):
            os.remove(filepath)

    storage.save_paysheet(paysheet)
    return jsonify(paysheet.to_dict()), 201


@main_bp.route('/api/paysheets/<paysheet_id>', methods=['GET'])
def get_paysheet(paysheet_id):
    paysheet = _storage().get_paysheet(paysheet_id)
    if paysheet is None:
        return jsonify({'error': 'Paysheet not found'}), 404
    return jsonify(paysheet.to_dict())


@main_bp.route('/api/paysheets/<paysheet_id>', methods=['DELETE'])
def delete_paysheet(paysheet_id):
    if not _storage().delete_paysheet(paysheet_id):
        return jsonify({'error': 'Paysheet not found'}), 404
    return '', 204


@main_bp.route('/api/paysheets/<paysheet_id>/rows/<employee_number>/punches', methods=['POST'])
def add_punch(paysheet_id, employee_number):
    storage = _storage()
    paysheet = storage.get_paysheet(paysheet_id)
    if paysheet is None:
        return jsonify({'error': 'Paysheet not found'}), 404

    payload = request.get_json(silent=True) or {}
    try:
        row = add_manual_entry(
            paysheet,
            employee_number,
            date.fromisoformat(str(payload.get('date', ''))),
            str(payload.get('in_time', '')),
            str(payload.get('out_time', '')),
            comment=payload.get('comment'),
            high_hours_threshold=current_app.config['HIGH_HOURS_THRESHOLD'],
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    storage.update_paysheet(paysheet)
    return jsonify(row.to_dict()), 201


@main_bp.route('/api/paysheets/<paysheet_id>/export', methods=['GET'])
def export_paysheet_xlsx(paysheet_id):
    paysheet = _storage().get_paysheet(paysheet_id)
    if paysheet is None:
        return jsonify({'error': 'Paysheet not found'}), 404
    return send_file(
        io.BytesIO(export_paysheet(paysheet)),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_filename(paysheet, 'Paysheet'),
    )


@main_bp.route('/api/paysheets/<paysheet_id>/audit', methods=['GET'])
def export_audit_xlsx(paysheet_id):
    paysheet = _storage().get_paysheet(paysheet_id)
    if paysheet is None:
        return jsonify({'error': 'Paysheet not found'}), 404
    return send_file(
        io.BytesIO(export_punch_audit(paysheet)),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_filename(paysheet, 'Punch_Audit'),
    )
