# ==============================================================================
# app/main/routes.py
# ------------------------------------------------------------------------------
# JSON API of the main blueprint: performance imports (with the name
# resolution step), the employee directory and the pipeline settings.
# ==============================================================================

import os
import json
from flask import request, jsonify, current_app
from werkzeug.utils import secure_filename
from sqlalchemy.exc import IntegrityError

from app import db
from app.main import bp
from app.models import ImportRun, Employee, AppSetting
from app.importer.errors import ImportDataError, ImportErrorCode
from app.importer.pipeline import process_import, continue_import, COMPLETED, NEEDS_RESOLUTION, ROSTER
from app.importer.roster import load_roster_file
from app.importer.validator import is_requirement_list
from app.main.utils import (load_import_settings, directory_snapshot, upsert_roster_entries,
                            add_resolved_employees)

# --- Helper Functions ---

def allowed_file(filename):
    """Checks if the file extension is allowed based on the app config."""
    return '.' in filename and \
           os.path.splitext(filename)[1].lower() in current_app.config['ALLOWED_EXTENSIONS']

def error_response(message, status, code=None, details=None):
    payload = {'error': {'message': message}}
    if code:
        payload['error']['code'] = code
    if details:
        payload['error']['details'] = details
    return jsonify(payload), status

def import_error_response(error):
    current_app.logger.warning(f"Import rejected ({error.code.value}): {error.message}")
    return jsonify(error.to_dict()), 400

def is_name_mapping(value):
    return isinstance(value, dict) and all(isinstance(k, str) and isinstance(v, str) for k, v in value.items())

def store_completed_outcome(run, outcome):
    run.status = COMPLETED
    run.result_json = json.dumps(outcome.to_dict(), ensure_ascii=False)
    run.severity = outcome.validation.severity
    run.employee_count = len(outcome.employees)
    run.unresolved_names_json = json.dumps(outcome.unresolved_names, ensure_ascii=False)
    run.partial_mapping_json = json.dumps(outcome.partial_directory_mapping, ensure_ascii=False)

@bp.app_errorhandler(404)
def not_found(error):
    return error_response('Resource not found.', 404)

# --- Import Routes ---

@bp.route('/api/imports', methods=['POST'])
def create_import():
    """Runs the first import step on a pasted block and records the run."""
    data = request.get_json(silent=True) or {}
    text = data.get('text')
    roster_mapping = data.get('roster_mapping') or {}
    if not isinstance(text, str):
        return error_response("Request body must contain the pasted block as 'text'.", 400)
    if not is_name_mapping(roster_mapping):
        return error_response("'roster_mapping' must map employee names to levels.", 400)

    try:
        outcome = process_import(text, directory_snapshot(), roster_mapping, load_import_settings())
    except ImportDataError as e:
        return import_error_response(e)

    try:
        if outcome.status == ROSTER:
            added, updated = upsert_roster_entries(outcome.roster_entries)
            db.session.commit()
            payload = outcome.to_dict()
            payload.update({'added': added, 'updated': updated})
            return jsonify(payload), 200

        run = ImportRun(
            raw_text=text,
            roster_mapping_json=json.dumps(roster_mapping, ensure_ascii=False),
            partial_mapping_json=json.dumps(outcome.partial_directory_mapping, ensure_ascii=False),
            unresolved_names_json=json.dumps(outcome.unresolved_names, ensure_ascii=False),
            status=outcome.status,
        )
        if outcome.status == COMPLETED:
            store_completed_outcome(run, outcome)
        db.session.add(run)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Saving the import run failed: {e}", exc_info=True)
        return error_response('An unexpected error occurred while saving the import.', 500)

    payload = outcome.to_dict()
    payload['run_id'] = run.id
    current_app.logger.info(f"Import run {run.id} finished with status '{run.status}'.")
    return jsonify(payload), (200 if outcome.status == COMPLETED else 202)

@bp.route('/api/imports/<int:run_id>/resolution', methods=['POST'])
def resolve_import(run_id):
    """Continues a paused run with the caller's name resolution."""
    run = db.get_or_404(ImportRun, run_id)
    if run.status != NEEDS_RESOLUTION:
        return error_response(f"Import run {run.id} is not awaiting name resolution.", 409)

    data = request.get_json(silent=True) or {}
    resolutions = data.get('resolutions')
    if not isinstance(resolutions, dict) or not all(isinstance(v, dict) for v in resolutions.values()):
        return error_response("'resolutions' must map each unresolved name to an object.", 400,
                              code=ImportErrorCode.INVALID_RESOLUTION.value)

    try:
        outcome = continue_import(
            run.raw_text,
            directory_snapshot(),
            resolutions,
            roster_mapping=run.load_json('roster_mapping_json', {}),
            settings=load_import_settings(),
        )
    except ImportDataError as e:
        return import_error_response(e)

    try:
        created = add_resolved_employees(resolutions)
        store_completed_outcome(run, outcome)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Saving the resolved import run {run.id} failed: {e}", exc_info=True)
        return error_response('An unexpected error occurred while saving the import.', 500)

    payload = outcome.to_dict()
    payload.update({'run_id': run.id, 'new_employees': created})
    return jsonify(payload), 200

@bp.route('/api/imports', methods=['GET'])
def list_imports():
    """Lists all past import runs, newest first."""
    runs = ImportRun.query.order_by(ImportRun.upload_timestamp.desc(), ImportRun.id.desc()).all()
    return jsonify([run.to_summary() for run in runs])

@bp.route('/api/imports/<int:run_id>', methods=['GET'])
def get_import(run_id):
    run = db.get_or_404(ImportRun, run_id)
    payload = run.to_summary()
    payload['partial_directory_mapping'] = run.load_json('partial_mapping_json', {})
    payload['result'] = run.load_json('result_json')
    return jsonify(payload)

# --- Employee Directory Routes ---

@bp.route('/api/employees', methods=['GET'])
def list_employees():
    employees = Employee.query.order_by(Employee.name).all()
    return jsonify([e.to_dict() for e in employees])

@bp.route('/api/employees', methods=['POST'])
def add_employee():
    """Adds one employee to the directory."""
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    level = (data.get('organizational_level') or '').strip()
    if not name or not level:
        return error_response("Both 'name' and 'organizational_level' are required.", 400)

    try:
        employee = Employee(name=name, organizational_level=level)
        db.session.add(employee)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return error_response(f"An employee named '{name}' already exists.", 409)
    return jsonify(employee.to_dict()), 201

@bp.route('/api/employees/roster', methods=['POST'])
def upload_roster():
    """Handles a roster file upload and upserts the directory from it."""
    if 'file' not in request.files:
        return error_response('No file part in the request.', 400)

    file = request.files['file']
    if file.filename == '':
        return error_response('No file selected.', 400)
    if not allowed_file(file.filename):
        return error_response('File type not allowed. Please upload a .xlsx or .csv file.', 400)

    filename = secure_filename(file.filename)
    filepath = os.path.join(current_app.config['UPLOAD_FOLDER'], filename)
    os.makedirs(current_app.config['UPLOAD_FOLDER'], exist_ok=True)
    file.save(filepath)

    entries, errors = load_roster_file(filepath)
    if errors:
        return error_response('The roster could not be imported.', 400,
                              code=ImportErrorCode.INVALID_ROSTER.value, details=errors)

    try:
        added, updated = upsert_roster_entries(entries)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Roster upsert failed: {e}", exc_info=True)
        return error_response('An unexpected error occurred while saving the roster.', 500)

    return jsonify({'added': added, 'updated': updated,
                    'roster_entries': [entry.to_dict() for entry in entries]}), 200

# --- Settings Routes ---

def setting_to_dict(setting):
    return {
        'key': setting.key,
        'value': setting.get_value(),
        'description': setting.description,
        'value_type': setting.value_type,
    }

@bp.route('/api/settings', methods=['GET'])
def list_settings():
    settings = AppSetting.query.order_by(AppSetting.key).all()
    return jsonify([setting_to_dict(s) for s in settings])

@bp.route('/api/settings/<key>', methods=['PUT'])
def update_setting(key):
    setting = AppSetting.query.filter_by(key=key).first_or_404()
    data = request.get_json(silent=True) or {}
    if 'value' not in data:
        return error_response("Request body must contain 'value'.", 400)

    new_value = data['value']
    try:
        if setting.value_type == 'json':
            if isinstance(new_value, str):
                new_value = json.loads(new_value)
            if key == 'REQUIRED_COMPETENCIES' and not is_requirement_list(new_value):
                return error_response("REQUIRED_COMPETENCIES must be a list of objects with a 'name' "
                                      "and an optional list of 'aliases'.", 400)
            new_value = json.dumps(new_value, ensure_ascii=False)
        elif setting.value_type == 'float':
            new_value = str(float(new_value))
        elif setting.value_type == 'int':
            new_value = str(int(new_value))
        else:
            new_value = str(new_value)
    except (TypeError, ValueError):
        return error_response(f"The value is not a valid {setting.value_type} for setting '{key}'.", 400)

    setting.value = new_value
    db.session.commit()
    current_app.logger.info(f"Setting '{key}' updated to {new_value!r}.")
    return jsonify(setting_to_dict(setting))
