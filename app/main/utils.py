# ==============================================================================
# app/main/utils.py
# ------------------------------------------------------------------------------
# Glue between the database models and the import pipeline: builds the
# pipeline settings and directory snapshot, and writes employees back.
# ==============================================================================
import logging

from app import db
from app.models import AppSetting, Employee
from app.importer.matching import DirectoryEntry
from app.importer.pipeline import ImportSettings

def load_import_settings():
    """Reads all AppSetting rows into an ImportSettings, falling back to defaults for missing keys."""
    values = {setting.key: setting.get_value() for setting in AppSetting.query.all()}
    return ImportSettings.from_settings_dict(values)

def directory_snapshot():
    """The employee directory as immutable entries, in insertion order."""
    return [
        DirectoryEntry(id=e.id, name=e.name, organizational_level=e.organizational_level)
        for e in Employee.query.order_by(Employee.id).all()
    ]

def upsert_roster_entries(entries):
    """
    Inserts or updates Employee rows from roster entries, keyed by exact name.
    The caller commits.

    Returns:
        tuple: (number added, number updated)
    """
    added, updated = 0, 0
    for entry in entries:
        employee = Employee.query.filter_by(name=entry.name).first()
        if employee is None:
            employee = Employee(name=entry.name)
            db.session.add(employee)
            added += 1
        else:
            updated += 1
        employee.nip = entry.nip
        employee.gol = entry.gol
        employee.pangkat = entry.pangkat
        employee.position = entry.position
        employee.sub_position = entry.sub_position
        employee.organizational_level = entry.organizational_level
    db.session.flush()
    logging.info(f"Roster upsert: {added} added, {updated} updated.")
    return added, updated

def add_resolved_employees(resolutions):
    """
    Adds the employees a resolution declared as new to the directory.
    Names already present are left untouched. The caller commits.
    """
    created = []
    for source_name, choice in resolutions.items():
        if not choice.get('is_new'):
            continue
        name = (choice.get('chosen_name') or '').strip() or source_name
        if Employee.query.filter_by(name=name).first() is not None:
            continue
        employee = Employee(name=name, organizational_level=choice['organizational_level'].strip())
        db.session.add(employee)
        created.append(name)
    db.session.flush()
    if created:
        logging.info(f"Added {len(created)} new employees from name resolution: {created}")
    return created
