# ==============================================================================
# app/models.py
# ------------------------------------------------------------------------------
# Defines the database schema using SQLAlchemy ORM models.
# ==============================================================================

from datetime import datetime
from app import db
import json

class ImportRun(db.Model):
    """
    Stores one pasted performance block and the outcome of importing it.
    A run paused for name resolution keeps the raw text and the partial
    organizational mapping so it can be continued later.
    """
    __tablename__ = 'import_run'
    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(32), index=True, nullable=False, default='needs_resolution')
    upload_timestamp = db.Column(db.DateTime, index=True, default=datetime.utcnow)
    raw_text = db.Column(db.Text, nullable=False)

    # JSON blobs: name -> level mappings, the unresolved names and the final result
    roster_mapping_json = db.Column(db.Text, nullable=True)
    partial_mapping_json = db.Column(db.Text, nullable=True)
    unresolved_names_json = db.Column(db.Text, nullable=True)
    result_json = db.Column(db.Text, nullable=True)

    severity = db.Column(db.String(16), nullable=True)
    employee_count = db.Column(db.Integer, default=0)

    def __repr__(self):
        return f'<ImportRun {self.id}: {self.status}>'

    def load_json(self, attribute, default=None):
        """Decodes one of the *_json columns, returning `default` when empty."""
        value = getattr(self, attribute)
        if not value:
            return default
        return json.loads(value)

    def to_summary(self):
        return {
            'id': self.id,
            'status': self.status,
            'upload_timestamp': self.upload_timestamp.isoformat() if self.upload_timestamp else None,
            'severity': self.severity,
            'employee_count': self.employee_count,
            'unresolved_names': self.load_json('unresolved_names_json', []),
        }

class Employee(db.Model):
    """
    The employee directory (system of record). Imported names are reconciled
    against the names stored here.
    """
    __tablename__ = 'employee'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(256), unique=True, index=True, nullable=False)
    nip = db.Column(db.String(64))
    gol = db.Column(db.String(16))
    pangkat = db.Column(db.String(128))
    position = db.Column(db.String(256))
    sub_position = db.Column(db.String(256))
    organizational_level = db.Column(db.String(64), nullable=False, default='Staff')

    def __repr__(self):
        return f'<Employee {self.id}: {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'nip': self.nip,
            'gol': self.gol,
            'pangkat': self.pangkat,
            'position': self.position,
            'sub_position': self.sub_position,
            'organizational_level': self.organizational_level,
        }

class AppSetting(db.Model):
    """
    Stores key-value pairs for the import pipeline's tunable thresholds
    (similarity threshold, completeness threshold, required competencies...).
    """
    __tablename__ = 'app_setting'
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), unique=True, nullable=False, index=True)
    value = db.Column(db.String(2048), nullable=False)
    description = db.Column(db.String(512))
    value_type = db.Column(db.String(32), default='string') # e.g., 'float', 'int', 'string', 'json'

    def __repr__(self):
        return f'<AppSetting {self.key}: {self.value}>'

    def get_value(self):
        """Casts the string value to its correct Python type."""
        if self.value_type == 'float':
            return float(self.value)
        if self.value_type == 'int':
            return int(self.value)
        if self.value_type == 'json':
            return json.loads(self.value)
        return self.value
