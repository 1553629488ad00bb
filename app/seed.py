import json
from app import db
from app.models import AppSetting
from app.importer.aggregator import DEFAULT_ORGANIZATIONAL_LEVEL
from app.importer.validator import DEFAULT_REQUIRED_COMPETENCIES

DEFAULT_SETTINGS = {
    # key: [value, description, value_type]
    'SIMILARITY_THRESHOLD': ['0.80', 'Minimum similarity ratio for a fuzzy name match (0.80 = 80%)', 'float'],
    'COMPLETENESS_THRESHOLD': ['80', 'Data completeness (%) below which an import is rated at least medium', 'float'],
    'SEVERITY_HIGH_ERROR_COUNT': ['3', 'Number of validation errors from which an import is rated high', 'int'],
    'SEVERITY_MEDIUM_WARNING_COUNT': ['5', 'Number of validation warnings from which an import is rated medium', 'int'],
    'DEFAULT_ORGANIZATIONAL_LEVEL': [DEFAULT_ORGANIZATIONAL_LEVEL, 'Placeholder level for employees with no known level', 'string'],
    'REQUIRED_COMPETENCIES': [json.dumps(list(DEFAULT_REQUIRED_COMPETENCIES), ensure_ascii=False),
                              'Competencies every performance dataset must contain, with accepted aliases (JSON format)', 'json'],
}

def seed_data():
    """Populates the database with default pipeline settings."""
    for key, data in DEFAULT_SETTINGS.items():
        setting = AppSetting.query.filter_by(key=key).first()
        if not setting: # Only add if it doesn't exist
            setting = AppSetting(key=key, value=data[0], description=data[1], value_type=data[2])
            db.session.add(setting)
            print(f'Seeding setting: {key}')

    db.session.commit()
    print('Seeding complete.')
