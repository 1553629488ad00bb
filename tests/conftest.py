# tests/conftest.py

import pytest

from config import Config


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "DEBUG"


@pytest.fixture
def app_with_db(tmp_path):
    """
    Creates a new app instance for a test, sets up an in-memory database,
    and yields the app within an application context.
    """
    from app import create_app, db

    app = create_app(TestConfig)
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")

    with app.app_context():
        db.create_all()
        yield app  # The tests will run here
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app_with_db):
    return app_with_db.test_client()


@pytest.fixture
def seeded_directory(app_with_db):
    """A small employee directory."""
    from app import db
    from app.models import Employee

    db.session.add_all([
        Employee(name="Budi Santoso", organizational_level="Eselon III"),
        Employee(name="SITI AMINAH, S.SOS", organizational_level="Eselon IV"),
        Employee(name="Rina Wulandari", organizational_level="Staff"),
    ])
    db.session.commit()
    return app_with_db
