# ==============================================================================
# app/__init__.py
# ------------------------------------------------------------------------------
# Application factory for creating and configuring the Flask app instance.
# ==============================================================================

import os
import logging
import click
from flask import Flask
from config import Config
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Initialize extensions globally to be accessible by other modules
db = SQLAlchemy()
migrate = Migrate()

def create_app(config_class=Config):
    """
    Application factory function. Creates and configures the Flask application.

    Args:
        config_class (class): The configuration class to use.

    Returns:
        Flask: The configured Flask application instance.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)

    # Configure logging
    logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'),
                        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')

    # Ensure the instance folder exists for the SQLite database and roster uploads
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions with the application instance
    db.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints with the application
    from app.main import bp as main_bp
    app.register_blueprint(main_bp)

    @app.cli.command("seed")
    def seed():
        """Seeds the database with default pipeline settings."""
        from app.seed import seed_data
        seed_data()
        app.logger.info("Database has been seeded with default values.")

    @app.cli.command("import-roster")
    @click.argument("filepath", type=click.Path(exists=True, dir_okay=False))
    def import_roster(filepath):
        """Loads an employee roster file (.csv or .xlsx) into the directory."""
        from app.importer.roster import load_roster_file
        from app.main.utils import upsert_roster_entries
        entries, errors = load_roster_file(filepath)
        if errors:
            raise click.ClickException("; ".join(errors))
        added, updated = upsert_roster_entries(entries)
        db.session.commit()
        click.echo(f"Roster imported: {added} added, {updated} updated.")

    app.logger.info('Performance import service startup complete')

    return app
