# ==============================================================================
# config.py
# ------------------------------------------------------------------------------
# Configuration settings for the Flask application.
# Uses environment variables for sensitive data to keep them out of version control.
# ==============================================================================

import os
from dotenv import load_dotenv

# Determine the absolute path of the project directory
basedir = os.path.abspath(os.path.dirname(__file__))

# Load environment variables from a .env file located in the project root
load_dotenv(os.path.join(basedir, '.env'))

class Config:
    """
    Base configuration class. Contains default settings that can be overridden
    by environment-specific configurations.
    """
    # --- Security ---
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-should-really-set-a-secret-key-in-your-env-file'

    # --- Logging ---
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # --- Database Configuration ---
    # The employee directory, import runs and pipeline settings live in SQLite
    # by default, inside the 'instance' folder.
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance/app.db')

    # Disable an SQLAlchemy feature that is not needed and adds overhead.
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- File Upload Configuration ---
    # Roster files (employee directory exports) are stored here before parsing.
    UPLOAD_FOLDER = os.path.join(basedir, 'instance/uploads')

    # Roster uploads may be spreadsheet exports or plain CSV.
    ALLOWED_EXTENSIONS = {'.xlsx', '.csv'}

    # Pasted performance blocks and roster files are small; 16 MB is plenty.
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024
