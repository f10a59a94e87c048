# ==============================================================================
# config.py
# ------------------------------------------------------------------------------
# Configuration settings for the Flask application.
# Uses environment variables for sensitive data to keep them out of version control.
# ==============================================================================

import os
import tempfile
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

    # --- Database Configuration ---
    # SQLite by default; point DATABASE_URL at Postgres in production.
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance/dashboard.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- Logging ---
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'

    # --- JSON API ---
    # The API is consumed by scripts and the SPA, forms are fed from JSON bodies.
    WTF_CSRF_ENABLED = False
    JSON_SORT_KEYS = False

    # --- File Upload Configuration ---
    UPLOAD_FOLDER = os.path.join(basedir, 'instance/uploads')
    ALLOWED_EXTENSIONS = {'.xlsx', '.csv'}
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # --- Business defaults ---
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY') or 'USDT'
    # Weeks of payroll held back before it becomes payable
    PAYROLL_BUFFER_WEEKS = int(os.environ.get('PAYROLL_BUFFER_WEEKS') or 1)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    UPLOAD_FOLDER = os.path.join(tempfile.gettempdir(), 'dashboard-test-uploads')
