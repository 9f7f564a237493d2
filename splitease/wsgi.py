"""
WSGI entry point.

    flask --app splitease.wsgi run
    flask --app splitease.wsgi issue-sync-token
    gunicorn splitease.wsgi:app
"""

import os

from splitease.app import create_app

app = create_app(os.getenv("FLASK_ENV", "development"))
