"""
WSGI entrypoint for production servers (gunicorn/uwsgi).

The server imports `app` from this module to obtain the Flask application
object created by the application factory. The same module serves as
FLASK_APP for maintenance commands:

    FLASK_APP=wsgi flask cleanup-duplicate-drafts --dry-run
"""

from pressroom import create_app

app = create_app()
