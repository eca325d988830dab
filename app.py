"""
app.py — Flask entry point for the microgreens report service.

Initializes the Flask app from defaults and environment variables,
configures logging, calls init_db() on startup and registers the
reports blueprint.

Run: python app.py → localhost:5000
"""

import logging
import os
from flask import Flask
from flask_wtf.csrf import CSRFProtect

from database import init_db
from plantings_api import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from routes.reports import reports_bp

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    base_dir = os.path.dirname(os.path.abspath(__file__))

    app.config.update(
        SECRET_KEY=os.environ.get('MICROGREENS_SECRET_KEY', 'microgreens-local-app-secret-key'),
        DATABASE=os.environ.get('MICROGREENS_DB_PATH', os.path.join(base_dir, 'data', 'microgreens.db')),
        PLANTINGS_API_URL=os.environ.get('PLANTINGS_API_URL', DEFAULT_BASE_URL),
        PLANTINGS_API_TIMEOUT=float(os.environ.get('PLANTINGS_API_TIMEOUT', DEFAULT_TIMEOUT)),
        LOG_LEVEL=os.environ.get('LOG_LEVEL', 'INFO'),
        WTF_CSRF_CHECK_DEFAULT=True,
    )

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(level=app.config['LOG_LEVEL'].upper(), format=LOG_FORMAT)

    CSRFProtect(app)

    with app.app_context():
        init_db()

    app.register_blueprint(reports_bp)

    logging.getLogger(__name__).info("Report service ready (database %s)", app.config['DATABASE'])
    return app


if __name__ == '__main__':
    app = create_app()
    # Set FLASK_DEBUG=0 to disable auto-reload
    debug = os.environ.get('FLASK_DEBUG', '1') != '0'
    app.run(host='localhost', port=5000, debug=debug)
