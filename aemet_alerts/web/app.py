"""
AEMET alerts Flask application
"""

from typing import Optional

from flask import Flask
from flask_cors import CORS

from ..config import Settings


def create_app(settings: Optional[Settings] = None):
    app = Flask(__name__)
    CORS(app)
    app.json.ensure_ascii = False
    app.config['AEMET_SETTINGS'] = settings or Settings.from_env()

    # register blueprints
    from .routes import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    return app
