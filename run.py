#!/usr/bin/env python3
"""
Run the AEMET alerts API development server.
"""

from aemet_alerts.config import Settings, load_env_files
from aemet_alerts.logging_setup import configure_logging
from aemet_alerts.web import create_app

if __name__ == '__main__':
    load_env_files()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)
    app.run(debug=True, host='127.0.0.1', port=5000)
