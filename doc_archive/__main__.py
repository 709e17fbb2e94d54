"""
Entry point for running doc_archive as a module.
Usage: python -m doc_archive
"""

from .app import app
from .config_manager import app_config

if __name__ == "__main__":
    app.run(debug=app_config.DEBUG, host=app_config.HOST, port=app_config.PORT)
