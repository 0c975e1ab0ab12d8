import logging
import os
from logging.handlers import RotatingFileHandler

_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def setup_logging(app):
    # Repeated create_app() calls (tests, scripts) must not stack handlers.
    if getattr(app, "_fleet_logging_ready", False):
        return
    try:
        log_file_path = app.config.get("LOG_FILE") or os.path.join(os.path.dirname(__file__), '../..', 'app.log')
        log_file_path = os.path.abspath(log_file_path)

        # File handler
        file_handler = RotatingFileHandler(log_file_path, maxBytes=100000, backupCount=3)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(_FORMAT))

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter(_FORMAT))

        app.logger.addHandler(file_handler)
        app.logger.addHandler(console_handler)
        app.logger.setLevel(logging.INFO)
        app._fleet_logging_ready = True

        app.logger.info("Logging setup complete")
    except OSError as e:
        # Read-only filesystems still get console logging.
        app.logger.warning("File logging disabled: %s", e)
