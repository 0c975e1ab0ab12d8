# fleet_compliance/__init__.py
import os
from flask import Flask
from flask_migrate import Migrate
from dotenv import load_dotenv

from fleet_compliance.config import Config
from fleet_compliance.db_models import db
from fleet_compliance.routes import register_blueprints
from fleet_compliance.utils.logger import setup_logging

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), '.env'))
migrate = Migrate()


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    app.secret_key = Config.SECRET_KEY

    database_url = os.environ.get("DATABASE_URL")
    if database_url and database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    app.config['SQLALCHEMY_DATABASE_URI'] = database_url

    if test_config:
        app.config.update(test_config)

    db.init_app(app)
    migrate.init_app(app, db)
    setup_logging(app)
    register_blueprints(app)

    return app
