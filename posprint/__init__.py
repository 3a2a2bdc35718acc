"""Flask application factory."""
import logging
import os

from flask import Flask
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def create_app(config_name: str = "default", **overrides):
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Load configuration
    from posprint.config import config
    app.config.from_object(config[config_name])
    app.config.update(overrides)

    logging.basicConfig(
        level=getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if uri.startswith("sqlite:///") and ":memory:" not in uri:
        directory = os.path.dirname(uri[len("sqlite:///"):])
        if directory:
            os.makedirs(directory, exist_ok=True)

    # Initialize extensions
    db.init_app(app)

    from posprint.orchestrator import PrintOrchestrator
    from posprint.store import ConfigStore

    store = ConfigStore(db)
    app.extensions["posprint"] = PrintOrchestrator(
        store,
        connect_timeout=app.config["PRINTER_CONNECT_TIMEOUT"],
        io_timeout=app.config["PRINTER_IO_TIMEOUT"],
        chunk_size=app.config["PRINTER_CHUNK_SIZE"],
        currency_symbol=app.config["CURRENCY_SYMBOL"],
        footer=app.config["RECEIPT_FOOTER"],
        qr_cell_size=app.config["QR_CELL_SIZE"],
    )

    # Register blueprints
    from posprint.routes.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    # Create tables
    with app.app_context():
        db.create_all()

    return app
