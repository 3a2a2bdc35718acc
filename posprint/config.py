"""Application configuration."""
import os

basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Printer I/O
    PRINTER_CONNECT_TIMEOUT = 5.0  # Seconds
    PRINTER_IO_TIMEOUT = 10.0  # Per probe / per chunk write
    PRINTER_CHUNK_SIZE = 4096

    # Receipt layout
    DEFAULT_PRINTER_WIDTH = 48  # Characters per line (80mm paper)
    CURRENCY_SYMBOL = os.environ.get("CURRENCY_SYMBOL", "$")
    RECEIPT_FOOTER = "Thank you for your visit!"
    QR_CELL_SIZE = 6


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{os.path.join(os.path.dirname(basedir), 'instance', 'printers.db')}"
    )


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{os.path.join(os.path.dirname(basedir), 'instance', 'printers.db')}"
    )


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    PRINTER_CONNECT_TIMEOUT = 0.5
    PRINTER_IO_TIMEOUT = 0.5


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
