# config.py
# Manages application configuration for different environments using python-dotenv.

import os
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
PROJECT_ROOT = os.path.dirname(basedir)

load_dotenv(os.path.join(PROJECT_ROOT, '.env'))  # Load .env from the project root


def _float_env(name, default):
    value = os.environ.get(name)
    return float(value) if value else default


class Config:
    """Base configuration class with settings common to all environments."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'a-very-hard-to-guess-default-secret-key'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # Public verification links: <BASE_VERIFICATION_URL>/verify/<cert_id>
    BASE_VERIFICATION_URL = os.environ.get('BASE_VERIFICATION_URL') or 'http://127.0.0.1:5000'

    # Certificate registry contract. Leaving either unset runs in store-only mode.
    CHAIN_RPC_URL = os.environ.get('CHAIN_RPC_URL')
    CONTRACT_ADDRESS = os.environ.get('CONTRACT_ADDRESS')
    CONTRACT_ABI_PATH = os.environ.get('CONTRACT_ABI_PATH')
    CHAIN_TIMEOUT = _float_env('CHAIN_TIMEOUT', 10.0)
    EXPLORER_TX_URL = os.environ.get('EXPLORER_TX_URL') or 'https://sepolia.etherscan.io/tx/{}'

    # A 100pt QR needs roughly 4x to decode reliably from a rendered page.
    PDF_RENDER_SCALE = _float_env('PDF_RENDER_SCALE', 4.0)
    MAX_RENDER_PIXELS = int(os.environ.get('MAX_RENDER_PIXELS') or 200_000_000)

    SCANNER_DEVICE = int(os.environ.get('SCANNER_DEVICE') or 0)

    @staticmethod
    def init_app(app):
        pass


class DevelopmentConfig(Config):
    """Configuration for the development environment."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        'sqlite:///' + os.path.join(PROJECT_ROOT, 'instance', 'data-dev.db')


class TestingConfig(Config):
    """Configuration for the testing environment."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('TEST_DATABASE_URL') or 'sqlite:///:memory:'
    CHAIN_RPC_URL = None
    CONTRACT_ADDRESS = None


class ProductionConfig(Config):
    """Configuration for the production environment."""
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)
        if not cls.SQLALCHEMY_DATABASE_URI:
            raise ValueError("DATABASE_URL is not set for the production environment.")


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
