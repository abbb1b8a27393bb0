"""
Configuration management for the shift scheduling service
Handles environment-based settings and scheduling policy knobs

Settings are read lazily from the environment (or a .env file) via
python-decouple, so development and tests run without any credentials.
"""
import secrets
from decouple import config, UndefinedValueError
from typing import Optional

from app.error_handlers.exceptions import ConfigurationException


class Config:
    """Base configuration class"""
    # Development gets a throwaway key per process
    SECRET_KEY = config('SECRET_KEY', default=secrets.token_hex(32))
    SQLALCHEMY_DATABASE_URI = config('DATABASE_URL', default='sqlite:///scheduling.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = config('LOG_LEVEL', default='INFO')
    LOG_FILE = config('LOG_FILE', default='logs/scheduling.log')

    # Shift times are wall-clock in the location's timezone
    DEFAULT_TIMEZONE = config('DEFAULT_TIMEZONE', default='UTC')

    # Longest wait for a staff/shift/request lock before answering 503
    LOCK_TIMEOUT_SECONDS = config('LOCK_TIMEOUT_SECONDS', default=10, cast=float)

    # Scheduling policy
    PUBLISH_CUTOFF_HOURS = config('PUBLISH_CUTOFF_HOURS', default=48, cast=int)
    DROP_CUTOFF_HOURS = config('DROP_CUTOFF_HOURS', default=24, cast=int)
    MAX_OPEN_SWAP_REQUESTS = config('MAX_OPEN_SWAP_REQUESTS', default=3, cast=int)

    # Background drop-expiry sweep (lazy expiry on listing always runs)
    DROP_EXPIRY_SWEEP_ENABLED = config('DROP_EXPIRY_SWEEP_ENABLED', default=True, cast=bool)
    DROP_EXPIRY_SWEEP_SECONDS = config('DROP_EXPIRY_SWEEP_SECONDS', default=300, cast=int)

    # Flask-Limiter
    RATELIMIT_ENABLED = config('RATELIMIT_ENABLED', default=True, cast=bool)
    RATELIMIT_DEFAULT = config('RATELIMIT_DEFAULT', default='300 per hour')
    RATELIMIT_STORAGE_URI = config('RATELIMIT_STORAGE_URI', default='memory://')

    @classmethod
    def validate(cls) -> None:
        """
        Check the scheduling policy values

        Raises:
            ConfigurationException: If a value is out of range
        """
        if cls.LOCK_TIMEOUT_SECONDS <= 0:
            raise ConfigurationException('LOCK_TIMEOUT_SECONDS must be positive')
        if cls.MAX_OPEN_SWAP_REQUESTS < 1:
            raise ConfigurationException('MAX_OPEN_SWAP_REQUESTS must be at least 1')
        if cls.DROP_CUTOFF_HOURS < 0 or cls.PUBLISH_CUTOFF_HOURS < 0:
            raise ConfigurationException('Cutoff hours cannot be negative')
        if cls.DROP_EXPIRY_SWEEP_SECONDS < 1:
            raise ConfigurationException('DROP_EXPIRY_SWEEP_SECONDS must be at least 1')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    LOG_FILE = ''
    LOG_LEVEL = 'WARNING'
    LOCK_TIMEOUT_SECONDS = 2
    DROP_EXPIRY_SWEEP_ENABLED = False
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """PostgreSQL-backed production configuration"""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': config('DB_POOL_SIZE', default=10, cast=int),
        'pool_recycle': config('DB_POOL_RECYCLE', default=3600, cast=int),
        'pool_pre_ping': True,
        'max_overflow': config('DB_MAX_OVERFLOW', default=20, cast=int),
    }

    LOG_LEVEL = config('LOG_LEVEL', default='WARNING')

    @classmethod
    def validate(cls) -> None:
        """
        Production additionally needs an explicit SECRET_KEY and PostgreSQL

        Advisory locks are what serialize writers across gunicorn workers,
        so SQLite is refused here.
        """
        super().validate()
        try:
            secret_key = config('SECRET_KEY')
        except UndefinedValueError as e:
            raise ConfigurationException('SECRET_KEY must be set in production') from e
        if len(secret_key) < 32:
            raise ConfigurationException(
                f"SECRET_KEY must be at least 32 characters in production (current: {len(secret_key)})"
            )
        if not cls.SQLALCHEMY_DATABASE_URI.startswith('postgresql'):
            raise ConfigurationException('Production requires DATABASE_URL to point at PostgreSQL')


config_mapping = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name: Optional[str] = None, validate: bool = False) -> type:
    """
    Get configuration class based on environment.

    Args:
        config_name: 'development', 'testing' or 'production'; defaults to FLASK_ENV
        validate: Run the class's validate() before returning it
    """
    if config_name is None:
        config_name = config('FLASK_ENV', default='development')

    config_class = config_mapping.get(config_name, DevelopmentConfig)
    if validate:
        config_class.validate()
    return config_class
