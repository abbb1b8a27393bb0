"""
WSGI entry point for the shift scheduling service

    gunicorn --config gunicorn_config.py wsgi:app

FLASK_ENV defaults to production here, which requires SECRET_KEY and a
PostgreSQL DATABASE_URL; schema changes go through `flask db upgrade`.
Run with FLASK_ENV=development to get a local SQLite file created on start.
"""
import os

os.environ.setdefault('FLASK_ENV', 'production')

from app import create_app, init_db

app = create_app()

if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
    init_db(app)

application = app

if __name__ == "__main__":
    app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=5000)
