"""WSGI entry point for Gunicorn (wsgi:app)."""
import os
import sys

# config.py lives at the project root
sys.path.insert(0, os.path.dirname(__file__))

from ceasa import create_app

app = create_app(os.getenv('CEASA_CONFIG', 'config.Config'))

if __name__ == "__main__":
    app.run()
