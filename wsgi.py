"""WSGI entry point for the TestFlow backend."""

import os

from testflow import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))
