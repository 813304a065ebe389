# backend/wsgi.py
from shiftwatch import create_app

app = create_app()
