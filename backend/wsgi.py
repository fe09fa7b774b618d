# backend/wsgi.py
from counterbook import create_app

app = create_app()
