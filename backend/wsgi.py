# backend/wsgi.py
from docstock import create_app

app = create_app()
