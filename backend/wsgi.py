# backend/wsgi.py
from ona import create_app

app = create_app()
