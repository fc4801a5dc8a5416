# backend/wsgi.py
from printmarket import create_app

app = create_app()
