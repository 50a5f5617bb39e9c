# backend/wsgi.py
from voucherpos import create_app

app = create_app()
