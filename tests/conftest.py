import os

# Settings are read at import time, so the environment must be ready before any coursepay import
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_app.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("MERCADO_PAGO_ACCESS_TOKEN", "TEST-0000000000000000-000000-00000000000000000000000000000000-000000000")
os.environ.setdefault("APP_URL", "https://courses.example.com")
