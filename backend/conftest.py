"""
Pytest configuration file for backend testing.
"""
import os
import sys
from pathlib import Path

# Tests never talk to a real identity provider or shared database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("ENVIRONMENT", "test")

# Add the backend directory to Python path so imports work correctly
backend_dir = Path(__file__).parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Import all models to ensure SQLAlchemy relationships work
from modules.punchcards.models import punch_models  # noqa: E402,F401
