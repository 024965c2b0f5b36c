# backend/bardeals/__init__.py
"""
Package init: load environment variables from a .env file if present.
This runs before bardeals.config reads its settings from os.environ.
"""

from dotenv import load_dotenv

load_dotenv()
