# backend/planner/__init__.py
"""
Package init: load environment variables from a .env file if present.
This runs before planner modules read configuration from os.getenv.
"""

from dotenv import load_dotenv

load_dotenv()
