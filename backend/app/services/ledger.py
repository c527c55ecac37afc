"""
Process-wide presale engine.

The engine keeps its state in memory; every request handler and background
worker in the process shares this one instance.
"""

from app.core.config import settings
from app.ledger.engine import build_engine

# Singleton instance
presale_engine = build_engine(settings)
