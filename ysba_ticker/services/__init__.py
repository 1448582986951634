# ysba_ticker/services/__init__.py
"""
Services package exports.
"""
from .games_service import GamesService
from .standings_service import StandingsService

__all__ = ["GamesService", "StandingsService"]
