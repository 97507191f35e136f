"""
Blueprints package for ClubCourt
Contains modular route blueprints for different features
"""

from .auth import auth_bp
from .owner import owner_bp
from .player import player_bp
from .matches import matches_bp
from .public import public_bp

__all__ = ['auth_bp', 'owner_bp', 'player_bp', 'matches_bp', 'public_bp']
