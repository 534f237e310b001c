"""
Services package initialization.
Centralizes service imports.
"""

from app.services.veeqo_service import veeqo_service

__all__ = [
    'veeqo_service'
]
