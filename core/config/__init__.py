"""
Front Desk Core Config: Public API
====================================
Engine settings loaded from the Django settings container.
"""

from core.config.frontdesk import FrontDeskSettings, load_frontdesk_settings

__all__ = [
    "FrontDeskSettings",
    "load_frontdesk_settings",
]
