"""
Settings access for the parcels app.

Project settings provide a ``PARCELS`` dict; missing keys fall back to the
defaults below. Values are read on every access so tests can use
``override_settings``.
"""

from django.conf import settings

DEFAULTS = {
    'DELIVERY_CODE_LENGTH': 6,
    'DELIVERY_CODE_TTL_HOURS': None,
    'GENERIC_REDEMPTION_FAILURES': True,
    'OVERRIDE_ROLES': [],
    'EXPEDITE_AFTER_HOURS': 6,
    'NOTIFICATION_ADAPTER': 'parcels.adapters.notification_adapter.LoggingNotificationAdapter',
}


class ParcelSettings:

    def __getattr__(self, name):
        if name not in DEFAULTS:
            raise AttributeError(f"Invalid parcels setting: {name!r}")
        user_settings = getattr(settings, 'PARCELS', {}) or {}
        return user_settings.get(name, DEFAULTS[name])


parcel_settings = ParcelSettings()
