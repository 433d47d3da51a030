"""
Front Desk Core: Event Store App Configuration
================================================
Registers the operational record log and the room master table.

This app:
- Persists immutable operational records
- Appends new versions for edits
- Applies store-level approval and soft deletion

This app does NOT:
- Interpret record payloads
- Derive occupancy or balances
"""

from django.apps import AppConfig


class EventStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.event_store"
    label = "event_store"
    verbose_name = "Front Desk Event Store"
