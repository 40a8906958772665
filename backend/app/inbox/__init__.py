"""
Inbox module for guest message ingestion.

Provides:
- Inbound email parsing (workspace routing, sender parsing)
- Find-or-create of active guest threads
"""
