"""
LocalBase Test Suite.

This package contains:
- unit/: Unit tests (pure functions, single components)
- integration/: Integration tests (client, persistence, realtime together)
"""
