"""
Pytest suite for the Shiv Dhaba order lifecycle client.

Test categories:
- Unit tests: pure logic (state machine, throttle, geo, models, errors)
- Integration tests: local SQLite store and the in-process fake backend
"""
