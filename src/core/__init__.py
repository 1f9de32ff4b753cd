"""
Core Domain Layer - the hexagon.

Pure business logic with no framework dependencies:
- No Django, Celery or database imports
- Fully testable with in-memory adapters
- Infrastructure agnostic
"""
