# gutcheck/models/__init__.py
"""
Database models module initialization.
Exports all Tortoise ORM models for convenient imports throughout the application.

Models exported:
- User: identity, usage counters and encrypted BYOK credentials
- Idea: submitted idea with its embedded evaluation
"""
from .user import User
from .idea import Idea, IdeaStatus
