# gutcheck/core/context.py
"""
Authentication context produced once per request at the API boundary
(see api.v1.deps) and passed explicitly into the service layer.
"""
from dataclasses import dataclass

from gutcheck.models.user import User


@dataclass
class AuthContext:
    user: User
    email: str  # normalized
    ip: str = "unknown"
