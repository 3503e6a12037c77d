# gutcheck/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Startup configuration report
- context: Per-request authentication context
- db: Database configuration and connection management
- errors: Domain error taxonomy
- security: Access tokens and the credential vault
- validation: Input validation helpers
"""
