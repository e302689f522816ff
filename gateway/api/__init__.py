"""Gateway API adapter package.

Architectural role:
- Defines the external interaction boundary for HTTP and CLI interfaces.
- Performs transport-level concerns (preflight, envelopes, CORS headers).
- Delegates all request work to `gateway.core.engine`.
"""
