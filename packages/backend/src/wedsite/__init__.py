"""Wedsite — multi-tenant wedding microsite backend.

The authentication and authorization core for per-wedding admin back
offices: bearer tokens, identity resolution across account namespaces,
and the wedding access policy.
"""

__version__ = "0.1.0"
