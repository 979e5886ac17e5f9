"""Authentication and multi-tenant authorization.

Token model, identity resolution across the account namespaces, and the
wedding access policy:

1. Login → IdentityResolver walks the provider chain
   (master → super-admin → wedding-admin → legacy-admin) → token pair
2. Each request → SessionAuthenticator verifies the access token
   statelessly and returns an Identity
3. Wedding-scoped requests → membership is re-fetched live, then the
   WeddingAccessPolicy checks the wedding's lifecycle state

Nothing in this package imports FastAPI except dependencies.py.
"""
