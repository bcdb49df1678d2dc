"""Authentication and authorization.

Learn: Two sign-in paths, one session format:
1. Phone + password → bcrypt check → session token
2. Google ID token → JWKS verification → session token

Session tokens are HS256 JWTs carrying account id, name and role.
Admin-only routes add a role gate on top of token verification.
"""
