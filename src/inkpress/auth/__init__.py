"""Authentication and authorization.

Learn: Four small pieces, wired together per request in dependencies.py:

1. TokenBlacklist (blacklist.py) — revoked tokens, checked on every request
2. Authenticator (authenticator.py) — bearer header → IdentityClaim
3. Authorizer (authorizer.py) — admin / owner-or-admin, fresh role reads
4. SessionIssuer (sessions.py) — session + reset tokens, sign-out

Signing (jwt.py) and hashing (password.py) are thin wrappers over PyJWT
and bcrypt.
"""
