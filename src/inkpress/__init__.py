"""Inkpress — blog backend authentication core.

Registration, sign-in, sign-out with token revocation, password reset,
and the role/ownership checks that guard the blog's mutating endpoints.
"""

__version__ = "0.1.0"
