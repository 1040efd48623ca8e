"""
Authentication application.

Provides the email-based User model with its marketplace role and the
JWT token endpoints used by the payments API.

Usage:
    from authentication.models import User, UserRole
"""
