"""
Tests for authentication app.

This package contains test modules for:
- test_managers.py: UserManager user/superuser creation
- factories.py: User factories (brand, creator) shared with other apps

Usage:
    pytest authentication/tests/
"""
