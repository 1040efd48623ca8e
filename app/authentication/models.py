"""
Authentication models.

This module defines the marketplace user:
- User: Custom user model with email-based authentication and a
  marketplace role (brand funds contracts, creator gets paid)

Related files:
    - managers.py: Custom user manager for email-based creation
    - payments.models.ConnectedAccount: A creator's payout account

Security:
    - User passwords hashed with Django's password hashers
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """Marketplace role of a user."""

    BRAND = "BRAND", "Brand"
    CREATOR = "CREATOR", "Creator"
    AGENCY = "AGENCY", "Agency"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        role: Marketplace role (BRAND, CREATOR, AGENCY)
        stripe_customer_id: Stripe Customer used when this user funds escrow
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        brand = User.objects.create_user(
            email='brand@example.com',
            password='securepassword',
            role=UserRole.BRAND,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CREATOR,
        db_index=True,
        help_text="Marketplace role of this user",
    )

    stripe_customer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Customer ID (cus_xxx), created on first escrow funding",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    @property
    def is_brand(self) -> bool:
        return self.role == UserRole.BRAND

    @property
    def is_creator(self) -> bool:
        return self.role == UserRole.CREATOR
