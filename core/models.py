"""Passenger accounts, identified by email."""
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.utils import timezone


class UserManager(BaseUserManager):

    def _create(self, email, password, **extra_fields):
        if not email:
            raise ValueError('An email address is required.')
        user = self.model(email=self.normalize_email(email), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        return self._create(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        # Superusers manage the catalog, so they are admins too
        for flag in ('is_staff', 'is_superuser', 'is_admin'):
            extra_fields[flag] = True
        return self._create(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """The booking core only ever sees ``User.pk``."""
    email = models.EmailField(unique=True, max_length=255)
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=15, blank=True, null=True)
    is_admin = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['is_active'], name='users_is_active_idx'),
        ]

    def __str__(self):
        return self.email

    def get_short_name(self):
        return self.name.split()[0] if self.name else self.email
