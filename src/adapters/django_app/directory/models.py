"""
Staff and customer tables.

These records are owned by systems outside the ticketing core; the
core only reads them through UserDirectory and CustomerDirectory.
"""

from django.db import models
from django.utils import timezone


class StaffRoleChoices(models.TextChoices):
    SUPER_ADMIN = 'SUPER_ADMIN', 'Super Admin'
    SUPPORT_MANAGER = 'SUPPORT_MANAGER', 'Support Manager'
    ENGINEER = 'ENGINEER', 'Engineer'
    INVENTORY_MANAGER = 'INVENTORY_MANAGER', 'Inventory Manager'


class StaffMemberModel(models.Model):
    id = models.CharField(max_length=100, primary_key=True)

    name = models.CharField(max_length=200)

    email = models.EmailField(blank=True, default='')

    role = models.CharField(max_length=30, choices=StaffRoleChoices.choices, db_index=True)

    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'staff_members'
        verbose_name = 'Staff member'
        verbose_name_plural = 'Staff members'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.role})"


class CustomerModel(models.Model):
    id = models.CharField(max_length=100, primary_key=True)

    name = models.CharField(max_length=200)

    email = models.EmailField(blank=True, default='')

    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'customers'
        verbose_name = 'Customer'
        verbose_name_plural = 'Customers'
        ordering = ['name']

    def __str__(self):
        return self.name
