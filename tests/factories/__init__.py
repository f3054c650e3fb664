"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .user import UserFactory
from .customer import CustomerFactory, VipCustomerFactory, NewCustomerFactory

__all__ = [
    "UserFactory",
    "CustomerFactory",
    "VipCustomerFactory",
    "NewCustomerFactory",
]
