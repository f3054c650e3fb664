"""
User test factory.

Generates Google-authenticated user data for testing.
"""

import factory
from faker import Faker

fake = Faker()


class UserFactory(factory.Factory):
    """
    Factory for generating User test data.

    Usage:
        user = UserFactory()
        user = UserFactory(email="custom@example.com")
    """

    class Meta:
        model = dict

    google_id = factory.Sequence(lambda n: f"google-{n}")
    display_name = factory.LazyFunction(fake.name)
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    photo = factory.LazyFunction(fake.image_url)
