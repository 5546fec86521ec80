"""
Technician test factory.
"""

import factory
from faker import Faker

fake = Faker()


class TechnicianFactory(factory.Factory):
    """Factory for technician payloads."""

    class Meta:
        model = dict

    name = factory.LazyFunction(fake.name)
    phone = factory.LazyFunction(lambda: fake.numerify("07########"))
    status = "Active"
