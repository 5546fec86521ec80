"""
Inventory test factories.
"""

import factory
from faker import Faker

fake = Faker()


class InventoryItemFactory(factory.Factory):
    """
    Factory for consumable inventory item payloads.

    Usage:
        payload = InventoryItemFactory(quantity=3, reorder_level=5)
    """

    class Meta:
        model = dict

    name = factory.Sequence(lambda n: f"Oil Filter {n:03d}")
    description = factory.LazyFunction(fake.sentence)
    type = "consumable"
    unit = "pcs"
    quantity = 10
    unit_cost = factory.LazyFunction(lambda: round(fake.pyfloat(min_value=100, max_value=5000), 2))
    reorder_level = 2


class BulkItemFactory(InventoryItemFactory):
    """Bulk stock is never moved by invoices."""

    name = factory.Sequence(lambda n: f"Coolant Drum {n:03d}")
    type = "bulk"
    unit = "l"
