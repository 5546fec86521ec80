"""
Expense test factories.
"""

import factory
from faker import Faker

fake = Faker()


class ExpenseFactory(factory.Factory):
    """Factory for expense payloads."""

    class Meta:
        model = dict

    description = factory.LazyFunction(lambda: fake.random_element(["Electricity bill", "Shop rent", "Tool repair"]))
    category = factory.LazyFunction(lambda: fake.random_element(["Utilities", "Rent", "Tools"]))
    amount = factory.LazyFunction(lambda: fake.random_int(min=1000, max=50000))
    payment_status = "pending"


class PaidExpenseFactory(ExpenseFactory):
    payment_status = "paid"
    payment_method = "Cash"
