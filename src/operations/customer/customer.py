"""Customer aggregate: who placed an order and how to reach them."""

from datetime import UTC, datetime

from protean.fields import DateTime, String

from operations.domain import operations
from operations.customer.events import CustomerRegistered


@operations.aggregate
class Customer:
    first_name = String(required=True, max_length=100, sanitize=False)
    last_name = String(required=True, max_length=100, sanitize=False)
    email = String(required=True, max_length=254)
    phone_number = String(max_length=30)
    created_at = DateTime()

    @classmethod
    def register(cls, first_name: str, last_name: str, email: str, phone_number: str | None = None):
        now = datetime.now(UTC)
        customer = cls(
            first_name=first_name,
            last_name=last_name,
            email=email.strip().lower(),
            phone_number=phone_number,
            created_at=now,
        )
        customer.raise_(
            CustomerRegistered(
                customer_id=str(customer.id),
                email=customer.email,
                registered_at=now,
            )
        )
        return customer

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
