"""Customer domain events."""

from protean.fields import DateTime, Identifier, String

from operations.domain import operations


@operations.event(part_of="Customer")
class CustomerRegistered:
    """A customer record was created."""

    __version__ = 1

    customer_id = Identifier(required=True)
    email = String(required=True)
    registered_at = DateTime(required=True)
