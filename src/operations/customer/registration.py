"""Customer registration: command and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import String
from protean.utils.globals import current_domain

from operations.customer.customer import Customer
from operations.domain import operations


@operations.command(part_of="Customer")
class RegisterCustomer:
    first_name = String(required=True, max_length=100, sanitize=False)
    last_name = String(required=True, max_length=100, sanitize=False)
    email = String(required=True, max_length=254)
    phone_number = String(max_length=30)


@operations.command_handler(part_of=Customer)
class RegisterCustomerHandler:
    @handle(RegisterCustomer)
    def register_customer(self, command):
        repo = current_domain.repository_for(Customer)
        email = command.email.strip().lower()
        if repo._dao.query.filter(email=email).all().first:
            raise ValidationError({"email": ["A customer with this email already exists"]})

        customer = Customer.register(
            first_name=command.first_name,
            last_name=command.last_name,
            email=email,
            phone_number=command.phone_number,
        )
        repo.add(customer)
        return str(customer.id)
