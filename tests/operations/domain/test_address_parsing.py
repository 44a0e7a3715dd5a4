from types import SimpleNamespace

import pytest
from operations.shipment.address import AddressError, destination_address, parse_address, studio_address


class TestParseAddress:
    def test_full_address_with_unit(self):
        assert parse_address("123 Main St, Apt 4, Springfield, IL 62704") == {
            "street1": "123 Main St",
            "street2": "Apt 4",
            "city": "Springfield",
            "state": "IL",
            "zip": "62704",
            "country": "US",
        }

    def test_city_state_zip_in_one_segment(self):
        parsed = parse_address("9 Oak Ave, San Luis Obispo CA 93401")
        assert parsed["city"] == "San Luis Obispo"
        assert parsed["state"] == "CA"
        assert parsed["zip"] == "93401"

    def test_newline_separated(self):
        parsed = parse_address("9 Oak Ave\nSuite 200\nDenver\nCO 80202")
        assert parsed["street2"] == "Suite 200"
        assert parsed["city"] == "Denver"
        assert parsed["zip"] == "80202"

    def test_separate_zip_and_country(self):
        parsed = parse_address("1 Rue St, Toronto, ON, M5V 2T6, CA")
        assert parsed["state"] == "ON"
        assert parsed["zip"] == "M5V 2T6"
        assert parsed["country"] == "CA"

    def test_empty_address(self):
        assert parse_address(None)["street1"] == ""


class TestDestinationAddress:
    def test_missing_fields_are_named(self):
        with pytest.raises(AddressError) as exc:
            destination_address("123 Main St")
        message = exc.value.messages["shipping_address"][0]
        assert message == (
            "Cannot create shipping label: Missing required address fields (city, state, ZIP code)"
        )

    def test_customer_contact_details_are_used(self):
        customer = SimpleNamespace(first_name="Maya", last_name="Lin", phone_number="555-0100", email="maya@example.com")
        address = destination_address("1 Elm St, Austin, TX 78701", customer)
        assert address.name == "Maya Lin"
        assert address.phone == "555-0100"
        assert address.to_carrier()["email"] == "maya@example.com"


def test_studio_address_from_environment(monkeypatch):
    monkeypatch.setenv("STUDIO_NAME", "Gold & Thread")
    monkeypatch.setenv("STUDIO_CITY", "Portland")
    monkeypatch.setenv("STUDIO_STATE", "OR")
    address = studio_address()
    assert address.name == "Gold & Thread"
    assert address.city == "Portland"
    assert address.state == "OR"
