"""
Unit tests for payload validation and query-string helpers.
"""

from datetime import date

import pytest

from backoffice.models import CustomerCard, Employee
from backoffice.routes.utils import as_bool, as_date_max, as_date_min
from backoffice.validation import (
    ADDRESS_FIELDS,
    NAME_FIELDS,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_client,
    flatten_nested,
    parse_int_arg,
    validate_payload,
    validate_sales,
)

CARD_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"card_number", "first_name", "last_name", "discount", "city", "street", "zip_code"}),
    required_on_create=frozenset({"card_number", "first_name", "last_name", "discount"}),
)


class TestFlattenNested:
    def test_lifts_nested_objects(self):
        flat = flatten_nested(
            {"card_number": "C1", "name": {"first_name": "A", "last_name": "B"}},
            (NAME_FIELDS, ADDRESS_FIELDS),
        )
        assert flat == {"card_number": "C1", "first_name": "A", "last_name": "B"}

    def test_null_object_nulls_its_columns(self):
        flat = flatten_nested({"address": None}, (ADDRESS_FIELDS,))
        assert flat == {"city": None, "street": None, "zip_code": None}

    def test_unknown_nested_key(self):
        with pytest.raises(ValidationError):
            flatten_nested({"address": {"country": "UA"}}, (ADDRESS_FIELDS,))


class TestValidatePayload:
    def test_strips_and_coerces(self):
        cleaned = validate_payload(
            model=CustomerCard,
            payload={"card_number": " C1 ", "first_name": "A", "last_name": "B", "discount": "10"},
            policy=CARD_POLICY,
        )
        assert cleaned == {"card_number": "C1", "first_name": "A", "last_name": "B", "discount": 10}

    def test_missing_required(self):
        with pytest.raises(ValidationError, match="discount"):
            validate_payload(
                model=CustomerCard,
                payload={"card_number": "C1", "first_name": "A", "last_name": "B"},
                policy=CARD_POLICY,
            )

    def test_partial_skips_required(self):
        cleaned = validate_payload(model=CustomerCard, payload={"discount": 3}, policy=CARD_POLICY, partial=True)
        assert cleaned == {"discount": 3}

    @pytest.mark.parametrize("discount", [True, 1.0, "1e2", "2.5", [], ""])
    def test_rejects_non_integers(self, discount):
        with pytest.raises(ValidationError):
            validate_payload(model=CustomerCard, payload={"discount": discount}, policy=CARD_POLICY, partial=True)

    def test_non_nullable_null(self):
        with pytest.raises(ValidationError, match="cannot be null"):
            validate_payload(model=CustomerCard, payload={"last_name": None}, policy=CARD_POLICY, partial=True)

    def test_date_fields(self):
        policy = ModelValidationPolicy(writable_fields=frozenset({"birth_date"}), date_fields=frozenset({"birth_date"}))
        cleaned = validate_payload(model=Employee, payload={"birth_date": "1991-08-24"}, policy=policy)
        assert cleaned == {"birth_date": date(1991, 8, 24)}


class TestBusinessRules:
    def test_complete_or_absent_address(self):
        enforce_rules_client({"city": None, "street": None, "zip_code": None})
        enforce_rules_client({"city": "Lviv", "street": "Rynok 1", "zip_code": "79000"})
        with pytest.raises(ValidationError):
            enforce_rules_client({"city": "Lviv", "street": None, "zip_code": None})

    def test_sales(self):
        assert validate_sales([{"store_product_id": "3", "quantity": 2}]) == [(3, 2)]

    def test_sales_line_limit(self):
        lines = [{"store_product_id": i, "quantity": 1} for i in range(1, 502)]
        with pytest.raises(ValidationError):
            validate_sales(lines)


class TestQueryHelpers:
    def test_parse_int_arg(self):
        assert parse_int_arg({}, "limit", default=0) == 0
        assert parse_int_arg({"limit": " 25 "}, "limit") == 25
        with pytest.raises(ValidationError):
            parse_int_arg({"limit": "-1"}, "limit")

    @pytest.mark.parametrize("raw,expected", [("true", 1), ("0", 0), ("No", 0)])
    def test_as_bool(self, raw, expected):
        assert as_bool(raw) == expected

    def test_bare_date_bounds_cover_the_day(self):
        assert as_date_min("2024-03-01") == "2024-03-01T00:00:00Z"
        assert as_date_max("2024-03-01") == "2024-03-01T23:59:59Z"

    def test_offsets_converted_to_utc(self):
        assert as_date_min("2024-03-01T02:00:00+02:00") == "2024-03-01T00:00:00Z"

    def test_garbage_date(self):
        with pytest.raises(ValidationError):
            as_date_max("soon")
