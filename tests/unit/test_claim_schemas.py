"""
Unit tests for the claim-form boundary schemas.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from expense_claims.core.enums import ClaimStatus
from expense_claims.schemas.claim import ClaimCreateRequest, RawItem


def _item(**overrides):
    data = {"date": "03/15", "itemNo": "c2", "currency": "sgd", "amount": "25.00", "rate": "1.0"}
    data.update(overrides)
    return data


@pytest.mark.unit
class TestRawItem:
    def test_camel_case_form_fields(self):
        item = RawItem.model_validate(_item(evidenceNo="INV-1"))
        assert item.item_no == "C2"
        assert item.currency == "SGD"
        assert item.amount == Decimal("25.00")
        assert item.rate == Decimal("1.0")
        assert item.evidence_no == "INV-1"

    def test_snake_case_accepted(self):
        item = RawItem.model_validate(
            {"date": "03/15", "item_no": "A1", "currency": "USD", "amount": 10, "rate": "1.34"}
        )
        assert item.item_no == "A1"
        assert item.amount == Decimal("10")

    def test_float_amount_uses_string_form(self):
        assert RawItem.model_validate(_item(amount=0.1)).amount == Decimal("0.1")

    @pytest.mark.parametrize("amount", ["12,50", "abc", "", "NaN", "Infinity", "-1.00", "1.005", True])
    def test_malformed_amounts_rejected(self, amount):
        with pytest.raises(ValidationError):
            RawItem.model_validate(_item(amount=amount))

    def test_rate_allows_six_places(self):
        assert RawItem.model_validate(_item(rate="0.000041")).rate == Decimal("0.000041")
        with pytest.raises(ValidationError):
            RawItem.model_validate(_item(rate="0.0000411"))

    def test_values_must_fit_stored_columns(self):
        assert RawItem.model_validate(_item(amount="999999999999.99")).amount == Decimal("999999999999.99")
        assert RawItem.model_validate(_item(rate="9999999999.5")).rate == Decimal("9999999999.5")
        for field, value in (("amount", "1e30"), ("amount", "1234567890123.00"), ("rate", "12345678901")):
            with pytest.raises(ValidationError):
                RawItem.model_validate(_item(**{field: value}))

    def test_retained_attachments(self):
        item = RawItem.model_validate(
            _item(retainedAttachments=[{"fileName": "a.pdf", "url": "https://files/a.pdf"}])
        )
        assert item.retained_attachments[0].file_name == "a.pdf"
        assert item.retained_attachments[0].file_type == "application/octet-stream"

    def test_missing_code_rejected(self):
        with pytest.raises(ValidationError):
            RawItem.model_validate(_item(itemNo=""))


@pytest.mark.unit
class TestClaimCreateRequest:
    def test_defaults_to_submitted(self):
        request = ClaimCreateRequest.model_validate({"items": [_item()]})
        assert request.status == ClaimStatus.SUBMITTED

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError):
            ClaimCreateRequest.model_validate({"items": []})
