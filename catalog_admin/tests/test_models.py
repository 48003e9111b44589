"""Tests for the Product record and its wire codec."""

import json
from dataclasses import FrozenInstanceError, replace

import pytest

from catalog_admin.models import Product, ProductDecodeError, parse_price, parse_product_list


class TestProduct:
    """Tests for Product construction and derived views."""

    def test_blank_template(self):
        product = Product.blank()

        assert product.id is None
        assert product.name == ""
        assert product.price == 0.0
        assert product.currency == "XMR"
        assert product.description == ""
        assert product.image == ""

    def test_to_dict_emits_all_fields_with_null_id(self):
        product = Product(name="Mug", price=9.99, currency="USD")

        data = product.to_dict()

        assert data == {
            "id": None,
            "name": "Mug",
            "price": 9.99,
            "currency": "USD",
            "description": "",
            "image": "",
        }
        assert json.loads(json.dumps(data))["id"] is None

    def test_decoded_image_tracks_payload(self):
        """The decoded view is recomputed, never cached."""
        product = Product(name="Mug", price=1.0, currency="USD",
                          image="data:image/png;base64,YWJj")
        assert product.decoded_image == b"abc"

        product = replace(product, image="data:image/png;base64,eHl6")
        assert product.decoded_image == b"xyz"

        product = replace(product, image="")
        assert product.decoded_image is None

    def test_records_are_immutable(self):
        product = Product(id=7, name="Mug", price=9.99, currency="USD")
        with pytest.raises(FrozenInstanceError):
            product.price = 0.0
        assert replace(product, price=12.5).price == 12.5
        assert product.price == 9.99

    def test_unlisted_image_prefix_has_no_decoded_image(self):
        product = Product(name="Mug", price=1.0, currency="USD",
                          image="data:image/gif;base64,YWJj")
        assert product.decoded_image is None

    @pytest.mark.parametrize(
        "price,expected",
        [(5.0, "5.00 USD"), (9.999, "10.00 USD"), (0.1, "0.10 USD")],
    )
    def test_format_price(self, price, expected):
        assert Product(name="x", price=price, currency="USD").format_price() == expected

    def test_price_is_not_rounded_by_model(self):
        product = Product(name="x", price=1.23456, currency="USD")
        assert product.price == 1.23456


class TestFromDict:
    """Tests for decoding a single product."""

    def test_full_record(self, product_dicts):
        product = Product.from_dict(product_dicts[1])

        assert product.id == 7
        assert product.name == "Mug"
        assert product.price == 9.99
        assert product.currency == "XMR"
        assert product.image.startswith("data:image/png;base64,")

    def test_missing_or_null_id_is_allowed(self, product_dicts):
        data = dict(product_dicts[0])
        data["id"] = None
        assert Product.from_dict(data).id is None

        del data["id"]
        assert Product.from_dict(data).id is None

    def test_integer_price_becomes_float(self, product_dicts):
        data = dict(product_dicts[0], price=5)
        product = Product.from_dict(data)
        assert product.price == 5.0
        assert isinstance(product.price, float)

    @pytest.mark.parametrize("field", ["name", "price", "currency", "description", "image"])
    def test_missing_required_field(self, product_dicts, field):
        data = dict(product_dicts[0])
        del data[field]
        with pytest.raises(ProductDecodeError):
            Product.from_dict(data)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"id": "1"},
            {"id": True},
            {"price": "5.00"},
            {"price": None},
            {"price": False},
            {"name": None},
            {"image": 42},
        ],
    )
    def test_mistyped_fields(self, product_dicts, overrides):
        with pytest.raises(ProductDecodeError):
            Product.from_dict(dict(product_dicts[0], **overrides))

    def test_non_object(self):
        with pytest.raises(ProductDecodeError):
            Product.from_dict(["not", "a", "dict"])


class TestParseProductList:
    """Tests for decoding list responses (all or nothing)."""

    def test_preserves_response_order(self, product_dicts):
        products = parse_product_list(json.dumps(product_dicts).encode())
        assert [p.id for p in products] == [1, 7]

    def test_empty_array(self):
        assert parse_product_list(b"[]") == []

    def test_one_bad_element_fails_whole_list(self, product_dicts):
        bad = product_dicts + [{"id": 9, "name": "Broken"}]
        with pytest.raises(ProductDecodeError, match="index 2"):
            parse_product_list(json.dumps(bad))

    def test_not_json(self):
        with pytest.raises(ProductDecodeError):
            parse_product_list(b"<html>502 Bad Gateway</html>")

    def test_object_instead_of_array(self, product_dicts):
        with pytest.raises(ProductDecodeError):
            parse_product_list(json.dumps(product_dicts[0]))


class TestParsePrice:
    """Tests for operator price input."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("9.99", 9.99),
            ("9.999", 9.99),
            ("12", 12.0),
            (" 3,5 ", 3.5),
            ("0", 0.0),
            ("0.019", 0.01),
        ],
    )
    def test_truncates_to_two_decimals(self, text, expected):
        assert parse_price(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "-1", "NaN", "inf"])
    def test_rejects_invalid_input(self, text):
        with pytest.raises(ValueError):
            parse_price(text)
