"""Data models for catalog products."""

import json
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from catalog_admin.config import DEFAULT_CURRENCY
from catalog_admin.image_codec import decode_payload

__all__ = [
    "Product",
    "ProductDecodeError",
    "parse_product_list",
    "parse_price",
]

_STRING_FIELDS = ("name", "currency", "description", "image")


class ProductDecodeError(ValueError):
    """Raised when a product payload from the backend is malformed."""
    pass


@dataclass(frozen=True)
class Product:
    """A single product record as exchanged with the catalog backend.

    The id is assigned by the backend on creation and stays None until the
    record has been created and re-fetched. Records are immutable so that
    published snapshots can be shared; edit a copy with dataclasses.replace.
    """

    name: str
    price: float
    currency: str
    description: str = ""
    image: str = ""
    id: Optional[int] = None

    @classmethod
    def blank(cls) -> "Product":
        """Template for a product that has not been created yet."""
        return cls(name="", price=0.0, currency=DEFAULT_CURRENCY)

    @property
    def decoded_image(self) -> Optional[bytes]:
        """Raw image bytes, recomputed from the payload on every access."""
        return decode_payload(self.image)

    def format_price(self) -> str:
        return f"{self.price:.2f} {self.currency}"

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation; always carries all six fields."""
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "currency": self.currency,
            "description": self.description,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Product":
        """Build a product from decoded JSON.

        Raises:
            ProductDecodeError: If a required field is missing or mistyped
        """
        if not isinstance(data, dict):
            raise ProductDecodeError(f"Expected a product object, got {type(data).__name__}")

        product_id = data.get("id")
        if product_id is not None and (
            not isinstance(product_id, int) or isinstance(product_id, bool)
        ):
            raise ProductDecodeError(f"Invalid product id: {product_id!r}")

        if "price" not in data:
            raise ProductDecodeError("Missing field: price")
        price = data["price"]
        if not isinstance(price, (int, float)) or isinstance(price, bool):
            raise ProductDecodeError(f"Invalid price: {price!r}")

        for key in _STRING_FIELDS:
            if key not in data:
                raise ProductDecodeError(f"Missing field: {key}")
            if not isinstance(data[key], str):
                raise ProductDecodeError(f"Field {key} must be a string")

        return cls(
            id=product_id,
            name=data["name"],
            price=float(price),
            currency=data["currency"],
            description=data["description"],
            image=data["image"],
        )


def parse_product_list(payload: Union[str, bytes, List[Any]]) -> List[Product]:
    """Decode a product list response; any bad element fails the whole list.

    Args:
        payload: Raw JSON text/bytes, or an already-decoded list

    Raises:
        ProductDecodeError: If the payload is not a JSON array of products
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise ProductDecodeError(f"Response is not valid JSON: {e}") from e

    if not isinstance(payload, list):
        raise ProductDecodeError("Expected a JSON array of products")

    products = []
    for index, item in enumerate(payload):
        try:
            products.append(Product.from_dict(item))
        except ProductDecodeError as e:
            raise ProductDecodeError(f"Product at index {index}: {e}") from e
    return products


def parse_price(text: str) -> float:
    """Parse operator price input, truncated to two fractional digits.

    Raises:
        ValueError: If the text is not a number or is negative
    """
    try:
        value = Decimal(text.strip().replace(",", "."))
    except (InvalidOperation, AttributeError) as e:
        raise ValueError(f"Invalid price: {text!r}") from e

    if not value.is_finite():
        raise ValueError(f"Invalid price: {text!r}")
    if value < 0:
        raise ValueError("Price must not be negative")

    return float(value.quantize(Decimal("0.01"), rounding=ROUND_DOWN))
