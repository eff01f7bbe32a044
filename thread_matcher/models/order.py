"""Order-identifying facts supplied by the caller."""

from typing import Optional

from pydantic import BaseModel, field_validator


class OrderFacts(BaseModel):
    """What we know about an order when searching for its conversation.

    Blank strings are treated as missing so a strategy never searches for "".
    """

    order_number: str = ""
    order_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None

    @field_validator("order_number", mode="before")
    @classmethod
    def _strip_number(cls, value: object) -> str:
        return str(value or "").strip()

    @field_validator("order_name", "customer_email", "customer_name", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        stripped = str(value).strip()
        return stripped or None

    @property
    def has_identifiers(self) -> bool:
        return bool(self.customer_email or self.order_name or self.order_number)
