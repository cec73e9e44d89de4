"""Domain objects built from downstream service payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class MerchantDetails:
    name: str | None = None
    telephone_number: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    address_city: str | None = None
    address_postcode: str | None = None
    address_country: str | None = None
    email: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> MerchantDetails | None:
        if not data:
            return None
        return cls(
            name=data.get("name"),
            telephone_number=data.get("telephone_number"),
            address_line1=data.get("address_line1"),
            address_line2=data.get("address_line2"),
            address_city=data.get("address_city"),
            address_postcode=data.get("address_postcode"),
            address_country=data.get("address_country"),
            email=data.get("email"),
        )


@dataclass(frozen=True, slots=True)
class CustomBranding:
    css_url: str | None = None
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class Service:
    """Service metadata for the merchant that owns a gateway account."""

    external_id: str
    name: str
    gateway_account_ids: tuple[str, ...] = field(default_factory=tuple)
    merchant_details: MerchantDetails | None = None
    custom_branding: CustomBranding | None = None
    redirect_to_service_immediately_on_terminal_state: bool = False

    @property
    def has_custom_branding(self) -> bool:
        return self.custom_branding is not None and bool(
            self.custom_branding.css_url or self.custom_branding.image_url
        )

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Service:
        branding = data.get("custom_branding")
        return cls(
            external_id=data["external_id"],
            name=data["name"],
            gateway_account_ids=tuple(
                str(x) for x in data.get("gateway_account_ids") or ()
            ),
            merchant_details=MerchantDetails.from_json(data.get("merchant_details")),
            custom_branding=(
                CustomBranding(
                    css_url=branding.get("css_url"),
                    image_url=branding.get("image_url"),
                )
                if branding
                else None
            ),
            redirect_to_service_immediately_on_terminal_state=bool(
                data.get("redirect_to_service_immediately_on_terminal_state", False)
            ),
        )
