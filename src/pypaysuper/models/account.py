"""Merchant company profile model.

The wire format is snake_case; the dashboard forms use camelCase.  Each
field declares its form alias explicitly instead of deriving it with a
string transform, so the mapping is total and reversible.
"""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field

from pypaysuper.models._base import PaySuperBaseModel


class AccountInfo(PaySuperBaseModel):
    """Company details submitted during merchant onboarding."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    address: str = Field(default="", alias="address")
    address_additional: str = Field(default="", alias="addressAdditional")
    alternative_name: str = Field(default="", alias="alternativeName")
    city: str = Field(default="", alias="city")
    country: str = Field(default="", alias="country")
    name: str = Field(default="", alias="name")
    registration_number: str = Field(default="", alias="registrationNumber")
    state: str = Field(default="", alias="state")
    tax_id: str = Field(default="", alias="taxId")
    website: str = Field(default="", alias="website")
    zip: str = Field(default="", alias="zip")

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> AccountInfo:
        return cls.model_validate(data)

    @classmethod
    def from_form(cls, data: dict[str, Any]) -> AccountInfo:
        return cls.model_validate(data)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=False)

    def to_form(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


#: Wire field name -> form field name, for every AccountInfo field.
ACCOUNT_INFO_FORM_FIELDS: dict[str, str] = {
    name: (info.alias or name) for name, info in AccountInfo.model_fields.items()
}
