"""Currency selection models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pypaysuper._constants import CURRENCY_REGION_SEPARATOR


class CurrencyRegion(BaseModel):
    """A currency code paired with the price region it applies to."""

    model_config = ConfigDict(frozen=True)

    currency: str
    region: str

    @classmethod
    def from_key(cls, key: str) -> CurrencyRegion:
        """Split a composite ``CUR-REGION`` key.

        The region defaults to the currency code when no qualifier
        follows the separator.
        """
        currency, _, region = key.partition(CURRENCY_REGION_SEPARATOR)
        return cls(currency=currency, region=region or currency)

    def to_key(self) -> str:
        if self.region == self.currency:
            return self.currency
        return f"{self.currency}{CURRENCY_REGION_SEPARATOR}{self.region}"
