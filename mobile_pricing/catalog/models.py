from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal

from mobile_pricing.constants import (
    DEFAULT_BUNDLE_DISCOUNT_RATE,
    DEFAULT_INSTALLMENT_INTEREST_RATE,
    DEFAULT_SELECTIVE_DISCOUNT_RATE,
    DEFAULT_VAT_RATE,
)

JoinType = Literal["change", "transfer", "new"]
ContractType = Literal["public-subsidy", "selective-contract"]
InstallmentMonths = Literal[0, 12, 24, 36]


@dataclass(frozen=True)
class DeviceColor:
    id: str
    code: str
    name: str
    hex: str


@dataclass(frozen=True)
class Device:
    # "<model>_<storage>GB", one entry per storage tier
    id: str
    brand: str
    model: str
    storage: int
    # list price in won
    price: int
    colors: tuple[DeviceColor, ...] = ()


@dataclass(frozen=True)
class Plan:
    id: str
    category_id: str
    name: str
    # monthly fee in won, VAT included
    base_price: int
    category_name: str = ""
    description: str = ""
    data: str = ""
    call: str = ""
    sms: str = ""
    benefits: str = ""
    restrictions: str = ""


@dataclass(frozen=True)
class Subsidy:
    id: str
    device_id: str
    plan_id: str
    common: int
    additional: int
    select: int
    # join-type list the record was published under
    join_type: JoinType | None = None


@dataclass(frozen=True)
class GlobalSettings:
    installment_interest_rate: Decimal = DEFAULT_INSTALLMENT_INTEREST_RATE
    selective_discount_rate: Decimal = DEFAULT_SELECTIVE_DISCOUNT_RATE
    vat_rate: Decimal = DEFAULT_VAT_RATE
    bundle_discount_rate: Decimal = DEFAULT_BUNDLE_DISCOUNT_RATE
    prices_include_vat: bool = True
    synced_at: str | None = None


@dataclass(frozen=True)
class ProductsData:
    devices: dict[str, Device]
    plans: dict[str, Plan]
    subsidies: dict[str, dict[tuple[str, str], Subsidy]] = field(
        default_factory=dict
    )
    settings: GlobalSettings = field(default_factory=GlobalSettings)
