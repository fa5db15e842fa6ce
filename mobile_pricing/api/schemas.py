from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mobile_pricing.catalog.models import ContractType, JoinType
from mobile_pricing.constants import MAX_BATCH_SIZE


class SettingsOverride(BaseModel):
    model_config = ConfigDict(extra="forbid")

    installment_interest_rate: Decimal | None = Field(default=None, ge=0, le=1)
    selective_discount_rate: Decimal | None = Field(default=None, ge=0, le=1)
    bundle_discount_rate: Decimal | None = Field(default=None, ge=0, le=1)
    vat_rate: Decimal | None = Field(default=None, ge=0)
    prices_include_vat: bool | None = None


class CalculationOverrides(BaseModel):
    model_config = ConfigDict(extra="forbid")

    settings: SettingsOverride | None = None


class ComparisonRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    device_id: str = Field(min_length=1)
    plan_id: str = Field(min_length=1)
    join_type: JoinType
    # range-checked by the engine so the error carries its field tag
    installment_months: int
    bundle_discount: bool = False
    overrides: CalculationOverrides = Field(default_factory=CalculationOverrides)


class CalculationRequest(ComparisonRequest):
    contract_type: ContractType


class BatchCalculationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[CalculationRequest] = Field(
        min_length=1,
        max_length=MAX_BATCH_SIZE,
    )


class BreakdownBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    device_price: int
    applied_subsidy: int
    device_net_price: int
    monthly_device: int
    plan_base_price: int
    selective_discount: int
    bundle_discount_amount: int
    monthly_plan: int
    vat_included: bool


class ContractBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    join_type: JoinType
    join_type_name: str
    contract_type: ContractType
    contract_type_name: str
    installment_months: int


class ResponseMeta(BaseModel):
    model_config = ConfigDict(extra="forbid")

    engine_version: str
    synced_at: str | None = None


class CalculationResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    device_id: str
    plan_id: str
    subsidy_id: str
    monthly_device_fee: int
    monthly_plan_fee: int
    total_monthly_fee: int
    breakdown: BreakdownBody
    contract: ContractBody
    meta: ResponseMeta


class ContractOptionBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    contract_type: ContractType
    monthly_fee: int
    total_cost: int
    breakdown: BreakdownBody


class ComparisonResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    device_id: str
    plan_id: str
    public_subsidy: ContractOptionBody
    selective_contract: ContractOptionBody
    difference: int
    total_cost_difference: int
    horizon_months: int
    recommendation: ContractType
    meta: ResponseMeta


class ErrorBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    details: dict[str, Any]


class BatchErrorItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    index: int
    error: ErrorBody


class BatchCalculationResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    results: list[CalculationResponse]
    errors: list[BatchErrorItem]


class CatalogQuoteEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    device_id: str
    model: str
    storage: int
    monthly_device_fee: int
    monthly_plan_fee: int
    total_monthly_fee: int
    device_net_price: int


class CatalogQuoteResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plan_id: str
    join_type: JoinType
    contract_type: ContractType
    installment_months: int
    quotes: list[CatalogQuoteEntry]
    meta: ResponseMeta


class ColorSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    code: str
    name: str
    hex: str


class DeviceSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    brand: str
    model: str
    storage: int
    price: int
    colors: list[ColorSummary]


class DevicesResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    devices: list[DeviceSummary]


class PlanSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    category_id: str
    category_name: str
    name: str
    base_price: int
    data: str
    call: str
    sms: str


class PlansResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plans: list[PlanSummary]


class SubsidyEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    device_id: str
    plan_id: str
    common: int
    additional: int
    select: int


class SubsidiesResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    change: list[SubsidyEntry]
    transfer: list[SubsidyEntry]
    new: list[SubsidyEntry]


class SettingsResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    installment_interest_rate: str
    selective_discount_rate: str
    bundle_discount_rate: str
    vat_rate: str
    prices_include_vat: bool
    synced_at: str | None = None


class HealthResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: str
    engine_version: str
    synced_at: str | None = None
