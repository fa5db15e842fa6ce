from __future__ import annotations

import logging
from dataclasses import replace

from fastapi import APIRouter, Query, Request

from mobile_pricing.api.schemas import (
    BatchCalculationRequest,
    BatchCalculationResponse,
    BatchErrorItem,
    BreakdownBody,
    CalculationRequest,
    CalculationResponse,
    CatalogQuoteEntry,
    CatalogQuoteResponse,
    ColorSummary,
    ComparisonRequest,
    ComparisonResponse,
    ContractBody,
    ContractOptionBody,
    DevicesResponse,
    DeviceSummary,
    ErrorBody,
    HealthResponse,
    PlansResponse,
    PlanSummary,
    ResponseMeta,
    SettingsOverride,
    SettingsResponse,
    SubsidiesResponse,
    SubsidyEntry,
)
from mobile_pricing.catalog import ProductCatalog
from mobile_pricing.catalog.models import (
    ContractType,
    GlobalSettings,
    JoinType,
    Subsidy,
)
from mobile_pricing.constants import CONTRACT_TYPE_LABELS, PUBLIC_SUBSIDY
from mobile_pricing.engine import (
    CalculationInput,
    CalculationResult,
    PricingEngine,
    PricingError,
)
from mobile_pricing.engine.calculator import (
    Breakdown,
    ContractOption,
    validate_installment_months,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1")


def _get_catalog(request: Request) -> ProductCatalog:
    return request.app.state.catalog


def _get_engine(request: Request) -> PricingEngine:
    return request.app.state.engine


def _apply_overrides(
    settings: GlobalSettings, override: SettingsOverride | None
) -> GlobalSettings:
    if override is None:
        return settings
    changes = override.model_dump(exclude_none=True)
    if not changes:
        return settings
    return replace(settings, **changes)


def _resolve_input(
    catalog: ProductCatalog,
    payload: ComparisonRequest,
    contract_type: ContractType,
) -> CalculationInput:
    """Turn request ids into catalog records; missing records are 404s."""
    device = catalog.get_device(payload.device_id)
    if device is None:
        raise PricingError(
            "DEVICE_NOT_FOUND",
            "Device not found",
            status_code=404,
            details={"device_id": payload.device_id},
        )

    plan = catalog.get_plan(payload.plan_id)
    if plan is None:
        raise PricingError(
            "PLAN_NOT_FOUND",
            "Plan not found",
            status_code=404,
            details={"plan_id": payload.plan_id},
        )

    subsidy = catalog.find_subsidy(device.id, plan.id, payload.join_type)
    if subsidy is None:
        raise PricingError(
            "SUBSIDY_NOT_FOUND",
            "No subsidy record for this device/plan/join type",
            status_code=404,
            details={
                "device_id": device.id,
                "plan_id": plan.id,
                "join_type": payload.join_type,
            },
        )

    return CalculationInput(
        device=device,
        plan=plan,
        subsidy=subsidy,
        join_type=payload.join_type,
        installment_months=payload.installment_months,  # type: ignore[arg-type]
        contract_type=contract_type,
        bundle_discount=payload.bundle_discount,
    )


def _breakdown_body(breakdown: Breakdown) -> BreakdownBody:
    return BreakdownBody(
        device_price=breakdown.device_price,
        applied_subsidy=breakdown.applied_subsidy,
        device_net_price=breakdown.device_net_price,
        monthly_device=breakdown.monthly_device,
        plan_base_price=breakdown.plan_base_price,
        selective_discount=breakdown.selective_discount,
        bundle_discount_amount=breakdown.bundle_discount_amount,
        monthly_plan=breakdown.monthly_plan,
        vat_included=breakdown.vat_included,
    )


def _meta(catalog: ProductCatalog, engine: PricingEngine) -> ResponseMeta:
    return ResponseMeta(
        engine_version=engine.engine_version,
        synced_at=catalog.synced_at,
    )


def _calculation_response(
    calculation_input: CalculationInput,
    result: CalculationResult,
    meta: ResponseMeta,
) -> CalculationResponse:
    contract = result.contract
    return CalculationResponse(
        device_id=calculation_input.device.id,
        plan_id=calculation_input.plan.id,
        subsidy_id=calculation_input.subsidy.id,
        monthly_device_fee=result.monthly_device_fee,
        monthly_plan_fee=result.monthly_plan_fee,
        total_monthly_fee=result.total_monthly_fee,
        breakdown=_breakdown_body(result.breakdown),
        contract=ContractBody(
            join_type=contract.join_type,
            join_type_name=contract.join_type_name,
            contract_type=contract.contract_type,
            contract_type_name=CONTRACT_TYPE_LABELS[contract.contract_type],
            installment_months=contract.installment_months,
        ),
        meta=meta,
    )


def _option_body(option: ContractOption) -> ContractOptionBody:
    return ContractOptionBody(
        contract_type=option.contract_type,
        monthly_fee=option.monthly_fee,
        total_cost=option.total_cost,
        breakdown=_breakdown_body(option.result.breakdown),
    )


def _subsidy_entries(records: list[Subsidy]) -> list[SubsidyEntry]:
    return [
        SubsidyEntry(
            id=record.id,
            device_id=record.device_id,
            plan_id=record.plan_id,
            common=record.common,
            additional=record.additional,
            select=record.select,
        )
        for record in records
    ]


@router.post("/calculate", response_model=CalculationResponse)
def calculate(payload: CalculationRequest, request: Request) -> CalculationResponse:
    """Price one device/plan/contract combination."""
    catalog = _get_catalog(request)
    engine = _get_engine(request)
    logger.info(
        "calculation_requested",
        extra={
            "event": "calculation_requested",
            "device_id": payload.device_id,
            "plan_id": payload.plan_id,
            "join_type": payload.join_type,
            "contract_type": payload.contract_type,
        },
    )

    calculation_input = _resolve_input(catalog, payload, payload.contract_type)
    settings = _apply_overrides(catalog.settings, payload.overrides.settings)
    result = engine.calculate(calculation_input, settings)
    return _calculation_response(
        calculation_input, result, _meta(catalog, engine)
    )


@router.post("/calculate/batch", response_model=BatchCalculationResponse)
def calculate_batch(
    payload: BatchCalculationRequest, request: Request
) -> BatchCalculationResponse:
    """Price several combinations and return partial successes."""
    catalog = _get_catalog(request)
    engine = _get_engine(request)
    meta = _meta(catalog, engine)
    logger.info(
        "batch_calculation_requested",
        extra={
            "event": "batch_calculation_requested",
            "item_count": len(payload.items),
        },
    )

    results: list[CalculationResponse] = []
    errors: list[BatchErrorItem] = []

    for index, item in enumerate(payload.items):
        try:
            calculation_input = _resolve_input(catalog, item, item.contract_type)
            settings = _apply_overrides(catalog.settings, item.overrides.settings)
            result = engine.calculate(calculation_input, settings)
        except PricingError as exc:
            errors.append(
                BatchErrorItem(
                    index=index,
                    error=ErrorBody(
                        code=exc.code, message=exc.message, details=exc.details
                    ),
                )
            )
            continue

        results.append(_calculation_response(calculation_input, result, meta))

    return BatchCalculationResponse(results=results, errors=errors)


@router.post("/compare", response_model=ComparisonResponse)
def compare(payload: ComparisonRequest, request: Request) -> ComparisonResponse:
    """Compare public subsidy and selective contract for one combination."""
    catalog = _get_catalog(request)
    engine = _get_engine(request)
    logger.info(
        "comparison_requested",
        extra={
            "event": "comparison_requested",
            "device_id": payload.device_id,
            "plan_id": payload.plan_id,
            "join_type": payload.join_type,
        },
    )

    calculation_input = _resolve_input(catalog, payload, PUBLIC_SUBSIDY)
    settings = _apply_overrides(catalog.settings, payload.overrides.settings)
    comparison = engine.compare(calculation_input, settings)
    return ComparisonResponse(
        device_id=payload.device_id,
        plan_id=payload.plan_id,
        public_subsidy=_option_body(comparison.public_subsidy),
        selective_contract=_option_body(comparison.selective_contract),
        difference=comparison.difference,
        total_cost_difference=comparison.total_cost_difference,
        horizon_months=comparison.horizon_months,
        recommendation=comparison.recommendation,
        meta=_meta(catalog, engine),
    )


@router.get("/plans/{plan_id}/quotes", response_model=CatalogQuoteResponse)
def plan_quotes(
    plan_id: str,
    request: Request,
    join_type: JoinType = Query("change"),
    contract_type: ContractType = Query(PUBLIC_SUBSIDY),
    installment_months: int = Query(24),
    bundle_discount: bool = Query(False),
) -> CatalogQuoteResponse:
    """Price every device that carries a subsidy record for this plan."""
    catalog = _get_catalog(request)
    engine = _get_engine(request)

    plan = catalog.get_plan(plan_id)
    if plan is None:
        raise PricingError(
            "PLAN_NOT_FOUND",
            "Plan not found",
            status_code=404,
            details={"plan_id": plan_id},
        )

    validate_installment_months(installment_months)

    settings = catalog.settings
    quotes: list[CatalogQuoteEntry] = []
    for subsidy in catalog.subsidies_by_plan(plan_id)[join_type]:
        device = catalog.get_device(subsidy.device_id)
        if device is None:
            continue
        result = engine.calculate(
            CalculationInput(
                device=device,
                plan=plan,
                subsidy=subsidy,
                join_type=join_type,
                installment_months=installment_months,  # type: ignore[arg-type]
                contract_type=contract_type,
                bundle_discount=bundle_discount,
            ),
            settings,
        )
        quotes.append(
            CatalogQuoteEntry(
                device_id=device.id,
                model=device.model,
                storage=device.storage,
                monthly_device_fee=result.monthly_device_fee,
                monthly_plan_fee=result.monthly_plan_fee,
                total_monthly_fee=result.total_monthly_fee,
                device_net_price=result.breakdown.device_net_price,
            )
        )

    quotes.sort(key=lambda quote: (quote.total_monthly_fee, quote.device_id))
    return CatalogQuoteResponse(
        plan_id=plan_id,
        join_type=join_type,
        contract_type=contract_type,
        installment_months=installment_months,
        quotes=quotes,
        meta=_meta(catalog, engine),
    )


@router.get("/devices", response_model=DevicesResponse)
def list_devices(
    request: Request,
    brand: str | None = Query(None, min_length=1),
) -> DevicesResponse:
    """List catalog devices, optionally for one brand."""
    catalog = _get_catalog(request)
    return DevicesResponse(
        devices=[
            DeviceSummary(
                id=device.id,
                brand=device.brand,
                model=device.model,
                storage=device.storage,
                price=device.price,
                colors=[
                    ColorSummary(
                        id=color.id, code=color.code, name=color.name, hex=color.hex
                    )
                    for color in device.colors
                ],
            )
            for device in catalog.list_devices(brand)
        ]
    )


@router.get("/plans", response_model=PlansResponse)
def list_plans(
    request: Request,
    category_id: str | None = Query(None, min_length=1),
) -> PlansResponse:
    """List plans by ascending base price."""
    catalog = _get_catalog(request)
    return PlansResponse(
        plans=[
            PlanSummary(
                id=plan.id,
                category_id=plan.category_id,
                category_name=plan.category_name,
                name=plan.name,
                base_price=plan.base_price,
                data=plan.data,
                call=plan.call,
                sms=plan.sms,
            )
            for plan in catalog.list_plans(category_id)
        ]
    )


@router.get("/subsidies", response_model=SubsidiesResponse)
def list_subsidies(
    request: Request,
    device_id: str | None = Query(None, min_length=1),
    plan_id: str | None = Query(None, min_length=1),
) -> SubsidiesResponse:
    """Group subsidy records for a device and/or plan by join type."""
    catalog = _get_catalog(request)
    if device_id is None and plan_id is None:
        raise PricingError(
            "INVALID_REQUEST",
            "device_id or plan_id is required",
        )

    if device_id is not None:
        grouped = catalog.subsidies_by_device(device_id)
        if plan_id is not None:
            grouped = {
                join_type: [s for s in records if s.plan_id == plan_id]
                for join_type, records in grouped.items()
            }
    else:
        grouped = catalog.subsidies_by_plan(plan_id)  # type: ignore[arg-type]

    return SubsidiesResponse(
        change=_subsidy_entries(grouped["change"]),
        transfer=_subsidy_entries(grouped["transfer"]),
        new=_subsidy_entries(grouped["new"]),
    )


@router.get("/settings", response_model=SettingsResponse)
def get_settings(request: Request) -> SettingsResponse:
    """Return the active global pricing settings."""
    settings = _get_catalog(request).settings
    return SettingsResponse(
        installment_interest_rate=str(settings.installment_interest_rate),
        selective_discount_rate=str(settings.selective_discount_rate),
        bundle_discount_rate=str(settings.bundle_discount_rate),
        vat_rate=str(settings.vat_rate),
        prices_include_vat=settings.prices_include_vat,
        synced_at=settings.synced_at,
    )


@router.get("/healthz", response_model=HealthResponse, include_in_schema=False)
def healthz(request: Request) -> HealthResponse:
    """Liveness/readiness probe."""
    catalog = _get_catalog(request)
    engine = _get_engine(request)
    return HealthResponse(
        status="ok",
        engine_version=engine.engine_version,
        synced_at=catalog.synced_at,
    )
