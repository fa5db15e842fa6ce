from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from mobile_pricing.catalog.models import (
    ContractType,
    Device,
    GlobalSettings,
    InstallmentMonths,
    JoinType,
    Plan,
    Subsidy,
)
from mobile_pricing.constants import (
    COMPARISON_HORIZON_MONTHS,
    CONTRACT_TYPE_LABELS,
    INSTALLMENT_MONTHS,
    JOIN_TYPE_LABELS,
    MAX_INSTALLMENT_INTEREST_RATE,
    PUBLIC_SUBSIDY,
    SELECTIVE_CONTRACT,
)
from mobile_pricing.engine.exceptions import ValidationError
from mobile_pricing.engine.money import amortize, percentage_of

SUBSIDY_MISMATCH = "subsidy-mismatch"


def validate_installment_months(months: object) -> None:
    """Raise a field-tagged error unless ``months`` is 0, 12, 24 or 36."""
    if isinstance(months, bool) or months not in INSTALLMENT_MONTHS:
        raise ValidationError(
            "installmentMonths",
            "Installment months must be one of 0, 12, 24, 36",
            rule="choice",
            details={
                "allowed": list(INSTALLMENT_MONTHS),
                "value": months,
            },
        )


@dataclass(frozen=True)
class CalculationInput:
    device: Device
    plan: Plan
    subsidy: Subsidy
    join_type: JoinType
    installment_months: InstallmentMonths
    contract_type: ContractType
    bundle_discount: bool = False


@dataclass(frozen=True)
class Breakdown:
    device_price: int
    applied_subsidy: int
    device_net_price: int
    monthly_device: int
    plan_base_price: int
    selective_discount: int
    bundle_discount_amount: int
    monthly_plan: int
    vat_included: bool


@dataclass(frozen=True)
class ContractInfo:
    join_type: JoinType
    join_type_name: str
    contract_type: ContractType
    installment_months: InstallmentMonths


@dataclass(frozen=True)
class CalculationResult:
    monthly_device_fee: int
    monthly_plan_fee: int
    total_monthly_fee: int
    breakdown: Breakdown
    contract: ContractInfo


@dataclass(frozen=True)
class ContractOption:
    contract_type: ContractType
    monthly_fee: int
    total_cost: int
    result: CalculationResult


@dataclass(frozen=True)
class ContractComparison:
    public_subsidy: ContractOption
    selective_contract: ContractOption
    difference: int
    total_cost_difference: int
    horizon_months: int
    recommendation: ContractType


class PricingEngine:
    """Derive a monthly bill breakdown from a device, plan and subsidy.

    The engine holds no state besides its version string; every call is a
    pure function of its arguments.
    """

    def __init__(self, engine_version: str) -> None:
        self._engine_version = engine_version

    @property
    def engine_version(self) -> str:
        """Return the pricing engine version string."""
        return self._engine_version

    def calculate(
        self,
        calculation_input: CalculationInput,
        settings: GlobalSettings,
    ) -> CalculationResult:
        """Compute device installment, plan fee and monthly total."""
        self._validate_input(calculation_input)
        self._validate_settings(settings)

        device = calculation_input.device
        plan = calculation_input.plan
        subsidy = calculation_input.subsidy
        contract_type = calculation_input.contract_type
        months = calculation_input.installment_months

        applied_subsidy = self._applied_subsidy(contract_type, subsidy)
        device_net_price = max(0, device.price - applied_subsidy)
        monthly_device = amortize(
            device_net_price,
            settings.installment_interest_rate,
            months,
        )

        selective_discount = 0
        if contract_type == SELECTIVE_CONTRACT:
            selective_discount = percentage_of(
                plan.base_price, settings.selective_discount_rate
            )

        bundle_discount_amount = 0
        if calculation_input.bundle_discount:
            bundle_discount_amount = percentage_of(
                plan.base_price, settings.bundle_discount_rate
            )

        monthly_plan = max(
            0, plan.base_price - selective_discount - bundle_discount_amount
        )

        return CalculationResult(
            monthly_device_fee=monthly_device,
            monthly_plan_fee=monthly_plan,
            total_monthly_fee=monthly_device + monthly_plan,
            breakdown=Breakdown(
                device_price=device.price,
                applied_subsidy=applied_subsidy,
                device_net_price=device_net_price,
                monthly_device=monthly_device,
                plan_base_price=plan.base_price,
                selective_discount=selective_discount,
                bundle_discount_amount=bundle_discount_amount,
                monthly_plan=monthly_plan,
                vat_included=settings.prices_include_vat,
            ),
            contract=ContractInfo(
                join_type=calculation_input.join_type,
                join_type_name=JOIN_TYPE_LABELS[calculation_input.join_type],
                contract_type=contract_type,
                installment_months=months,
            ),
        )

    def compare(
        self,
        calculation_input: CalculationInput,
        settings: GlobalSettings,
    ) -> ContractComparison:
        """Price both contract types and recommend the cheaper one.

        The contract type carried by ``calculation_input`` is ignored. Costs
        are compared over the installment period, or over
        ``COMPARISON_HORIZON_MONTHS`` for lump-sum purchases, where the net
        device price is paid up front.
        """
        months = calculation_input.installment_months
        horizon = months or COMPARISON_HORIZON_MONTHS

        public = self._price_option(
            replace(calculation_input, contract_type=PUBLIC_SUBSIDY),
            settings,
            horizon,
        )
        selective = self._price_option(
            replace(calculation_input, contract_type=SELECTIVE_CONTRACT),
            settings,
            horizon,
        )

        recommendation: ContractType = (
            PUBLIC_SUBSIDY
            if public.total_cost <= selective.total_cost
            else SELECTIVE_CONTRACT
        )
        return ContractComparison(
            public_subsidy=public,
            selective_contract=selective,
            difference=abs(public.monthly_fee - selective.monthly_fee),
            total_cost_difference=abs(public.total_cost - selective.total_cost),
            horizon_months=horizon,
            recommendation=recommendation,
        )

    def _price_option(
        self,
        calculation_input: CalculationInput,
        settings: GlobalSettings,
        horizon: int,
    ) -> ContractOption:
        result = self.calculate(calculation_input, settings)
        total_cost = result.total_monthly_fee * horizon
        if calculation_input.installment_months == 0:
            total_cost += result.breakdown.device_net_price
        return ContractOption(
            contract_type=calculation_input.contract_type,
            monthly_fee=result.total_monthly_fee,
            total_cost=total_cost,
            result=result,
        )

    @staticmethod
    def _applied_subsidy(contract_type: ContractType, subsidy: Subsidy) -> int:
        # selective contracts discount the plan fee, never the device
        if contract_type == PUBLIC_SUBSIDY:
            return subsidy.common + subsidy.additional
        return 0

    @staticmethod
    def _require_won(field: str, value: object) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(
                field,
                "Amounts must be integer won",
                rule="integer",
                details={"value": value},
            )
        if value < 0:
            raise ValidationError(
                field,
                "Amounts must be >= 0",
                rule="min",
                details={"min": 0, "value": value},
            )

    def _validate_input(self, calculation_input: CalculationInput) -> None:
        device = calculation_input.device
        plan = calculation_input.plan
        subsidy = calculation_input.subsidy

        self._require_won("device.price", device.price)
        self._require_won("plan.basePrice", plan.base_price)
        self._require_won("subsidy.common", subsidy.common)
        self._require_won("subsidy.additional", subsidy.additional)
        self._require_won("subsidy.select", subsidy.select)

        validate_installment_months(calculation_input.installment_months)

        if calculation_input.contract_type not in CONTRACT_TYPE_LABELS:
            raise ValidationError(
                "contractType",
                "Unknown contract type",
                rule="choice",
                details={"value": calculation_input.contract_type},
            )

        if calculation_input.join_type not in JOIN_TYPE_LABELS:
            raise ValidationError(
                "joinType",
                "Unknown join type",
                rule="choice",
                details={"value": calculation_input.join_type},
            )

        mismatched = (
            subsidy.device_id != device.id
            or subsidy.plan_id != plan.id
            or (
                subsidy.join_type is not None
                and subsidy.join_type != calculation_input.join_type
            )
        )
        if mismatched:
            raise ValidationError(
                SUBSIDY_MISMATCH,
                "Subsidy record does not belong to the device/plan pair",
                details={
                    "subsidy_id": subsidy.id,
                    "device_id": device.id,
                    "plan_id": plan.id,
                    "join_type": calculation_input.join_type,
                },
            )

    @staticmethod
    def _validate_settings(settings: GlobalSettings) -> None:
        rates: tuple[tuple[str, Decimal, Decimal | None], ...] = (
            (
                "installmentInterestRate",
                settings.installment_interest_rate,
                MAX_INSTALLMENT_INTEREST_RATE,
            ),
            ("selectiveDiscountRate", settings.selective_discount_rate, Decimal(1)),
            ("bundleDiscountRate", settings.bundle_discount_rate, Decimal(1)),
            ("vatRate", settings.vat_rate, None),
        )
        for name, rate, upper in rates:
            if not isinstance(rate, Decimal) or not rate.is_finite():
                raise ValidationError(
                    f"settings.{name}",
                    "Rates must be finite decimals",
                    rule="decimal",
                )
            if rate < 0 or (upper is not None and rate > upper):
                raise ValidationError(
                    f"settings.{name}",
                    "Rate out of range",
                    rule="range",
                    details={
                        "min": 0,
                        "max": None if upper is None else str(upper),
                        "value": str(rate),
                    },
                )
