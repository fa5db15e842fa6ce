from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, get_args

from jsonschema import Draft202012Validator

from mobile_pricing.catalog import models as catalog_models
from mobile_pricing.constants import DEFAULT_BUNDLE_DISCOUNT_RATE

logger = logging.getLogger(__name__)

JOIN_TYPES: tuple[str, ...] = get_args(catalog_models.JoinType)


class ProductCatalog:
    """Read-only view over a ``products.json`` document.

    Devices, plans and subsidies are loaded and cross-checked once at
    construction; lookups afterwards are plain dictionary reads.
    """

    def __init__(self, root_dir: Path | None = None) -> None:
        """Load, validate and index the products document under ``root_dir``."""
        self._root_dir = root_dir or Path(__file__).resolve().parents[2]
        self._products_path = self._root_dir / "data" / "products.json"
        self._schema_path = self._root_dir / "schema" / "products.schema.json"

        self._validator = Draft202012Validator(self._read_json(self._schema_path))
        self._data = self._load_products()

        logger.info(
            "catalog_loaded",
            extra={
                "event": "catalog_loaded",
                "device_count": len(self._data.devices),
                "plan_count": len(self._data.plans),
            },
        )

    @property
    def settings(self) -> catalog_models.GlobalSettings:
        """Return the global pricing settings from the products document."""
        return self._data.settings

    @property
    def synced_at(self) -> str | None:
        """Return the last spreadsheet sync timestamp, if recorded."""
        return self._data.settings.synced_at

    def list_devices(self, brand: str | None = None) -> list[catalog_models.Device]:
        """List devices sorted by id, optionally filtered by brand."""
        devices: list[catalog_models.Device] = []
        for key in sorted(self._data.devices):
            device = self._data.devices[key]
            if brand is None or device.brand == brand:
                devices.append(device)
        return devices

    def get_device(self, device_id: str) -> catalog_models.Device | None:
        return self._data.devices.get(device_id)

    def list_plans(self, category_id: str | None = None) -> list[catalog_models.Plan]:
        """List plans by ascending base price, optionally for one category."""
        plans = [
            plan
            for plan in self._data.plans.values()
            if category_id is None or plan.category_id == category_id
        ]
        return sorted(plans, key=lambda plan: (plan.base_price, plan.id))

    def get_plan(self, plan_id: str) -> catalog_models.Plan | None:
        return self._data.plans.get(plan_id)

    def find_subsidy(
        self,
        device_id: str,
        plan_id: str,
        join_type: str,
    ) -> catalog_models.Subsidy | None:
        """Find the subsidy record for a device/plan pair and join type."""
        return self._data.subsidies.get(join_type, {}).get((device_id, plan_id))

    def subsidies_by_device(
        self, device_id: str
    ) -> dict[str, list[catalog_models.Subsidy]]:
        """Group every subsidy record for ``device_id`` by join type."""
        return self._group_subsidies(lambda key: key[0] == device_id)

    def subsidies_by_plan(
        self, plan_id: str
    ) -> dict[str, list[catalog_models.Subsidy]]:
        """Group every subsidy record for ``plan_id`` by join type."""
        return self._group_subsidies(lambda key: key[1] == plan_id)

    def _group_subsidies(
        self, predicate: Callable[[tuple[str, str]], bool]
    ) -> dict[str, list[catalog_models.Subsidy]]:
        grouped: dict[str, list[catalog_models.Subsidy]] = {}
        for join_type in JOIN_TYPES:
            records = self._data.subsidies.get(join_type, {})
            grouped[join_type] = [
                records[key] for key in sorted(records) if predicate(key)
            ]
        return grouped

    # ------------------------------------------------------------------
    # Internal loading
    # ------------------------------------------------------------------

    def _load_products(self) -> catalog_models.ProductsData:
        raw = self._read_json(self._products_path)
        self._validate_schema(raw, self._products_path.name)

        devices = self._parse_devices(raw["devices"])
        plans = self._parse_plans(raw["plans"])
        subsidies = self._parse_subsidies(raw["subsidies"], devices, plans)
        return catalog_models.ProductsData(
            devices=devices,
            plans=plans,
            subsidies=subsidies,
            settings=self._parse_settings(raw["settings"]),
        )

    @staticmethod
    def _parse_devices(
        raw_devices: list[dict[str, Any]],
    ) -> dict[str, catalog_models.Device]:
        devices: dict[str, catalog_models.Device] = {}
        for raw_device in raw_devices:
            colors = tuple(
                catalog_models.DeviceColor(
                    id=color["id"],
                    code=color["code"],
                    name=color["name"],
                    hex=color["hex"],
                )
                for color in raw_device.get("colors", [])
            )
            device = catalog_models.Device(
                id=raw_device["id"],
                brand=raw_device["brand"],
                model=raw_device["model"],
                storage=raw_device["storage"],
                price=raw_device["price"],
                colors=colors,
            )
            if device.id in devices:
                raise ValueError(f"Duplicate device '{device.id}' in products.json")
            devices[device.id] = device
        return devices

    @staticmethod
    def _parse_plans(
        raw_plans: list[dict[str, Any]],
    ) -> dict[str, catalog_models.Plan]:
        plans: dict[str, catalog_models.Plan] = {}
        for raw_plan in raw_plans:
            plan = catalog_models.Plan(
                id=raw_plan["id"],
                category_id=raw_plan["categoryId"],
                name=raw_plan["name"],
                base_price=raw_plan["basePrice"],
                category_name=raw_plan.get("categoryName", ""),
                description=raw_plan.get("description", ""),
                data=raw_plan.get("data", ""),
                call=raw_plan.get("call", ""),
                sms=raw_plan.get("sms", ""),
                benefits=raw_plan.get("benefits", ""),
                restrictions=raw_plan.get("restrictions", ""),
            )
            if plan.id in plans:
                raise ValueError(f"Duplicate plan '{plan.id}' in products.json")
            plans[plan.id] = plan
        return plans

    @staticmethod
    def _parse_subsidies(
        raw_subsidies: dict[str, list[dict[str, Any]]],
        devices: dict[str, catalog_models.Device],
        plans: dict[str, catalog_models.Plan],
    ) -> dict[str, dict[tuple[str, str], catalog_models.Subsidy]]:
        subsidies: dict[str, dict[tuple[str, str], catalog_models.Subsidy]] = {}
        for join_type in JOIN_TYPES:
            records: dict[tuple[str, str], catalog_models.Subsidy] = {}
            for raw in raw_subsidies.get(join_type, []):
                subsidy = catalog_models.Subsidy(
                    id=raw["id"],
                    device_id=raw["deviceId"],
                    plan_id=raw["planId"],
                    common=raw["common"],
                    additional=raw["additional"],
                    select=raw["select"],
                    join_type=join_type,
                )
                if subsidy.device_id not in devices:
                    raise ValueError(
                        f"Subsidy '{subsidy.id}' refers to unknown device "
                        f"'{subsidy.device_id}'"
                    )
                if subsidy.plan_id not in plans:
                    raise ValueError(
                        f"Subsidy '{subsidy.id}' refers to unknown plan "
                        f"'{subsidy.plan_id}'"
                    )
                key = (subsidy.device_id, subsidy.plan_id)
                if key in records:
                    raise ValueError(
                        f"Duplicate {join_type} subsidy for {key[0]} / {key[1]}"
                    )
                records[key] = subsidy
            subsidies[join_type] = records
        return subsidies

    @staticmethod
    def _parse_settings(raw: dict[str, Any]) -> catalog_models.GlobalSettings:
        bundle_rate = raw.get("bundleDiscountRate")
        return catalog_models.GlobalSettings(
            installment_interest_rate=Decimal(str(raw["installmentInterestRate"])),
            selective_discount_rate=Decimal(str(raw["selectiveDiscountRate"])),
            vat_rate=Decimal(str(raw["vatRate"])),
            bundle_discount_rate=(
                Decimal(str(bundle_rate))
                if bundle_rate is not None
                else DEFAULT_BUNDLE_DISCOUNT_RATE
            ),
            prices_include_vat=raw.get("pricesIncludeVat", True),
            synced_at=raw.get("syncedAt"),
        )

    @staticmethod
    def _read_json(path: Path) -> dict[str, Any]:
        return json.loads(path.read_text(encoding="utf-8"))

    def _validate_schema(self, payload: dict[str, Any], filename: str) -> None:
        errors = sorted(
            self._validator.iter_errors(payload),
            key=lambda err: [str(part) for part in err.path],
        )
        if not errors:
            return

        first_error = errors[0]
        path = ".".join(str(part) for part in first_error.path)
        path_suffix = f" at '{path}'" if path else ""
        raise ValueError(
            (
                "Schema validation failed for "
                f"{filename}{path_suffix}: {first_error.message}"
            )
        )
