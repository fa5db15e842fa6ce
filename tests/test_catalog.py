from __future__ import annotations

import json
import shutil
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from mobile_pricing.catalog import ProductCatalog

ROOT_DIR = Path(__file__).resolve().parents[1]


def make_catalog() -> ProductCatalog:
    """Load the bundled products document."""
    return ProductCatalog(root_dir=ROOT_DIR)


def write_products(tmp_path: Path, payload: dict[str, Any]) -> Path:
    """Lay out a catalog root with the real schema and a custom document."""
    shutil.copytree(ROOT_DIR / "schema", tmp_path / "schema")
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "products.json").write_text(
        json.dumps(payload, ensure_ascii=False), encoding="utf-8"
    )
    return tmp_path


def bundled_products() -> dict[str, Any]:
    """Return a fresh copy of the bundled products document."""
    path = ROOT_DIR / "data" / "products.json"
    return json.loads(path.read_text(encoding="utf-8"))


def test_settings_are_parsed_as_decimals() -> None:
    """Read the global rates from their JSON text without float drift."""
    catalog = make_catalog()

    assert catalog.settings.installment_interest_rate == Decimal("0.059")
    assert catalog.settings.selective_discount_rate == Decimal("0.25")
    assert catalog.settings.bundle_discount_rate == Decimal("0.1")
    assert catalog.settings.prices_include_vat is True
    assert catalog.synced_at == "2025-11-06T10:00:00Z"


def test_find_subsidy_by_join_type() -> None:
    """Resolve a subsidy from the list for the requested join type."""
    catalog = make_catalog()

    change = catalog.find_subsidy("galaxy-s24_256GB", "youth-109", "change")
    transfer = catalog.find_subsidy("galaxy-s24_256GB", "youth-109", "transfer")

    assert change is not None and transfer is not None
    assert (change.common, change.additional) == (300_000, 100_000)
    assert change.join_type == "change"
    assert transfer.common == 450_000
    assert transfer.join_type == "transfer"


def test_find_subsidy_missing_combination() -> None:
    """Return None instead of a zero subsidy for unknown combinations."""
    catalog = make_catalog()

    assert catalog.find_subsidy("galaxy-s24_256GB", "5gx-prime", "change") is None
    assert catalog.find_subsidy("galaxy-s24_256GB", "youth-109", "new") is None


def test_subsidies_grouped_by_device_and_plan() -> None:
    """Group subsidy records per join type for a device or a plan."""
    catalog = make_catalog()

    by_device = catalog.subsidies_by_device("galaxy-s24_256GB")
    by_plan = catalog.subsidies_by_plan("youth-109")

    assert set(by_device) == {"change", "transfer", "new"}
    assert [s.plan_id for s in by_device["change"]] == ["senior-69", "youth-109"]
    assert len(by_device["transfer"]) == 1
    assert by_device["new"] == []
    assert {s.device_id for s in by_plan["change"]} == {
        "galaxy-s24_256GB",
        "iphone-15_128GB",
        "galaxy-a15_128GB",
    }


def test_list_plans_sorted_by_price() -> None:
    """List plans cheapest first and filter by category."""
    catalog = make_catalog()

    assert [plan.id for plan in catalog.list_plans()] == [
        "senior-69",
        "5gx-prime",
        "youth-109",
    ]
    assert [plan.id for plan in catalog.list_plans("YOUTH")] == ["youth-109"]


def test_list_devices_by_brand() -> None:
    """Filter devices by brand and keep color variants."""
    catalog = make_catalog()

    samsung = catalog.list_devices("samsung")

    assert [device.id for device in samsung] == [
        "galaxy-a15_128GB",
        "galaxy-s24_256GB",
    ]
    s24 = catalog.get_device("galaxy-s24_256GB")
    assert s24 is not None
    assert [color.code for color in s24.colors] == ["black", "white"]
    assert catalog.get_device("pixel-9_128GB") is None


def test_missing_bundle_rate_uses_default(tmp_path: Path) -> None:
    """Fall back to the default bundle rate when the document omits it."""
    payload = bundled_products()
    del payload["settings"]["bundleDiscountRate"]
    del payload["settings"]["pricesIncludeVat"]

    catalog = ProductCatalog(root_dir=write_products(tmp_path, payload))

    assert catalog.settings.bundle_discount_rate == Decimal("0.10")
    assert catalog.settings.prices_include_vat is True


def test_schema_rejects_negative_price(tmp_path: Path) -> None:
    """Refuse documents carrying negative list prices."""
    payload = bundled_products()
    payload["devices"][0]["price"] = -1

    with pytest.raises(ValueError, match="Schema validation failed"):
        ProductCatalog(root_dir=write_products(tmp_path, payload))


def test_duplicate_device_rejected(tmp_path: Path) -> None:
    """Refuse documents listing the same device twice."""
    payload = bundled_products()
    payload["devices"].append(dict(payload["devices"][0]))

    with pytest.raises(ValueError, match="Duplicate device"):
        ProductCatalog(root_dir=write_products(tmp_path, payload))


def test_subsidy_for_unknown_plan_rejected(tmp_path: Path) -> None:
    """Refuse subsidy records that point at a plan missing from the document."""
    payload = bundled_products()
    payload["subsidies"]["new"].append(
        {
            "id": "galaxy-s24_256GB_ghost_new",
            "deviceId": "galaxy-s24_256GB",
            "planId": "ghost",
            "common": 0,
            "additional": 0,
            "select": 0,
        }
    )

    with pytest.raises(ValueError, match="unknown plan"):
        ProductCatalog(root_dir=write_products(tmp_path, payload))


def test_duplicate_subsidy_key_rejected(tmp_path: Path) -> None:
    """Refuse two subsidy records for one combination and join type."""
    payload = bundled_products()
    duplicate = dict(payload["subsidies"]["change"][0])
    duplicate["id"] = "duplicate"
    payload["subsidies"]["change"].append(duplicate)

    with pytest.raises(ValueError, match="Duplicate change subsidy"):
        ProductCatalog(root_dir=write_products(tmp_path, payload))
