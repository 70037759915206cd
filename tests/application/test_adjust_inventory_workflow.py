"""Tests for the adjust-inventory workflow."""

import pytest

from core.application.workflows.inventory import (
    AdjustInventoryInput,
    AdjustInventoryResult,
    AdjustInventoryWorkflow,
)
from core.domain.enums import AdjustmentReason
from orchestration import ErrorKind, WorkflowContext


async def adjust(engine, **kwargs):
    return await engine.execute(
        "inventory.adjust", AdjustInventoryInput(**kwargs), AdjustInventoryInput, AdjustInventoryResult
    )


@pytest.mark.asyncio
async def test_adjust_by_level_id(app_engine, inventory, domain_events):
    result = await adjust(
        app_engine,
        adjustment=5,
        reason=AdjustmentReason.RESTOCK,
        inventory_level_id="ilev_hoodie_main",
        adjusted_by="warehouse_1",
    )

    outcome = result.get_or_raise()
    assert (outcome.previous_quantity, outcome.new_quantity) == (10, 15)
    assert outcome.available_quantity == 13
    assert (await inventory.find_level_by_id("ilev_hoodie_main")).stocked_quantity == 15

    event = domain_events.events_of_type("InventoryAdjustedEvent")[0]
    assert event.reason == "restock"
    assert event.adjustment == 5
    assert event.adjusted_by == "warehouse_1"


@pytest.mark.asyncio
async def test_adjust_by_sku_and_location(app_engine):
    result = await adjust(
        app_engine, adjustment=-3, reason=AdjustmentReason.DAMAGED, sku="HOODIE-L", location_id="loc_main"
    )

    assert result.data.new_quantity == 7
    record = (await app_engine.list_executions("inventory.adjust"))[0]
    assert record.lock_key == "inventory:HOODIE-L@loc_main"


@pytest.mark.asyncio
async def test_adjust_by_item_and_location(app_engine):
    result = await adjust(app_engine, adjustment=1, inventory_item_id="iitem_hoodie", location_id="loc_main")

    assert result.data.inventory_level_id == "ilev_hoodie_main"


@pytest.mark.asyncio
async def test_negative_stock_is_rejected(app_engine, inventory):
    result = await adjust(app_engine, adjustment=-11, inventory_level_id="ilev_hoodie_main")

    assert result.kind == ErrorKind.CONFLICT
    assert result.error.code == "INSUFFICIENT_STOCK"
    assert (await inventory.find_level_by_id("ilev_hoodie_main")).stocked_quantity == 10


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs, code",
    [
        ({"adjustment": 0, "inventory_level_id": "ilev_hoodie_main"}, "INVALID_ADJUSTMENT"),
        ({"adjustment": 1, "sku": "HOODIE-L"}, "MISSING_LOCATION"),
        ({"adjustment": 1, "location_id": "loc_main"}, "MISSING_INVENTORY_ITEM"),
    ],
)
async def test_invalid_adjustments(app_engine, kwargs, code):
    result = await adjust(app_engine, **kwargs)

    assert result.kind == ErrorKind.VALIDATION
    assert result.error.code == code


@pytest.mark.asyncio
async def test_unknown_sku_or_level_is_not_found(app_engine):
    unknown_sku = await adjust(app_engine, adjustment=1, sku="NOPE", location_id="loc_main")
    unknown_level = await adjust(app_engine, adjustment=1, inventory_level_id="ilev_missing")
    unknown_location = await adjust(app_engine, adjustment=1, sku="HOODIE-L", location_id="loc_other")

    assert unknown_sku.error.code == "INVENTORY_ITEM_NOT_FOUND"
    assert unknown_level.error.code == "INVENTORY_LEVEL_NOT_FOUND"
    assert unknown_location.error.code == "INVENTORY_LEVEL_NOT_FOUND"


@pytest.mark.asyncio
async def test_failure_after_adjustment_restores_stock(inventory, failing_events):
    workflow = AdjustInventoryWorkflow(inventory, failing_events)

    result = await workflow.run(
        AdjustInventoryInput(adjustment=4, inventory_level_id="ilev_hoodie_main"), WorkflowContext()
    )

    assert result.is_failure()
    assert (await inventory.find_level_by_id("ilev_hoodie_main")).stocked_quantity == 10
