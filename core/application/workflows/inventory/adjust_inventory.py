"""
Adjust-inventory workflow.

Changes stock on hand at one location by a signed amount. The level can be
addressed directly by id, or by sku / inventory item id plus location.
"""
from dataclasses import dataclass
import logging
from typing import Optional

from core.domain.entities.inventory import InventoryLevel
from core.domain.enums import AdjustmentReason
from core.domain.event_bus import EventBus
from core.domain.events import InventoryAdjustedEvent
from core.domain.exceptions import NotFoundError, ValidationError
from core.domain.repositories import InventoryRepository
from orchestration import ContextKey, StepResponse, Workflow, WorkflowContext, create_step

from ..constants import WorkflowNames, inventory_lock_key

logger = logging.getLogger(__name__)


@dataclass
class AdjustInventoryInput:
    adjustment: int
    reason: AdjustmentReason = AdjustmentReason.CORRECTION
    inventory_level_id: Optional[str] = None
    sku: Optional[str] = None
    inventory_item_id: Optional[str] = None
    location_id: Optional[str] = None
    note: Optional[str] = None
    adjusted_by: Optional[str] = None


@dataclass
class AdjustInventoryResult:
    inventory_level_id: str
    inventory_item_id: str
    location_id: str
    previous_quantity: int
    new_quantity: int
    available_quantity: int


INVENTORY_LEVEL = ContextKey[InventoryLevel]("inventory_level")


class AdjustInventoryWorkflow(Workflow[AdjustInventoryInput, AdjustInventoryResult]):
    name = WorkflowNames.ADJUST_INVENTORY
    input_type = AdjustInventoryInput
    output_type = AdjustInventoryResult

    def __init__(self, inventory: InventoryRepository, event_bus: EventBus):
        self._inventory = inventory
        self._event_bus = event_bus

        self.validate_adjustment = create_step("validate-adjustment", self._validate)
        self.resolve_level = create_step("resolve-inventory-level", self._resolve_level)
        self.apply_adjustment = create_step(
            "apply-inventory-adjustment", self._apply, self._restore_stock
        )
        self.emit_event = create_step("emit-inventory-adjusted", self._emit)

    def lock_key_for(self, input_: AdjustInventoryInput) -> str:
        return inventory_lock_key(
            input_.inventory_level_id, input_.sku or input_.inventory_item_id, input_.location_id
        )

    async def execute(self, input_: AdjustInventoryInput, ctx: WorkflowContext) -> AdjustInventoryResult:
        await self.validate_adjustment.invoke(input_, ctx)
        level = (await self.resolve_level.invoke(input_, ctx)).data
        result = (await self.apply_adjustment.invoke((level, input_.adjustment), ctx)).data
        await self.emit_event.invoke((input_, result), ctx)
        return result

    async def _validate(self, input_: AdjustInventoryInput, ctx: WorkflowContext) -> None:
        if input_.adjustment == 0:
            raise ValidationError("Adjustment must not be zero", code="INVALID_ADJUSTMENT")
        if not input_.inventory_level_id and not input_.location_id:
            raise ValidationError(
                "Either inventory_level_id or location_id is required", code="MISSING_LOCATION"
            )
        if not input_.inventory_level_id and not (input_.sku or input_.inventory_item_id):
            raise ValidationError(
                "Either sku or inventory_item_id is required with location_id",
                code="MISSING_INVENTORY_ITEM",
            )

    async def _resolve_level(self, input_: AdjustInventoryInput, ctx: WorkflowContext) -> StepResponse[InventoryLevel]:
        if input_.inventory_level_id:
            level = await self._inventory.find_level_by_id(input_.inventory_level_id)
            reference = input_.inventory_level_id
        else:
            item_id = input_.inventory_item_id
            if item_id is None:
                item = await self._inventory.find_item_by_sku(input_.sku)
                if item is None:
                    raise NotFoundError(
                        f"Inventory item not found for sku {input_.sku}",
                        code="INVENTORY_ITEM_NOT_FOUND",
                        details={"sku": input_.sku},
                    )
                item_id = item.id
            level = await self._inventory.find_level(item_id, input_.location_id)
            reference = f"{item_id}@{input_.location_id}"

        if level is None:
            raise NotFoundError(
                f"Inventory level not found: {reference}",
                code="INVENTORY_LEVEL_NOT_FOUND",
                details={"reference": reference},
            )
        ctx.set(INVENTORY_LEVEL, level)
        return StepResponse.of(level)

    async def _apply(self, request: tuple, ctx: WorkflowContext) -> StepResponse[AdjustInventoryResult]:
        level, adjustment = request
        previous = level.adjust_stock(adjustment)
        await self._inventory.save_level(level)
        result = AdjustInventoryResult(
            inventory_level_id=level.id,
            inventory_item_id=level.inventory_item_id,
            location_id=level.location_id,
            previous_quantity=previous,
            new_quantity=level.stocked_quantity,
            available_quantity=level.available_quantity,
        )
        return StepResponse.of(result, compensation_data=previous)

    async def _restore_stock(
        self, request: tuple, result: AdjustInventoryResult, previous: int, ctx: WorkflowContext
    ) -> None:
        level = await self._inventory.find_level_by_id(result.inventory_level_id)
        if level is None:
            return
        level.set_stock(previous)
        await self._inventory.save_level(level)
        logger.info(f"Restored stock on level {level.id} to {previous}")

    async def _emit(self, request: tuple, ctx: WorkflowContext) -> None:
        input_, result = request
        await self._event_bus.publish(
            InventoryAdjustedEvent(
                inventory_level_id=result.inventory_level_id,
                inventory_item_id=result.inventory_item_id,
                location_id=result.location_id,
                adjustment=input_.adjustment,
                previous_quantity=result.previous_quantity,
                new_quantity=result.new_quantity,
                reason=input_.reason.value,
                note=input_.note,
                adjusted_by=input_.adjusted_by,
                execution_id=ctx.execution_id,
                correlation_id=ctx.correlation_id,
            )
        )
