"""
Remove-line-item workflow.
"""
from dataclasses import dataclass, field
from typing import List

from core.domain.entities.cart import Cart
from core.domain.exceptions import NotFoundError, ValidationError
from core.domain.repositories import CartRepository
from orchestration import StepResponse, Workflow, WorkflowContext, create_step

from ..constants import WorkflowNames, cart_lock_key
from .steps import CART, get_cart_step, refresh_cart_step, restore_cart_items, validate_cart_step


@dataclass
class RemoveLineItemsInput:
    cart_id: str
    item_ids: List[str] = field(default_factory=list)


class RemoveLineItemsWorkflow(Workflow[RemoveLineItemsInput, Cart]):
    name = WorkflowNames.REMOVE_LINE_ITEM
    input_type = RemoveLineItemsInput
    output_type = Cart

    def __init__(self, carts: CartRepository):
        self._carts = carts

        self.get_cart = get_cart_step(carts)
        self.validate_cart = validate_cart_step
        self.validate_items = create_step("validate-line-items", self._validate_items)
        self.remove_line_items = create_step(
            "remove-line-items", self._remove_line_items, restore_cart_items(carts)
        )
        self.refresh_cart = refresh_cart_step(carts)

    def lock_key_for(self, input_: RemoveLineItemsInput) -> str:
        return cart_lock_key(input_.cart_id)

    async def execute(self, input_: RemoveLineItemsInput, ctx: WorkflowContext) -> Cart:
        cart = (await self.get_cart.invoke(input_.cart_id, ctx)).data
        await self.validate_cart.invoke(cart, ctx)
        await self.validate_items.invoke(input_.item_ids, ctx)
        await self.remove_line_items.invoke(input_.item_ids, ctx)
        return (await self.refresh_cart.invoke(cart.id, ctx)).data

    async def _validate_items(self, item_ids: List[str], ctx: WorkflowContext) -> None:
        if not item_ids:
            raise ValidationError("At least one line item id is required", code="EMPTY_ITEMS")
        cart = ctx.require(CART)
        missing = [item_id for item_id in item_ids if cart.find_item(item_id) is None]
        if missing:
            raise NotFoundError(
                f"Line items not found in cart {cart.id}: {', '.join(missing)}",
                code="LINE_ITEM_NOT_FOUND",
                details={"cart_id": cart.id, "item_ids": missing},
            )

    async def _remove_line_items(self, item_ids: List[str], ctx: WorkflowContext) -> StepResponse[Cart]:
        cart = ctx.require(CART)
        snapshot = cart.snapshot_items()
        for item_id in dict.fromkeys(item_ids):
            cart.remove_item(item_id)
        await self._carts.save(cart)
        return StepResponse.of(cart, compensation_data=snapshot)
