"""
Update-line-item workflow.

Sets the quantity of one cart line; a quantity of zero removes the line.
"""
from dataclasses import dataclass
from typing import Optional

from core.domain.entities.cart import Cart, CartLineItem
from core.domain.exceptions import NotFoundError, ValidationError
from core.domain.repositories import CartRepository, InventoryRepository, ProductVariantRepository
from orchestration import ContextKey, StepResponse, Workflow, WorkflowContext, create_step

from ..constants import WorkflowNames, cart_lock_key
from .steps import (
    CART,
    QuantityCheck,
    confirm_inventory_step,
    get_cart_step,
    refresh_cart_step,
    restore_cart_items,
    validate_cart_step,
)


@dataclass
class UpdateLineItemInput:
    cart_id: str
    item_id: str
    quantity: int


ORIGINAL_ITEM = ContextKey[CartLineItem]("original_item")


class UpdateLineItemWorkflow(Workflow[UpdateLineItemInput, Cart]):
    name = WorkflowNames.UPDATE_LINE_ITEM
    input_type = UpdateLineItemInput
    output_type = Cart

    def __init__(
        self,
        carts: CartRepository,
        variants: ProductVariantRepository,
        inventory: Optional[InventoryRepository] = None,
    ):
        self._carts = carts
        self._variants = variants

        self.get_cart = get_cart_step(carts)
        self.validate_cart = validate_cart_step
        self.validate_quantity = create_step("validate-quantity", self._validate_quantity)
        self.find_line_item = create_step("find-line-item", self._find_line_item)
        self.confirm_inventory = confirm_inventory_step(inventory)
        self.update_line_item = create_step(
            "update-line-item", self._update_line_item, restore_cart_items(carts)
        )
        self.refresh_cart = refresh_cart_step(carts)

    def lock_key_for(self, input_: UpdateLineItemInput) -> str:
        return cart_lock_key(input_.cart_id)

    async def execute(self, input_: UpdateLineItemInput, ctx: WorkflowContext) -> Cart:
        cart = (await self.get_cart.invoke(input_.cart_id, ctx)).data
        await self.validate_cart.invoke(cart, ctx)
        await self.validate_quantity.invoke(input_.quantity, ctx)
        item = (await self.find_line_item.invoke(input_.item_id, ctx)).data

        if input_.quantity > item.quantity:
            variant = await self._variants.find_by_id(item.variant_id)
            if variant is not None:
                await self.confirm_inventory.invoke([QuantityCheck(variant, input_.quantity)], ctx)

        await self.update_line_item.invoke(input_, ctx)
        return (await self.refresh_cart.invoke(cart.id, ctx)).data

    async def _validate_quantity(self, quantity: int, ctx: WorkflowContext) -> None:
        if quantity < 0:
            raise ValidationError(f"Quantity must not be negative, got {quantity}", code="INVALID_QUANTITY")

    async def _find_line_item(self, item_id: str, ctx: WorkflowContext) -> StepResponse[CartLineItem]:
        cart = ctx.require(CART)
        item = cart.find_item(item_id)
        if item is None:
            raise NotFoundError(
                f"Line item {item_id} not found in cart {cart.id}",
                code="LINE_ITEM_NOT_FOUND",
                details={"cart_id": cart.id, "item_id": item_id},
            )
        ctx.set(ORIGINAL_ITEM, item)
        return StepResponse.of(item)

    async def _update_line_item(
        self, input_: UpdateLineItemInput, ctx: WorkflowContext
    ) -> StepResponse[Cart]:
        cart = ctx.require(CART)
        snapshot = cart.snapshot_items()

        if input_.quantity == 0:
            cart.remove_item(input_.item_id)
        else:
            cart.get_item(input_.item_id).update_quantity(input_.quantity)
            cart.recalculate_totals()

        await self._carts.save(cart)
        return StepResponse.of(cart, compensation_data=snapshot)
