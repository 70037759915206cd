from .add_to_cart import AddToCartInput, AddToCartWorkflow, LineItemRequest
from .remove_line_item import RemoveLineItemsInput, RemoveLineItemsWorkflow
from .update_line_item import UpdateLineItemInput, UpdateLineItemWorkflow

__all__ = [
    "AddToCartInput",
    "AddToCartWorkflow",
    "LineItemRequest",
    "RemoveLineItemsInput",
    "RemoveLineItemsWorkflow",
    "UpdateLineItemInput",
    "UpdateLineItemWorkflow",
]
