from .adjust_inventory import AdjustInventoryInput, AdjustInventoryResult, AdjustInventoryWorkflow

__all__ = ["AdjustInventoryInput", "AdjustInventoryResult", "AdjustInventoryWorkflow"]
