from .cancel_order import CancelOrderInput, CancelOrderResult, CancelOrderWorkflow

__all__ = ["CancelOrderInput", "CancelOrderResult", "CancelOrderWorkflow"]
