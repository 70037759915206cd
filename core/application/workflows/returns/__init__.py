from .process_return_refund import ProcessReturnRefundInput, ProcessReturnRefundWorkflow

__all__ = ["ProcessReturnRefundInput", "ProcessReturnRefundWorkflow"]
