from .authorize_payment import AuthorizePaymentInput, AuthorizePaymentWorkflow
from .capture_payment import CapturePaymentInput, CapturePaymentWorkflow
from .refund_payment import RefundPaymentInput, RefundPaymentWorkflow

__all__ = [
    "AuthorizePaymentInput",
    "AuthorizePaymentWorkflow",
    "CapturePaymentInput",
    "CapturePaymentWorkflow",
    "RefundPaymentInput",
    "RefundPaymentWorkflow",
]
