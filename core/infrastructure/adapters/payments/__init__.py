from .simulated_gateway import SUPPORTED_PROVIDERS, SimulatedPaymentGateway

__all__ = ["SUPPORTED_PROVIDERS", "SimulatedPaymentGateway"]
