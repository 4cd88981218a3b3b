"""Quote engine exports."""

from .engine import QuoteEngine, additional_services, apply_fees, estimate_lead_days

__all__ = ["QuoteEngine", "apply_fees", "additional_services", "estimate_lead_days"]
