"""Engine subpackage - core pricing logic and resolution."""
from .models import QuoteRequest, LogoSelection, CostBreakdown, CostLine, UnknownOptionError
from .pricing_engine import PricingEngine

__all__ = ['PricingEngine', 'QuoteRequest', 'LogoSelection', 'CostBreakdown', 'CostLine', 'UnknownOptionError']
