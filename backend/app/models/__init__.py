from .tenant import Tenant
from .user import User
from .currency import Currency, CurrencyRate
from .metal import Metal, MetalReferenceHistory
from .variant import MetalVariant, PricingMode
from .quote import MetalQuote

__all__ = [
    "Tenant",
    "User",
    "Currency",
    "CurrencyRate",
    "Metal",
    "MetalReferenceHistory",
    "MetalVariant",
    "PricingMode",
    "MetalQuote",
]
