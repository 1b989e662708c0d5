"""
Cap Pricing Package

Volume-tiered pricing and quoting for custom caps.
Resolves a quote using Product → Tier → Breakpoint price, then adds
logos, premium fabrics, closures, accessories, delivery and flat charges.
"""

__version__ = "2.0.0"
