"""
Dealer Kernel

Shared foundation for the dealership calculation core:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Injectable clock
- Lenient numeric coercion for flat sale records
"""

__version__ = "0.1.0"
