"""
Productivity Kernel

Shared foundation for the workforce productivity attribution engines:
- Immutable billing, worklog and cost records
- Decimal-only money and exchange-rate value objects
- Typed, coded exceptions
- Structured JSON logging
"""

__version__ = "0.1.0"
