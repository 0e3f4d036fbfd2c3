"""
Boapay Online Banking

Banking backend with intra-bank transfers, bill payments, international
transfers, cryptocurrency accounts, approval workflows and real-time
notifications. All monetary values use Decimal.
"""

__version__ = "1.0.0"
