"""
SMS Budget - Source Package

Interprets inbound text messages for a household budgeting product:
"Spent $25 on groceries", "Budget food", "help".

DESIGN PRINCIPLES:
1. Parsing is pure - text in, ParsedCommand out, no side effects
2. Every message gets a reply, even when something breaks
3. At most one ledger write per message
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SMS Budget Team"
