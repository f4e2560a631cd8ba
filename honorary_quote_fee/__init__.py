"""
Honorary quote-fee distributor.

Distributes quote-token fees accrued by a program-owned liquidity position to
investors pro rata to their locked vesting balances, once per day, in
paginated crank calls; the remainder goes to the creator.
"""

__version__ = "0.1.0"
