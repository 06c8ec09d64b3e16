"""Quorum: governance sessions for a personal journal.

Setup, Quarterly Review and Quick Version workflows that interrogate the
user, reject vague answers, and publish a versioned portfolio of problems,
board personas, bets and re-setup triggers.
"""

__version__ = "0.1.0"
