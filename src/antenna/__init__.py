"""antenna - runtime-integrity core of a host security auditor.

Provides a hash-chained risk-acceptance ledger, a concurrent security watcher
with a rate-limited kill switch, and an incident correlator.
"""

__version__ = "0.4.0"
