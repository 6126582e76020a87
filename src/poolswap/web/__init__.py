"""HTTP surface for the swap orchestrator.

This layer only translates requests into orchestrator entry points. It does
not sign transactions; signing stays with the wallet behind the ledger
client.
"""

from poolswap.web.app import create_app

__all__ = ["create_app"]
