"""
rollsettle Ledger - atomic in-process execution environment.
"""

from rollsettle.ledger.guard import NonReentrant
from rollsettle.ledger.ledger import Event, GasMeter, Ledger
from rollsettle.ledger.token import FungibleToken

__all__ = ["Event", "FungibleToken", "GasMeter", "Ledger", "NonReentrant"]
