"""Read-only query selectors."""

from oceanre_kernel.selectors.base import BaseSelector
from oceanre_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["BaseSelector", "LedgerSelector"]
