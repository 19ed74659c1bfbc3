from typing import Any, Mapping

from core.budget import TokenBudget, estimate_tokens, truncate_to_tokens
from core.checkout import RepositoryCheckout
from core.contracts.collector import Collector
from core.signals import Signals
from utils.errors import CheckoutError
from utils.logger import logger


class NotesCollector(Collector):
    """
    A collector that reads the project's static notes document from the checkout.
    """

    def __init__(self, path: str = ".ai/context.md", placeholder: str = "No project context file found."):
        self.path = path
        self.placeholder = placeholder

    def collect(self, checkout: RepositoryCheckout, signals: Signals, budget: TokenBudget) -> Mapping[str, Any]:
        """
        Reads the notes file. A missing or unreadable file is replaced by the
        placeholder. Notes are always charged, truncated to what is left of the budget.

        Returns:
            A mapping containing the notes text.
        """
        try:
            notes = checkout.read_file(self.path)
        except CheckoutError:
            logger.warning(f"No {self.path} found - consider creating one!")
            notes = self.placeholder

        tokens = estimate_tokens(notes)
        if not budget.fits(tokens):
            logger.warning(f"Project notes ({tokens} tokens) exceed the remaining budget, truncating.")
            notes = truncate_to_tokens(notes, budget.remaining())
            tokens = estimate_tokens(notes)

        budget.charge(tokens)
        return {"notes": notes}
