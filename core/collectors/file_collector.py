from typing import Any, List, Mapping

from core.budget import TokenBudget, estimate_tokens
from core.checkout import RepositoryCheckout
from core.contracts.collector import Collector
from core.contracts.models import FileEntry
from core.signals import Signals
from utils.errors import CheckoutError
from utils.logger import logger


class MentionedFilesCollector(Collector):
    """
    A collector that reads the files named in the issue, in the order they were mentioned.
    """

    def __init__(self, share: float = 0.7):
        """
        Args:
            share: The fraction of the total budget that files may fill.
        """
        self.share = share

    def collect(self, checkout: RepositoryCheckout, signals: Signals, budget: TokenBudget) -> Mapping[str, Any]:
        """
        Adds files until the next one would take usage past the share.
        Unreadable paths are skipped.

        Returns:
            A mapping containing the list of file entries.
        """
        files: List[FileEntry] = []
        for path in signals.files:
            if not budget.below(self.share):
                break

            try:
                content = checkout.read_file(path)
            except CheckoutError:
                logger.debug(f"Could not read file {path}")
                continue

            tokens = estimate_tokens(content)
            if not budget.fits(tokens, self.share):
                logger.info(f"Stopping at {path}: {tokens} tokens would exceed the file share of the budget")
                break

            files.append(FileEntry(path=path, content=content, size=tokens, line_count=len(content.split("\n"))))
            budget.charge(tokens)

        return {"files": files}
