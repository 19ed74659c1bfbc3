from typing import Any, List, Mapping

from core.budget import TokenBudget, estimate_json_tokens
from core.checkout import RepositoryCheckout
from core.contracts.collector import Collector
from core.contracts.models import CommitRecord
from core.signals import Signals
from utils.errors import GitError
from utils.logger import logger


class HistoryCollector(Collector):
    """
    A collector that retrieves the recent commit history of the whole repository.
    """

    def __init__(self, n: int = 5, share: float = 0.85):
        """
        Initializes the HistoryCollector.

        Args:
            n: The number of recent commits to retrieve.
            share: Commits are only fetched while usage is under this fraction of the budget.
        """
        if n <= 0:
            raise ValueError("Number of commits (n) must be a positive integer.")
        self._n = n
        self.share = share

    def collect(self, checkout: RepositoryCheckout, signals: Signals, budget: TokenBudget) -> Mapping[str, Any]:
        """
        Runs `git log` in the checkout. Git failures yield no commits.

        Returns:
            A mapping containing the list of commit records.
        """
        if not budget.below(self.share):
            return {"commits": []}

        try:
            records = checkout.recent_commits(self._n)
        except GitError as e:
            logger.warning(f"Could not read commit history: {e}")
            return {"commits": []}

        commits: List[CommitRecord] = []
        for record in records:
            tokens = estimate_json_tokens(record.model_dump())
            if not budget.fits(tokens):
                break
            commits.append(record)
            budget.charge(tokens)

        return {"commits": commits}
