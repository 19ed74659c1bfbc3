from typing import Any, List, Mapping, Sequence

from core.budget import TokenBudget, estimate_json_tokens
from core.checkout import RepositoryCheckout
from core.contracts.collector import Collector
from core.contracts.models import SearchHit
from core.signals import Signals


class ErrorSearchCollector(Collector):
    """
    A collector that searches the checkout for the first error message found in the issue.
    """

    def __init__(
        self,
        extensions: Sequence[str] = (".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".rs"),
        max_results: int = 20,
        share: float = 0.8,
    ):
        self.extensions = list(extensions)
        self.max_results = max_results
        self.share = share

    def collect(self, checkout: RepositoryCheckout, signals: Signals, budget: TokenBudget) -> Mapping[str, Any]:
        """
        Runs only when an error string was extracted and usage is under the share.
        Hits are kept while they fit the total budget.

        Returns:
            A mapping containing the list of search hits.
        """
        if not signals.errors or not budget.below(self.share):
            return {"search_results": []}

        hits: List[SearchHit] = []
        for hit in checkout.search_code(signals.errors[0], self.extensions, limit=self.max_results):
            tokens = estimate_json_tokens(hit.model_dump())
            if not budget.fits(tokens):
                break
            hits.append(hit)
            budget.charge(tokens)

        return {"search_results": hits}
