from typing import TYPE_CHECKING, Any, Mapping, Protocol

if TYPE_CHECKING:
    from core.budget import TokenBudget
    from core.checkout import RepositoryCheckout
    from core.signals import Signals


class Collector(Protocol):
    """A protocol for classes that collect one category of bug context."""

    def collect(
        self, checkout: "RepositoryCheckout", signals: "Signals", budget: "TokenBudget"
    ) -> Mapping[str, Any]:
        """Collects information within the budget and returns it as a mapping of ContextBundle fields."""
        ...
