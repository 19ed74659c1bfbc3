from typing import Any, Dict, List, Optional

from config.models import ContextConfig
from core.budget import TokenBudget, estimate_tokens, truncate_to_tokens
from core.checkout import RepositoryCheckout
from core.collectors.file_collector import MentionedFilesCollector
from core.collectors.history_collector import HistoryCollector
from core.collectors.notes_collector import NotesCollector
from core.collectors.search_collector import ErrorSearchCollector
from core.contracts.collector import Collector
from core.contracts.models import ContextBundle, Issue
from core.signals import extract_signals
from utils.logger import logger


class ContextAssembler:
    """
    Builds the token-budgeted context bundle for one fix attempt.

    Categories are filled in a fixed priority order: issue text, project notes,
    mentioned files, error search hits, recent commits. Each collector charges
    the shared budget and stops before its share would be exceeded, so the
    bundle's estimate never exceeds the total budget.
    """

    def __init__(self, config: Optional[ContextConfig] = None):
        self.config = config or ContextConfig()

    def _collectors(self) -> List[Collector]:
        cfg = self.config
        return [
            NotesCollector(path=cfg.notes_path, placeholder=cfg.notes_placeholder),
            MentionedFilesCollector(share=cfg.file_share),
            ErrorSearchCollector(
                extensions=cfg.search_extensions,
                max_results=cfg.max_search_results,
                share=cfg.search_share,
            ),
            HistoryCollector(n=cfg.history_limit, share=cfg.history_share),
        ]

    def _charge_issue(self, issue: Issue, budget: TokenBudget) -> Issue:
        tokens = estimate_tokens(issue.text)
        if budget.fits(tokens):
            budget.charge(tokens)
            return issue

        logger.warning(f"Issue text ({tokens} tokens) exceeds the token budget, truncating it.")
        remaining = budget.remaining()
        title = issue.title
        if estimate_tokens(title + "\n") > remaining:
            title = truncate_to_tokens(title, remaining - 1)
        description = truncate_to_tokens(issue.description, remaining - estimate_tokens(title + "\n"))
        truncated = issue.model_copy(update={"title": title, "description": description})
        budget.charge(estimate_tokens(truncated.text))
        return truncated

    def assemble(self, issue: Issue, checkout: RepositoryCheckout) -> ContextBundle:
        """
        Gathers all relevant context for a bug. Never raises: a failing
        collector contributes nothing.
        """
        budget = TokenBudget(self.config.token_budget)
        data: Dict[str, Any] = {"issue": self._charge_issue(issue, budget), "notes": self.config.notes_placeholder}

        signals = extract_signals(issue.text)
        logger.debug(
            f"Extracted signals: {len(signals.files)} files, {len(signals.errors)} errors, "
            f"{len(signals.functions)} functions"
        )

        for collector in self._collectors():
            name = type(collector).__name__
            try:
                collected = collector.collect(checkout, signals, budget)
            except Exception as e:
                logger.warning(f"Collector {name} failed, skipping: {e}")
                continue
            data.update(collected)
            logger.debug(f"{name} done, {budget}")

        bundle = ContextBundle(**data, estimated_tokens=budget.used)
        logger.info(
            f"Context gathered: {bundle.estimated_tokens} tokens, {len(bundle.files)} files, "
            f"{len(bundle.search_results)} search hits, {len(bundle.commits)} commits"
        )
        return bundle
