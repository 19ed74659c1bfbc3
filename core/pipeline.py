import asyncio
from pathlib import Path
from typing import Optional, Union

from config.models import Config
from core.applier import ChangeApplier
from core.assembler import ContextAssembler
from core.checkout import RepositoryCheckout
from core.contracts.models import Issue, PipelineOutcome, RepositoryRef
from core.fix_generator import FixGenerator
from core.formatter.jinja_formatter import Jinja2Formatter
from core.integrations.github import GitHubClient
from core.integrations.linear import LinearClient
from core.llm.router import get_provider
from utils.logger import logger


class BugFixPipeline:
    """
    The main pipeline for fixing one issue.
    It orchestrates context assembly, fix generation, applying the change and
    reporting back on the issue.
    """

    def __init__(
        self,
        checkout: RepositoryCheckout,
        assembler: ContextAssembler,
        generator: FixGenerator,
        applier: ChangeApplier,
    ):
        self.checkout = checkout
        self.assembler = assembler
        self.generator = generator
        self.applier = applier

    async def run(self, issue: Issue, notify: bool = True) -> PipelineOutcome:
        """
        Runs the full pipeline for an issue.

        Never raises: errors from any step become a failed outcome. When
        `notify` is set, the outcome is commented on the issue either way.
        """
        logger.info(f"Starting bug fix for: {issue.title}")
        branch = self.applier.branch_name(issue)

        try:
            logger.info("Gathering context...")
            # File walks, search and git log are blocking.
            bundle = await asyncio.to_thread(self.assembler.assemble, issue, self.checkout)

            logger.info("Running AI analysis and fix...")
            fix = await self.generator.generate(bundle)

            if fix.success:
                outcome = await self.applier.apply(issue, fix)
            else:
                outcome = PipelineOutcome(
                    success=False,
                    branch=branch,
                    description="AI agent could not generate a fix",
                    reasoning=fix.reasoning,
                    error=fix.error,
                )
        except Exception as e:
            logger.error(f"Failed to fix issue {issue.id}: {e}")
            outcome = PipelineOutcome(
                success=False,
                branch=branch,
                description="Failed to fix bug",
                reasoning="An error occurred during the fix process",
                error=str(e),
            )

        if notify:
            await self.applier.report(issue, outcome)
        return outcome

    async def aclose(self) -> None:
        """Closes the HTTP clients owned by the pipeline's components."""
        for client in (self.generator.provider, self.applier.code_host, self.applier.tracker):
            aclose = getattr(client, "aclose", None)
            if aclose is not None:
                await aclose()


def build_pipeline(
    config: Config,
    repo: RepositoryRef,
    checkout_path: Union[str, Path],
) -> BugFixPipeline:
    """
    Constructs a pipeline with explicitly created clients for one repository checkout.
    The issue tracker is optional: without a Linear API key no comments are posted.
    """
    formatter = Jinja2Formatter()
    checkout = RepositoryCheckout(checkout_path, excluded_dirs=config.context.excluded_dirs)

    tracker: Optional[LinearClient] = None
    if config.linear.api_key:
        tracker = LinearClient(
            config.linear.api_key,
            api_url=config.linear.api_url,
            timeout_sec=config.linear.timeout_sec,
        )
    else:
        logger.warning("LINEAR_API_KEY not set, results will not be commented on issues")

    applier = ChangeApplier(
        checkout,
        repo,
        GitHubClient(config.github.token, api_url=config.github.api_url, timeout_sec=config.github.timeout_sec),
        tracker=tracker,
        formatter=formatter,
        base_branch=config.github.base_branch,
        branch_prefix=config.workspace.branch_prefix,
        remote=config.github.remote,
    )
    return BugFixPipeline(
        checkout=checkout,
        assembler=ContextAssembler(config.context),
        generator=FixGenerator(get_provider(config.model), formatter=formatter),
        applier=applier,
    )

