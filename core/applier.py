import asyncio
from typing import List, Optional

from core.checkout import RepositoryCheckout
from core.contracts.clients import CodeHost, IssueTracker
from core.contracts.models import FixResult, Issue, PipelineOutcome, RepositoryRef
from core.formatter.jinja_formatter import Jinja2Formatter
from utils.errors import AIFixException
from utils.git import commit_paths, create_branch, push_branch
from utils.logger import logger


def branch_name_for(issue: Issue, prefix: str = "fix/") -> str:
    """Derives the fix branch name from the issue id."""
    return f"{prefix}{issue.id.lower()}"


def commit_message_for(issue: Issue, fix: FixResult) -> str:
    return f"Fix: {issue.title}\n\n{fix.reasoning}\n\nLinear Issue: {issue.url}"


class ChangeApplier:
    """
    Applies a successful fix to the checkout and publishes it as a pull request.

    The steps run in order with no rollback: the first failure raises and
    leaves earlier steps (branch, commit) in place.
    """

    def __init__(
        self,
        checkout: RepositoryCheckout,
        repo: RepositoryRef,
        code_host: CodeHost,
        tracker: Optional[IssueTracker] = None,
        formatter: Optional[Jinja2Formatter] = None,
        base_branch: str = "main",
        branch_prefix: str = "fix/",
        remote: str = "origin",
    ):
        self.checkout = checkout
        self.repo = repo
        self.code_host = code_host
        self.tracker = tracker
        self.formatter = formatter or Jinja2Formatter()
        self.base_branch = base_branch
        self.branch_prefix = branch_prefix
        self.remote = remote

    def branch_name(self, issue: Issue) -> str:
        return branch_name_for(issue, self.branch_prefix)

    async def apply(self, issue: Issue, fix: FixResult) -> PipelineOutcome:
        """
        Creates the branch, writes, commits and pushes the changes, and opens the pull request.

        Raises:
            AIFixException: If the fix is not successful or any step fails.
        """
        if not fix.success or not fix.changes:
            raise AIFixException("Cannot apply an unsuccessful fix.")

        branch = self.branch_name(issue)
        paths = [change.path for change in fix.changes]

        await asyncio.to_thread(self._commit_and_push, branch, paths, issue, fix)

        logger.info("Creating PR...")
        pr = await self.code_host.create_pull_request(
            self.repo,
            head=branch,
            base=self.base_branch,
            title=f"Fix: {issue.title}",
            body=self.formatter.render("pull_request.j2", issue=issue, fix=fix),
        )

        logger.success(f"PR created: {pr.url}")
        return PipelineOutcome(
            success=True,
            branch=branch,
            pr_url=pr.url,
            pr_number=pr.number,
            files=paths,
            description=fix.description,
            reasoning=fix.reasoning,
        )

    def _commit_and_push(self, branch: str, paths: List[str], issue: Issue, fix: FixResult) -> None:
        logger.info(f"Creating branch: {branch}")
        create_branch(branch, cwd=self.checkout.root)

        logger.info(f"Applying changes to {len(paths)} file(s)...")
        for change in fix.changes:
            self.checkout.write_file(change.path, change.content)

        logger.info("Committing changes...")
        sha = commit_paths(commit_message_for(issue, fix), paths, cwd=self.checkout.root)
        logger.debug(f"Created commit {sha}")

        logger.info("Pushing branch...")
        push_branch(branch, cwd=self.checkout.root, remote=self.remote)

    async def report(self, issue: Issue, outcome: PipelineOutcome) -> bool:
        """
        Posts the outcome as a comment on the originating issue.

        Returns:
            Whether the comment was posted. Failures are logged, never raised.
        """
        if self.tracker is None:
            logger.warning("No issue tracker configured, skipping comment")
            return False

        template = "comment_success.j2" if outcome.success else "comment_failure.j2"
        try:
            body = self.formatter.render(template, outcome=outcome)
            return await self.tracker.create_comment(issue.id, body)
        except AIFixException as e:
            logger.error(f"Error posting comment on issue {issue.id}: {e}")
            return False
