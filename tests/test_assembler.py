import unittest

import pytest

from config.models import ContextConfig
from core.assembler import ContextAssembler
from core.budget import TokenBudget, estimate_json_tokens, estimate_tokens, truncate_to_tokens
from core.checkout import RepositoryCheckout
from core.collectors.file_collector import MentionedFilesCollector
from core.collectors.history_collector import HistoryCollector
from core.contracts.models import Issue

PLACEHOLDER = "No project context file found."


class TestTokenBudget(unittest.TestCase):
    def test_estimate_tokens(self):
        self.assertEqual(estimate_tokens(""), 0)
        self.assertEqual(estimate_tokens("abcd"), 1)
        self.assertEqual(estimate_tokens("abcde"), 2)
        self.assertEqual(estimate_json_tokens({"a": 1}), estimate_tokens('{"a": 1}'))

    def test_truncate_to_tokens(self):
        self.assertEqual(truncate_to_tokens("abcdefghij", 2), "abcdefgh")
        self.assertEqual(truncate_to_tokens("abc", -1), "")

    def test_shares(self):
        budget = TokenBudget(1000)
        budget.charge(690)
        self.assertTrue(budget.below(0.7))
        self.assertTrue(budget.fits(10, 0.7))
        self.assertFalse(budget.fits(11, 0.7))
        self.assertEqual(budget.remaining(0.7), 10)
        budget.charge(10)
        self.assertFalse(budget.below(0.7))
        self.assertEqual(budget.remaining(), 300)

    def test_budget_must_be_positive(self):
        with self.assertRaises(ValueError):
            TokenBudget(0)


def make_issue(description: str, title: str = "Crash") -> Issue:
    return Issue(id="LIN-1", title=title, description=description, url="https://linear.app/x/LIN-1")


def base_usage(issue: Issue) -> int:
    return estimate_tokens(issue.text) + estimate_tokens(PLACEHOLDER)


def test_files_fill_up_to_seventy_percent(tmp_path):
    issue = make_issue("See a.py b.py c.py")
    b_tokens = 700 - base_usage(issue) - 400
    (tmp_path / "a.py").write_text("x" * 1600)
    (tmp_path / "b.py").write_text("y" * (b_tokens * 4))
    (tmp_path / "c.py").write_text("z" * 4)

    bundle = ContextAssembler(ContextConfig(token_budget=1000)).assemble(issue, RepositoryCheckout(tmp_path))

    assert [f.path for f in bundle.files] == ["a.py", "b.py"]
    assert bundle.files[0].size == 400
    assert bundle.estimated_tokens == 700


def test_file_that_would_cross_the_share_stops_collection(tmp_path):
    issue = make_issue("See a.py b.py c.py")
    b_tokens = 700 - base_usage(issue) - 400 + 1
    (tmp_path / "a.py").write_text("x" * 1600)
    (tmp_path / "b.py").write_text("y" * (b_tokens * 4))
    (tmp_path / "c.py").write_text("z" * 4)

    bundle = ContextAssembler(ContextConfig(token_budget=1000)).assemble(issue, RepositoryCheckout(tmp_path))

    # c.py would fit on its own, but collection stops at the first file that does not.
    assert [f.path for f in bundle.files] == ["a.py"]
    assert bundle.estimated_tokens <= 700


def test_unreadable_mentioned_files_are_skipped(tmp_path):
    (tmp_path / "real.ts").write_text("const a = 1;\nconst b = 2;")
    bundle = ContextAssembler().assemble(make_issue("ghost.ts and real.ts"), RepositoryCheckout(tmp_path))
    assert [f.path for f in bundle.files] == ["real.ts"]
    assert bundle.files[0].line_count == 2


def test_notes_placeholder_when_missing(tmp_path):
    bundle = ContextAssembler().assemble(make_issue("nothing here"), RepositoryCheckout(tmp_path))
    assert bundle.notes == PLACEHOLDER


def test_notes_read_from_checkout(tmp_path):
    (tmp_path / ".ai").mkdir()
    (tmp_path / ".ai" / "context.md").write_text("Use pnpm.")
    bundle = ContextAssembler().assemble(make_issue("nothing here"), RepositoryCheckout(tmp_path))
    assert bundle.notes == "Use pnpm."


def test_oversized_notes_are_truncated_to_budget(tmp_path):
    (tmp_path / ".ai").mkdir()
    (tmp_path / ".ai" / "context.md").write_text("n" * 8000)
    (tmp_path / "a.py").write_text("print(1)")

    bundle = ContextAssembler(ContextConfig(token_budget=1000)).assemble(
        make_issue("See a.py"), RepositoryCheckout(tmp_path)
    )

    assert bundle.estimated_tokens <= 1000
    assert len(bundle.notes) < 8000
    assert bundle.files == []


def test_oversized_issue_is_truncated_to_budget(tmp_path):
    issue = make_issue("w" * 10000, title="Big")
    bundle = ContextAssembler(ContextConfig(token_budget=1000)).assemble(issue, RepositoryCheckout(tmp_path))

    assert bundle.estimated_tokens <= 1000
    assert bundle.issue.title == "Big"
    assert len(bundle.issue.description) < 10000
    assert issue.description == "w" * 10000


def test_search_runs_for_first_error(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.ts").write_text("// TypeError: x is undefined\nconst x = 1;\n")
    (tmp_path / "src" / "app.md").write_text("TypeError: x is undefined\n")

    bundle = ContextAssembler().assemble(
        make_issue("Seen in prod:\nTypeError: x is undefined"), RepositoryCheckout(tmp_path)
    )

    assert [(h.file, h.line) for h in bundle.search_results] == [("src/app.ts", 1)]


def test_search_skipped_without_errors(tmp_path):
    (tmp_path / "app.ts").write_text("const broken = true;\n")
    bundle = ContextAssembler().assemble(make_issue("The page is broken"), RepositoryCheckout(tmp_path))
    assert bundle.search_results == []


def test_search_skipped_past_eighty_percent(tmp_path):
    (tmp_path / ".ai").mkdir()
    (tmp_path / ".ai" / "context.md").write_text("n" * 3300)
    (tmp_path / "app.ts").write_text("Error: boom\n")

    bundle = ContextAssembler(ContextConfig(token_budget=1000)).assemble(
        make_issue("Error: boom"), RepositoryCheckout(tmp_path)
    )

    assert bundle.search_results == []
    assert bundle.estimated_tokens <= 1000


def test_recent_commits_are_limited(git_repo, run_git):
    for i in range(7):
        (git_repo / "log.txt").write_text(str(i))
        run_git(git_repo, "add", "log.txt")
        run_git(git_repo, "commit", "-q", "-m", f"Commit {i}")

    bundle = ContextAssembler().assemble(make_issue("nothing"), RepositoryCheckout(git_repo))

    assert [c.message for c in bundle.commits] == [f"Commit {i}" for i in range(6, 1, -1)]


def test_history_of_fresh_repository(git_repo):
    bundle = ContextAssembler().assemble(make_issue("nothing"), RepositoryCheckout(git_repo))

    assert [c.message for c in bundle.commits] == ["Initial commit"]
    assert bundle.commits[0].author == "Test Bot"


def test_failing_collector_is_skipped(tmp_path, mocker):
    mocker.patch.object(MentionedFilesCollector, "collect", side_effect=RuntimeError("disk on fire"))
    (tmp_path / "a.py").write_text("x = 1")

    bundle = ContextAssembler().assemble(make_issue("See a.py"), RepositoryCheckout(tmp_path))

    assert bundle.files == []
    assert bundle.notes == PLACEHOLDER


def test_history_collector_requires_positive_count():
    with pytest.raises(ValueError):
        HistoryCollector(n=0)


@pytest.mark.parametrize("budget_total", [50, 300, 1000, 5000])
def test_bundle_never_exceeds_budget(tmp_path, budget_total):
    (tmp_path / ".ai").mkdir()
    (tmp_path / ".ai" / "context.md").write_text("notes " * 200)
    for name in ("a.ts", "b.ts", "c.ts"):
        (tmp_path / name).write_text("throw new Error('x')\n" * 50)
    issue = make_issue("Error('x') in a.ts b.ts c.ts\n" + "detail " * 100)

    bundle = ContextAssembler(ContextConfig(token_budget=budget_total)).assemble(issue, RepositoryCheckout(tmp_path))

    assert bundle.estimated_tokens <= budget_total
