import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from utils.errors import GitError
from utils.logger import logger

PathLike = Union[str, Path]

# Field and record separators for `git log` output. Commit subjects may contain
# any printable character, so plain delimiters like "|" are not safe.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x00"


def _mask(text: str, secret: Optional[str]) -> str:
    return text.replace(secret, "***") if secret else text


def _run_git(args: Sequence[str], cwd: Optional[PathLike] = None, secret: Optional[str] = None) -> str:
    """
    Runs a git command and returns its stdout.

    Args:
        args: The git arguments.
        cwd: The working directory.
        secret: A credential that may appear in the arguments or output; it is
            masked in logs and error messages.

    Raises:
        GitError: If git is missing or the command exits non-zero.
    """
    command = ["git", *args]
    logger.debug(f"Running: {_mask(' '.join(command), secret)} (cwd={cwd})")
    try:
        result = subprocess.run(
            command,
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            text=True,
            check=True,
            encoding="utf-8",
        )
        return result.stdout
    except FileNotFoundError:
        raise GitError("Git is not installed or not in PATH.")
    except subprocess.CalledProcessError as e:
        error_message = _mask((e.stderr or "").strip(), secret)
        raise GitError(f"git {args[0]} failed: {error_message}") from None


def is_git_repository(cwd: Optional[PathLike] = None) -> bool:
    """Checks if the given directory is inside a Git work tree."""
    try:
        return _run_git(["rev-parse", "--is-inside-work-tree"], cwd=cwd).strip() == "true"
    except GitError:
        return False


def create_branch(branch_name: str, cwd: PathLike) -> None:
    """
    Creates the branch at HEAD and switches to it. A local branch of the same
    name left by an earlier run is reset.
    """
    try:
        _run_git(["checkout", "-B", branch_name], cwd=cwd)
    except GitError as e:
        raise GitError(f"Failed to create branch {branch_name}: {e}") from e


def commit_paths(message: str, paths: Sequence[str], cwd: PathLike) -> str:
    """
    Stages exactly the given paths and creates one commit.

    Returns:
        The SHA of the new commit.
    """
    try:
        _run_git(["add", "--", *paths], cwd=cwd)
        _run_git(["commit", "-m", message], cwd=cwd)
        return _run_git(["rev-parse", "HEAD"], cwd=cwd).strip()
    except GitError as e:
        raise GitError(f"Failed to commit: {e}") from e


def push_branch(branch_name: str, cwd: PathLike, remote: str = "origin") -> None:
    """Pushes the branch and sets its upstream."""
    try:
        _run_git(["push", "-u", remote, branch_name], cwd=cwd)
    except GitError as e:
        raise GitError(f"Failed to push branch {branch_name}: {e}") from e


def get_recent_commits(limit: int, cwd: PathLike, file_path: Optional[str] = None) -> List[Dict[str, str]]:
    """
    Returns the most recent commits as dictionaries with sha, message, author
    and timestamp keys, newest first.
    """
    if limit <= 0:
        raise ValueError("Number of commits (limit) must be a positive integer.")

    # git expands the %x escapes; argv itself cannot carry a NUL byte.
    pretty = "%x1f".join(["%H", "%s", "%an", "%aI"]) + "%x00"
    args = ["log", f"-n{limit}", f"--pretty=format:{pretty}"]
    if file_path:
        args += ["--", file_path]

    try:
        output = _run_git(args, cwd=cwd)
    except GitError as e:
        # An empty repository has no HEAD yet.
        if "does not have any commits" in str(e):
            return []
        raise

    commits = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        sha, message, author, timestamp = record.split(_FIELD_SEP)
        commits.append({"sha": sha, "message": message, "author": author, "timestamp": timestamp})
    return commits


def clone_or_pull(
    remote_url: str,
    destination: PathLike,
    secret: Optional[str] = None,
    base_branch: Optional[str] = None,
    remote: str = "origin",
) -> None:
    """
    Clones the remote into destination, or updates a clone already there.

    With a base branch, the work tree is left on that branch, reset to
    `<remote>/<base_branch>` and cleaned of untracked files, whatever branch a
    previous run left checked out. Without one, an existing clone is pulled.

    Args:
        remote_url: The URL to clone from, possibly carrying credentials.
        destination: The checkout directory.
        secret: A credential embedded in remote_url, masked in error messages.
        base_branch: The branch new work is cut from.
        remote: The remote name used for the clone.
    """
    destination = Path(destination)
    if (destination / ".git").is_dir():
        if base_branch is None:
            logger.info(f"Repository already cloned at {destination}, pulling latest")
            _run_git(["pull"], cwd=destination, secret=secret)
            return
        logger.info(f"Repository already cloned at {destination}, fetching {remote}")
        _run_git(["fetch", remote], cwd=destination, secret=secret)
    else:
        logger.info(f"Cloning repository into {destination}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        _run_git(["clone", "--origin", remote, remote_url, str(destination)], secret=secret)
        if base_branch is None:
            return

    _run_git(["checkout", "-f", "-B", base_branch, f"{remote}/{base_branch}"], cwd=destination)
    _run_git(["clean", "-fdq"], cwd=destination)
