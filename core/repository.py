import re
from typing import Mapping, Optional

from core.contracts.models import RepositoryRef
from core.integrations.linear import LinearIssueData
from utils.logger import logger

GITHUB_URL_PATTERN = re.compile(r"github\.com/([^/\s]+)/([^/\s]+)")


def _parse(value: str, source: str) -> Optional[RepositoryRef]:
    try:
        return RepositoryRef.parse(value)
    except ValueError as e:
        logger.warning(f"Ignoring repository from {source}: {e}")
        return None


def repository_from_text(text: str) -> Optional[RepositoryRef]:
    """Finds the first github.com/<owner>/<repo> URL in text."""
    match = GITHUB_URL_PATTERN.search(text)
    if not match:
        return None
    owner, name = match.group(1), match.group(2).rstrip(".,;:)]>'\"")
    return _parse(f"{owner}/{name}", "issue description")


def resolve_repository(
    data: LinearIssueData,
    repo_mapping: Optional[Mapping[str, str]] = None,
    default_repository: Optional[str] = None,
) -> Optional[RepositoryRef]:
    """
    Decides which GitHub repository an issue belongs to. First match wins:

    1. a GitHub URL in the issue description,
    2. the team mapping, keyed by team name, key or id (case-insensitive),
    3. the default repository.
    """
    ref = repository_from_text(data.description or "")
    if ref:
        logger.info(f"Repository {ref.full_name} found in issue description")
        return ref

    if repo_mapping and data.team:
        mapping = {k.strip().lower(): v for k, v in repo_mapping.items()}
        for team_key in (data.team.name, data.team.key, data.team.id):
            if team_key and team_key.lower() in mapping:
                ref = _parse(mapping[team_key.lower()], f"team mapping '{team_key}'")
                if ref:
                    logger.info(f"Repository {ref.full_name} mapped from team '{team_key}'")
                    return ref

    if default_repository:
        ref = _parse(default_repository, "GITHUB_REPOSITORY")
        if ref:
            logger.info(f"Using default repository {ref.full_name}")
        return ref

    return None
