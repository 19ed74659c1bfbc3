from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from core.contracts.models import CommitRecord, SearchHit
from utils.errors import CheckoutError
from utils.git import get_recent_commits
from utils.logger import logger

DEFAULT_EXCLUDED_DIRS = frozenset(
    {"node_modules", "dist", "build", "target", "__pycache__", "venv", "coverage"}
)


class RepositoryCheckout:
    """
    File-system and git access to one local repository checkout.

    All paths are relative to the checkout root; paths that resolve outside of
    it are rejected.
    """

    def __init__(self, root: Union[str, Path], excluded_dirs: Optional[Iterable[str]] = None):
        self.root = Path(root).resolve()
        self.excluded_dirs = frozenset(excluded_dirs) if excluded_dirs is not None else DEFAULT_EXCLUDED_DIRS

    def resolve(self, relative_path: str) -> Path:
        full_path = (self.root / relative_path).resolve()
        if full_path != self.root and self.root not in full_path.parents:
            raise CheckoutError(f"Path '{relative_path}' is outside of the repository checkout.")
        return full_path

    def read_file(self, relative_path: str) -> str:
        try:
            return self.resolve(relative_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CheckoutError(f"Failed to read file {relative_path}: {e}") from e

    def write_file(self, relative_path: str, content: str) -> None:
        full_path = self.resolve(relative_path)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise CheckoutError(f"Failed to write file {relative_path}: {e}") from e

    def _is_excluded(self, name: str) -> bool:
        return name.startswith(".") or name in self.excluded_dirs

    def iter_files(self) -> Iterator[str]:
        """
        Yields the relative POSIX paths of all files in the checkout, skipping
        hidden entries and excluded directories. Traversal is iterative and
        sorted for a stable order.
        """
        stack: List[Path] = [self.root]
        while stack:
            directory = stack.pop()
            try:
                entries = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError as e:
                logger.debug(f"Skipping unreadable directory {directory}: {e}")
                continue

            subdirectories = []
            for entry in entries:
                if self._is_excluded(entry.name):
                    continue
                if entry.is_dir() and not entry.is_symlink():
                    subdirectories.append(entry)
                elif entry.is_file():
                    yield entry.relative_to(self.root).as_posix()
            # Reversed so that directories are visited in name order.
            stack.extend(reversed(subdirectories))

    def search_code(
        self,
        pattern: str,
        extensions: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[SearchHit]:
        """
        Case-sensitive substring search over files with the given extensions.
        Unreadable files are skipped. Stops after `limit` hits.
        """
        hits: List[SearchHit] = []
        for relative_path in self.iter_files():
            if extensions and not relative_path.endswith(tuple(extensions)):
                continue
            try:
                content = self.read_file(relative_path)
            except CheckoutError:
                continue

            for number, line in enumerate(content.split("\n"), start=1):
                if pattern in line:
                    hits.append(SearchHit(file=relative_path, line=number, text=line.strip()))
                    if limit is not None and len(hits) >= limit:
                        return hits
        return hits

    def recent_commits(self, limit: int = 10, file_path: Optional[str] = None) -> List[CommitRecord]:
        return [CommitRecord(**c) for c in get_recent_commits(limit, cwd=self.root, file_path=file_path)]
