from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    priority: int = 0
    labels: List[str] = []
    url: str = ""

    @property
    def text(self) -> str:
        return f"{self.title}\n{self.description}"


class RepositoryRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @classmethod
    def parse(cls, value: str) -> "RepositoryRef":
        """Parses an "owner/name" string."""
        owner, sep, name = value.strip().partition("/")
        name = name.strip().strip("/")
        if name.endswith(".git"):
            name = name[: -len(".git")]
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Invalid repository '{value}', expected 'owner/repo'.")
        return cls(owner=owner.strip(), name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class FileEntry(BaseModel):
    path: str
    content: str
    size: int  # estimated tokens
    line_count: int


class SearchHit(BaseModel):
    file: str
    line: int
    text: str


class CommitRecord(BaseModel):
    sha: str
    message: str
    author: str
    timestamp: str


class ContextBundle(BaseModel):
    notes: str
    issue: Issue
    files: List[FileEntry] = []
    search_results: List[SearchHit] = []
    commits: List[CommitRecord] = []
    estimated_tokens: int = 0


class FileChange(BaseModel):
    path: str
    content: str


class FixResult(BaseModel):
    success: bool
    changes: List[FileChange] = []
    description: str = ""
    reasoning: str = ""
    test_plan: Optional[str] = None
    error: Optional[str] = None


class PullRequest(BaseModel):
    number: int
    url: str


class PipelineOutcome(BaseModel):
    success: bool
    branch: str
    pr_url: Optional[str] = None
    pr_number: Optional[int] = None
    files: List[str] = Field(default_factory=list)
    description: str = ""
    reasoning: str = ""
    error: Optional[str] = None
