from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

class ModelConfig(BaseModel):
    provider: str = "claude"
    name: str = "claude-3-5-sonnet-20241022"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout_sec: int = 120
    temperature: float = Field(0.2, description="采样温度，取低值以获得更稳定的修复")
    max_tokens: int = Field(8000, description="模型输出的 token 上限")
    parameters: Dict[str, Any] = Field(default_factory=dict)

class GitHubConfig(BaseModel):
    token: Optional[str] = None
    repository: Optional[str] = Field(None, description="默认目标仓库，格式为 owner/repo")
    base_branch: str = "main"
    remote: str = "origin"
    api_url: str = "https://api.github.com"
    timeout_sec: int = 30

class LinearConfig(BaseModel):
    api_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    api_url: str = "https://api.linear.app/graphql"
    trigger_label: str = "ai-fix"
    timeout_sec: int = 30

class ContextConfig(BaseModel):
    token_budget: int = Field(100_000, description="上下文包的 token 预算")
    notes_path: str = ".ai/context.md"
    notes_placeholder: str = "No project context file found."
    file_share: float = 0.7
    search_share: float = 0.8
    history_share: float = 0.85
    search_extensions: List[str] = Field(
        default_factory=lambda: [".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".rs"]
    )
    max_search_results: int = 20
    history_limit: int = 5
    excluded_dirs: List[str] = Field(
        default_factory=lambda: ["node_modules", "dist", "build", "target", "__pycache__", "venv", "coverage"]
    )

class WorkspaceConfig(BaseModel):
    checkout_root: str = Field("/tmp", description="webhook 模式下克隆仓库的根目录")
    branch_prefix: str = "fix/"

class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    webhook_path: str = "/api/webhook"


class Config(BaseModel):
    model: ModelConfig = Field(default_factory=ModelConfig, description="LLM 模型相关配置")
    github: GitHubConfig = Field(default_factory=GitHubConfig, description="GitHub 相关配置")
    linear: LinearConfig = Field(default_factory=LinearConfig, description="Linear 相关配置")
    context: ContextConfig = Field(default_factory=ContextConfig, description="上下文收集相关配置")
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig, description="工作目录相关配置")
    server: ServerConfig = Field(default_factory=ServerConfig, description="Webhook 服务相关配置")
    repo_mapping: Dict[str, str] = Field(default_factory=dict, description="Linear 团队到 GitHub 仓库的映射")
