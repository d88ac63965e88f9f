"""Trackboard configuration management."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

# Keys persisted to config.yaml; workspace_path is implied by the file location.
_SAVED_KEYS = (
    "log_level",
    "functions_url",
    "insights_function",
    "project_insights_function",
    "priorities_function",
    "tasks_function",
    "request_timeout",
    "insight_project_limit",
    "tag_suggestion_limit",
    "tag_default_count",
    "default_sort",
    "default_view_mode",
)


@dataclass
class Config:
    """Trackboard configuration."""

    workspace_path: Path = field(default_factory=lambda: Path.home() / ".trackboard")
    log_level: str = "INFO"

    # Serverless functions that front the LLM API
    functions_url: str = "http://localhost:54321/functions/v1"
    api_key: str | None = None
    insights_function: str = "generate-insights"
    project_insights_function: str = "generate-ai-insights"
    priorities_function: str = "generate-ai-priorities"
    tasks_function: str = "generate-tasks"
    request_timeout: float = 30.0
    insight_project_limit: int = 5

    # Tag suggestions
    tag_suggestion_limit: int = 8
    tag_default_count: int = 10

    # Dashboard defaults
    default_sort: str = "name"
    default_view_mode: str = "accordion"

    @classmethod
    def load(cls, workspace_path: Path | None = None) -> Config:
        """Load config from defaults, then YAML, then env vars."""
        config = cls()

        if workspace_path:
            config.workspace_path = workspace_path

        env_path = os.environ.get("TRACKBOARD_WORKSPACE")
        if env_path:
            config.workspace_path = Path(env_path)

        config_file = config.workspace_path / "config.yaml"
        if config_file.exists():
            with open(config_file) as f:
                data = yaml.safe_load(f) or {}
            for key, value in data.items():
                if not hasattr(config, key) or key == "workspace_path":
                    continue
                current = getattr(config, key)
                if current is None or value is None:
                    setattr(config, key, value)
                else:
                    setattr(config, key, type(current)(value))

        env_log = os.environ.get("TRACKBOARD_LOG_LEVEL")
        if env_log:
            config.log_level = env_log

        env_url = os.environ.get("TRACKBOARD_FUNCTIONS_URL")
        if env_url:
            config.functions_url = env_url

        env_key = os.environ.get("TRACKBOARD_API_KEY")
        if env_key:
            config.api_key = env_key

        return config

    @property
    def db_path(self) -> Path:
        return self.workspace_path / "trackboard.db"

    @property
    def export_dir(self) -> Path:
        return self.workspace_path / "exports"

    def function_url(self, name: str) -> str:
        """Full URL of a named serverless function."""
        return f"{self.functions_url.rstrip('/')}/{name}"

    def save(self) -> None:
        """Save current config to YAML. The API key is never written."""
        self.workspace_path.mkdir(parents=True, exist_ok=True)
        config_file = self.workspace_path / "config.yaml"
        data = {key: getattr(self, key) for key in _SAVED_KEYS}
        with open(config_file, "w") as f:
            yaml.dump(data, f, default_flow_style=False)
