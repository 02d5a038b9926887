"""Tracker configuration."""

from pydantic import BaseModel, ConfigDict, Field

from .diffops import DiffFormat

DEFAULT_NUMBER_OF_COMMITS = 2


class TrackerSettings(BaseModel):
    """Settings for a CommitModificationTracker."""
    model_config = ConfigDict(validate_assignment=True)

    number_of_commits: int = Field(default=DEFAULT_NUMBER_OF_COMMITS, ge=0, description="How many of the most recent commits to track.")
    debounce_seconds: float = Field(default=0.5, gt=0, description="Quiet period after the last repository event before a refresh.")
    command_timeout: float = Field(default=30.0, gt=0, description="Seconds before a git command is killed.")
    diff_format: DiffFormat = Field(default=DiffFormat.WORD, description="Rendering requested from git diff.")
    record_whitespace_additions: bool = Field(default=True, description="Whether additions made only of whitespace are recorded.")
    watch: bool = Field(default=True, description="Whether to watch the .git directory and refresh on changes.")
    silent: bool = Field(default=True, description="Whether to suppress progress bars while reading commits.")
    highlight_char_budget: int = Field(default=5, ge=0, description="Maximum number of non-whitespace characters marked per file.")
