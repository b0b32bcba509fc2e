"""Configuration management for conventest."""

import json
import re
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

PIPE_ENV_VAR = "CONVENTEST_NAMED_PIPE"

CONFIG_NAMES = ["conventest.json", ".conventest.json"]

_IMPORT_PATH = re.compile(r"^[A-Za-z_][\w.]*(:[A-Za-z_]\w*)?$")


class RunConfig(BaseModel):
    """Discovery and execution settings."""

    convention: Optional[str] = Field(
        default=None,
        description="Convention to apply, as 'module:ClassName' (default: conventions defined in the test module)",
    )
    workers: int = Field(default=1, description="Number of test classes run at the same time")
    arguments: list[str] = Field(default_factory=list, description="Custom arguments passed to conventions")

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Workers must be at least 1")
        return v

    @field_validator("convention")
    @classmethod
    def validate_convention(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _IMPORT_PATH.match(v):
            raise ValueError("Convention must be an import path such as 'package.module:MyConvention'")
        return v


class ReportConfig(BaseModel):
    """Report generation configuration."""

    output: Optional[str] = Field(default=None, description="Report file path; no report when unset")
    title: str = Field(default="Test Results", description="Report title")


class ConsoleConfig(BaseModel):
    """Console output configuration."""

    show_passed: bool = Field(default=False, description="Print a line for every passing case")


class ConventestConfig(BaseModel):
    """Main configuration for conventest."""

    run: RunConfig = Field(default_factory=RunConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    console: ConsoleConfig = Field(default_factory=ConsoleConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "ConventestConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def find(cls, start_dir: Path | str | None = None) -> Optional[Path]:
        """Find a configuration file, searching up the directory tree."""
        if start_dir is None:
            start_dir = Path.cwd()
        else:
            start_dir = Path(start_dir)

        current = start_dir.resolve()
        for directory in [current, *current.parents]:
            for name in CONFIG_NAMES:
                config_path = directory / name
                if config_path.exists():
                    return config_path
        return None

    @classmethod
    def find_and_load(cls, start_dir: Path | str | None = None) -> "ConventestConfig":
        """Load the nearest configuration file, or the defaults when there is none."""
        config_path = cls.find(start_dir)
        if config_path is None:
            return get_default_config()
        return cls.from_file(config_path)

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

    def get_report_path(self, base_dir: Path | str | None = None) -> Optional[Path]:
        """Absolute path of the report file, if one is configured."""
        if self.report.output is None:
            return None
        if base_dir is None:
            base_dir = Path.cwd()
        return (Path(base_dir) / self.report.output).resolve()


def pipe_name(environ: Mapping[str, str]) -> Optional[str]:
    """Host channel address from an environment mapping, if host mode is requested."""
    value = environ.get(PIPE_ENV_VAR)
    return value or None


def get_default_config() -> ConventestConfig:
    """Return a default configuration."""
    return ConventestConfig()


def create_example_config(output_path: Path | str) -> Path:
    """Create an example configuration file."""
    output_path = Path(output_path)
    config = get_default_config()
    config.report.output = "reports/conventest.html"
    config.to_file(output_path)
    return output_path
