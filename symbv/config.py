"""Configuration system for symbv.
Supports TOML configuration files with project-level and user-level settings.
"""
from __future__ import annotations
import threading
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from symbv.logging import LogLevel, get_logger
CONFIG_FILES = [
    "symbv.toml",
    ".symbv.toml",
    "pyproject.toml",
]
@dataclass
class SolverSettings:
    """Which solver answers queries, and how it is started."""
    name: str = "z3"
    in_process: bool = True
    executable: str | None = None
    options: list[str] | None = None
    timeout_ms: int = 10000
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "in_process": self.in_process,
            "executable": self.executable,
            "options": self.options,
            "timeout_ms": self.timeout_ms,
        }
@dataclass
class RuntimeSettings:
    """Settings for graph construction."""
    max_workers: int = 4
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"max_workers": self.max_workers}
@dataclass
class CodeGenSettings:
    """Settings for generated C code."""
    cc: str = "gcc"
    ccflags: str = "-Wall -O3 -DNDEBUG -fomit-frame-pointer"
    driver: bool = True
    makefile: bool = True
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "cc": self.cc,
            "ccflags": self.ccflags,
            "driver": self.driver,
            "makefile": self.makefile,
        }
@dataclass
class OutputSettings:
    """Settings for logging output."""
    log_level: str = "normal"
    color: bool = True
    @property
    def level(self) -> LogLevel:
        """The configured log level; unknown names fall back to NORMAL."""
        return LogLevel.__members__.get(self.log_level.upper(), LogLevel.NORMAL)
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"log_level": self.log_level, "color": self.color}
@dataclass
class SymbvConfig:
    """Main configuration for symbv."""
    solver: SolverSettings = field(default_factory=SolverSettings)
    runtime: RuntimeSettings = field(default_factory=RuntimeSettings)
    codegen: CodeGenSettings = field(default_factory=CodeGenSettings)
    output: OutputSettings = field(default_factory=OutputSettings)
    project_root: Path | None = None
    config_file: Path | None = None
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "solver": self.solver.to_dict(),
            "runtime": self.runtime.to_dict(),
            "codegen": self.codegen.to_dict(),
            "output": self.output.to_dict(),
        }
    def to_toml(self) -> str:
        """Generate TOML configuration string."""
        lines = ["[tool.symbv]"]
        for section, values in self.to_dict().items():
            lines.append("")
            lines.append(f"[tool.symbv.{section}]")
            for key, value in values.items():
                if value is None:
                    continue
                lines.append(f"{key} = {_toml_value(value)}")
        return "\n".join(lines) + "\n"
def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    return str(value)
def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find configuration file by walking up directory tree."""
    if start_dir is None:
        start_dir = Path.cwd()
    current = start_dir.resolve()
    while current != current.parent:
        for config_name in CONFIG_FILES:
            config_path = current / config_name
            if config_path.exists():
                return config_path
        current = current.parent
    home = Path.home()
    for config_name in [".symbv.toml", "symbv.toml"]:
        config_path = home / config_name
        if config_path.exists():
            return config_path
    return None
def load_config(
    config_path: Path | None = None,
    start_dir: Path | None = None,
) -> SymbvConfig:
    """Load configuration from file or use defaults.
    Args:
        config_path: Explicit path to config file
        start_dir: Directory to start searching for config
    Returns:
        Loaded configuration
    """
    config = SymbvConfig()
    if config_path is None:
        config_path = find_config_file(start_dir)
    if config_path is None or not config_path.exists():
        return config
    config.config_file = config_path
    config.project_root = config_path.parent
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        get_logger().warning(f"Failed to parse config file {config_path}: {e}", category="config")
        return config
    if config_path.name == "pyproject.toml":
        symbv_data = data.get("tool", {}).get("symbv", {})
    else:
        symbv_data = data.get("tool", {}).get("symbv", data)
    _apply_config(config, symbv_data)
    return config
def _apply_section(target: Any, data: dict[str, Any], keys: list[str]) -> None:
    for key in keys:
        if key in data:
            setattr(target, key, data[key])
def _apply_config(config: SymbvConfig, data: dict[str, Any]) -> None:
    """Apply configuration data to config object."""
    if "solver" in data:
        sol_data = data["solver"]
        _apply_section(config.solver, sol_data, ["name", "in_process", "executable", "timeout_ms"])
        if "options" in sol_data:
            config.solver.options = [str(o) for o in sol_data["options"]]
    if "runtime" in data:
        _apply_section(config.runtime, data["runtime"], ["max_workers"])
    if "codegen" in data:
        _apply_section(config.codegen, data["codegen"], ["cc", "ccflags", "driver", "makefile"])
    if "output" in data:
        _apply_section(config.output, data["output"], ["log_level", "color"])
def generate_default_config() -> str:
    """Generate default configuration file content."""
    return SymbvConfig().to_toml()
def init_config(directory: Path | None = None) -> Path:
    """Initialize a new configuration file in the given directory.
    Args:
        directory: Directory to create config in (default: current)
    Returns:
        Path to created config file
    """
    if directory is None:
        directory = Path.cwd()
    config_path = directory / "symbv.toml"
    if config_path.exists():
        raise FileExistsError(f"Config file already exists: {config_path}")
    config_path.write_text(generate_default_config(), encoding="utf-8")
    return config_path
_config: SymbvConfig | None = None
_config_lock = threading.Lock()
def get_config() -> SymbvConfig:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_config()
    return _config
def set_config(config: SymbvConfig | None) -> None:
    """Replace the process-wide configuration (None reloads on next use)."""
    global _config
    _config = config
__all__ = [
    "SymbvConfig",
    "SolverSettings",
    "RuntimeSettings",
    "CodeGenSettings",
    "OutputSettings",
    "load_config",
    "find_config_file",
    "generate_default_config",
    "init_config",
    "get_config",
    "set_config",
]
