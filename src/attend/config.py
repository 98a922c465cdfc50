from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

CloneProtocolName = Literal["ssh", "https"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass(slots=True)
class SuiteConfig:
    frail: bool = False
    bail: bool = False
    cache_dir: str = ".attend"


@dataclass(slots=True)
class ProjectsConfig:
    basedir: str = ""
    only: list[str] = field(default_factory=list)
    ignore: list[str] = field(default_factory=list)
    has_file: list[str] = field(default_factory=list)
    clone: list[str] = field(default_factory=list)
    depth: int = 0
    sparse: bool = False
    protocol: CloneProtocolName = "ssh"


@dataclass(slots=True)
class LoggingConfig:
    level: LogLevelName = "WARNING"


def _default_commands() -> dict[str, list[str]]:
    return {"lint": [], "fix": []}


@dataclass(slots=True)
class AttendConfig:
    suite: SuiteConfig = field(default_factory=SuiteConfig)
    projects: ProjectsConfig = field(default_factory=ProjectsConfig)
    commands: dict[str, list[str]] = field(default_factory=_default_commands)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def default(cls) -> AttendConfig:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttendConfig:
        commands: dict[str, list[str]] = {}
        for step_name, value in data.get("commands", {}).items():
            entries = [value] if isinstance(value, str) else list(value)
            commands[str(step_name)] = [str(entry) for entry in entries]
        return cls(
            suite=SuiteConfig(**data.get("suite", {})),
            projects=ProjectsConfig(**data.get("projects", {})),
            commands=commands if "commands" in data else _default_commands(),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "suite": {
                "frail": self.suite.frail,
                "bail": self.suite.bail,
                "cache_dir": self.suite.cache_dir,
            },
            "projects": {
                "basedir": self.projects.basedir,
                "only": list(self.projects.only),
                "ignore": list(self.projects.ignore),
                "has_file": list(self.projects.has_file),
                "clone": list(self.projects.clone),
                "depth": self.projects.depth,
                "sparse": self.projects.sparse,
                "protocol": self.projects.protocol,
            },
            "commands": {name: list(entries) for name, entries in self.commands.items()},
            "logging": {
                "level": self.logging.level,
            },
        }


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(item) for item in value) + "]"
    return json.dumps(str(value), ensure_ascii=False)


def _toml_key(key: str) -> str:
    if key and all(char.isalnum() or char in "-_" for char in key):
        return key
    return json.dumps(key, ensure_ascii=False)


def dumps_toml(config: AttendConfig) -> str:
    data = config.to_dict()
    lines: list[str] = []
    section_order = ["suite", "projects", "commands", "logging"]
    for section in section_order:
        lines.append(f"[{section}]")
        for key, value in data[section].items():
            lines.append(f"{_toml_key(key)} = {_toml_value(value)}")
        lines.append("")
    return "\n".join(lines).strip() + "\n"


def load_config(path: Path) -> AttendConfig:
    if not path.exists():
        return AttendConfig.default()
    return AttendConfig.from_dict(tomllib.loads(path.read_text(encoding="utf-8")))


def save_config(path: Path, config: AttendConfig) -> None:
    path.write_text(dumps_toml(config), encoding="utf-8")
