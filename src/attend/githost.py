from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

HOST_DOMAINS = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "bitbucket": "bitbucket.org",
}
DOMAIN_HOSTS = {domain: host for host, domain in HOST_DOMAINS.items()}
SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
SHORTCUT_PATTERN = re.compile(r"^(?:(?P<type>[a-z]+):)?(?P<owner>[^/:@\s]+)/(?P<name>[^/\s]+)$")
SCP_PATTERN = re.compile(r"^[^@/\s]+@(?P<domain>[^:/\s]+):(?P<path>[^\s]+)$")


@dataclass(frozen=True, slots=True)
class GitHost:
    type: str
    owner: str
    name: str
    default_branch: str | None = None

    def __post_init__(self) -> None:
        if self.type not in HOST_DOMAINS:
            raise ValueError(f"Unsupported git host type: {self.type!r}")
        for label, value in (("owner", self.owner), ("name", self.name)):
            if not SEGMENT_PATTERN.match(value) or value in {".", ".."}:
                raise ValueError(f"Invalid repository {label}: {value!r}")

    @property
    def domain(self) -> str:
        return HOST_DOMAINS[self.type]

    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    def shortcut(self) -> str:
        return f"{self.type}:{self.slug()}"

    def https(self) -> str:
        return f"https://{self.domain}/{self.slug()}.git"

    def ssh(self) -> str:
        return f"git@{self.domain}:{self.slug()}.git"

    def __str__(self) -> str:
        return self.shortcut()

    @classmethod
    def from_url(cls, url: str, *, default_branch: str | None = None) -> GitHost:
        value = url.strip()
        if not value:
            raise ValueError("Repository URL must be a non-empty string")
        committish = None
        if "#" in value:
            value, committish = value.split("#", 1)
        branch = default_branch or committish or None

        shortcut = SHORTCUT_PATTERN.match(value)
        if shortcut:
            host_type = shortcut.group("type") or "github"
            return cls(host_type, shortcut.group("owner"), _strip_git(shortcut.group("name")), branch)

        scp = SCP_PATTERN.match(value)
        if scp:
            return cls._from_parts(scp.group("domain"), scp.group("path"), branch, url)

        parts = urlsplit(value.removeprefix("git+"))
        if parts.scheme in {"https", "http", "ssh", "git"} and parts.hostname:
            return cls._from_parts(parts.hostname, parts.path, branch, url)

        raise ValueError(f"Unable to parse repository URL: {url!r}")

    @classmethod
    def _from_parts(cls, domain: str, path: str, branch: str | None, url: str) -> GitHost:
        host_type = DOMAIN_HOSTS.get(domain.lower().removeprefix("www."))
        if host_type is None:
            raise ValueError(f"Unsupported git host in {url!r}")
        segments = [segment for segment in path.strip("/").split("/") if segment]
        if len(segments) != 2:
            raise ValueError(f"Expected owner/name in repository URL: {url!r}")
        return cls(host_type, segments[0], _strip_git(segments[1]), branch)

    @classmethod
    def from_directory(cls, cwd: Path) -> GitHost | None:
        try:
            proc = subprocess.run(
                ["git", "--no-pager", "config", "--get", "remote.origin.url"],
                cwd=cwd,
                text=True,
                capture_output=True,
            )
        except FileNotFoundError:
            return None
        url = proc.stdout.strip()
        if proc.returncode != 0 or not url:
            return None
        try:
            return cls.from_url(url)
        except ValueError:
            return None


def _strip_git(name: str) -> str:
    return name[:-4] if name.endswith(".git") else name
