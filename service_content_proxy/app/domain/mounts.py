"""
Mount table parsing and path matching.

A repository may carry an ``fstab.yaml`` that maps path prefixes to external
content locations::

    mountpoints:
      /: https://adobe.sharepoint.com/sites/TheBlog/Shared%20Documents/theblog
      /drafts:
        url: https://drive.google.com/drive/folders/abc

Paths that fall under no mount point are served from the repository itself.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Optional
from urllib.parse import urlparse

import yaml

from shared.errors import ConfigurationError


_EXTENSION = re.compile(r"\.\w+$")


def detect_mount_type(url: str) -> str:
    """Classify a mount URL by the host it points at."""
    host = (urlparse(url).hostname or "").lower()
    if host.endswith("sharepoint.com") or host == "1drv.ms":
        return "onedrive"
    if host == "drive.google.com" or host == "docs.google.com":
        return "google"
    return "unknown"


def _normalize_prefix(prefix: str) -> str:
    prefix = "/" + str(prefix).strip().strip("/")
    return prefix


@dataclass(frozen=True)
class MountPoint:
    """A path prefix mapped to an external content location."""

    path: str
    url: str
    type: str
    rel_path: str = ""

    def matches(self, path: str) -> bool:
        if self.path == "/":
            return True
        return path == self.path or path.startswith(self.path + "/")

    def relative_to(self, path: str) -> "MountPoint":
        """Return a copy whose ``rel_path`` is ``path`` below this mount, without extension."""
        remainder = path if self.path == "/" else path[len(self.path):]
        rel_path = _EXTENSION.sub("", remainder)
        if rel_path == "/":
            rel_path = ""
        return MountPoint(path=self.path, url=self.url, type=self.type, rel_path=rel_path)


class MountConfig:
    """Parsed ``fstab.yaml``."""

    def __init__(self, mountpoints: Optional[List[MountPoint]] = None):
        # Longest prefix first so the most specific mount wins
        self.mountpoints = sorted(mountpoints or [], key=lambda mp: len(mp.path), reverse=True)

    @classmethod
    def empty(cls) -> "MountConfig":
        return cls([])

    @classmethod
    def from_yaml(cls, source: str) -> "MountConfig":
        """Parse fstab YAML, raising ConfigurationError when it is malformed."""
        try:
            document = yaml.safe_load(source) if source else None
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                "Unable to parse fstab.yaml",
                details={"error": str(exc)}
            ) from exc

        if document is None:
            return cls.empty()
        if not isinstance(document, dict):
            raise ConfigurationError("fstab.yaml must contain a mapping")

        raw_mounts = document.get("mountpoints") or {}
        if not isinstance(raw_mounts, dict):
            raise ConfigurationError("fstab.yaml mountpoints must be a mapping")

        return cls([cls._parse_mount(prefix, value) for prefix, value in raw_mounts.items()])

    @staticmethod
    def _parse_mount(prefix: Any, value: Any) -> MountPoint:
        if isinstance(value, dict):
            url = value.get("url")
        else:
            url = value
        if not isinstance(url, str) or not url:
            raise ConfigurationError(
                "Mount point has no URL",
                details={"mountpoint": str(prefix)}
            )
        return MountPoint(path=_normalize_prefix(prefix), url=url, type=detect_mount_type(url))

    def match(self, path: str) -> Optional[MountPoint]:
        """Return the mount point serving ``path``, or None."""
        path = "/" + path.lstrip("/")
        for mountpoint in self.mountpoints:
            if mountpoint.matches(path):
                return mountpoint.relative_to(path)
        return None

    def __len__(self) -> int:
        return len(self.mountpoints)
