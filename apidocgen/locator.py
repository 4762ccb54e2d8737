"""Source discovery under the configured roots."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Sequence, Tuple

from .config import SourceConfig
from .errors import ConfigurationError, Diagnostic, Phase, warning
from .logging import get_logger
from .models import LocatedSource, SourceLocation

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    ".idea",
    ".apidocgen",
    "__pycache__",
    "node_modules",
    "vendor",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}


@dataclass
class IgnoreRule:
    """A gitignore-style exclusion parsed from .gitignore or sources.exclude."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            if self.directory_only and rel_path.startswith(f"{self.pattern}/"):
                return True
            return False

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None
    if pattern.startswith("!"):
        negate = not negate
        pattern = pattern[1:]

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []
    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        rule = build_ignore_rule(line)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def _matches_include(rel_path: str, patterns: Sequence[str]) -> bool:
    if not patterns:
        return True
    name = rel_path.rsplit("/", 1)[-1]
    return any(fnmatchcase(rel_path, pattern) or fnmatchcase(name, pattern) for pattern in patterns)


def _iter_files(
    root: Path, base: Path, rules: Sequence[IgnoreRule]
) -> Iterator[Tuple[Path, str]]:
    """Yield files under ``root`` with their path relative to ``base``."""
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(base).as_posix() if current_dir != base else ""

        kept_dirs = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, rules):
                continue
            kept_dirs.append(name)
        dirnames[:] = kept_dirs

        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _should_ignore(rel_path, False, rules):
                continue
            yield current_dir / filename, rel_path


def fingerprint(data: bytes) -> str:
    """Return the content fingerprint used to detect unit changes."""
    return hashlib.sha256(data).hexdigest()


class SourceLocator:
    """Enumerates candidate source units under one or more roots."""

    def __init__(self) -> None:
        self.logger = get_logger("locator")

    def locate(
        self,
        project_root: Path,
        sources: SourceConfig,
        supported: Callable[[str], bool] | None = None,
    ) -> Tuple[List[LocatedSource], List[Diagnostic]]:
        """Return sources ordered by identity, plus warnings for missing roots."""
        project_root = project_root.expanduser().resolve()
        diagnostics: List[Diagnostic] = []

        rules: List[IgnoreRule] = []
        if sources.respect_gitignore:
            rules.extend(_parse_gitignore(project_root / ".gitignore"))
        for pattern in sources.exclude:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                rules.append(rule)

        resolved_roots: List[Path] = []
        for raw_root in sources.roots:
            root_path = (project_root / raw_root).expanduser().resolve()
            if not root_path.is_dir():
                self.logger.warning("Source root not found: %s", raw_root)
                diagnostics.append(
                    warning(
                        Phase.LOCATE,
                        f"source root '{raw_root}' does not exist or is not a directory",
                        SourceLocation(str(raw_root)),
                    )
                )
                continue
            resolved_roots.append(root_path)

        if not resolved_roots:
            roots = ", ".join(sources.roots) or "<none>"
            raise ConfigurationError(f"No configured source root resolves: {roots}")

        found: Dict[str, LocatedSource] = {}
        for root_path in resolved_roots:
            base = project_root if root_path.is_relative_to(project_root) else root_path
            for path, rel_path in _iter_files(root_path, base, rules):
                identity = _identity(project_root, path)
                if identity in found:
                    continue
                if not _matches_include(rel_path, sources.include):
                    continue
                if supported is not None and not supported(identity):
                    continue
                found[identity] = LocatedSource(identity=identity, path=path)

        located = [found[key] for key in sorted(found)]
        self.logger.debug(
            "Located %d source units under %d root(s)", len(located), len(resolved_roots)
        )
        return located, diagnostics


def _identity(project_root: Path, path: Path) -> str:
    try:
        return path.relative_to(project_root).as_posix()
    except ValueError:
        return path.as_posix()


__all__ = ["IgnoreRule", "SourceLocator", "build_ignore_rule", "fingerprint"]
