"""Pure-function git helpers.

Every function in this module is stateless — it takes explicit parameters
and returns a value.  Git failures are reported through return values,
never raised.
"""

from __future__ import annotations

import hashlib
import os
import subprocess
from dataclasses import dataclass

from ..constants import STORAGE_KEY_LENGTH
from ..log import logger


@dataclass(frozen=True)
class RepoContext:
    """Repository root and current branch identifying one snapshot."""

    root: str
    branch: str

    @property
    def key(self) -> str:
        return storage_key(self.root, self.branch)


def run_git(*args: str, cwd: str | None = None) -> tuple[bool, str]:
    """Run a git command and return *(success, output)*."""
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=10,
            cwd=cwd or os.getcwd(),
        )
        return (
            result.returncode == 0,
            result.stdout.strip() or result.stderr.strip(),
        )
    except FileNotFoundError:
        return False, "git not found"
    except subprocess.TimeoutExpired:
        return False, "git command timed out"
    except Exception as exc:
        return False, str(exc)


def git_root(cwd: str | None = None) -> str | None:
    """Absolute path of the repository containing *cwd*, or ``None``."""
    ok, output = run_git("rev-parse", "--show-toplevel", cwd=cwd)
    if not ok or not output:
        return None
    return output


def git_branch(cwd: str | None = None) -> str | None:
    """Current branch name, or ``None`` (no repo, detached HEAD, no commits)."""
    # --show-current prints nothing for a detached HEAD
    ok, output = run_git("branch", "--show-current", cwd=cwd)
    if not ok or not output:
        return None
    return output


def resolve_context(cwd: str | None = None) -> RepoContext | None:
    """Repository root and branch for *cwd*, or ``None`` if either is missing."""
    root = git_root(cwd)
    if root is None:
        logger.debug("no git repository at %s", cwd or os.getcwd())
        return None
    branch = git_branch(cwd)
    if branch is None:
        logger.debug("no current branch in %s (detached HEAD?)", root)
        return None
    return RepoContext(root=root, branch=branch)


def storage_key(root: str, branch: str) -> str:
    """First 8 hex chars of ``sha256(root + "|" + branch)``."""
    digest = hashlib.sha256(f"{root}|{branch}".encode("utf-8")).hexdigest()
    return digest[:STORAGE_KEY_LENGTH]
