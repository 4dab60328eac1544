"""Thin wrapper around GitPython's command runner."""

from typing import Optional

import git

from tree_buddy.constants import GIT_TIMEOUT
from tree_buddy.exceptions import GitOperationError
from tree_buddy.logging_config import get_logger

logger = get_logger(__name__)


def clean_stderr(error: git.exc.CommandError) -> str:
    """Return the raw stderr text of a GitPython command error.

    GitPython wraps stderr as ``"\\n  stderr: '...'"``; strip that decoration.
    """
    stderr = (error.stderr if hasattr(error, "stderr") else str(error)) or ""
    stderr = stderr.strip()
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip()
        if len(stderr) >= 2 and stderr[0] == stderr[-1] == "'":
            stderr = stderr[1:-1]
    return stderr.strip()


class GitRunner:
    """Runs ``git`` sub-commands in a working directory with a hard timeout.

    Every call spawns the real git binary through ``git.Git``; a call that
    outlives its timeout is killed and reported as a failure.
    """

    def __init__(self, timeout: float = GIT_TIMEOUT):
        self.timeout = timeout

    def _get_git(self, cwd: str) -> git.Git:
        """Get a git command wrapper bound to ``cwd``.

        A fresh wrapper per call keeps concurrent callers independent.
        """
        return git.Git(cwd)

    def run(self, cwd: str, *args: str, timeout: Optional[float] = None) -> str:
        """Run ``git <args>`` in ``cwd`` and return stdout.

        Raises:
            GitOperationError: on a non-zero exit, a timeout, a missing
                working directory or a missing git binary.
        """
        operation = " ".join(args[:2]) if args else "git"
        try:
            return self._get_git(cwd).execute(
                ["git", *args],
                kill_after_timeout=timeout if timeout is not None else self.timeout,
            )
        except git.exc.GitCommandError as e:
            stderr = clean_stderr(e)
            status = e.status if isinstance(e.status, int) else None
            if stderr:
                error_msg = f"exit {status}: {stderr}"
            else:
                error_msg = f"exit code {status}"
            raise GitOperationError(operation, cwd, error_msg, stderr=stderr, status=status) from e
        except git.exc.CommandError as e:
            # GitCommandNotFound: no git binary, or cwd does not exist
            raise GitOperationError(operation, cwd, str(e).strip(), stderr=clean_stderr(e)) from e
        except OSError as e:
            raise GitOperationError(operation, cwd, str(e)) from e

    def try_run(self, cwd: str, *args: str, timeout: Optional[float] = None) -> Optional[str]:
        """Like ``run`` but returns None instead of raising."""
        try:
            return self.run(cwd, *args, timeout=timeout)
        except GitOperationError as e:
            logger.debug(f"{e}")
            return None
