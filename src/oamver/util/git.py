from __future__ import annotations

import subprocess as sp
import typing as t
from pathlib import Path


class GitError(Exception):
    pass


class Git:
    """
    Utility class to interface with the Git commandline. Only the read-only queries needed to derive version
    information are implemented.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path else Path.cwd()

    def __repr__(self) -> str:
        return f'Git("{self.path}")'

    def check_output(self, command: list[str], stderr: t.Optional[int] = None) -> bytes:
        return sp.check_output(command, cwd=self.path, stderr=stderr)

    def rev_parse(self, rev: str, short: int | None = None, abbrev_ref: bool = False) -> str:
        """
        Parse a Git ref into a shasum, or into its abbreviated ref name if *abbrev_ref* is set. Raises a #GitError
        if the ref cannot be resolved (e.g. outside of a repository or on an unborn branch).
        """

        command = ["git", "rev-parse"]
        if short is not None:
            command.append(f"--short={short}")
        if abbrev_ref:
            command.append("--abbrev-ref")
        command.append(rev)
        try:
            return self.check_output(command, stderr=sp.PIPE).decode().strip()
        except sp.CalledProcessError as exc:
            raise GitError(f"git rev-parse {rev} failed: {exc.stderr.decode().strip()}") from exc

    def rev_list_count(self, rev: str) -> int:
        """
        Return the number of commits reachable from *rev*.
        """

        command = ["git", "rev-list", "--count", rev]
        try:
            output = self.check_output(command, stderr=sp.PIPE).decode().strip()
        except sp.CalledProcessError as exc:
            raise GitError(f"git rev-list {rev} failed: {exc.stderr.decode().strip()}") from exc
        try:
            return int(output)
        except ValueError:
            raise GitError(f"unexpected output from git rev-list: {output!r}")

    def get_toplevel(self) -> str | None:
        """Return the toplevel directory of the Git repository. Returns #None if it does not appear to be a Git repo."""

        try:
            return self.check_output(["git", "rev-parse", "--show-toplevel"], sp.PIPE).decode().strip()
        except FileNotFoundError:
            return None
        except sp.CalledProcessError as exc:
            if "not a git repository" in exc.stderr.decode():
                return None
            raise
