""" Best-effort providers for the Git metadata that versions are derived from. A provider never raises because
Git is unavailable (no `git` executable, not a repository, unborn or detached `HEAD`), it returns the placeholder
values from #oamver.version instead. """

from __future__ import annotations

import abc
import logging
import subprocess as sp
import typing as t
from pathlib import Path

from oamver.util.git import Git, GitError
from oamver.version import UNKNOWN, GitInfo

logger = logging.getLogger(__name__)
T = t.TypeVar("T")


class VcsInfoProvider(abc.ABC):
    """Interface to query the version control metadata of the current checkout."""

    @abc.abstractmethod
    def get_commit_sha(self) -> str:
        """Return the short (7 character) SHA of `HEAD`, or #UNKNOWN."""

    @abc.abstractmethod
    def get_ref_name(self) -> str:
        """Return the abbreviated ref name of `HEAD` (usually the branch name), or #UNKNOWN."""

    @abc.abstractmethod
    def get_commit_count(self) -> int:
        """Return the number of commits reachable from `HEAD`, or `0`."""

    def get_info(self) -> GitInfo:
        return GitInfo(self.get_commit_sha(), self.get_ref_name(), self.get_commit_count())


class GitInfoProvider(VcsInfoProvider):
    #: Length of the abbreviated commit SHA.
    SHORT_SHA_LENGTH = 7

    def __init__(self, directory: Path | None = None) -> None:
        self._git = Git(directory)

    def __repr__(self) -> str:
        return f"GitInfoProvider({self._git!r})"

    def _query(self, what: str, func: t.Callable[[], T], fallback: T) -> T:
        try:
            return func()
        except (GitError, sp.CalledProcessError, OSError) as exc:
            logger.debug("Unable to determine %s, using <val>%s</val> (reason: %s)", what, fallback, exc)
            return fallback

    def get_commit_sha(self) -> str:
        return self._query("commit SHA", lambda: self._git.rev_parse("HEAD", short=self.SHORT_SHA_LENGTH), UNKNOWN)

    def get_ref_name(self) -> str:
        ref_name = self._query("branch name", lambda: self._git.rev_parse("HEAD", abbrev_ref=True), UNKNOWN)
        if ref_name == "HEAD":
            logger.debug("<subj>HEAD</subj> is detached, using <val>%s</val> as the branch name", UNKNOWN)
            return UNKNOWN
        return ref_name

    def get_commit_count(self) -> int:
        return self._query("commit count", lambda: self._git.rev_list_count("HEAD"), 0)


class StaticInfoProvider(VcsInfoProvider):
    """Returns fixed values, for example when the Git metadata is passed in from a CI system."""

    def __init__(self, commit_sha: str = UNKNOWN, ref_name: str = UNKNOWN, commit_count: int = 0) -> None:
        self._info = GitInfo(commit_sha, ref_name, commit_count)

    def __repr__(self) -> str:
        return f"StaticInfoProvider({self._info!r})"

    def get_commit_sha(self) -> str:
        return self._info.commit_sha

    def get_ref_name(self) -> str:
        return self._info.ref_name

    def get_commit_count(self) -> int:
        return self._info.commit_count
