# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Commit references for remote (git) packages.

A reference is written in configuration as one of:
- `latest:<branch>`: use the tip of `<branch>`, resolved once per session,
- `fetch-latest:<branch>`: re-resolve the tip of `<branch>` every time,
- anything else: an exact commit hash or tag.

Parsing never fails. Strings without one of the two prefixes are exact
references, so hand-written configuration keeps working whatever it contains.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Tuple, Union

logger = logging.getLogger(__name__)

LATEST_PREFIX = "latest:"
FETCH_PREFIX = "fetch-latest:"

# (repository url, branch) -> commit hash of the branch tip.
BranchTipLookup = Callable[[str, str], str]


@dataclass(frozen=True)
class Exact:
	"""A pinned commit hash or tag."""

	commit: str

	def __str__(self) -> str:
		return self.commit


@dataclass(frozen=True)
class Latest:
	"""Tip of `branch`; may reuse an earlier resolution in the same session."""

	branch: str

	def __str__(self) -> str:
		return LATEST_PREFIX + self.branch


@dataclass(frozen=True)
class Fetch:
	"""Tip of `branch`; always resolved anew."""

	branch: str

	def __str__(self) -> str:
		return FETCH_PREFIX + self.branch


CommitRef = Union[Exact, Latest, Fetch]


def parse_commit_ref(text: str) -> CommitRef:
	if text.startswith(FETCH_PREFIX):
		return Fetch(text[len(FETCH_PREFIX):])
	if text.startswith(LATEST_PREFIX):
		return Latest(text[len(LATEST_PREFIX):])
	return Exact(text)


def format_commit_ref(ref: CommitRef) -> str:
	if isinstance(ref, Exact):
		return ref.commit
	if isinstance(ref, Latest):
		return LATEST_PREFIX + ref.branch
	if isinstance(ref, Fetch):
		return FETCH_PREFIX + ref.branch
	raise TypeError(f"not a commit reference: {ref!r}")


def resolve_commit_ref(ref: CommitRef, url: str, lookup: BranchTipLookup) -> Exact:
	"""
	Pin `ref` to an exact commit.

	No caching happens here: both `Latest` and `Fetch` call `lookup`. Use
	`CommitResolver` when `Latest` resolutions should be shared.
	"""
	if isinstance(ref, Exact):
		return ref
	if isinstance(ref, (Latest, Fetch)):
		return Exact(lookup(url, ref.branch))
	raise TypeError(f"not a commit reference: {ref!r}")


class CommitResolver:
	"""
	Session-scoped commit resolution.

	`Latest` references reuse the first tip seen for the same (url, branch);
	`Fetch` references always call the lookup and refresh the cached tip.
	Lookup errors propagate unchanged and leave the cache untouched.

	Safe to share between threads: resolutions of the same (url, branch) are
	serialized, so concurrent `Latest` misses pin to a single tip.
	"""

	def __init__(self, lookup: BranchTipLookup) -> None:
		self._lookup = lookup
		self._tips: Dict[Tuple[str, str], str] = {}
		self._locks: Dict[Tuple[str, str], threading.Lock] = {}
		self._locks_guard = threading.Lock()

	def _branch_lock(self, key: Tuple[str, str]) -> threading.Lock:
		with self._locks_guard:
			return self._locks.setdefault(key, threading.Lock())

	def cached(self, url: str, branch: str) -> str | None:
		return self._tips.get((url, branch))

	def resolve(self, url: str, ref: CommitRef) -> Exact:
		if isinstance(ref, Exact):
			return ref
		key = (url, ref.branch)
		with self._branch_lock(key):
			if isinstance(ref, Latest) and key in self._tips:
				logger.debug("using cached tip of %s@%s: %s", url, ref.branch, self._tips[key])
				return Exact(self._tips[key])
			logger.debug("looking up tip of %s@%s", url, ref.branch)
			tip = resolve_commit_ref(ref, url, self._lookup)
			self._tips[key] = tip.commit
			return tip


__all__ = [
	"LATEST_PREFIX",
	"FETCH_PREFIX",
	"BranchTipLookup",
	"Exact",
	"Latest",
	"Fetch",
	"CommitRef",
	"parse_commit_ref",
	"format_commit_ref",
	"resolve_commit_ref",
	"CommitResolver",
]
