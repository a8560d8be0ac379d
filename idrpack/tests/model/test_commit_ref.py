# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from idrpack.commit import (
	CommitResolver,
	Exact,
	Fetch,
	Latest,
	format_commit_ref,
	parse_commit_ref,
	resolve_commit_ref,
)


class _Lookup:
	def __init__(self, tips: dict[tuple[str, str], str]) -> None:
		self.tips = dict(tips)
		self.calls: list[tuple[str, str]] = []

	def __call__(self, url: str, branch: str) -> str:
		self.calls.append((url, branch))
		return self.tips[(url, branch)]


@pytest.mark.parametrize("text", ["latest:main", "fetch-latest:dev", "abc123"])
def test_format_inverts_parse(text: str) -> None:
	assert format_commit_ref(parse_commit_ref(text)) == text
	assert str(parse_commit_ref(text)) == text


def test_parse_recognizes_prefixes() -> None:
	assert parse_commit_ref("latest:main") == Latest("main")
	assert parse_commit_ref("fetch-latest:dev") == Fetch("dev")
	assert parse_commit_ref("v0.7.0") == Exact("v0.7.0")


@pytest.mark.parametrize("text", ["", "Latest:main", "latest", "fetch:main", "fetch-latest"])
def test_unrecognized_forms_are_exact(text: str) -> None:
	assert parse_commit_ref(text) == Exact(text)


def test_empty_branch_keeps_its_prefix() -> None:
	assert parse_commit_ref("latest:") == Latest("")
	assert format_commit_ref(Latest("")) == "latest:"


def test_resolve_exact_skips_lookup() -> None:
	lookup = _Lookup({})
	assert resolve_commit_ref(Exact("abc"), "https://x/y", lookup) == Exact("abc")
	assert lookup.calls == []


def test_resolve_latest_and_fetch_use_lookup() -> None:
	lookup = _Lookup({("https://x/y", "main"): "deadbeef"})
	assert resolve_commit_ref(Latest("main"), "https://x/y", lookup) == Exact("deadbeef")
	assert resolve_commit_ref(Fetch("main"), "https://x/y", lookup) == Exact("deadbeef")
	assert lookup.calls == [("https://x/y", "main")] * 2


def test_resolver_reuses_latest_within_session() -> None:
	lookup = _Lookup({("https://x/y", "main"): "c1"})
	resolver = CommitResolver(lookup)
	assert resolver.resolve("https://x/y", Latest("main")) == Exact("c1")
	lookup.tips[("https://x/y", "main")] = "c2"
	assert resolver.resolve("https://x/y", Latest("main")) == Exact("c1")
	assert len(lookup.calls) == 1
	assert resolver.cached("https://x/y", "main") == "c1"


def test_resolver_always_refetches_fetch_refs() -> None:
	lookup = _Lookup({("https://x/y", "main"): "c1"})
	resolver = CommitResolver(lookup)
	assert resolver.resolve("https://x/y", Latest("main")) == Exact("c1")
	lookup.tips[("https://x/y", "main")] = "c2"
	assert resolver.resolve("https://x/y", Fetch("main")) == Exact("c2")
	assert resolver.resolve("https://x/y", Fetch("main")) == Exact("c2")
	assert len(lookup.calls) == 3
	# A later `latest:` sees the refreshed tip.
	assert resolver.resolve("https://x/y", Latest("main")) == Exact("c2")
	assert len(lookup.calls) == 3


def test_resolver_keys_cache_by_url() -> None:
	lookup = _Lookup({("https://a", "main"): "a1", ("https://b", "main"): "b1"})
	resolver = CommitResolver(lookup)
	assert resolver.resolve("https://a", Latest("main")) == Exact("a1")
	assert resolver.resolve("https://b", Latest("main")) == Exact("b1")
	assert resolver.cached("https://c", "main") is None


def test_lookup_errors_pass_through_unchanged() -> None:
	class FetchFailed(Exception):
		pass

	def failing(url: str, branch: str) -> str:
		raise FetchFailed(f"{url}@{branch}")

	resolver = CommitResolver(failing)
	with pytest.raises(FetchFailed, match="https://x/y@main"):
		resolver.resolve("https://x/y", Latest("main"))
	assert resolver.cached("https://x/y", "main") is None


class _SlowCountingLookup:
	"""Returns a fresh tip on every call, slowly enough for threads to overlap."""

	def __init__(self) -> None:
		self.calls = 0
		self._lock = threading.Lock()

	def __call__(self, url: str, branch: str) -> str:
		with self._lock:
			n = self.calls
			self.calls += 1
		time.sleep(0.05)
		return f"tip{n}"


def test_concurrent_latest_resolutions_share_one_tip() -> None:
	lookup = _SlowCountingLookup()
	resolver = CommitResolver(lookup)
	with ThreadPoolExecutor(max_workers=4) as pool:
		pins = list(pool.map(lambda _: resolver.resolve("https://x/y", Latest("main")), range(4)))
	assert len(set(pins)) == 1
	assert lookup.calls == 1
	assert resolver.cached("https://x/y", "main") == pins[0].commit


def test_concurrent_fetch_resolutions_each_call_lookup() -> None:
	lookup = _SlowCountingLookup()
	resolver = CommitResolver(lookup)
	with ThreadPoolExecutor(max_workers=4) as pool:
		pins = list(pool.map(lambda _: resolver.resolve("https://x/y", Fetch("main")), range(4)))
	assert lookup.calls == 4
	assert {p.commit for p in pins} == {"tip0", "tip1", "tip2", "tip3"}


def test_concurrent_resolutions_of_different_branches_do_not_share_tips() -> None:
	lookup = _SlowCountingLookup()
	resolver = CommitResolver(lookup)
	refs = [Latest("main"), Latest("dev"), Latest("main"), Latest("dev")]
	with ThreadPoolExecutor(max_workers=4) as pool:
		pins = list(pool.map(lambda ref: resolver.resolve("https://x/y", ref), refs))
	assert lookup.calls == 2
	assert pins[0] == pins[2]
	assert pins[1] == pins[3]
	assert pins[0] != pins[1]
