# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Core packages: libraries shipped with the Idris2 compiler distribution.

Core packages are never fetched. Their manifests live at fixed paths inside
the compiler checkout: `libs/<name>/<name>.ipkg`, except for the compiler API
library whose manifest sits at the checkout root.
"""

from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath


class CorePkg(Enum):
	"""Closed set of bundled libraries; the value is the canonical name."""

	PRELUDE = "prelude"
	BASE = "base"
	CONTRIB = "contrib"
	LINEAR = "linear"
	NETWORK = "network"
	TEST = "test"
	IDRIS_API = "idris2"


_API_MANIFEST = PurePosixPath("idris2api.ipkg")


def core_packages() -> tuple[CorePkg, ...]:
	"""Return every core package exactly once, in declaration order."""
	return tuple(CorePkg)


def core_pkg_name(pkg: CorePkg) -> str:
	return pkg.value


def core_manifest_path(pkg: CorePkg) -> PurePosixPath:
	"""Manifest path relative to the root of the compiler checkout."""
	if pkg is CorePkg.IDRIS_API:
		return _API_MANIFEST
	name = pkg.value
	return PurePosixPath("libs") / name / f"{name}.ipkg"


def parse_core_pkg(name: str) -> CorePkg | None:
	"""Inverse of `core_pkg_name`; returns None for non-core names."""
	try:
		return CorePkg(name)
	except ValueError:
		return None


def is_core_pkg_name(name: str) -> bool:
	return parse_core_pkg(name) is not None


__all__ = [
	"CorePkg",
	"core_packages",
	"core_pkg_name",
	"core_manifest_path",
	"parse_core_pkg",
	"is_core_pkg_name",
]
