# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Package identities: where a package's sources live.

An identity is exactly one of:
- a remote git repository (`UserGitHub` as authored, `GitHub` once its commit
  is pinned),
- a local directory (`Local`),
- a library bundled with the compiler (`Core`).

Identities carry enough to locate the package manifest (`.ipkg`) without
resolving any dependency. The only way from the authored shape to the pinned
one is `resolve_package`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Callable, Generic, TypeVar, Union

from idrpack.commit import CommitRef, Exact, format_commit_ref
from idrpack.core_pkg import CorePkg, core_manifest_path, core_pkg_name
from idrpack.errors import PackError

if TYPE_CHECKING:
	from idrpack.status import Outdated

T = TypeVar("T")


def _manifest_rel_path(value: object, *, owner: str) -> PurePosixPath:
	p = PurePosixPath(str(value).replace("\\", "/"))
	if p.is_absolute():
		raise PackError(reason_code="PACKAGE_INVALID", message=f"{owner}: ipkg must be a relative path, got: {value}")
	if not p.parts or str(p) == ".":
		raise PackError(reason_code="PACKAGE_INVALID", message=f"{owner}: ipkg must be non-empty")
	return p


@dataclass(frozen=True)
class UserGitHub:
	"""Remote repository as written in configuration; the commit may float."""

	url: str
	commit: CommitRef
	ipkg: PurePosixPath
	pkg_path: bool = False

	def __post_init__(self) -> None:
		object.__setattr__(self, "ipkg", _manifest_rel_path(self.ipkg, owner=self.url))


@dataclass(frozen=True)
class GitHub:
	"""Remote repository pinned to an exact commit."""

	url: str
	commit: Exact
	ipkg: PurePosixPath
	pkg_path: bool = False

	def __post_init__(self) -> None:
		if not isinstance(self.commit, Exact):
			raise PackError(
				reason_code="PACKAGE_INVALID",
				message=f"{self.url}: resolved package needs an exact commit, got: {self.commit}",
			)
		object.__setattr__(self, "ipkg", _manifest_rel_path(self.ipkg, owner=self.url))


@dataclass(frozen=True)
class Local:
	"""Package living in a local directory; its sources may change after install."""

	path: Path
	ipkg: PurePosixPath
	pkg_path: bool = False

	def __post_init__(self) -> None:
		path = Path(self.path)
		if not path.is_absolute():
			raise PackError(reason_code="PACKAGE_INVALID", message=f"local package directory must be absolute, got: {self.path}")
		object.__setattr__(self, "path", path)
		object.__setattr__(self, "ipkg", _manifest_rel_path(self.ipkg, owner=str(path)))

	def outdated(self) -> Outdated:
		"""Status marking this package's sources as changed since install."""
		from idrpack.status import Outdated

		return Outdated(self)


@dataclass(frozen=True)
class Core:
	pkg: CorePkg


UserPackage = Union[UserGitHub, Local, Core]
Package = Union[GitHub, Local, Core]
AnyPackage = Union[UserGitHub, GitHub, Local, Core]

# (repository url, commit reference) -> pinned commit. `CommitResolver.resolve` fits.
CommitResolve = Callable[[str, CommitRef], Exact]


@dataclass(frozen=True)
class Yes(Generic[T]):
	"""Positive decision; `witness` is the value narrowed to the asked variant."""

	witness: T

	def __bool__(self) -> bool:
		return True


@dataclass(frozen=True)
class No:
	"""Negative decision; `reason` names the variant actually held."""

	reason: str

	def __bool__(self) -> bool:
		return False


Decision = Union[Yes[T], No]


def package_kind(pkg: AnyPackage) -> str:
	"""The `type` tag used by the database format."""
	if isinstance(pkg, (UserGitHub, GitHub)):
		return "github"
	if isinstance(pkg, Local):
		return "local"
	if isinstance(pkg, Core):
		return "core"
	raise TypeError(f"not a package identity: {pkg!r}")


def describe_package(pkg: AnyPackage) -> str:
	if isinstance(pkg, (UserGitHub, GitHub)):
		return f"github:{pkg.url}@{format_commit_ref(pkg.commit)}"
	if isinstance(pkg, Local):
		return f"local:{pkg.path}"
	if isinstance(pkg, Core):
		return f"core:{core_pkg_name(pkg.pkg)}"
	raise TypeError(f"not a package identity: {pkg!r}")


def is_github(pkg: AnyPackage) -> Decision[Union[UserGitHub, GitHub]]:
	if isinstance(pkg, (UserGitHub, GitHub)):
		return Yes(pkg)
	return No(f"{package_kind(pkg)} package is not a github package")


def is_local(pkg: AnyPackage) -> Decision[Local]:
	if isinstance(pkg, Local):
		return Yes(pkg)
	return No(f"{package_kind(pkg)} package is not a local package")


def is_core(pkg: AnyPackage) -> Decision[Core]:
	if isinstance(pkg, Core):
		return Yes(pkg)
	return No(f"{package_kind(pkg)} package is not a core package")


def _narrow(decision: Decision[T], pkg: AnyPackage) -> T:
	if isinstance(decision, Yes):
		return decision.witness
	raise PackError(reason_code="VARIANT_MISMATCH", message=f"{describe_package(pkg)}: {decision.reason}")


def as_github(pkg: AnyPackage) -> Union[UserGitHub, GitHub]:
	return _narrow(is_github(pkg), pkg)


def as_local(pkg: AnyPackage) -> Local:
	return _narrow(is_local(pkg), pkg)


def as_core(pkg: AnyPackage) -> Core:
	return _narrow(is_core(pkg), pkg)


def needs_search_path(pkg: AnyPackage) -> bool:
	"""True when the built executable needs the package search path at runtime."""
	if isinstance(pkg, (UserGitHub, GitHub, Local)):
		return pkg.pkg_path
	if isinstance(pkg, Core):
		return False
	raise TypeError(f"not a package identity: {pkg!r}")


def manifest_path(root: Path, pkg: AnyPackage) -> Path:
	"""
	Absolute path of the package manifest.

	`root` is the directory the package was checked out into (the compiler
	checkout for core packages). Local packages ignore it: their directory is
	already absolute.
	"""
	root = Path(root)
	if isinstance(pkg, (UserGitHub, GitHub)):
		return root / pkg.ipkg
	if isinstance(pkg, Local):
		return root / pkg.path / pkg.ipkg
	if isinstance(pkg, Core):
		return root / core_manifest_path(pkg.pkg)
	raise TypeError(f"not a package identity: {pkg!r}")


def map_commit(pkg: AnyPackage, f: Callable[[CommitRef], CommitRef]) -> AnyPackage:
	"""
	Apply `f` to the commit of a remote package, keeping its shape.

	A pinned `GitHub` stays pinned, so `f` must return an `Exact` for it.
	"""
	if isinstance(pkg, (UserGitHub, GitHub)):
		return replace(pkg, commit=f(pkg.commit))
	if isinstance(pkg, (Local, Core)):
		return pkg
	raise TypeError(f"not a package identity: {pkg!r}")


def resolve_package(pkg: Union[UserPackage, Package], resolve: CommitResolve) -> Package:
	"""Pin the commit of a remote package; local and core packages pass through."""
	if isinstance(pkg, UserGitHub):
		return GitHub(url=pkg.url, commit=resolve(pkg.url, pkg.commit), ipkg=pkg.ipkg, pkg_path=pkg.pkg_path)
	if isinstance(pkg, (GitHub, Local, Core)):
		return pkg
	raise TypeError(f"not a package identity: {pkg!r}")


__all__ = [
	"UserGitHub",
	"GitHub",
	"Local",
	"Core",
	"UserPackage",
	"Package",
	"AnyPackage",
	"CommitResolve",
	"Yes",
	"No",
	"Decision",
	"package_kind",
	"describe_package",
	"is_github",
	"is_local",
	"is_core",
	"as_github",
	"as_local",
	"as_core",
	"needs_search_path",
	"manifest_path",
	"map_commit",
	"resolve_package",
]
