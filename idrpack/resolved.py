# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Resolved libraries and executables.

A resolved record pairs a package identity with its parsed manifest, its
current status and the full dependency closure. The closure is computed
before a build starts and is never queried lazily, so a build executor can
read records from several workers without coordination.

Records are generic over the manifest type: the same record is re-tagged
(`retag`) as its manifest moves through the parse/check stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Generic, Iterable, Protocol, Sequence, TypeVar, Union

from idrpack.errors import PackError
from idrpack.package import AnyPackage, describe_package
from idrpack.status import AppStatus, BinInstalled, LibStatus, check_status

PkgName = str


class HasDepends(Protocol):
	"""Anything exposing the dependency names listed in a manifest."""

	@property
	def depends(self) -> Sequence[PkgName]: ...


M = TypeVar("M", bound=HasDepends)
N = TypeVar("N", bound=HasDepends)


@dataclass(frozen=True)
class Manifest:
	"""
	Parsed `.ipkg` description as produced by the manifest parser.

	Only `depends` is interpreted here. Later pipeline stages may swap in
	richer manifest types through `retag`.
	"""

	name: PkgName
	depends: tuple[PkgName, ...]
	path: Path

	def __post_init__(self) -> None:
		object.__setattr__(self, "depends", tuple(self.depends))


def _check_lib_status(pkg: AnyPackage, status: AppStatus, *, name: str) -> None:
	if isinstance(status, BinInstalled):
		raise PackError(
			reason_code="STATUS_INVALID",
			message=f"{describe_package(pkg)}: libraries cannot be bin-installed",
			package=name,
		)
	try:
		check_status(pkg, status)
	except PackError as err:
		raise replace(err, package=name) from None


@dataclass(frozen=True)
class Dependency:
	"""One entry of a dependency closure."""

	pkg: AnyPackage
	status: LibStatus

	def __post_init__(self) -> None:
		_check_lib_status(self.pkg, self.status, name=describe_package(self.pkg))


def _closure(deps: Iterable[Dependency]) -> tuple[Dependency, ...]:
	out = tuple(deps)
	for d in out:
		if not isinstance(d, Dependency):
			raise TypeError(f"dependency closure entries must be Dependency, got {d!r}")
	return out


@dataclass(frozen=True)
class ResolvedLib(Generic[M]):
	pkg: AnyPackage
	name: PkgName
	manifest: M
	status: LibStatus
	deps: tuple[Dependency, ...] = field(default=())

	def __post_init__(self) -> None:
		_check_lib_status(self.pkg, self.status, name=self.name)
		object.__setattr__(self, "deps", _closure(self.deps))


@dataclass(frozen=True)
class ResolvedApp(Generic[M]):
	pkg: AnyPackage
	name: PkgName
	manifest: M
	status: AppStatus
	exec_name: str
	deps: tuple[Dependency, ...] = field(default=())

	def __post_init__(self) -> None:
		try:
			check_status(self.pkg, self.status)
		except PackError as err:
			raise replace(err, package=self.name) from None
		object.__setattr__(self, "deps", _closure(self.deps))


Resolved = Union[ResolvedLib[M], ResolvedApp[M]]


def record_name(rec: Resolved[M]) -> PkgName:
	return rec.name


def dependency_names(rec: Resolved[M]) -> list[PkgName]:
	"""Dependency names in manifest order."""
	return list(rec.manifest.depends)


def retag(rec: Resolved[M], manifest: N) -> Resolved[N]:
	"""Same record with its manifest replaced (identity/status/deps kept)."""
	return replace(rec, manifest=manifest)  # type: ignore[return-value]


@dataclass(frozen=True)
class Lib(Generic[M]):
	lib: ResolvedLib[M]


@dataclass(frozen=True)
class App(Generic[N]):
	app: ResolvedApp[N]
	install_wrapper: bool


# Build-plan entry; library and executable manifests may be at different stages.
LibOrApp = Union[Lib[M], App[N]]


def _unwrap(item: LibOrApp[M, N]) -> Resolved:
	if isinstance(item, Lib):
		return item.lib
	if isinstance(item, App):
		return item.app
	raise TypeError(f"not a library or app: {item!r}")


def as_identity(item: LibOrApp[M, N]) -> AnyPackage:
	return _unwrap(item).pkg


def as_name(item: LibOrApp[M, N]) -> PkgName:
	return _unwrap(item).name


def as_dependency_names(item: LibOrApp[M, N]) -> list[PkgName]:
	return dependency_names(_unwrap(item))


def as_status(item: LibOrApp[M, N]) -> AppStatus:
	return _unwrap(item).status


def as_manifest(item: LibOrApp[M, M]) -> M:
	"""
	Manifest of either variant.

	Only meaningful when both sides share one manifest type; the signature
	lets a type checker reject calls where they differ.
	"""
	return _unwrap(item).manifest


__all__ = [
	"PkgName",
	"HasDepends",
	"Manifest",
	"Dependency",
	"ResolvedLib",
	"ResolvedApp",
	"Resolved",
	"record_name",
	"dependency_names",
	"retag",
	"Lib",
	"App",
	"LibOrApp",
	"as_identity",
	"as_name",
	"as_dependency_names",
	"as_status",
	"as_manifest",
]
