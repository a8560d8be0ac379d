# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Installation lifecycle of resolved libraries and executables.

Library:     Missing -> Installed -> Outdated -> Installed
Executable:  as a library, plus Installed -> BinInstalled (wrapper script
             written to the shared bin directory).

`Outdated` means "local sources changed since the last install". Remote
checkouts are immutable once fetched, so `Outdated` holds the `Local` identity
it was built for and refuses anything else. The usual way to obtain one is
`Local.outdated()`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Union

from idrpack.errors import PackError
from idrpack.package import AnyPackage, Local, describe_package


@dataclass(frozen=True)
class Missing:
	"""Not built yet."""


@dataclass(frozen=True)
class Installed:
	"""Built and installed into the package directory."""


@dataclass(frozen=True)
class BinInstalled:
	"""Executable built and its launcher placed on the search path."""


@dataclass(frozen=True)
class Outdated:
	"""Installed, but the local sources are newer than the install marker."""

	local: Local

	def __post_init__(self) -> None:
		if not isinstance(self.local, Local):
			raise PackError(
				reason_code="STATUS_NOT_LOCAL",
				message=f"only local packages can be outdated, got {_describe(self.local)}",
			)


LibStatus = Union[Missing, Installed, Outdated]
AppStatus = Union[Missing, Installed, BinInstalled, Outdated]

MISSING = Missing()
INSTALLED = Installed()
BIN_INSTALLED = BinInstalled()


class StatusEvent(Enum):
	BUILT = auto()
	SOURCE_CHANGED = auto()
	BIN_INSTALLED = auto()


def _describe(obj: object) -> str:
	try:
		return describe_package(obj)  # type: ignore[arg-type]
	except TypeError:
		return repr(obj)


def _mark_outdated(pkg: AnyPackage) -> Outdated:
	if isinstance(pkg, Local):
		return pkg.outdated()
	raise PackError(
		reason_code="STATUS_NOT_LOCAL",
		message=f"sources of {describe_package(pkg)} cannot change after fetch",
	)


def _invalid(status: object, event: StatusEvent, pkg: AnyPackage) -> PackError:
	return PackError(
		reason_code="INVALID_TRANSITION",
		message=f"{describe_package(pkg)}: no transition from {type(status).__name__} on {event.name}",
	)


def check_status(pkg: AnyPackage, status: AppStatus) -> None:
	"""Reject an `Outdated` that was built for a different identity."""
	if isinstance(status, Outdated) and status.local != pkg:
		raise PackError(
			reason_code="STATUS_PACKAGE_MISMATCH",
			message=f"status of {describe_package(status.local)} paired with {describe_package(pkg)}",
		)


def next_lib_status(pkg: AnyPackage, status: LibStatus, event: StatusEvent) -> LibStatus:
	check_status(pkg, status)
	if event is StatusEvent.BUILT and isinstance(status, (Missing, Outdated)):
		return INSTALLED
	if event is StatusEvent.SOURCE_CHANGED and isinstance(status, Installed):
		return _mark_outdated(pkg)
	raise _invalid(status, event, pkg)


def next_app_status(pkg: AnyPackage, status: AppStatus, event: StatusEvent) -> AppStatus:
	check_status(pkg, status)
	if event is StatusEvent.BIN_INSTALLED and isinstance(status, Installed):
		return BIN_INSTALLED
	if event is StatusEvent.SOURCE_CHANGED and isinstance(status, BinInstalled):
		return _mark_outdated(pkg)
	if isinstance(status, BinInstalled):
		raise _invalid(status, event, pkg)
	return next_lib_status(pkg, status, event)


def lib_status(pkg: AnyPackage, *, installed: bool, source_changed: bool = False) -> LibStatus:
	"""
	Library state from facts gathered by the filesystem collaborator.

	`source_changed` is only consulted for local packages.
	"""
	if not installed:
		return MISSING
	if source_changed and isinstance(pkg, Local):
		return pkg.outdated()
	return INSTALLED


def app_status(pkg: AnyPackage, *, installed: bool, bin_installed: bool = False, source_changed: bool = False) -> AppStatus:
	status = lib_status(pkg, installed=installed, source_changed=source_changed)
	if isinstance(status, Installed) and bin_installed:
		return BIN_INSTALLED
	return status


def is_installed(status: AppStatus) -> bool:
	return isinstance(status, (Installed, BinInstalled))


__all__ = [
	"Missing",
	"Installed",
	"BinInstalled",
	"Outdated",
	"LibStatus",
	"AppStatus",
	"MISSING",
	"INSTALLED",
	"BIN_INSTALLED",
	"StatusEvent",
	"check_status",
	"next_lib_status",
	"next_app_status",
	"lib_status",
	"app_status",
	"is_installed",
]
