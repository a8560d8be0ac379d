# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import pytest

from idrpack.commit import Exact
from idrpack.core_pkg import CorePkg
from idrpack.errors import PackError
from idrpack.package import Core, GitHub, Local
from idrpack.resolved import (
	App,
	Dependency,
	Lib,
	Manifest,
	ResolvedApp,
	ResolvedLib,
	as_dependency_names,
	as_identity,
	as_manifest,
	as_name,
	as_status,
	dependency_names,
	record_name,
	retag,
)
from idrpack.status import BIN_INSTALLED, INSTALLED, MISSING

LOCAL = Local(Path("/src/mylib"), PurePosixPath("mylib.ipkg"))
GITHUB = GitHub("https://x/elab-util", Exact("abc"), PurePosixPath("elab-util.ipkg"))
BASE = Core(CorePkg.BASE)


def _manifest(name: str, *depends: str) -> Manifest:
	return Manifest(name=name, depends=depends, path=Path(f"/src/{name}/{name}.ipkg"))


def _closure() -> list[Dependency]:
	return [Dependency(BASE, INSTALLED), Dependency(GITHUB, MISSING)]


def test_library_record_projections() -> None:
	lib = ResolvedLib(
		pkg=LOCAL,
		name="mylib",
		manifest=_manifest("mylib", "base", "elab-util"),
		status=LOCAL.outdated(),
		deps=_closure(),
	)
	assert record_name(lib) == "mylib"
	assert dependency_names(lib) == ["base", "elab-util"]
	assert isinstance(lib.deps, tuple)
	assert [d.pkg for d in lib.deps] == [BASE, GITHUB]


def test_dependency_names_keep_manifest_order() -> None:
	lib = ResolvedLib(pkg=BASE, name="contrib", manifest=_manifest("contrib", "prelude", "base", "linear"), status=MISSING)
	assert dependency_names(lib) == ["prelude", "base", "linear"]


def test_retag_replaces_manifest_only() -> None:
	lib = ResolvedLib(pkg=LOCAL, name="mylib", manifest=_manifest("mylib", "base"), status=INSTALLED, deps=_closure())
	reparsed = _manifest("mylib", "base", "contrib")
	out = retag(lib, reparsed)
	assert out.manifest is reparsed
	assert (out.pkg, out.name, out.status, out.deps) == (lib.pkg, lib.name, lib.status, lib.deps)
	assert dependency_names(out) == ["base", "contrib"]
	assert dependency_names(lib) == ["base"]


def test_retag_accepts_other_manifest_types() -> None:
	@dataclass(frozen=True)
	class Desc:
		depends: tuple[str, ...]
		settings: str

	lib = ResolvedLib(pkg=BASE, name="base", manifest=_manifest("base", "prelude"), status=INSTALLED)
	out = retag(lib, Desc(depends=("prelude",), settings="--no-prelude"))
	assert dependency_names(out) == ["prelude"]
	assert out.manifest.settings == "--no-prelude"


@pytest.mark.parametrize("pkg", [GITHUB, BASE])
def test_record_rejects_outdated_of_other_identity(pkg) -> None:
	with pytest.raises(PackError) as err:
		ResolvedLib(pkg=pkg, name="x", manifest=_manifest("x"), status=LOCAL.outdated())
	assert err.value.reason_code == "STATUS_PACKAGE_MISMATCH"
	assert err.value.package == "x"


def test_library_cannot_be_bin_installed() -> None:
	with pytest.raises(PackError) as err:
		ResolvedLib(pkg=LOCAL, name="mylib", manifest=_manifest("mylib"), status=BIN_INSTALLED)  # type: ignore[arg-type]
	assert err.value.reason_code == "STATUS_INVALID"


def test_dependency_entries_are_checked() -> None:
	with pytest.raises(PackError, match="STATUS_PACKAGE_MISMATCH"):
		Dependency(GITHUB, LOCAL.outdated())
	with pytest.raises(PackError, match="STATUS_INVALID"):
		Dependency(LOCAL, BIN_INSTALLED)  # type: ignore[arg-type]


def test_closure_entries_must_be_dependencies() -> None:
	with pytest.raises(TypeError):
		ResolvedLib(pkg=BASE, name="base", manifest=_manifest("base"), status=INSTALLED, deps=[(BASE, INSTALLED)])  # type: ignore[list-item]


def test_app_record_allows_bin_installed() -> None:
	app = ResolvedApp(
		pkg=GITHUB,
		name="katla",
		manifest=_manifest("katla", "base", "contrib"),
		status=BIN_INSTALLED,
		exec_name="katla",
		deps=_closure(),
	)
	assert app.exec_name == "katla"
	assert dependency_names(app) == ["base", "contrib"]


def test_app_record_rejects_foreign_outdated() -> None:
	other = Local(Path("/src/other"), PurePosixPath("other.ipkg"))
	with pytest.raises(PackError, match="STATUS_PACKAGE_MISMATCH"):
		ResolvedApp(pkg=other, name="tool", manifest=_manifest("tool"), status=LOCAL.outdated(), exec_name="tool")


def test_lib_or_app_projects_uniformly() -> None:
	lib = ResolvedLib(pkg=BASE, name="base", manifest=_manifest("base", "prelude"), status=INSTALLED)
	app = ResolvedApp(pkg=LOCAL, name="tool", manifest=_manifest("tool", "base"), status=MISSING, exec_name="tool-bin")
	plan = [Lib(lib), App(app, install_wrapper=True)]
	assert [as_name(x) for x in plan] == ["base", "tool"]
	assert [as_identity(x) for x in plan] == [BASE, LOCAL]
	assert [as_dependency_names(x) for x in plan] == [["prelude"], ["base"]]
	assert [as_status(x) for x in plan] == [INSTALLED, MISSING]
	assert [as_manifest(x).name for x in plan] == ["base", "tool"]
	assert plan[1].install_wrapper


def test_records_are_immutable() -> None:
	lib = ResolvedLib(pkg=BASE, name="base", manifest=_manifest("base"), status=INSTALLED)
	with pytest.raises(AttributeError):
		lib.status = MISSING  # type: ignore[misc]
