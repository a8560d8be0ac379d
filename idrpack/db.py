# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Package database: the compiler pin plus the named package identities of a
project.

The database is loaded once per session and never mutated; editing the
configuration produces a new value. The text form is deterministic: sections
are written in sorted name order with a fixed key order and alignment, so two
databases with the same contents serialize to the same bytes.

	[idris2]
	url     = "https://github.com/idris-lang/Idris2"
	version = "0.7.0"
	commit  = "..."

	[db.<name>]
	type        = "github" | "local" | "core"
	url         = "..."        # github
	path        = "..."        # local
	commit      = "..."        # github
	ipkg        = "..."        # github, local
	packagePath = true | false # github, local
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

from lark import Lark, Token, Transformer
from lark.exceptions import UnexpectedInput, VisitError

from idrpack.commit import format_commit_ref, parse_commit_ref
from idrpack.core_pkg import parse_core_pkg
from idrpack.errors import PackError
from idrpack.package import (
	AnyPackage,
	CommitResolve,
	Core,
	GitHub,
	Local,
	UserGitHub,
	package_kind,
	resolve_package,
)

logger = logging.getLogger(__name__)

_GRAMMAR_PATH = Path(__file__).with_name("db.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(_GRAMMAR_SRC, parser="lalr", start="start")

_BARE_KEY = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*\Z")
_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t"}
_UNESCAPES = {v: k for k, v in _ESCAPES.items()}

_IDRIS_SECTION = "idris2"
_DB_SECTION = "db"
_IDRIS_KEYS = ("url", "version", "commit")
_PKG_KEYS = {
	"github": ("type", "url", "commit", "ipkg", "packagePath"),
	"local": ("type", "path", "ipkg", "packagePath"),
	"core": ("type",),
}
_IDRIS_KEY_WIDTH = max(len(k) for k in _IDRIS_KEYS)
_PKG_KEY_WIDTH = max(len(k) for keys in _PKG_KEYS.values() for k in keys)


@dataclass(frozen=True)
class PackageDB:
	"""
	Compiler distribution pin plus name-keyed package identities.

	`packages` is stored as a read-only mapping in name order. Entries may be
	as authored (`UserGitHub`) or pinned (`GitHub`); see `resolve_db`.
	"""

	idris_url: str
	idris_commit: str
	idris_version: str
	packages: Mapping[str, AnyPackage] = field(default_factory=dict)

	def __post_init__(self) -> None:
		object.__setattr__(self, "packages", MappingProxyType(dict(sorted(self.packages.items()))))


def lookup(db: PackageDB, name: str) -> AnyPackage | None:
	return db.packages.get(name)


def insert_or_replace(db: PackageDB, name: str, pkg: AnyPackage) -> PackageDB:
	"""Return a new database with `name` bound to `pkg`; `db` is left as is."""
	packages = dict(db.packages)
	packages[name] = pkg
	return replace(db, packages=packages)


def resolve_db(db: PackageDB, resolve: CommitResolve) -> PackageDB:
	"""Pin the commit of every remote package."""
	return replace(db, packages={name: resolve_package(pkg, resolve) for name, pkg in db.packages.items()})


# -- serialization ----------------------------------------------------------


def _quote(value: str) -> str:
	return '"' + "".join("\\" + _UNESCAPES[ch] if ch in _UNESCAPES else ch for ch in value) + '"'


def _section_key(name: str) -> str:
	return name if _BARE_KEY.match(name) else _quote(name)


def _bool(value: bool) -> str:
	return "true" if value else "false"


def _kv(key: str, value: str, width: int) -> str:
	return f"{key.ljust(width)} = {value}"


def _package_lines(pkg: AnyPackage) -> list[str]:
	kind = package_kind(pkg)
	w = _PKG_KEY_WIDTH
	lines = [_kv("type", _quote(kind), w)]
	if isinstance(pkg, (UserGitHub, GitHub)):
		lines.append(_kv("url", _quote(pkg.url), w))
		lines.append(_kv("commit", _quote(format_commit_ref(pkg.commit)), w))
		lines.append(_kv("ipkg", _quote(str(pkg.ipkg)), w))
		lines.append(_kv("packagePath", _bool(pkg.pkg_path), w))
	elif isinstance(pkg, Local):
		lines.append(_kv("path", _quote(str(pkg.path)), w))
		lines.append(_kv("ipkg", _quote(str(pkg.ipkg)), w))
		lines.append(_kv("packagePath", _bool(pkg.pkg_path), w))
	return lines


def serialize_db(db: PackageDB) -> str:
	w = _IDRIS_KEY_WIDTH
	lines = [
		f"[{_IDRIS_SECTION}]",
		_kv("url", _quote(db.idris_url), w),
		_kv("version", _quote(db.idris_version), w),
		_kv("commit", _quote(db.idris_commit), w),
	]
	for name in sorted(db.packages):
		lines.append("")
		lines.append(f"[{_DB_SECTION}.{_section_key(name)}]")
		lines.extend(_package_lines(db.packages[name]))
	return "\n".join(lines) + "\n"


# -- parsing ----------------------------------------------------------------


@dataclass(frozen=True)
class _Entry:
	key: str
	value: Any
	line: int


@dataclass(frozen=True)
class _Section:
	path: Tuple[str, ...]
	line: int
	entries: List[_Entry]


def _unquote(tok: Token) -> str:
	body = tok.value[1:-1]
	out: list[str] = []
	i = 0
	while i < len(body):
		ch = body[i]
		if ch == "\\":
			esc = body[i + 1]
			if esc not in _ESCAPES:
				raise PackError(reason_code="DB_PARSE_ERROR", message=f"unknown escape sequence '\\{esc}'", line=tok.line)
			out.append(_ESCAPES[esc])
			i += 2
			continue
		out.append(ch)
		i += 1
	return "".join(out)


class _DbTransformer(Transformer):
	def start(self, sections: list[_Section]) -> list[_Section]:
		return list(sections)

	def section(self, items: list[Any]) -> _Section:
		(path, line), *entries = items
		return _Section(path=path, line=line, entries=list(entries))

	def section_name(self, parts: list[Token]) -> tuple[Tuple[str, ...], int]:
		names = tuple(_unquote(p) if p.type == "STRING" else p.value for p in parts)
		return names, parts[0].line

	def entry(self, items: list[Any]) -> _Entry:
		key, value = items
		return _Entry(key=key.value, value=value, line=key.line)

	def string(self, items: list[Token]) -> str:
		return _unquote(items[0])

	def true(self, _items: list[Any]) -> bool:
		return True

	def false(self, _items: list[Any]) -> bool:
		return False


def _schema_error(message: str, *, line: int, package: str | None = None) -> PackError:
	return PackError(reason_code="DB_SCHEMA_INVALID", message=message, line=line, package=package)


def _section_fields(sec: _Section, allowed: tuple[str, ...], *, package: str | None = None) -> Dict[str, _Entry]:
	fields: Dict[str, _Entry] = {}
	for e in sec.entries:
		if e.key in fields:
			raise _schema_error(f"duplicate key '{e.key}'", line=e.line, package=package)
		fields[e.key] = e
	unknown = sorted(set(fields) - set(allowed))
	if unknown:
		raise _schema_error(f"unknown keys: {', '.join(unknown)}", line=sec.line, package=package)
	return fields


def _get_str(fields: Dict[str, _Entry], key: str, sec: _Section, *, package: str | None = None) -> str:
	e = fields.get(key)
	if e is None:
		raise _schema_error(f"missing key '{key}'", line=sec.line, package=package)
	if not isinstance(e.value, str):
		raise _schema_error(f"key '{key}' must be a string", line=e.line, package=package)
	return e.value


def _get_bool(fields: Dict[str, _Entry], key: str, *, package: str) -> bool:
	e = fields.get(key)
	if e is None:
		return False
	if not isinstance(e.value, bool):
		raise _schema_error(f"key '{key}' must be true or false", line=e.line, package=package)
	return e.value


def _package_from_section(name: str, sec: _Section, base_dir: Path | None) -> AnyPackage:
	kind_entry = next((e for e in sec.entries if e.key == "type"), None)
	if kind_entry is None:
		raise _schema_error("missing key 'type'", line=sec.line, package=name)
	kind = kind_entry.value
	if kind not in _PKG_KEYS:
		raise _schema_error(f"unknown package type {kind!r}", line=kind_entry.line, package=name)
	fields = _section_fields(sec, _PKG_KEYS[kind], package=name)

	if kind == "core":
		core = parse_core_pkg(name)
		if core is None:
			raise _schema_error(f"'{name}' is not a core package", line=sec.line, package=name)
		return Core(core)

	ipkg = PurePosixPath(_get_str(fields, "ipkg", sec, package=name))
	pkg_path = _get_bool(fields, "packagePath", package=name)
	if kind == "github":
		return UserGitHub(
			url=_get_str(fields, "url", sec, package=name),
			commit=parse_commit_ref(_get_str(fields, "commit", sec, package=name)),
			ipkg=ipkg,
			pkg_path=pkg_path,
		)

	path = Path(_get_str(fields, "path", sec, package=name))
	if not path.is_absolute():
		if base_dir is None:
			raise _schema_error(f"local path must be absolute, got: {path}", line=fields["path"].line, package=name)
		path = Path(base_dir) / path
	return Local(path=path, ipkg=ipkg, pkg_path=pkg_path)


def parse_db(text: str, *, base_dir: Path | None = None) -> PackageDB:
	"""
	Parse database text produced by `serialize_db` (or written by hand).

	Remote entries come back as authored (`UserGitHub`). Relative local paths
	are joined onto `base_dir` when given and rejected otherwise.
	"""
	try:
		sections: list[_Section] = _DbTransformer().transform(_PARSER.parse(text))
	except UnexpectedInput as err:
		raise PackError(
			reason_code="DB_PARSE_ERROR",
			message=f"unexpected input at line {err.line}, column {err.column}",
			line=err.line,
		) from err
	except VisitError as err:
		if isinstance(err.orig_exc, PackError):
			raise err.orig_exc from None
		raise

	header: _Section | None = None
	packages: Dict[str, AnyPackage] = {}
	for sec in sections:
		if sec.path == (_IDRIS_SECTION,):
			if header is not None:
				raise _schema_error(f"duplicate [{_IDRIS_SECTION}] section", line=sec.line)
			header = sec
			continue
		if len(sec.path) == 2 and sec.path[0] == _DB_SECTION:
			name = sec.path[1]
			if name in packages:
				raise PackError(
					reason_code="DB_DUPLICATE_PACKAGE",
					message=f"package '{name}' is defined more than once",
					package=name,
					line=sec.line,
				)
			try:
				packages[name] = _package_from_section(name, sec, base_dir)
			except PackError as err:
				if err.reason_code != "PACKAGE_INVALID":
					raise
				raise replace(err, package=name, line=sec.line) from None
			continue
		raise _schema_error(f"unknown section [{'.'.join(sec.path)}]", line=sec.line)

	if header is None:
		raise _schema_error(f"missing [{_IDRIS_SECTION}] section", line=1)
	fields = _section_fields(header, _IDRIS_KEYS)
	db = PackageDB(
		idris_url=_get_str(fields, "url", header),
		idris_commit=_get_str(fields, "commit", header),
		idris_version=_get_str(fields, "version", header),
		packages=packages,
	)
	logger.debug("parsed package database: %d packages", len(db.packages))
	return db


__all__ = [
	"PackageDB",
	"lookup",
	"insert_or_replace",
	"resolve_db",
	"serialize_db",
	"parse_db",
]
