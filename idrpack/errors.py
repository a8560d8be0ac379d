# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PackError(Exception):
	"""
	A structured, serializable error raised by the package model.

	`reason_code` is stable and meant for matching; `message` is for humans.
	Errors coming from collaborators (manifest parser, branch-tip lookup,
	fetcher) are never wrapped in this type.
	"""

	reason_code: str
	message: str
	package: str | None = None
	artifact_path: str | None = None
	line: int | None = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"package": self.package,
			"artifact_path": self.artifact_path,
			"line": self.line,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.package:
			parts.append(f"package={self.package}")
		if self.artifact_path:
			parts.append(f"artifact_path={self.artifact_path}")
		if self.line is not None:
			parts.append(f"line={self.line}")
		return " ".join(parts)
