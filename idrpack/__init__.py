# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
idrpack: package identity and build-status model for the Idris2 package manager.

Modules (leaves first):
  core_pkg:  libraries bundled with the compiler distribution
  commit:    commit references for remote checkouts
  package:   package identities (github / local / core)
  status:    library and executable lifecycle states
  resolved:  resolved library/executable records
  db:        package database and its text format
"""

__all__ = ["commit", "core_pkg", "db", "errors", "package", "resolved", "status"]
