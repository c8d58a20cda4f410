"""Locating a configuration file and moving into its directory."""

from __future__ import annotations

import os

DEFAULT_CONFIG_DIR = "../../receiver"
DEFAULT_CONFIG_NAME = "sst.config"


def _dirname(path: str) -> str:
    trimmed = path.rstrip("/")
    if not trimmed:
        return "/"
    head = os.path.dirname(trimmed).rstrip("/")
    if head:
        return head
    return "/" if trimmed.startswith("/") else "."


def _basename(path: str) -> str:
    trimmed = path.rstrip("/")
    if not trimmed:
        return "/" if path else ""
    return os.path.basename(trimmed)


def change_directory_to_config_path(config_path: str | None = None) -> str:
    """Change into the directory holding ``config_path``; return the new cwd.

    Without a path, change into the default receiver directory.
    """
    original = os.getcwd()
    if config_path:
        os.chdir(_dirname(config_path))
    else:
        try:
            os.chdir(DEFAULT_CONFIG_DIR)
        except OSError as exc:
            raise FileNotFoundError(
                f"Failed to find default config ('{DEFAULT_CONFIG_DIR}') "
                f"from {original}"
            ) from exc
    new = os.getcwd()
    print(f"Changed directory from '{original}' to '{new}'")
    return new


def get_config_path(path: str | None = None) -> str:
    """Return the file-name part of ``path``, or the default config name."""
    if path:
        return _basename(path)
    return DEFAULT_CONFIG_NAME