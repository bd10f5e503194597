"""Validation for names that end up as directory names on disk."""

from __future__ import annotations

import re

PROVIDER_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9_.-]*$")
VERSION_TAG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]*$")


def check_provider_name(v: str) -> str:
    if not PROVIDER_NAME_RE.fullmatch(v) or ".." in v:
        raise ValueError(f"Invalid provider name: {v!r}")
    return v


def check_version_tag(v: str) -> str:
    if not VERSION_TAG_RE.fullmatch(v) or ".." in v:
        raise ValueError(f"Invalid version tag: {v!r}")
    return v


def is_valid_version_tag(v: str) -> bool:
    try:
        check_version_tag(v)
    except ValueError:
        return False
    return True
