"""Image tag strategies: static, auto-tag from the git ref, and semver expansion."""

import re

SEMVER_RE = re.compile(
    r"^v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<metadata>[0-9A-Za-z.-]+))?$"
)

TAG_REF_PREFIX = "refs/tags/"
HEAD_REF_PREFIX = "refs/heads/"


def _dedupe(tags: list[str]) -> list[str]:
    return list(dict.fromkeys(tags))


def expand_semver(version: str) -> list[str] | None:
    """
    Expand a release version into its major, minor and patch tags.

    `1.2.3` -> `1`, `1.2`, `1.2.3`; major 0 drops the bare major tag
    (`0.4.1` -> `0.4`, `0.4.1`). Pre-release and build-metadata versions are
    returned unexpanded. Returns None when `version` is not semver.
    """
    match = SEMVER_RE.match(version)
    if not match:
        return None

    if match["prerelease"] or match["metadata"]:
        return [version.removeprefix("v")]

    major, minor, patch = match["major"], match["minor"], match["patch"]
    if int(major) == 0:
        return [f"{major}.{minor}", f"{major}.{minor}.{patch}"]
    return [major, f"{major}.{minor}", f"{major}.{minor}.{patch}"]


def default_tags(ref: str) -> list[str]:
    """Tags for a commit ref: expanded semver for git tags, else `latest`."""
    if not ref.startswith(TAG_REF_PREFIX):
        return ["latest"]
    return expand_semver(ref.removeprefix(TAG_REF_PREFIX)) or ["latest"]


def use_default_tag(ref: str, default_branch: str) -> bool:
    """True when an auto-tagged build should run for this ref."""
    if ref.startswith(TAG_REF_PREFIX):
        return True
    return bool(default_branch) and ref.removeprefix(HEAD_REF_PREFIX) == default_branch


def default_tag_suffix(ref: str, suffix: str) -> list[str]:
    """Default tags with `-suffix` appended; `latest` becomes the bare suffix."""
    tags = default_tags(ref)
    if not suffix:
        return tags
    return _dedupe([suffix if tag == "latest" else f"{tag}-{suffix}" for tag in tags])


def expand_tags(tags: list[str]) -> list[str]:
    """Replace every semver tag with its expansion, keeping other tags as-is."""
    expanded: list[str] = []
    for tag in tags:
        expanded.extend(expand_semver(tag) or [tag])
    return _dedupe(expanded)
