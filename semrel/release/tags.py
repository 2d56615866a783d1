"""Tag template rendering and parsing.

A tag template is a ``string.Template`` holding the ``${version}``
placeholder exactly once, e.g. ``v${version}`` or ``app@${version}``.
"""

from __future__ import annotations

import re
from string import Template

from semrel.core.errors import ConfigurationError
from semrel.git.repository import GitBackend


def make_tag(tag_format: str, version: str) -> str:
    return Template(tag_format).safe_substitute(version=version)


def tag_pattern(tag_format: str) -> re.Pattern[str]:
    """Regex capturing the version label of tags rendered from ``tag_format``.

    The template is rendered with a space as version: a space cannot appear
    in a git ref, so it marks the placeholder position unambiguously.
    """
    rendered = re.escape(make_tag(tag_format, " "))
    return re.compile("^" + rendered.replace(re.escape(" "), "(.+)", 1))


def placeholder_count(tag_format: str) -> int:
    count = 0
    for m in Template.pattern.finditer(tag_format):
        if (m.group("named") or m.group("braced")) == "version":
            count += 1
    return count


def verify_tag_format(tag_format: str, repo: GitBackend) -> list[ConfigurationError]:
    errors: list[ConfigurationError] = []
    if not tag_format.strip() or not repo.check_ref_format(f"refs/tags/{make_tag(tag_format, '0.0.0')}"):
        errors.append(
            ConfigurationError(
                code="EINVALIDTAGFORMAT",
                message=f"Invalid tag format: {tag_format!r}.",
                details="The tag format must render to a valid git reference.",
            )
        )
    if placeholder_count(tag_format) != 1:
        errors.append(
            ConfigurationError(
                code="ETAGNOVERSION",
                message=f"The tag format {tag_format!r} must contain the variable ${{version}} exactly once.",
            )
        )
    return errors
