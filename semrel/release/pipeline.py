"""Release pipeline.

Stages run strictly in this order, each one reading what the previous
stages wrote into the Context:

    init -> auth check -> verify_conditions -> add channel (if a release
    merged from a higher branch is missing our channel) -> new release

No git mutation happens before verify_conditions succeeds. A new tag is
always created and pushed before the publish step runs.

Runs that publish nothing (pull request runs, a stale local branch, a
branch that is not configured, no relevant commits) return ``Ok(None)``.
Every fatal error is passed to the fail step, then rendered and returned.
"""

from __future__ import annotations

import dataclasses

from semrel import __version__
from semrel.core.errors import ConfigurationError, GitAuthError, InvalidVersionError, PluginError
from semrel.core.result import Err, Ok, Result
from semrel.git.repository import GitBackend, GitError
from semrel.output.console import ConsoleProtocol, Style
from semrel.release.branches import get_branches
from semrel.release.context import Context, RunError
from semrel.release.history import ReleaseToAdd, get_last_release, get_release_to_add
from semrel.release.model import LastRelease, NextRelease, RunResult, Tag
from semrel.release.next_version import get_next_version
from semrel.release.notes import add_channels_note, tag_notes_ref
from semrel.release.plugins import PluginRegistry
from semrel.release.semver import satisfies
from semrel.release.tags import make_tag, verify_tag_format

__all__ = ["COMMIT_EMAIL", "COMMIT_NAME", "run_release"]

COMMIT_NAME = "semrel-bot"
COMMIT_EMAIL = "semrel-bot@users.noreply.github.com"

type RunErrors = tuple[RunError, ...]


def run_release(
    *, context: Context, plugins: PluginRegistry, repo: GitBackend
) -> Result[RunResult | None, RunErrors]:
    """Run one release.

    ``repo`` must run git with ``context.env`` so the identity variables
    set for CI runs apply to the tags it creates.
    """
    result = _run(context=context, plugins=plugins, repo=repo)
    if isinstance(result, Err):
        context.errors = result.error
        _call_fail(context, plugins)
        _log_errors(context.console, result.error)
    return result


def _run(
    *, context: Context, plugins: PluginRegistry, repo: GitBackend
) -> Result[RunResult | None, RunErrors]:
    console = context.console
    options = context.options
    ci = context.ci

    if not ci.is_ci and not context.dry_run and not options.no_ci:
        console.warning("This run was not triggered in a known CI environment, running in dry-run mode.")
        context.dry_run = True
    else:
        _prepare_git_env(context.env)

    if ci.is_ci and ci.is_pr and not options.no_ci and not options.publish_on_pr:
        console.info("This run was triggered by a pull request and therefore a new version won't be published.")
        return Ok(None)

    tag_errors = verify_tag_format(options.tag_format, repo)
    if tag_errors:
        return Err(tuple(tag_errors))

    repository_url = context.repository_url or options.repository_url or repo.remote_url()
    if not repository_url:
        return Err(
            (
                ConfigurationError(
                    code="ENOREPOURL",
                    message="The repository_url option is required.",
                    details="Set repository_url in the configuration or add an origin remote to the repository.",
                ),
            )
        )
    context.repository_url = repository_url

    branches = get_branches(
        repo=repo,
        repository_url=repository_url,
        ci_branch=context.ci_branch,
        options=options,
        package_version=context.package_version,
        console=console,
    )
    if isinstance(branches, Err):
        return branches
    context.branches = branches.value
    context.branch = next((b for b in context.branches if b.name == context.ci_branch), None)
    if context.branch is None:
        names = ", ".join(b.name for b in context.branches) or "no branch"
        console.info(
            f"This run was triggered on the branch {context.ci_branch}, while semrel is configured "
            f"to only publish from {names}, therefore a new version won't be published."
        )
        return Ok(None)
    branch = context.branch

    mode = " in dry-run mode" if context.dry_run else ""
    console.header(f"semrel {__version__}")
    if context.dry_run:
        console.warning(f"Run automated release from branch {branch.name} on repository {repository_url}{mode}")
    else:
        console.success(f"Run automated release from branch {branch.name} on repository {repository_url}")

    auth = repo.verify_auth(repository_url, branch.name)
    if isinstance(auth, Err):
        up_to_date = repo.is_branch_up_to_date(repository_url, branch.name)
        if isinstance(up_to_date, Ok) and not up_to_date.value:
            console.info(
                f"The local branch {branch.name} is behind the remote one, "
                "therefore a new version won't be published."
            )
            return Ok(None)
        console.error(f"The command {auth.error.command!r} failed with the error message {auth.error.message}")
        return Err((GitAuthError(repository_url=repository_url, branch=branch.name, stderr=auth.error.message),))
    console.success("Allowed to push to the Git repository")

    verified = plugins.verify_conditions(context)
    if isinstance(verified, Err):
        return verified

    context.releases = []
    to_add = get_release_to_add(context)
    if to_add is not None:
        added = _add_channel(context=context, plugins=plugins, repo=repo, release=to_add)
        if isinstance(added, Err):
            return added

    context.current_release = None
    context.next_release = None
    return _new_release(context=context, plugins=plugins, repo=repo)


def _prepare_git_env(env: dict[str, str]) -> None:
    """Commit identity (unless already set) and no credential prompts."""
    env.setdefault("GIT_AUTHOR_NAME", COMMIT_NAME)
    env.setdefault("GIT_AUTHOR_EMAIL", COMMIT_EMAIL)
    env.setdefault("GIT_COMMITTER_NAME", COMMIT_NAME)
    env.setdefault("GIT_COMMITTER_EMAIL", COMMIT_EMAIL)
    env["GIT_ASKPASS"] = "echo"
    env["GIT_TERMINAL_PROMPT"] = "0"


def _resolve_head(repo: GitBackend, release: LastRelease) -> Result[LastRelease, GitError]:
    head = repo.tag_head(release.git_head)
    if isinstance(head, Err):
        return head
    return Ok(dataclasses.replace(release, git_head=head.value))


def _channel_label(channel: str | None) -> str:
    return f"channel {channel}" if channel else "default channel"


def _push_tag(context: Context, repo: GitBackend, git_tag: str) -> Result[None, GitError]:
    pushed = repo.push_tags(context.repository_url)
    if isinstance(pushed, Err):
        return pushed
    return repo.push_notes(context.repository_url, tag_notes_ref(git_tag))


def _add_channel(
    *, context: Context, plugins: PluginRegistry, repo: GitBackend, release: ReleaseToAdd
) -> Result[None, RunErrors]:
    """Publish an already released version to the current branch's channel."""
    branch = context.require_branch()
    console = context.console

    last_release = release.last_release
    if last_release is not None:
        resolved = _resolve_head(repo, last_release)
        if isinstance(resolved, Err):
            return Err((resolved.error,))
        last_release = resolved.value
    current = _resolve_head(repo, release.current_release)
    if isinstance(current, Err):
        return Err((current.error,))
    next_release = release.next_release
    next_release.git_head = current.value.git_head

    if branch.merge_range and not satisfies(next_release.version, branch.merge_range):
        return Err(
            (
                InvalidVersionError(
                    code="EINVALIDMAINTENANCEMERGE",
                    version=next_release.version,
                    branch=branch.name,
                    range=branch.merge_range,
                ),
            )
        )

    context.last_release = last_release
    context.current_release = current.value
    context.next_release = next_release

    commits = repo.log(last_release.git_head if last_release else None, next_release.git_head)
    if isinstance(commits, Err):
        return Err((commits.error,))
    context.commits = commits.value

    notes = plugins.generate_notes(context)
    if isinstance(notes, Err):
        return notes
    next_release.notes = notes.value

    channels = tuple(dict.fromkeys([*current.value.channels, next_release.channel]))
    if context.dry_run:
        console.warning(f"Skip {next_release.git_tag} tag creation in dry-run mode")
    else:
        noted = add_channels_note(repo, next_release.git_tag, channels)
        if isinstance(noted, Err):
            return Err((noted.error,))
        pushed = _push_tag(context, repo, next_release.git_tag)
        if isinstance(pushed, Err):
            return Err((pushed.error,))
        console.success(f"Add {_channel_label(next_release.channel)} to tag {next_release.git_tag}")

    branch.tags.append(
        Tag(
            git_tag=next_release.git_tag,
            version=next_release.version,
            channels=channels,
            git_head=next_release.git_head,
        )
    )

    releases = plugins.add_channel(context)
    if isinstance(releases, Err):
        return releases
    context.releases.extend(releases.value)

    succeeded = plugins.success(context)
    if isinstance(succeeded, Err):
        return succeeded
    return Ok(None)


def _new_release(
    *, context: Context, plugins: PluginRegistry, repo: GitBackend
) -> Result[RunResult | None, RunErrors]:
    branch = context.require_branch()
    console = context.console
    options = context.options

    last_release = get_last_release(branch, options.tag_format)
    if last_release is not None:
        resolved = _resolve_head(repo, last_release)
        if isinstance(resolved, Err):
            return Err((resolved.error,))
        last_release = resolved.value
        console.info(
            f"Found git tag {last_release.git_tag} associated with version "
            f"{last_release.version} on branch {branch.name}"
        )
    else:
        console.info(f"No git tag version found on branch {branch.name}")
    context.last_release = last_release

    commits = repo.log(last_release.git_head if last_release else None, "HEAD")
    if isinstance(commits, Err):
        return Err((commits.error,))
    context.commits = commits.value
    console.debug(f"Found {len(context.commits)} commits since last release")

    bump = plugins.analyze_commits(context)
    if isinstance(bump, Err):
        return bump
    if bump.value is None:
        console.info("There are no relevant changes, so no new version is released.")
        if context.releases:
            return Ok(RunResult(releases=tuple(context.releases)))
        return Ok(None)

    head = repo.head()
    if isinstance(head, Err):
        return Err((head.error,))
    next_release = NextRelease(type=bump.value, channel=branch.channel, git_head=head.value)
    context.next_release = next_release
    next_release.version = get_next_version(
        branch=branch,
        bump=bump.value,
        channel=branch.channel,
        last_release=last_release,
        options=options,
        package_version=context.package_version,
        console=console,
    )
    next_release.git_tag = make_tag(options.tag_format, next_release.version)
    next_release.name = next_release.git_tag

    if branch.type == "maintenance" and branch.range and not satisfies(next_release.version, branch.range):
        return Err(
            (
                InvalidVersionError(
                    code="EINVALIDNEXTVERSION",
                    version=next_release.version,
                    branch=branch.name,
                    range=branch.range,
                ),
            )
        )

    verified = plugins.verify_release(context)
    if isinstance(verified, Err):
        return verified

    notes = plugins.generate_notes(context)
    if isinstance(notes, Err):
        return notes
    next_release.notes = notes.value

    prepared = plugins.prepare(context)
    if isinstance(prepared, Err):
        return prepared

    if context.dry_run:
        console.warning(f"Skip {next_release.git_tag} tag creation in dry-run mode")
    else:
        tagged = repo.tag(next_release.git_tag, next_release.git_head)
        if isinstance(tagged, Err):
            return Err((tagged.error,))
        noted = add_channels_note(repo, next_release.git_tag, [next_release.channel])
        if isinstance(noted, Err):
            return Err((noted.error,))
        pushed = _push_tag(context, repo, next_release.git_tag)
        if isinstance(pushed, Err):
            return Err((pushed.error,))
        console.success(f"Created tag {next_release.git_tag}")

    releases = plugins.publish(context)
    if isinstance(releases, Err):
        return releases
    context.releases.extend(releases.value)

    succeeded = plugins.success(context)
    if isinstance(succeeded, Err):
        return succeeded

    console.success(
        f"Published release {next_release.version} on {next_release.channel or 'default'} channel"
    )
    if context.dry_run:
        console.info(f"Release note for version {next_release.version}:")
        if next_release.notes:
            console.markdown(next_release.notes)

    return Ok(
        RunResult(
            releases=tuple(context.releases),
            last_release=last_release,
            commits=tuple(context.commits),
            next_release=next_release,
        )
    )


def _is_domain_error(error: RunError) -> bool:
    if isinstance(error, GitError):
        return False
    return not (isinstance(error, PluginError) and error.unexpected)


def _call_fail(context: Context, plugins: PluginRegistry) -> None:
    """Report domain errors to the fail step; its own failures are only logged."""
    errors = tuple(e for e in context.errors if _is_domain_error(e))
    if not errors:
        return
    context.errors = errors
    failed = plugins.fail(context)
    if isinstance(failed, Err):
        _log_errors(context.console, failed.error)


def _log_errors(console: ConsoleProtocol, errors: RunErrors) -> None:
    for error in sorted(errors, key=lambda e: not _is_domain_error(e)):
        if not _is_domain_error(error):
            where = f" ({error.plugin}: {error.step})" if isinstance(error, PluginError) else ""
            console.error(f"An unexpected error occurred while running semrel{where}: {error.message}")
            if isinstance(error, GitError):
                console.print(f"  command: {error.command}", Style.DIM)
            continue
        console.error(f"{error.code} {error.message}")
        if error.details:
            console.print(error.details, Style.DIM)
