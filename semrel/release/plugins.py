"""Lifecycle plugins.

A plugin is any object exposing some of the step methods below, each
called with the run Context:

    verify_conditions, analyze_commits, verify_release, generate_notes,
    prepare, publish, add_channel, success, fail

A step a plugin does not implement is skipped for that plugin. Plugins of
one step run sequentially in declaration order. A plugin reports a domain
failure by raising StepFailure; anything else it raises is reported as an
unexpected error.

Plugins are declared as ``package.module:attribute``. A class attribute is
instantiated with the declared options; a module or any other object is
used as is.
"""

from __future__ import annotations

import dataclasses
import importlib
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from semrel.core.config import PluginSpec
from semrel.core.errors import ConfigurationError, PluginError
from semrel.core.result import Err, Ok, Result
from semrel.release.context import Context
from semrel.release.model import RELEASE_TYPES, PublishedRelease, ReleaseType

__all__ = [
    "STEPS",
    "PluginDescriptor",
    "PluginRegistry",
    "StepFailure",
]

STEPS = (
    "verify_conditions",
    "analyze_commits",
    "verify_release",
    "generate_notes",
    "prepare",
    "publish",
    "add_channel",
    "success",
    "fail",
)

# Steps where every plugin runs even after one failed.
_SETTLE_ALL = frozenset({"verify_conditions", "verify_release", "success", "fail"})
# Steps with side effects outside the repository, skipped in dry-run mode.
_SKIPPED_IN_DRY_RUN = frozenset({"publish", "add_channel", "success", "fail"})

type StepErrors = tuple[PluginError, ...]


class StepFailure(Exception):
    """Raised by a plugin to fail a step with a domain error."""

    def __init__(self, message: str, *, code: str = "EPLUGIN", details: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


@dataclass(frozen=True, slots=True)
class PluginDescriptor:
    name: str
    plugin: object

    def step(self, step: str) -> Callable[[Context], object] | None:
        fn = getattr(self.plugin, step, None)
        return fn if callable(fn) else None


def _plugin_name(plugin: object) -> str:
    name = getattr(plugin, "name", None)
    if isinstance(name, str) and name:
        return name
    return getattr(plugin, "__name__", None) or type(plugin).__name__


def _load(spec: PluginSpec) -> Result[object, ConfigurationError]:
    module_name, sep, attr = spec.path.partition(":")

    def invalid(details: str) -> Err[ConfigurationError]:
        return Err(
            ConfigurationError(
                code="EPLUGINCONF",
                message=f"The plugin {spec.path!r} is not a valid plugin declaration.",
                details=details,
            )
        )

    if not module_name or (sep and not attr):
        return invalid("Plugins are declared as 'package.module' or 'package.module:attribute'.")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        return invalid(f"Cannot import {module_name}: {e}")

    target: object = module
    if attr:
        target = getattr(module, attr, None)
        if target is None:
            return invalid(f"{module_name} has no attribute {attr!r}.")

    if isinstance(target, type):
        try:
            return Ok(target(**spec.options))
        except TypeError as e:
            return invalid(f"Cannot instantiate {attr} with the declared options: {e}")
    if spec.options:
        return invalid("Options can only be passed to a plugin class.")
    if not any(callable(getattr(target, step, None)) for step in STEPS):
        return invalid(f"{spec.path} implements none of the steps: {', '.join(STEPS)}.")
    return Ok(target)


class PluginRegistry:
    """Ordered plugins and the per-step calling conventions.

    Every step returns Err with the failures of the step; steps listed in
    ``_SETTLE_ALL`` collect the failures of all plugins, the others stop at
    the first one.
    """

    def __init__(self, plugins: Sequence[PluginDescriptor] = ()) -> None:
        self._plugins = tuple(plugins)

    @classmethod
    def from_objects(cls, *plugins: object) -> PluginRegistry:
        return cls([PluginDescriptor(name=_plugin_name(p), plugin=p) for p in plugins])

    @classmethod
    def from_declarations(
        cls, specs: Sequence[PluginSpec]
    ) -> Result[PluginRegistry, tuple[ConfigurationError, ...]]:
        descriptors: list[PluginDescriptor] = []
        errors: list[ConfigurationError] = []
        for spec in specs:
            loaded = _load(spec)
            if isinstance(loaded, Err):
                errors.append(loaded.error)
                continue
            descriptors.append(PluginDescriptor(name=spec.path, plugin=loaded.value))
        if errors:
            return Err(tuple(errors))
        return Ok(cls(descriptors))

    @property
    def names(self) -> list[str]:
        return [p.name for p in self._plugins]

    def __len__(self) -> int:
        return len(self._plugins)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def verify_conditions(self, context: Context) -> Result[None, StepErrors]:
        return self._run("verify_conditions", context).map(lambda _: None)

    def analyze_commits(self, context: Context) -> Result[ReleaseType | None, StepErrors]:
        """Highest bump requested by any plugin, None when no release is due."""
        results = self._run("analyze_commits", context)
        if isinstance(results, Err):
            return results
        bump: ReleaseType | None = None
        for descriptor, value in results.value:
            if value is None:
                continue
            if value not in RELEASE_TYPES:
                return Err(
                    (
                        PluginError(
                            code="EANALYZECOMMITSOUTPUT",
                            message=f"analyze_commits returned {value!r}.",
                            plugin=descriptor.name,
                            step="analyze_commits",
                            details=f"The step must return one of {', '.join(RELEASE_TYPES)} or None.",
                        ),
                    )
                )
            if bump is None or RELEASE_TYPES.index(value) > RELEASE_TYPES.index(bump):
                bump = value
        return Ok(bump)

    def verify_release(self, context: Context) -> Result[None, StepErrors]:
        return self._run("verify_release", context).map(lambda _: None)

    def generate_notes(self, context: Context) -> Result[str, StepErrors]:
        """Notes of every plugin, separated by a blank line.

        Before each plugin runs, ``next_release.notes`` holds the notes
        generated so far.
        """
        notes: list[str] = []

        def before(_: PluginDescriptor) -> None:
            if context.next_release is not None:
                context.next_release.notes = "\n\n".join(notes)

        def collect(_: PluginDescriptor, value: object) -> None:
            if isinstance(value, str) and value.strip():
                notes.append(value.strip())

        results = self._run("generate_notes", context, before=before, after=collect)
        if isinstance(results, Err):
            return results
        return Ok("\n\n".join(notes))

    def prepare(self, context: Context) -> Result[None, StepErrors]:
        return self._run("prepare", context).map(lambda _: None)

    def publish(self, context: Context) -> Result[list[PublishedRelease], StepErrors]:
        return self._releases("publish", context)

    def add_channel(self, context: Context) -> Result[list[PublishedRelease], StepErrors]:
        return self._releases("add_channel", context)

    def success(self, context: Context) -> Result[None, StepErrors]:
        return self._run("success", context).map(lambda _: None)

    def fail(self, context: Context) -> Result[None, StepErrors]:
        return self._run("fail", context).map(lambda _: None)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _releases(self, step: str, context: Context) -> Result[list[PublishedRelease], StepErrors]:
        results = self._run(step, context)
        if isinstance(results, Err):
            return results
        releases: list[PublishedRelease] = []
        for descriptor, value in results.value:
            release = _to_release(descriptor.name, value, context)
            if release is not None:
                releases.append(release)
        return Ok(releases)

    def _run(
        self,
        step: str,
        context: Context,
        *,
        before: Callable[[PluginDescriptor], None] | None = None,
        after: Callable[[PluginDescriptor, object], None] | None = None,
    ) -> Result[list[tuple[PluginDescriptor, object]], StepErrors]:
        settle_all = step in _SETTLE_ALL
        results: list[tuple[PluginDescriptor, object]] = []
        errors: list[PluginError] = []
        for descriptor in self._plugins:
            fn = descriptor.step(step)
            if fn is None:
                continue
            if context.dry_run and step in _SKIPPED_IN_DRY_RUN:
                context.console.warning(f"Skip step {step} of plugin {descriptor.name} in dry-run mode")
                continue
            if before is not None:
                before(descriptor)
            outcome = _invoke(descriptor, step, fn, context)
            if isinstance(outcome, Err):
                errors.append(outcome.error)
                if not settle_all:
                    break
                continue
            results.append((descriptor, outcome.value))
            if after is not None:
                after(descriptor, outcome.value)
        if errors:
            return Err(tuple(errors))
        return Ok(results)


def _invoke(
    descriptor: PluginDescriptor, step: str, fn: Callable[[Context], object], context: Context
) -> Result[object, PluginError]:
    try:
        return Ok(fn(context))
    except StepFailure as e:
        return Err(
            PluginError(
                code=e.code,
                message=e.message,
                plugin=descriptor.name,
                step=step,
                details=e.details,
            )
        )
    except Exception as e:  # noqa: BLE001
        return Err(
            PluginError(
                code="EPLUGINUNEXPECTED",
                message=f"{type(e).__name__}: {e}",
                plugin=descriptor.name,
                step=step,
                unexpected=True,
            )
        )


def _to_release(plugin_name: str, value: object, context: Context) -> PublishedRelease | None:
    """Release record from a publish/add_channel result, None when nothing was released."""
    if value is None or value is False:
        return None
    next_release = context.next_release
    if next_release is None:
        return None
    if isinstance(value, PublishedRelease):
        return value if value.plugin_name else dataclasses.replace(value, plugin_name=plugin_name)

    data: Mapping[str, object] = value if isinstance(value, Mapping) else {}
    channel = data.get("channel", next_release.channel)
    name = data.get("name")
    url = data.get("url")
    return PublishedRelease(
        plugin_name=plugin_name,
        version=next_release.version,
        git_tag=next_release.git_tag,
        git_head=next_release.git_head,
        channel=channel if isinstance(channel, str) else None,
        name=name if isinstance(name, str) else None,
        url=url if isinstance(url, str) else None,
        notes=next_release.notes,
    )
