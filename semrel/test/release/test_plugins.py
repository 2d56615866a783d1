"""Tests for release/plugins.py."""

from __future__ import annotations

import sys
import types
from collections.abc import Iterator
from pathlib import Path

import pytest

from semrel.core.config import PluginSpec, ReleaseOptions
from semrel.core.result import Err, Ok
from semrel.output.console import MockConsole
from semrel.platform.ci import CiEnvironment
from semrel.release.context import Context, create_context
from semrel.release.model import NextRelease, PublishedRelease
from semrel.release.plugins import PluginRegistry, StepFailure
from semrel.test.fakes import RecordingPlugin


def _context(*, dry_run: bool = False) -> Context:
    context = create_context(
        cwd=Path("."),
        env={},
        options=ReleaseOptions(dry_run=dry_run),
        console=MockConsole(),
        ci=CiEnvironment(is_ci=True, branch="master"),
    )
    context.next_release = NextRelease(
        type="minor", channel="next", git_head="abc", version="1.1.0", git_tag="v1.1.0", name="v1.1.0"
    )
    return context


class Analyzer:
    def __init__(self, bump: object) -> None:
        self.bump = bump

    def analyze_commits(self, context: Context) -> object:
        return self.bump


class Failing:
    name = "failing"

    def __init__(self, exc: Exception) -> None:
        self.exc = exc
        self.calls = 0

    def verify_conditions(self, context: Context) -> None:
        self.calls += 1
        raise self.exc

    def prepare(self, context: Context) -> None:
        self.calls += 1
        raise self.exc


class TestAnalyzeCommits:
    """The highest bump wins."""

    def test_highest_bump(self) -> None:
        registry = PluginRegistry.from_objects(Analyzer("patch"), Analyzer("major"), Analyzer(None))
        assert registry.analyze_commits(_context()) == Ok("major")

    def test_no_release(self) -> None:
        registry = PluginRegistry.from_objects(Analyzer(None))
        assert registry.analyze_commits(_context()) == Ok(None)

    def test_no_plugin_means_no_release(self) -> None:
        assert PluginRegistry().analyze_commits(_context()) == Ok(None)

    def test_invalid_output(self) -> None:
        result = PluginRegistry.from_objects(Analyzer("huge")).analyze_commits(_context())
        assert isinstance(result, Err)
        assert result.error[0].code == "EANALYZECOMMITSOUTPUT"


class TestGenerateNotes:
    """Notes are concatenated in declaration order."""

    def test_joined_with_blank_line(self) -> None:
        registry = PluginRegistry.from_objects(
            RecordingPlugin(notes="first"), RecordingPlugin(notes=""), RecordingPlugin(notes="second")
        )
        assert registry.generate_notes(_context()) == Ok("first\n\nsecond")

    def test_previous_notes_visible(self) -> None:
        seen: list[str] = []

        class Appender:
            def generate_notes(self, context: Context) -> str:
                assert context.next_release is not None
                seen.append(context.next_release.notes)
                return "more"

        registry = PluginRegistry.from_objects(RecordingPlugin(notes="first"), Appender())
        assert registry.generate_notes(_context()) == Ok("first\n\nmore")
        assert seen == ["first"]


class TestFailures:
    """Tests for error reporting."""

    def test_step_failure_is_domain_error(self) -> None:
        plugin = Failing(StepFailure("no token", code="ENOTOKEN", details="Set TOKEN."))
        result = PluginRegistry.from_objects(plugin).verify_conditions(_context())
        assert isinstance(result, Err)
        error = result.error[0]
        assert (error.code, error.message, error.details) == ("ENOTOKEN", "no token", "Set TOKEN.")
        assert (error.plugin, error.step) == ("failing", "verify_conditions")
        assert error.unexpected is False

    def test_other_exception_is_unexpected(self) -> None:
        result = PluginRegistry.from_objects(Failing(RuntimeError("boom"))).verify_conditions(_context())
        assert isinstance(result, Err)
        assert result.error[0].unexpected is True
        assert "boom" in result.error[0].message

    def test_verify_conditions_aggregates(self) -> None:
        first, second = Failing(StepFailure("a")), Failing(StepFailure("b"))
        result = PluginRegistry.from_objects(first, second).verify_conditions(_context())
        assert isinstance(result, Err)
        assert [e.message for e in result.error] == ["a", "b"]

    def test_prepare_stops_at_first_failure(self) -> None:
        first, second = Failing(StepFailure("a")), Failing(StepFailure("b"))
        result = PluginRegistry.from_objects(first, second).prepare(_context())
        assert isinstance(result, Err)
        assert len(result.error) == 1
        assert second.calls == 0


class TestReleases:
    """Tests for publish and add_channel results."""

    def test_publish_builds_release(self) -> None:
        plugin = RecordingPlugin(published={"url": "https://pkg.example.com/widget/1.1.0", "name": "Widget"})
        result = PluginRegistry.from_objects(plugin).publish(_context())
        assert result == Ok(
            [
                PublishedRelease(
                    plugin_name="recorder",
                    version="1.1.0",
                    git_tag="v1.1.0",
                    git_head="abc",
                    channel="next",
                    name="Widget",
                    url="https://pkg.example.com/widget/1.1.0",
                )
            ]
        )

    def test_none_result_skipped(self) -> None:
        plugin = RecordingPlugin(published=None)
        assert PluginRegistry.from_objects(plugin).add_channel(_context()) == Ok([])

    def test_channel_override(self) -> None:
        plugin = RecordingPlugin(published={"channel": "latest"})
        result = PluginRegistry.from_objects(plugin).publish(_context())
        assert result.unwrap()[0].channel == "latest"

    def test_skipped_in_dry_run(self) -> None:
        plugin = RecordingPlugin()
        context = _context(dry_run=True)
        context.dry_run = True
        registry = PluginRegistry.from_objects(plugin)
        assert registry.publish(context) == Ok([])
        assert registry.success(context) == Ok(None)
        assert plugin.calls == []
        assert isinstance(context.console, MockConsole)
        assert context.console.has_warning()


class TestDeclarations:
    """Tests for loading plugins from module paths."""

    @pytest.fixture
    def plugin_module(self) -> Iterator[str]:
        module = types.ModuleType("semrel_test_plugins")

        class Analyzer:
            def __init__(self, bump: str = "patch") -> None:
                self.bump = bump

            def analyze_commits(self, context: Context) -> str:
                return self.bump

        def verify_conditions(context: Context) -> None:
            return None

        module.__dict__.update(Analyzer=Analyzer, verify_conditions=verify_conditions, VALUE=3)
        sys.modules[module.__name__] = module
        yield module.__name__
        del sys.modules[module.__name__]

    def test_class_instantiated_with_options(self, plugin_module: str) -> None:
        registry = PluginRegistry.from_declarations(
            [PluginSpec(path=f"{plugin_module}:Analyzer", options={"bump": "major"})]
        )
        assert isinstance(registry, Ok)
        assert registry.value.names == [f"{plugin_module}:Analyzer"]
        assert registry.value.analyze_commits(_context()) == Ok("major")

    def test_module_used_as_is(self, plugin_module: str) -> None:
        registry = PluginRegistry.from_declarations([PluginSpec(path=plugin_module)])
        assert isinstance(registry, Ok)
        assert len(registry.value) == 1

    def test_invalid_declarations_collected(self, plugin_module: str) -> None:
        registry = PluginRegistry.from_declarations(
            [
                PluginSpec(path="semrel_missing_module_xyz"),
                PluginSpec(path=f"{plugin_module}:Missing"),
                PluginSpec(path=f"{plugin_module}:VALUE"),
                PluginSpec(path=f"{plugin_module}:Analyzer", options={"unknown": 1}),
            ]
        )
        assert isinstance(registry, Err)
        assert [e.code for e in registry.error] == ["EPLUGINCONF"] * 4
