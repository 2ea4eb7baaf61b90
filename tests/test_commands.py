"""
Tests for command registration, argument parsing and scheduled tasks.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from core.exceptions import ArgumentError
from runner.commands import CommandRegistry, coerce, signature, tokenize


@pytest.fixture
def pipeline() -> MagicMock:
    pipeline = MagicMock()
    pipeline.invoke = AsyncMock()
    pipeline.run_task = AsyncMock()
    return pipeline


@pytest.fixture
def search(make_source):
    return make_source(
        "search",
        alias=["s"],
        expert={
            "command_args": [
                {"name": "engine", "required": True},
                {"name": "limit", "type": "number"},
                {"name": "query", "type": "text"},
            ],
            "command_options": [
                {"name": "verbose", "acronym": "v"},
                {"name": "lang", "acronym": "l", "type": "string"},
                {"name": "page", "type": "number"},
                {"name": "mode", "value": "strict"},
            ],
        },
    )


@pytest.fixture
def registry(pipeline, search) -> CommandRegistry:
    return CommandRegistry(pipeline, [search])


class TestTokenize:
    def test_quotes_and_markup(self):
        content = 'say "hello world" <img src="a b.png"/> \'x y\' z'
        assert tokenize(content) == ["say", "hello world", '<img src="a b.png"/>', "x y", "z"]

    def test_empty(self):
        assert tokenize("   ") == []


class TestCoerce:
    def test_numbers(self):
        assert coerce("3", "number") == 3
        assert coerce("2.5", "number") == 2.5
        assert coerce("3", "string") == "3"

    def test_bad_number(self):
        with pytest.raises(ArgumentError, match="Expected a number, got abc"):
            coerce("abc", "number")


class TestParse:
    """Invocation lines become Argv."""

    def test_arguments_and_text_rest(self, registry, search):
        argv = registry.parse(search, "search web 5 cats and dogs")
        assert argv.name == "search"
        assert argv.args == ["web", 5, "cats and dogs"]
        assert argv.options == {}
        assert argv.source == "search web 5 cats and dogs"

    def test_alias_skipped(self, registry, search):
        argv = registry.parse(search, "s web")
        assert argv.name == "s"
        assert argv.args == ["web"]

    def test_options(self, registry, search):
        argv = registry.parse(search, "search web -v --lang en --page=2 --mode")
        assert argv.options == {"verbose": True, "lang": "en", "page": 2, "mode": "strict"}

    def test_acronym_with_value(self, registry, search):
        assert registry.parse(search, "search web -l fr").options == {"lang": "fr"}

    def test_negated_flag(self, registry, search):
        assert registry.parse(search, "search web --no-verbose").options == {"verbose": False}

    def test_negative_number_is_argument(self, registry, search):
        assert registry.parse(search, "search web -3").args == ["web", -3]

    def test_missing_required(self, registry, search):
        with pytest.raises(ArgumentError, match="Missing argument: engine"):
            registry.parse(search, "search")

    def test_later_required_argument_reported(self, registry, make_source):
        source = make_source(
            "convert",
            expert={"command_args": [{"name": "amount", "type": "number"}, {"name": "currency", "required": True}]},
        )
        with pytest.raises(ArgumentError, match="Missing argument: currency"):
            registry.parse(source, "convert")

    def test_unknown_option(self, registry, search):
        with pytest.raises(ArgumentError, match="Unknown option: --color"):
            registry.parse(search, "search web --color")

    def test_option_without_value(self, registry, search):
        with pytest.raises(ArgumentError, match="needs a value"):
            registry.parse(search, "search web --lang")

    def test_topic_flags_only_in_topic_mode(self, make_source, pipeline):
        topical = make_source("news", msg_send_mode="topic")
        registry = CommandRegistry(pipeline, [topical])
        assert registry.parse(topical, "news --topic-off").options == {"topic": False}

        direct = make_source("plain")
        with pytest.raises(ArgumentError):
            CommandRegistry(pipeline, [direct]).parse(direct, "plain --topic-on")

    def test_signature(self, search):
        assert signature(search) == "search <engine:string> [limit:number] [query:text]"


class TestRegistry:
    def test_lookup_by_alias(self, registry, search):
        assert registry.get_command("s") is search
        assert registry.has_command("search")
        assert registry.get_command("other") is None

    def test_duplicates_keep_first(self, pipeline, make_source):
        first = make_source("dup", desc="first")
        registry = CommandRegistry(pipeline, [first, make_source("dup", desc="second")])
        assert registry.list_commands() == [first]

    @pytest.mark.asyncio
    async def test_execute_invokes_pipeline(self, registry, pipeline, search, session):
        await registry.execute("s", session, "s web")
        source, called_session, argv = pipeline.invoke.await_args.args
        assert source is search
        assert called_session is session
        assert argv.args == ["web"]

    @pytest.mark.asyncio
    async def test_execute_reports_usage(self, registry, pipeline, session):
        await registry.execute("search", session, "search web --bogus")
        pipeline.invoke.assert_not_awaited()
        assert session.sent == [
            "Unknown option: --bogus\nUsage: search <engine:string> [limit:number] [query:text]"
        ]

    @pytest.mark.asyncio
    async def test_execute_reports_failure(self, registry, pipeline, session):
        pipeline.invoke.side_effect = RuntimeError("boom")
        await registry.execute("search", session, "search web")
        assert session.sent == ["Failed to execute command search"]

    @pytest.mark.asyncio
    async def test_group_runs_command(self, registry, pipeline, search, session):
        await registry.execute("net-get", session, "net-get s web")
        source, _, argv = pipeline.invoke.await_args.args
        assert source is search
        assert argv.name == "s"
        assert argv.args == ["web"]

    @pytest.mark.asyncio
    async def test_bare_group_lists_usages(self, pipeline, search, make_source, session):
        registry = CommandRegistry(pipeline, [search, make_source("ping")], group="data")
        await registry.execute("data", session, "data")
        assert session.sent == ["search <engine:string> [limit:number] [query:text]\nping"]

    @pytest.mark.asyncio
    async def test_empty_group(self, pipeline, session):
        await CommandRegistry(pipeline, []).execute("net-get", session, "net-get")
        assert session.sent == ["No data commands configured"]


class TestScheduledTasks:
    @pytest.fixture
    def task_source(self, make_source):
        def make(command: str = "daily", **kwargs):
            kwargs.setdefault("msg_send_mode", "topic")
            expert = {"scheduled_task": True, "cron": "0 9 * * *", "scheduled_task_content": command}
            expert.update(kwargs.pop("expert", {}))
            return make_source(command, expert=expert, **kwargs)

        return make

    def test_refusals(self, pipeline, task_source):
        sources = [
            task_source("ok"),
            task_source("direct", msg_send_mode="direct"),
            task_source("link", send_type="cmdLink"),
            task_source("argful", expert={"command_args": [{"name": "x", "required": True}]}),
            task_source("nocron", expert={"cron": ""}),
            task_source("off", expert={"scheduled_task": False}),
        ]
        scheduler = MagicMock()
        registry = CommandRegistry(pipeline, sources)

        assert registry.register_tasks(scheduler, MagicMock()) == 1
        assert scheduler.register.call_args.args[0] == "0 9 * * *"

    def test_needs_scheduler_and_topics(self, pipeline, task_source):
        registry = CommandRegistry(pipeline, [task_source()])
        assert registry.register_tasks(None, MagicMock()) == 0
        assert registry.register_tasks(MagicMock(), None) == 0

    @pytest.mark.asyncio
    async def test_callback_runs_task(self, pipeline, task_source):
        source = task_source()
        scheduler = MagicMock()
        CommandRegistry(pipeline, [source]).register_tasks(scheduler, MagicMock())

        callback = scheduler.register.call_args.args[1]
        await callback()

        called_source, argv = pipeline.run_task.await_args.args
        assert called_source is source
        assert argv.name == "daily"

    @pytest.mark.asyncio
    async def test_callback_failures_logged(self, pipeline, task_source):
        pipeline.run_task.side_effect = RuntimeError("boom")
        scheduler = MagicMock()
        CommandRegistry(pipeline, [task_source()]).register_tasks(scheduler, MagicMock())
        await scheduler.register.call_args.args[1]()

    def test_clear_tasks_disposes(self, pipeline, task_source):
        disposer = MagicMock()
        scheduler = MagicMock()
        scheduler.register.return_value = disposer
        registry = CommandRegistry(pipeline, [task_source()])

        registry.register_tasks(scheduler, MagicMock())
        registry.register_tasks(scheduler, MagicMock())
        assert disposer.call_count == 1

        registry.clear_tasks()
        assert disposer.call_count == 2

    def test_non_callable_handles_ignored(self, pipeline, task_source):
        scheduler = MagicMock()
        scheduler.register.return_value = "job-1"
        registry = CommandRegistry(pipeline, [task_source()])
        registry.register_tasks(scheduler, MagicMock())
        registry.clear_tasks()
