"""
Unit тесты машины состояний сбора параметров
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from handwitch.core.errors import HandExecutionError, ParamNotFoundError, ParamParseError
from handwitch.telegram.buttons import ExtraButton
from handwitch.telegram.errors import SessionTimeoutError
from handwitch.telegram.states import (
    CancelState, FinishState, InquireParamsState, ParamsStateMachine, QueryParamState,
    StartState, parse_param_row, split_param_row
)
from tests.fixtures.fake_transport import FakeTransport


async def wait_until(condition, timeout=1.0):
    """Дождаться выполнения условия, отдавая управление циклу событий"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition was not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def greet(greet_hand):
    greet_hand.process = AsyncMock(return_value="Hello, Alice!")
    return greet_hand


@pytest.fixture
def repos(repos_hand):
    repos_hand.process = AsyncMock(return_value="repo-1\nrepo-2\n")
    return repos_hand


class TestRowParsing:
    """Тесты разбора строк "name value" """

    def test_split(self):
        assert split_param_row("name Alice") == ("name", "Alice")
        assert split_param_row("name   Alice Smith  ") == ("name", "Alice Smith")
        assert split_param_row("name") is None
        assert split_param_row("   ") is None

    def test_parse_row(self, repos_hand):
        assert parse_param_row(repos_hand, "page 3") == ("page", 3)

    def test_parse_row_errors(self, repos_hand):
        with pytest.raises(ParamParseError):
            parse_param_row(repos_hand, "page three")
        with pytest.raises(ParamNotFoundError):
            parse_param_row(repos_hand, "nope 1")
        with pytest.raises(ParamParseError):
            parse_param_row(repos_hand, "page")


class TestStart:
    """Тесты начального состояния"""

    @pytest.mark.asyncio
    async def test_empty_argument_block(self, greet, transport):
        machine = ParamsStateMachine(greet, transport)
        assert await machine.step(StartState("greet")) == InquireParamsState({})
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_bad_rows_are_reported_and_skipped(self, repos, transport):
        machine = ParamsStateMachine(repos, transport)
        state = await machine.step(StartState("user_repos\nlogin octocat\npage abc\nunknown 1\nbroken\n\n"))

        assert state == InquireParamsState({"login": "octocat"})
        assert len(transport.sent) == 3
        assert transport.sent[0].startswith('Failed to parse param: "page" ')
        assert transport.sent[1].startswith('Failed to parse param: "unknown" ')
        assert transport.sent[2].startswith('Failed to parse param: "broken" ')

    @pytest.mark.asyncio
    async def test_string_value_with_spaces(self, greet, transport):
        machine = ParamsStateMachine(greet, transport)
        state = await machine.step(StartState("greet\nname Alice Smith"))
        assert state.params == {"name": "Alice Smith"}


class TestScenarios:
    """Сценарии полного прохода машины"""

    @pytest.mark.asyncio
    async def test_zero_required_params_go_straight_to_finish(self, ping_hand, transport):
        ping_hand.process = AsyncMock(return_value="pong")
        await ParamsStateMachine(ping_hand, transport).run("ping")

        ping_hand.process.assert_awaited_once()
        assert ping_hand.process.call_args.args[0] == {}
        assert transport.prompts == []
        assert transport.reads == 0
        assert transport.sent == ["pong"]

    @pytest.mark.asyncio
    async def test_confirm_flow(self, greet, transport):
        transport.feed("name", "Alice")
        await ParamsStateMachine(greet, transport).run("greet")

        assert len(transport.prompts) == 1
        prompt = transport.prompts[0]
        assert prompt["missing"] == ["name"]
        assert prompt["buttons"] == [ExtraButton.HELP, ExtraButton.CANCEL]
        assert prompt["keyboard"][0] == ["name", "🤖 help name"]
        assert transport.sent == ['Input value for param: "name"', "Hello, Alice!"]
        assert transport.formatted == ["Hello, Alice!"]
        assert greet.process.call_args.args[0] == {"name": "Alice"}

    @pytest.mark.asyncio
    async def test_inline_supply(self, greet, transport):
        await ParamsStateMachine(greet, transport).run("greet\nname Alice")

        assert transport.prompts == []
        assert transport.reads == 0
        assert greet.process.call_args.args[0] == {"name": "Alice"}
        assert transport.sent == ["Hello, Alice!"]

    @pytest.mark.asyncio
    async def test_cancel(self, greet, transport):
        transport.feed("🤖 cancel")
        await ParamsStateMachine(greet, transport).run("greet")

        assert transport.sent == ["Canceled"]
        greet.process.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bulk_entry_finishes_when_nothing_missing(self, repos, transport):
        transport.feed("login octocat\npage 2")
        await ParamsStateMachine(repos, transport).run("user_repos")

        assert repos.process.call_args.args[0] == {"login": "octocat", "page": 2}
        assert len(transport.prompts) == 1

    @pytest.mark.asyncio
    async def test_required_url_param_is_never_defaulted(self, repos, transport):
        transport.feed("page 2", "🤖 Start!", "🤖 cancel")
        await ParamsStateMachine(repos, transport).run("user_repos")

        repos.process.assert_not_awaited()
        assert all("login" in prompt["missing"] for prompt in transport.prompts)

    @pytest.mark.asyncio
    async def test_finish_error_is_fatal(self, greet, transport):
        greet.process = AsyncMock(side_effect=HandExecutionError("Failed to read result"))

        with pytest.raises(HandExecutionError):
            await ParamsStateMachine(greet, transport).run("greet\nname Alice")
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_empty_rendering(self, greet, transport):
        greet.process = AsyncMock(return_value="  \n")
        await ParamsStateMachine(greet, transport).run("greet\nname Alice")
        assert transport.sent == ["Empty response"]
        assert transport.formatted == []

    @pytest.mark.asyncio
    async def test_idle_timeout_is_fatal(self, greet):
        transport = FakeTransport(idle_timeout=0.05)
        with pytest.raises(SessionTimeoutError):
            await ParamsStateMachine(greet, transport).run("greet")


class TestInquireParams:
    """Тесты маршрутизации ввода в состоянии дозапроса"""

    @pytest.mark.asyncio
    async def test_unknown_text(self, greet, transport):
        transport.feed("hello", "🤖 cancel")
        await ParamsStateMachine(greet, transport).run("greet")

        assert transport.sent == ['I don\'t know what is: "hello"', "Canceled"]
        assert len(transport.prompts) == 2

    @pytest.mark.asyncio
    async def test_param_help_stays_in_state(self, repos, transport):
        transport.feed("🤖 help login", "🤖 cancel")
        await ParamsStateMachine(repos, transport).run("user_repos")

        assert transport.sent == ["login(String)\tURL Param\n\tUser login\n", "Canceled"]
        assert len(transport.prompts) == 2

    @pytest.mark.asyncio
    async def test_param_help_for_unknown_param(self, repos, transport):
        transport.feed("🤖 help nope", "🤖 cancel")
        await ParamsStateMachine(repos, transport).run("user_repos")

        assert transport.sent[0] == 'I don\'t know what is: "🤖 help nope"'

    @pytest.mark.asyncio
    async def test_hand_help(self, repos, transport):
        transport.feed("🤖 hand help", "🤖 cancel")
        await ParamsStateMachine(repos, transport).run("user_repos")

        assert transport.sent[0] == repos.help_text()
        assert transport.formatted == []

    @pytest.mark.asyncio
    async def test_service_texts_are_not_formatted(self, repos, transport):
        transport.feed("per_page x_y", "🤖 help per_page", "🤖 cancel")
        await ParamsStateMachine(repos, transport).run("user_repos\npage one_two")

        assert transport.sent[0].startswith('Failed to parse param: "page"')
        assert transport.formatted == []

    @pytest.mark.asyncio
    async def test_ok_with_missing_params(self, greet, transport):
        transport.feed("🤖 Start!", "🤖 cancel")
        await ParamsStateMachine(greet, transport).run("greet")

        assert transport.sent == [
            "Not all params specified!",
            'I don\'t know what is: "🤖 Start!"',
            "Canceled",
        ]

    @pytest.mark.asyncio
    async def test_only_missing_params_can_be_selected(self, repos, transport):
        transport.feed("sort", "🤖 cancel")
        await ParamsStateMachine(repos, transport).run("user_repos")

        assert transport.sent[0] == 'I don\'t know what is: "sort"'

    @pytest.mark.asyncio
    async def test_bulk_parse_is_idempotent(self, repos, transport):
        transport.feed("page 2", "page 2", "🤖 cancel")
        await ParamsStateMachine(repos, transport).run("user_repos")

        values = [prompt["values"] for prompt in transport.prompts]
        assert values == [{}, {"page": 2}, {"page": 2}]
        assert [prompt["missing"] for prompt in transport.prompts][1:] == [["login"], ["login"]]

    @pytest.mark.asyncio
    async def test_bulk_parse_reports_bad_rows(self, repos, transport):
        transport.feed("login octocat\npage x", "🤖 cancel")
        await ParamsStateMachine(repos, transport).run("user_repos")

        assert transport.sent[0].startswith('Failed to parse param: "page" ')
        assert transport.prompts[1]["values"] == {"login": "octocat"}

    @pytest.mark.asyncio
    async def test_step_transitions(self, greet, transport):
        machine = ParamsStateMachine(greet, transport)

        transport.feed("🤖 cancel")
        assert await machine.step(InquireParamsState({})) == CancelState()

        transport.feed("name")
        state = await machine.step(InquireParamsState({}))
        assert isinstance(state, QueryParamState)
        assert state.param.name == "name"

        assert await machine.step(InquireParamsState({"name": "Bob"})) == FinishState({"name": "Bob"})


class TestQueryParam:
    """Тесты ввода значения одного параметра"""

    @pytest.mark.asyncio
    async def test_value_moves_from_missing_to_params(self, repos, transport):
        params = {"login": "octocat"}
        missing = {"page": repos.get_param("page")}
        transport.feed("3")

        state = await ParamsStateMachine(repos, transport).step(
            QueryParamState(repos.get_param("page"), params, missing)
        )

        assert state == InquireParamsState({"login": "octocat", "page": 3})
        assert params["page"] == 3
        assert "page" not in missing

    @pytest.mark.asyncio
    async def test_bad_parse_reprompts_without_mutation(self, repos):
        transport = FakeTransport()
        params = {}
        missing = {"page": repos.get_param("page")}
        machine = ParamsStateMachine(repos, transport)

        task = asyncio.create_task(machine.step(QueryParamState(repos.get_param("page"), params, missing)))
        transport.feed("notanumber")
        await wait_until(lambda: len(transport.sent) == 2)

        assert transport.sent[0] == 'Input value for param: "page"'
        assert transport.sent[1].startswith("Failed to parse param: ")
        assert params == {}
        assert "page" in missing
        assert not task.done()

        transport.feed("7")
        state = await task
        assert state == InquireParamsState({"page": 7})
        assert "page" not in missing

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, repos, transport):
        machine = ParamsStateMachine(repos, transport)
        task = asyncio.create_task(
            machine.step(QueryParamState(repos.get_param("page"), {}, {"page": repos.get_param("page")}))
        )
        await wait_until(lambda: len(transport.sent) == 1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
