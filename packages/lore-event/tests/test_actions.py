"""Tests for action execution and action-list control flow."""
from __future__ import annotations

import dataclasses
import math

import pytest

from lore import EndGameState, EvaluationError, UnknownIdError, UsageError
from lore_event import (
    ActionList,
    Branch,
    ConstantText,
    DisplayMessage,
    EndGame,
    Expr,
    Flow,
    GameEvent,
    Stop,
    Switch,
    UpdateVariable,
)


def _set(name: str, value: object) -> dict:
    return {"id": "UpdateVariable", "variable": name, "value": value}


class TestControlFlow:
    @pytest.mark.asyncio
    async def test_runs_in_order(self, harness) -> None:
        flow = await harness.run([_set("x", 1), _set("x", "x * 10"), _set("y", "x + 1")])
        assert flow == Flow.CONTINUE
        assert harness.variables.get_var("x") == 10
        assert harness.variables.get_var("y") == 11

    @pytest.mark.asyncio
    async def test_stop_local_only_stops_nested_list(self, harness) -> None:
        flow = await harness.run(
            [
                _set("a", 1),
                {
                    "id": "Switch",
                    "branches": [
                        {"condition": 1, "actions": [_set("b", 1), {"id": "Stop"}, _set("c", 1)]},
                    ],
                },
                _set("d", 1),
            ]
        )
        assert flow == Flow.CONTINUE
        assert harness.variables.has_var("b")
        assert not harness.variables.has_var("c")
        assert harness.variables.get_var("d") == 1

    @pytest.mark.asyncio
    async def test_stop_local_at_top_level_reports_continue(self, harness) -> None:
        flow = await harness.run([_set("a", 1), {"id": "Stop"}, _set("b", 1)])
        assert flow == Flow.CONTINUE
        assert not harness.variables.has_var("b")

    @pytest.mark.asyncio
    async def test_stop_global_aborts_every_enclosing_list(self, harness) -> None:
        flow = await harness.run(
            [
                {
                    "id": "CoinFlip",
                    "probability": 1,
                    "success": [
                        {
                            "id": "Switch",
                            "branches": [{"condition": 1, "actions": [{"id": "Stop", "global": True}]}],
                        },
                        _set("inner", 1),
                    ],
                },
                _set("outer", 1),
            ]
        )
        assert flow == Flow.STOP_GLOBAL
        assert not harness.variables.has_var("inner")
        assert not harness.variables.has_var("outer")

    @pytest.mark.asyncio
    async def test_double_start_is_usage_error(self, harness) -> None:
        actions = ActionList([DisplayMessage(ConstantText("hi"), ConstantText("ok"))])

        class Reenter:
            async def display_message(self, message, confirm, icon="", fx=""):
                await actions.run(ctx)

            async def display_choices(self, message, choices, icon=""):
                return 0

        ctx = dataclasses.replace(harness.ctx, proxy=Reenter())
        with pytest.raises(UsageError):
            await actions.run(ctx)
        assert actions.executing is False

    @pytest.mark.asyncio
    async def test_observer_sees_every_executed_action(self, harness) -> None:
        actions = harness.action_list([_set("a", 1), {"id": "Log", "message": "x"}])
        await actions.run(harness.ctx)
        assert harness.executed == list(actions)

    @pytest.mark.asyncio
    async def test_end_game_stops_list(self, harness) -> None:
        flow = await harness.run(
            [
                {"id": "EndGame", "message": "You win", "confirm": "OK", "winning": True,
                 "endingType": "peace"},
                _set("after", 1),
            ]
        )
        assert flow == Flow.STOP_GLOBAL
        assert harness.end_state == EndGameState.WIN
        assert harness.ending == "peace"
        assert harness.proxy.messages == [("You win", "OK")]
        assert not harness.variables.has_var("after")

    @pytest.mark.asyncio
    async def test_end_game_loss(self, harness) -> None:
        await harness.run([{"id": "EndGame", "message": "Lost", "confirm": "OK", "winning": False}])
        assert harness.end_state == EndGameState.LOSS


class TestDisplay:
    @pytest.mark.asyncio
    async def test_display_message(self, harness) -> None:
        await harness.run([{"id": "DisplayMessage", "message": "Hello", "confirm": "Next"}])
        assert harness.proxy.messages == [("Hello", "Next")]

    @pytest.mark.asyncio
    async def test_display_random_message(self, harness) -> None:
        harness.draws = [0.7]
        await harness.run(
            [{"id": "DisplayRandomMessage", "messages": ["a", "b", "c"], "confirm": "ok"}]
        )
        assert harness.proxy.messages == [("c", "ok")]

    @pytest.mark.asyncio
    async def test_choices_filtered_by_requirement(self, harness) -> None:
        harness.variables.set_var("gold", 1)
        harness.proxy.answers = [2]
        await harness.run(
            [
                {
                    "id": "DisplayChoices",
                    "message": "Pay?",
                    "choices": [
                        {"message": "Pay 5", "requirement": "gold >= 5", "actions": [_set("paid", 1)]},
                        {"message": "Pay 1", "requirement": "gold >= 1"},
                        {"message": "Leave", "actions": [_set("left", 1)]},
                    ],
                }
            ]
        )
        assert harness.proxy.prompts == [("Pay?", [("Pay 1", 1), ("Leave", 2)])]
        assert harness.variables.get_var("left") == 1
        assert not harness.variables.has_var("paid")

    @pytest.mark.asyncio
    async def test_choice_not_offered_is_usage_error(self, harness) -> None:
        harness.proxy.answers = [0]
        with pytest.raises(UsageError):
            await harness.run(
                [
                    {
                        "id": "DisplayChoices",
                        "message": "?",
                        "choices": [{"message": "No", "requirement": 0}, {"message": "Yes"}],
                    }
                ]
            )

    @pytest.mark.asyncio
    async def test_no_available_choice(self, harness) -> None:
        with pytest.raises(EvaluationError):
            await harness.run(
                [{"id": "DisplayChoices", "message": "?", "choices": [{"message": "No", "requirement": 0}]}]
            )

    @pytest.mark.asyncio
    async def test_log(self, harness, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("INFO", logger="lore_event.actions"):
            await harness.run([{"id": "Log", "message": "hello log"}])
        assert "hello log" in caplog.text


class TestBranching:
    @pytest.mark.asyncio
    async def test_random_picks_by_weight(self, harness) -> None:
        harness.draws = [0.8]
        await harness.run(
            [
                {
                    "id": "Random",
                    "groups": [
                        {"weight": 1, "actions": [_set("pick", 0)]},
                        {"weight": "1", "actions": [_set("pick", 1)]},
                        {"weight": 2, "actions": [_set("pick", 2)]},
                    ],
                }
            ]
        )
        assert harness.variables.get_var("pick") == 2

    @pytest.mark.asyncio
    async def test_random_weights_reevaluated(self, harness) -> None:
        actions = harness.action_list(
            [
                {
                    "id": "Random",
                    "groups": [
                        {"weight": "w", "actions": [_set("pick", 0)]},
                        {"weight": 1, "actions": [_set("pick", 1)]},
                    ],
                }
            ]
        )
        harness.variables.set_var("w", 0)
        harness.draws = [0.0]
        await actions.run(harness.ctx)
        assert harness.variables.get_var("pick") == 1
        harness.variables.set_var("w", 1)
        harness.draws = [0.0]
        await actions.run(harness.ctx)
        assert harness.variables.get_var("pick") == 0

    @pytest.mark.asyncio
    async def test_random_invalid_weights(self, harness) -> None:
        with pytest.raises(EvaluationError):
            await harness.run([{"id": "Random", "groups": [{"weight": -1, "actions": []}]}])

    @pytest.mark.asyncio
    async def test_random_infinite_weight(self, harness) -> None:
        groups = [{"weight": "1 / 0", "actions": [_set("pick", 0)]}, {"weight": 1, "actions": [_set("pick", 1)]}]
        with pytest.raises(EvaluationError, match="finite"):
            await harness.run([{"id": "Random", "groups": groups}])
        assert not harness.variables.has_var("pick")

    @pytest.mark.asyncio
    async def test_coin_flip(self, harness) -> None:
        actions = harness.action_list(
            [{"id": "CoinFlip", "probability": 0.3, "success": [_set("r", 1)], "fail": [_set("r", 0)]}]
        )
        harness.draws = [0.29]
        await actions.run(harness.ctx)
        assert harness.variables.get_var("r") == 1
        harness.draws = [0.3]
        await actions.run(harness.ctx)
        assert harness.variables.get_var("r") == 0

    @pytest.mark.asyncio
    async def test_coin_flip_negative_probability_always_fails(self, harness) -> None:
        harness.draws = [0.0]
        await harness.run(
            [{"id": "CoinFlip", "probability": -2, "success": [_set("r", 1)], "fail": [_set("r", 0)]}]
        )
        assert harness.variables.get_var("r") == 0

    @pytest.mark.asyncio
    async def test_switch_first_match_only(self, harness) -> None:
        harness.variables.set_var("x", 5)
        await harness.run(
            [
                {
                    "id": "Switch",
                    "branches": [
                        {"condition": "x > 10", "actions": [_set("band", 3)]},
                        {"condition": "x > 3", "actions": [_set("band", 2)]},
                        {"condition": "x > 1", "actions": [_set("band", 1)]},
                    ],
                }
            ]
        )
        assert harness.variables.get_var("band") == 2

    @pytest.mark.asyncio
    async def test_switch_no_match(self, harness) -> None:
        flow = await harness.run(
            [{"id": "Switch", "branches": [{"condition": 0, "actions": [_set("band", 1)]}]}]
        )
        assert flow == Flow.CONTINUE
        assert not harness.variables.has_var("band")

    @pytest.mark.asyncio
    async def test_switch_condition_record(self, harness) -> None:
        action = Switch((Branch(Expr(harness.expressions.compile("1")), ActionList([UpdateVariable("k", 4)])),))
        await ActionList([action]).run(harness.ctx)
        assert harness.variables.get_var("k") == 4


class TestLoop:
    @pytest.mark.asyncio
    async def test_while_style(self, harness) -> None:
        harness.variables.set_var("i", 5)
        await harness.run(
            [{"id": "Loop", "stopCondition": "i >= 5", "actions": [_set("i", "i + 1")]}]
        )
        assert harness.variables.get_var("i") == 5

    @pytest.mark.asyncio
    async def test_do_while_style(self, harness) -> None:
        harness.variables.set_var("i", 5)
        await harness.run(
            [
                {
                    "id": "Loop",
                    "stopCondition": "i >= 5",
                    "checkStopConditionAtEnd": True,
                    "actions": [_set("i", "i + 1")],
                }
            ]
        )
        assert harness.variables.get_var("i") == 6

    @pytest.mark.asyncio
    async def test_stops_on_condition(self, harness) -> None:
        harness.variables.set_var("i", 0)
        await harness.run(
            [{"id": "Loop", "stopCondition": "i >= 3", "actions": [_set("i", "i + 1")]}]
        )
        assert harness.variables.get_var("i") == 3

    @pytest.mark.asyncio
    async def test_max_iterations(self, harness) -> None:
        harness.variables.set_var("i", 0)
        await harness.run([{"id": "Loop", "maxIterations": 4, "actions": [_set("i", "i + 1")]}])
        assert harness.variables.get_var("i") == 4

    @pytest.mark.asyncio
    async def test_unbounded_runs_past_any_cap(self, harness) -> None:
        harness.variables.set_var("i", 0)
        await harness.run(
            [{"id": "Loop", "stopCondition": "i >= 5000", "actions": [_set("i", "i + 1")]}]
        )
        assert harness.variables.get_var("i") == 5000

    @pytest.mark.asyncio
    async def test_stop_local_ends_iteration_only(self, harness) -> None:
        harness.variables.set_var("i", 0)
        await harness.run(
            [
                {
                    "id": "Loop",
                    "maxIterations": 3,
                    "actions": [_set("i", "i + 1"), {"id": "Stop"}, _set("never", 1)],
                }
            ]
        )
        assert harness.variables.get_var("i") == 3
        assert not harness.variables.has_var("never")

    @pytest.mark.asyncio
    async def test_end_game_breaks_loop(self, harness) -> None:
        harness.variables.set_var("i", 0)
        flow = await harness.run(
            [
                {
                    "id": "Loop",
                    "actions": [
                        _set("i", "i + 1"),
                        {
                            "id": "Switch",
                            "branches": [
                                {
                                    "condition": "i == 2",
                                    "actions": [
                                        {"id": "EndGame", "message": "m", "confirm": "c", "winning": False}
                                    ],
                                }
                            ],
                        },
                    ],
                }
            ]
        )
        assert flow == Flow.STOP_GLOBAL
        assert harness.variables.get_var("i") == 2


class TestStateMutation:
    @pytest.mark.asyncio
    async def test_update_variables_sequential(self, harness) -> None:
        await harness.run([{"id": "UpdateVariables", "updates": {"a": 2, "b": "a * 3"}}])
        assert harness.variables.get_var("b") == 6

    @pytest.mark.asyncio
    async def test_update_variable_limits(self, harness) -> None:
        harness.variables.set_var("hp", 50)
        await harness.run(
            [{"id": "UpdateVariableLimits", "variable": "hp", "lowerBound": 0, "upperBound": "10 * 2"}]
        )
        assert harness.variables.get_var("hp") == 20
        assert harness.variables.get_var_limits("hp") == (0, 20)

    @pytest.mark.asyncio
    async def test_update_variable_limits_defaults(self, harness) -> None:
        await harness.run([{"id": "UpdateVariableLimits", "variable": "hp", "lowerBound": 1}])
        assert harness.variables.get_var_limits("hp") == (1, math.inf)

    @pytest.mark.asyncio
    async def test_invalid_limits(self, harness) -> None:
        with pytest.raises(EvaluationError):
            await harness.run(
                [{"id": "UpdateVariableLimits", "variable": "hp", "lowerBound": 5, "upperBound": 1}]
            )

    @pytest.mark.asyncio
    async def test_give_item(self, harness) -> None:
        harness.variables.set_var("n", 3)
        await harness.run([{"id": "GiveItem", "itemId": "coin", "amount": "n * 2"}])
        assert harness.inventory.count("coin") == 6

    @pytest.mark.asyncio
    async def test_negative_amount_removes(self, harness) -> None:
        harness.inventory.add("coin", 5)
        await harness.run([{"id": "GiveItem", "itemId": "coin", "amount": -2}])
        assert harness.inventory.count("coin") == 3

    @pytest.mark.asyncio
    async def test_fractional_amount_is_error(self, harness) -> None:
        with pytest.raises(EvaluationError):
            await harness.run([{"id": "GiveItem", "itemId": "coin", "amount": 1.5}])

    @pytest.mark.asyncio
    async def test_unknown_item(self, harness) -> None:
        with pytest.raises(UnknownIdError):
            await harness.run([{"id": "GiveItem", "itemId": "dragon", "amount": 1}])

    @pytest.mark.asyncio
    async def test_update_item_amounts(self, harness) -> None:
        harness.inventory.add("sword", 1)
        await harness.run([{"id": "UpdateItemAmounts", "updates": {"sword": -1, "coin": 10}}])
        assert "sword" not in harness.inventory
        assert harness.inventory.count("coin") == 10

    @pytest.mark.asyncio
    async def test_set_status(self, harness) -> None:
        await harness.run([{"id": "SetStatus", "statusId": "poisoned", "on": True}])
        assert "poisoned" in harness.status_table
        await harness.run([{"id": "SetStatus", "statusId": "poisoned", "on": False}])
        assert "poisoned" not in harness.status_table

    @pytest.mark.asyncio
    async def test_missing_variable_in_expression(self, harness) -> None:
        with pytest.raises(UnknownIdError):
            await harness.run([_set("x", "ghost + 1")])


class TestSchedulerActions:
    def _register(self, harness, *ids: str) -> None:
        for id in ids:
            harness.scheduler.register(GameEvent(id, "Somewhere", ActionList()))

    @pytest.mark.asyncio
    async def test_trigger_events_only_enqueues(self, harness) -> None:
        await harness.run(
            [
                {
                    "id": "TriggerEvents",
                    "events": ["Dawn", {"id": "Storm", "priority": 5, "probability": "0.5"}],
                }
            ]
        )
        pending = harness.scheduler.pending()
        assert [(p.trigger_id, p.priority, p.probability) for p in pending] == [
            ("Storm", 5, 0.5),
            ("Dawn", 0, 1.0),
        ]

    @pytest.mark.asyncio
    async def test_enable_disable(self, harness) -> None:
        self._register(harness, "a", "b")
        await harness.run([{"id": "DisableEvents", "eventIds": ["a", "b"]}])
        assert harness.scheduler.is_disabled("a")
        assert harness.scheduler.is_disabled("b")
        await harness.run([{"id": "EnableEvents", "eventIds": ["b"]}])
        assert harness.scheduler.is_disabled("a")
        assert not harness.scheduler.is_disabled("b")

    @pytest.mark.asyncio
    async def test_unknown_event(self, harness) -> None:
        with pytest.raises(UnknownIdError):
            await harness.run([{"id": "EnableEvents", "eventIds": ["ghost"]}])


class TestDirectConstruction:
    @pytest.mark.asyncio
    async def test_dataclass_variants(self, harness) -> None:
        actions = ActionList(
            [
                UpdateVariable("x", 2),
                DisplayMessage(ConstantText("x is set"), ConstantText("ok")),
                EndGame(ConstantText("done"), ConstantText("ok"), winning=True),
                Stop(),
            ]
        )
        assert await actions.run(harness.ctx) == Flow.STOP_GLOBAL
        assert harness.proxy.messages == [("x is set", "ok"), ("done", "ok")]
        assert len(harness.executed) == 3
