"""Unit tests for acts, intents, guards and small utilities."""

import pytest
import structlog
from pydantic import ValidationError

from dialog_controls.acts.content import LiteralContentAct, ValueSetAct
from dialog_controls.acts.initiative import ConfirmValueAct, RequestValueAct
from dialog_controls.common.number import NumberControl
from dialog_controls.config import Settings, get_settings
from dialog_controls.controls.base import ControlState
from dialog_controls.controls.container import ContainerControl
from dialog_controls.controls.result import ControlResultBuilder, SessionBehavior
from dialog_controls.errors import DuplicateControlIdError, ProtocolViolationError, StateConsistencyError
from dialog_controls.intents.base import IntentRequest, LaunchRequest, UserEventRequest, parse_request
from dialog_controls.intents.control_intents import (
    SlotResolution,
    unpack_general_control_intent,
    unpack_value_control_intent,
    value_control_intent,
    value_control_intent_name,
)
from dialog_controls.intents.predicates import is_bare_no, is_bare_yes, is_control_intent, is_user_event_for_control
from dialog_controls.logging import configure_logging
from dialog_controls.testing import TestInput
from dialog_controls.utils.evaluation import evaluate_bool_prop
from dialog_controls.utils.formatting import format_list
from dialog_controls.utils.guards import fail_if, false_if_guard_failed, ok_if
from dialog_controls.utils.tree import create_control_map, diagram, extract_state_map


# =============================================================================
# Acts
# =============================================================================


class TestActs:
    """Tests for system acts."""

    def test_name_drops_suffix(self):
        assert ValueSetAct.act_name() == "ValueSet"
        assert RequestValueAct("age").name == "RequestValue"

    def test_to_dict(self):
        act = ConfirmValueAct("age", value=16, rendered_value="16")

        assert act.to_dict() == {
            "name": "ConfirmValue",
            "control_id": "age",
            "takes_initiative": True,
            "payload": {"value": 16, "rendered_value": "16"},
        }

    def test_content_acts_do_not_take_initiative(self):
        assert LiteralContentAct("root", prompt_fragment="Hi.").takes_initiative is False
        assert str(ValueSetAct("age", value=3)) == "ValueSet(age)"


class TestResultBuilder:
    """Tests for ControlResultBuilder."""

    def test_single_initiative_act(self):
        builder = ControlResultBuilder()
        builder.add_act(ValueSetAct("age", value=3))
        builder.add_act(RequestValueAct("name"))

        with pytest.raises(ProtocolViolationError):
            builder.add_act(ConfirmValueAct("age", value=3))

        assert builder.initiative_act.control_id == "name"

    def test_build(self):
        builder = ControlResultBuilder()
        builder.add_act(ValueSetAct("age", value=3))
        builder.end_session()

        result = builder.build()

        assert result.session_behavior == SessionBehavior.END
        assert result.has_initiative_act() is False
        assert result.to_dict()["acts"][0]["name"] == "ValueSet"


# =============================================================================
# Requests and intents
# =============================================================================


class TestIntents:
    """Tests for request models and control intents."""

    def test_value_control_intent_name(self):
        assert value_control_intent_name("AMAZON.NUMBER") == "AMAZON_NUMBER_ValueControlIntent"

    def test_unpack_value_intent(self):
        intent = value_control_intent("Topping", ["cheese", "ham"], action="add", target="toppings", er_match=False)

        payload = unpack_value_control_intent(intent)

        assert payload.action == "add"
        assert payload.target == "toppings"
        assert payload.feedback is None
        assert [r.value for r in payload.values] == ["cheese", "ham"]
        assert payload.value == "cheese"
        assert payload.er_match is False

    def test_unpack_keeps_resolutions(self):
        intent = value_control_intent("City", SlotResolution(value="NYC", er_match=True))

        assert unpack_value_control_intent(intent).value == "NYC"

    def test_unpack_rejects_other_intents(self):
        with pytest.raises(ValueError):
            unpack_value_control_intent(TestInput.yes().intent)
        with pytest.raises(ValueError):
            unpack_general_control_intent(TestInput.yes().intent)

    def test_parse_request(self):
        assert isinstance(parse_request({"type": "LaunchRequest"}), LaunchRequest)

        request = parse_request({"type": "UserEventRequest", "arguments": ["age", 3]})
        assert isinstance(request, UserEventRequest)
        assert request.arguments == ["age", 3]

        with pytest.raises(ValidationError):
            parse_request({"type": "Nope"})

    def test_request_survives_json(self):
        request = TestInput.value("AMAZON.NUMBER", "16", action="set")

        parsed = parse_request(request.model_dump(mode="json"))

        assert isinstance(parsed, IntentRequest)
        assert unpack_value_control_intent(parsed.intent).value == "16"


class TestPredicates:
    """Tests for input predicates."""

    @pytest.mark.parametrize(
        "request_, yes, no",
        [
            (TestInput.yes(), True, False),
            (TestInput.no(), False, True),
            (TestInput.general(feedback="affirm"), True, False),
            (TestInput.general(feedback="disaffirm"), False, True),
            (TestInput.general(feedback="affirm", target="age"), False, False),
            (TestInput.launch(), False, False),
        ],
    )
    def test_bare_feedback(self, make_input, request_, yes, no):
        input = make_input(request_)

        assert is_bare_yes(input) is yes
        assert is_bare_no(input) is no

    @pytest.mark.parametrize(
        "request_, expected",
        [
            (TestInput.value("AMAZON.NUMBER", "3"), True),
            (TestInput.general(target="age"), True),
            (TestInput.yes(), False),
            (TestInput.fallback(), False),
            (TestInput.user_event("age", 3), False),
        ],
    )
    def test_control_intent(self, make_input, request_, expected):
        assert is_control_intent(make_input(request_)) is expected

    def test_user_event_for_control(self, make_input):
        input = make_input(TestInput.user_event("age", 3))

        assert is_user_event_for_control(input, "age") is True
        assert is_user_event_for_control(input, "age", arg_count=2) is True
        assert is_user_event_for_control(input, "age", arg_count=3) is False
        assert is_user_event_for_control(input, "name") is False


class TestScriptSteps:
    """Tests for TestInput.from_step."""

    def test_builders(self):
        assert isinstance(TestInput.from_step({"launch": None}), LaunchRequest)
        assert TestInput.from_step({"intent": "AMAZON.HelpIntent"}).intent.name == "AMAZON.HelpIntent"
        assert TestInput.from_step({"user_event": ["age", 3]}).arguments == ["age", 3]

        request = TestInput.from_step({"value": {"slot_type": "AMAZON.NUMBER", "value": "16", "action": "set"}})
        assert unpack_value_control_intent(request.intent).action == "set"

    @pytest.mark.parametrize(
        "step",
        [{True: None}, {"shout": None}, {"from_step": None}, {"launch": None, "yes": None}],
    )
    def test_rejects(self, step):
        with pytest.raises(ValueError):
            TestInput.from_step(step)


# =============================================================================
# Utilities
# =============================================================================


class TestGuards:
    """Tests for guard helpers."""

    def test_sync(self):
        @false_if_guard_failed
        def positive(x):
            ok_if(x > 0)
            return True

        assert positive(1) is True
        assert positive(-1) is False

    @pytest.mark.asyncio
    async def test_async(self):
        @false_if_guard_failed
        async def positive(x):
            ok_if(x > 0)
            return True

        assert await positive(1) is True
        assert await positive(-1) is False

    def test_fail_if(self):
        @false_if_guard_failed
        def not_zero(x):
            fail_if(x == 0)
            return True

        assert not_zero(1) is True
        assert not_zero(0) is False

    def test_other_errors_propagate(self):
        @false_if_guard_failed
        def broken():
            raise KeyError("x")

        with pytest.raises(KeyError):
            broken()


@pytest.mark.asyncio
async def test_evaluate_bool_prop():
    async def async_prop(state, input):
        return state == "ready"

    assert await evaluate_bool_prop(True, None, None) is True
    assert await evaluate_bool_prop(lambda state, input: False, None, None) is False
    assert await evaluate_bool_prop(async_prop, "ready", None) is True


@pytest.mark.parametrize(
    "items, joiner, expected",
    [
        ([], "or", ""),
        (["a"], "or", "a"),
        (["a", "b"], "or", "a or b"),
        (["a", "b", "c"], "and", "a, b, and c"),
    ],
)
def test_format_list(items, joiner, expected):
    assert format_list(items, joiner=joiner) == expected


class TestTree:
    """Tests for tree helpers."""

    def test_maps(self):
        root = ContainerControl("root", children=[NumberControl("age")])
        root.children[0].set_value(16)

        assert list(create_control_map(root)) == ["root", "age"]
        assert extract_state_map(root)["age"]["value"] == 16

    def test_duplicate_ids(self):
        root = ContainerControl("root", children=[NumberControl("age"), NumberControl("age")])

        with pytest.raises(DuplicateControlIdError):
            create_control_map(root)
        with pytest.raises(DuplicateControlIdError):
            extract_state_map(root)

    def test_diagram(self):
        root = ContainerControl("root", children=[NumberControl("age")])
        root.children[0].set_value(16)

        assert diagram(root) == "root\n  age 16"

    def test_state_rejects_unknown_fields(self):
        with pytest.raises(StateConsistencyError):
            ControlState.from_dict({"value": 1, "colour": "red"})


# =============================================================================
# Configuration and logging
# =============================================================================


class TestSettings:
    """Tests for Settings."""

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("DIALOG_CONTROLS_INTERNAL_ERROR_BEHAVIOR", "rethrow")
        monkeypatch.setenv("DIALOG_CONTROLS_DEFAULT_PAGE_SIZE", "7")

        settings = get_settings()

        assert settings.internal_error_behavior == "rethrow"
        assert settings.default_page_size == 7
        assert settings.environment == "test"

    def test_rejects_bad_values(self):
        with pytest.raises(ValidationError):
            Settings(default_page_size=0)
        with pytest.raises(ValidationError):
            Settings(internal_error_behavior="ignore")

    @pytest.mark.parametrize("log_format", ["json", "pretty"])
    def test_configure_logging(self, log_format):
        configure_logging(Settings(log_level="warning", log_format=log_format))

        assert structlog.is_configured()
        structlog.reset_defaults()
