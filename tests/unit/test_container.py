"""Unit tests for ContainerControl arbitration and disambiguation."""

import pytest

from dialog_controls.common.number import NUMBER_SLOT_TYPE, NumberControl
from dialog_controls.common.value_control import ValueControl
from dialog_controls.controls.base import Control, InputHandler
from dialog_controls.controls.container import (
    ContainerControl,
    ContainerControlState,
    ImplicitResolutionStrategy,
    MostRecentInitiative,
)
from dialog_controls.errors import (
    ConfigurationError,
    DisambiguationInconsistencyError,
    ProtocolViolationError,
    StateConsistencyError,
)
from dialog_controls.intents.predicates import is_fallback
from dialog_controls.testing import TestInput


def number(value, **kwargs):
    return TestInput.value(NUMBER_SLOT_TYPE, value, **kwargs)


def act_names(builder):
    return [act.name for act in builder.acts]


def party(**kwargs):
    return ContainerControl("party", children=[NumberControl("adults"), NumberControl("children")], **kwargs)


def name_form(**kwargs):
    return ContainerControl(
        "root",
        children=[
            ValueControl(
                "firstName",
                slot_type="Name",
                targets=["it", "name", "firstName"],
                target_for_disambiguation="firstName",
            ),
            ValueControl(
                "lastName",
                slot_type="Name",
                targets=["it", "name", "lastName"],
                target_for_disambiguation="lastName",
            ),
        ],
        explicit_target_disambiguation=True,
        **kwargs,
    )


class FlakyControl(Control):
    """Accepts the first input it is offered and nothing after."""

    def __init__(self, id, label):
        super().__init__(id)
        self.label = label
        self.calls = 0

    async def can_handle(self, input):
        self.calls += 1
        return self.calls == 1

    async def handle(self, input, result_builder):
        pass

    async def can_take_initiative(self, input):
        return False

    async def take_initiative(self, input, result_builder):
        pass

    def get_all_targets(self):
        return ["thing"]

    def get_specific_target(self):
        return self.label


# =============================================================================
# Implicit resolution
# =============================================================================


class TestImplicitResolution:
    """Tests for picking one child without asking."""

    @pytest.mark.asyncio
    async def test_first_match(self, make_input, result_builder):
        """Test declaration order wins under FIRST_MATCH."""
        root = party(implicit_resolution_strategy=ImplicitResolutionStrategy.FIRST_MATCH)
        root.state.most_recent_child_initiative = MostRecentInitiative("children", 1)
        input = make_input(number("3"), root=root)

        assert await root.can_handle(input) is True
        await root.handle(input, result_builder)

        assert root.selected_handling_child.id == "adults"
        assert root.children[0].value == 3
        assert root.children[1].value is None

    @pytest.mark.asyncio
    async def test_most_recent_initiative_bias(self, make_input, result_builder):
        """Test a bare answer goes to the child that asked last."""
        root = party()
        root.state.most_recent_child_initiative = MostRecentInitiative("children", 1)
        input = make_input(number("3"), root=root)

        assert await root.can_handle(input) is True
        await root.handle(input, result_builder)

        assert root.children[1].value == 3
        assert root.children[0].value is None

    @pytest.mark.asyncio
    async def test_target_selects_child(self, run_turn):
        """Test a target naming one child routes to it regardless of order."""
        root = party()

        builder = await run_turn(root, number("2", target="children"))

        assert act_names(builder) == ["ValueSet", "RequestValue"]
        assert builder.acts[0].control_id == "children"
        assert builder.acts[1].control_id == "adults"

    @pytest.mark.asyncio
    async def test_no_candidates(self, make_input):
        root = party()

        assert await root.can_handle(make_input(TestInput.launch(), root=root)) is False

    @pytest.mark.asyncio
    async def test_handle_without_can_handle(self, make_input, result_builder):
        root = party()

        with pytest.raises(ProtocolViolationError):
            await root.handle(make_input(number("3"), root=root), result_builder)


class TestFallback:
    """Tests for fallback routing."""

    @staticmethod
    def fallback_root(handled):
        def child(id):
            return NumberControl(
                id,
                custom_handlers=[
                    InputHandler("fallback", is_fallback, lambda input, result_builder: handled.append(id)),
                ],
            )

        return ContainerControl("root", children=[child("adults"), child("children")])

    @pytest.mark.asyncio
    async def test_fallback_goes_to_most_recent_initiative(self, make_input, result_builder):
        """Test only the child that asked last may take a fallback."""
        handled = []
        root = self.fallback_root(handled)
        root.state.most_recent_child_initiative = MostRecentInitiative("children", 1)
        input = make_input(TestInput.fallback(), root=root)

        assert await root.can_handle(input) is True
        await root.handle(input, result_builder)

        assert handled == ["children"]

    @pytest.mark.asyncio
    async def test_fallback_without_recent_initiative(self, make_input):
        """Test no child takes a fallback when none asked anything."""
        root = self.fallback_root([])

        assert await root.can_handle(make_input(TestInput.fallback(), root=root)) is False

    @pytest.mark.asyncio
    async def test_fallback_rejected_by_most_recent_initiative(self, make_input):
        """Test another child accepting the fallback is not enough."""
        handled = []
        root = ContainerControl(
            "root",
            children=[
                NumberControl("adults"),
                NumberControl(
                    "children",
                    custom_handlers=[
                        InputHandler("fallback", is_fallback, lambda input, result_builder: handled.append("children")),
                    ],
                ),
            ],
        )
        root.state.most_recent_child_initiative = MostRecentInitiative("adults", 1)

        assert await root.can_handle(make_input(TestInput.fallback(), root=root)) is False
        assert handled == []

    @pytest.mark.asyncio
    async def test_fallback_is_never_disambiguated(self, make_input, result_builder):
        """Test a fallback several children accept still goes to the child that asked last."""
        handled = []

        def name_field(id):
            return ValueControl(
                id,
                slot_type="Name",
                targets=["name", id],
                target_for_disambiguation=id,
                custom_handlers=[
                    InputHandler("fallback", is_fallback, lambda input, result_builder: handled.append(id)),
                ],
            )

        root = ContainerControl(
            "root",
            children=[name_field("firstName"), name_field("lastName")],
            explicit_target_disambiguation=True,
        )
        root.state.most_recent_child_initiative = MostRecentInitiative("lastName", 1)
        input = make_input(TestInput.fallback(), root=root)

        assert await root.can_handle(input) is True
        await root.handle(input, result_builder)

        assert act_names(result_builder) == []
        assert handled == ["lastName"]
        assert root.state.active_disambiguation is None

    @pytest.mark.asyncio
    async def test_bare_yes_is_not_disambiguated(self, make_input):
        """Test only control intents can raise a disambiguation question."""
        yes_handler = InputHandler("yes", lambda input: True, lambda input, result_builder: None)
        root = ContainerControl(
            "root",
            children=[
                ValueControl(
                    "firstName", slot_type="Name", target_for_disambiguation="firstName", custom_handlers=[yes_handler]
                ),
                ValueControl(
                    "lastName", slot_type="Name", target_for_disambiguation="lastName", custom_handlers=[yes_handler]
                ),
            ],
            explicit_target_disambiguation=True,
        )
        input = make_input(TestInput.yes(), root=root)

        assert await root.can_handle(input) is True
        assert root.selected_handling_child.id == "firstName"
        assert root.state.active_disambiguation is None


class TestInitiative:
    """Tests for initiative delegation."""

    @pytest.mark.asyncio
    async def test_first_child_asks(self, run_turn):
        """Test the first child wanting initiative asks and is recorded."""
        root = party()

        builder = await run_turn(root, TestInput.launch(), turn_number=4)

        assert act_names(builder) == ["RequestValue"]
        assert builder.acts[0].control_id == "adults"
        assert root.state.most_recent_child_initiative == MostRecentInitiative("adults", 4)

    @pytest.mark.asyncio
    async def test_most_recent_initiative_keeps_asking(self, run_turn):
        """Test the child that asked last keeps the initiative."""
        root = party()
        root.state.most_recent_child_initiative = MostRecentInitiative("children", 1)

        builder = await run_turn(root, TestInput.launch(), turn_number=2)

        assert builder.acts[0].control_id == "children"

    @pytest.mark.asyncio
    async def test_initiative_during_handle_is_recorded(self, run_turn):
        """Test a child asking a question while handling becomes most recent."""
        root = ContainerControl(
            "party",
            children=[NumberControl("adults", confirmation_required=True), NumberControl("children")],
        )

        builder = await run_turn(root, number("3", target="adults"), turn_number=7)

        assert act_names(builder) == ["ConfirmValue"]
        assert root.state.most_recent_child_initiative == MostRecentInitiative("adults", 7)

    @pytest.mark.asyncio
    async def test_ready_when_children_ready(self, make_input):
        root = party()
        root.children[0].set_value(2)
        root.children[1].set_value(0)

        assert await root.is_ready(make_input(TestInput.launch(), root=root)) is True


# =============================================================================
# Explicit disambiguation
# =============================================================================


class TestDisambiguation:
    """Tests for "which one did you mean?"."""

    @pytest.mark.asyncio
    async def test_shared_target_asks(self, run_turn):
        """Test an utterance matching two children asks which one."""
        root = name_form()

        builder = await run_turn(root, TestInput.value("Name", "Fred", target="name"))

        assert act_names(builder) == ["DisambiguateTarget"]
        assert builder.acts[0].rendered_targets == ["firstName", "lastName"]
        assert builder.acts[0].candidates[0] == {"control_id": "firstName", "specific_target": "firstName"}
        assert root.state.active_disambiguation is not None
        assert root.stringify_state_for_diagram() == "[disambiguating: firstName, lastName]"

    @pytest.mark.asyncio
    async def test_answer_replays_request(self, run_turn):
        """Test the answer replays the ambiguous request to the chosen child."""
        root = name_form()
        await run_turn(root, TestInput.value("Name", "Fred", target="name"), turn_number=1)

        builder = await run_turn(root, TestInput.general(target="firstName"), turn_number=2)

        assert act_names(builder) == ["ValueSet", "RequestValue"]
        assert builder.acts[0].control_id == "firstName"
        assert builder.acts[1].control_id == "lastName"
        assert root.children[0].value == "Fred"
        assert root.children[1].value is None
        assert root.state.active_disambiguation is None

    @pytest.mark.asyncio
    async def test_answer_with_select_action(self, run_turn):
        root = name_form()
        await run_turn(root, TestInput.value("Name", "Fred", target="name"))

        builder = await run_turn(root, TestInput.general(action="select", target="lastName"))

        assert builder.acts[0].control_id == "lastName"
        assert root.children[1].value == "Fred"

    @pytest.mark.asyncio
    async def test_unrelated_answer_abandons_question(self, run_turn):
        """Test moving on instead of answering clears the pending question."""
        root = name_form()
        await run_turn(root, TestInput.value("Name", "Fred", target="name"))

        builder = await run_turn(root, TestInput.general(action="set", target="firstName"))

        assert act_names(builder) == ["RequestValue"]
        assert builder.acts[0].control_id == "firstName"
        assert root.state.active_disambiguation is None

    @pytest.mark.asyncio
    async def test_missing_labels(self, make_input):
        """Test explicit disambiguation needs a label on every candidate."""
        root = ContainerControl(
            "root",
            children=[
                ValueControl("firstName", slot_type="Name", targets=["name"]),
                ValueControl("lastName", slot_type="Name", targets=["name"]),
            ],
            explicit_target_disambiguation=True,
        )

        with pytest.raises(ConfigurationError):
            await root.can_handle(make_input(TestInput.value("Name", "Fred", target="name"), root=root))

    @pytest.mark.asyncio
    async def test_disabled_uses_implicit_resolution(self, run_turn):
        root = ContainerControl(
            "root",
            children=[
                ValueControl("firstName", slot_type="Name", targets=["name"]),
                ValueControl("lastName", slot_type="Name", targets=["name"]),
            ],
        )

        builder = await run_turn(root, TestInput.value("Name", "Fred", target="name"))

        assert builder.acts[0].name == "ValueSet"
        assert builder.acts[0].control_id == "firstName"

    @pytest.mark.asyncio
    async def test_chosen_child_rejects_replay(self, make_input, result_builder):
        """Test a child that refuses the replayed request is an inconsistency."""
        root = ContainerControl(
            "root",
            children=[FlakyControl("a", "first"), FlakyControl("b", "second")],
            explicit_target_disambiguation=True,
        )
        ambiguous = make_input(TestInput.value("Thing", "x", target="thing"), root=root)
        assert await root.can_handle(ambiguous) is True
        await root.handle(ambiguous, result_builder)

        answer = make_input(TestInput.general(target="first"), root=root, turn_number=2)
        assert await root.can_handle(answer) is True
        with pytest.raises(DisambiguationInconsistencyError):
            await root.handle(answer, result_builder)


# =============================================================================
# State
# =============================================================================


class TestContainerState:
    """Tests for container state serialization."""

    @pytest.mark.asyncio
    async def test_disambiguation_survives_serialization(self, run_turn):
        root = name_form()
        await run_turn(root, TestInput.value("Name", "Fred", target="name"))
        data = root.get_serializable_state()

        fresh = name_form()
        fresh.set_serializable_state(data)

        record = fresh.state.active_disambiguation
        assert [c.control_id for c in record.candidates] == ["firstName", "lastName"]
        assert record.ambiguous_request["type"] == "IntentRequest"
        assert fresh.get_serializable_state() == data

    def test_most_recent_initiative_from_dict(self):
        state = ContainerControlState.from_dict(
            {"value": None, "most_recent_child_initiative": {"control_id": "adults", "turn_number": 3}}
        )

        assert state.most_recent_child_initiative == MostRecentInitiative("adults", 3)
        assert state.active_disambiguation is None

    @pytest.mark.parametrize(
        "data",
        [
            "not a dict",
            {"most_recent_child_initiative": {"bogus": 1}},
            {"unknown_field": 1},
        ],
    )
    def test_malformed_state(self, data):
        with pytest.raises(StateConsistencyError):
            ContainerControlState.from_dict(data)

    def test_reestablish_reaches_children(self):
        root = party()

        root.reestablish_state(
            {"most_recent_child_initiative": {"control_id": "children", "turn_number": 2}},
            {"children": {"value": 4}},
        )

        assert root.most_recent_initiative_child().id == "children"
        assert root.children[1].value == 4
        assert root.children[0].value is None
