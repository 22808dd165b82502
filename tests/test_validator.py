"""Tests for the InputValidator engine."""

import logging

import pytest

from formvalidate.config import ValidationConfig
from formvalidate.presence import is_provided
from formvalidate.rules import compose_rules, in_set, optional, required
from formvalidate.session import FormSession
from formvalidate.types import FieldError, RuleContractError, RuleOutcome
from formvalidate.validator import GENERIC_RULE_ERROR, InputValidator


# =============================================================================
# Fixtures and helpers
# =============================================================================


@pytest.fixture
def session():
    return FormSession(config=ValidationConfig())


@pytest.fixture
def pushed(session):
    """Reports pushed to the display layer, in order."""
    reports = []
    session.add_sink(reports.append)
    return reports


def make_validator(scope, **kwargs):
    kwargs.setdefault("config", ValidationConfig())
    return InputValidator(scope, **kwargs)


def need(value, message):
    if not is_provided(value):
        return message


class Toggle:
    """A mutable condition."""

    def __init__(self, state=True):
        self.state = state

    def __call__(self):
        return self.state


# =============================================================================
# Construction and rule registration
# =============================================================================


class TestConstruction:
    def test_requires_scope(self):
        with pytest.raises(ValueError):
            InputValidator(None)

    def test_empty_validator_is_valid(self, session):
        iv = make_validator(session)
        assert iv.is_valid() is True
        assert iv.evaluate() == {}
        assert iv.fields() == []

    def test_default_priority(self, session):
        assert make_validator(session).priority == 1000
        assert make_validator(session, priority=5).priority == 5
        assert make_validator(session, config=ValidationConfig(priority=42)).priority == 42


class TestAddRule:
    def test_callables_with_bound_arguments(self, session):
        iv = make_validator(session)
        iv.add_rule("inputA", need, message="Input A is required")
        iv.add_rule("inputB", lambda v: "Input B is required" if v is None else None)
        iv.add_rule("inputC", need, "Input C is required")

        assert iv.evaluate() == {
            "inputA": FieldError("Input A is required"),
            "inputB": FieldError("Input B is required"),
            "inputC": FieldError("Input C is required"),
        }

        session.set_inputs(inputB=True)
        assert iv.evaluate() == {
            "inputA": FieldError("Input A is required"),
            "inputB": None,
            "inputC": FieldError("Input C is required"),
        }

    def test_fields_in_first_rule_order(self, session):
        iv = make_validator(session)
        iv.add_rule("b", required())
        iv.add_rule("a", required())
        iv.add_rule("b", optional())
        assert list(iv.evaluate()) == ["b", "a"]
        assert iv.fields() == ["b", "a"]

    def test_none_rule_always_passes(self, session):
        iv = make_validator(session)
        iv.add_rule("x", None)
        assert iv.evaluate() == {"x": None}

    def test_returns_self_for_chaining(self, session):
        iv = make_validator(session)
        assert iv.add_rule("x", required()).add_rule("y", required()) is iv

    def test_rule_outcome_results(self, session):
        iv = make_validator(session)
        iv.add_rule("x", lambda v: RuleOutcome.failed("<i>x</i>", is_html=True))
        assert iv.evaluate() == {"x": FieldError("<i>x</i>", is_html=True)}

    def test_explicit_scope(self, session):
        session.set_inputs({"other-x": "value"})
        iv = make_validator(session)
        iv.add_rule("x", required(), scope=session.scope("other"))
        assert iv.evaluate() == {"other-x": None}

    def test_rejects_non_callable(self, session):
        with pytest.raises(TypeError):
            make_validator(session).add_rule("x", "required")

    def test_rejects_empty_field_id(self, session):
        with pytest.raises(ValueError):
            make_validator(session).add_rule("", required())

    def test_rejects_arguments_for_rule_objects(self, session):
        with pytest.raises(TypeError):
            make_validator(session).add_rule("x", required(), "extra")


# =============================================================================
# Evaluation
# =============================================================================


class TestEvaluation:
    def test_stops_on_first_failing_rule(self, session):
        iv = make_validator(session)
        iv.add_rule("x", lambda v: "rule 1" if v is not True else None)
        iv.add_rule("x", lambda v: "rule 2" if v is not False else None)

        for value in (None, False, "whatever"):
            session.set_inputs(x=value)
            assert iv.evaluate() == {"x": FieldError("rule 1")}, f"value {value!r}"

        session.set_inputs(x=True)
        assert iv.evaluate() == {"x": FieldError("rule 2")}

    def test_later_rules_do_not_run_after_failure(self, session):
        calls = []
        iv = make_validator(session)
        iv.add_rule("x", lambda v: "fail")
        iv.add_rule("x", lambda v: calls.append(v))
        iv.evaluate()
        assert calls == []

    def test_optional_skips_remaining_rules(self, session):
        calls = []
        iv = make_validator(session)
        iv.add_rule("x", optional())
        iv.add_rule("x", lambda v: calls.append(v) or "failure")

        assert iv.is_valid()
        assert iv.evaluate() == {"x": None}
        assert calls == []

        session.set_inputs(x=True)
        assert iv.evaluate() == {"x": FieldError("failure")}
        assert calls == [True]

    def test_skip_inside_composed_rule(self, session):
        iv = make_validator(session)
        iv.add_rule("x", compose_rules(optional(), in_set(["a", "b"])))
        iv.add_rule("x", lambda v: "second rule")
        assert iv.evaluate() == {"x": None}

    def test_other_fields_still_evaluated(self, session):
        iv = make_validator(session)
        iv.add_rule("a", required("A missing"))
        iv.add_rule("b", required("B missing"))
        session.set_inputs(b="here")
        assert iv.evaluate() == {"a": FieldError("A missing"), "b": None}

    def test_validate_alias(self, session):
        iv = make_validator(session)
        iv.add_rule("x", required())
        assert iv.validate() == iv.evaluate()


class TestRuleErrors:
    @staticmethod
    def boom(value):
        raise ZeroDivisionError("division by zero")

    def test_runtime_error_becomes_generic_failure(self, session, caplog):
        iv = make_validator(session)
        iv.add_rule("x", self.boom)
        iv.add_rule("x", lambda v: "never reached")
        iv.add_rule("y", required("Y missing"))

        with caplog.at_level(logging.WARNING, logger="formvalidate.validator"):
            report = iv.evaluate()

        assert report == {"x": FieldError(GENERIC_RULE_ERROR), "y": FieldError("Y missing")}
        assert "ZeroDivisionError" in caplog.text

    def test_developer_mode_adds_details(self, session):
        iv = make_validator(session, config=ValidationConfig(developer_mode=True))
        iv.add_rule("x", self.boom)
        message = iv.evaluate()["x"].message
        assert message.startswith(GENERIC_RULE_ERROR)
        assert "ZeroDivisionError: division by zero" in message

    def test_contract_violation_propagates(self, session):
        iv = make_validator(session)
        iv.add_rule("x", lambda v: 42)
        with pytest.raises(RuleContractError):
            iv.evaluate()

    def test_contract_violation_from_list_result(self, session):
        iv = make_validator(session)
        iv.add_rule("x", lambda v: ["a", "b"])
        with pytest.raises(RuleContractError):
            iv.is_valid()


# =============================================================================
# Conditions
# =============================================================================


class TestCondition:
    def test_false_condition_reports_all_valid(self, session):
        toggle = Toggle(False)
        iv = make_validator(session, condition=toggle)
        iv.add_rule("x", required())
        iv.add_rule("y", lambda v: "always")

        assert iv.is_valid()
        assert iv.evaluate() == {"x": None, "y": None}

        toggle.state = True
        assert iv.evaluate() == {"x": FieldError("Required"), "y": FieldError("always")}

    def test_condition_does_not_run_rules(self, session):
        calls = []
        iv = make_validator(session, condition=lambda: False)
        iv.add_rule("x", lambda v: calls.append(v))
        iv.evaluate()
        assert calls == []

    def test_condition_covers_children(self, session):
        iv = make_validator(session, condition=lambda: False)
        child = make_validator(session.scope("mod"))
        child.add_rule("x", required())
        iv.add_validator(child)
        assert iv.evaluate() == {"mod-x": None}

    def test_condition_reads_field_values(self, session):
        iv = make_validator(session)
        iv.condition(lambda: session.get("enabled"))
        iv.add_rule("x", required())

        assert iv.is_valid()
        session.set_inputs(enabled=True)
        assert not iv.is_valid()

    def test_get_set_and_clear(self, session):
        iv = make_validator(session)
        assert iv.condition() is None

        predicate = Toggle(False)
        assert iv.condition(predicate) is iv
        assert iv.condition() is predicate

        iv.condition(None)
        assert iv.condition() is None

    def test_rejects_non_callable(self, session):
        with pytest.raises(TypeError):
            make_validator(session).condition(True)


# =============================================================================
# Child validators
# =============================================================================


class TestChildValidators:
    def test_child_results_are_merged(self, session):
        iv = make_validator(session)
        child = make_validator(session.scope("mod"))
        child.add_rule("x", lambda v: "child failure")
        iv.add_validator(child)

        assert iv.is_valid() is False
        assert "mod-x" in iv.fields()
        assert iv.evaluate() == {"mod-x": FieldError("child failure")}

    def test_fields_children_first(self, session):
        iv = make_validator(session)
        iv.add_rule("a", required())
        child = make_validator(session.scope("mod"))
        child.add_rule("b", required())
        iv.add_validator(child)
        assert iv.fields() == ["mod-b", "a"]

    def test_own_failure_wins_over_child(self, session):
        iv = make_validator(session)
        iv.add_rule("x", lambda v: "parent failure")
        child = make_validator(session)
        child.add_rule("x", lambda v: "child failure")
        iv.add_validator(child)
        assert iv.evaluate() == {"x": FieldError("parent failure")}

    def test_child_failure_fills_own_pass(self, session):
        iv = make_validator(session)
        iv.add_rule("x", None)
        child = make_validator(session)
        child.add_rule("x", lambda v: "child failure")
        iv.add_validator(child)
        assert iv.evaluate() == {"x": FieldError("child failure")}

    def test_earlier_sibling_wins(self, session):
        iv = make_validator(session)
        first = make_validator(session)
        first.add_rule("x", lambda v: "first")
        second = make_validator(session)
        second.add_rule("x", lambda v: "second")
        iv.add_validator(first)
        iv.add_validator(second)
        assert iv.evaluate() == {"x": FieldError("first")}

    def test_nested_children(self, session):
        root = make_validator(session)
        middle = make_validator(session.scope("a"))
        leaf = make_validator(session.scope("a").scope("b"))
        leaf.add_rule("c", required())
        middle.add_validator(leaf)
        root.add_validator(middle)
        assert root.evaluate() == {"a-b-c": FieldError("Required")}
        assert leaf.parent is middle
        assert middle.children == [leaf]

    def test_own_rules_only(self, session):
        iv = make_validator(session)
        iv.add_rule("a", lambda v: None)
        child = make_validator(session.scope("m"))
        child.add_rule("x", lambda v: "child failure")
        iv.add_validator(child)

        assert iv.is_valid() is False
        assert iv.is_valid(include_child_validators=False) is True
        assert iv.evaluate(include_child_validators=False) == {"a": None}
        assert iv.validate(include_child_validators=False) == {"a": None}
        assert iv.fields(include_child_validators=False) == ["a"]

    def test_own_rules_only_still_fail(self, session):
        iv = make_validator(session)
        iv.add_rule("a", required())
        child = make_validator(session.scope("m"))
        child.add_rule("x", required())
        iv.add_validator(child)

        assert iv.evaluate(include_child_validators=False) == {"a": FieldError("Required")}

    def test_own_rules_only_with_false_condition(self, session):
        iv = make_validator(session, condition=lambda: False)
        iv.add_rule("a", required())
        child = make_validator(session.scope("m"))
        child.add_rule("x", required())
        iv.add_validator(child)

        assert iv.evaluate(include_child_validators=False) == {"a": None}

    def test_rejects_non_validator(self, session):
        with pytest.raises(TypeError):
            make_validator(session).add_validator(required())

    def test_rejects_self(self, session):
        iv = make_validator(session)
        with pytest.raises(ValueError):
            iv.add_validator(iv)

    def test_rejects_second_parent(self, session):
        child = make_validator(session)
        make_validator(session).add_validator(child)
        with pytest.raises(ValueError):
            make_validator(session).add_validator(child)

    def test_rejects_cycle(self, session):
        a = make_validator(session)
        b = make_validator(session)
        c = make_validator(session)
        a.add_validator(b)
        b.add_validator(c)
        with pytest.raises(ValueError, match="cycle"):
            c.add_validator(a)


# =============================================================================
# Enable / disable
# =============================================================================


class TestEnableDisable:
    def test_enable_pushes_immediately_and_on_change(self, session, pushed):
        iv = make_validator(session)
        iv.add_rule("x", required())

        iv.enable()
        assert iv.enabled
        assert pushed == [{"x": FieldError("Required")}]

        session.set_inputs(x="hello")
        assert pushed[-1] == {"x": None}
        assert len(pushed) == 2

    def test_enable_twice_keeps_one_subscription(self, session, pushed):
        iv = make_validator(session)
        iv.add_rule("x", required())
        iv.enable()
        iv.enable()
        session.set_inputs(x="hello")
        assert len(pushed) == 2

    def test_disable_clears_display(self, session, pushed):
        iv = make_validator(session)
        iv.add_rule("x", required())
        iv.enable()

        iv.disable()
        assert not iv.enabled
        assert pushed[-1] == {"x": None}
        # Evaluation is independent of display state
        assert iv.evaluate() == {"x": FieldError("Required")}

        count = len(pushed)
        session.set_inputs(x="hello")
        assert len(pushed) == count

    def test_disable_when_not_enabled_does_nothing(self, session, pushed):
        iv = make_validator(session)
        iv.add_rule("x", required())
        iv.disable()
        assert pushed == []

    def test_enable_after_disable(self, session, pushed):
        iv = make_validator(session)
        iv.add_rule("x", required())
        iv.enable()
        iv.disable()
        iv.enable()
        assert pushed[-1] == {"x": FieldError("Required")}

    def test_add_rule_while_enabled_pushes(self, session, pushed):
        iv = make_validator(session)
        iv.enable()
        assert pushed == [{}]

        iv.add_rule("x", required())
        assert pushed[-1] == {"x": FieldError("Required")}

    def test_condition_change_while_enabled_pushes(self, session, pushed):
        iv = make_validator(session)
        iv.add_rule("x", required())
        iv.enable()
        iv.condition(lambda: False)
        assert pushed[-1] == {"x": None}

    def test_child_rule_change_pushes_from_root(self, session, pushed):
        iv = make_validator(session)
        child = make_validator(session.scope("mod"))
        iv.add_validator(child)
        iv.enable()

        child.add_rule("x", required())
        assert pushed[-1] == {"mod-x": FieldError("Required")}

    def test_child_enable_is_inert(self, session, pushed, caplog):
        iv = make_validator(session)
        child = make_validator(session.scope("mod"))
        child.add_rule("x", required())
        iv.add_validator(child)

        with caplog.at_level(logging.WARNING, logger="formvalidate.validator"):
            child.enable()
            child.disable()

        assert child.enabled is False
        assert pushed == []
        assert "no effect" in caplog.text

    def test_adding_enabled_validator_disables_it(self, session, pushed):
        child = make_validator(session.scope("mod"))
        child.add_rule("x", required())
        child.enable()
        assert pushed == [{"mod-x": FieldError("Required")}]

        make_validator(session).add_validator(child)
        assert child.enabled is False
        assert pushed[-1] == {"mod-x": None}

        session.set_inputs({"mod-x": "value"})
        assert len(pushed) == 2

    def test_priority_order(self, session, pushed):
        low = make_validator(session, priority=1)
        low.add_rule("a", required())
        high = make_validator(session, priority=2000)
        high.add_rule("b", required())
        low.enable()
        high.enable()
        pushed.clear()

        session.set_inputs(a="value")
        assert [list(report) for report in pushed] == [["b"], ["a"]]
