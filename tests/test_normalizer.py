"""Tests for step normalization.

Tests cover:
- Plain prompt strings
- StepDescriptor and dict declarations
- Output specs and dependency normalization
- Invalid declarations
"""

import pytest

from stepchain.normalizer import normalize_step, normalize_steps
from stepchain.schemas import FREEFORM, Freeform, Step, StepDescriptor, Structured


class TestPlainPrompts:
    """Plain strings get positional ids."""

    def test_positional_ids_are_one_based(self):
        steps = normalize_steps(["first", "second"])
        assert [s.step_id for s in steps] == ["step1", "step2"]

    def test_output_key_equals_id(self):
        step = normalize_step("Say hi", 0)
        assert step == Step(step_id="step1", prompt="Say hi", output_key="step1")

    def test_freeform_without_dependencies(self):
        step = normalize_step("Say hi", 4)
        assert step.output_spec == FREEFORM
        assert step.depends_on == ()
        assert step.executor is None
        assert step.step_id == "step5"


class TestDescriptors:
    """StepDescriptors and dicts with the same keys."""

    def test_descriptor_fields_carried_over(self):
        executor = object()
        step = normalize_step(
            StepDescriptor(prompt="p", id="extract", output="facts", executor=executor, after="root"),
            0,
        )
        assert step.step_id == "extract"
        assert step.output_key == "facts"
        assert step.executor is executor
        assert step.depends_on == ("root",)

    def test_output_defaults_to_id(self):
        step = normalize_step({"prompt": "p", "id": "enrich"}, 0)
        assert step.output_key == "enrich"

    def test_id_defaults_to_position(self):
        step = normalize_step({"prompt": "p", "output": "out"}, 2)
        assert step.step_id == "step3"
        assert step.output_key == "out"

    def test_schema_makes_structured(self):
        schema = {"type": "object"}
        step = normalize_step({"prompt": "p", "schema": schema}, 0)
        assert isinstance(step.output_spec, Structured)
        assert step.output_spec.schema is schema
        assert step.is_structured

    def test_no_schema_is_freeform(self):
        step = normalize_step(StepDescriptor(prompt="p"), 0)
        assert isinstance(step.output_spec, Freeform)
        assert not step.is_structured

    def test_after_list_deduplicated_in_order(self):
        step = normalize_step({"prompt": "p", "after": ["b", "a", "b"]}, 0)
        assert step.depends_on == ("b", "a")

    def test_order_preserved(self):
        steps = normalize_steps(["a", {"prompt": "b", "id": "two"}, StepDescriptor(prompt="c")])
        assert [s.step_id for s in steps] == ["step1", "two", "step3"]


class TestInvalidDeclarations:
    """Invalid declarations raise TypeError."""

    def test_unknown_key(self):
        with pytest.raises(TypeError, match="Unknown step descriptor keys"):
            normalize_step({"prompt": "p", "model": "x"}, 0)

    def test_missing_prompt(self):
        with pytest.raises(TypeError, match="requires a 'prompt'"):
            normalize_step({"id": "x"}, 0)

    def test_wrong_type(self):
        with pytest.raises(TypeError, match="position 1"):
            normalize_step(42, 0)


class TestStepToDict:
    """Tests for Step.to_dict."""

    def test_to_dict(self):
        step = normalize_step({"prompt": "p", "id": "a", "schema": {}, "after": "root", "executor": "noop"}, 0)
        assert step.to_dict() == {
            "step_id": "a",
            "output_key": "a",
            "output": "structured",
            "depends_on": ["root"],
            "executor": "noop",
        }
