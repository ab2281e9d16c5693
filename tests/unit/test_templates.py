"""Unit tests for typed stage templates and pipeline variant validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.pipeline.templates import BASE_SLOTS, TemplateError, parse_slots, template
from app.pipeline.variants import DEEP_EXPERIMENT, PERSONA_ANSWER, RESEARCH_CHAIN, VARIANTS
from app.schemas.pipeline import PassResult, PipelineStage, PipelineVariant


def stage(key: str, text: str, visible: bool = True) -> PipelineStage:
    return PipelineStage(key=key, name=key.title(), template=template(text), visible=visible)


class TestParseSlots:
    def test_slots_in_first_appearance_order(self) -> None:
        assert parse_slots("{question} then {evidence} and {question} again") == ("question", "evidence")

    def test_literal_braces(self) -> None:
        assert parse_slots("json like {{\"a\": 1}} and {memory}") == ("memory",)

    @pytest.mark.parametrize("text", ["{question!r}", "{question:>10}", "{0}", "{a.b}", "{unclosed"])
    def test_rejects_unsupported_placeholders(self, text: str) -> None:
        with pytest.raises(TemplateError):
            parse_slots(text)


class TestRender:
    def test_renders_all_slots(self) -> None:
        t = template("Q: {question}\nE: {evidence}")

        assert t.render({"question": "why?", "evidence": "book", "unused": "x"}) == "Q: why?\nE: book"

    def test_missing_value_raises(self) -> None:
        with pytest.raises(TemplateError, match="evidence"):
            template("{question} {evidence}").render({"question": "q"})

    def test_substituted_values_are_not_reparsed(self) -> None:
        rendered = template("{question}").render({"question": "what is {memory}?"})

        assert rendered == "what is {memory}?"


class TestVariantValidation:
    def test_forward_reference_rejected(self) -> None:
        with pytest.raises(ValidationError, match="later slot 'second'"):
            PipelineVariant(name="bad", stages=[stage("first", "{second}"), stage("second", "{question}")])

    def test_mistyped_slot_rejected(self) -> None:
        with pytest.raises(ValidationError, match="evidnce"):
            PipelineVariant(name="typo", stages=[stage("only", "{evidnce}")])

    def test_reserved_and_duplicate_keys_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PipelineVariant(name="reserved", stages=[stage("question", "x")])
        with pytest.raises(ValidationError):
            PipelineVariant(name="dup", stages=[stage("a", "x"), stage("a", "y")])

    def test_empty_variant_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PipelineVariant(name="empty", stages=[])

    def test_template_error_is_a_value_error(self) -> None:
        assert issubclass(TemplateError, ValueError)


class TestBuiltInVariants:
    def test_registry(self) -> None:
        assert set(VARIANTS) == {"research-chain", "persona-answer", "deep-experiment"}

    def test_research_chain_shape(self) -> None:
        assert [s.key for s in RESEARCH_CHAIN.stages] == ["scout", "synthesis"]
        assert "scout" in RESEARCH_CHAIN.stages[1].template.slots
        assert not any(s.visible for s in RESEARCH_CHAIN.stages)

    def test_persona_answer_takes_findings(self) -> None:
        assert PERSONA_ANSWER.total_stages == 1
        assert {"evidence", "memory", "findings"} <= set(PERSONA_ANSWER.stages[0].template.slots)

    def test_deep_experiment_chains_every_stage(self) -> None:
        deep_dive, challenge, oracle = DEEP_EXPERIMENT.stages

        assert "deep_dive" in challenge.template.slots
        assert {"deep_dive", "challenge"} <= set(oracle.template.slots)
        assert [s.visible for s in DEEP_EXPERIMENT.stages] == [False, False, True]

    @pytest.mark.parametrize("variant", list(VARIANTS.values()), ids=list(VARIANTS))
    def test_rendering_leaves_no_placeholders(self, variant: PipelineVariant) -> None:
        values = {slot: f"<{slot}>" for slot in BASE_SLOTS}
        for s in variant.stages:
            rendered = s.template.render(values)
            for slot in s.template.slots:
                assert f"{{{slot}}}" not in rendered
                assert values[slot] in rendered
            values[s.key] = f"<{s.key} output>"


class TestPassResult:
    def test_frozen_rejects_appends(self) -> None:
        result = PassResult(stage=1, key="a", name="A")
        result.append_text("hello")
        result.append_reasoning("hmm")
        result.freeze()

        assert result.frozen
        with pytest.raises(RuntimeError):
            result.append_text(" world")
        assert result.text == "hello"
        assert result.reasoning == "hmm"
