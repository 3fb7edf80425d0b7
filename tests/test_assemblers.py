"""Tests for the single-pass, sequential and hierarchical assemblers.

Uses stub generators; no model calls are made.
"""

import pytest

from assemblers import (
    CancellationToken,
    HierarchicalAssembler,
    SequentialAssembler,
    SinglePassAssembler,
    run_hierarchical,
    run_sequential,
)
from config import Settings
from contracts import ChunkingStrategy
from context.planner import plan
from context.prioritizer import build_chunks
from errors import GenerationCancelled, GenerationError
from tests.conftest import EchoGenerator, RecordingGenerator, SectionGenerator, tokens

INSTRUCTION = "Write the doc."


def make_plan(named_texts, context_limit, hierarchical_threshold, template=INSTRUCTION):
    texts = dict(named_texts)
    texts["template_prompt"] = template
    return plan(build_chunks(texts), context_limit, hierarchical_threshold)


@pytest.fixture
def sequential_texts():
    """Three 100-token chunks; 304 tokens with the instruction."""
    return {
        "project_summary": tokens(100, "s"),
        "question_answers": tokens(100, "q"),
        "file_content": tokens(100, "f"),
    }


@pytest.fixture
def hierarchical_texts():
    """Summary plus four 150-token detail chunks; 644 tokens with the instruction."""
    return {
        "project_summary": tokens(40, "s"),
        "question_answers": tokens(150, "q"),
        "stakeholder_profiles": tokens(150, "p"),
        "file_content": tokens(150, "f"),
        "questions_list": tokens(150, "l"),
    }


class TestSinglePassAssembler:
    """Everything fits one call."""

    def test_one_call_with_all_chunks(self, small_settings, recording_generator):
        context_plan = make_plan({"project_summary": tokens(50, "s")}, 1000, 2000)
        assembler = SinglePassAssembler(recording_generator, settings=small_settings)

        document = assembler.assemble(context_plan)

        assert document == "output 1"
        assert len(recording_generator.prompts) == 1
        prompt = recording_generator.prompts[0]
        assert prompt.startswith(f"# TASK\n\n{INSTRUCTION}")
        assert "=== PROJECT SUMMARY ===\n" + tokens(50, "s") in prompt
        assert assembler.passes[0].phase == "single"
        assert assembler.passes[0].chunks_included == ["template_prompt", "project_summary"]
        assert assembler.run.status == "completed"

    def test_output_instructions_on_the_call(self, small_settings, recording_generator):
        context_plan = make_plan({"project_summary": "Apollo"}, 1000, 2000)
        assembler = SinglePassAssembler(
            recording_generator, settings=small_settings, output_instructions="Return JSON."
        )
        assembler.assemble(context_plan)
        assert recording_generator.prompts[0].endswith("---\n\nReturn JSON.")

    def test_default_instruction_without_template(self, small_settings, recording_generator):
        context_plan = plan(build_chunks({"project_summary": "Apollo"}), 1000, 2000)
        SinglePassAssembler(recording_generator, settings=small_settings).assemble(context_plan)
        assert "Generate the document from the project context below." in recording_generator.prompts[0]


class TestSequentialAssembler:
    """Requests moderately over the limit are split across passes."""

    def test_passes_cover_every_chunk_in_order(self, small_settings, recording_generator, sequential_texts):
        context_plan = make_plan(sequential_texts, 300, 1000)
        assert context_plan.strategy == ChunkingStrategy.SEQUENTIAL
        assembler = SequentialAssembler(recording_generator, settings=small_settings)

        document = assembler.assemble(context_plan)

        sequential = [p for p in assembler.passes if p.phase == "sequential"]
        assert len(sequential) >= 2
        assert [p.index for p in sequential] == list(range(1, len(sequential) + 1))
        covered = [n for p in sequential for n in p.chunks_included if n != "template_prompt"]
        assert covered == ["project_summary", "question_answers", "file_content"]

        # Merge is the last call and its output is the document
        assert assembler.passes[-1].phase == "merge"
        assert document == assembler.passes[-1].result_text

    def test_instruction_in_every_pass(self, small_settings, recording_generator, sequential_texts):
        run_sequential(make_plan(sequential_texts, 300, 1000), recording_generator, settings=small_settings)
        for prompt in recording_generator.prompts:
            assert prompt.startswith(f"# TASK\n\n{INSTRUCTION}")

    def test_every_prompt_within_limit(self, small_settings, recording_generator, sequential_texts):
        assembler = SequentialAssembler(recording_generator, settings=small_settings)
        assembler.assemble(make_plan(sequential_texts, 300, 1000))
        assert all(p.estimated_prompt_tokens <= 300 for p in assembler.passes)

    def test_later_passes_carry_an_excerpt(self, small_settings, recording_generator, sequential_texts):
        run_sequential(make_plan(sequential_texts, 300, 1000), recording_generator, settings=small_settings)
        assert "PREVIOUS PART" not in recording_generator.prompts[0]
        assert "PREVIOUS PART" in recording_generator.prompts[1]
        assert "output 1" in recording_generator.prompts[1]
        assert "This is part 2 of" in recording_generator.prompts[1]

    def test_no_excerpt_when_disabled(self, small_settings, recording_generator, sequential_texts):
        settings = small_settings.model_copy(update={"continuity_excerpt_tokens": 0})
        run_sequential(make_plan(sequential_texts, 300, 1000), recording_generator, settings=settings)
        assert not any("PREVIOUS PART" in p for p in recording_generator.prompts)

    def test_echo_round_trip_keeps_every_chunk(self, small_settings, sequential_texts):
        """With an echoing generator each chunk text survives into the document."""
        document = run_sequential(make_plan(sequential_texts, 300, 1000), EchoGenerator(), settings=small_settings)
        for text in sequential_texts.values():
            assert text in document
        assert INSTRUCTION in document

    def test_failure_reports_pass_and_progress(self, small_settings, sequential_texts):
        generator = RecordingGenerator(fail_on=2)
        assembler = SequentialAssembler(generator, settings=small_settings)

        with pytest.raises(GenerationError) as exc_info:
            assembler.assemble(make_plan(sequential_texts, 300, 1000))

        error = exc_info.value
        assert error.phase == "sequential"
        assert error.index == 2
        assert error.location == "sequential pass 2"
        assert "rate limit exceeded" in str(error)
        assert [p.index for p in error.completed_passes] == [1]
        assert assembler.run.status == "failed"


class TestMerge:
    """Combining partial outputs."""

    def test_single_partial_returned_without_a_call(self, small_settings, recording_generator):
        assembler = SequentialAssembler(recording_generator, settings=small_settings)
        assert assembler._merge(INSTRUCTION, ["only draft"], 300) == "only draft"
        assert recording_generator.prompts == []

    def test_concatenate_strategy(self, small_settings, recording_generator):
        settings = small_settings.model_copy(update={"merge_strategy": "concatenate"})
        assembler = SequentialAssembler(recording_generator, settings=settings)
        assert assembler._merge(INSTRUCTION, ["a", "b", "c"], 300) == "a\n\nb\n\nc"
        assert recording_generator.prompts == []

    def test_merge_prompt_lists_drafts_in_order(self, small_settings, recording_generator):
        assembler = SequentialAssembler(recording_generator, settings=small_settings)
        assembler._merge(INSTRUCTION, ["first", "second"], 300)

        prompt = recording_generator.prompts[0]
        assert prompt.index("=== DRAFT 1 ===\nfirst") < prompt.index("=== DRAFT 2 ===\nsecond")
        assert prompt.index("second") < prompt.index("Combine the partial drafts")

    def test_oversized_merge_is_done_in_groups(self, small_settings, recording_generator):
        assembler = SequentialAssembler(recording_generator, settings=small_settings)
        partials = [tokens(60, "d")] * 4

        document = assembler._merge(INSTRUCTION, partials, 300)

        merges = assembler.passes
        assert [p.phase for p in merges] == ["merge", "merge"]
        assert merges[0].chunks_included == ["draft 1", "draft 2", "draft 3"]
        assert merges[1].chunks_included == ["merged draft 1", "draft 4"]
        assert document == "output 2"

    def test_unmergeable_partials_are_concatenated(self, small_settings, recording_generator):
        assembler = SequentialAssembler(recording_generator, settings=small_settings)
        partials = [tokens(250, "a"), tokens(250, "b")]

        document = assembler._merge(INSTRUCTION, partials, 300)

        assert document == "\n\n".join(partials)
        assert recording_generator.prompts == []


class TestHierarchicalAssembler:
    """Summarize-then-detail processing."""

    def test_phases_in_order(self, small_settings, recording_generator, hierarchical_texts):
        context_plan = make_plan(hierarchical_texts, 300, 400)
        assert context_plan.strategy == ChunkingStrategy.HIERARCHICAL
        assembler = HierarchicalAssembler(recording_generator, settings=small_settings)

        document = assembler.assemble(context_plan)

        phases = [p.phase for p in assembler.passes]
        assert phases[0] == "grounding"
        assert phases[-1] == "merge"
        assert set(phases[1:-1]) == {"detail"}
        assert document == assembler.passes[-1].result_text

    def test_grounding_uses_summary_only_when_qa_too_large(
        self, small_settings, recording_generator, hierarchical_texts
    ):
        assembler = HierarchicalAssembler(recording_generator, settings=small_settings)
        assembler.assemble(make_plan(hierarchical_texts, 300, 400))
        assert assembler.passes[0].chunks_included == ["template_prompt", "project_summary"]

    def test_small_qa_joins_grounding(self, small_settings, recording_generator, hierarchical_texts):
        texts = dict(hierarchical_texts, question_answers=tokens(30, "q"))
        assembler = HierarchicalAssembler(recording_generator, settings=small_settings)
        assembler.assemble(make_plan(texts, 300, 400))
        assert assembler.passes[0].chunks_included == [
            "template_prompt", "project_summary", "question_answers",
        ]
        detail_names = [n for p in assembler.passes if p.phase == "detail" for n in p.chunks_included]
        assert detail_names.count("question_answers") == 1
        assert detail_names.index("question_answers") < detail_names.index("stakeholder_profiles")

    def test_echo_round_trip_keeps_grounded_qa(self, small_settings, hierarchical_texts):
        texts = dict(hierarchical_texts, question_answers=tokens(30, "q"))
        assembler = HierarchicalAssembler(EchoGenerator(), settings=small_settings)

        document = assembler.assemble(make_plan(texts, 300, 400))

        assert "question_answers" in assembler.passes[0].chunks_included
        assert tokens(30, "q") in document
        for char in "pfl":
            assert char * 200 in document

    def test_oversized_summary_overflows_into_details(self, small_settings, recording_generator):
        texts = {"project_summary": tokens(250, "s"), "file_content": tokens(150, "f")}
        assembler = HierarchicalAssembler(recording_generator, settings=small_settings)
        assembler.assemble(make_plan(texts, 300, 400))

        assert assembler.passes[0].chunks_included == ["template_prompt", "project_summary (part 1/2)"]
        first_detail = next(p for p in assembler.passes if p.phase == "detail")
        assert first_detail.chunks_included[1] == "project_summary (part 2/2)"

    def test_detail_prompts_carry_base_context(self, small_settings, recording_generator, hierarchical_texts):
        assembler = HierarchicalAssembler(recording_generator, settings=small_settings)
        assembler.assemble(make_plan(hierarchical_texts, 300, 400))

        details = [p for p in assembler.passes if p.phase == "detail"]
        assert len(details) >= 2
        for detail in details:
            assert detail.prompt_text.startswith(f"# TASK\n\n{INSTRUCTION}")
            assert "BASE CONTEXT:\noutput 1\n\nADDITIONAL DETAILS:" in detail.prompt_text
        covered = [n for p in details for n in p.chunks_included if n != "template_prompt"]
        assert covered == ["question_answers", "stakeholder_profiles", "file_content", "questions_list"]

    def test_merge_gets_grounding_as_background(self, small_settings, recording_generator, hierarchical_texts):
        assembler = HierarchicalAssembler(recording_generator, settings=small_settings)
        assembler.assemble(make_plan(hierarchical_texts, 300, 400))

        merge = assembler.passes[-1]
        assert merge.chunks_included[0] == "grounding_summary"
        assert "BACKGROUND (grounding summary" in merge.prompt_text

    def test_echo_round_trip_keeps_every_chunk(self, small_settings, hierarchical_texts):
        document = run_hierarchical(
            make_plan(hierarchical_texts, 300, 400), EchoGenerator(), settings=small_settings
        )
        assert tokens(40, "s") in document
        for char in "qpfl":
            assert char * 200 in document
        assert INSTRUCTION in document

    def test_parallel_results_in_planned_order(self, small_settings, hierarchical_texts):
        settings = small_settings.model_copy(
            update={"max_parallel_batches": 4, "merge_strategy": "concatenate"}
        )
        generator = SectionGenerator(delays={"QUESTION ANSWERS": 0.2})
        assembler = HierarchicalAssembler(generator, settings=settings)

        document = assembler.assemble(make_plan(hierarchical_texts, 300, 400))

        assert document == (
            "[QUESTION ANSWERS]\n\n[STAKEHOLDER PROFILES]\n\n[FILE CONTENT]\n\n[QUESTIONS LIST]"
        )
        details = [p for p in assembler.passes if p.phase == "detail"]
        assert [p.index for p in details] == [1, 2, 3, 4]

    def test_parallel_failure_names_the_batch(self, small_settings, hierarchical_texts):
        settings = small_settings.model_copy(update={"max_parallel_batches": 4})
        generator = SectionGenerator(fail_section="FILE CONTENT")
        assembler = HierarchicalAssembler(generator, settings=settings)

        with pytest.raises(GenerationError) as exc_info:
            assembler.assemble(make_plan(hierarchical_texts, 300, 400))

        assert exc_info.value.phase == "detail"
        assert exc_info.value.index == 3
        assert exc_info.value.completed_passes[0].phase == "grounding"

    def test_parallel_failure_stops_running_batches(self, small_settings, hierarchical_texts):
        settings = small_settings.model_copy(update={"max_parallel_batches": 4})
        token = CancellationToken()
        generator = SectionGenerator(fail_section="FILE CONTENT")
        assembler = HierarchicalAssembler(generator, settings=settings, cancel_token=token)

        with pytest.raises(GenerationError):
            assembler.assemble(make_plan(hierarchical_texts, 300, 400))

        assert token.cancelled
        assert token.reason == "detail batch 3 failed"

    def test_parallel_failure_keeps_caller_reason(self, small_settings, hierarchical_texts):
        settings = small_settings.model_copy(update={"max_parallel_batches": 4})
        token = CancellationToken()

        class CancelOnDetail(SectionGenerator):
            def generate(self, prompt_text):
                if "ADDITIONAL DETAILS:" in prompt_text:
                    token.cancel("user abort")
                    raise RuntimeError("interrupted")
                return "summary"

        assembler = HierarchicalAssembler(CancelOnDetail(), settings=settings, cancel_token=token)
        with pytest.raises(GenerationError):
            assembler.assemble(make_plan(hierarchical_texts, 300, 400))

        assert token.reason == "user abort"

    def test_single_batch_gets_output_instructions(self, small_settings, recording_generator):
        texts = {"project_summary": tokens(180, "s"), "file_content": tokens(150, "f")}
        assembler = HierarchicalAssembler(
            recording_generator, settings=small_settings, output_instructions="Return JSON."
        )
        document = assembler.assemble(make_plan(texts, 300, 310))

        assert [p.phase for p in assembler.passes] == ["grounding", "detail"]
        assert assembler.passes[-1].prompt_text.endswith("Return JSON.")
        assert not assembler.passes[0].prompt_text.endswith("Return JSON.")
        assert document == "output 2"


class TestCancellation:
    """Cancellation stops a run at the next call boundary."""

    def test_cancelled_before_start(self, small_settings, recording_generator, sequential_texts):
        token = CancellationToken()
        token.cancel("user abort")
        assembler = SequentialAssembler(recording_generator, settings=small_settings, cancel_token=token)

        with pytest.raises(GenerationCancelled, match="user abort"):
            assembler.assemble(make_plan(sequential_texts, 300, 1000))
        assert recording_generator.prompts == []

    def test_cancelled_mid_run(self, small_settings, sequential_texts):
        token = CancellationToken()

        class CancelAfterFirst:
            def generate(self, prompt_text):
                token.cancel("stopped")
                return "first"

        assembler = SequentialAssembler(CancelAfterFirst(), settings=small_settings, cancel_token=token)
        with pytest.raises(GenerationCancelled) as exc_info:
            assembler.assemble(make_plan(sequential_texts, 300, 1000))

        assert exc_info.value.phase == "sequential"
        assert exc_info.value.index == 2
        assert len(exc_info.value.completed_passes) == 1

    def test_expired_deadline(self):
        token = CancellationToken.with_timeout(0)
        assert token.cancelled
        assert token.reason == "deadline exceeded"
        with pytest.raises(GenerationCancelled):
            token.check("detail", 1)

    def test_fresh_token_not_cancelled(self):
        token = CancellationToken()
        assert not token.cancelled
        token.check()

    def test_cancellation_is_a_generation_error(self):
        assert issubclass(GenerationCancelled, GenerationError)


class TestSettingsKnobs:
    """Assemblers read budget knobs from the settings they are given."""

    def test_min_batch_floor(self, recording_generator):
        settings = Settings(_env_file=None, prompt_reserve_tokens=10_000, min_batch_tokens=150)
        assembler = SequentialAssembler(recording_generator, settings=settings)
        assert assembler._pass_budget(1000, INSTRUCTION) == 150
