"""Stage 4 builders: summary confirmation classifier and summary generator."""

from collections.abc import Sequence

from mentora_ai.builders.base import Prompt, build_contents
from mentora_ai.builders.prompts import CLASSIFIER_OUTPUT_FORMAT, RESPONSE_GENERATOR_OUTPUT_FORMAT, generator_header
from mentora_ai.builders.schemas import ClosureClassifier, StageResponse
from mentora_ai.models import HistoryEntry


def build_closure_classifier(
    history: Sequence[HistoryEntry],
    *,
    generated_summary: str,
    user_input: str,
) -> Prompt:
    system_instruction = f"""You are a Dialogue State Classifier.
Current Stage: [Closure_Main]
Goal: Decide whether the student accepts the summary of their reasoning.

Rules:
1. **TR_CLARIFY**: The student points out an error, wants to add something, or only partly agrees ("mostly right, but...").
   Put the requested correction in extracted_data.reasoning.
2. **TR_CONFIRM**: The student clearly agrees the summary is accurate ("yes", "correct", "that's right").

Context:
Summary presented: {generated_summary}
User Input: {user_input}

{CLASSIFIER_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=ClosureClassifier,
    )


def build_closure_summary(
    history: Sequence[HistoryEntry],
    *,
    stance_v1: str,
    stance_final: str,
    key_reasoning: str,
    correction: str = "",
    language: str = "English",
) -> Prompt:
    """Summarize the stance evolution; on a correction, revise the previous summary."""
    correction_block = (
        f'\nThe student asked for this correction to the previous summary: "{correction}"\n'
        "Keep what was accurate and fix only what they pointed out.\n"
        if correction
        else ""
    )
    system_instruction = f"""{generator_header(language)}

Current stage: [Closure_Main]
Initial stance (V1): "{stance_v1}"
Final stance: "{stance_final}"
Key principle: "{key_reasoning}"
{correction_block}
Task:
1. In response_message, summarize the student's journey: where they started, how the cases changed their thinking (if at all), and the principle they arrived at.
2. In concise_question, ask whether this summary accurately reflects their view.

{RESPONSE_GENERATOR_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=StageResponse,
    )
