"""Stage 3 builders: principle classifier, reasoning question, scaffold."""

from collections.abc import Sequence

from mentora_ai.builders.base import Prompt, build_contents
from mentora_ai.builders.prompts import CLASSIFIER_OUTPUT_FORMAT, RESPONSE_GENERATOR_OUTPUT_FORMAT, generator_header
from mentora_ai.builders.schemas import PrincipleReasoningClassifier, StageResponse
from mentora_ai.models import HistoryEntry

DEFAULT_TENSION = "Outcome vs. means (or a logical inconsistency)"


def build_principle_classifier(
    history: Sequence[HistoryEntry],
    *,
    current_stance: str,
    user_input: str,
    loop_count: int = 0,
) -> Prompt:
    system_instruction = f"""You are a Dialogue State Classifier.
Current Stage: [PrincipleReasoning_Main]
Goal: Evaluate the general principle the student offers to justify their stance.

Rules:
1. **TR_CLARIFY**: The principle is vague or too general ("it depends on the outcome", "safety first").
2. **TR_SCAFFOLD**: The principle has an internal tension, or its consequences conflict with the student's own intuitions.
3. **TR_NEXT_CASE**: The principle is extreme or carries an obvious risk and should be tested with a new case.
4. **TR_COMPLETE**: The principle is clear, consistent with the stance, and has been refined through discussion.
Put the principle as stated in extracted_data.reasoning.

Context:
Current Stance: {current_stance}
Completed case/principle loops so far: {loop_count}
User Input: {user_input}

{CLASSIFIER_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=PrincipleReasoningClassifier,
    )


def build_principle_reasoning(
    history: Sequence[HistoryEntry],
    *,
    topic: str,
    current_stance: str,
    current_reason: str = "",
    stance_history: str = "",
    language: str = "English",
) -> Prompt:
    """Ask the student to generalize their stance into a rule."""
    history_block = f"Stance evolution:\n{stance_history}\n" if stance_history else ""
    system_instruction = f"""{generator_header(language)}

Current stage: [PrincipleReasoning_Main]
Discussion topic: "{topic}"
Current stance: "{current_stance}"
Reason: "{current_reason}"
{history_block}
Task:
1. Acknowledge the position the student has reasoned their way to.
2. Ask them to abstract it into a more general principle or rule.
3. The principle should guide judgement in similar situations.

Example questions:
- "Based on your position, what rule would you use to decide cases like this?"
- "What general principle supports this view?"

{RESPONSE_GENERATOR_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=StageResponse,
    )


def build_principle_scaffold(
    history: Sequence[HistoryEntry],
    *,
    user_principle: str,
    detected_tension: str = DEFAULT_TENSION,
    language: str = "English",
) -> Prompt:
    system_instruction = f"""{generator_header(language)}

Current stage: [PrincipleReasoning_Scaffold]
The student's principle: "{user_principle}"
Detected tension: {detected_tension}

Task:
1. Objectively point out the tension between the principle and the student's intuitions.
2. Do not criticize; help them see why an adjustment may be needed.
3. Ask whether they would add a condition or limit to the principle.

{RESPONSE_GENERATOR_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=StageResponse,
    )
