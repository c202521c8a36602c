"""Stage 1 builders: opening question, stance classifier, stance clarification."""

from collections.abc import Sequence

from mentora_ai.builders.base import Prompt, build_contents
from mentora_ai.builders.prompts import CLASSIFIER_OUTPUT_FORMAT, RESPONSE_GENERATOR_OUTPUT_FORMAT, generator_header
from mentora_ai.builders.schemas import AskingStanceClassifier, StageResponse
from mentora_ai.models import HistoryEntry


def build_opening(
    history: Sequence[HistoryEntry],
    *,
    topic: str,
    topic_context: str = "",
    language: str = "English",
) -> Prompt:
    """Opening turn: introduce the topic and ask for the student's initial stance (V1)."""
    context_block = f"\nBackground context: {topic_context}\n" if topic_context else ""
    system_instruction = f"""{generator_header(language)}

Current stage: [AskingStance_Main]
Discussion topic: "{topic}"
{context_block}
Task:
1. Briefly introduce today's topic.
2. Invite the student to share their initial view or position on it.
3. Encourage an intuitive answer in a friendly but professional tone.

{RESPONSE_GENERATOR_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=StageResponse,
    )


def build_stance_classifier(
    history: Sequence[HistoryEntry],
    *,
    topic: str,
    current_question: str,
    user_input: str,
) -> Prompt:
    system_instruction = f"""You are a Dialogue State Classifier.
Current Stage: [AskingStance_Main]
Goal: Decide whether the student has stated a clear initial stance.

Rules:
1. **TR_CLARIFY**: The answer is ambiguous ("both sides have a point", "hard to say"), off-topic, or gives no position.
2. **TR_V1_ESTABLISHED**: The student clearly takes a side AND gives at least one reason for it.
   Put the position in extracted_data.stance and the reason in extracted_data.reasoning.

Context:
Topic: {topic}
Question asked: {current_question}
User Input: {user_input}

{CLASSIFIER_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=AskingStanceClassifier,
    )


def build_stance_clarify(
    history: Sequence[HistoryEntry],
    *,
    topic: str,
    user_input: str,
    attempts: int = 1,
    language: str = "English",
) -> Prompt:
    system_instruction = f"""{generator_header(language)}

Current stage: [AskingStance_Clarify]
Discussion topic: "{topic}"
User input: "{user_input}"
The student has not yet taken a clear position. Clarification attempt: {attempts}.

Task:
1. Acknowledge that the question is genuinely complex.
2. Still ask the student to lean one way, even tentatively.
3. Use a prompt such as "If you had to choose..." or "Which side does your intuition favour?".

{RESPONSE_GENERATOR_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=StageResponse,
    )
