"""Stage 2 builders: case classifier, case challenge, clarify, scaffold."""

from collections.abc import Sequence

from mentora_ai.builders.base import Prompt, build_contents
from mentora_ai.builders.prompts import CLASSIFIER_OUTPUT_FORMAT, RESPONSE_GENERATOR_OUTPUT_FORMAT, generator_header
from mentora_ai.builders.schemas import CaseChallengeClassifier, StageResponse
from mentora_ai.models import HistoryEntry


def build_case_classifier(
    history: Sequence[HistoryEntry],
    *,
    previous_stance: str,
    current_case: str,
    user_input: str,
    loop_count: int = 0,
) -> Prompt:
    system_instruction = f"""You are a Dialogue State Classifier.
Current Stage: [CaseChallenge_Main]
Goal: Analyze how the student reacts to a counter-example (Challenge Case).

Rules:
1. **TR_CLARIFY**: The answer is off-topic, too short, or logically unclear.
2. **TR_SCAFFOLD**: The user's answer contradicts their `previous_stance`, shows hesitation ("Maybe I was wrong"), or admits the counter-example is valid, implying a need to update their stance. Put any revised stance in extracted_data.stance.
3. **TR_CASE_COMPLETED**: The user defends their stance logically, OR successfully integrates the case into their existing view without contradiction.

Context:
Previous Stance: {previous_stance}
Current Case Challenge: {current_case}
Completed case/principle loops so far: {loop_count}
User Input: {user_input}

{CLASSIFIER_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=CaseChallengeClassifier,
    )


def build_case_challenge(
    history: Sequence[HistoryEntry],
    *,
    current_stance: str,
    current_reason: str = "",
    principle: str = "",
    loop_count: int = 0,
    language: str = "English",
) -> Prompt:
    """Present a new case that probes the current stance (and principle, on loop-backs)."""
    principle_line = f'The student\'s current principle: "{principle}"\n' if principle else ""
    system_instruction = f"""{generator_header(language)}

Current stage: [CaseChallenge_Main]
The student's current stance: "{current_stance}"
Their reason: "{current_reason}"
{principle_line}Cases already discussed: {loop_count}

Task:
1. Briefly acknowledge the student's position.
2. Present one new, concrete case that challenges or probes it. Do not repeat earlier cases.
3. Ask one specific question about how their position applies to this case.

Constraints:
- If the case contradicts their position, ask: "Does your view still hold in this situation?"
- If the case supports a different view, ask: "Would this example make you reconsider?"

{RESPONSE_GENERATOR_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=StageResponse,
    )


def build_case_clarify(
    history: Sequence[HistoryEntry],
    *,
    current_case: str,
    user_input: str,
    language: str = "English",
) -> Prompt:
    system_instruction = f"""{generator_header(language)}

Current stage: [CaseChallenge_Clarify]
Case under discussion: "{current_case}"
User input: "{user_input}"
The answer was unclear or did not address the case.

Task:
1. Restate the key point of the case in one sentence.
2. Ask the student to say directly whether their stance holds in this case, and why.

{RESPONSE_GENERATOR_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=StageResponse,
    )


def build_case_scaffold(
    history: Sequence[HistoryEntry],
    *,
    current_stance: str,
    user_input: str,
    language: str = "English",
) -> Prompt:
    system_instruction = f"""{generator_header(language)}

Current stage: [CaseChallenge_Scaffold]
User input: "{user_input}"
Logical tension: the input seems to contradict the student's previous stance "{current_stance}".

Task:
1. Gently point out the tension or shift in their reasoning.
2. Ask whether they want to update or refine their original stance.

{RESPONSE_GENERATOR_OUTPUT_FORMAT}"""

    return Prompt(
        system_instruction=system_instruction,
        contents=build_contents(history),
        schema=StageResponse,
    )
