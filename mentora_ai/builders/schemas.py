"""Pydantic schemas for classifier and response-generator structured output."""

from typing import Literal

from pydantic import BaseModel, Field

TRIGGER_DESCRIPTION = "Trigger ID from the stage transition table"


class ExtractedData(BaseModel):
    stance: str | None = Field(default=None, description="New or updated stance, if stated")
    reasoning: str | None = Field(
        default=None, description="New or updated reasoning or principle, if stated"
    )


class _ClassifierBase(BaseModel):
    thought_process: str = Field(
        description="Brief analysis of the answer's logic, clarity, and consistency with earlier positions"
    )
    confidence_score: float = Field(ge=0.0, le=1.0, description="Confidence score (0.0 - 1.0)")
    extracted_data: ExtractedData = Field(
        default_factory=ExtractedData,
        description="Optional: key information extracted from the answer",
    )


class AskingStanceClassifier(_ClassifierBase):
    detected_intent: Literal["TR_CLARIFY", "TR_V1_ESTABLISHED"] = Field(
        description=TRIGGER_DESCRIPTION
    )


class CaseChallengeClassifier(_ClassifierBase):
    detected_intent: Literal["TR_CLARIFY", "TR_SCAFFOLD", "TR_CASE_COMPLETED"] = Field(
        description=TRIGGER_DESCRIPTION
    )


class PrincipleReasoningClassifier(_ClassifierBase):
    detected_intent: Literal["TR_CLARIFY", "TR_SCAFFOLD", "TR_NEXT_CASE", "TR_COMPLETE"] = Field(
        description=TRIGGER_DESCRIPTION
    )


class ClosureClassifier(_ClassifierBase):
    detected_intent: Literal["TR_CLARIFY", "TR_CONFIRM"] = Field(description=TRIGGER_DESCRIPTION)


class StageResponse(BaseModel):
    """Output of every response generator."""

    thought_process: str = Field(description="Brief plan of what to say given the student's input")
    response_message: str = Field(
        description="Main dialogue text (acknowledgement, transition or explanation)"
    )
    concise_question: str = Field(
        description="One concrete question that prompts the student's next thought"
    )
