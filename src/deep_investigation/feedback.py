"""
Reader feedback on a finished report.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from deep_investigation.providers import generate_object


class FeedbackAnalysis(BaseModel):
    analysis: str = Field(..., description="Analysis of the feedback and suggested improvements")
    actionable_steps: List[str] = Field(
        ..., description="List of specific actions to implement the improvements"
    )


async def process_feedback(feedback: str, context: str, model: Optional[str] = None) -> str:
    """Analyse ``feedback`` against the research ``context`` and suggest concrete improvements."""
    result = await generate_object(
        FeedbackAnalysis,
        prompt=(
            "Analyze this feedback in the context of the research results and suggest improvements:"
            f"\n\nContext:\n{context}\n\nFeedback:\n{feedback}"
        ),
        model=model,
        workflow_name="Feedback Analysis",
    )

    steps = "\n".join(f"{i}. {step}" for i, step in enumerate(result.actionable_steps, 1))
    return f"Analysis:\n{result.analysis}\n\nActionable Steps:\n{steps}".strip()
