"""Result records returned by the task engine."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ReviewVerdict(BaseModel):
    approved: bool
    feedback: str = ""


class Candidate(BaseModel):
    raw: str
    parsed: dict[str, Any]


class Generation(BaseModel):
    index: int
    agent: str
    content: str


class BrainstormChoice(BaseModel):
    choice: str
    agent: str
    index: int
    score: float | None = None
    rationale: str | None = None


class OperatorChoice(BaseModel):
    operator_name: str
    confidence: float

    def to_wire(self) -> dict[str, Any]:
        return {"operatorName": self.operator_name, "confidence": self.confidence}


class Plan(BaseModel):
    steps: list[Any] = Field(default_factory=list)
    synthetic: bool = False

    def to_prompt(self) -> dict[str, Any]:
        return {"steps": self.steps}
