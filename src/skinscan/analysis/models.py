from dataclasses import dataclass

ATTRIBUTES: tuple[str, ...] = ("Redness", "Hydration", "Pores", "Acne", "Overall Skin Quality")


@dataclass(frozen=True, slots=True)
class AttributeScore:
    score: int | float
    """ 0..100, higher is healthier, not clamped """
    explanation: str


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    scores: dict[str, AttributeScore]

    def to_dict(self) -> dict[str, dict[str, int | float | str]]:
        return {name: {"score": self.scores[name].score, "explanation": self.scores[name].explanation}
                for name in ATTRIBUTES}
