"""
Terminal rendering of analysis results and history cards
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from frontend.models import AnalysisResult, ChartAnalysis

BAR_CELLS = 30

_ANSI = {
    "green": "\033[32m",
    "red": "\033[31m",
    "yellow": "\033[33m",
}
_RESET = "\033[0m"


@dataclass(frozen=True)
class BiasStyle:
    icon: str
    color: str
    label: str


def bias_style(bias: Optional[str]) -> BiasStyle:
    """Bullish/bearish get their own style; anything else falls through to ranging"""
    label = (bias or "").lower()
    if label == "bullish":
        return BiasStyle(icon="▲", color="green", label=label)
    if label == "bearish":
        return BiasStyle(icon="▼", color="red", label=label)
    return BiasStyle(icon="■", color="yellow", label=label or "ranging")


def colorize(text: str, color: str, enabled: bool = True) -> str:
    if not enabled or color not in _ANSI:
        return text
    return f"{_ANSI[color]}{text}{_RESET}"


def _percent(confidence) -> float:
    try:
        value = float(confidence)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(100.0, value))


def _format_number(value) -> str:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    return f"{number:g}"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class ResultPanel:
    style: BiasStyle
    confidence: str
    confidence_percent: float
    reasons: List[str]
    best_move: str
    parse_failed: bool = False

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "ResultPanel":
        return cls(
            style=bias_style(result.get("bias")),
            confidence=_format_number(result.get("confidence", 0)),
            confidence_percent=_percent(result.get("confidence")),
            reasons=list(result.get("reasons") or []),
            best_move=str(result.get("best_move", "")),
            parse_failed=bool(result.get("parse_failed")),
        )

    @property
    def confidence_bar_width(self) -> str:
        return f"{self.confidence_percent:g}%"

    def confidence_bar(self) -> str:
        filled = round(self.confidence_percent / 100 * BAR_CELLS)
        return "█" * filled + "░" * (BAR_CELLS - filled)

    def render(self, color: bool = True) -> str:
        header = colorize(f"{self.style.icon} {self.style.label.capitalize()}", self.style.color, color)
        lines = [
            f"Market Bias: {header}    Confidence: {self.confidence}%",
            self.confidence_bar(),
            "",
            "Key Points",
        ]
        lines.extend(f"  • {reason}" for reason in self.reasons)
        lines.extend(["", "Suggested Move", f"  {self.best_move}"])
        if self.parse_failed:
            lines.extend(["", "(The model's answer could not be read; this is not a real ranging call.)"])
        return "\n".join(lines)


@dataclass(frozen=True)
class HistoryCard:
    id: str
    style: BiasStyle
    confidence: str
    key_points: List[str]
    created: str

    @classmethod
    def from_record(cls, record: ChartAnalysis) -> "HistoryCard":
        try:
            confidence = f"{float(record.get('confidence', 0)):.2f}"
        except (TypeError, ValueError):
            confidence = str(record.get("confidence"))
        created_at = parse_timestamp(record.get("created_at"))
        if created_at is not None:
            local = created_at.astimezone() if created_at.tzinfo else created_at
            created = f"{local.strftime('%x')} at {local.strftime('%X')}"
        else:
            created = ""
        return cls(
            id=str(record.get("id", "")),
            style=bias_style(record.get("bias")),
            confidence=confidence,
            key_points=list(record.get("reasons") or [])[:2],
            created=created,
        )

    def render(self, color: bool = True) -> str:
        title = colorize(f"{self.style.icon} {self.style.label.capitalize()}", self.style.color, color)
        lines = [f"[{self.id[:8]}] {title} - {self.confidence}% confidence"]
        lines.extend(f"    • {point}" for point in self.key_points)
        if self.created:
            lines.append(f"    {self.created}")
        return "\n".join(lines)
