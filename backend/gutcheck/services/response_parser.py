"""
LLM Evaluation Response Parser

Turns a model's free-form reply into validated evaluation fields.
Replies are not guaranteed to be pure JSON: they may be wrapped in prose or
code fences, or contain minor syntax errors (unquoted keys/values, trailing commas).

Pipeline:
1. Locate a JSON-looking span with an ordered list of extraction strategies
   (first match wins)
2. Clean the candidate (trim to outermost braces, drop fences / "json" token)
3. json.loads, then one repair pass + json.loads on failure
4. Check required fields, then normalize (trim, clamp score, map recommendation)
"""
import re
import json
import math
import string
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Optional

from ..core.errors import ParseError

logger = logging.getLogger("uvicorn.error")

RECOMMENDATIONS = ("pursue", "maybe", "shelve")

RECOMMENDATION_SYNONYMS = {
    "pursue": "pursue",
    "go": "pursue",
    "proceed": "pursue",
    "maybe": "maybe",
    "consider": "maybe",
    "potentially": "maybe",
}

REQUIRED_TEXT_FIELDS = ("problem", "audience", "potential")


@dataclass
class EvaluationFields:
    """Normalized evaluation extracted from a model reply"""
    problem: str
    audience: str
    potential: str
    score: int
    recommendation: str
    competitors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ========== Extraction strategies ==========
# Each strategy takes the raw reply and returns a candidate JSON string or None.

_LARGEST_SPAN_RE = re.compile(r"\{[\s\S]*\}")
_FENCED_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)
_KEYWORD_RE = re.compile(r"(?:json|response|analysis)[\s\S]*?(\{[\s\S]*\})", re.IGNORECASE)
_NESTED_RE = re.compile(r"(\{[^{}]*\{[^{}]*\}[^{}]*\}|\{[^{}]*\})")


def extract_largest_span(text: str) -> Optional[str]:
    """Everything from the first '{' to the last '}'."""
    m = _LARGEST_SPAN_RE.search(text)
    return m.group(0) if m else None


def extract_fenced_block(text: str) -> Optional[str]:
    """Object inside a ``` or ```json fence."""
    m = _FENCED_RE.search(text)
    return m.group(1) if m else None


def extract_after_keyword(text: str) -> Optional[str]:
    """Object following "json" / "response" / "analysis"."""
    m = _KEYWORD_RE.search(text)
    return m.group(1) if m else None


def extract_last_object(text: str) -> Optional[str]:
    """Last flat (or singly nested) object-like span."""
    matches = _NESTED_RE.findall(text)
    return matches[-1] if matches else None


EXTRACTION_STRATEGIES: List[Callable[[str], Optional[str]]] = [
    extract_largest_span,
    extract_fenced_block,
    extract_after_keyword,
    extract_last_object,
]


def locate_json(text: str) -> str:
    """Run the strategies in order; fall back to the whole reply."""
    for strategy in EXTRACTION_STRATEGIES:
        candidate = strategy(text)
        if candidate:
            logger.debug("[parser] %s matched: %s", strategy.__name__, candidate[:200])
            return candidate
    return text.strip()


def clean_candidate(candidate: str) -> str:
    """Strip everything outside the outermost braces, fence markers and a leading json token."""
    s = candidate.replace("```", "")
    start = s.find("{")
    end = s.rfind("}")
    if start != -1:
        s = s[start:]
        end = s.rfind("}")
    s = s[:end + 1] if end != -1 else s
    s = re.sub(r"^\s*json\s*", "", s, flags=re.IGNORECASE)
    return s.strip()


# ========== Repair ==========

_BARE_KEY_RE = re.compile(r"([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)\s*:")
_BARE_VALUE_RE = re.compile(r":\s*([^\",\[\]{}\n]+?)\s*([,}])")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_JSON_LITERAL_RE = re.compile(r"^(?:-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?|true|false|null)$")


def quote_bare_keys(s: str) -> str:
    return _BARE_KEY_RE.sub(r'\1"\2":', s)


def quote_bare_values(s: str) -> str:
    """Quote scalar values that are not valid JSON literals (numbers, true/false/null stay as-is)."""
    def _sub(m: "re.Match[str]") -> str:
        value = m.group(1).strip()
        if _JSON_LITERAL_RE.match(value):
            return f": {value}{m.group(2)}"
        return ': "' + value.replace('"', '\\"') + '"' + m.group(2)
    return _BARE_VALUE_RE.sub(_sub, s)


def remove_trailing_commas(s: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", s)


def repair_json(s: str) -> str:
    return remove_trailing_commas(quote_bare_values(quote_bare_keys(s)))


def load_json_object(candidate: str) -> Dict[str, Any]:
    """Parse directly; on failure apply one repair pass and parse again."""
    try:
        parsed = json.loads(candidate)
    except ValueError as first_error:
        repaired = repair_json(candidate)
        logger.debug("[parser] direct parse failed (%s), retrying repaired: %s", first_error, repaired[:200])
        try:
            parsed = json.loads(repaired)
        except ValueError as e:
            raise ParseError(f"Model reply is not valid JSON: {e}")
    if not isinstance(parsed, dict):
        raise ParseError("Model reply JSON is not an object")
    return parsed


# ========== Normalization ==========

def coerce_score(value: Any) -> int:
    """Numeric coercion clamped to [0, 100]; anything non-numeric becomes 0."""
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, min(100, int(round(number))))


def normalize_recommendation(value: Any) -> str:
    """Map the model's wording onto pursue / maybe / shelve (unknown -> shelve)."""
    text = str(value if value is not None else "").lower().strip(string.whitespace + string.punctuation)
    return RECOMMENDATION_SYNONYMS.get(text, "shelve")


def normalize_competitors(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(c).strip() for c in value if str(c).strip()]


def validate_fields(parsed: Dict[str, Any]) -> None:
    missing = [
        name for name in REQUIRED_TEXT_FIELDS
        if not isinstance(parsed.get(name), str) or not parsed[name].strip()
    ]
    if "score" not in parsed:
        missing.append("score")
    if missing:
        raise ParseError(
            f"Model reply is missing required fields: {', '.join(missing)}",
            extra={"missingFields": missing},
        )


def parse_evaluation(raw_text: str) -> EvaluationFields:
    """
    Parse a model reply into EvaluationFields.

    Raises:
        ParseError: no JSON object could be recovered, or required fields are missing
    """
    if not raw_text or not raw_text.strip():
        raise ParseError("Model reply is empty")

    candidate = clean_candidate(locate_json(raw_text))
    parsed = load_json_object(candidate)
    validate_fields(parsed)

    return EvaluationFields(
        problem=parsed["problem"].strip(),
        audience=parsed["audience"].strip(),
        potential=parsed["potential"].strip(),
        score=coerce_score(parsed.get("score")),
        recommendation=normalize_recommendation(parsed.get("recommendation")),
        competitors=normalize_competitors(parsed.get("competitors")),
    )
