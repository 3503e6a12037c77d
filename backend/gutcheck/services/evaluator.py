"""
Idea Evaluation Service

Uses an OpenAI-compatible chat completions API to evaluate a business idea:
1. Substitute the idea into a fixed prompt template (rubric + thresholds are guidance only)
2. Pick the model (preferred model only together with the caller's own key)
3. Call the provider once
4. Hand the reply text to the response parser and keep the raw response for audit
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.errors import ConfigurationError, EvaluationUnparsable, ParseError, ProviderError
from .response_parser import EvaluationFields, parse_evaluation

logger = logging.getLogger("uvicorn.error")


IDEA_PROMPT_TEMPLATE = """You are a seasoned business advisor and startup mentor with expertise in evaluating SaaS ideas. Your task is to analyze the following business idea and provide a comprehensive "gut-check" evaluation.

BUSINESS IDEA:
{ideaText}

Please analyze this idea and respond with a JSON object containing the following fields:

{
  "problem": "A clear, concise description of the problem this idea solves",
  "audience": "The target audience or customer segment for this idea",
  "competitors": ["List of 3-5 existing competitors or similar solutions"],
  "potential": "Assessment of the market potential and business viability",
  "score": 75,
  "recommendation": "pursue"
}

"score" is an integer from 0-100 based on overall potential.
"recommendation" is one of: "pursue", "maybe", "shelve".

EVALUATION CRITERIA:
- Problem clarity and pain intensity (0-25 points)
- Market size and addressability (0-25 points)
- Competitive landscape and differentiation (0-25 points)
- Feasibility and execution complexity (0-25 points)

RECOMMENDATIONS:
- "pursue": Score 70+, strong problem-solution fit, clear path to market
- "maybe": Score 40-69, has potential but needs refinement or validation
- "shelve": Score <40, weak problem-solution fit or oversaturated market

Be honest, direct, and constructive in your analysis. Focus on actionable insights that help the entrepreneur make informed decisions.

Respond ONLY with valid JSON - no additional text or formatting."""

AUDIO_INSTRUCTION = "Please transcribe this audio recording and then analyze the business idea described in it."


@dataclass
class Evaluation(EvaluationFields):
    """Parsed evaluation plus the provider response kept verbatim"""
    raw_response: Any = None
    model: Optional[str] = None


def build_prompt(idea_text: str) -> str:
    # str.replace, not str.format: the template contains literal JSON braces
    return IDEA_PROMPT_TEMPLATE.replace("{ideaText}", idea_text, 1)


class IdeaEvaluatorService:
    """Idea Evaluation Service"""

    def __init__(self):
        self.api_key = settings.openai_api_key
        self.api_url = settings.openai_api_base_url.rstrip("/") + "/chat/completions"
        self.default_model = settings.openai_model_name
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens
        self.timeout = settings.llm_timeout_sec

    def is_available(self) -> bool:
        """Check if the system API key is configured"""
        return bool(self.api_key)

    def select_model(self, credential: Optional[str], preferred_model: Optional[str]) -> str:
        """A preferred model is only honored with the caller's own key."""
        if credential and preferred_model and preferred_model.strip():
            return preferred_model.strip()
        return self.default_model

    def build_messages(self, idea_text: str, audio_payload: Optional[str] = None) -> List[Dict[str, Any]]:
        prompt = build_prompt(idea_text)
        if audio_payload and audio_payload.startswith("data:audio/") and "," in audio_payload:
            header, base64_data = audio_payload.split(",", 1)
            audio_format = "wav" if "wav" in header else "mp3" if "mpeg" in header or "mp3" in header else "webm"
            return [{
                "role": "user",
                "content": [
                    {"type": "text", "text": AUDIO_INSTRUCTION},
                    {"type": "input_audio", "input_audio": {"data": base64_data, "format": audio_format}},
                    {"type": "text", "text": prompt},
                ],
            }]
        return [{"role": "user", "content": prompt}]

    async def evaluate(
        self,
        idea_text: str,
        credential: Optional[str] = None,
        preferred_model: Optional[str] = None,
        audio_payload: Optional[str] = None,
    ) -> Evaluation:
        """
        Evaluate an idea

        Parameters:
            idea_text: Idea body substituted into the prompt
            credential: Caller's own API key (falls back to the system key)
            preferred_model: Honored only when credential is given
            audio_payload: Optional data:audio/... URL sent inline with the prompt

        Raises:
            ConfigurationError: no credential at all
            ProviderError: network / HTTP failure or empty reply
            EvaluationUnparsable: reply could not be parsed into an evaluation
        """
        api_key = credential or self.api_key
        if not api_key:
            raise ConfigurationError("No LLM API key available (set OPENAI_API_KEY or provide your own key)")

        model = self.select_model(credential, preferred_model)
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": model,
            "messages": self.build_messages(idea_text, audio_payload),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        logger.info("[evaluator] Calling %s (own key=%s, audio=%s)", model, bool(credential), bool(audio_payload))
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.api_url, headers=headers, json=payload)
                resp.raise_for_status()
                result = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning("[evaluator] Provider returned HTTP %s", e.response.status_code)
            raise ProviderError(f"LLM provider returned HTTP {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[evaluator] Provider call failed: %s", e)
            raise ProviderError(f"LLM provider call failed: {e}")

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content.strip():
            raise ProviderError("No response content from LLM provider")

        logger.debug("[evaluator] Raw reply: %s", content[:500])
        try:
            fields = parse_evaluation(content)
        except ParseError as e:
            logger.warning("[evaluator] Unparsable reply: %s", e.message)
            raise EvaluationUnparsable(f"Failed to parse evaluation: {e.message}", extra=e.extra)

        logger.info("[evaluator] Evaluation parsed: score=%s recommendation=%s", fields.score, fields.recommendation)
        return Evaluation(**fields.to_dict(), raw_response=result, model=model)


# Global singleton
idea_evaluator = IdeaEvaluatorService()
