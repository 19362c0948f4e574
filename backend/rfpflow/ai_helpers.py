# ai_helpers.py
# OpenAI-compatible wrapper for structuring RFPs, scoring proposals and
# recommending a vendor, plus an offline RFP parser for running without a key.
import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from .config import Settings
from .errors import AIServiceError
from .models import GeneratedRfp, ProposalAnalysis, Recommendation

logger = logging.getLogger(__name__)

STRUCTURE_PROMPT = """You turn natural-language procurement requirements into structured JSON.
Return ONLY a JSON object (no markdown, no commentary) shaped like:
{
  "title": "short, clear RFP title",
  "summary": "one paragraph describing what is being procured",
  "deliverables": ["..."],
  "timeline": "expected delivery timeline",
  "budget": "budget range or TBD",
  "constraints": ["..."],
  "successCriteria": ["..."]
}"""

ANALYZE_PROMPT = """You are a procurement analyst scoring a vendor proposal against RFP requirements.
Return ONLY a JSON object (no markdown) shaped like:
{
  "score": <integer 0-100>,
  "analysis": "one or two sentence assessment",
  "structuredResponse": {
    "matches": ["requirements the proposal covers"],
    "gaps": ["requirements missing or unclear"],
    "proposed_timeline": "timeline offered by the vendor",
    "proposed_budget": "price offered by the vendor",
    "strengths": ["..."],
    "weaknesses": ["..."]
  }
}
Scale: 90-100 excellent, 70-89 good, 50-69 adequate, below 50 poor."""

RECOMMEND_PROMPT = """You advise a procurement team choosing between vendor proposals for one RFP.
Weigh price, delivery timeline, completeness and fit to the requirements.
Return ONLY a JSON object (no markdown) shaped like:
{
  "recommendation": "name of the recommended vendor",
  "reasoning": "two or three sentences on why, citing cost, timeline and gaps"
}"""

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)
_UNITS = {"day", "days", "week", "weeks", "month", "months", "year", "years"}


def parse_rfp_from_text_mock(text: str) -> Dict[str, Any]:
    """Best-effort regex structuring used when no model is configured."""
    lowered = text.lower()
    deliverables = [
        f"{m.group(1)} {m.group(2)}"
        for m in re.finditer(r"(\d+)\s+([a-z][a-z\-]*)", lowered)
        if m.group(2) not in _UNITS
    ]

    budget = None
    m = re.search(r"\$(\d[\d,]*(?:\.\d+)?k?)", text, re.IGNORECASE)
    if m:
        budget = f"${m.group(1)}"

    timeline = None
    m = re.search(r"(\d+)\s*(days?|weeks?|months?)", lowered)
    if m:
        timeline = f"{m.group(1)} {m.group(2)}"

    constraints = []
    m = re.search(r"net\s*(\d+)", lowered)
    if m:
        constraints.append(f"Payment terms net {m.group(1)}")
    m = re.search(r"warranty\s*(?:of\s*)?(\d+)\s*months?|(\d+)[- ]month warranty", lowered)
    if m:
        constraints.append(f"Warranty {m.group(1) or m.group(2)} months")

    return {
        "title": text.strip().splitlines()[0][:80] if text.strip() else "Untitled RFP",
        "summary": text.strip(),
        "deliverables": deliverables,
        "timeline": timeline or "TBD",
        "budget": budget or "TBD",
        "constraints": constraints,
        "successCriteria": [],
    }


def decode_json_object(content: Optional[str]) -> Dict[str, Any]:
    text = (content or "").strip()
    m = _FENCE.match(text)
    if m:
        text = m.group(1)
    if not text:
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AIServiceError(f"Model returned invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise AIServiceError("Model returned JSON that is not an object")
    return data


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class AIService:
    """Structuring and analysis calls against an OpenAI-compatible chat API.

    ``client`` is any object exposing ``chat.completions.create`` (normally
    ``openai.OpenAI``). With no client, structuring falls back to the regex
    parser and the analysis calls fail.
    """

    def __init__(self, client: Optional[OpenAI] = None, model: str = "gpt-4o-mini",
                 temperature: float = 0.7):
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIService":
        client = None
        if settings.openai_api_key:
            client = OpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.ai_timeout_seconds,
                max_retries=0,
            )
        else:
            logger.warning("No OPENAI_API_KEY/OPENROUTER_API_KEY set; proposal analysis is unavailable")
        return cls(client, settings.openai_model, settings.openai_temperature)

    @property
    def configured(self) -> bool:
        return self.client is not None

    def call_openai_json(self, system: str, user: str, purpose: str) -> Dict[str, Any]:
        if self.client is None:
            raise AIServiceError(f"Cannot {purpose}: no model API key configured")
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            )
        except OpenAIError as exc:
            logger.error("Model call failed (%s): %s", purpose, exc, exc_info=True)
            raise AIServiceError(f"Failed to {purpose}: {exc}") from exc
        try:
            content = resp.choices[0].message.content
        except (IndexError, AttributeError, TypeError) as exc:
            logger.error("Model response had no message (%s): %r", purpose, resp, exc_info=True)
            raise AIServiceError(f"Failed to {purpose}: empty response") from exc
        try:
            return decode_json_object(content)
        except AIServiceError:
            logger.error("Unusable model output (%s): %r", purpose, (content or "")[:500], exc_info=True)
            raise

    def structure_requirements(self, raw_requirements: str) -> GeneratedRfp:
        if self.client is None:
            structured = parse_rfp_from_text_mock(raw_requirements)
        else:
            structured = self.call_openai_json(
                STRUCTURE_PROMPT,
                f"Convert these requirements into structured JSON:\n\n{raw_requirements}",
                "generate structured RFP",
            )
        return GeneratedRfp(title=str(structured.get("title") or "Untitled RFP"),
                            structured_requirements=structured)

    def analyze_proposal(self, requirements: Any, proposal_text: str) -> ProposalAnalysis:
        data = self.call_openai_json(
            ANALYZE_PROMPT,
            f"RFP Requirements:\n{json.dumps(requirements, indent=2)}\n\nVendor Proposal:\n{proposal_text}",
            "analyze proposal",
        )
        structured = data.get("structuredResponse")
        return ProposalAnalysis(
            score=_as_int(data.get("score")),
            analysis=str(data.get("analysis") or "No analysis available"),
            structured_response=structured if isinstance(structured, dict) else {},
        )

    def recommend(self, title: str, requirements: Any, proposal_summaries: List[str]) -> Recommendation:
        summary = "\n".join(proposal_summaries)
        data = self.call_openai_json(
            RECOMMEND_PROMPT,
            f"RFP: {title}\nRequirements: {json.dumps(requirements, indent=2)}\n\nVendor Proposals:\n{summary}",
            "generate recommendation",
        )
        return Recommendation(
            recommendation=str(data.get("recommendation") or "Unable to determine"),
            reasoning=str(data.get("reasoning") or "No reasoning available"),
        )
