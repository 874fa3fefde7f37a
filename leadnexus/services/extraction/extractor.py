"""
Lead Extractor - Turn scraped page content into structured lead candidates.

The model is asked for JSON only. Its answer is validated against
ExtractedLeadCandidate; anything malformed counts as "no lead found" and is
not retried.
"""

import json
import re
from typing import Any, List, Optional

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from ...config import EXTRACTION_MODEL
from ...errors import UpstreamProviderError, require_setting
from ...models import ExtractedLeadCandidate, LeadCategory

# Characters of page content sent to the model
MAX_CONTENT_CHARS = 24000

CATEGORIES = " | ".join(f'"{c.value}"' for c in LeadCategory)

LEAD_SHAPE = """{{
  "name": "Full name of the person or organization",
  "email": "email@example.com or null",
  "bio": "Brief biography or description",
  "category": {categories},
  "socialLinks": [{{"platform": "Twitter", "url": "https://twitter.com/username"}}],
  "expertise": ["topic1", "topic2"],
  "organization": "Company name or null",
  "location": "Geographic location or null"
}}"""

SINGLE_LEAD_PROMPT = """Extract lead/contact information from the following content and return as JSON.

Content from URL: {source_url}

{content}

Instructions:
- Extract information about a person or organization that could be a valuable lead
- Determine the most appropriate category: influencer, journalist, or publisher
- Extract contact information if available
- Provide a concise but informative bio
- Include any social media links or professional profiles
- Note areas of expertise or topics they cover
- If no clear lead information is found, return {{"lead": null}}

Return the data in this exact JSON format:
{{"lead": """ + LEAD_SHAPE + """}}

Return ONLY valid JSON, no markdown formatting or explanations."""

MULTI_LEAD_PROMPT = """Extract all lead/contact information from the following content and return as JSON.

Content from URL: {source_url}

{content}

Instructions:
- Extract information about ALL people or organizations that could be valuable leads
- For each lead, determine the most appropriate category: influencer, journalist, or publisher
- Extract contact information if available for each
- Provide a concise but informative bio for each
- Include any social media links or professional profiles
- Note areas of expertise or topics they cover
- Return an empty array if no lead information is found

Return the data in this exact JSON format:
{{"leads": [""" + LEAD_SHAPE + """]}}

Return ONLY valid JSON, no markdown formatting or explanations."""

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_response(text: Optional[str]) -> Any:
    """Parse model output as JSON, tolerating a markdown code fence."""
    if not text:
        return None
    cleaned = _FENCE.sub("", text.strip())
    return json.loads(cleaned)


def validate_candidate(data: Any) -> Optional[ExtractedLeadCandidate]:
    """A single lead object (or {"lead": ...}) -> candidate, None if invalid."""
    if isinstance(data, dict) and "lead" in data:
        data = data["lead"]
    if not data:
        return None
    try:
        return ExtractedLeadCandidate.model_validate(data)
    except ValidationError as e:
        print(f"[Extractor] Candidate failed validation: {e.error_count()} error(s)")
        return None


def validate_candidates(data: Any) -> List[ExtractedLeadCandidate]:
    """{"leads": [...]} -> candidates; one invalid entry drops the whole answer."""
    if isinstance(data, dict):
        data = data.get("leads") or []
    if not isinstance(data, list):
        return []
    try:
        return [ExtractedLeadCandidate.model_validate(item) for item in data]
    except ValidationError as e:
        print(f"[Extractor] Lead list failed validation: {e.error_count()} error(s)")
        return []


class LeadExtractor:
    """LLM-backed lead extraction (OpenAI chat completions, JSON mode)."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = EXTRACTION_MODEL,
        client: Optional[AsyncOpenAI] = None,
    ):
        api_key = require_setting(api_key, "OPENAI_API_KEY", "AI service")
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def _complete(self, prompt: str) -> Optional[str]:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.1,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            print(f"[Extractor] Completion error: {e}")
            raise UpstreamProviderError("Lead extraction service request failed") from e
        return response.choices[0].message.content

    @staticmethod
    def _prepare(content: str) -> str:
        return content.strip()[:MAX_CONTENT_CHARS]

    async def extract(self, content: str, source_url: str) -> Optional[ExtractedLeadCandidate]:
        """
        Extract the primary lead from page content.

        Returns:
            The candidate, or None when the page has no lead or the model's
            answer is malformed.
        """
        if not content or not content.strip():
            print(f"[Extractor] Empty content for {source_url}")
            return None

        prompt = SINGLE_LEAD_PROMPT.format(
            source_url=source_url, content=self._prepare(content), categories=CATEGORIES
        )
        text = await self._complete(prompt)

        try:
            data = parse_json_response(text)
        except json.JSONDecodeError:
            print(f"[Extractor] Failed to parse AI response: {(text or '')[:200]}")
            return None
        return validate_candidate(data)

    async def extract_many(self, content: str, source_url: str) -> List[ExtractedLeadCandidate]:
        """Extract every lead on a page (listing pages, mastheads, rosters)."""
        if not content or not content.strip():
            return []

        prompt = MULTI_LEAD_PROMPT.format(
            source_url=source_url, content=self._prepare(content), categories=CATEGORIES
        )
        text = await self._complete(prompt)

        try:
            data = parse_json_response(text)
        except json.JSONDecodeError:
            print(f"[Extractor] Failed to parse AI response: {(text or '')[:200]}")
            return []
        return validate_candidates(data)
