"""
Tests for the Lead Extractor

The model's answer is validated; anything malformed means "no lead".
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import openai
import pytest

from leadnexus.errors import ConfigurationMissingError, UpstreamProviderError
from leadnexus.models import LeadCategory
from leadnexus.services.extraction.extractor import LeadExtractor, parse_json_response

LEAD = {
    "name": "Jane Doe",
    "email": "jane@techcrunch.com",
    "bio": "Senior reporter covering AI startups",
    "category": "journalist",
    "socialLinks": [{"platform": "Twitter", "url": "https://twitter.com/janedoe"}],
    "expertise": ["AI", "venture capital"],
    "organization": "TechCrunch",
    "location": "San Francisco",
}


def completion(text):
    message = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def extractor(client):
    return LeadExtractor("sk-test", client=client)


def answer(client, payload):
    text = payload if isinstance(payload, str) else json.dumps(payload)
    client.chat.completions.create.return_value = completion(text)


class TestParseJsonResponse:

    def test_plain_json(self):
        assert parse_json_response('{"lead": null}') == {"lead": None}

    def test_fenced_json(self):
        assert parse_json_response('```json\n{"leads": []}\n```') == {"leads": []}

    def test_empty(self):
        assert parse_json_response("") is None


class TestExtract:

    @pytest.mark.asyncio
    async def test_valid_lead(self, client, extractor):
        answer(client, {"lead": LEAD})

        lead = await extractor.extract("Jane Doe is a reporter...", "https://techcrunch.com/author/jane")

        assert lead.name == "Jane Doe"
        assert lead.category == LeadCategory.JOURNALIST
        assert lead.social_links[0].platform == "Twitter"
        assert lead.organization == "TechCrunch"

    @pytest.mark.asyncio
    async def test_prompt_contains_url_and_content(self, client, extractor):
        answer(client, {"lead": LEAD})

        await extractor.extract("About Jane", "https://example.com/jane")

        kwargs = client.chat.completions.create.call_args.kwargs
        prompt = kwargs["messages"][0]["content"]
        assert "https://example.com/jane" in prompt
        assert "About Jane" in prompt
        assert '"influencer" | "journalist" | "publisher"' in prompt
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_no_lead(self, client, extractor):
        answer(client, {"lead": None})

        assert await extractor.extract("Cookie policy", "https://example.com") is None

    @pytest.mark.asyncio
    async def test_malformed_json_is_no_lead(self, client, extractor):
        answer(client, "Sure! Here is the lead: {name: Jane")

        assert await extractor.extract("content", "https://example.com") is None

    @pytest.mark.asyncio
    async def test_invalid_category_is_no_lead(self, client, extractor):
        answer(client, {"lead": {**LEAD, "category": "celebrity"}})

        assert await extractor.extract("content", "https://example.com") is None

    @pytest.mark.asyncio
    async def test_null_like_email_normalized(self, client, extractor):
        answer(client, {"lead": {**LEAD, "email": "null", "organization": "N/A"}})

        lead = await extractor.extract("content", "https://example.com")

        assert lead.email is None
        assert lead.organization is None

    @pytest.mark.asyncio
    async def test_empty_content_skips_model(self, client, extractor):
        assert await extractor.extract("   ", "https://example.com") is None
        client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_error_is_upstream_failure(self, client, extractor):
        client.chat.completions.create.side_effect = openai.OpenAIError("timeout")

        with pytest.raises(UpstreamProviderError):
            await extractor.extract("content", "https://example.com")

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationMissingError):
            LeadExtractor(None)


class TestExtractMany:

    @pytest.mark.asyncio
    async def test_multiple_leads(self, client, extractor):
        second = {**LEAD, "name": "John Roe", "email": None, "category": "publisher"}
        answer(client, {"leads": [LEAD, second]})

        leads = await extractor.extract_many("Masthead", "https://example.com/team")

        assert [lead.name for lead in leads] == ["Jane Doe", "John Roe"]
        assert leads[1].category == LeadCategory.PUBLISHER

    @pytest.mark.asyncio
    async def test_one_invalid_entry_drops_all(self, client, extractor):
        answer(client, {"leads": [LEAD, {"name": "No bio", "category": "journalist"}]})

        assert await extractor.extract_many("Masthead", "https://example.com/team") == []

    @pytest.mark.asyncio
    async def test_empty_list(self, client, extractor):
        answer(client, {"leads": []})

        assert await extractor.extract_many("Nothing here", "https://example.com") == []
