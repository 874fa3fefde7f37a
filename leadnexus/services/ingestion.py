"""
Ingestion Pipeline - URL -> content -> lead candidate -> embedding -> lead.

Handles:
- Fetching a batch of URLs in small concurrent windows
- Extracting, de-duplicating, embedding and persisting one lead per URL
- Best-effort memory notes for each new lead

Each URL ends in exactly one state. A failing URL is reported in errors[]
and never stops its siblings; a missing credential stops the whole batch.
"""

import hashlib
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..config import INGEST_CONCURRENCY
from ..errors import ConfigurationMissingError, DuplicateEmailError, LeadNexusError
from ..models import (
    ExtractedLeadCandidate,
    IngestError,
    IngestedLead,
    IngestResponse,
    Lead,
    NewLead,
)
from .db.lead_store import BaseLeadStore
from .extraction.embeddings import EmbeddingGenerator, create_lead_text, normalize_dimensions
from .extraction.extractor import LeadExtractor
from .memory.service import LeadMemoryService
from .scraping.fetchers import BaseFetcher, FetchOutcome

PLACEHOLDER_DOMAIN = "unknown.com"


class UrlState(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    SKIPPED_NO_LEAD = "skipped_no_lead"
    FAILED = "failed"


@dataclass
class UrlResult:
    """Terminal state of one URL."""
    url: str
    state: UrlState
    lead: Optional[IngestedLead] = None
    error: Optional[str] = None


def placeholder_email(name: str, source_url: Optional[str] = None) -> str:
    """
    Stand-in email for a lead without one.

    "Jane Doe" -> jane.doe@unknown.com; with a source URL the local part gets
    an 8-hex suffix derived from it (jane.doe.1a2b3c4d@unknown.com).
    """
    local = ".".join(re.findall(r"[a-z0-9]+", name.lower())) or "lead"
    if source_url:
        local = f"{local}.{hashlib.sha256(source_url.encode('utf-8')).hexdigest()[:8]}"
    return f"{local}@{PLACEHOLDER_DOMAIN}"


def additional_context(candidate: ExtractedLeadCandidate) -> str:
    """Extra candidate fields, one per line, for the lead's memory note."""
    lines = []
    if candidate.organization:
        lines.append(f"Organization: {candidate.organization}")
    if candidate.location:
        lines.append(f"Location: {candidate.location}")
    if candidate.expertise:
        lines.append(f"Expertise: {', '.join(candidate.expertise)}")
    if candidate.social_links:
        lines.append(f"Social profiles: {', '.join(link.platform for link in candidate.social_links)}")
    return "\n".join(lines)


def extracted_data(candidate: ExtractedLeadCandidate) -> dict:
    return {
        "organization": candidate.organization,
        "location": candidate.location,
        "expertise": candidate.expertise,
        "socialLinks": [
            {"platform": link.platform, "url": str(link.url)} for link in candidate.social_links
        ] if candidate.social_links else None,
    }


class IngestionPipeline:
    """Orchestrates fetch, extract, embed, persist and remember for a URL batch."""

    def __init__(
        self,
        fetcher: BaseFetcher,
        extractor: LeadExtractor,
        embedder: EmbeddingGenerator,
        store: BaseLeadStore,
        memory: Optional[LeadMemoryService] = None,
        concurrency: int = INGEST_CONCURRENCY,
    ):
        self.fetcher = fetcher
        self.extractor = extractor
        self.embedder = embedder
        self.store = store
        self.memory = memory
        self.concurrency = concurrency

    async def _resolve_email(self, candidate: ExtractedLeadCandidate, url: str) -> Optional[str]:
        """Email to store, or None when the lead already exists."""
        if candidate.email:
            existing = await self.store.find_by_email(candidate.email)
            return None if existing else candidate.email

        # The URL-suffixed address is only for a namesake from another source
        email = placeholder_email(candidate.name)
        existing = await self.store.find_by_email(email)
        if existing is None:
            return email
        if existing.source_url == url:
            return None
        email = placeholder_email(candidate.name, url)
        if await self.store.find_by_email(email):
            return None
        return email

    async def _remember(self, lead: Lead, candidate: ExtractedLeadCandidate) -> None:
        if self.memory is None:
            return
        try:
            await self.memory.add_for_lead(lead, additional_context(candidate) or None)
            print(f"[Ingestion] Stored memory for lead: {lead.name}", flush=True)
        except ConfigurationMissingError:
            raise
        except Exception as e:
            print(f"[Ingestion] Failed to store memory for lead {lead.name}: {e}", flush=True)

    async def process_content(self, fetched: FetchOutcome) -> UrlResult:
        """Steps 2-6 for one fetched URL."""
        url = fetched.url
        if not fetched.success:
            return UrlResult(url, UrlState.FAILED, error=fetched.error or "Failed to fetch content")

        candidate = await self.extractor.extract(fetched.content.content, url)
        if candidate is None:
            return UrlResult(url, UrlState.SKIPPED_NO_LEAD, error="No lead information found on this page")

        email = await self._resolve_email(candidate, url)
        if email is None:
            if candidate.email:
                message = f"Lead with email {candidate.email} already exists"
            else:
                message = f"Lead {candidate.name} from this source already exists"
            return UrlResult(url, UrlState.SKIPPED_DUPLICATE, error=message)

        vector = await self.embedder.embed(create_lead_text(candidate))
        new_lead = NewLead(
            name=candidate.name,
            email=email,
            bio=candidate.bio,
            category=candidate.category,
            source_url=url,
            embedding=normalize_dimensions(vector),
        )

        try:
            lead = await self.store.create(new_lead)
        except DuplicateEmailError:
            return UrlResult(url, UrlState.SKIPPED_DUPLICATE, error=f"Lead with email {email} already exists")

        await self._remember(lead, candidate)

        print(f"[Ingestion] Successfully ingested lead: {lead.name}", flush=True)
        return UrlResult(
            url,
            UrlState.SUCCEEDED,
            lead=IngestedLead(**lead.public().model_dump(), extracted_data=extracted_data(candidate)),
        )

    async def process_url(self, fetched: FetchOutcome) -> UrlResult:
        """process_content with per-URL failure isolation."""
        try:
            return await self.process_content(fetched)
        except ConfigurationMissingError:
            raise
        except LeadNexusError as e:
            print(f"[Ingestion] Error processing URL {fetched.url}: {e}", flush=True)
            return UrlResult(fetched.url, UrlState.FAILED, error=e.message)
        except Exception as e:
            print(f"[Ingestion] Error processing URL {fetched.url}: {e}", flush=True)
            return UrlResult(fetched.url, UrlState.FAILED, error=str(e) or "Unknown error occurred")

    async def run(self, urls: List[str]) -> List[UrlResult]:
        print(f"\n{'='*60}", flush=True)
        print(f"[Ingestion] Starting batch of {len(urls)} URLs", flush=True)
        print(f"{'='*60}\n", flush=True)

        print(f"[Step 1] Fetching content via {self.fetcher.name} ({self.concurrency} at a time)...", flush=True)
        fetched = await self.fetcher.fetch_many(urls, self.concurrency)
        print(f"[Step 1] Fetched {sum(1 for f in fetched if f.success)}/{len(urls)} pages\n", flush=True)

        print("[Step 2] Extracting, embedding and storing leads...", flush=True)
        results = []
        for outcome in fetched:
            print(f"[Ingestion] Processing URL: {outcome.url}", flush=True)
            results.append(await self.process_url(outcome))
        return results

    async def ingest(self, urls: List[str]) -> IngestResponse:
        """Ingest up to 10 URLs; see IngestResponse for the batch summary."""
        results = await self.run([str(url) for url in urls])

        leads = [r.lead for r in results if r.state == UrlState.SUCCEEDED]
        errors = [
            IngestError(url=r.url, error=r.error or r.state.value)
            for r in results if r.state != UrlState.SUCCEEDED
        ]

        print(f"\n{'='*60}", flush=True)
        print("[Ingestion] COMPLETE", flush=True)
        for state in UrlState:
            print(f"  - {state.value}: {sum(1 for r in results if r.state == state)}", flush=True)
        print(f"{'='*60}\n", flush=True)

        return IngestResponse(
            success=len(leads) > 0,
            processed=len(urls),
            successful=len(leads),
            failed=len(errors),
            results=leads,
            errors=errors,
        )
