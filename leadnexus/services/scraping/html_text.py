"""
HTML Parser - Reduce a fetched HTML page to readable text for extraction.

Keeps the page title, meta description and visible body text, and collects
mailto: addresses and outbound profile links so the extractor can see them
even when they only appear in attributes.
"""

import re
from typing import Dict, List, Optional, Set

from bs4 import BeautifulSoup

# Elements that never carry lead information
NOISE_TAGS = ["script", "style", "noscript", "svg", "iframe", "template", "form"]

SOCIAL_DOMAINS = (
    "twitter.com", "x.com", "instagram.com", "tiktok.com", "youtube.com",
    "linkedin.com", "muckrack.com", "medium.com", "substack.com", "facebook.com",
)


def _collapse(text: str) -> str:
    lines = [re.sub(r"[ \t\xa0]+", " ", line).strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def extract_page_text(html_content: str) -> Dict[str, Optional[str]]:
    """
    Extract title, description and body text from HTML.

    Returns:
        Dict with title, description, text
    """
    soup = BeautifulSoup(html_content or "", "lxml")

    title = soup.title.get_text(strip=True) if soup.title else None
    description = None
    meta = soup.find("meta", attrs={"name": "description"}) or soup.find(
        "meta", attrs={"property": "og:description"}
    )
    if meta and meta.get("content"):
        description = meta["content"].strip()

    for tag in soup(NOISE_TAGS):
        tag.decompose()

    body = soup.body or soup
    text = _collapse(body.get_text(separator="\n"))

    return {"title": title, "description": description, "text": text}


def extract_contact_links(html_content: str) -> Dict[str, List[str]]:
    """Collect mailto: emails and social profile URLs from anchors."""
    emails: Set[str] = set()
    profiles: Set[str] = set()

    soup = BeautifulSoup(html_content or "", "lxml")
    for link in soup.find_all("a", href=True):
        href = link["href"].strip()
        if href.lower().startswith("mailto:"):
            address = href[7:].split("?", 1)[0].strip()
            if address:
                emails.add(address)
        elif href.startswith("http") and any(domain in href.lower() for domain in SOCIAL_DOMAINS):
            profiles.add(href)

    return {"emails": sorted(emails), "profiles": sorted(profiles)}


def html_to_content(html_content: str) -> Dict[str, Optional[str]]:
    """Title plus a single text blob ready for the extractor."""
    page = extract_page_text(html_content)
    links = extract_contact_links(html_content)

    parts = []
    if page["title"]:
        parts.append(f"# {page['title']}")
    if page["description"]:
        parts.append(page["description"])
    if page["text"]:
        parts.append(page["text"])
    if links["emails"]:
        parts.append("Emails: " + ", ".join(links["emails"]))
    if links["profiles"]:
        parts.append("Profiles: " + ", ".join(links["profiles"]))

    return {"title": page["title"], "content": "\n\n".join(parts)}
