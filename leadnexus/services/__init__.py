# Services
#
# Organized by domain:
#   - db/          Database clients and lead stores (Supabase, in-memory)
#   - scraping/    Content fetchers (Firecrawl, Apify, HTTP) and HTML parsing
#   - extraction/  Lead extraction and embeddings (OpenAI)
#   - memory/      Lead memories and the knowledge graph
#
# ingestion.py and search.py sit at the root as orchestrators;
# leads.py wraps the store for CRUD and relationships
