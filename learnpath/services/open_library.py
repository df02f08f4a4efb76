"""
Open Library book search (free, no key).

Only books that can actually be read online (public domain scans or
borrowable ebooks) are returned.
"""

from typing import List, Optional

import httpx

from learnpath.engines.validation.link_validator import request_with_retry
from learnpath.logging_config import get_logger
from learnpath.schemas.resources import BookResource

logger = get_logger(__name__)

OPEN_LIBRARY_SEARCH_URL = "https://openlibrary.org/search.json"
OPEN_LIBRARY_BASE = "https://openlibrary.org"
HTTP_TIMEOUT = 10.0
SEARCH_FIELDS = "key,title,author_name,first_publish_year,ebook_access,public_scan_b"
READABLE_ACCESS = ("public", "borrowable")


def _parse_open_library_docs(data: dict, limit: int) -> List[BookResource]:
    """Parse a search.json response into readable books."""
    books: List[BookResource] = []
    for doc in data.get("docs") or []:
        if not isinstance(doc, dict) or not doc.get("key") or not doc.get("title"):
            continue
        access = doc.get("ebook_access")
        public = bool(doc.get("public_scan_b")) or access == "public"
        if not public and access not in READABLE_ACCESS:
            continue
        authors = doc.get("author_name") or []
        year = doc.get("first_publish_year")
        books.append(
            BookResource(
                title=doc["title"],
                author=", ".join(authors[:3]) or None,
                url=f"{OPEN_LIBRARY_BASE}{doc['key']}",
                source="Open Library",
                why=f"Readable online via Open Library{f' (first published {year})' if year else ''}",
                is_public_domain=public,
            )
        )
        if len(books) >= limit:
            break
    return books


async def search_open_library(
    query: str,
    *,
    limit: int = 2,
    client: Optional[httpx.AsyncClient] = None,
) -> List[BookResource]:
    """Search Open Library; network failures return an empty list."""
    params = {"q": query, "limit": 10, "fields": SEARCH_FIELDS}
    try:
        if client is not None:
            response = await request_with_retry(client, "GET", OPEN_LIBRARY_SEARCH_URL, params=params, timeout=HTTP_TIMEOUT)
        else:
            async with httpx.AsyncClient() as own_client:
                response = await request_with_retry(
                    own_client, "GET", OPEN_LIBRARY_SEARCH_URL, params=params, timeout=HTTP_TIMEOUT
                )
    except (httpx.TimeoutException, httpx.ConnectError) as e:
        logger.warning("Open Library search failed: %s", e)
        return []
    if response.status_code != 200:
        logger.warning("Open Library search returned %s", response.status_code)
        return []
    try:
        data = response.json()
    except ValueError:
        logger.warning("Open Library returned invalid JSON")
        return []
    return _parse_open_library_docs(data, limit)
