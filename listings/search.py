""" Search available listings in the database """
from typing import Optional, List, Dict, Any, Tuple
import logging

from database import get_pool
from .serializers import listing_from_row

logger = logging.getLogger(__name__)

def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

SELLER_NAME_JOIN = """
    FROM listings l
    JOIN users s ON s.id = l.seller_id
    WHERE l.is_sold = false
"""

def build_search_filters(
    search_term: Optional[str] = None,
    types: Optional[List[str]] = None,
    conditions: Optional[List[str]] = None,
    verified_only: bool = False,
    seller_id=None
) -> Tuple[str, List[Any]]:
    """Build the extra WHERE conditions and their parameters.

    Returns:
        (sql fragment starting with " AND" or empty, params numbered from $1)
    """
    clauses = ""
    params: List[Any] = []
    param_idx = 1

    if search_term:
        clauses += (
            f" AND (l.title ILIKE ${param_idx} ESCAPE '\\'"
            f" OR l.artist ILIKE ${param_idx} ESCAPE '\\'"
            f" OR l.genre ILIKE ${param_idx} ESCAPE '\\')"
        )
        params.append(f"%{escape_like(search_term.strip())}%")
        param_idx += 1

    if types:
        clauses += f" AND l.type = ANY(${param_idx}::text[])"
        params.append(list(types))
        param_idx += 1

    if conditions:
        clauses += f" AND l.condition = ANY(${param_idx}::text[])"
        params.append(list(conditions))
        param_idx += 1

    if seller_id:
        clauses += f" AND l.seller_id = ${param_idx}"
        params.append(seller_id)
        param_idx += 1

    if verified_only:
        clauses += " AND l.is_verified = true"

    return clauses, params

async def search_listings(
        search_term: Optional[str] = None,
        types: Optional[List[str]] = None,
        conditions: Optional[List[str]] = None,
        verified_only: bool = False,
        seller_id=None,
        limit: int = 50,
        offset: int = 0,
        pool=None
    ) -> Dict[str, Any]:
        """Search unsold listings with various filters.

        Args:
            search_term: Optional text matched against title, artist and genre
            types: Optional listing types to include (matches any)
            conditions: Optional conditions to include (matches any)
            verified_only: Only include listings that passed verification
            seller_id: Optional seller to filter by
            limit: Maximum number of results to return (default: 50)
            offset: Number of results to skip (default: 0)

        Returns:
            Dict containing:
                - listings: Matching listings, newest first, with seller name
                - total_count: Total number of listings matching the filters
                - total_pages: Total number of pages
                - current_page: Current page number
                - limit / offset: Echo of the pagination window
        """
        if pool is None:
            pool = await get_pool()

        clauses, params = build_search_filters(
            search_term, types, conditions, verified_only, seller_id
        )
        param_idx = len(params) + 1

        count_query = "SELECT COUNT(*)" + SELLER_NAME_JOIN + clauses
        query = (
            "SELECT l.*, s.name AS seller_name" + SELLER_NAME_JOIN + clauses +
            f" ORDER BY l.created_at DESC LIMIT ${param_idx} OFFSET ${param_idx + 1}"
        )

        logger.debug("Executing search query: %s with params: %r", query, params + [limit, offset])

        async with pool.acquire() as conn:
            total_count = await conn.fetchval(count_query, *params)
            rows = await conn.fetch(query, *params, limit, offset)

        total_pages = (total_count + limit - 1) // limit
        current_page = (offset // limit) + 1

        return {
            'listings': [listing_from_row(row) for row in rows],
            'total_count': total_count,
            'total_pages': total_pages,
            'current_page': current_page,
            'limit': limit,
            'offset': offset
        }
