"""
Client for the Content Service

The curriculum catalog can be served by the content service instead of the
bundled JSON file. It is fetched once at startup, so the client is
synchronous.
"""
import httpx
import logging
from typing import Optional

from progress_engine.catalog import CurriculumCatalog, parse_curriculum

logger = logging.getLogger(__name__)

CURRICULUM_PATH = "/api/v1/curriculum"


def fetch_curriculum(
    base_url: str,
    timeout: float = 5.0,
    transport: Optional[httpx.BaseTransport] = None
) -> CurriculumCatalog:
    """
    Get the curriculum catalog from the Content Service

    Args:
        base_url: Content service root, e.g. http://content:8000
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests)

    Returns:
        Parsed CurriculumCatalog

    Raises:
        httpx.HTTPError: the service was unreachable or answered with an error
    """
    url = f"{base_url.rstrip('/')}{CURRICULUM_PATH}"
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.get(url)
            response.raise_for_status()
            catalog = parse_curriculum(response.json())
    except httpx.HTTPError as e:
        logger.error(f"Error fetching curriculum from Content Service: {str(e)}")
        raise

    logger.info(f"Retrieved curriculum with {len(catalog.levels)} levels from Content Service")
    return catalog
