"""
Wrapper for the Veeqo products API.
Includes pagination, bounded-concurrency batching, response validation, error translation.
All network logic is isolated here.
"""
import aiohttp
import asyncio
import json
import re
from typing import List, Dict, Any, Optional, Tuple

from app.errors import ConfigError, DataContractError, UpstreamError
from app.config import config
from app.logger import logger
from app.models.inventory import RawProduct

PAGE_SIZE = 100
BATCH_SIZE = 5


def parse_total_pages(value: Optional[str]) -> int:
    """Read X-Total-Pages-Count by its leading digits, falling back to a single page."""
    match = re.match(r"\s*([+-]?\d+)", value or "")
    if match is None:
        return 1
    return int(match.group(1))


class VeeqoService:
    """
    Paginated fetcher for Veeqo products.
    Business logic never calls Veeqo directly.
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 batch_size: int = BATCH_SIZE):
        self.base_url = (base_url if base_url is not None else config.VEEQO_STORE).rstrip("/")
        self.api_key = api_key if api_key is not None else config.VEEQO_ACCESS_TOKEN
        self.batch_size = batch_size
        self.session: Optional[aiohttp.ClientSession] = None
        if base_url is None and api_key is None:
            self.is_available = config.has_veeqo
        else:
            self.is_available = bool(self.base_url and self.api_key)

    async def initialize(self):
        """Initialize HTTP session (called after startup)."""
        if not self.is_available:
            logger.warning("Veeqo service not configured")
            return

        # REQUEST_TIMEOUT of 0 leaves requests without a deadline
        timeout = aiohttp.ClientTimeout(total=config.REQUEST_TIMEOUT or None)
        self.session = aiohttp.ClientSession(
            headers={
                "X-API-KEY": self.api_key,
                "Content-Type": "application/json"
            },
            timeout=timeout
        )
        logger.info(f"Veeqo service initialized for store: {self.base_url}")

    async def close(self):
        """Close HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def _get_page(self, page: int) -> Tuple[List[RawProduct], Any]:
        """
        Fetch one page of products.

        Returns:
            Parsed products and the response headers

        Raises:
            UpstreamError: On non-success status, malformed body, or network failure
        """
        if not self.is_available or self.session is None:
            raise ConfigError("Veeqo service not configured")

        status = None
        try:
            response = await self.session.get(
                f"{self.base_url}/products",
                params={"page_size": PAGE_SIZE, "page": page}
            )
            status = response.status

            if not 200 <= response.status < 300:
                error_text = await response.text(errors="replace")
                logger.error(f"Veeqo API error on page {page}: {response.status} {error_text[:200]}")
                raise UpstreamError(
                    f"Failed to fetch page {page}: HTTP {response.status}",
                    status=response.status,
                    body=error_text
                )

            payload = await response.json(content_type=None)
            if not isinstance(payload, list):
                raise UpstreamError(
                    f"Invalid response format from Veeqo on page {page}: {type(payload).__name__}",
                    status=response.status
                )

            return [RawProduct.from_dict(raw) for raw in payload], response.headers

        except UpstreamError:
            raise
        except DataContractError as e:
            logger.error(f"Malformed product on page {page}: {e}")
            raise UpstreamError(f"Malformed product on page {page}: {str(e)}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Network error calling Veeqo on page {page}: {str(e)}")
            raise UpstreamError(f"Network error calling Veeqo: {str(e)}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON response from Veeqo on page {page}: {str(e)}")
            raise UpstreamError(f"Invalid JSON response from Veeqo: {str(e)}", status=status) from e
        except UnicodeDecodeError as e:
            logger.error(f"Undecodable response from Veeqo on page {page}: {str(e)}")
            raise UpstreamError(f"Undecodable response from Veeqo on page {page}: {str(e)}", status=status) from e

    async def fetch_page(self, page: int) -> List[RawProduct]:
        products, _ = await self._get_page(page)
        return products

    async def fetch_all(self) -> List[RawProduct]:
        """
        Fetch every page of products.

        Page 1 is fetched alone to learn the page count, the rest go out
        in concurrent batches. Records keep ascending page order.

        Raises:
            UpstreamError: If any page fails; nothing partial is returned
        """
        products, headers = await self._get_page(1)

        total_pages = parse_total_pages(headers.get("X-Total-Pages-Count"))
        logger.info(
            "Pagination info: "
            f"total_pages={total_pages} "
            f"total_records={headers.get('X-Total-Count')} "
            f"per_page={headers.get('X-Per-Page')} "
            f"first_page_products={len(products)}"
        )

        if total_pages <= 1:
            logger.info(f"Total products fetched: {len(products)}")
            return products

        remaining_pages = list(range(2, total_pages + 1))
        logger.info(f"Fetching {len(remaining_pages)} remaining pages in batches of {self.batch_size}")

        for start in range(0, len(remaining_pages), self.batch_size):
            batch = remaining_pages[start:start + self.batch_size]
            logger.info(f"Fetching batch: pages {batch[0]} to {batch[-1]}")

            # gather() returns results in argument order, not completion order
            results = await asyncio.gather(*(self.fetch_page(page) for page in batch))
            for page_products in results:
                products.extend(page_products)

            logger.info(f"Progress: {len(products)} products fetched so far")

        logger.info(f"Total products fetched: {len(products)}")
        return products


# Global service instance
veeqo_service = VeeqoService()
