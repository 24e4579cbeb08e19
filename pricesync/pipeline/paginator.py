"""Concurrent, bounded, batch-wise pagination over a PageSource.

Pages are requested in fixed-size batches. Every page of a batch is issued
at once; the next batch starts only after the whole batch has completed.
Completions are processed in arrival order.

Termination:
- A page decoding to zero records (including an undecodable body) marks
  the batch as the last one
- A timeout ends the run early with the records gathered so far
- A non-2xx response (or other transport error) aborts with TransportFailure
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from collections.abc import AsyncIterator

import httpx
import structlog

from pricesync.pipeline.page_source import PageSource
from pricesync.pipeline.types import PaginationResult

logger = structlog.get_logger(__name__)


class TransportFailure(Exception):
    """Raised when a page request fails with a non-success status."""

    def __init__(self, page: int, address: str, status: int | None, detail: str = ""):
        self.page = page
        self.address = address
        self.status = status
        self.detail = detail
        reason = f"status {status}" if status is not None else f"transport error: {detail}"
        super().__init__(f"Failed the request for page {page} with {reason}: {address}")


@dataclass
class _PageOutcome:
    page: int
    address: str
    status: int | None = None
    body: bytes = b""
    timed_out: bool = False
    error: str | None = None


class ConcurrentPaginator:
    """Drive a PageSource across pages with bounded concurrency.

    The accumulator and the last-page flag belong to the coordinating task
    only, so no locking is needed.

    Usage:
        async with httpx.AsyncClient() as client:
            paginator = ConcurrentPaginator(client=client)
            result = await paginator.run(ItemsPageSource(...), batch_size=5)
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ):
        """Initialize paginator.

        Args:
            client: Shared HTTP client; when omitted one is created per run
            timeout: Per-request timeout in seconds for a self-owned client
            verify_ssl: TLS verification for a self-owned client
        """
        self._client = client
        self.timeout = timeout
        self.verify_ssl = verify_ssl

    @asynccontextmanager
    async def _client_session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout), verify=self.verify_ssl
        ) as client:
            yield client

    async def _fetch_page(
        self, client: httpx.AsyncClient, source: PageSource, page: int
    ) -> _PageOutcome:
        request = source.build_request(page)
        logger.debug("page_request_created", source=source.label(), page=page, url=request.address)
        try:
            response = await client.get(request.address, headers=request.headers)
        except httpx.TimeoutException as e:
            return _PageOutcome(page=page, address=request.address, timed_out=True, error=str(e))
        except httpx.DecodingError as e:
            # Undecodable body (bad Content-Encoding): the page yields no records
            logger.warning("page_body_undecodable", source=source.label(), page=page, error=str(e))
            return _PageOutcome(page=page, address=request.address, status=200)
        except httpx.HTTPError as e:
            return _PageOutcome(page=page, address=request.address, error=repr(e))

        return _PageOutcome(
            page=page,
            address=str(response.url),
            status=response.status_code,
            body=response.content,
        )

    async def run(self, source: PageSource, batch_size: int = 5) -> PaginationResult:
        """Fetch pages batch by batch until the last page or a timeout.

        Args:
            source: Page source to paginate
            batch_size: Pages requested concurrently per batch

        Returns:
            PaginationResult with all decoded records (partial when truncated)

        Raises:
            TransportFailure: On a non-success response status
            ValueError: If batch_size < 1
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        label = source.label()
        result = PaginationResult(label=label)
        cursor = 0

        async with self._client_session() as client:
            while True:
                pages = range(cursor + 1, cursor + batch_size + 1)
                tasks = [
                    asyncio.create_task(self._fetch_page(client, source, page))
                    for page in pages
                ]
                cursor += batch_size
                result.batches += 1
                logger.info(
                    "batch_issued",
                    source=label,
                    batch=result.batches,
                    first_page=pages[0],
                    last_page=pages[-1],
                )

                got_last_page = False
                failure: TransportFailure | None = None

                try:
                    for next_done in asyncio.as_completed(tasks):
                        outcome = await next_done

                        # After an abort, remaining requests are drained and discarded
                        if result.truncated or failure is not None:
                            continue

                        if outcome.timed_out:
                            logger.warning(
                                "page_timeout",
                                source=label,
                                page=outcome.page,
                                url=outcome.address,
                                records_kept=len(result.records),
                            )
                            result.truncated = True
                            continue

                        if outcome.error is not None:
                            failure = TransportFailure(
                                outcome.page, outcome.address, None, outcome.error
                            )
                            continue

                        if not 200 <= (outcome.status or 0) < 300:
                            failure = TransportFailure(
                                outcome.page, outcome.address, outcome.status
                            )
                            continue

                        records = source.decode_page(outcome.body)
                        result.records.extend(records)
                        result.pages_fetched += 1
                        logger.info(
                            "page_decoded",
                            source=label,
                            page=outcome.page,
                            count=len(records),
                            total=len(result.records),
                        )
                        if not records:
                            got_last_page = True
                finally:
                    # Settle the rest of the batch even if processing raised
                    await asyncio.gather(*tasks, return_exceptions=True)

                if failure is not None:
                    logger.error(
                        "page_failed",
                        source=label,
                        page=failure.page,
                        status=failure.status,
                        url=failure.address,
                    )
                    raise failure

                if result.truncated:
                    logger.warning(
                        "pagination_truncated", source=label, total=len(result.records)
                    )
                    return result

                if got_last_page:
                    break

        logger.info(
            "pagination_complete",
            source=label,
            batches=result.batches,
            pages=result.pages_fetched,
            total=len(result.records),
        )
        return result
