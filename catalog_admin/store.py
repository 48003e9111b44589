"""Product store: the local product collection kept in sync with the backend.

Every operation is a coroutine. The blocking HTTP call runs in a worker
thread; the collection and event log are only touched after the await,
back on the event loop, so subscribers never observe a half-applied change.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional, Set

from catalog_admin.logging_config import get_logger, log_admin_event
from catalog_admin.models import Product, ProductDecodeError, parse_product_list
from catalog_admin.observable import ObservableList
from catalog_admin.transport import (
    InvalidResponseError,
    Transport,
    TransportError,
    TransportResponse,
)
from catalog_admin.url_validation import URLValidationError, build_endpoint

__all__ = [
    "ProductStore",
    "OperationResult",
    "is_error_message",
    "INVALID_RESPONSE_MESSAGE",
    "INVALID_URL_MESSAGE",
    "INVALID_IDENTITY_MESSAGE",
    "TRANSPORT_ERROR",
    "INVALID_RESPONSE",
    "NON_SUCCESS_STATUS",
    "INVALID_IDENTITY",
    "INVALID_URL",
]

logger = get_logger("store")

INVALID_RESPONSE_MESSAGE = "Invalid response from server."
INVALID_URL_MESSAGE = "Invalid URL."
INVALID_IDENTITY_MESSAGE = "Invalid product ID or URL."

# Failure kinds
TRANSPORT_ERROR = "transport_error"
INVALID_RESPONSE = "invalid_response"
NON_SUCCESS_STATUS = "non_success_status"
INVALID_IDENTITY = "invalid_identity"
INVALID_URL = "invalid_url"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of add/update, for the form that submitted it."""

    success: bool
    error: Optional[str] = None
    kind: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, status_code: Optional[int] = None) -> "OperationResult":
        return cls(success=True, status_code=status_code)

    @classmethod
    def failed(
        cls,
        error: str,
        kind: str,
        status_code: Optional[int] = None,
    ) -> "OperationResult":
        return cls(success=False, error=error, kind=kind, status_code=status_code)


def is_error_message(message: str) -> bool:
    """True for log entries that should be highlighted as failures."""
    return "Error" in message or message == INVALID_RESPONSE_MESSAGE


class ProductStore:
    """Holds the product collection and event log and syncs them remotely.

    Args:
        settings: Object with ``api_domain`` and ``admin_api_key`` attributes,
            read at request time so edits apply to the next call
        transport: HTTP transport (default: a requests-backed Transport)
    """

    def __init__(self, settings: Any, transport: Optional[Transport] = None) -> None:
        self.settings = settings
        self.transport = transport or Transport()
        self.products: ObservableList[Product] = ObservableList()
        self.log: ObservableList[str] = ObservableList()
        self._pending_deletes: Set[int] = set()
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def dispatch(self, operation: Awaitable[Any]) -> asyncio.Task:
        """Run an operation as an independent task on the running loop.

        The store keeps the task alive until it finishes, so a caller that
        goes away does not cancel it; its result is simply not observed.
        """
        task = asyncio.ensure_future(operation)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every dispatched task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _append_log(self, message: str, event_type: str, **data: Any) -> None:
        self.log.append(message)
        level = logging.ERROR if is_error_message(message) else logging.INFO
        log_admin_event(event_type, {"message": message, **data}, level=level)

    def _auth_headers(self) -> Dict[str, str]:
        token = self.settings.admin_api_key
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _endpoint(self, *segments: object) -> str:
        return build_endpoint(self.settings.api_domain, *segments)

    async def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json_body: Optional[Any] = None,
    ) -> TransportResponse:
        return await asyncio.to_thread(
            self.transport.request,
            method,
            url,
            headers=headers,
            json_body=json_body,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def fetch_all(self) -> None:
        """GET /products and replace the collection on success."""
        try:
            url = self._endpoint("products")
        except URLValidationError as e:
            self._append_log(f"Error fetching products: {e}", "operation_failed",
                             operation="fetch", kind=INVALID_URL)
            return

        try:
            response = await self._send("GET", url)
        except InvalidResponseError:
            self._append_log(INVALID_RESPONSE_MESSAGE, "operation_failed",
                             operation="fetch", kind=INVALID_RESPONSE)
            return
        except TransportError as e:
            self._append_log(f"Error fetching products: {e}", "operation_failed",
                             operation="fetch", kind=TRANSPORT_ERROR)
            return

        status = response.status_code
        if not response.ok:
            self._append_log(
                f"Error fetching products: Server returned status code {status}",
                "operation_failed", operation="fetch", kind=NON_SUCCESS_STATUS,
                status_code=status,
            )
            return

        try:
            products = parse_product_list(response.content)
        except ProductDecodeError as e:
            self._append_log(f"Error fetching products: {e}", "operation_failed",
                             operation="fetch", kind=INVALID_RESPONSE, status_code=status)
            return

        self.products.replace(products)
        self._append_log(
            f"Products fetched successfully. Status code: {status}",
            "products_fetched", status_code=status, count=len(products),
        )

    async def delete(self, product_id: int) -> None:
        """DELETE /product/{id} and drop the record locally on success.

        A delete for an id that is already in flight is ignored.
        """
        if product_id in self._pending_deletes:
            logger.debug(f"Delete of product {product_id} already in flight, ignoring")
            return

        try:
            url = self._endpoint("product", product_id)
        except URLValidationError as e:
            self._append_log(f"Error deleting product: {e}", "operation_failed",
                             operation="delete", kind=INVALID_URL, product_id=product_id)
            return

        self._pending_deletes.add(product_id)
        try:
            response = await self._send("DELETE", url, headers=self._auth_headers())
        except InvalidResponseError:
            self._append_log(INVALID_RESPONSE_MESSAGE, "operation_failed",
                             operation="delete", kind=INVALID_RESPONSE, product_id=product_id)
            return
        except TransportError as e:
            self._append_log(f"Error deleting product: {e}", "operation_failed",
                             operation="delete", kind=TRANSPORT_ERROR, product_id=product_id)
            return
        finally:
            self._pending_deletes.discard(product_id)

        status = response.status_code
        if not response.ok:
            self._append_log(
                f"Error deleting product: Server returned status code {status}",
                "operation_failed", operation="delete", kind=NON_SUCCESS_STATUS,
                product_id=product_id, status_code=status,
            )
            return

        self.products.remove_where(lambda product: product.id == product_id)
        self._append_log(
            f"Product deleted successfully. Status code: {status}",
            "product_deleted", product_id=product_id, status_code=status,
        )

    async def add(self, product: Product) -> OperationResult:
        """POST /product. The collection is left alone; re-fetch for the new id."""
        try:
            url = self._endpoint("product")
        except URLValidationError:
            return OperationResult.failed(INVALID_URL_MESSAGE, INVALID_URL)

        return await self._submit("POST", url, product, "add", "adding", "added")

    async def update(self, product: Product) -> OperationResult:
        """PATCH /product/{id} with the full record."""
        if product.id is None:
            return OperationResult.failed(INVALID_IDENTITY_MESSAGE, INVALID_IDENTITY)
        try:
            url = self._endpoint("product", product.id)
        except URLValidationError:
            return OperationResult.failed(INVALID_IDENTITY_MESSAGE, INVALID_URL)

        return await self._submit("PATCH", url, product, "update", "updating", "updated")

    async def add_and_refresh(self, product: Product) -> OperationResult:
        """Add a product and, once confirmed, re-fetch to pick up its id."""
        result = await self.add(product)
        if result.success:
            await self.fetch_all()
        return result

    async def _submit(
        self,
        method: str,
        url: str,
        product: Product,
        operation: str,
        verb_ing: str,
        verb_ed: str,
    ) -> OperationResult:
        headers = {"Content-Type": "application/json", **self._auth_headers()}
        context = {"operation": operation, "product_id": product.id}

        try:
            response = await self._send(method, url, headers=headers,
                                        json_body=product.to_dict())
        except InvalidResponseError:
            self._append_log(INVALID_RESPONSE_MESSAGE, "operation_failed",
                             kind=INVALID_RESPONSE, **context)
            return OperationResult.failed(INVALID_RESPONSE_MESSAGE, INVALID_RESPONSE)
        except TransportError as e:
            message = f"Error {verb_ing} product: {e}"
            self._append_log(message, "operation_failed", kind=TRANSPORT_ERROR, **context)
            return OperationResult.failed(message, TRANSPORT_ERROR)

        status = response.status_code
        if not response.ok:
            message = f"Error {verb_ing} product: Server returned status code {status}"
            self._append_log(message, "operation_failed", kind=NON_SUCCESS_STATUS,
                             status_code=status, **context)
            return OperationResult.failed(message, NON_SUCCESS_STATUS, status)

        self._append_log(
            f"Product {verb_ed} successfully. Status code: {status}",
            f"product_{verb_ed}", status_code=status, **context,
        )
        return OperationResult.ok(status)
