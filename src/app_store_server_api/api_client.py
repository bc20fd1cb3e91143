"""App Store Server API Client.

One coroutine per App Store Server API endpoint. Each maps its arguments to
a path, query parameters and body and hands them to the shared pipeline in
``BaseAppStoreAPIClient``. Every method returns an ``APIResult``.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
from urllib.parse import quote

import httpx

from .base_client import BaseAppStoreAPIClient, QueryParameters
from .config import ClientConfig, DEFAULT_TIMEOUT, Environment
from .models import (
    CheckTestNotificationResponse,
    ConsumptionRequest,
    ExtendRenewalDateRequest,
    ExtendRenewalDateResponse,
    GetTransactionHistoryVersion,
    HistoryResponse,
    MassExtendRenewalDateRequest,
    MassExtendRenewalDateResponse,
    MassExtendRenewalDateStatusResponse,
    NotificationHistoryRequest,
    NotificationHistoryResponse,
    OrderLookupResponse,
    RefundHistoryResponse,
    SendTestNotificationResponse,
    Status,
    StatusResponse,
    TransactionHistoryRequest,
    TransactionInfoResponse,
)
from .result import APIResult

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def _segment(value: str) -> str:
    """Escape a caller supplied identifier for use as one path segment."""
    return quote(str(value), safe="")


def epoch_millis(value: datetime) -> str:
    """Format a datetime as epoch milliseconds, rounding half away from zero.

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    micros = (value - _EPOCH) // _MICROSECOND
    sign = -1 if micros < 0 else 1
    millis, remainder = divmod(abs(micros), 1000)
    if remainder >= 500:
        millis += 1
    return str(sign * millis)


class AppStoreServerAPIClient(BaseAppStoreAPIClient):
    """Client for the App Store Server API."""

    def __init__(
        self,
        signing_key: str,
        key_id: str,
        issuer_id: str,
        bundle_id: str,
        environment: Environment,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize App Store Server API client.

        Args:
            signing_key: Private key downloaded from App Store Connect (PEM)
            key_id: Identifier of the signing key
            issuer_id: Issuer ID from the Keys page in App Store Connect
            bundle_id: Bundle ID of the app
            environment: Environment to target
            http_client: Transport to use; the client closes it on close().
                Defaults to a pooled httpx.AsyncClient created here.
            timeout: Request timeout in seconds. Defaults to DEFAULT_TIMEOUT
                so callers without special latency needs can omit it.

        Raises:
            ConfigurationError: If any argument is invalid, including the key
        """
        super().__init__(
            config=ClientConfig(
                signing_key=signing_key,
                key_id=key_id,
                issuer_id=issuer_id,
                bundle_id=bundle_id,
                environment=environment,
                timeout=timeout,
            ),
            http_client=http_client,
        )

    @classmethod
    def from_config(
        cls, config: ClientConfig, http_client: Optional[httpx.AsyncClient] = None
    ) -> "AppStoreServerAPIClient":
        """Create a client from a loaded ``ClientConfig``."""
        return cls(
            signing_key=config.signing_key,
            key_id=config.key_id,
            issuer_id=config.issuer_id,
            bundle_id=config.bundle_id,
            environment=config.environment,
            http_client=http_client,
            timeout=config.timeout,
        )

    async def extend_renewal_date_for_all_active_subscribers(
        self, mass_extend_renewal_date_request: MassExtendRenewalDateRequest
    ) -> APIResult[MassExtendRenewalDateResponse]:
        """Extend the renewal date for all eligible active subscribers of a product.

        Args:
            mass_extend_renewal_date_request: Product, days and reason of the extension

        Returns:
            Result with the accepted request identifier
        """
        return await self._make_request_with_response_body(
            "/inApps/v1/subscriptions/extend/mass",
            "POST",
            {},
            mass_extend_renewal_date_request,
            MassExtendRenewalDateResponse,
        )

    async def extend_subscription_renewal_date(
        self,
        original_transaction_id: str,
        extend_renewal_date_request: ExtendRenewalDateRequest,
    ) -> APIResult[ExtendRenewalDateResponse]:
        """Extend the renewal date of one customer's active subscription.

        Args:
            original_transaction_id: Original transaction of the subscription
            extend_renewal_date_request: Days and reason of the extension

        Returns:
            Result with whether the extension succeeded
        """
        return await self._make_request_with_response_body(
            "/inApps/v1/subscriptions/extend/" + _segment(original_transaction_id),
            "PUT",
            {},
            extend_renewal_date_request,
            ExtendRenewalDateResponse,
        )

    async def get_all_subscription_statuses(
        self, transaction_id: str, status: Optional[List[Status]] = None
    ) -> APIResult[StatusResponse]:
        """Get the statuses of all of a customer's auto-renewable subscriptions.

        Args:
            transaction_id: Any transaction identifier belonging to the customer
            status: Only include subscriptions in these statuses

        Returns:
            Result with status information grouped by subscription group
        """
        query_parameters: QueryParameters = {}
        if status is not None:
            query_parameters["status"] = [str(int(s)) for s in status]

        return await self._make_request_with_response_body(
            "/inApps/v1/subscriptions/" + _segment(transaction_id),
            "GET",
            query_parameters,
            None,
            StatusResponse,
        )

    async def get_refund_history(
        self, transaction_id: str, revision: Optional[str] = None
    ) -> APIResult[RefundHistoryResponse]:
        """Get a page of a customer's refunded in-app purchases.

        Args:
            transaction_id: Any transaction identifier belonging to the customer
            revision: Revision token from the previous page, if any

        Returns:
            Result with signed refunded transactions and the next revision
        """
        query_parameters: QueryParameters = {}
        if revision is not None:
            query_parameters["revision"] = [revision]

        return await self._make_request_with_response_body(
            "/inApps/v2/refund/lookup/" + _segment(transaction_id),
            "GET",
            query_parameters,
            None,
            RefundHistoryResponse,
        )

    async def get_status_of_subscription_renewal_date_extensions(
        self, request_identifier: str, product_id: str
    ) -> APIResult[MassExtendRenewalDateStatusResponse]:
        """Check whether a mass renewal date extension request has completed.

        Args:
            request_identifier: UUID sent with the mass extension request
            product_id: Product the extension was requested for

        Returns:
            Result with completion state and success/failure counts
        """
        return await self._make_request_with_response_body(
            "/inApps/v1/subscriptions/extend/mass/"
            + _segment(product_id)
            + "/"
            + _segment(request_identifier),
            "GET",
            {},
            None,
            MassExtendRenewalDateStatusResponse,
        )

    async def get_test_notification_status(
        self, test_notification_token: str
    ) -> APIResult[CheckTestNotificationResponse]:
        """Check the status of a test server notification.

        Args:
            test_notification_token: Token from request_test_notification

        Returns:
            Result with the notification payload and send attempts
        """
        return await self._make_request_with_response_body(
            "/inApps/v1/notifications/test/" + _segment(test_notification_token),
            "GET",
            {},
            None,
            CheckTestNotificationResponse,
        )

    async def get_transaction_history(
        self,
        transaction_id: str,
        revision: Optional[str],
        transaction_history_request: TransactionHistoryRequest,
        version: GetTransactionHistoryVersion = GetTransactionHistoryVersion.V1,
    ) -> APIResult[HistoryResponse]:
        """Get a page of a customer's in-app purchase transaction history.

        Requests using a revision token must repeat the filters of the
        initial request.

        Args:
            transaction_id: Any transaction identifier belonging to the customer
            revision: Revision token from the previous page, if any
            transaction_history_request: Query filters
            version: Endpoint version

        Returns:
            Result with signed transactions and the next revision
        """
        request = transaction_history_request
        query_parameters: QueryParameters = {}
        if revision is not None:
            query_parameters["revision"] = [revision]
        if request.start_date is not None:
            query_parameters["startDate"] = [epoch_millis(request.start_date)]
        if request.end_date is not None:
            query_parameters["endDate"] = [epoch_millis(request.end_date)]
        if request.product_ids is not None:
            query_parameters["productId"] = list(request.product_ids)
        if request.product_types is not None:
            query_parameters["productType"] = [t.value for t in request.product_types]
        if request.sort is not None:
            query_parameters["sort"] = [request.sort.value]
        if request.subscription_group_identifiers is not None:
            query_parameters["subscriptionGroupIdentifier"] = list(
                request.subscription_group_identifiers
            )
        if request.in_app_ownership_type is not None:
            query_parameters["inAppOwnershipType"] = [
                request.in_app_ownership_type.value
            ]
        if request.revoked is not None:
            query_parameters["revoked"] = ["true" if request.revoked else "false"]

        return await self._make_request_with_response_body(
            f"/inApps/{GetTransactionHistoryVersion(version).value}/history/"
            + _segment(transaction_id),
            "GET",
            query_parameters,
            None,
            HistoryResponse,
        )

    async def get_transaction_info(
        self, transaction_id: str
    ) -> APIResult[TransactionInfoResponse]:
        """Get information about a single transaction.

        Args:
            transaction_id: Any transaction identifier belonging to the customer

        Returns:
            Result with the signed transaction information
        """
        return await self._make_request_with_response_body(
            "/inApps/v1/transactions/" + _segment(transaction_id),
            "GET",
            {},
            None,
            TransactionInfoResponse,
        )

    async def look_up_order_id(self, order_id: str) -> APIResult[OrderLookupResponse]:
        """Get a customer's in-app purchases from a receipt order ID.

        Args:
            order_id: Order ID from the customer's receipt

        Returns:
            Result with the lookup status and signed transactions
        """
        return await self._make_request_with_response_body(
            "/inApps/v1/lookup/" + _segment(order_id),
            "GET",
            {},
            None,
            OrderLookupResponse,
        )

    async def request_test_notification(
        self,
    ) -> APIResult[SendTestNotificationResponse]:
        """Ask App Store Server Notifications to send a test notification.

        Returns:
            Result with the test notification token
        """
        return await self._make_request_with_response_body(
            "/inApps/v1/notifications/test",
            "POST",
            {},
            None,
            SendTestNotificationResponse,
        )

    async def get_notification_history(
        self,
        pagination_token: Optional[str],
        notification_history_request: NotificationHistoryRequest,
    ) -> APIResult[NotificationHistoryResponse]:
        """Get a page of notifications the App Store server tried to send.

        Args:
            pagination_token: Token from the previous page, omit for the first
            notification_history_request: Date range and optional filters

        Returns:
            Result with notification history records
        """
        query_parameters: QueryParameters = {}
        if pagination_token is not None:
            query_parameters["paginationToken"] = [pagination_token]

        return await self._make_request_with_response_body(
            "/inApps/v1/notifications/history",
            "POST",
            query_parameters,
            notification_history_request,
            NotificationHistoryResponse,
        )

    async def send_consumption_data(
        self, transaction_id: str, consumption_request: ConsumptionRequest
    ) -> APIResult[None]:
        """Send consumption information about a consumable in-app purchase.

        Args:
            transaction_id: Transaction from the CONSUMPTION_REQUEST notification
            consumption_request: Consumption information

        Returns:
            Success(None) once accepted, or the failure
        """
        return await self._make_request_without_response_body(
            "/inApps/v1/transactions/consumption/" + _segment(transaction_id),
            "PUT",
            {},
            consumption_request,
        )
