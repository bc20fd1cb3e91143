"""Wire models for App Store Server API requests and responses.

Field names are snake_case in Python and camelCase on the wire. Response
models ignore unknown fields and accept raw values for enumerations the
server may extend, so new server values do not break decoding.
"""

from datetime import datetime
from enum import Enum, IntEnum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from .config import Environment


class Status(IntEnum):
    ACTIVE = 1
    EXPIRED = 2
    BILLING_RETRY = 3
    BILLING_GRACE_PERIOD = 4
    REVOKED = 5


class ProductType(str, Enum):
    AUTO_RENEWABLE = "AUTO_RENEWABLE"
    NON_RENEWABLE = "NON_RENEWABLE"
    CONSUMABLE = "CONSUMABLE"
    NON_CONSUMABLE = "NON_CONSUMABLE"


class Order(str, Enum):
    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"


class InAppOwnershipType(str, Enum):
    FAMILY_SHARED = "FAMILY_SHARED"
    PURCHASED = "PURCHASED"


class GetTransactionHistoryVersion(str, Enum):
    V1 = "v1"
    V2 = "v2"


class ExtendReasonCode(IntEnum):
    UNDECLARED = 0
    CUSTOMER_SATISFACTION = 1
    OTHER = 2
    SERVICE_ISSUE_OR_OUTAGE = 3


class NotificationTypeV2(str, Enum):
    SUBSCRIBED = "SUBSCRIBED"
    DID_CHANGE_RENEWAL_PREF = "DID_CHANGE_RENEWAL_PREF"
    DID_CHANGE_RENEWAL_STATUS = "DID_CHANGE_RENEWAL_STATUS"
    OFFER_REDEEMED = "OFFER_REDEEMED"
    DID_RENEW = "DID_RENEW"
    EXPIRED = "EXPIRED"
    DID_FAIL_TO_RENEW = "DID_FAIL_TO_RENEW"
    GRACE_PERIOD_EXPIRED = "GRACE_PERIOD_EXPIRED"
    PRICE_INCREASE = "PRICE_INCREASE"
    REFUND = "REFUND"
    REFUND_DECLINED = "REFUND_DECLINED"
    REFUND_REVERSED = "REFUND_REVERSED"
    CONSUMPTION_REQUEST = "CONSUMPTION_REQUEST"
    RENEWAL_EXTENDED = "RENEWAL_EXTENDED"
    RENEWAL_EXTENSION = "RENEWAL_EXTENSION"
    REVOKE = "REVOKE"
    TEST = "TEST"


class Subtype(str, Enum):
    INITIAL_BUY = "INITIAL_BUY"
    RESUBSCRIBE = "RESUBSCRIBE"
    DOWNGRADE = "DOWNGRADE"
    UPGRADE = "UPGRADE"
    AUTO_RENEW_ENABLED = "AUTO_RENEW_ENABLED"
    AUTO_RENEW_DISABLED = "AUTO_RENEW_DISABLED"
    VOLUNTARY = "VOLUNTARY"
    BILLING_RETRY = "BILLING_RETRY"
    PRICE_INCREASE = "PRICE_INCREASE"
    GRACE_PERIOD = "GRACE_PERIOD"
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    BILLING_RECOVERY = "BILLING_RECOVERY"
    PRODUCT_NOT_FOR_SALE = "PRODUCT_NOT_FOR_SALE"
    SUMMARY = "SUMMARY"
    FAILURE = "FAILURE"


class SendAttemptResult(str, Enum):
    SUCCESS = "SUCCESS"
    TIMED_OUT = "TIMED_OUT"
    TLS_ISSUE = "TLS_ISSUE"
    CIRCULAR_REDIRECT = "CIRCULAR_REDIRECT"
    NO_RESPONSE = "NO_RESPONSE"
    SOCKET_ISSUE = "SOCKET_ISSUE"
    UNSUPPORTED_CHARSET = "UNSUPPORTED_CHARSET"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    PREMATURE_CLOSE = "PREMATURE_CLOSE"
    UNSUCCESSFUL_HTTP_RESPONSE_CODE = "UNSUCCESSFUL_HTTP_RESPONSE_CODE"
    OTHER = "OTHER"


class OrderLookupStatus(IntEnum):
    VALID = 0
    INVALID = 1


class AccountTenure(IntEnum):
    UNDECLARED = 0
    ZERO_TO_THREE_DAYS = 1
    THREE_DAYS_TO_TEN_DAYS = 2
    TEN_DAYS_TO_THIRTY_DAYS = 3
    THIRTY_DAYS_TO_NINETY_DAYS = 4
    NINETY_DAYS_TO_ONE_HUNDRED_EIGHTY_DAYS = 5
    ONE_HUNDRED_EIGHTY_DAYS_TO_THREE_HUNDRED_SIXTY_FIVE_DAYS = 6
    GREATER_THAN_THREE_HUNDRED_SIXTY_FIVE_DAYS = 7


class ConsumptionStatus(IntEnum):
    UNDECLARED = 0
    NOT_CONSUMED = 1
    PARTIALLY_CONSUMED = 2
    FULLY_CONSUMED = 3


class DeliveryStatus(IntEnum):
    DELIVERED_AND_WORKING_PROPERLY = 0
    DID_NOT_DELIVER_DUE_TO_QUALITY_ISSUE = 1
    DELIVERED_WRONG_ITEM = 2
    DID_NOT_DELIVER_DUE_TO_SERVER_OUTAGE = 3
    DID_NOT_DELIVER_DUE_TO_IN_GAME_CURRENCY_CHANGE = 4
    DID_NOT_DELIVER_FOR_OTHER_REASON = 5


class LifetimeDollarsPurchased(IntEnum):
    UNDECLARED = 0
    ZERO_DOLLARS = 1
    ONE_CENT_TO_FORTY_NINE_DOLLARS_AND_NINETY_NINE_CENTS = 2
    FIFTY_DOLLARS_TO_NINETY_NINE_DOLLARS_AND_NINETY_NINE_CENTS = 3
    ONE_HUNDRED_DOLLARS_TO_FOUR_HUNDRED_NINETY_NINE_DOLLARS_AND_NINETY_NINE_CENTS = 4
    FIVE_HUNDRED_DOLLARS_TO_NINE_HUNDRED_NINETY_NINE_DOLLARS_AND_NINETY_NINE_CENTS = 5
    ONE_THOUSAND_DOLLARS_TO_ONE_THOUSAND_NINE_HUNDRED_NINETY_NINE_DOLLARS_AND_NINETY_NINE_CENTS = 6
    TWO_THOUSAND_DOLLARS_OR_GREATER = 7


class LifetimeDollarsRefunded(IntEnum):
    UNDECLARED = 0
    ZERO_DOLLARS = 1
    ONE_CENT_TO_FORTY_NINE_DOLLARS_AND_NINETY_NINE_CENTS = 2
    FIFTY_DOLLARS_TO_NINETY_NINE_DOLLARS_AND_NINETY_NINE_CENTS = 3
    ONE_HUNDRED_DOLLARS_TO_FOUR_HUNDRED_NINETY_NINE_DOLLARS_AND_NINETY_NINE_CENTS = 4
    FIVE_HUNDRED_DOLLARS_TO_NINE_HUNDRED_NINETY_NINE_DOLLARS_AND_NINETY_NINE_CENTS = 5
    ONE_THOUSAND_DOLLARS_TO_ONE_THOUSAND_NINE_HUNDRED_NINETY_NINE_DOLLARS_AND_NINETY_NINE_CENTS = 6
    TWO_THOUSAND_DOLLARS_OR_GREATER = 7


class Platform(IntEnum):
    UNDECLARED = 0
    APPLE = 1
    NON_APPLE = 2


class PlayTime(IntEnum):
    UNDECLARED = 0
    ZERO_TO_FIVE_MINUTES = 1
    FIVE_TO_SIXTY_MINUTES = 2
    ONE_TO_SIX_HOURS = 3
    SIX_HOURS_TO_TWENTY_FOUR_HOURS = 4
    ONE_DAY_TO_FOUR_DAYS = 5
    FOUR_DAYS_TO_SIXTEEN_DAYS = 6
    OVER_SIXTEEN_DAYS = 7


class UserStatus(IntEnum):
    UNDECLARED = 0
    ACTIVE = 1
    SUSPENDED = 2
    TERMINATED = 3
    LIMITED_ACCESS = 4


class WireModel(BaseModel):
    """Base for request and response bodies."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# Error envelope


class ErrorPayload(WireModel):
    error_code: Optional[StrictInt] = None
    error_message: Optional[str] = None


# Request bodies


class MassExtendRenewalDateRequest(WireModel):
    extend_by_days: int = Field(..., description="Days to extend, 1-90")
    extend_reason_code: ExtendReasonCode
    request_identifier: str = Field(..., description="Caller generated UUID")
    product_id: str
    storefront_country_codes: Optional[List[str]] = None


class ExtendRenewalDateRequest(WireModel):
    extend_by_days: int = Field(..., description="Days to extend, 1-90")
    extend_reason_code: ExtendReasonCode
    request_identifier: str = Field(..., description="Caller generated UUID")


class NotificationHistoryRequest(WireModel):
    start_date: int = Field(..., description="Start of the range, epoch milliseconds")
    end_date: int = Field(..., description="End of the range, epoch milliseconds")
    notification_type: Optional[NotificationTypeV2] = None
    notification_subtype: Optional[Subtype] = None
    transaction_id: Optional[str] = None
    original_transaction_id: Optional[str] = None
    only_failures: Optional[bool] = None


class ConsumptionRequest(WireModel):
    customer_consented: bool
    consumption_status: ConsumptionStatus
    platform: Platform
    sample_content_provided: bool
    delivery_status: DeliveryStatus
    app_account_token: str = Field("", description="UUID, or empty string")
    account_tenure: AccountTenure
    play_time: PlayTime
    lifetime_dollars_refunded: LifetimeDollarsRefunded
    lifetime_dollars_purchased: LifetimeDollarsPurchased
    user_status: UserStatus


class TransactionHistoryRequest(WireModel):
    """Filters for transaction history, sent as query parameters."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    product_ids: Optional[List[str]] = None
    product_types: Optional[List[ProductType]] = None
    sort: Optional[Order] = None
    subscription_group_identifiers: Optional[List[str]] = None
    in_app_ownership_type: Optional[InAppOwnershipType] = None
    revoked: Optional[bool] = None


# Response bodies


class MassExtendRenewalDateResponse(WireModel):
    request_identifier: Optional[str] = None


class ExtendRenewalDateResponse(WireModel):
    original_transaction_id: Optional[str] = None
    web_order_line_item_id: Optional[str] = None
    success: Optional[bool] = None
    effective_date: Optional[int] = None


class MassExtendRenewalDateStatusResponse(WireModel):
    request_identifier: Optional[str] = None
    complete: Optional[bool] = None
    complete_date: Optional[int] = None
    succeeded_count: Optional[int] = None
    failed_count: Optional[int] = None


class LastTransactionsItem(WireModel):
    status: Optional[Union[Status, int]] = None
    original_transaction_id: Optional[str] = None
    signed_transaction_info: Optional[str] = None
    signed_renewal_info: Optional[str] = None


class SubscriptionGroupIdentifierItem(WireModel):
    subscription_group_identifier: Optional[str] = None
    last_transactions: Optional[List[LastTransactionsItem]] = None


class StatusResponse(WireModel):
    environment: Optional[Union[Environment, str]] = None
    bundle_id: Optional[str] = None
    app_apple_id: Optional[int] = None
    data: Optional[List[SubscriptionGroupIdentifierItem]] = None


class RefundHistoryResponse(WireModel):
    signed_transactions: Optional[List[str]] = None
    revision: Optional[str] = None
    has_more: Optional[bool] = None


class SendAttemptItem(WireModel):
    attempt_date: Optional[int] = None
    send_attempt_result: Optional[Union[SendAttemptResult, str]] = None


class CheckTestNotificationResponse(WireModel):
    signed_payload: Optional[str] = None
    send_attempts: Optional[List[SendAttemptItem]] = None


class HistoryResponse(WireModel):
    revision: Optional[str] = None
    has_more: Optional[bool] = None
    bundle_id: Optional[str] = None
    app_apple_id: Optional[int] = None
    environment: Optional[Union[Environment, str]] = None
    signed_transactions: Optional[List[str]] = None


class TransactionInfoResponse(WireModel):
    signed_transaction_info: Optional[str] = None


class OrderLookupResponse(WireModel):
    status: Optional[Union[OrderLookupStatus, int]] = None
    signed_transactions: Optional[List[str]] = None


class SendTestNotificationResponse(WireModel):
    test_notification_token: Optional[str] = None


class NotificationHistoryResponseItem(WireModel):
    signed_payload: Optional[str] = None
    send_attempts: Optional[List[SendAttemptItem]] = None


class NotificationHistoryResponse(WireModel):
    pagination_token: Optional[str] = None
    has_more: Optional[bool] = None
    notification_history: Optional[List[NotificationHistoryResponseItem]] = None
