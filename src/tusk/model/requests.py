# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Request bodies and query filters.

Gated fields carry ``Since`` metadata:

    class MuteRequest(RequestModel):
        notifications: bool | None = None
        duration: Annotated[int | None, Since(FeatureId.MUTE_DURATION)] = None

The per-generation model (``tusk.model.specialize.specialize_request``) drops
fields whose flag is inactive, in nested models too. Models forbid unknown
keys, so setting a field the target generation lacks is a ``ValidationError``
before any request is made. A model only exists at a generation where some
active endpoint takes it.

Only fields set explicitly are sent. Anything left at its default is omitted,
never transmitted as ``null``, so the server keeps its own default.

Validators and serializers are attached through ``Annotated`` metadata rather
than decorators so they survive specialization.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer

from ..versioning import FeatureId


@dataclass(frozen=True, slots=True)
class Since:
    """Field metadata: the flag that introduced a request field."""

    feature: FeatureId


VisibilityName = Literal["public", "unlisted", "private", "direct"]


class RequestModel(BaseModel):
    """Base class for every request body and query filter."""

    model_config = ConfigDict(extra="forbid")

    def to_body(self) -> dict[str, Any]:
        """JSON body holding only the explicitly set fields."""
        return self.model_dump(mode="json", exclude_unset=True)

    def to_query(self) -> list[tuple[str, str]]:
        """Query pairs; lists become repeated ``name[]`` keys."""
        pairs: list[tuple[str, str]] = []
        for key, value in self.to_body().items():
            if value is None:
                continue
            if isinstance(value, list):
                pairs.extend((f"{key}[]", _query_scalar(item)) for item in value)
            else:
                pairs.append((key, _query_scalar(value)))
        return pairs


def _query_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# =============================================================================
# Nested models
# =============================================================================


class PollOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    options: list[str] = Field(min_length=2)
    expires_in: int = Field(gt=0, description="Seconds until the poll closes")
    multiple: bool | None = None
    hide_totals: bool | None = None


class UpdateSource(BaseModel):
    model_config = ConfigDict(extra="forbid")

    privacy: VisibilityName | None = None
    sensitive: bool | None = None


class MetadataFieldInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    value: str


def _indexed(items: list[MetadataFieldInput]) -> dict[str, dict[str, str]]:
    # Rails nested attributes: {"0": {...}, "1": {...}}
    return {str(i): item.model_dump(mode="json") for i, item in enumerate(items)}


def _focus(point: tuple[float, float]) -> str:
    return f"{point[0]},{point[1]}"


def _in_unit_range(point: tuple[float, float]) -> tuple[float, float]:
    if not all(-1.0 <= axis <= 1.0 for axis in point):
        raise ValueError("focus coordinates must be within [-1.0, 1.0]")
    return point


class PushKeys(BaseModel):
    model_config = ConfigDict(extra="forbid")

    p256dh: str
    auth: str


class PushSubscriptionInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    endpoint: str
    keys: PushKeys


class PushAlertsInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    follow: bool | None = None
    favourite: bool | None = None
    reblog: bool | None = None
    mention: bool | None = None
    poll: Annotated[bool | None, Since(FeatureId.POLLS)] = None


class PushData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    alerts: PushAlertsInput


# =============================================================================
# Statuses
# =============================================================================


class NewStatus(RequestModel):
    """Body of ``POST /api/v1/statuses``."""

    status: str | None = None
    in_reply_to_id: str | None = None
    media_ids: list[str] | None = None
    sensitive: bool | None = None
    spoiler_text: str | None = None
    visibility: VisibilityName | None = None
    language: str | None = Field(default=None, min_length=2, max_length=3)
    poll: Annotated[PollOptions | None, Since(FeatureId.POLLS)] = None
    scheduled_at: Annotated[datetime | None, Since(FeatureId.SCHEDULED_STATUSES)] = None


class PollVote(RequestModel):
    choices: list[int] = Field(min_length=1)


class ScheduledStatusUpdate(RequestModel):
    scheduled_at: datetime


# =============================================================================
# Accounts
# =============================================================================


class UpdateCredentials(RequestModel):
    """Body of ``PATCH /api/v1/accounts/update_credentials``.

    A partial update: only the fields set here change on the server.
    """

    display_name: str | None = None
    note: str | None = None
    locked: bool | None = None
    bot: Annotated[bool | None, Since(FeatureId.ACCOUNT_BOT)] = None
    discoverable: Annotated[bool | None, Since(FeatureId.ACCOUNT_DISCOVERABLE)] = None
    source: Annotated[UpdateSource | None, Since(FeatureId.ACCOUNT_SOURCE)] = None
    fields_attributes: Annotated[
        list[MetadataFieldInput] | None,
        Since(FeatureId.ACCOUNT_FIELDS),
        PlainSerializer(lambda v: None if v is None else _indexed(v)),
    ] = None


class FollowRequest(RequestModel):
    reblogs: Annotated[bool | None, Since(FeatureId.RELATIONSHIP_SHOWING_REBLOGS)] = None
    notify: Annotated[bool | None, Since(FeatureId.FOLLOW_NOTIFY)] = None


class RemoteFollowRequest(RequestModel):
    uri: str = Field(description="user@domain of the remote account")


class MuteRequest(RequestModel):
    notifications: bool | None = None
    duration: Annotated[int | None, Since(FeatureId.MUTE_DURATION), Field(ge=0)] = None


class DomainBlockRequest(RequestModel):
    domain: str


class RelationshipsParams(RequestModel):
    id: list[str] = Field(min_length=1)


class AccountSearchParams(RequestModel):
    q: str
    limit: int | None = Field(default=None, gt=0)
    following: bool | None = None


class DirectoryParams(RequestModel):
    offset: int | None = Field(default=None, ge=0)
    limit: int | None = Field(default=None, gt=0)
    order: Literal["active", "new"] | None = None
    local: bool | None = None


# =============================================================================
# Timelines and listings
# =============================================================================


class PageParams(RequestModel):
    """``max_id`` / ``since_id`` / ``limit`` window for paged listings."""

    max_id: str | None = None
    since_id: str | None = None
    limit: int | None = Field(default=None, gt=0)


class StatusesFilter(RequestModel):
    """Query of ``GET /api/v1/accounts/:id/statuses``."""

    only_media: bool | None = None
    exclude_replies: bool | None = None
    pinned: Annotated[bool | None, Since(FeatureId.PINNED_STATUSES)] = None
    exclude_reblogs: Annotated[bool | None, Since(FeatureId.STATUSES_FILTER_EXCLUDE_REBLOGS)] = None
    max_id: str | None = None
    since_id: str | None = None
    limit: int | None = Field(default=None, gt=0)


class TimelineFilter(RequestModel):
    local: bool | None = None
    only_media: bool | None = None
    max_id: str | None = None
    since_id: str | None = None
    limit: int | None = Field(default=None, gt=0)


class NotificationsFilter(RequestModel):
    exclude_types: list[str] | None = None
    account_id: str | None = None
    max_id: str | None = None
    since_id: str | None = None
    limit: int | None = Field(default=None, gt=0)


# =============================================================================
# Search
# =============================================================================


class SearchParams(RequestModel):
    """Query of the v1 search endpoint."""

    q: str
    resolve: bool | None = None


class SearchV2Params(RequestModel):
    q: str
    resolve: bool | None = None
    type: Literal["accounts", "hashtags", "statuses"] | None = None
    limit: int | None = Field(default=None, gt=0)
    offset: int | None = Field(default=None, ge=0)


# =============================================================================
# Lists, filters, reports, push, media
# =============================================================================


class NewList(RequestModel):
    title: str = Field(min_length=1)


class ListAccountsRequest(RequestModel):
    account_ids: list[str] = Field(min_length=1)


class FilterRequest(RequestModel):
    phrase: str
    context: list[Literal["home", "notifications", "public", "thread"]] = Field(min_length=1)
    irreversible: bool | None = None
    whole_word: bool | None = None
    expires_in: int | None = Field(default=None, gt=0)


class NewReport(RequestModel):
    account_id: str
    status_ids: list[str] | None = None
    comment: str | None = None
    forward: Annotated[bool | None, Since(FeatureId.REPORT_FORWARD)] = None


class PushSubscriptionRequest(RequestModel):
    subscription: PushSubscriptionInput
    data: PushData | None = None


class UpdatePushRequest(RequestModel):
    data: PushData


class MediaUpload(RequestModel):
    """Multipart body of ``POST /api/v1/media``."""

    file: bytes
    filename: str = "file"
    mime_type: str | None = None
    description: Annotated[str | None, Since(FeatureId.ATTACHMENT_DESCRIPTION)] = None
    focus: Annotated[
        tuple[float, float] | None,
        Since(FeatureId.ATTACHMENT_FOCUS),
        AfterValidator(lambda v: None if v is None else _in_unit_range(v)),
        PlainSerializer(lambda v: None if v is None else _focus(v)),
    ] = None


# =============================================================================
# Admin
# =============================================================================


class AdminAccountsFilter(RequestModel):
    local: bool | None = None
    remote: bool | None = None
    active: bool | None = None
    pending: bool | None = None
    disabled: bool | None = None
    silenced: bool | None = None
    suspended: bool | None = None
    username: str | None = None
    display_name: str | None = None
    by_domain: str | None = None
    email: str | None = None
    ip: str | None = None
    staff: bool | None = None
    max_id: str | None = None
    since_id: str | None = None
    limit: int | None = Field(default=None, gt=0)


class AdminAction(RequestModel):
    type: Literal["none", "disable", "silence", "suspend"]
    report_id: str | None = None
    warning_preset_id: str | None = None
    text: str | None = None
    send_email_notification: bool | None = None


class AdminReportsFilter(RequestModel):
    resolved: bool | None = None
    account_id: str | None = None
    target_account_id: str | None = None
    max_id: str | None = None
    since_id: str | None = None
    limit: int | None = Field(default=None, gt=0)


# =============================================================================
# Streaming
# =============================================================================


class StreamTagParams(RequestModel):
    tag: str = Field(min_length=1)


class StreamListParams(RequestModel):
    list: str = Field(description="List id")


REQUEST_MODELS: tuple[type[RequestModel], ...] = (
    NewStatus,
    PollVote,
    ScheduledStatusUpdate,
    UpdateCredentials,
    FollowRequest,
    RemoteFollowRequest,
    MuteRequest,
    DomainBlockRequest,
    RelationshipsParams,
    AccountSearchParams,
    DirectoryParams,
    PageParams,
    StatusesFilter,
    TimelineFilter,
    NotificationsFilter,
    SearchParams,
    SearchV2Params,
    NewList,
    ListAccountsRequest,
    FilterRequest,
    NewReport,
    PushSubscriptionRequest,
    UpdatePushRequest,
    MediaUpload,
    AdminAccountsFilter,
    AdminAction,
    AdminReportsFilter,
    StreamTagParams,
    StreamListParams,
)

__all__ = [
    "REQUEST_MODELS",
    "AccountSearchParams",
    "AdminAccountsFilter",
    "AdminAction",
    "AdminReportsFilter",
    "DirectoryParams",
    "DomainBlockRequest",
    "FilterRequest",
    "FollowRequest",
    "ListAccountsRequest",
    "MediaUpload",
    "MetadataFieldInput",
    "MuteRequest",
    "NewList",
    "NewReport",
    "NewStatus",
    "NotificationsFilter",
    "PageParams",
    "PollOptions",
    "PollVote",
    "PushAlertsInput",
    "PushData",
    "PushKeys",
    "PushSubscriptionInput",
    "PushSubscriptionRequest",
    "RelationshipsParams",
    "RemoteFollowRequest",
    "RequestModel",
    "ScheduledStatusUpdate",
    "SearchParams",
    "SearchV2Params",
    "Since",
    "StatusesFilter",
    "StreamListParams",
    "StreamTagParams",
    "TimelineFilter",
    "UpdateCredentials",
    "UpdatePushRequest",
    "UpdateSource",
    "VisibilityName",
]
