# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Registry of API operations.

Each ``Endpoint`` names the flag it needs. ``active_endpoints`` filters the
registry for one generation; ``tusk.surface`` turns the result into client
methods, so an inactive endpoint has no method at all.

Path templates use ``{name}`` placeholders, filled from keyword arguments of the
generated method.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal
from urllib.parse import quote

from .model import requests as rq
from .model.fields import ListOf, Ref, TypeExpr
from .versioning import FeatureId, ServerCapabilities

Method = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True, slots=True)
class Endpoint:
    """One API operation.

    Attributes:
        name: Method name on the generated client
        method: HTTP verb
        path: Path template, e.g. ``/api/v1/accounts/{id}``
        returns: Decoded response type; ``None`` ignores the body
        since: Required flag; ``None`` for baseline endpoints
        body: Request model sent as the JSON (or multipart) body
        params: Request model sent as the query string
        paged: Response carries ``Link`` pagination headers
        auth: Requires an access token
        stream: Opens a streaming connection instead of a request
        multipart: Body is ``multipart/form-data``
    """

    name: str
    method: Method
    path: str
    returns: TypeExpr | None = None
    since: FeatureId | None = None
    body: type[rq.RequestModel] | None = None
    params: type[rq.RequestModel] | None = None
    paged: bool = False
    auth: bool = True
    stream: bool = False
    multipart: bool = False
    doc: str = ""

    def __post_init__(self) -> None:
        if self.body is not None and self.params is not None:
            raise ValueError(f"{self.name}: an endpoint takes a body or params, not both")
        if self.paged and not isinstance(self.returns, ListOf):
            raise ValueError(f"{self.name}: paged endpoints must return a list")

    @property
    def api(self) -> str:
        """API namespace, ``"v1"`` or ``"v2"``."""
        return self.path.split("/")[2]

    @property
    def path_params(self) -> tuple[str, ...]:
        return tuple(_PLACEHOLDER.findall(self.path))

    def format_path(self, **values: object) -> str:
        """Fill placeholders, percent-encoding each value.

        Raises:
            TypeError: If a placeholder has no value or an unknown one is given
        """
        expected = set(self.path_params)
        missing = expected - values.keys()
        if missing:
            raise TypeError(f"{self.name}() missing path argument(s): {', '.join(sorted(missing))}")
        unknown = values.keys() - expected
        if unknown:
            raise TypeError(f"{self.name}() got unexpected path argument(s): {', '.join(sorted(unknown))}")
        return _PLACEHOLDER.sub(lambda m: quote(str(values[m.group(1)]), safe=""), self.path)


def _one(entity: str) -> Ref:
    return Ref(entity)


def _many(entity: str) -> ListOf:
    return ListOf(Ref(entity))


_F = FeatureId

ENDPOINTS: tuple[Endpoint, ...] = (
    # -- accounts --------------------------------------------------------------
    Endpoint("get_account", "GET", "/api/v1/accounts/{id}", _one("Account"), auth=False),
    Endpoint("verify_credentials", "GET", "/api/v1/accounts/verify_credentials", _one("Account")),
    Endpoint(
        "update_credentials",
        "PATCH",
        "/api/v1/accounts/update_credentials",
        _one("Account"),
        body=rq.UpdateCredentials,
    ),
    Endpoint(
        "followers", "GET", "/api/v1/accounts/{id}/followers", _many("Account"), params=rq.PageParams, paged=True
    ),
    Endpoint(
        "following", "GET", "/api/v1/accounts/{id}/following", _many("Account"), params=rq.PageParams, paged=True
    ),
    Endpoint(
        "account_statuses",
        "GET",
        "/api/v1/accounts/{id}/statuses",
        _many("Status"),
        params=rq.StatusesFilter,
        paged=True,
        auth=False,
    ),
    Endpoint(
        "relationships", "GET", "/api/v1/accounts/relationships", _many("Relationship"), params=rq.RelationshipsParams
    ),
    Endpoint("search_accounts", "GET", "/api/v1/accounts/search", _many("Account"), params=rq.AccountSearchParams),
    Endpoint("follow", "POST", "/api/v1/accounts/{id}/follow", _one("Relationship"), body=rq.FollowRequest),
    Endpoint("unfollow", "POST", "/api/v1/accounts/{id}/unfollow", _one("Relationship")),
    Endpoint("block", "POST", "/api/v1/accounts/{id}/block", _one("Relationship")),
    Endpoint("unblock", "POST", "/api/v1/accounts/{id}/unblock", _one("Relationship")),
    Endpoint("mute", "POST", "/api/v1/accounts/{id}/mute", _one("Relationship"), body=rq.MuteRequest),
    Endpoint("unmute", "POST", "/api/v1/accounts/{id}/unmute", _one("Relationship")),
    Endpoint(
        "remote_follow",
        "POST",
        "/api/v1/follows",
        _one("Account"),
        since=_F.REMOTE_FOLLOW,
        body=rq.RemoteFollowRequest,
        doc="Follow a remote account by its user@domain address.",
    ),
    Endpoint("account_lists", "GET", "/api/v1/accounts/{id}/lists", _many("List"), since=_F.LISTS),
    Endpoint("endorse", "POST", "/api/v1/accounts/{id}/pin", _one("Relationship"), since=_F.ENDORSEMENTS),
    Endpoint("unendorse", "POST", "/api/v1/accounts/{id}/unpin", _one("Relationship"), since=_F.ENDORSEMENTS),
    Endpoint(
        "endorsements",
        "GET",
        "/api/v1/endorsements",
        _many("Account"),
        since=_F.ENDORSEMENTS,
        params=rq.PageParams,
        paged=True,
    ),
    Endpoint("suggestions", "GET", "/api/v1/suggestions", _many("Account"), since=_F.SUGGESTIONS),
    Endpoint("delete_suggestion", "DELETE", "/api/v1/suggestions/{account_id}", since=_F.SUGGESTIONS),
    Endpoint(
        "directory",
        "GET",
        "/api/v1/directory",
        _many("Account"),
        since=_F.DIRECTORY,
        params=rq.DirectoryParams,
        auth=False,
    ),
    Endpoint("blocks", "GET", "/api/v1/blocks", _many("Account"), params=rq.PageParams, paged=True),
    Endpoint("mutes", "GET", "/api/v1/mutes", _many("Account"), params=rq.PageParams, paged=True),
    Endpoint("domain_blocks", "GET", "/api/v1/domain_blocks", ListOf(str), params=rq.PageParams, paged=True),
    Endpoint("block_domain", "POST", "/api/v1/domain_blocks", body=rq.DomainBlockRequest),
    Endpoint("unblock_domain", "DELETE", "/api/v1/domain_blocks", params=rq.DomainBlockRequest),
    Endpoint("follow_requests", "GET", "/api/v1/follow_requests", _many("Account"), params=rq.PageParams, paged=True),
    Endpoint("authorize_follow_request", "POST", "/api/v1/follow_requests/{id}/authorize"),
    Endpoint("reject_follow_request", "POST", "/api/v1/follow_requests/{id}/reject"),
    # -- statuses --------------------------------------------------------------
    Endpoint("get_status", "GET", "/api/v1/statuses/{id}", _one("Status"), auth=False),
    Endpoint("status_context", "GET", "/api/v1/statuses/{id}/context", _one("Context"), auth=False),
    Endpoint("status_card", "GET", "/api/v1/statuses/{id}/card", _one("Card"), auth=False),
    Endpoint(
        "reblogged_by",
        "GET",
        "/api/v1/statuses/{id}/reblogged_by",
        _many("Account"),
        params=rq.PageParams,
        paged=True,
        auth=False,
    ),
    Endpoint(
        "favourited_by",
        "GET",
        "/api/v1/statuses/{id}/favourited_by",
        _many("Account"),
        params=rq.PageParams,
        paged=True,
        auth=False,
    ),
    Endpoint("new_status", "POST", "/api/v1/statuses", _one("Status"), body=rq.NewStatus),
    Endpoint("delete_status", "DELETE", "/api/v1/statuses/{id}"),
    Endpoint("reblog", "POST", "/api/v1/statuses/{id}/reblog", _one("Status")),
    Endpoint("unreblog", "POST", "/api/v1/statuses/{id}/unreblog", _one("Status")),
    Endpoint("favourite", "POST", "/api/v1/statuses/{id}/favourite", _one("Status")),
    Endpoint("unfavourite", "POST", "/api/v1/statuses/{id}/unfavourite", _one("Status")),
    Endpoint("mute_conversation", "POST", "/api/v1/statuses/{id}/mute", _one("Status")),
    Endpoint("unmute_conversation", "POST", "/api/v1/statuses/{id}/unmute", _one("Status")),
    Endpoint("pin", "POST", "/api/v1/statuses/{id}/pin", _one("Status"), since=_F.PINNED_STATUSES),
    Endpoint("unpin", "POST", "/api/v1/statuses/{id}/unpin", _one("Status"), since=_F.PINNED_STATUSES),
    Endpoint("bookmark", "POST", "/api/v1/statuses/{id}/bookmark", _one("Status"), since=_F.BOOKMARKS),
    Endpoint("unbookmark", "POST", "/api/v1/statuses/{id}/unbookmark", _one("Status"), since=_F.BOOKMARKS),
    Endpoint(
        "bookmarks", "GET", "/api/v1/bookmarks", _many("Status"), since=_F.BOOKMARKS, params=rq.PageParams, paged=True
    ),
    Endpoint("favourites", "GET", "/api/v1/favourites", _many("Status"), params=rq.PageParams, paged=True),
    Endpoint(
        "upload_media",
        "POST",
        "/api/v1/media",
        _one("Attachment"),
        body=rq.MediaUpload,
        multipart=True,
    ),
    # -- timelines -------------------------------------------------------------
    Endpoint(
        "home_timeline", "GET", "/api/v1/timelines/home", _many("Status"), params=rq.TimelineFilter, paged=True
    ),
    Endpoint(
        "public_timeline",
        "GET",
        "/api/v1/timelines/public",
        _many("Status"),
        params=rq.TimelineFilter,
        paged=True,
        auth=False,
    ),
    Endpoint(
        "tag_timeline",
        "GET",
        "/api/v1/timelines/tag/{hashtag}",
        _many("Status"),
        params=rq.TimelineFilter,
        paged=True,
        auth=False,
    ),
    Endpoint(
        "list_timeline",
        "GET",
        "/api/v1/timelines/list/{list_id}",
        _many("Status"),
        since=_F.LISTS,
        params=rq.PageParams,
        paged=True,
    ),
    Endpoint(
        "conversations",
        "GET",
        "/api/v1/conversations",
        _many("Conversation"),
        since=_F.CONVERSATIONS,
        params=rq.PageParams,
        paged=True,
    ),
    Endpoint("delete_conversation", "DELETE", "/api/v1/conversations/{id}", since=_F.CONVERSATIONS),
    Endpoint(
        "mark_conversation_read",
        "POST",
        "/api/v1/conversations/{id}/read",
        _one("Conversation"),
        since=_F.CONVERSATIONS,
    ),
    # -- notifications ---------------------------------------------------------
    Endpoint(
        "notifications",
        "GET",
        "/api/v1/notifications",
        _many("Notification"),
        params=rq.NotificationsFilter,
        paged=True,
    ),
    Endpoint("get_notification", "GET", "/api/v1/notifications/{id}", _one("Notification")),
    Endpoint("clear_notifications", "POST", "/api/v1/notifications/clear"),
    # -- search ----------------------------------------------------------------
    Endpoint(
        "search", "GET", "/api/v1/search", _one("SearchResult"), since=_F.SEARCH_V1, params=rq.SearchParams
    ),
    Endpoint(
        "search_v2", "GET", "/api/v2/search", _one("SearchResultV2"), since=_F.SEARCH_V2, params=rq.SearchV2Params
    ),
    # -- instance --------------------------------------------------------------
    Endpoint("instance", "GET", "/api/v1/instance", _one("Instance"), auth=False),
    Endpoint("instance_peers", "GET", "/api/v1/instance/peers", ListOf(str), auth=False),
    Endpoint("custom_emojis", "GET", "/api/v1/custom_emojis", _many("Emoji"), since=_F.CUSTOM_EMOJIS, auth=False),
    Endpoint("trends", "GET", "/api/v1/trends", _many("Tag"), since=_F.TRENDS, auth=False),
    Endpoint("announcements", "GET", "/api/v1/announcements", _many("Announcement"), since=_F.ANNOUNCEMENTS),
    Endpoint("dismiss_announcement", "POST", "/api/v1/announcements/{id}/dismiss", since=_F.ANNOUNCEMENTS),
    Endpoint(
        "add_announcement_reaction", "PUT", "/api/v1/announcements/{id}/reactions/{name}", since=_F.ANNOUNCEMENTS
    ),
    Endpoint(
        "remove_announcement_reaction",
        "DELETE",
        "/api/v1/announcements/{id}/reactions/{name}",
        since=_F.ANNOUNCEMENTS,
    ),
    # -- lists -----------------------------------------------------------------
    Endpoint("lists", "GET", "/api/v1/lists", _many("List"), since=_F.LISTS),
    Endpoint("get_list", "GET", "/api/v1/lists/{id}", _one("List"), since=_F.LISTS),
    Endpoint("create_list", "POST", "/api/v1/lists", _one("List"), since=_F.LISTS, body=rq.NewList),
    Endpoint("update_list", "PUT", "/api/v1/lists/{id}", _one("List"), since=_F.LISTS, body=rq.NewList),
    Endpoint("delete_list", "DELETE", "/api/v1/lists/{id}", since=_F.LISTS),
    Endpoint(
        "list_accounts",
        "GET",
        "/api/v1/lists/{id}/accounts",
        _many("Account"),
        since=_F.LISTS,
        params=rq.PageParams,
        paged=True,
    ),
    Endpoint("add_list_accounts", "POST", "/api/v1/lists/{id}/accounts", since=_F.LISTS, body=rq.ListAccountsRequest),
    Endpoint(
        "remove_list_accounts",
        "DELETE",
        "/api/v1/lists/{id}/accounts",
        since=_F.LISTS,
        params=rq.ListAccountsRequest,
    ),
    # -- filters ---------------------------------------------------------------
    Endpoint("filters", "GET", "/api/v1/filters", _many("Filter"), since=_F.FILTERS),
    Endpoint("get_filter", "GET", "/api/v1/filters/{id}", _one("Filter"), since=_F.FILTERS),
    Endpoint("create_filter", "POST", "/api/v1/filters", _one("Filter"), since=_F.FILTERS, body=rq.FilterRequest),
    Endpoint("update_filter", "PUT", "/api/v1/filters/{id}", _one("Filter"), since=_F.FILTERS, body=rq.FilterRequest),
    Endpoint("delete_filter", "DELETE", "/api/v1/filters/{id}", since=_F.FILTERS),
    # -- reports ---------------------------------------------------------------
    Endpoint("report", "POST", "/api/v1/reports", _one("Report"), body=rq.NewReport),
    # -- push ------------------------------------------------------------------
    Endpoint(
        "push_subscription",
        "GET",
        "/api/v1/push/subscription",
        _one("PushSubscription"),
        since=_F.PUSH_SUBSCRIPTIONS,
    ),
    Endpoint(
        "subscribe_push",
        "POST",
        "/api/v1/push/subscription",
        _one("PushSubscription"),
        since=_F.PUSH_SUBSCRIPTIONS,
        body=rq.PushSubscriptionRequest,
    ),
    Endpoint(
        "update_push",
        "PUT",
        "/api/v1/push/subscription",
        _one("PushSubscription"),
        since=_F.PUSH_SUBSCRIPTIONS,
        body=rq.UpdatePushRequest,
    ),
    Endpoint("unsubscribe_push", "DELETE", "/api/v1/push/subscription", since=_F.PUSH_SUBSCRIPTIONS),
    # -- polls -----------------------------------------------------------------
    Endpoint("get_poll", "GET", "/api/v1/polls/{id}", _one("Poll"), since=_F.POLLS, auth=False),
    Endpoint("vote", "POST", "/api/v1/polls/{id}/votes", _one("Poll"), since=_F.POLLS, body=rq.PollVote),
    # -- scheduled statuses ----------------------------------------------------
    Endpoint(
        "scheduled_statuses",
        "GET",
        "/api/v1/scheduled_statuses",
        _many("ScheduledStatus"),
        since=_F.SCHEDULED_STATUSES,
        params=rq.PageParams,
        paged=True,
    ),
    Endpoint(
        "get_scheduled_status",
        "GET",
        "/api/v1/scheduled_statuses/{id}",
        _one("ScheduledStatus"),
        since=_F.SCHEDULED_STATUSES,
    ),
    Endpoint(
        "update_scheduled_status",
        "PUT",
        "/api/v1/scheduled_statuses/{id}",
        _one("ScheduledStatus"),
        since=_F.SCHEDULED_STATUSES,
        body=rq.ScheduledStatusUpdate,
    ),
    Endpoint(
        "cancel_scheduled_status", "DELETE", "/api/v1/scheduled_statuses/{id}", since=_F.SCHEDULED_STATUSES
    ),
    # -- admin -----------------------------------------------------------------
    Endpoint(
        "admin_accounts",
        "GET",
        "/api/v1/admin/accounts",
        _many("AdminAccount"),
        since=_F.ADMIN_API,
        params=rq.AdminAccountsFilter,
        paged=True,
    ),
    Endpoint("admin_account", "GET", "/api/v1/admin/accounts/{id}", _one("AdminAccount"), since=_F.ADMIN_API),
    Endpoint(
        "admin_account_action",
        "POST",
        "/api/v1/admin/accounts/{id}/action",
        since=_F.ADMIN_API,
        body=rq.AdminAction,
    ),
    Endpoint(
        "admin_approve", "POST", "/api/v1/admin/accounts/{id}/approve", _one("AdminAccount"), since=_F.ADMIN_API
    ),
    Endpoint(
        "admin_reject", "POST", "/api/v1/admin/accounts/{id}/reject", _one("AdminAccount"), since=_F.ADMIN_API
    ),
    Endpoint(
        "admin_enable", "POST", "/api/v1/admin/accounts/{id}/enable", _one("AdminAccount"), since=_F.ADMIN_API
    ),
    Endpoint(
        "admin_unsilence", "POST", "/api/v1/admin/accounts/{id}/unsilence", _one("AdminAccount"), since=_F.ADMIN_API
    ),
    Endpoint(
        "admin_unsuspend", "POST", "/api/v1/admin/accounts/{id}/unsuspend", _one("AdminAccount"), since=_F.ADMIN_API
    ),
    Endpoint(
        "admin_reports",
        "GET",
        "/api/v1/admin/reports",
        _many("AdminReport"),
        since=_F.ADMIN_API,
        params=rq.AdminReportsFilter,
        paged=True,
    ),
    Endpoint("admin_report", "GET", "/api/v1/admin/reports/{id}", _one("AdminReport"), since=_F.ADMIN_API),
    Endpoint(
        "admin_assign_report",
        "POST",
        "/api/v1/admin/reports/{id}/assign_to_self",
        _one("AdminReport"),
        since=_F.ADMIN_API,
    ),
    Endpoint(
        "admin_unassign_report",
        "POST",
        "/api/v1/admin/reports/{id}/unassign",
        _one("AdminReport"),
        since=_F.ADMIN_API,
    ),
    Endpoint(
        "admin_resolve_report",
        "POST",
        "/api/v1/admin/reports/{id}/resolve",
        _one("AdminReport"),
        since=_F.ADMIN_API,
    ),
    Endpoint(
        "admin_reopen_report",
        "POST",
        "/api/v1/admin/reports/{id}/reopen",
        _one("AdminReport"),
        since=_F.ADMIN_API,
    ),
    # -- streaming -------------------------------------------------------------
    Endpoint("stream_user", "GET", "/api/v1/streaming/user", stream=True),
    Endpoint("stream_public", "GET", "/api/v1/streaming/public", stream=True, auth=False),
    Endpoint("stream_local", "GET", "/api/v1/streaming/public/local", stream=True, auth=False),
    Endpoint(
        "stream_hashtag", "GET", "/api/v1/streaming/hashtag", params=rq.StreamTagParams, stream=True, auth=False
    ),
    Endpoint(
        "stream_local_hashtag",
        "GET",
        "/api/v1/streaming/hashtag/local",
        params=rq.StreamTagParams,
        stream=True,
        auth=False,
    ),
    Endpoint(
        "stream_list", "GET", "/api/v1/streaming/list", since=_F.LISTS, params=rq.StreamListParams, stream=True
    ),
    Endpoint("stream_direct", "GET", "/api/v1/streaming/direct", since=_F.CONVERSATIONS, stream=True),
)


def _index(endpoints: tuple[Endpoint, ...]) -> dict[str, Endpoint]:
    index: dict[str, Endpoint] = {}
    for endpoint in endpoints:
        if endpoint.name in index:
            raise ValueError(f"endpoint {endpoint.name!r} registered twice")
        index[endpoint.name] = endpoint
    return index


ENDPOINTS_BY_NAME: dict[str, Endpoint] = _index(ENDPOINTS)


def active_endpoints(caps: ServerCapabilities) -> dict[str, Endpoint]:
    """Endpoints whose flag is active under ``caps``, keyed by name."""
    return {e.name: e for e in ENDPOINTS if caps.supports(e.since)}


__all__ = ["ENDPOINTS", "ENDPOINTS_BY_NAME", "Endpoint", "Method", "active_endpoints"]
