# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Mastodon entity declarations across every tracked generation.

Each class lists every field the entity has carried in any tracked generation.
Baseline fields (present since 1.5.0) have no ``since``. Field order follows
the API documentation.

See https://docs.joinmastodon.org/entities/
"""

from __future__ import annotations

from datetime import datetime

from ..versioning import FeatureId
from .fields import EntitySpec, EnumSpec, Field, ListOf, Ref


# =============================================================================
# Enums
# =============================================================================


Visibility = EnumSpec(
    "Visibility",
    {"public": None, "unlisted": None, "private": None, "direct": None},
    doc="Who may see a status.",
)

MediaType = EnumSpec(
    "MediaType",
    {
        "image": None,
        "video": None,
        "gifv": None,
        "unknown": None,
        "audio": FeatureId.MEDIA_TYPE_AUDIO,
    },
)

CardType = EnumSpec("CardType", {"link": None, "photo": None, "video": None, "rich": None})

NotificationType = EnumSpec(
    "NotificationType",
    {
        "mention": None,
        "reblog": None,
        "favourite": None,
        "follow": None,
        "poll": FeatureId.POLLS,
        "follow_request": FeatureId.NOTIFICATION_FOLLOW_REQUEST,
        "status": FeatureId.NOTIFICATION_STATUS,
    },
)

FilterContext = EnumSpec(
    "FilterContext",
    {"home": None, "notifications": None, "public": None, "thread": None},
    doc="Where a keyword filter applies.",
)


# =============================================================================
# Accounts
# =============================================================================


class Emoji(EntitySpec):
    """A custom emoji."""

    since = FeatureId.STATUS_EMOJIS

    shortcode = Field(str)
    url = Field(str)
    static_url = Field(str)
    visible_in_picker = Field(bool, since=FeatureId.CUSTOM_EMOJIS, optional=True)


class MetadataField(EntitySpec):
    """A profile metadata name/value pair."""

    since = FeatureId.ACCOUNT_FIELDS

    name = Field(str)
    value = Field(str)
    verified_at = Field(datetime, optional=True, nullable=True)


class Source(EntitySpec):
    """Plain-text profile data returned by ``verify_credentials``."""

    since = FeatureId.ACCOUNT_SOURCE

    note = Field(str)
    fields = Field(ListOf(Ref("MetadataField")), optional=True)
    privacy = Field(Visibility, optional=True, nullable=True)
    # Some servers send "true"/"false" strings here
    sensitive = Field(bool, optional=True, nullable=True)
    language = Field(str, since=FeatureId.SOURCE_LANGUAGE, optional=True, nullable=True)


class Account(EntitySpec):
    """A user profile."""

    id = Field(str)
    username = Field(str)
    acct = Field(str, doc="user@domain for remote accounts, username for local ones")
    display_name = Field(str)
    locked = Field(bool)
    created_at = Field(datetime)
    followers_count = Field(int)
    following_count = Field(int)
    statuses_count = Field(int)
    note = Field(str)
    url = Field(str)
    avatar = Field(str)
    avatar_static = Field(str)
    header = Field(str)
    header_static = Field(str)
    emojis = Field(ListOf(Ref("Emoji")), since=FeatureId.ACCOUNT_EMOJIS)
    moved = Field(Ref("Account"), since=FeatureId.ACCOUNT_MOVED, optional=True, nullable=True)
    fields = Field(ListOf(Ref("MetadataField")), since=FeatureId.ACCOUNT_FIELDS, optional=True)
    bot = Field(bool, since=FeatureId.ACCOUNT_BOT, optional=True, nullable=True)
    source = Field(Ref("Source"), since=FeatureId.ACCOUNT_SOURCE, optional=True)
    last_status_at = Field(datetime, since=FeatureId.ACCOUNT_LAST_STATUS_AT, nullable=True)
    discoverable = Field(bool, since=FeatureId.ACCOUNT_DISCOVERABLE, optional=True, nullable=True)
    suspended = Field(bool, since=FeatureId.ACCOUNT_SUSPENDED, optional=True)
    mute_expires_at = Field(datetime, since=FeatureId.ACCOUNT_MUTE_EXPIRES_AT, optional=True, nullable=True)


class Relationship(EntitySpec):
    id = Field(str)
    following = Field(bool)
    followed_by = Field(bool)
    blocking = Field(bool)
    muting = Field(bool)
    muting_notifications = Field(bool, optional=True)
    requested = Field(bool)
    domain_blocking = Field(bool, optional=True)
    showing_reblogs = Field(bool, since=FeatureId.RELATIONSHIP_SHOWING_REBLOGS)
    endorsed = Field(bool, since=FeatureId.RELATIONSHIP_ENDORSED)
    notifying = Field(bool, since=FeatureId.FOLLOW_NOTIFY, optional=True)


# =============================================================================
# Statuses
# =============================================================================


class Mention(EntitySpec):
    id = Field(str)
    username = Field(str)
    acct = Field(str)
    url = Field(str)


class Tag(EntitySpec):
    name = Field(str)
    url = Field(str)


class Application(EntitySpec):
    """The app a status was posted from, or a registered OAuth app."""

    name = Field(str)
    website = Field(str, optional=True, nullable=True)
    vapid_key = Field(str, since=FeatureId.APPLICATION_VAPID_KEY, optional=True)


class Focus(EntitySpec):
    """Focal point of an image, each axis in ``[-1.0, 1.0]``."""

    since = FeatureId.ATTACHMENT_FOCUS

    x = Field(float)
    y = Field(float)


class ImageDetails(EntitySpec):
    width = Field(int, optional=True)
    height = Field(int, optional=True)
    size = Field(str, optional=True)
    aspect = Field(float, optional=True)


class AttachmentMeta(EntitySpec):
    original = Field(Ref("ImageDetails"), optional=True, nullable=True)
    small = Field(Ref("ImageDetails"), optional=True, nullable=True)
    focus = Field(Ref("Focus"), since=FeatureId.ATTACHMENT_FOCUS, optional=True, nullable=True)


class Attachment(EntitySpec):
    """A media file attached to a status."""

    id = Field(str)
    type = Field(MediaType)
    url = Field(str)
    preview_url = Field(str)
    remote_url = Field(str, optional=True, nullable=True)
    text_url = Field(str, optional=True, nullable=True)
    meta = Field(Ref("AttachmentMeta"), optional=True, nullable=True)
    description = Field(str, since=FeatureId.ATTACHMENT_DESCRIPTION, optional=True, nullable=True)
    blurhash = Field(str, since=FeatureId.ATTACHMENT_BLURHASH, optional=True, nullable=True)


class Card(EntitySpec):
    """Rich preview of a link in a status."""

    url = Field(str)
    title = Field(str)
    description = Field(str)
    type = Field(CardType)
    image = Field(str, optional=True, nullable=True)
    author_name = Field(str, optional=True, nullable=True)
    author_url = Field(str, optional=True, nullable=True)
    provider_name = Field(str, optional=True, nullable=True)
    provider_url = Field(str, optional=True, nullable=True)
    html = Field(str, optional=True, nullable=True)
    width = Field(int, optional=True, nullable=True)
    height = Field(int, optional=True, nullable=True)
    embed_url = Field(str, since=FeatureId.CARD_EMBED_URL, optional=True, nullable=True)
    blurhash = Field(str, since=FeatureId.CARD_BLURHASH, optional=True, nullable=True)


class PollOption(EntitySpec):
    since = FeatureId.POLLS

    title = Field(str)
    votes_count = Field(int, nullable=True)


class Poll(EntitySpec):
    since = FeatureId.POLLS

    id = Field(str)
    expires_at = Field(datetime, nullable=True)
    expired = Field(bool)
    multiple = Field(bool)
    votes_count = Field(int)
    voters_count = Field(int, optional=True, nullable=True)
    voted = Field(bool, optional=True)
    own_votes = Field(ListOf(int), optional=True)
    options = Field(ListOf(Ref("PollOption")))
    emojis = Field(ListOf(Ref("Emoji")), optional=True)


class Status(EntitySpec):
    """A post."""

    id = Field(str)
    uri = Field(str)
    url = Field(str, optional=True, nullable=True)
    account = Field(Ref("Account"))
    in_reply_to_id = Field(str, nullable=True)
    in_reply_to_account_id = Field(str, nullable=True)
    reblog = Field(Ref("Status"), optional=True, nullable=True)
    content = Field(str)
    created_at = Field(datetime)
    emojis = Field(ListOf(Ref("Emoji")), since=FeatureId.STATUS_EMOJIS)
    replies_count = Field(int, since=FeatureId.STATUS_REPLIES_COUNT)
    reblogs_count = Field(int)
    favourites_count = Field(int)
    reblogged = Field(bool, optional=True, nullable=True)
    favourited = Field(bool, optional=True, nullable=True)
    muted = Field(bool, optional=True, nullable=True)
    bookmarked = Field(bool, since=FeatureId.BOOKMARKS, optional=True)
    sensitive = Field(bool)
    spoiler_text = Field(str)
    visibility = Field(Visibility)
    media_attachments = Field(ListOf(Ref("Attachment")))
    mentions = Field(ListOf(Ref("Mention")))
    tags = Field(ListOf(Ref("Tag")))
    card = Field(Ref("Card"), since=FeatureId.STATUS_CARD, optional=True, nullable=True)
    poll = Field(Ref("Poll"), since=FeatureId.POLLS, optional=True, nullable=True)
    application = Field(Ref("Application"), optional=True, nullable=True)
    language = Field(str, optional=True, nullable=True)
    pinned = Field(bool, since=FeatureId.STATUS_PINNED, optional=True)


class Context(EntitySpec):
    """Ancestors and descendants of a status in its thread."""

    ancestors = Field(ListOf(Ref("Status")))
    descendants = Field(ListOf(Ref("Status")))


class ScheduledStatus(EntitySpec):
    since = FeatureId.SCHEDULED_STATUSES

    id = Field(str)
    scheduled_at = Field(datetime)
    params = Field(dict)
    media_attachments = Field(ListOf(Ref("Attachment")))


class Conversation(EntitySpec):
    """A direct-message thread."""

    since = FeatureId.CONVERSATIONS

    id = Field(str)
    accounts = Field(ListOf(Ref("Account")))
    last_status = Field(Ref("Status"), optional=True, nullable=True)
    unread = Field(bool)


# =============================================================================
# Notifications, search, instance
# =============================================================================


class Notification(EntitySpec):
    id = Field(str)
    type = Field(NotificationType)
    created_at = Field(datetime)
    account = Field(Ref("Account"))
    status = Field(Ref("Status"), optional=True, nullable=True)


class SearchResult(EntitySpec):
    """v1 search results; hashtags are bare strings."""

    since = FeatureId.SEARCH_V1

    accounts = Field(ListOf(Ref("Account")))
    statuses = Field(ListOf(Ref("Status")))
    hashtags = Field(ListOf(str))


class SearchResultV2(EntitySpec):
    since = FeatureId.SEARCH_V2

    accounts = Field(ListOf(Ref("Account")))
    statuses = Field(ListOf(Ref("Status")))
    hashtags = Field(ListOf(Ref("Tag")))


class InstanceUrls(EntitySpec):
    streaming_api = Field(str)


class InstanceStats(EntitySpec):
    since = FeatureId.INSTANCE_STATS

    user_count = Field(int)
    status_count = Field(int)
    domain_count = Field(int)


class Instance(EntitySpec):
    """Server metadata from ``/api/v1/instance``."""

    uri = Field(str)
    title = Field(str)
    description = Field(str)
    email = Field(str, nullable=True)
    version = Field(str)
    urls = Field(Ref("InstanceUrls"), optional=True)
    thumbnail = Field(str, optional=True, nullable=True)
    stats = Field(Ref("InstanceStats"), since=FeatureId.INSTANCE_STATS)
    languages = Field(ListOf(str), since=FeatureId.INSTANCE_LANGUAGES)
    contact_account = Field(Ref("Account"), since=FeatureId.INSTANCE_CONTACT_ACCOUNT, optional=True, nullable=True)
    registrations = Field(bool, since=FeatureId.INSTANCE_REGISTRATIONS)
    approval_required = Field(bool, since=FeatureId.INSTANCE_APPROVAL_REQUIRED)


# =============================================================================
# Lists, filters, reports, push
# =============================================================================


class List(EntitySpec):
    since = FeatureId.LISTS

    id = Field(str)
    title = Field(str)


class Filter(EntitySpec):
    """A keyword filter."""

    since = FeatureId.FILTERS

    id = Field(str)
    phrase = Field(str)
    context = Field(ListOf(FilterContext))
    expires_at = Field(datetime, nullable=True)
    irreversible = Field(bool)
    whole_word = Field(bool)


class Report(EntitySpec):
    id = Field(str)
    action_taken = Field(bool)


class PushAlerts(EntitySpec):
    since = FeatureId.PUSH_SUBSCRIPTIONS

    follow = Field(bool, optional=True)
    favourite = Field(bool, optional=True)
    reblog = Field(bool, optional=True)
    mention = Field(bool, optional=True)
    poll = Field(bool, since=FeatureId.POLLS, optional=True)


class PushSubscription(EntitySpec):
    """A Web Push subscription. Older servers send a numeric id."""

    since = FeatureId.PUSH_SUBSCRIPTIONS

    id = Field(str)
    endpoint = Field(str)
    server_key = Field(str)
    alerts = Field(Ref("PushAlerts"), optional=True, nullable=True)


# =============================================================================
# Announcements
# =============================================================================


class AnnouncementReaction(EntitySpec):
    since = FeatureId.ANNOUNCEMENTS

    name = Field(str)
    count = Field(int)
    me = Field(bool, optional=True)
    url = Field(str, optional=True)
    static_url = Field(str, optional=True)


class Announcement(EntitySpec):
    """An administrator announcement."""

    since = FeatureId.ANNOUNCEMENTS

    id = Field(str)
    content = Field(str)
    starts_at = Field(datetime, nullable=True)
    ends_at = Field(datetime, nullable=True)
    all_day = Field(bool)
    published_at = Field(datetime, optional=True)
    updated_at = Field(datetime, optional=True)
    read = Field(bool, optional=True)
    mentions = Field(ListOf(Ref("Mention")), optional=True)
    tags = Field(ListOf(Ref("Tag")), optional=True)
    emojis = Field(ListOf(Ref("Emoji")), optional=True)
    reactions = Field(ListOf(Ref("AnnouncementReaction")))


# =============================================================================
# Admin
# =============================================================================


class AdminAccount(EntitySpec):
    """Account as seen by a moderator."""

    since = FeatureId.ADMIN_API

    id = Field(str)
    username = Field(str)
    domain = Field(str, nullable=True)
    created_at = Field(datetime)
    email = Field(str)
    ip = Field(str, optional=True, nullable=True)
    role = Field(str)
    confirmed = Field(bool)
    suspended = Field(bool)
    silenced = Field(bool)
    disabled = Field(bool)
    approved = Field(bool)
    locale = Field(str, nullable=True)
    invite_request = Field(str, optional=True, nullable=True)
    account = Field(Ref("Account"))


class AdminReport(EntitySpec):
    since = FeatureId.ADMIN_API

    id = Field(str)
    action_taken = Field(bool)
    comment = Field(str)
    created_at = Field(datetime)
    updated_at = Field(datetime)
    account = Field(Ref("AdminAccount"))
    target_account = Field(Ref("AdminAccount"))
    assigned_account = Field(Ref("AdminAccount"), optional=True, nullable=True)
    action_taken_by_account = Field(Ref("AdminAccount"), optional=True, nullable=True)
    statuses = Field(ListOf(Ref("Status")))


ENUM_SPECS: tuple[EnumSpec, ...] = (Visibility, MediaType, CardType, NotificationType, FilterContext)

__all__ = [
    "ENUM_SPECS",
    "Account",
    "AdminAccount",
    "AdminReport",
    "Announcement",
    "AnnouncementReaction",
    "Application",
    "Attachment",
    "AttachmentMeta",
    "Card",
    "CardType",
    "Context",
    "Conversation",
    "Emoji",
    "Filter",
    "FilterContext",
    "Focus",
    "ImageDetails",
    "Instance",
    "InstanceStats",
    "InstanceUrls",
    "List",
    "MediaType",
    "Mention",
    "MetadataField",
    "Notification",
    "NotificationType",
    "Poll",
    "PollOption",
    "PushAlerts",
    "PushSubscription",
    "Relationship",
    "Report",
    "ScheduledStatus",
    "SearchResult",
    "SearchResultV2",
    "Source",
    "Status",
    "Tag",
    "Visibility",
]
