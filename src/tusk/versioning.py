# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Server generation tracking and the capability matrix.

Each tracked Mastodon release line is a ``ServerVersion``. The API surface of a
generation is the set of ``FeatureId`` flags active at it, resolved by walking
``MIGRATIONS`` from the oldest generation up to the target:

    >>> caps = capabilities_for(V_2_4_0)
    >>> caps.supports(FeatureId.SEARCH_V2)
    True
    >>> capabilities_for(V_3_0_0).supports(FeatureId.SEARCH_V1)
    False

Items available in every tracked generation carry no flag at all; only deltas
are recorded here. A flag is assigned to the first tracked generation at or
after the Mastodon release that shipped it, so a field added in 2.8.0 becomes
active at 2.9.1.

The migration table is validated when this module is imported. Authoring
mistakes (a flag added twice, removed before it exists, versions out of order)
raise ``MatrixError`` immediately rather than producing a skewed surface.

See more:
- https://docs.joinmastodon.org/entities/
- https://github.com/mastodon/mastodon/blob/main/CHANGELOG.md
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, auto
from functools import cache, total_ordering

from .utils import get_logger

_logger = get_logger("tusk.versioning")

_VERSION_PATTERN = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")


# =============================================================================
# Versions
# =============================================================================


@total_ordering
@dataclass(frozen=True, slots=True)
class ServerVersion:
    """A Mastodon release line, ordered by ``(major, minor, patch)``."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, value: str | ServerVersion) -> ServerVersion:
        """Parse ``"2.4.0"`` (an optional leading ``v`` is accepted)."""
        if isinstance(value, ServerVersion):
            return value
        match = _VERSION_PATTERN.match(value.strip())
        if match is None:
            raise ValueError(f"invalid server version: {value!r}")
        return cls(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ServerVersion):
            return NotImplemented
        return (self.major, self.minor, self.patch) < (other.major, other.minor, other.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @property
    def slug(self) -> str:
        """Identifier-safe form, e.g. ``"2_4_0"``."""
        return f"{self.major}_{self.minor}_{self.patch}"


V_1_5_0 = ServerVersion(1, 5, 0)
V_2_1_0 = ServerVersion(2, 1, 0)
V_2_1_2 = ServerVersion(2, 1, 2)
V_2_2_0 = ServerVersion(2, 2, 0)
V_2_4_0 = ServerVersion(2, 4, 0)
V_2_9_1 = ServerVersion(2, 9, 1)
V_3_0_0 = ServerVersion(3, 0, 0)
V_3_1_0 = ServerVersion(3, 1, 0)
V_3_3_0 = ServerVersion(3, 3, 0)

ALL_VERSIONS: tuple[ServerVersion, ...] = (
    V_1_5_0,
    V_2_1_0,
    V_2_1_2,
    V_2_2_0,
    V_2_4_0,
    V_2_9_1,
    V_3_0_0,
    V_3_1_0,
    V_3_3_0,
)
SUPPORTED_VERSIONS: frozenset[ServerVersion] = frozenset(ALL_VERSIONS)
OLDEST_VERSION = ALL_VERSIONS[0]
LATEST_VERSION = ALL_VERSIONS[-1]


# =============================================================================
# Errors
# =============================================================================


class UnsupportedVersionError(ValueError):
    """Raised when a version is not one of the tracked generations."""

    def __init__(self, version: ServerVersion, supported: frozenset[ServerVersion] = SUPPORTED_VERSIONS) -> None:
        self.version = version
        self.supported = supported
        listed = ", ".join(str(v) for v in sorted(supported))
        super().__init__(f"unsupported server version {version}; supported: {listed}")


class MatrixError(Exception):
    """Raised when the migration table is inconsistent."""


# =============================================================================
# Capability flags
# =============================================================================


class FeatureId(str, Enum):
    """Capability flags that differ between tracked generations.

    Naming: ``<AREA>_<THING>``. Endpoint groups use the bare area name
    (``LISTS``, ``FILTERS``); entity fields are prefixed with the entity.
    """

    # Retired at 3.0.0
    REMOTE_FOLLOW = "remote_follow"
    SEARCH_V1 = "search_v1"

    # 2.1.0 (1.6.0 - 2.1.0)
    ACCOUNT_MOVED = "account_moved"
    STATUS_PINNED = "status_pinned"
    STATUS_EMOJIS = "status_emojis"
    PINNED_STATUSES = "pinned_statuses"
    LISTS = "lists"
    CUSTOM_EMOJIS = "custom_emojis"
    ATTACHMENT_DESCRIPTION = "attachment_description"
    INSTANCE_STATS = "instance_stats"
    CARD_EMBED_URL = "card_embed_url"
    RELATIONSHIP_SHOWING_REBLOGS = "relationship_showing_reblogs"

    # 2.4.0 (2.3.0 - 2.4.0)
    ACCOUNT_EMOJIS = "account_emojis"
    ACCOUNT_FIELDS = "account_fields"
    ACCOUNT_BOT = "account_bot"
    ACCOUNT_SOURCE = "account_source"
    ATTACHMENT_FOCUS = "attachment_focus"
    INSTANCE_LANGUAGES = "instance_languages"
    INSTANCE_CONTACT_ACCOUNT = "instance_contact_account"
    PUSH_SUBSCRIPTIONS = "push_subscriptions"
    SEARCH_V2 = "search_v2"
    REPORT_FORWARD = "report_forward"

    # 2.9.1 (2.4.2 - 2.9.1)
    SOURCE_LANGUAGE = "source_language"
    FILTERS = "filters"
    SUGGESTIONS = "suggestions"
    ENDORSEMENTS = "endorsements"
    RELATIONSHIP_ENDORSED = "relationship_endorsed"
    STATUS_REPLIES_COUNT = "status_replies_count"
    STATUS_CARD = "status_card"
    CONVERSATIONS = "conversations"
    SCHEDULED_STATUSES = "scheduled_statuses"
    POLLS = "polls"
    ATTACHMENT_BLURHASH = "attachment_blurhash"
    MEDIA_TYPE_AUDIO = "media_type_audio"
    ADMIN_API = "admin_api"
    INSTANCE_REGISTRATIONS = "instance_registrations"
    APPLICATION_VAPID_KEY = "application_vapid_key"
    STATUSES_FILTER_EXCLUDE_REBLOGS = "statuses_filter_exclude_reblogs"

    # 3.0.0
    ACCOUNT_LAST_STATUS_AT = "account_last_status_at"
    DIRECTORY = "directory"
    TRENDS = "trends"
    INSTANCE_APPROVAL_REQUIRED = "instance_approval_required"

    # 3.1.0
    ACCOUNT_DISCOVERABLE = "account_discoverable"
    BOOKMARKS = "bookmarks"
    ANNOUNCEMENTS = "announcements"
    NOTIFICATION_FOLLOW_REQUEST = "notification_follow_request"

    # 3.3.0 (3.2.0 - 3.3.0)
    ACCOUNT_SUSPENDED = "account_suspended"
    ACCOUNT_MUTE_EXPIRES_AT = "account_mute_expires_at"
    NOTIFICATION_STATUS = "notification_status"
    FOLLOW_NOTIFY = "follow_notify"
    MUTE_DURATION = "mute_duration"
    CARD_BLURHASH = "card_blurhash"


class ChangeKind(Enum):
    """Direction of a change between two adjacent generations."""

    ADDED = auto()
    REMOVED = auto()


class Availability(Enum):
    """State of a flag at one generation."""

    UNAVAILABLE = auto()  # not introduced yet
    AVAILABLE = auto()
    REMOVED = auto()  # introduced, then retired


@dataclass(frozen=True, slots=True)
class Change:
    """A single flag entering or leaving the surface."""

    feature: FeatureId
    kind: ChangeKind = ChangeKind.ADDED


def added(*features: FeatureId) -> tuple[Change, ...]:
    return tuple(Change(f, ChangeKind.ADDED) for f in features)


def removed(*features: FeatureId) -> tuple[Change, ...]:
    return tuple(Change(f, ChangeKind.REMOVED) for f in features)


@dataclass(frozen=True, slots=True)
class Migration:
    """Changes introduced by one generation relative to the previous one."""

    version: ServerVersion
    changes: tuple[Change, ...] = ()
    summary: str = ""

    @property
    def added(self) -> frozenset[FeatureId]:
        return frozenset(c.feature for c in self.changes if c.kind is ChangeKind.ADDED)

    @property
    def removed(self) -> frozenset[FeatureId]:
        return frozenset(c.feature for c in self.changes if c.kind is ChangeKind.REMOVED)


def validate_migrations(
    migrations: Iterable[Migration],
    versions: tuple[ServerVersion, ...] = ALL_VERSIONS,
) -> tuple[Migration, ...]:
    """Check a migration table and return it as a tuple.

    Raises:
        MatrixError: On duplicate or unsorted versions, versions that are not
            tracked, flags repeated within a migration, flags added twice,
            removed before being added, removed twice, or re-added after removal.
    """
    table = tuple(migrations)
    tracked = set(versions)

    seen_versions = [m.version for m in table]
    if seen_versions != sorted(seen_versions):
        raise MatrixError("migrations must be ordered oldest first")
    if len(seen_versions) != len(set(seen_versions)):
        raise MatrixError("a generation appears more than once in the migration table")

    introduced: dict[FeatureId, ServerVersion] = {}
    retired: dict[FeatureId, ServerVersion] = {}

    for migration in table:
        if migration.version not in tracked:
            raise MatrixError(f"migration for untracked generation {migration.version}")

        features = [c.feature for c in migration.changes]
        if len(features) != len(set(features)):
            raise MatrixError(f"flag declared twice in migration {migration.version}")

        for change in migration.changes:
            flag = change.feature
            if change.kind is ChangeKind.ADDED:
                if flag in retired:
                    raise MatrixError(f"{flag.value} re-added at {migration.version} after retirement")
                if flag in introduced:
                    raise MatrixError(
                        f"{flag.value} added at {migration.version} but already added at {introduced[flag]}"
                    )
                introduced[flag] = migration.version
            else:
                if flag not in introduced:
                    raise MatrixError(f"{flag.value} retired at {migration.version} before it was added")
                if flag in retired:
                    raise MatrixError(f"{flag.value} retired twice")
                retired[flag] = migration.version

    return table


# =============================================================================
# Migration table
# =============================================================================


MIGRATIONS: tuple[Migration, ...] = validate_migrations(
    (
        Migration(
            V_1_5_0,
            added(FeatureId.REMOTE_FOLLOW, FeatureId.SEARCH_V1),
            summary="baseline; only items that later retire carry a flag",
        ),
        Migration(
            V_2_1_0,
            added(
                FeatureId.ACCOUNT_MOVED,
                FeatureId.STATUS_PINNED,
                FeatureId.STATUS_EMOJIS,
                FeatureId.PINNED_STATUSES,
                FeatureId.LISTS,
                FeatureId.CUSTOM_EMOJIS,
                FeatureId.ATTACHMENT_DESCRIPTION,
                FeatureId.INSTANCE_STATS,
                FeatureId.CARD_EMBED_URL,
                FeatureId.RELATIONSHIP_SHOWING_REBLOGS,
            ),
            summary="pinned statuses, custom emoji, lists, account migration",
        ),
        Migration(V_2_1_2, summary="no tracked API delta"),
        Migration(V_2_2_0, summary="no tracked API delta"),
        Migration(
            V_2_4_0,
            added(
                FeatureId.ACCOUNT_EMOJIS,
                FeatureId.ACCOUNT_FIELDS,
                FeatureId.ACCOUNT_BOT,
                FeatureId.ACCOUNT_SOURCE,
                FeatureId.ATTACHMENT_FOCUS,
                FeatureId.INSTANCE_LANGUAGES,
                FeatureId.INSTANCE_CONTACT_ACCOUNT,
                FeatureId.PUSH_SUBSCRIPTIONS,
                FeatureId.SEARCH_V2,
                FeatureId.REPORT_FORWARD,
            ),
            summary="profile metadata, push subscriptions, v2 search",
        ),
        Migration(
            V_2_9_1,
            added(
                FeatureId.SOURCE_LANGUAGE,
                FeatureId.FILTERS,
                FeatureId.SUGGESTIONS,
                FeatureId.ENDORSEMENTS,
                FeatureId.RELATIONSHIP_ENDORSED,
                FeatureId.STATUS_REPLIES_COUNT,
                FeatureId.STATUS_CARD,
                FeatureId.CONVERSATIONS,
                FeatureId.SCHEDULED_STATUSES,
                FeatureId.POLLS,
                FeatureId.ATTACHMENT_BLURHASH,
                FeatureId.MEDIA_TYPE_AUDIO,
                FeatureId.ADMIN_API,
                FeatureId.INSTANCE_REGISTRATIONS,
                FeatureId.APPLICATION_VAPID_KEY,
                FeatureId.STATUSES_FILTER_EXCLUDE_REBLOGS,
            ),
            summary="filters, polls, conversations, scheduled statuses, admin API",
        ),
        Migration(
            V_3_0_0,
            removed(FeatureId.REMOTE_FOLLOW, FeatureId.SEARCH_V1)
            + added(
                FeatureId.ACCOUNT_LAST_STATUS_AT,
                FeatureId.DIRECTORY,
                FeatureId.TRENDS,
                FeatureId.INSTANCE_APPROVAL_REQUIRED,
            ),
            summary="v1 search and remote follow removed; directory, trends",
        ),
        Migration(
            V_3_1_0,
            added(
                FeatureId.ACCOUNT_DISCOVERABLE,
                FeatureId.BOOKMARKS,
                FeatureId.ANNOUNCEMENTS,
                FeatureId.NOTIFICATION_FOLLOW_REQUEST,
            ),
            summary="bookmarks, announcements",
        ),
        Migration(
            V_3_3_0,
            added(
                FeatureId.ACCOUNT_SUSPENDED,
                FeatureId.ACCOUNT_MUTE_EXPIRES_AT,
                FeatureId.NOTIFICATION_STATUS,
                FeatureId.FOLLOW_NOTIFY,
                FeatureId.MUTE_DURATION,
                FeatureId.CARD_BLURHASH,
            ),
            summary="timed mutes, status notifications",
        ),
    )
)


# =============================================================================
# Resolution
# =============================================================================


def _require_supported(version: ServerVersion | str) -> ServerVersion:
    parsed = ServerVersion.parse(version)
    if parsed not in SUPPORTED_VERSIONS:
        raise UnsupportedVersionError(parsed)
    return parsed


def resolve_features(
    version: ServerVersion | str,
    migrations: tuple[Migration, ...] = MIGRATIONS,
) -> frozenset[FeatureId]:
    """Walk migrations oldest first up to ``version``: add, then remove."""
    target = _require_supported(version)
    active: set[FeatureId] = set()
    for migration in migrations:
        if migration.version > target:
            break
        active |= migration.added
        active -= migration.removed
    return frozenset(active)


@dataclass(frozen=True, slots=True)
class ServerCapabilities:
    """Active flag set for one generation."""

    version: ServerVersion
    features: frozenset[FeatureId]

    def supports(self, feature: FeatureId | None) -> bool:
        """``None`` denotes a baseline item, active everywhere."""
        return feature is None or feature in self.features


@cache
def capabilities_for(version: ServerVersion | str) -> ServerCapabilities:
    """Return the (cached) capabilities of a tracked generation.

    Raises:
        UnsupportedVersionError: If ``version`` is not tracked.
    """
    target = _require_supported(version)
    if target != version:
        return capabilities_for(target)
    caps = ServerCapabilities(version=target, features=resolve_features(target))
    _logger.debug(
        "capabilities resolved",
        extra={"event": "versioning.resolve", "version": str(target), "features": len(caps.features)},
    )
    return caps


def feature_window(feature: FeatureId) -> tuple[ServerVersion, ServerVersion | None]:
    """Return ``(introduced, retired)`` for a flag; ``retired`` may be ``None``."""
    introduced: ServerVersion | None = None
    retired: ServerVersion | None = None
    for migration in MIGRATIONS:
        if feature in migration.added:
            introduced = migration.version
        if feature in migration.removed:
            retired = migration.version
    if introduced is None:
        raise MatrixError(f"{feature.value} is not declared in any migration")
    return introduced, retired


def features_changed(before: ServerCapabilities, after: ServerCapabilities) -> set[FeatureId]:
    """Flags that differ between two capability sets."""
    return set(before.features ^ after.features)


class ServerProfile:
    """Query helper for one generation's capability state."""

    __slots__ = ("_caps",)

    def __init__(self, caps: ServerCapabilities) -> None:
        self._caps = caps

    @classmethod
    def for_version(cls, version: ServerVersion | str) -> ServerProfile:
        return cls(capabilities_for(version))

    @property
    def version(self) -> ServerVersion:
        return self._caps.version

    @property
    def capabilities(self) -> ServerCapabilities:
        return self._caps

    def supports(self, feature: FeatureId | None) -> bool:
        return self._caps.supports(feature)

    def feature_state(self, feature: FeatureId) -> Availability:
        if feature in self._caps.features:
            return Availability.AVAILABLE
        introduced, retired = feature_window(feature)
        if retired is not None and self.version >= retired:
            return Availability.REMOVED
        return Availability.UNAVAILABLE


__all__ = [
    "ALL_VERSIONS",
    "LATEST_VERSION",
    "MIGRATIONS",
    "OLDEST_VERSION",
    "SUPPORTED_VERSIONS",
    "V_1_5_0",
    "V_2_1_0",
    "V_2_1_2",
    "V_2_2_0",
    "V_2_4_0",
    "V_2_9_1",
    "V_3_0_0",
    "V_3_1_0",
    "V_3_3_0",
    "Availability",
    "Change",
    "ChangeKind",
    "FeatureId",
    "MatrixError",
    "Migration",
    "ServerCapabilities",
    "ServerProfile",
    "ServerVersion",
    "UnsupportedVersionError",
    "added",
    "capabilities_for",
    "feature_window",
    "features_changed",
    "removed",
    "resolve_features",
    "validate_migrations",
]
