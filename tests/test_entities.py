# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Entity decoding against a generation's field set."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from tusk.model import ABSENT, DecodeError, Unrecognized
from tusk.model.entities import Status
from tusk.surface import surface_for
from tusk.testing import account_payload, notification_payload, status_payload


def decode(version: str, name: str, payload):
    return surface_for(version).decoder.decode_entity(name, payload)


# =============================================================================
# Presence, absence and null
# =============================================================================


class TestFieldPresence:
    """Optional, nullable and required fields decode differently."""

    def test_full_payload(self) -> None:
        status = decode("3.3.0", "Status", status_payload())
        assert status.id == "100"
        assert status.account.username == "alice"
        assert status.created_at == datetime(2021, 2, 1, 8, 30, tzinfo=timezone.utc)
        assert status.tags[0].name == "tusk"
        assert status.application.website is None

    def test_missing_optional_field_is_absent(self) -> None:
        payload = status_payload()
        del payload["bookmarked"]
        status = decode("3.3.0", "Status", payload)
        assert status.bookmarked is ABSENT
        assert not status.bookmarked

    def test_explicit_null_is_none(self) -> None:
        status = decode("3.3.0", "Status", status_payload(url=None))
        assert status.url is None

    def test_missing_required_field(self) -> None:
        payload = status_payload()
        del payload["content"]
        with pytest.raises(DecodeError) as exc_info:
            decode("3.3.0", "Status", payload)
        assert exc_info.value.path == "Status.content"

    def test_null_in_non_nullable_field(self) -> None:
        with pytest.raises(DecodeError, match="null is not allowed"):
            decode("3.3.0", "Status", status_payload(content=None))

    def test_nested_error_path(self) -> None:
        payload = status_payload(account=account_payload(followers_count="many"))
        with pytest.raises(DecodeError) as exc_info:
            decode("3.3.0", "Status", payload)
        assert exc_info.value.path == "Status.account.followers_count"

    def test_not_an_object(self) -> None:
        with pytest.raises(DecodeError, match="expected an object"):
            decode("3.3.0", "Status", ["not", "a", "status"])

    def test_newer_required_field_is_not_required_by_older_generation(self) -> None:
        payload = status_payload()
        del payload["emojis"]
        del payload["replies_count"]
        decode("1.5.0", "Status", payload)
        with pytest.raises(DecodeError):
            decode("3.3.0", "Status", payload)


# =============================================================================
# Generation gating
# =============================================================================


class TestGating:
    def test_inactive_field_is_an_attribute_error(self) -> None:
        status = decode("2.4.0", "Status", status_payload())
        with pytest.raises(AttributeError):
            status.poll
        with pytest.raises(AttributeError):
            status.bookmarked

    def test_unknown_keys_land_in_raw_extra(self) -> None:
        status = decode("1.5.0", "Status", status_payload(quote_id="55", card={"url": 1}))
        assert status.contains_key("pinned")
        assert status.get("quote_id") == "55"
        assert "content" not in set(status.keys())
        # Kept exactly as sent, never decoded
        assert status.raw_extra["card"] == {"url": 1}
        assert not hasattr(status, "extra")
        assert "raw_extra" not in status.to_dict()

    def test_entities_are_frozen(self) -> None:
        status = decode("3.3.0", "Status", status_payload())
        with pytest.raises(dataclasses.FrozenInstanceError):
            status.content = "edited"

    def test_declarations_cannot_be_instantiated(self) -> None:
        with pytest.raises(TypeError, match="declaration"):
            Status()

    def test_recursive_reference(self) -> None:
        account = decode("2.1.0", "Account", account_payload(moved=account_payload(id="3", username="carol")))
        assert account.moved.username == "carol"


# =============================================================================
# Enums
# =============================================================================


class TestEnumDecoding:
    def test_known_value(self) -> None:
        surface = surface_for("3.3.0")
        status = surface.decoder.decode_entity("Status", status_payload(visibility="unlisted"))
        assert status.visibility is surface.Visibility.UNLISTED

    def test_value_unknown_to_every_generation(self) -> None:
        status = decode("3.3.0", "Status", status_payload(visibility="limited"))
        assert status.visibility == Unrecognized("limited", "Visibility")
        assert str(status.visibility) == "limited"

    def test_value_from_a_newer_generation(self) -> None:
        older = decode("3.1.0", "Notification", notification_payload(type="status"))
        newer = decode("3.3.0", "Notification", notification_payload(type="status"))
        assert isinstance(older.type, Unrecognized)
        assert newer.type == "status"
        assert not isinstance(newer.type, Unrecognized)

    def test_gated_media_type(self) -> None:
        attachment = {
            "id": "5",
            "type": "audio",
            "url": "https://files.example.social/a.mp3",
            "preview_url": "https://files.example.social/a.png",
        }
        assert isinstance(decode("2.4.0", "Attachment", attachment).type, Unrecognized)
        assert decode("2.9.1", "Attachment", attachment).type.value == "audio"

    def test_enum_must_be_a_string(self) -> None:
        with pytest.raises(DecodeError, match="expected a string"):
            decode("3.3.0", "Status", status_payload(visibility=1))


# =============================================================================
# Leaf coercion and rendering
# =============================================================================


class TestLeaves:
    def test_numeric_ids_become_strings(self) -> None:
        account = decode("3.3.0", "Account", account_payload(id=42))
        assert account.id == "42"

    def test_boolean_strings(self) -> None:
        account = decode("2.4.0", "Account", account_payload(source={"note": "hi", "sensitive": "true"}))
        assert account.source.sensitive is True
        assert account.source.privacy is ABSENT

    def test_decode_list(self) -> None:
        statuses = surface_for("3.3.0").decoder.decode_list("Status", [status_payload(), status_payload(id="101")])
        assert [s.id for s in statuses] == ["100", "101"]

    def test_inactive_entity(self) -> None:
        with pytest.raises(DecodeError, match="not part of this generation"):
            surface_for("1.5.0").decoder.decode_entity("Poll", {})

    def test_to_dict_omits_absent_fields(self) -> None:
        payload = status_payload()
        del payload["pinned"]
        rendered = decode("3.3.0", "Status", payload).to_dict()
        assert "pinned" not in rendered
        assert rendered["visibility"] == "public"
        assert rendered["account"]["username"] == "alice"
        assert rendered["created_at"].startswith("2021-02-01T08:30:00")
        assert rendered["card"] is None

    def test_equality_ignores_extra(self) -> None:
        assert decode("2.4.0", "Status", status_payload()) == decode("2.4.0", "Status", status_payload(quote_id="1"))
