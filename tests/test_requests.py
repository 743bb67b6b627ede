# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Request model serialization and generation gating."""

from __future__ import annotations

import typing
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from tusk.model import requests as rq
from tusk.model.specialize import gated_fields
from tusk.surface import surface_for
from tusk.versioning import FeatureId


class TestPartialBodies:
    """Only explicitly set fields are serialized."""

    def test_unset_fields_are_omitted(self) -> None:
        body = surface_for("3.3.0").UpdateCredentials(display_name="Alice", locked=True).to_body()
        assert body == {"display_name": "Alice", "locked": True}

    def test_empty_update_sends_nothing(self) -> None:
        assert surface_for("3.3.0").UpdateCredentials().to_body() == {}

    def test_nested_models_are_partial_too(self) -> None:
        body = surface_for("3.3.0").UpdateCredentials(source={"privacy": "private"}).to_body()
        assert body == {"source": {"privacy": "private"}}

    def test_datetimes_are_iso_strings(self) -> None:
        when = datetime(2021, 3, 1, 12, 0, tzinfo=timezone.utc)
        body = surface_for("2.9.1").NewStatus(status="later", scheduled_at=when).to_body()
        assert body["scheduled_at"].startswith("2021-03-01T12:00:00")


class TestGatedFields:
    def test_field_unknown_to_the_generation_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            surface_for("2.1.0").UpdateCredentials(bot=True)
        assert surface_for("2.4.0").UpdateCredentials(bot=True).to_body() == {"bot": True}

    def test_mute_duration(self) -> None:
        with pytest.raises(ValidationError):
            surface_for("3.1.0").MuteRequest(duration=3600)
        assert surface_for("3.3.0").MuteRequest(duration=3600).to_body() == {"duration": 3600}

    def test_constraints_survive_specialization(self) -> None:
        with pytest.raises(ValidationError):
            surface_for("3.3.0").MuteRequest(duration=-1)
        with pytest.raises(ValidationError):
            surface_for("1.5.0").NewStatus(language="english")

    def test_declared_flags(self) -> None:
        flags = gated_fields(rq.NewStatus)
        assert flags["status"] is None
        assert flags["poll"] is FeatureId.POLLS
        assert flags["scheduled_at"] is FeatureId.SCHEDULED_STATUSES

    def test_nested_field_unknown_to_the_generation_is_rejected(self) -> None:
        subscription = {"endpoint": "https://push.example/1", "keys": {"p256dh": "key", "auth": "secret"}}
        with pytest.raises(ValidationError):
            surface_for("2.4.0").PushSubscriptionRequest(subscription=subscription, data={"alerts": {"poll": True}})
        with pytest.raises(ValidationError):
            surface_for("2.4.0").UpdatePushRequest(data={"alerts": {"poll": True}})

        body = surface_for("2.4.0").PushSubscriptionRequest(
            subscription=subscription, data={"alerts": {"mention": True}}
        ).to_body()
        assert body["data"] == {"alerts": {"mention": True}}
        body = surface_for("2.9.1").UpdatePushRequest(data={"alerts": {"poll": True}}).to_body()
        assert body == {"data": {"alerts": {"poll": True}}}

    def test_nested_models_without_gated_fields_are_shared(self) -> None:
        source = surface_for("3.3.0").UpdateCredentials.model_fields["source"].annotation
        assert rq.UpdateSource in typing.get_args(source)
        assert gated_fields(rq.PushAlertsInput)["poll"] is FeatureId.POLLS

    def test_unknown_keys_are_rejected(self) -> None:
        with pytest.raises(ValidationError):
            surface_for("3.3.0").NewStatus(status="hi", quote_id="1")


class TestQueryEncoding:
    def test_scalars(self) -> None:
        query = surface_for("3.3.0").StatusesFilter(only_media=True, exclude_replies=False, limit=20).to_query()
        assert query == [("only_media", "true"), ("exclude_replies", "false"), ("limit", "20")]

    def test_lists_repeat_with_brackets(self) -> None:
        query = surface_for("3.3.0").RelationshipsParams(id=["1", "2"]).to_query()
        assert query == [("id[]", "1"), ("id[]", "2")]

    def test_explicit_none_is_not_sent(self) -> None:
        assert surface_for("3.3.0").TimelineFilter(local=None).to_query() == []


class TestSpecialSerializers:
    def test_profile_fields_are_indexed(self) -> None:
        body = surface_for("2.4.0").UpdateCredentials(
            fields_attributes=[{"name": "Site", "value": "example.org"}, {"name": "Pronouns", "value": "they/them"}]
        ).to_body()
        assert body["fields_attributes"] == {
            "0": {"name": "Site", "value": "example.org"},
            "1": {"name": "Pronouns", "value": "they/them"},
        }

    def test_focus_point(self) -> None:
        upload = surface_for("2.4.0").MediaUpload(file=b"png", focus=(0.5, -0.25))
        assert upload.to_body()["focus"] == "0.5,-0.25"

    @pytest.mark.parametrize("focus", [(1.5, 0.0), (0.0, -2.0)])
    def test_focus_out_of_range(self, focus: tuple[float, float]) -> None:
        with pytest.raises(ValidationError):
            surface_for("2.4.0").MediaUpload(file=b"png", focus=focus)

    def test_focus_needs_its_generation(self) -> None:
        with pytest.raises(ValidationError):
            surface_for("2.1.0").MediaUpload(file=b"png", focus=(0.0, 0.0))

    def test_poll_needs_two_options(self) -> None:
        with pytest.raises(ValidationError):
            surface_for("2.9.1").NewStatus(poll={"options": ["only"], "expires_in": 60})
