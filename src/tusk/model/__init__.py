# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Versioned entity and request declarations."""

from __future__ import annotations

from . import entities, requests
from .decode import DecodeError, Decoder
from .fields import ABSENT, Absent, Entity, EntitySpec, EnumSpec, Field, ListOf, Ref, Unrecognized
from .requests import RequestModel, Since

__all__ = [
    "ABSENT",
    "Absent",
    "DecodeError",
    "Decoder",
    "Entity",
    "EntitySpec",
    "EnumSpec",
    "Field",
    "ListOf",
    "Ref",
    "RequestModel",
    "Since",
    "Unrecognized",
    "entities",
    "requests",
]
