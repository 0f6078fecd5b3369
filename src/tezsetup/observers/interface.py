# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/tezsetup/observers/interface.py

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .events import BaseEvent


@runtime_checkable
class Observer(Protocol):
    """
    Receives every provisioning event. notify() runs inline on the
    workflow's thread, so it must be quick; exceptions are dropped by
    the EventBus.
    """

    def notify(self, event: BaseEvent) -> None: ...
