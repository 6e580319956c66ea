"""Editor feature toggles persisted in the device cache."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .local_cache import LocalCacheStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "notebuddy_settings"
_WIRE_NAMES = {
    "predictive_typing_enabled": "isPredictiveTypingEnabled",
    "summary_enabled": "isSummaryEnabled",
}


@dataclass(frozen=True)
class EditorSettings:
    """AI feature toggles for an editing session. Both default to off."""

    predictive_typing_enabled: bool = False
    summary_enabled: bool = False

    @classmethod
    def load(cls, store: LocalCacheStore) -> EditorSettings:
        """Read settings from ``store``; unknown or invalid values keep defaults."""
        raw = store.get_item(SETTINGS_KEY)
        if raw is None:
            return cls()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Error parsing settings: %s", exc)  # noqa: TRY400
            return cls()
        if not isinstance(data, dict):
            return cls()

        values = {
            attr: data[wire]
            for attr, wire in _WIRE_NAMES.items()
            if isinstance(data.get(wire), bool)
        }
        return cls(**values)

    def save(self, store: LocalCacheStore) -> bool:
        """Persist to ``store``; returns False if the cache rejected the write."""
        payload = {_WIRE_NAMES[attr]: value for attr, value in asdict(self).items()}
        return store.set_item(SETTINGS_KEY, json.dumps(payload))

    def toggle_predictive_typing(self) -> EditorSettings:
        """Return a copy with predictive typing flipped."""
        return replace(self, predictive_typing_enabled=not self.predictive_typing_enabled)

    def toggle_summary(self) -> EditorSettings:
        """Return a copy with summaries flipped."""
        return replace(self, summary_enabled=not self.summary_enabled)
