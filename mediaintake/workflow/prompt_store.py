from __future__ import annotations

from typing import Mapping, Optional

from mediaintake.specs.common.enums import PlatformId
from mediaintake.specs.models.domain import PromptSet
from mediaintake.specs.prompts.defaults import DEFAULT_PROMPTS, SHARED_MESSAGE


def default_prompt_set() -> PromptSet:
    return PromptSet(
        **{platform.value: text for platform, text in DEFAULT_PROMPTS.items()},
        message=SHARED_MESSAGE,
    )


class PromptStore:
    """Holds the built-in prompt set and hands out frozen snapshots.

    ``use_defaults`` returns the built-in set unchanged. ``use_custom`` applies
    user-entered per-platform strings on top of it; empty strings are kept
    literally, platforms the user did not touch keep their default text, and
    the shared message is never user-editable.
    """

    def __init__(self, defaults: Optional[PromptSet] = None) -> None:
        self._defaults = defaults or default_prompt_set()

    @property
    def defaults(self) -> PromptSet:
        return self._defaults

    def use_defaults(self) -> PromptSet:
        return self._defaults.model_copy()

    def use_custom(self, values: Mapping[str, str]) -> PromptSet:
        updates = {}
        for key, text in values.items():
            try:
                platform = PlatformId(key)
            except ValueError:
                raise ValueError(f"Unknown platform in custom prompts: {key!r}") from None
            if text is None:
                raise ValueError(f"Prompt for {platform.value} must be a string")
            updates[platform.value] = str(text)
        return self._defaults.model_copy(update=updates)


__all__ = ["PromptStore", "default_prompt_set"]
