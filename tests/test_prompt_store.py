import pytest
from pydantic import ValidationError

from mediaintake.specs.common.enums import PlatformId
from mediaintake.specs.prompts.defaults import DEFAULT_PROMPTS, SHARED_MESSAGE
from mediaintake.workflow.prompt_store import PromptStore


def test_use_defaults_returns_builtin_texts():
    prompts = PromptStore().use_defaults()
    for platform, text in DEFAULT_PROMPTS.items():
        assert prompts.for_platform(platform) == text
    assert prompts.message == SHARED_MESSAGE


def test_use_custom_keeps_empty_strings_literally():
    prompts = PromptStore().use_custom({"facebook": "", "video": "slow pan"})
    assert prompts.facebook == ""
    assert prompts.video == "slow pan"
    assert prompts.instagram == DEFAULT_PROMPTS[PlatformId.INSTAGRAM]
    assert prompts.message == SHARED_MESSAGE


def test_custom_set_is_a_frozen_snapshot():
    values = {"linkedin": "boardroom"}
    prompts = PromptStore().use_custom(values)
    values["linkedin"] = "changed later"
    assert prompts.linkedin == "boardroom"
    with pytest.raises(ValidationError):
        prompts.linkedin = "mutated"


def test_unknown_platform_is_rejected():
    with pytest.raises(ValueError):
        PromptStore().use_custom({"myspace": "retro"})
