"""Unit tests for the payload builder."""

import pytest

from creative_studio.core.exceptions import ValidationError
from creative_studio.core.models import GenerationParams
from creative_studio.core.payload_builder import PayloadBuilder


class TestPayloadBuilder:
    """Tests for PayloadBuilder."""

    def test_defaults(self):
        """Test that no overrides yields the documented defaults."""
        request = PayloadBuilder().build("a red fox in snow")

        assert request.prompt == "a red fox in snow"
        assert request.steps == 20
        assert request.guidance_scale == 7.5
        assert request.seed == -1
        assert request.width == 512
        assert request.height == 512
        assert request.negative_prompt == ""

    def test_prompt_is_trimmed(self):
        """Test that surrounding whitespace is removed."""
        request = PayloadBuilder().build("   a castle  \n")
        assert request.prompt == "a castle"

    @pytest.mark.parametrize("prompt", ["", "   ", "\n\t", None])
    def test_empty_prompt(self, prompt):
        """Test that empty prompts fail locally."""
        with pytest.raises(ValidationError) as exc_info:
            PayloadBuilder().build(prompt)

        assert exc_info.value.code == "empty-prompt"
        assert exc_info.value.message == "Please enter a prompt"

    def test_overrides_replace_defaults(self):
        """Test that overrides win and other fields keep their defaults."""
        request = PayloadBuilder().build("test", {"seed": 42, "steps": 30})

        assert request.seed == 42
        assert request.steps == 30
        assert request.guidance_scale == 7.5
        assert request.to_payload()["seed"] == 42

    def test_negative_seed_override(self):
        """Test that a negative seed other than -1 is forwarded as given."""
        request = PayloadBuilder().build("fox", {"seed": -7})

        assert request.seed == -7
        assert request.to_payload()["seed"] == -7

    def test_configured_defaults(self):
        """Test a deployment that defaults to 768px images."""
        builder = PayloadBuilder(GenerationParams(width=768, height=768))
        request = builder.build("test")

        assert request.width == 768
        assert request.height == 768

    def test_unknown_override(self):
        """Test that unknown override names are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            PayloadBuilder().build("test", {"sampler": "euler"})

        assert exc_info.value.code == "invalid-parameters"
        assert "sampler" in exc_info.value.message

    def test_out_of_range_override(self):
        """Test that invalid values are reported by field name."""
        with pytest.raises(ValidationError) as exc_info:
            PayloadBuilder().build("test", {"steps": 0})

        assert exc_info.value.code == "invalid-parameters"
        assert "steps" in exc_info.value.message

    def test_remember_uses_last_request(self):
        """Test that a remembered request becomes the new default."""
        first = PayloadBuilder().build("first", {"width": 768, "seed": 7})
        builder = PayloadBuilder().remember(first)

        second = builder.build("second")

        assert second.prompt == "second"
        assert second.width == 768
        assert second.seed == 7

    def test_build_does_not_change_defaults(self):
        """Test that building is free of side effects."""
        builder = PayloadBuilder()
        builder.build("test", {"steps": 50})

        assert builder.defaults.steps == 20
