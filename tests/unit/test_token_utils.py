"""Unit tests for token_utils module."""

import pytest
from statquery.utils.token_utils import InputValidator


class TestValidateCharLimit:
    """Tests for InputValidator.validate_char_limit."""

    def test_within_limit(self):
        InputValidator.validate_char_limit("Hello", max_chars=100)

    def test_exact_limit(self):
        InputValidator.validate_char_limit("a" * 100, max_chars=100)

    def test_over_limit_raises(self):
        with pytest.raises(ValueError, match="Input too large: 101 characters"):
            InputValidator.validate_char_limit("a" * 101, max_chars=100)

    def test_custom_error_message(self):
        with pytest.raises(ValueError, match="Table description too long"):
            InputValidator.validate_char_limit(
                "a" * 101, max_chars=100, error_message="Table description too long"
            )


class TestValidateTotalChars:
    """Tests for InputValidator.validate_total_chars."""

    def test_total_within_limit(self):
        InputValidator.validate_total_chars(["System prompt", "User prompt"], max_chars=100)

    def test_total_over_limit(self):
        """Each message fits, but together they do not."""
        with pytest.raises(ValueError, match="Total input too large: 120"):
            InputValidator.validate_total_chars(["a" * 60, "b" * 60], max_chars=100)

    def test_empty_list(self):
        InputValidator.validate_total_chars([], max_chars=0)


class TestValidateNotBlank:
    """Tests for InputValidator.validate_not_blank."""

    def test_returns_stripped_text(self):
        assert InputValidator.validate_not_blank("  Who won in 2023?  ") == "Who won in 2023?"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_blank_raises(self, text):
        with pytest.raises(ValueError, match="Query cannot be empty"):
            InputValidator.validate_not_blank(text, "Query cannot be empty")
