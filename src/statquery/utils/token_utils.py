"""
Input validation utilities for LLM and embedding operations.

This module provides simple character-based validation to ensure
inputs stay within API limits. Uses hard character limits for simplicity.
"""

from typing import Optional, Sequence


class InputValidator:
    """
    Input validation utility for checking character limits.

    Uses simple character count checks against hard limits.
    """

    @staticmethod
    def validate_char_limit(
        text: str,
        max_chars: int,
        error_message: Optional[str] = None
    ) -> None:
        """
        Validate that text does not exceed maximum character limit.

        Args:
            text: Text to validate
            max_chars: Maximum allowed characters
            error_message: Optional custom error message

        Raises:
            ValueError: If text exceeds character limit

        Example:
            >>> InputValidator.validate_char_limit("Hello", max_chars=100)  # OK
            >>> InputValidator.validate_char_limit("A" * 1000, max_chars=100)  # Raises ValueError
        """
        char_count = len(text)

        if char_count > max_chars:
            if error_message:
                raise ValueError(error_message)
            raise ValueError(
                f"Input too large: {char_count} characters, "
                f"maximum allowed: {max_chars}"
            )

    @staticmethod
    def validate_total_chars(texts: Sequence[str], max_chars: int) -> None:
        """
        Validate total character count for a chat request.

        Args:
            texts: Content of every message in the request
            max_chars: Maximum allowed total characters

        Raises:
            ValueError: If total exceeds character limit

        Example:
            >>> InputValidator.validate_total_chars(["System", "Hello"], max_chars=1000)  # OK
        """
        total_chars = sum(len(text) for text in texts)

        if total_chars > max_chars:
            raise ValueError(
                f"Total input too large: {total_chars} characters, "
                f"maximum allowed: {max_chars}"
            )

    @staticmethod
    def validate_not_blank(text: Optional[str], error_message: str = "Input must not be empty") -> str:
        """
        Return the stripped text, raising if nothing is left.

        Raises:
            ValueError: If text is None, empty or whitespace only
        """
        if text is None or not text.strip():
            raise ValueError(error_message)
        return text.strip()
