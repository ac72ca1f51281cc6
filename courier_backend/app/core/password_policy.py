"""
Password Policy enforcement

Admin passwords: at least 8 characters with upper, lower and a digit.
"""
import string
from typing import Tuple, List


class PasswordPolicy:
    """
    Enforces password complexity requirements.
    """

    # Length requirements
    MIN_LENGTH = 8
    MAX_LENGTH = 128

    # Complexity requirements (ASCII classes only)
    REQUIRE_UPPERCASE = True
    REQUIRE_LOWERCASE = True
    REQUIRE_DIGIT = True

    @classmethod
    def validate(cls, password: str) -> Tuple[bool, List[str]]:
        """
        Validate password against policy.

        Args:
            password: The password to validate

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []

        if len(password) < cls.MIN_LENGTH:
            errors.append(f"New password must be at least {cls.MIN_LENGTH} characters")

        if len(password) > cls.MAX_LENGTH:
            errors.append(f"New password must be at most {cls.MAX_LENGTH} characters")

        lacks_complexity = (
            (cls.REQUIRE_UPPERCASE and not any(c in string.ascii_uppercase for c in password))
            or (cls.REQUIRE_LOWERCASE and not any(c in string.ascii_lowercase for c in password))
            or (cls.REQUIRE_DIGIT and not any(c in string.digits for c in password))
        )
        if lacks_complexity:
            errors.append(
                "Password must contain at least one uppercase letter, "
                "one lowercase letter, and one number"
            )

        return len(errors) == 0, errors
