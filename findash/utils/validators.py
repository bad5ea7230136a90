"""
Input Validation Utilities

FLOW OVERVIEW
- validate_email(email)
  • Syntax and length checks; returns sanitized lowercased value.
- validate_password_strength(password)
  • Length, common-password and character variety checks.
- validate_report_date(value) / validate_month(value)
  • Strict YYYY-MM-DD / YYYY-MM parsing.
- validate_user_type(value)
  • One of admin, employee, client.
- sanitize_input(input, max_length)
  • Trim, bound length, remove null bytes.
"""

import re
from datetime import datetime, date
from typing import Optional, Any
from dataclasses import dataclass


@dataclass
class ValidationResult:
    """Result of validation operation"""
    is_valid: bool
    error_message: Optional[str] = None
    sanitized_value: Optional[Any] = None


class InputValidator:
    """Input validation for API payloads"""

    EMAIL_PATTERN = re.compile(
        r'^[a-zA-Z0-9.!#$%&\'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$'
    )

    DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
    MONTH_PATTERN = re.compile(r'^\d{4}-\d{2}$')

    WEAK_PASSWORDS = {
        'password', '123456', 'qwerty', 'abc123', 'password123',
        'admin', 'letmein', 'welcome', 'monkey', 'dragon'
    }

    KEYBOARD_PATTERNS = ['qwerty', 'asdf', 'zxcv', '123456']

    USER_TYPES = ('admin', 'employee', 'client')

    @classmethod
    def validate_email(cls, email: str) -> ValidationResult:
        """
        Validate an email address

        Args:
            email: Email address to validate

        Returns:
            ValidationResult with validation status and sanitized value
        """
        if not email or not isinstance(email, str):
            return ValidationResult(False, "Email must be a non-empty string")

        email = email.strip()
        if email == "":
            return ValidationResult(False, "Email cannot be empty")

        if len(email) > 254:
            return ValidationResult(False, "Email address too long (max 254 characters)")

        if not cls.EMAIL_PATTERN.match(email):
            return ValidationResult(False, "Invalid email format")

        local_part, domain = email.split('@')
        if len(local_part) > 64:
            return ValidationResult(False, "Email local part too long (max 64 characters)")

        if local_part.startswith('.') or local_part.endswith('.') or '..' in local_part:
            return ValidationResult(False, "Invalid email format")

        if '..' in domain:
            return ValidationResult(False, "Domain cannot contain consecutive dots")

        return ValidationResult(True, sanitized_value=email.lower())

    @classmethod
    def validate_password_strength(cls, password: str) -> ValidationResult:
        """
        Validate password strength requirements

        Args:
            password: Password to validate

        Returns:
            ValidationResult with validation status
        """
        if not password or not isinstance(password, str):
            return ValidationResult(False, "Password must be a non-empty string")

        if len(password) < 8:
            return ValidationResult(False, "Password must be at least 8 characters long")

        if len(password) > 128:
            return ValidationResult(False, "Password too long (max 128 characters)")

        if password.lower() in cls.WEAK_PASSWORDS:
            return ValidationResult(False, "Password is too common, choose a stronger password")

        text_lower = password.lower()
        if any(pattern in text_lower for pattern in cls.KEYBOARD_PATTERNS):
            return ValidationResult(False, "Password contains keyboard patterns")

        has_upper = any(c.isupper() for c in password)
        has_lower = any(c.islower() for c in password)
        has_digit = any(c.isdigit() for c in password)

        if not (has_upper and has_lower and has_digit):
            return ValidationResult(False, "Password must contain uppercase, lowercase, and numeric characters")

        return ValidationResult(True)

    @classmethod
    def validate_report_date(cls, value: Any) -> ValidationResult:
        """Strict YYYY-MM-DD; sanitized value is a `date`"""
        if isinstance(value, date) and not isinstance(value, datetime):
            return ValidationResult(True, sanitized_value=value)
        if not isinstance(value, str) or not cls.DATE_PATTERN.match(value.strip()):
            return ValidationResult(False, "Invalid date format. Use YYYY-MM-DD")
        try:
            parsed = datetime.strptime(value.strip(), '%Y-%m-%d').date()
        except ValueError:
            return ValidationResult(False, "Invalid date format. Use YYYY-MM-DD")
        return ValidationResult(True, sanitized_value=parsed)

    @classmethod
    def validate_month(cls, value: Any) -> ValidationResult:
        """Strict YYYY-MM; sanitized value is (year, month)"""
        if not isinstance(value, str) or not cls.MONTH_PATTERN.match(value.strip()):
            return ValidationResult(False, "Invalid month format. Use YYYY-MM")
        year, month = (int(part) for part in value.strip().split('-'))
        if not 1 <= month <= 12:
            return ValidationResult(False, "Invalid month format. Use YYYY-MM")
        return ValidationResult(True, sanitized_value=(year, month))

    @classmethod
    def validate_user_type(cls, value: Any) -> ValidationResult:
        if value not in cls.USER_TYPES:
            return ValidationResult(False, "Invalid user type. Must be admin, employee, or client.")
        return ValidationResult(True, sanitized_value=value)

    @classmethod
    def sanitize_input(cls, input_string: Any, max_length: int = 1000) -> str:
        """
        Sanitize free text input

        Args:
            input_string: Input string to sanitize
            max_length: Maximum allowed length

        Returns:
            Sanitized string
        """
        if not input_string:
            return ""

        sanitized = str(input_string).strip()

        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length]

        sanitized = sanitized.replace('\x00', '')
        sanitized = sanitized.replace('\r\n', '\n').replace('\r', '\n')

        return sanitized


# Convenience functions for common validations
def validate_email(email: str) -> ValidationResult:
    """Validate email address"""
    return InputValidator.validate_email(email)


def validate_password_strength(password: str) -> ValidationResult:
    """Validate password strength"""
    return InputValidator.validate_password_strength(password)


def validate_report_date(value: Any) -> ValidationResult:
    """Validate a YYYY-MM-DD date"""
    return InputValidator.validate_report_date(value)


def validate_month(value: Any) -> ValidationResult:
    """Validate a YYYY-MM month"""
    return InputValidator.validate_month(value)


def validate_user_type(value: Any) -> ValidationResult:
    """Validate a user type"""
    return InputValidator.validate_user_type(value)


def sanitize_input(input_string: Any, max_length: int = 1000) -> str:
    """Sanitize user input"""
    return InputValidator.sanitize_input(input_string, max_length)


def optional_text(value: Any, max_length: int = 1000) -> Optional[str]:
    """Sanitized text or None when blank"""
    sanitized = sanitize_input(value, max_length)
    return sanitized or None
