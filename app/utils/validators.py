"""
Advisory validation utilities for marketplace forms.
The marketplace API remains the authority; these checks only give visitors
early feedback before a request is sent.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from email_validator import validate_email, EmailNotValidError
from pydantic import ValidationError as PydanticValidationError

from app.utils.exceptions import ValidationError


PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100


@dataclass(frozen=True)
class PasswordStrength:
    """Strength meter reading for a password."""
    score: int
    level: str
    feedback: str


class ValidationUtils:
    """
    Utility class for common validation operations.
    Each method returns the cleaned value or raises ValidationError.
    """

    PHONE_PATTERN = re.compile(r'^\+?[1-9]\d{6,14}$')
    STATE_PATTERN = re.compile(r'^[A-Za-z]{2}$')

    @staticmethod
    def validate_email_address(email: Any, field_name: str = "email") -> str:
        """
        Validate email address format.

        Args:
            email: Email to validate
            field_name: Name of the field for error messages

        Returns:
            Normalized email string

        Raises:
            ValidationError: If email is invalid
        """
        if not email:
            raise ValidationError(f"{field_name} is required")

        email_str = str(email).strip().lower()

        try:
            valid_email = validate_email(email_str, check_deliverability=False)
            return valid_email.normalized
        except EmailNotValidError:
            raise ValidationError("Please enter a valid email address")

    @staticmethod
    def validate_password(password: Any, field_name: str = "password") -> str:
        """
        Validate password length.

        Args:
            password: Password to validate
            field_name: Name of the field for error messages

        Returns:
            The password, unchanged

        Raises:
            ValidationError: If the password is missing or has an invalid length
        """
        if not password:
            raise ValidationError(f"{field_name.replace('_', ' ').capitalize()} is required")

        password_str = str(password)
        if len(password_str) < PASSWORD_MIN_LENGTH:
            raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        if len(password_str) > PASSWORD_MAX_LENGTH:
            raise ValidationError(f"Password cannot exceed {PASSWORD_MAX_LENGTH} characters")

        return password_str

    @staticmethod
    def validate_passwords_match(password: Any, confirm_password: Any) -> None:
        if (password or "") != (confirm_password or ""):
            raise ValidationError("Passwords do not match")

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
        label: Optional[str] = None
    ) -> str:
        """
        Validate a required text value.

        Args:
            value: Value to validate
            field_name: Name of the field
            min_length: Minimum length after stripping
            max_length: Maximum length after stripping
            label: Display name used in messages

        Returns:
            Stripped string

        Raises:
            ValidationError: If the value is empty or violates a length bound
        """
        label = label or field_name.replace("_", " ").capitalize()
        str_value = "" if value is None else str(value).strip()

        if not str_value:
            raise ValidationError(f"{label} is required")

        if min_length is not None and len(str_value) < min_length:
            raise ValidationError(f"{label} must be at least {min_length} characters")

        if max_length is not None and len(str_value) > max_length:
            raise ValidationError(f"{label} cannot exceed {max_length} characters")

        return str_value

    @staticmethod
    def validate_phone_number(phone: Any, field_name: str = "phone") -> str:
        """
        Validate phone number format.

        Spaces, dashes, dots and parentheses are ignored.

        Raises:
            ValidationError: If phone number is invalid
        """
        if not phone:
            raise ValidationError("Phone number is required")

        phone_str = re.sub(r'[\s\-\.\(\)]', '', str(phone).strip())

        if not ValidationUtils.PHONE_PATTERN.match(phone_str):
            raise ValidationError("Please enter a valid phone number")

        return phone_str

    @staticmethod
    def validate_state_code(value: Any, field_name: str = "state") -> str:
        if not value:
            raise ValidationError("State is required")
        state = str(value).strip()
        if not ValidationUtils.STATE_PATTERN.match(state):
            raise ValidationError("State must be 2 characters (e.g., CA)")
        return state.upper()

    @staticmethod
    def password_strength(password: Optional[str]) -> PasswordStrength:
        """
        Score a password from 0 to 5.

        One point each for length >= 8, length >= 12, mixed case, a digit
        and a symbol. Scores up to 2 are weak, up to 4 medium, 5 strong.

        Args:
            password: Candidate password

        Returns:
            PasswordStrength reading
        """
        if not password:
            return PasswordStrength(score=0, level="weak", feedback="")

        score = 0
        suggestions: List[str] = []

        if len(password) >= 8:
            score += 1
        if len(password) >= 12:
            score += 1
        if re.search(r'[a-z]', password) and re.search(r'[A-Z]', password):
            score += 1
        else:
            suggestions.append("Mix uppercase and lowercase")
        if re.search(r'\d', password):
            score += 1
        else:
            suggestions.append("Add numbers")
        if re.search(r'[^a-zA-Z\d]', password):
            score += 1
        else:
            suggestions.append("Add symbols")

        if score <= 2:
            return PasswordStrength(score, "weak", ", ".join(suggestions) or "Password is weak")
        if score <= 4:
            return PasswordStrength(score, "medium", "Good! Consider adding more variety")
        return PasswordStrength(score, "strong", "Strong password!")


class FormValidator:
    """
    Collects field errors for a submitted form.

    Each check records at most one message per field, so the first failing
    rule wins. `errors` maps field names to messages and is empty when the
    form is valid.
    """

    def __init__(self, data: Mapping[str, Any]):
        self.data = data
        self.errors: Dict[str, str] = {}

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, field: str, message: str) -> None:
        self.errors.setdefault(field, message)

    def _check(self, field: str, func, *args, **kwargs) -> Any:
        if field in self.errors:
            return None
        try:
            return func(*args, **kwargs)
        except ValidationError as e:
            self.add_error(field, e.message)
            return None

    def required(self, field: str, label: Optional[str] = None, min_length: Optional[int] = None,
                 message: Optional[str] = None) -> "FormValidator":
        value = self.data.get(field)
        if message and not (value and str(value).strip()):
            self.add_error(field, message)
            return self
        self._check(field, ValidationUtils.validate_string, value, field, min_length=min_length, label=label)
        return self

    def email(self, field: str = "email") -> "FormValidator":
        self._check(field, ValidationUtils.validate_email_address, self.data.get(field), "Email")
        return self

    def password(self, field: str = "password") -> "FormValidator":
        self._check(field, ValidationUtils.validate_password, self.data.get(field), field)
        return self

    def passwords_match(self, field: str = "password", confirm_field: str = "confirm_password") -> "FormValidator":
        self._check(
            confirm_field,
            ValidationUtils.validate_passwords_match,
            self.data.get(field),
            self.data.get(confirm_field)
        )
        return self

    def phone(self, field: str = "phone_number", required: bool = True) -> "FormValidator":
        if not required and not self.data.get(field):
            return self
        self._check(field, ValidationUtils.validate_phone_number, self.data.get(field), field)
        return self

    def state_code(self, field: str) -> "FormValidator":
        self._check(field, ValidationUtils.validate_state_code, self.data.get(field), field)
        return self

    def checked(self, field: str, message: str) -> "FormValidator":
        value = self.data.get(field)
        if value not in (True, "true", "on", "1", 1):
            self.add_error(field, message)
        return self


def handle_pydantic_validation_error(exc: PydanticValidationError) -> ValidationError:
    """
    Convert Pydantic validation error to custom ValidationError.

    Args:
        exc: Pydantic validation error

    Returns:
        Custom ValidationError instance
    """
    field_errors = []

    for error in exc.errors():
        field_path = " -> ".join(str(loc) for loc in error["loc"])
        field_errors.append({
            "field": field_path,
            "message": error["msg"],
            "type": error["type"]
        })

    return ValidationError(
        detail="Please correct the highlighted fields",
        field_errors=field_errors
    )


def field_errors_to_dict(field_errors: List[Dict[str, str]]) -> Dict[str, str]:
    """Flatten structured field errors into the field -> message form pages render."""
    errors: Dict[str, str] = {}
    for error in field_errors:
        field = str(error.get("field", "")).split(" -> ")[-1] or "form"
        message = str(error.get("message", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors
