import datetime
import logging
import re
from typing import Any, Iterable, Optional, Union

from formstore.form.state import FieldValidator

logger = logging.getLogger(__name__)

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
URL_PATTERN = r"^https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b(?:[-a-zA-Z0-9()@:%_+.~#?&/=]*)$"


def is_empty(value: Any) -> bool:
    """None, empty strings and empty collections count as empty; 0 and False do not."""
    if value is None:
        return True
    if isinstance(value, (str, list, dict, tuple, set)):
        return not value
    return False


class Validator:
    """
    Factories for field validators.

    Every factory returns a callable ``value -> Optional[str]`` that yields an
    error message or None. They plug into ``FormManager.add_field_validator``
    as well as ``Field.custom``. Apart from ``required``, validators let empty
    values pass so that optional fields stay optional.
    """

    @staticmethod
    def required(error_message: str = "This field is required.", allow_none: bool = False) -> FieldValidator:
        """Fails on empty values, optionally letting None through."""
        def validate(value: Any) -> Optional[str]:
            if allow_none and value is None:
                return None
            return error_message if is_empty(value) else None
        return validate

    @staticmethod
    def min_length(length: int, error_message: str = None) -> FieldValidator:
        def validate(value: Any) -> Optional[str]:
            if value is not None and len(value if isinstance(value, (list, tuple, dict)) else str(value)) < length:
                return error_message or f"Must be at least {length} characters long."
            return None
        return validate

    @staticmethod
    def max_length(length: int, error_message: str = None) -> FieldValidator:
        def validate(value: Any) -> Optional[str]:
            if value is not None and len(value if isinstance(value, (list, tuple, dict)) else str(value)) > length:
                return error_message or f"Must be at most {length} characters long."
            return None
        return validate

    @staticmethod
    def regex(pattern: str, error_message: str = "Invalid format.") -> FieldValidator:
        """Creates a validation function that checks against a regex pattern."""
        compiled_pattern = re.compile(pattern)

        def validate(value: Any) -> Optional[str]:
            if is_empty(value):
                return None
            if not compiled_pattern.fullmatch(str(value)):
                return error_message
            return None
        return validate

    @staticmethod
    def email(error_message: str = "Must be a valid email address.") -> FieldValidator:
        return Validator.regex(EMAIL_PATTERN, error_message)

    @staticmethod
    def url(error_message: str = "Must be a valid URL.") -> FieldValidator:
        return Validator.regex(URL_PATTERN, error_message)

    @staticmethod
    def min_value(min_val: Union[int, float], error_message: str = None) -> FieldValidator:
        def validate(value: Any) -> Optional[str]:
            if value is None or value == "":
                return None
            try:
                if float(value) < min_val:
                    return error_message or f"Must be at least {min_val}."
            except (ValueError, TypeError):
                return "Must be a valid number."
            return None
        return validate

    @staticmethod
    def max_value(max_val: Union[int, float], error_message: str = None) -> FieldValidator:
        def validate(value: Any) -> Optional[str]:
            if value is None or value == "":
                return None
            try:
                if float(value) > max_val:
                    return error_message or f"Must be at most {max_val}."
            except (ValueError, TypeError):
                return "Must be a valid number."
            return None
        return validate

    @staticmethod
    def one_of(choices: Iterable[Any], error_message: str = None) -> FieldValidator:
        allowed = list(choices)

        def validate(value: Any) -> Optional[str]:
            if is_empty(value) or value in allowed:
                return None
            return error_message or f"Must be one of: {', '.join(map(str, allowed))}."
        return validate

    @staticmethod
    def date_min(min_date: Union[str, datetime.date], error_message: str = None) -> FieldValidator:
        """Creates a validation function that checks for minimum date (ISO strings accepted)."""
        if isinstance(min_date, str):
            min_date = datetime.date.fromisoformat(min_date)
        elif isinstance(min_date, datetime.datetime):
            min_date = min_date.date()

        def validate(value: Any) -> Optional[str]:
            if is_empty(value):
                return None
            if isinstance(value, datetime.datetime):
                value = value.date()
            try:
                date_value = datetime.date.fromisoformat(value) if isinstance(value, str) else value
                too_early = date_value < min_date
            except (ValueError, TypeError):
                return "Invalid date format. Use ISO format (YYYY-MM-DD)."
            if too_early:
                return error_message or f"Date must be on or after {min_date.isoformat()}."
            return None
        return validate

    @staticmethod
    def custom(validation_func: FieldValidator) -> FieldValidator:
        """Wraps a user function so that an exception becomes an error message."""
        def safe_validate(value: Any) -> Optional[str]:
            try:
                return validation_func(value)
            except Exception:
                logger.exception("Error in custom validator %r", validation_func)
                return "Validation failed due to an internal error."
        return safe_validate
