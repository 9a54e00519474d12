from typing import Any, Callable, Dict, List, Optional, Union

from formstore.form.state import SchemaViolation
from formstore.form.validator import FieldValidator, Validator

_UNSET = object()  # Sentinel to tell an absent key from a None value

Number = Union[int, float]
CrossValidator = Callable[[Dict[str, Any]], Optional[Dict[str, List[str]]]]

_TYPE_NAMES = {str: "string", int: "integer", float: "number", bool: "boolean", list: "list", dict: "object"}


class Field:
    """
    Represents a single field in a form schema.
    """
    def __init__(self, name: str):
        self.name = name
        self.type: Optional[type] = None
        self.required_flag: bool = False
        self.optional_flag: bool = False
        self.nullable_flag: bool = False
        self.trim_flag: bool = False
        self.validation_functions: List[FieldValidator] = []
        self.conditional_validation: Optional[Callable[[Dict[str, Any]], bool]] = None
        self.match_field: Optional[str] = None
        self.match_error_message: str = "Fields must match."
        self.required_message: str = "This field is required."

    # -- Primitives ---
    def string(self) -> 'Field':
        self.type = str
        return self

    def int(self) -> 'Field':
        self.type = int
        return self

    def float(self) -> 'Field':
        self.type = float
        return self

    def bool(self) -> 'Field':
        self.type = bool
        return self

    def list(self) -> 'Field':
        self.type = list
        return self

    def dict(self) -> 'Field':
        self.type = dict
        return self
    # -- End Primitives ---

    def trim(self) -> 'Field':
        """Strips string values before validation."""
        self.trim_flag = True
        return self

    def required(self, error_message: str = "This field is required.") -> 'Field':
        """
        Marks the field as required: present, not None (unless nullable) and
        not an empty string/list/dict. Overrides ``.optional()``.
        """
        self.required_flag = True
        self.optional_flag = False
        self.required_message = error_message
        return self

    def optional(self) -> 'Field':
        """Lets the field be absent; present values are still validated."""
        self.optional_flag = True
        self.required_flag = False
        return self

    def nullable(self) -> 'Field':
        """Allows None; other rules are skipped for a None value."""
        self.nullable_flag = True
        return self

    def min_length(self, length: int, error_message: str = None) -> 'Field':
        self.validation_functions.append(Validator.min_length(length, error_message))
        return self

    def max_length(self, length: int, error_message: str = None) -> 'Field':
        self.validation_functions.append(Validator.max_length(length, error_message))
        return self

    def email(self, error_message: str = "Must be a valid email address.") -> 'Field':
        self.validation_functions.append(Validator.email(error_message))
        return self

    def url(self, error_message: str = "Must be a valid URL.") -> 'Field':
        self.validation_functions.append(Validator.url(error_message))
        return self

    def regex(self, pattern: str, error_message: str = "Invalid format.") -> 'Field':
        self.validation_functions.append(Validator.regex(pattern, error_message))
        return self

    def min_value(self, min_val: Number, error_message: str = None) -> 'Field':
        self.validation_functions.append(Validator.min_value(min_val, error_message))
        return self

    def max_value(self, max_val: Number, error_message: str = None) -> 'Field':
        self.validation_functions.append(Validator.max_value(max_val, error_message))
        return self

    def one_of(self, choices, error_message: str = None) -> 'Field':
        self.validation_functions.append(Validator.one_of(choices, error_message))
        return self

    def custom(self, validation_func: FieldValidator) -> 'Field':
        """Adds a custom validation function."""
        self.validation_functions.append(Validator.custom(validation_func))
        return self

    def matches(self, field_name: str, error_message: str = "Fields must match.") -> 'Field':
        """Requires this field to equal a sibling field's value."""
        self.match_field = field_name
        self.match_error_message = error_message
        return self

    def when(self, condition: Callable[[Dict[str, Any]], bool]) -> 'Field':
        """Only validates the field when ``condition(data)`` is true."""
        self.conditional_validation = condition
        return self

    def check(self, data: Dict[str, Any]) -> List[str]:
        """Returns every error message for this field within ``data``."""
        if self.conditional_validation and not self.conditional_validation(data):
            return []

        value = data.get(self.name, _UNSET)
        if self.optional_flag and value is _UNSET:
            return []
        if value is _UNSET:
            value = None
        if self.trim_flag and isinstance(value, str):
            value = value.strip()

        field_errors = []
        if self.required_flag:
            error_message = Validator.required(self.required_message, allow_none=self.nullable_flag)(value)
            if error_message:
                field_errors.append(error_message)

        if value is None:
            return field_errors

        if self.type is not None and not _is_instance(value, self.type):
            field_errors.append(f"Must be of type {_TYPE_NAMES[self.type]}.")
            return field_errors

        for validation_func in self.validation_functions:
            error_message = validation_func(value)
            if error_message:
                field_errors.append(error_message)

        if self.match_field is not None and value != data.get(self.match_field):
            field_errors.append(self.match_error_message)

        # Rules may overlap; keep each message once
        return list(dict.fromkeys(field_errors))


def _is_instance(value: Any, expected: type) -> bool:
    if expected in (int, float) and isinstance(value, bool):
        return False
    if expected is float:
        return isinstance(value, (int, float))
    return isinstance(value, expected)


class FieldArray:
    """Represents an array of objects sharing one item schema."""
    def __init__(self, item_schema: 'Schema'):
        self.item_schema = item_schema
        self.validation_functions: List[Callable[[List[Any]], Optional[str]]] = []

    def min_items(self, min_count: int, error_message: str = None) -> 'FieldArray':
        error_msg = error_message or f"Must have at least {min_count} items."
        self.validation_functions.append(lambda items: error_msg if len(items) < min_count else None)
        return self

    def max_items(self, max_count: int, error_message: str = None) -> 'FieldArray':
        error_msg = error_message or f"Must have at most {max_count} items."
        self.validation_functions.append(lambda items: error_msg if len(items) > max_count else None)
        return self

    def custom(self, validation_func: Callable[[List[Any]], Optional[str]]) -> 'FieldArray':
        self.validation_functions.append(Validator.custom(validation_func))
        return self


class Schema:
    """
    Declarative schema for form values.

    Usage::

        schema = Schema()
        schema.field("age").int().required().min_value(18)
        address = schema.nested("address")
        address.field("city").string().required()
        schema.array("items", item_schema).min_items(1)

    ``validate`` collects every failure (it never stops at the first one);
    ``validate_all`` reports them as :class:`SchemaViolation` objects for
    the form validation pipeline.
    """
    def __init__(self):
        self.fields: Dict[str, Field] = {}
        self.nested_schemas: Dict[str, 'Schema'] = {}
        self.field_arrays: Dict[str, FieldArray] = {}
        self.cross_validators: List[CrossValidator] = []

    def field(self, name: str) -> Field:
        field = Field(name)
        self.fields[name] = field
        return field

    def nested(self, name: str) -> 'Schema':
        nested_schema = Schema()
        self.nested_schemas[name] = nested_schema
        return nested_schema

    def array(self, name: str, item_schema: 'Schema') -> FieldArray:
        field_array = FieldArray(item_schema)
        self.field_arrays[name] = field_array
        return field_array

    def add_validator(self, validator: CrossValidator) -> 'Schema':
        """
        Adds a cross-field validator receiving the whole data dict and
        returning ``{field: [messages]}`` or None.
        """
        self.cross_validators.append(validator)
        return self

    def validate(self, form_data: Dict[str, Any]) -> Dict[str, List[str]]:
        """
        Validates ``form_data`` and returns messages keyed by path.
        Array items use bracket paths such as ``items[0].name``.
        """
        errors: Dict[str, List[str]] = {}
        if not isinstance(form_data, dict):
            form_data = {}

        for field_name, field in self.fields.items():
            field_errors = field.check(form_data)
            if field_errors:
                errors[field_name] = field_errors

        for nested_name, nested_schema in self.nested_schemas.items():
            nested_data = form_data.get(nested_name, {})
            if not isinstance(nested_data, dict):
                errors[nested_name] = ["Invalid nested object"]
                continue
            for key, messages in nested_schema.validate(nested_data).items():
                errors[f"{nested_name}.{key}"] = messages

        for array_name, field_array in self.field_arrays.items():
            array_data = form_data.get(array_name)
            if array_data is None:
                array_data = []
            if not isinstance(array_data, list):
                errors[array_name] = ["Invalid array"]
                continue

            array_errors = [message for message in (func(array_data) for func in field_array.validation_functions) if message]
            if array_errors:
                errors[array_name] = array_errors

            for i, item in enumerate(array_data):
                if not isinstance(item, dict):
                    errors[f"{array_name}[{i}]"] = [f"Item at index {i} is not a valid object"]
                    continue
                for key, messages in field_array.item_schema.validate(item).items():
                    errors[f"{array_name}[{i}].{key}"] = messages

        for cross_validator in self.cross_validators:
            for key, messages in (cross_validator(form_data) or {}).items():
                bucket = errors.setdefault(key, [])
                bucket.extend(message for message in messages if message not in bucket)

        return errors

    def validate_all(self, values: Dict[str, Any]) -> List[SchemaViolation]:
        """
        Reports one violation per failing path, carrying the path's first message.
        """
        return [
            SchemaViolation(path=path, message=messages[0])
            for path, messages in self.validate(values).items()
            if messages
        ]
