"""
Form validation pipeline.

Errors come from three sources, applied in this order on every run:

1. the free-form ``validate(state)`` function, whose error tree is merged in;
2. per-field validators, which only run for paths still free of errors;
3. the schema validator, whose messages are written unconditionally and so
   replace errors from the first two sources at the same path.
"""
import logging
from typing import Callable, Dict, Iterator, List, Optional

from formstore.form.state import ErrorTree, FieldError, FieldValidator, FormState, SchemaValidator
from formstore.utils.path import flatten, get_nested, merge_nested, normalize_path, probe, set_nested

logger = logging.getLogger(__name__)


def iter_error_paths(errors: ErrorTree) -> Iterator[str]:
    """Yields the path of every leaf holding a non-empty message."""
    for path, message in flatten(errors):
        if isinstance(message, str) and message:
            yield path


def is_error_free(errors: ErrorTree) -> bool:
    return next(iter_error_paths(errors), None) is None


def collect_errors(errors: ErrorTree) -> List[FieldError]:
    """Lists the non-empty messages of an error tree as FieldError objects."""
    return [FieldError(path=path, message=get_nested(errors, path)) for path in iter_error_paths(errors)]


class ValidationPipeline:
    """
    Recomputes ``errors`` and ``is_valid`` of a form state.

    Args:
        validate: Free-form validator, ``state -> error tree``.
        validation_schema: Object exposing ``validate_all(values)``.
        field_validators: Registry of ``path -> validator``. Held by
                          reference, so later registrations are seen.
    """
    def __init__(self,
                 validate: Optional[Callable[[FormState], Optional[ErrorTree]]] = None,
                 validation_schema: Optional[SchemaValidator] = None,
                 field_validators: Optional[Dict[str, FieldValidator]] = None):
        self.validate_handler = validate
        self.validation_schema = validation_schema
        self.field_validators = field_validators if field_validators is not None else {}

    def run(self, state: FormState, all_touched: bool = False) -> FormState:
        state.errors = {}

        if self.validate_handler:
            custom_errors = self.validate_handler(state)
            if custom_errors:
                merge_nested(state.errors, custom_errors)

        # Copy: a validator may unregister itself while running
        for path, validator in list(self.field_validators.items()):
            if probe(state.errors, path):
                continue
            message = validator(get_nested(state.values, path))
            if message:
                set_nested(state.errors, path, message)

        if self.validation_schema is not None:
            for violation in self.validation_schema.validate_all(state.values):
                set_nested(state.errors, normalize_path(violation.path), violation.message)

        error_paths = list(iter_error_paths(state.errors))
        state.is_valid = not error_paths

        if all_touched:
            for path in error_paths:
                set_nested(state.touches, path, True)

        logger.debug("Validated form state: %d error(s), all_touched=%s", len(error_paths), all_touched)
        return state
