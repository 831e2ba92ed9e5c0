from .errors import (
    FieldError,
    FormErrors,
    error_list,
    first_error,
    flatten_errors,
    has_errors,
    is_error,
    merge_errors,
    merge_field_errors,
)
from .form import FieldAccessProxy, FieldUsage, FormState, create_form
from .validation import DEFAULT_DEBOUNCE_MS, ValidationRunner, get_debounce_values
from .validator import compose_validators, create_validator

__all__ = [
    'DEFAULT_DEBOUNCE_MS',
    'FieldAccessProxy',
    'FieldError',
    'FieldUsage',
    'FormErrors',
    'FormState',
    'ValidationRunner',
    'compose_validators',
    'create_form',
    'create_validator',
    'error_list',
    'first_error',
    'flatten_errors',
    'get_debounce_values',
    'has_errors',
    'is_error',
    'merge_errors',
    'merge_field_errors',
]
